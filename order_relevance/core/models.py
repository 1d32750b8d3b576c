"""
Data structures for whitelisted contracts, wallet holdings and orders.

This module defines the records that flow through a relevance query, with
validation on construction and dictionary serialization for the API layer.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple
import json

from .addresses import is_valid_address, normalize_address, to_checksum
from .token_types import ItemType, TokenStandard, parse_item_type

OFFER_KEYS = ("offer", "offerItems")
CONSIDERATION_KEYS = ("consideration", "considerationItems")
TOKEN_ADDRESS_KEYS = ("token", "tokenAddress")
AMOUNT_KEYS = ("amount", "startAmount")


def _parse_uint(value: Any, name: str) -> int:
    """
    Parse an unsigned integer stored as int, decimal string or hex string.

    Raises:
        ValueError: If value is not a non-negative integer
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid {name}: {value}")

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError:
            raise ValueError(f"Invalid {name}: {value}")
    else:
        raise ValueError(f"Invalid {name}: {value}")

    if parsed < 0:
        raise ValueError(f"{name} cannot be negative, got: {parsed}")
    return parsed


@dataclass(frozen=True)
class ContractDescriptor:
    """
    A whitelisted token contract on one network.

    Descriptors are loaded once at startup and never change afterwards.
    The address is stored in checksummed form.
    """

    network: str
    standard: TokenStandard
    symbol: str
    address: str

    def __post_init__(self):
        """Validate descriptor after initialization."""
        if not self.network:
            raise ValueError("Network cannot be empty")

        if not isinstance(self.standard, TokenStandard):
            raise ValueError(f"Invalid token standard: {self.standard}")

        if not self.symbol:
            raise ValueError("Symbol cannot be empty")

        if not is_valid_address(self.address):
            raise ValueError(f"Malformed contract address for {self.symbol}: {self.address!r}")

        object.__setattr__(self, "address", to_checksum(self.address))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": self.network,
            "standard": self.standard.value,
            "symbol": self.symbol,
            "address": self.address,
        }


@dataclass(frozen=True)
class TokenHolding:
    """
    A wallet's nonzero position in one whitelisted contract.

    Holdings are produced fresh for each query and never persisted.
    Fungible holdings carry decimals; non-fungible holdings carry exactly
    one token id per unit of balance.
    """

    standard: TokenStandard
    contract_address: str
    balance: int
    symbol: str = ""
    decimals: Optional[int] = None
    token_ids: FrozenSet[int] = field(default_factory=frozenset)

    def __post_init__(self):
        """Validate holding after initialization."""
        object.__setattr__(self, "token_ids", frozenset(self.token_ids))
        self._validate()

    def _validate(self) -> None:
        """
        Validate holding parameters.

        Raises:
            ValueError: If holding parameters are invalid
        """
        if not isinstance(self.balance, int) or isinstance(self.balance, bool):
            raise ValueError(f"Balance must be an integer, got: {self.balance!r}")

        if self.balance <= 0:
            raise ValueError(f"Balance must be positive, got: {self.balance}")

        if not self.contract_address:
            raise ValueError("Contract address cannot be empty")

        if self.standard == TokenStandard.FUNGIBLE:
            if self.decimals is None or self.decimals < 0:
                raise ValueError(f"Fungible holding requires non-negative decimals, got: {self.decimals}")
            if self.token_ids:
                raise ValueError("Fungible holding cannot carry token ids")
        else:
            if self.decimals is not None:
                raise ValueError("Non-fungible holding cannot carry decimals")
            if len(self.token_ids) != self.balance:
                raise ValueError(
                    f"Non-fungible holding has {len(self.token_ids)} token ids for balance {self.balance}"
                )

    @property
    def whole_balance(self) -> Decimal:
        """Balance in whole token units (scaled by decimals for fungible tokens)."""
        if self.standard == TokenStandard.FUNGIBLE:
            return Decimal(self.balance).scaleb(-self.decimals)
        return Decimal(self.balance)

    def to_dict(self) -> Dict[str, Any]:
        """Convert holding to dictionary for serialization."""
        data = {
            "standard": self.standard.value,
            "contract_address": self.contract_address,
            "symbol": self.symbol,
            "balance": str(self.balance),
            "whole_balance": str(self.whole_balance),
        }
        if self.standard == TokenStandard.FUNGIBLE:
            data["decimals"] = self.decimals
        else:
            data["token_ids"] = [str(token_id) for token_id in sorted(self.token_ids)]
        return data


@dataclass(frozen=True)
class OrderItem:
    """
    One entry of an order's offer or consideration list.

    Only the token address is required. Item type, identifier and amount
    are None when the stored value is missing or unreadable; `issues` then
    says which fields were dropped.
    """

    item_type: Optional[ItemType]
    token_address: str
    identifier_or_criteria: Optional[int] = None
    amount: Optional[int] = None
    issues: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.token_address, str) or not self.token_address.strip():
            raise ValueError(f"Item token address must be a non-empty string, got: {self.token_address!r}")
        object.__setattr__(self, "issues", tuple(self.issues))

    @property
    def address_key(self) -> str:
        """Normalized token address used for interest-set membership."""
        return normalize_address(self.token_address)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "itemType": self.item_type.value if self.item_type is not None else None,
            "token": self.token_address,
            "identifierOrCriteria": (
                str(self.identifier_or_criteria) if self.identifier_or_criteria is not None else None
            ),
            "amount": str(self.amount) if self.amount is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'OrderItem':
        """
        Create an item from a stored item record.

        Raises:
            ValueError: If the record is not an object or has no usable token address
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Item must be an object, got: {type(data).__name__}")

        token_address = next((data[key] for key in TOKEN_ADDRESS_KEYS if data.get(key) is not None), None)
        if token_address is None:
            raise ValueError("Item has no token address")

        issues: List[str] = []

        def read(parse, key, value):
            if value is None:
                return None
            try:
                return parse(value)
            except ValueError as e:
                issues.append(f"{key}: {e}")
                return None

        if data.get("itemType") is None:
            issues.append("itemType: missing")

        amount = next((data[key] for key in AMOUNT_KEYS if data.get(key) is not None), None)

        return cls(
            item_type=read(parse_item_type, "itemType", data.get("itemType")),
            token_address=token_address,
            identifier_or_criteria=read(
                lambda v: _parse_uint(v, "identifierOrCriteria"),
                "identifierOrCriteria",
                data.get("identifierOrCriteria"),
            ),
            amount=read(lambda v: _parse_uint(v, "amount"), "amount", amount),
            issues=issues,
        )


def _read_item_list(container: Mapping[str, Any], keys: Tuple[str, ...]) -> List[Any]:
    """
    Read a stored item list under the first present key.

    Lists are read as is. Objects keyed by index (the shape Firestore gives
    stored arrays) are read in index order.

    Raises:
        ValueError: If no key is present or the value is not a list/object
    """
    for key in keys:
        if key in container:
            value = container[key]
            break
    else:
        raise ValueError(f"missing item list '{keys[0]}'")

    if isinstance(value, (list, tuple)):
        return list(value)

    if isinstance(value, Mapping):
        entries = list(value.items())
        if all(str(k).isdigit() for k, _ in entries):
            entries.sort(key=lambda kv: int(kv[0]))
        return [item for _, item in entries]

    raise ValueError(f"item list '{key}' must be a list or object, got: {type(value).__name__}")


@dataclass(frozen=True)
class Order:
    """
    A stored marketplace order.

    The stored document is kept as is and echoed back in responses. Item
    lists are None when the document could not be decomposed into items;
    such orders are malformed and skipped by the matcher. `anomaly` holds
    the reason, or for well-formed orders the item fields that were dropped.
    """

    order_id: str
    offer_items: Optional[Tuple[OrderItem, ...]] = ()
    consideration_items: Optional[Tuple[OrderItem, ...]] = ()
    document: Dict[str, Any] = field(default_factory=dict)
    anomaly: Optional[str] = None

    def __post_init__(self):
        if not self.order_id:
            raise ValueError("Order ID cannot be empty")

        if self.offer_items is not None:
            object.__setattr__(self, "offer_items", tuple(self.offer_items))
        if self.consideration_items is not None:
            object.__setattr__(self, "consideration_items", tuple(self.consideration_items))

    @property
    def is_malformed(self) -> bool:
        return self.offer_items is None or self.consideration_items is None

    @property
    def items(self) -> Tuple[OrderItem, ...]:
        """Offer items followed by consideration items."""
        return (self.offer_items or ()) + (self.consideration_items or ())

    def item_addresses(self) -> FrozenSet[str]:
        """Normalized token addresses referenced anywhere in the order."""
        return frozenset(item.address_key for item in self.items)

    def to_dict(self) -> Dict[str, Any]:
        """Convert order to dictionary for serialization."""
        if self.document:
            return dict(self.document)
        return {
            "parameters": {
                "offer": [item.to_dict() for item in self.offer_items or ()],
                "consideration": [item.to_dict() for item in self.consideration_items or ()],
            }
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)

    @classmethod
    def from_document(cls, order_id: Any, document: Any) -> 'Order':
        """
        Create an order from a stored document.

        Never raises for structural problems in the document: those produce
        an order with no item lists and the problem recorded in `anomaly`.
        Items with unreadable type, identifier or amount are kept, since
        relevance only needs their token address.
        """
        order_id = str(order_id)

        if not isinstance(document, Mapping):
            return cls(
                order_id=order_id,
                offer_items=None,
                consideration_items=None,
                anomaly=f"document must be an object, got: {type(document).__name__}",
            )

        document = dict(document)
        container = document.get("parameters", document)

        try:
            if not isinstance(container, Mapping):
                raise ValueError("parameters must be an object")
            offer = [OrderItem.from_dict(item) for item in _read_item_list(container, OFFER_KEYS)]
            consideration = [
                OrderItem.from_dict(item) for item in _read_item_list(container, CONSIDERATION_KEYS)
            ]
        except ValueError as e:
            return cls(
                order_id=order_id,
                offer_items=None,
                consideration_items=None,
                document=document,
                anomaly=str(e),
            )

        issues = [
            f"{side}[{position}] {issue}"
            for side, items in (("offer", offer), ("consideration", consideration))
            for position, item in enumerate(items)
            for issue in item.issues
        ]

        return cls(
            order_id=order_id,
            offer_items=offer,
            consideration_items=consideration,
            document=document,
            anomaly="; ".join(issues) or None,
        )


def orders_from_documents(documents: Iterable[Tuple[Any, Any]]) -> List[Order]:
    """Build orders from (order_id, document) pairs."""
    return [Order.from_document(order_id, document) for order_id, document in documents]


@dataclass(frozen=True)
class RelevantOrder:
    """An order that references at least one contract the wallet holds."""

    order_id: str
    order: Order

    def to_dict(self) -> Dict[str, Any]:
        """The stored order document with its id attached."""
        data = self.order.to_dict()
        data["_id"] = self.order_id
        return data
