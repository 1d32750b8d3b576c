"""
Shared fixtures for the relevance engine tests.

Provides an in-process token reader that stands in for chain RPC, a small
test whitelist, and builders for stored order documents.
"""

import threading
import time
from typing import Any, Dict, Iterable, List, Optional

from order_relevance.chain.reader import TokenReader
from order_relevance.core.errors import ContractQueryFailure
from order_relevance.core.models import ContractDescriptor, Order
from order_relevance.core.registry import load_registry

NETWORK = "testnet"
WALLET = "0x" + "11" * 20
OTHER_WALLET = "0x" + "22" * 20
AAA = "0x" + "aa" * 20  # fungible
BBB = "0x" + "bb" * 20  # non-fungible
CCC = "0x" + "cc" * 20  # fungible
DDD = "0x" + "dd" * 20  # not whitelisted


def make_registry():
    return load_registry([
        (NETWORK, "erc20", "aaa", AAA),
        (NETWORK, "erc721", "bbb", BBB),
        (NETWORK, "erc20", "ccc", CCC),
    ])


class FakeTokenReader(TokenReader):
    """
    TokenReader answering from dictionaries keyed by lowercase address.

    `failures` maps (address, method) to an error message (raised as
    ContractQueryFailure) or an exception instance (raised as is).
    """

    def __init__(
        self,
        balances: Optional[Dict[str, int]] = None,
        token_ids: Optional[Dict[str, List[int]]] = None,
        decimals: Optional[Dict[str, int]] = None,
        symbols: Optional[Dict[str, str]] = None,
        failures: Optional[Dict[Any, Any]] = None,
        delay: float = 0.0,
    ):
        self.balances = {k.lower(): v for k, v in (balances or {}).items()}
        self.token_ids = {k.lower(): v for k, v in (token_ids or {}).items()}
        self.decimal_values = {k.lower(): v for k, v in (decimals or {}).items()}
        self.symbols = {k.lower(): v for k, v in (symbols or {}).items()}
        self.failures = {(k[0].lower(), k[1]): v for k, v in (failures or {}).items()}
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, method: str, contract: ContractDescriptor) -> str:
        address = contract.address.lower()
        with self._lock:
            self.calls.append((method, address))
        if self.delay:
            time.sleep(self.delay)

        error = self.failures.get((address, method))
        if isinstance(error, Exception):
            raise error
        if error is not None:
            raise ContractQueryFailure(contract.address, method, error, contract.symbol)
        return address

    def count(self, method: Optional[str] = None, address: Optional[str] = None) -> int:
        with self._lock:
            return sum(
                1 for m, a in self.calls
                if (method is None or m == method) and (address is None or a == address.lower())
            )

    def balance_of(self, contract, wallet_address):
        address = self._record("balanceOf", contract)
        return self.balances.get(address, 0)

    def decimals(self, contract):
        address = self._record("decimals", contract)
        return self.decimal_values.get(address, 18)

    def symbol(self, contract):
        address = self._record("symbol", contract)
        return self.symbols.get(address, contract.symbol.upper())

    def token_of_owner_by_index(self, contract, wallet_address, index):
        address = self._record("tokenOfOwnerByIndex", contract)
        return self.token_ids[address][index]


def seaport_item(token: str, item_type: int = 1, identifier: int = 0, amount: int = 1) -> Dict[str, Any]:
    """An item record as the marketplace stores it."""
    return {
        "itemType": item_type,
        "token": token,
        "identifierOrCriteria": str(identifier),
        "startAmount": str(amount),
        "endAmount": str(amount),
    }


def order_document(offer: Iterable[Dict[str, Any]] = (), consideration: Iterable[Dict[str, Any]] = ()) -> Dict[str, Any]:
    """A stored order with item arrays in the index-keyed Firestore shape."""
    return {
        "parameters": {
            "offerer": OTHER_WALLET,
            "offer": {str(i): item for i, item in enumerate(offer)},
            "consideration": {str(i): item for i, item in enumerate(consideration)},
        },
        "signature": "0x00",
    }


def make_order(order_id: str, offer_tokens: Iterable[str] = (), consideration_tokens: Iterable[str] = ()) -> Order:
    return Order.from_document(
        order_id,
        order_document(
            offer=[seaport_item(token) for token in offer_tokens],
            consideration=[seaport_item(token) for token in consideration_tokens],
        ),
    )
