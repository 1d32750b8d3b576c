"""
Read-only token contract access over chain RPC.

This module provides the reader interface the snapshotter depends on, a
web3.py implementation of it, and a caching wrapper for contract-invariant
metadata (decimals and symbol).
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

from web3 import Web3

from ..core.errors import ContractQueryFailure
from ..core.models import ContractDescriptor
from ..core.token_types import TokenStandard
from .abi import MIN_ERC20_ABI, MIN_ERC721_ABI

logger = logging.getLogger(__name__)

ALCHEMY_URL_TEMPLATE = "https://eth-{network}.alchemyapi.io/v2/{key}/"


class TokenReader(ABC):
    """
    Read-only calls against whitelisted token contracts.

    Implementations raise ContractQueryFailure for any failed call.
    """

    @abstractmethod
    def balance_of(self, contract: ContractDescriptor, wallet_address: str) -> int:
        """balanceOf(wallet) on a fungible or non-fungible contract."""

    @abstractmethod
    def decimals(self, contract: ContractDescriptor) -> int:
        """decimals() on a fungible contract."""

    @abstractmethod
    def symbol(self, contract: ContractDescriptor) -> str:
        """symbol() on a fungible or non-fungible contract."""

    @abstractmethod
    def token_of_owner_by_index(self, contract: ContractDescriptor, wallet_address: str, index: int) -> int:
        """tokenOfOwnerByIndex(wallet, index) on a non-fungible contract."""


def _expect_uint(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TypeError(f"expected unsigned integer, got {value!r}")
    return value


def _expect_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected string, got {value!r}")
    return value


class Web3TokenReader(TokenReader):
    """
    TokenReader backed by a web3.py HTTP provider.

    Contract objects are built lazily from the minimal ABIs and reused.
    """

    def __init__(self, web3: Web3):
        """
        Initialize the reader.

        Args:
            web3: Connected Web3 instance
        """
        self.web3 = web3
        self._contracts: Dict[Tuple[str, TokenStandard], Any] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, rpc_url: str, timeout: float = 10.0) -> 'Web3TokenReader':
        """Create a reader for an HTTP RPC endpoint with a per-request timeout."""
        provider = Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        return cls(Web3(provider))

    def _contract(self, contract: ContractDescriptor):
        key = (contract.address, contract.standard)
        with self._lock:
            instance = self._contracts.get(key)
            if instance is None:
                abi = MIN_ERC20_ABI if contract.standard == TokenStandard.FUNGIBLE else MIN_ERC721_ABI
                instance = self.web3.eth.contract(address=contract.address, abi=abi)
                self._contracts[key] = instance
            return instance

    def _call(self, contract: ContractDescriptor, method: str, build: Callable[[Any], Any], check: Callable[[Any], Any]):
        try:
            result = build(self._contract(contract).functions).call()
            return check(result)
        except Exception as e:
            raise ContractQueryFailure(
                contract_address=contract.address,
                method=method,
                reason=str(e) or type(e).__name__,
                symbol=contract.symbol,
            ) from e

    def balance_of(self, contract: ContractDescriptor, wallet_address: str) -> int:
        wallet = Web3.to_checksum_address(wallet_address)
        return self._call(contract, "balanceOf", lambda fns: fns.balanceOf(wallet), _expect_uint)

    def decimals(self, contract: ContractDescriptor) -> int:
        return self._call(contract, "decimals", lambda fns: fns.decimals(), _expect_uint)

    def symbol(self, contract: ContractDescriptor) -> str:
        return self._call(contract, "symbol", lambda fns: fns.symbol(), _expect_str)

    def token_of_owner_by_index(self, contract: ContractDescriptor, wallet_address: str, index: int) -> int:
        wallet = Web3.to_checksum_address(wallet_address)
        return self._call(
            contract,
            "tokenOfOwnerByIndex",
            lambda fns: fns.tokenOfOwnerByIndex(wallet, index),
            _expect_uint,
        )


class CachingTokenReader(TokenReader):
    """
    Wraps a reader and caches decimals() and symbol() per contract.

    Both values are contract-invariant, so caching them across queries saves
    two round trips per held fungible contract. Failures are not cached.
    """

    def __init__(self, reader: TokenReader):
        self.reader = reader
        self._decimals: Dict[str, int] = {}
        self._symbols: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _cached(self, cache: Dict[str, Any], contract: ContractDescriptor, fetch: Callable[[], Any]):
        with self._lock:
            if contract.address in cache:
                self.hits += 1
                return cache[contract.address]
            self.misses += 1

        value = fetch()

        with self._lock:
            cache.setdefault(contract.address, value)
        logger.debug(f"Cached metadata for {contract.symbol} ({contract.address})")
        return value

    def balance_of(self, contract: ContractDescriptor, wallet_address: str) -> int:
        return self.reader.balance_of(contract, wallet_address)

    def decimals(self, contract: ContractDescriptor) -> int:
        return self._cached(self._decimals, contract, lambda: self.reader.decimals(contract))

    def symbol(self, contract: ContractDescriptor) -> str:
        return self._cached(self._symbols, contract, lambda: self.reader.symbol(contract))

    def token_of_owner_by_index(self, contract: ContractDescriptor, wallet_address: str, index: int) -> int:
        return self.reader.token_of_owner_by_index(contract, wallet_address, index)

    def clear(self) -> None:
        with self._lock:
            self._decimals.clear()
            self._symbols.clear()


def build_rpc_url(network: str, alchemy_key: Optional[str] = None, rpc_url: Optional[str] = None) -> str:
    """
    Resolve the RPC endpoint for a network.

    An explicit rpc_url wins; otherwise the Alchemy endpoint for the network
    is used.

    Raises:
        ValueError: If neither an RPC URL nor an Alchemy key is configured
    """
    if rpc_url:
        return rpc_url
    if not alchemy_key:
        raise ValueError("Either RPC_URL or ALCHEMY_KEY must be configured")
    return ALCHEMY_URL_TEMPLATE.format(network=network, key=alchemy_key)
