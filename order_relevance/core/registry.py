"""
Contract whitelist registry.

This module holds the whitelisted token contracts per network, split by
token standard. The registry is built once at startup and is read-only
afterwards.
"""

import json
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .errors import RegistryConfigError
from .models import ContractDescriptor
from .token_types import TokenStandard, parse_token_standard

logger = logging.getLogger(__name__)

# network, standard, symbol, address
DEFAULT_CONTRACTS: Tuple[Tuple[str, str, str, str], ...] = (
    ("mainnet", "erc721", "azuki", "0xED5AF388653567Af2F388E6224dC7C4b3241C544"),
    ("mainnet", "erc721", "bayc", "0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D"),
    ("mainnet", "erc721", "mayc", "0x60E4d786628Fea6478F785A6d7e704777c86a7c6"),
    ("mainnet", "erc721", "moonbirds", "0x23581767a106ae21c074b2276D25e5C3e136a68b"),
    ("mainnet", "erc721", "doodles", "0x8a90CAb2b38dba80c64b7734e58Ee1dB38B8992e"),
    ("mainnet", "erc20", "usdc", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"),
    ("mainnet", "erc20", "weth", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"),
    ("rinkeby", "erc721", "sznouns1", "0xc3a949d2798e13ce845bdd21bf639a28548faf30"),
    ("rinkeby", "erc721", "sznouns2", "0x63f9e083a76e396c45b5f6fce41e6a91ea0a1400"),
)

_EMPTY_VIEW: Mapping[str, ContractDescriptor] = MappingProxyType({})


class ContractRegistry:
    """
    Immutable network -> standard -> symbol -> descriptor mapping.

    Instances are created by `load_registry` and passed by reference to the
    components that need them.
    """

    def __init__(self, descriptors: Iterable[ContractDescriptor]):
        """
        Initialize the registry.

        Args:
            descriptors: Contract descriptors in whitelist order

        Raises:
            RegistryConfigError: If a (network, symbol) pair appears twice
        """
        tables: Dict[str, Dict[TokenStandard, Dict[str, ContractDescriptor]]] = {}
        seen = set()

        for descriptor in descriptors:
            key = (descriptor.network, descriptor.symbol.lower())
            if key in seen:
                raise RegistryConfigError(
                    f"Duplicate symbol '{descriptor.symbol}' on network '{descriptor.network}'"
                )
            seen.add(key)

            per_network = tables.setdefault(
                descriptor.network, {standard: {} for standard in TokenStandard}
            )
            per_network[descriptor.standard][descriptor.symbol] = descriptor

        self._tables = MappingProxyType({
            network: MappingProxyType({
                standard: MappingProxyType(contracts) for standard, contracts in per_network.items()
            })
            for network, per_network in tables.items()
        })

    def lookup(self, network: str) -> Mapping[TokenStandard, Mapping[str, ContractDescriptor]]:
        """
        Get the whitelisted contracts for a network.

        Unknown networks yield an empty mapping for every standard.
        """
        per_network = self._tables.get(network)
        if per_network is None:
            return MappingProxyType({standard: _EMPTY_VIEW for standard in TokenStandard})
        return per_network

    def contracts(self, network: str) -> List[ContractDescriptor]:
        """All descriptors for a network, fungible contracts first."""
        tables = self.lookup(network)
        return [
            descriptor
            for standard in (TokenStandard.FUNGIBLE, TokenStandard.NON_FUNGIBLE)
            for descriptor in tables[standard].values()
        ]

    def networks(self) -> List[str]:
        return list(self._tables.keys())

    def __len__(self) -> int:
        return sum(len(self.contracts(network)) for network in self._tables)


def _descriptor_from_entry(entry: Any) -> ContractDescriptor:
    if isinstance(entry, Mapping):
        missing = [name for name in ("network", "standard", "symbol", "address") if name not in entry]
        if missing:
            raise RegistryConfigError(f"Registry entry {entry} is missing fields: {missing}")
        network, standard, symbol, address = (
            entry["network"], entry["standard"], entry["symbol"], entry["address"]
        )
    else:
        try:
            network, standard, symbol, address = entry
        except (TypeError, ValueError):
            raise RegistryConfigError(f"Invalid registry entry: {entry!r}")

    try:
        return ContractDescriptor(
            network=network,
            standard=parse_token_standard(standard),
            symbol=symbol,
            address=address,
        )
    except ValueError as e:
        raise RegistryConfigError(f"Invalid registry entry for '{symbol}' on '{network}': {e}") from e


def load_registry(entries: Iterable[Any] = DEFAULT_CONTRACTS) -> ContractRegistry:
    """
    Build a registry from whitelist entries.

    Args:
        entries: (network, standard, symbol, address) tuples or objects
            with those keys

    Returns:
        ContractRegistry instance

    Raises:
        RegistryConfigError: On a malformed entry, address or duplicate symbol
    """
    registry = ContractRegistry(_descriptor_from_entry(entry) for entry in entries)
    logger.info(f"Loaded contract registry: {len(registry)} contracts on {registry.networks()}")
    return registry


def load_registry_file(path: str) -> ContractRegistry:
    """
    Build a registry from a JSON file holding a list of entry objects.

    Raises:
        RegistryConfigError: If the file cannot be read or is invalid
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            entries = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise RegistryConfigError(f"Cannot read contract registry file {path}: {e}") from e

    if not isinstance(entries, list):
        raise RegistryConfigError(f"Contract registry file {path} must contain a JSON list")

    return load_registry(entries)
