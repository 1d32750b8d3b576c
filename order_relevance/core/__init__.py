"""
Core relevance engine components.

This module contains the data structures, the contract whitelist and the
matching logic. The snapshotter and service live in their own modules
because they depend on the chain and repository layers.
"""

from .token_types import TokenStandard, ItemType
from .errors import (
    RelevanceError,
    InvalidAddress,
    RegistryConfigError,
    ContractQueryFailure,
    RepositoryUnavailable,
    MalformedOrder,
    QueryAborted,
    QueryTimeout,
    QueryCancelled,
)
from .models import ContractDescriptor, TokenHolding, OrderItem, Order, RelevantOrder
from .registry import ContractRegistry, load_registry, load_registry_file
from .matcher import RelevanceMatcher, MatchReport, naive_match
from .context import QueryContext

__all__ = [
    "TokenStandard",
    "ItemType",
    "RelevanceError",
    "InvalidAddress",
    "RegistryConfigError",
    "ContractQueryFailure",
    "RepositoryUnavailable",
    "MalformedOrder",
    "QueryAborted",
    "QueryTimeout",
    "QueryCancelled",
    "ContractDescriptor",
    "TokenHolding",
    "OrderItem",
    "Order",
    "RelevantOrder",
    "ContractRegistry",
    "load_registry",
    "load_registry_file",
    "RelevanceMatcher",
    "MatchReport",
    "naive_match",
    "QueryContext",
]
