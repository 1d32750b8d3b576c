"""
Error taxonomy for relevance queries.

Each exception kind maps to one failure mode of a query so callers can tell
client-caused failures apart from transient ones.
"""

from typing import Optional


class RelevanceError(Exception):
    """Base class for all errors raised by the relevance engine."""

    retryable = False


class InvalidAddress(RelevanceError, ValueError):
    """Wallet address input is missing, multi-valued or malformed."""

    def __init__(self, address, message: Optional[str] = None):
        self.address = address
        super().__init__(message or f"Invalid address: {address}")


class RegistryConfigError(RelevanceError, ValueError):
    """Contract whitelist configuration is malformed."""


class ContractQueryFailure(RelevanceError):
    """
    A single contract's RPC call failed.

    Raised by the chain reader and captured per contract by the snapshotter;
    it never aborts a whole snapshot.
    """

    def __init__(self, contract_address: str, method: str, reason: str, symbol: Optional[str] = None):
        self.contract_address = contract_address
        self.method = method
        self.reason = reason
        self.symbol = symbol
        super().__init__(f"{method} failed on {contract_address}: {reason}")

    def to_dict(self):
        """Convert failure to dictionary for serialization."""
        return {
            "contract_address": self.contract_address,
            "symbol": self.symbol,
            "method": self.method,
            "reason": self.reason,
        }


class RepositoryUnavailable(RelevanceError):
    """The order store cannot be reached or read."""

    retryable = True


class MalformedOrder(RelevanceError):
    """An order record lacks the expected item-list structure."""

    def __init__(self, order_id: str, reason: str):
        self.order_id = order_id
        self.reason = reason
        super().__init__(f"Malformed order {order_id}: {reason}")

    def to_dict(self):
        return {"order_id": self.order_id, "reason": self.reason}


class QueryAborted(RelevanceError):
    """The query stopped before all of its data sources completed."""

    retryable = True


class QueryTimeout(QueryAborted):
    """The query deadline expired."""


class QueryCancelled(QueryAborted):
    """The caller cancelled the query."""
