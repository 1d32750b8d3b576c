"""
Chain address helpers.

Thin wrappers over web3.py's address utilities so the rest of the engine
validates and compares addresses one way.
"""

from typing import Any

from web3 import Web3


def is_valid_address(value: Any) -> bool:
    """Check whether value is a single well-formed chain address string."""
    if not isinstance(value, str):
        return False
    return Web3.is_address(value)


def to_checksum(address: str) -> str:
    """Return the EIP-55 checksummed form of a valid address."""
    return Web3.to_checksum_address(address)


def normalize_address(address: str) -> str:
    """Canonical comparison key for an address (lowercase hex)."""
    return address.strip().lower()
