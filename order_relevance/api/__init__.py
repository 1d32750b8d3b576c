"""
API layer for the relevance engine.

This module provides the REST API serving relevant orders for a wallet.
"""

from .rest_api import create_app, run_server
from .validators import validate_wallet_address, validate_timeout

__all__ = [
    "create_app",
    "run_server",
    "validate_wallet_address",
    "validate_timeout",
]
