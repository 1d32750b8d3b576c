"""
Chain RPC boundary.

This module provides the read-only token contract calls the balance
snapshotter makes, backed by web3.py.
"""

from .abi import MIN_ERC20_ABI, MIN_ERC721_ABI
from .reader import TokenReader, Web3TokenReader, CachingTokenReader, build_rpc_url

__all__ = [
    "MIN_ERC20_ABI",
    "MIN_ERC721_ABI",
    "TokenReader",
    "Web3TokenReader",
    "CachingTokenReader",
    "build_rpc_url",
]
