"""
Token standard and order item type definitions.

This module defines the token standards the whitelist registry knows about
and the Seaport item types that appear inside stored orders.
"""

from enum import Enum
from typing import Any


class TokenStandard(Enum):
    """
    Token standards supported by the balance snapshotter.

    - FUNGIBLE: ERC20-style tokens, balance is a single quantity
    - NON_FUNGIBLE: ERC721-style tokens, balance counts distinct token ids
    """
    FUNGIBLE = "erc20"
    NON_FUNGIBLE = "erc721"


class ItemType(Enum):
    """
    Item types used in offer and consideration lists.

    Values follow the Seaport protocol numbering so stored orders can be
    read without translation.
    """
    NATIVE = 0
    ERC20 = 1
    ERC721 = 2
    ERC1155 = 3
    ERC721_WITH_CRITERIA = 4
    ERC1155_WITH_CRITERIA = 5


def parse_token_standard(value: Any) -> TokenStandard:
    """
    Validate and convert a configuration value to a TokenStandard.

    Accepts the enum itself, its value ("erc20"/"erc721") or its name
    ("FUNGIBLE"/"NON_FUNGIBLE"), case-insensitively.

    Raises:
        ValueError: If the value names no known standard
    """
    if isinstance(value, TokenStandard):
        return value

    if isinstance(value, str):
        text = value.strip()
        for standard in TokenStandard:
            if text.lower() == standard.value or text.upper() == standard.name:
                return standard

    raise ValueError(
        f"Invalid token standard: {value}. Must be one of: {[s.value for s in TokenStandard]}"
    )


def parse_item_type(value: Any) -> ItemType:
    """
    Validate and convert a stored item type to an ItemType.

    Args:
        value: An ItemType, an integer, a digit string or a member name

    Returns:
        ItemType enum value

    Raises:
        ValueError: If value is not a known item type
    """
    if isinstance(value, ItemType):
        return value

    if isinstance(value, bool):
        raise ValueError(f"Invalid item type: {value}")

    if isinstance(value, int):
        try:
            return ItemType(value)
        except ValueError:
            pass
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return parse_item_type(int(text))
        try:
            return ItemType[text.upper()]
        except KeyError:
            pass

    raise ValueError(f"Invalid item type: {value}. Must be one of: {[it.name for it in ItemType]}")
