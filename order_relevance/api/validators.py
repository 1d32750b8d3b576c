"""
Input validation utilities for the API layer.

This module validates wallet addresses and query parameters before any
chain or order store call is made.
"""

from typing import Any, Optional, Tuple
import logging
import math

from ..core.addresses import is_valid_address

logger = logging.getLogger(__name__)

TRUE_VALUES = ("1", "true", "yes", "on")


def validate_wallet_address(address_param: Any) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate the wallet address parameter.

    Args:
        address_param: Raw parameter; a list means the parameter was multi-valued

    Returns:
        Tuple of (is_valid, error_message, wallet_address)
    """
    if address_param is None or (isinstance(address_param, str) and not address_param.strip()):
        return False, "Missing wallet address", None

    if isinstance(address_param, (list, tuple)):
        return False, f"Invalid param: expecting single string, got array: {list(address_param)}", None

    if not isinstance(address_param, str):
        return False, "Wallet address must be a string", None

    address = address_param.strip()
    if not is_valid_address(address):
        return False, f"Invalid address: {address}", None

    return True, None, address


def split_address_path(path: str) -> Any:
    """
    Turn the captured route path into the address parameter.

    A path with more than one segment is a multi-valued parameter.
    """
    segments = [segment for segment in path.split("/") if segment]
    if len(segments) > 1:
        return segments
    return segments[0] if segments else None


def validate_timeout(value: Any, maximum: Optional[float] = None) -> Tuple[bool, Optional[str], Optional[float]]:
    """
    Validate a caller-supplied query timeout in seconds.

    Returns:
        Tuple of (is_valid, error_message, timeout); timeout is None when not supplied
    """
    if value is None or value == "":
        return True, None, None

    try:
        timeout = float(value)
    except (ValueError, TypeError):
        return False, f"Invalid timeout format: {value}. Must be a number of seconds", None

    if not math.isfinite(timeout):
        return False, f"Invalid timeout: {value}. Must be a finite number of seconds", None

    if timeout <= 0:
        return False, "Timeout must be positive", None

    if maximum is not None and timeout > maximum:
        return False, f"Timeout too large. Maximum: {maximum}", None

    return True, None, timeout


def parse_flag(value: Any) -> bool:
    """Interpret a query string flag such as ?details=true."""
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES
