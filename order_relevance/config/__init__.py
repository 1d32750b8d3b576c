"""
Configuration module for the relevance engine.

This module provides configuration management and settings
for the order-relevance service.
"""

from .settings import Settings, get_settings, reload_settings

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
