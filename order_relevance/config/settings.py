"""
Configuration settings for the relevance engine.

This module provides centralized configuration management
with environment variable support and validation.
"""

import math
import os
from typing import Optional, Dict, Any

ORDER_STORES = ("memory", "json", "firestore")


def _mask(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    return "***"


class Settings:
    """
    Configuration settings for the relevance engine.

    Supports environment variables and provides sensible defaults.
    """

    def __init__(self):
        """Initialize settings from environment variables."""
        # Server configuration
        self.rest_host = os.getenv("REST_HOST", "0.0.0.0")
        self.rest_port = int(os.getenv("REST_PORT", "5000"))

        # Logging configuration
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_file = os.getenv("LOG_FILE", "logs/order_relevance.log")

        # Chain configuration
        self.network = os.getenv("NETWORK", "mainnet")
        self.alchemy_key = os.getenv("ALCHEMY_KEY")
        self.rpc_url = os.getenv("RPC_URL")
        self.rpc_timeout_seconds = float(os.getenv("RPC_TIMEOUT_SECONDS", "10"))
        self.rpc_max_workers = int(os.getenv("RPC_MAX_WORKERS", "8"))
        self.max_enumeration = int(os.getenv("MAX_ENUMERATION", "10000"))
        self.contract_registry_file = os.getenv("CONTRACT_REGISTRY_FILE")

        # Query configuration
        self.query_timeout_seconds = float(os.getenv("QUERY_TIMEOUT_SECONDS", "30"))

        # Order store
        self.order_store = os.getenv("ORDER_STORE", "json").lower()
        self.orders_file = os.getenv("ORDERS_FILE", "data/orders.json")
        self.firestore_collection = os.getenv("FIRESTORE_COLLECTION", "orders")
        self.firebase_project_id = os.getenv("FIREBASE_PROJECT_ID")
        self.firebase_client_email = os.getenv("FIREBASE_CLIENT_EMAIL")
        self.firebase_private_key = os.getenv("FIREBASE_PRIVATE_KEY")

        # Performance monitoring
        self.enable_performance_monitoring = os.getenv("ENABLE_PERFORMANCE_MONITORING", "true").lower() == "true"

        # Security
        self.enable_cors = os.getenv("ENABLE_CORS", "true").lower() == "true"
        self.cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")

        # Debug mode
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

    @property
    def has_firebase_credentials(self) -> bool:
        return bool(self.firebase_private_key and self.firebase_client_email and self.firebase_project_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary, with credentials masked."""
        return {
            "rest_host": self.rest_host,
            "rest_port": self.rest_port,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "network": self.network,
            "alchemy_key": _mask(self.alchemy_key),
            "rpc_url": _mask(self.rpc_url),
            "rpc_timeout_seconds": self.rpc_timeout_seconds,
            "rpc_max_workers": self.rpc_max_workers,
            "max_enumeration": self.max_enumeration,
            "contract_registry_file": self.contract_registry_file,
            "query_timeout_seconds": self.query_timeout_seconds,
            "order_store": self.order_store,
            "orders_file": self.orders_file,
            "firestore_collection": self.firestore_collection,
            "firebase_project_id": self.firebase_project_id,
            "firebase_client_email": self.firebase_client_email,
            "firebase_private_key": _mask(self.firebase_private_key),
            "enable_performance_monitoring": self.enable_performance_monitoring,
            "enable_cors": self.enable_cors,
            "cors_origins": self.cors_origins,
            "debug": self.debug,
        }

    def validate(self) -> None:
        """Validate configuration settings."""
        errors = []

        if not (1 <= self.rest_port <= 65535):
            errors.append(f"Invalid REST port: {self.rest_port}")

        if not self.network:
            errors.append("Network cannot be empty")

        if not math.isfinite(self.rpc_timeout_seconds) or self.rpc_timeout_seconds <= 0:
            errors.append(f"RPC timeout must be a positive number: {self.rpc_timeout_seconds}")

        if self.rpc_max_workers <= 0:
            errors.append(f"RPC max workers must be positive: {self.rpc_max_workers}")

        if self.max_enumeration <= 0:
            errors.append(f"Max enumeration must be positive: {self.max_enumeration}")

        if not math.isfinite(self.query_timeout_seconds) or self.query_timeout_seconds <= 0:
            errors.append(f"Query timeout must be a positive number: {self.query_timeout_seconds}")

        if self.order_store not in ORDER_STORES:
            errors.append(f"Invalid order store: {self.order_store}. Must be one of: {list(ORDER_STORES)}")

        if self.order_store == "json" and not self.orders_file:
            errors.append("ORDERS_FILE is required for the json order store")

        if self.order_store == "firestore" and not self.firestore_collection:
            errors.append("FIRESTORE_COLLECTION is required for the firestore order store")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.validate()
    return _settings


def reload_settings() -> Settings:
    """
    Reload settings from environment variables.

    Returns:
        New settings instance
    """
    global _settings
    _settings = Settings()
    _settings.validate()
    return _settings
