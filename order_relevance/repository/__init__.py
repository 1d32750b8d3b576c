"""
Order repository adapters.

This module provides read-only access to stored orders from memory, a JSON
export, or a Firestore collection.
"""

from .base import OrderRepository, iter_documents, orders_from_collection
from .memory import InMemoryOrderRepository
from .json_file import JsonFileOrderRepository
from .firestore import FirestoreOrderRepository, service_account_info

__all__ = [
    "OrderRepository",
    "iter_documents",
    "orders_from_collection",
    "InMemoryOrderRepository",
    "JsonFileOrderRepository",
    "FirestoreOrderRepository",
    "service_account_info",
]
