"""
In-memory order repository.
"""

import copy
import logging
import threading
from typing import Any, Dict, List, Optional

from ..core.models import Order
from .base import OrderRepository, iter_documents

logger = logging.getLogger(__name__)


class InMemoryOrderRepository(OrderRepository):
    """
    Order repository holding stored documents in a dict.

    Each fetch returns orders built from deep copies, so callers never share
    mutable documents with the repository.
    """

    def __init__(self, documents: Optional[Any] = None):
        """
        Initialize the repository.

        Args:
            documents: Object keyed by order id, or list of documents with `_id`/`id`
        """
        self._documents: Dict[str, Any] = {}
        self._lock = threading.Lock()
        for order_id, document in iter_documents(documents or {}):
            self._documents[str(order_id)] = document

    def add_document(self, order_id: str, document: Dict[str, Any]) -> None:
        with self._lock:
            self._documents[str(order_id)] = document

    def fetch_all_orders(self) -> List[Order]:
        with self._lock:
            documents = copy.deepcopy(self._documents)
        logger.debug(f"Fetched {len(documents)} orders from memory")
        return [Order.from_document(order_id, document) for order_id, document in documents.items()]

    def __len__(self) -> int:
        return len(self._documents)
