"""
JSON file order repository.

Reads an exported order collection from disk on every fetch, so edits to
the file are picked up without a restart.
"""

import json
import logging
from typing import List

from ..core.errors import RepositoryUnavailable
from ..core.models import Order
from .base import OrderRepository, orders_from_collection

logger = logging.getLogger(__name__)


class JsonFileOrderRepository(OrderRepository):
    """Order repository backed by a JSON export of the order collection."""

    def __init__(self, path: str):
        self.path = path

    def describe(self) -> str:
        return f"json:{self.path}"

    def fetch_all_orders(self) -> List[Order]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise RepositoryUnavailable(f"Cannot read orders from {self.path}: {e}") from e

        try:
            orders = orders_from_collection(data)
        except ValueError as e:
            raise RepositoryUnavailable(f"Invalid order collection in {self.path}: {e}") from e

        logger.debug(f"Fetched {len(orders)} orders from {self.path}")
        return orders
