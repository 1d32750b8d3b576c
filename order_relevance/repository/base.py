"""
Order repository read contract.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Mapping, Tuple

from ..core.models import Order, orders_from_documents

# Keys a listed document may carry its order id under, in priority order
ID_KEYS = ("_id", "id")


class OrderRepository(ABC):
    """
    Read-only access to the stored order book.

    The whole order set is fetched once per query and treated as an
    immutable snapshot for that query.
    """

    @abstractmethod
    def fetch_all_orders(self) -> List[Order]:
        """
        Fetch every stored order.

        Raises:
            RepositoryUnavailable: If the store cannot be reached or read
        """

    def describe(self) -> str:
        return type(self).__name__


def iter_documents(data: Any) -> Iterable[Tuple[Any, Any]]:
    """
    Yield (order_id, document) pairs from an exported order collection.

    Accepts an object keyed by order id, or a list of documents carrying
    their id under `_id` or `id`; that key is removed from the document.

    Raises:
        ValueError: If the collection has neither shape or a listed
            document has no id
    """
    if isinstance(data, Mapping):
        return list(data.items())

    if isinstance(data, (list, tuple)):
        pairs = []
        for position, document in enumerate(data):
            if not isinstance(document, Mapping):
                raise ValueError(f"Order at position {position} is not an object")
            id_key = next((key for key in ID_KEYS if document.get(key) is not None), None)
            if id_key is None:
                raise ValueError(f"Order at position {position} has no '_id' or 'id'")
            body = {key: value for key, value in document.items() if key != id_key}
            pairs.append((document[id_key], body))
        return pairs

    raise ValueError(f"Order collection must be an object or a list, got: {type(data).__name__}")


def orders_from_collection(data: Any) -> List[Order]:
    return orders_from_documents(iter_documents(data))
