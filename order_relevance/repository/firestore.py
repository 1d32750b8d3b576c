"""
Firestore order repository.

Orders are documents in one Firestore collection. Firestore stores offer
and consideration arrays as index-keyed objects; Order.from_document reads
either shape.
"""

import logging
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from ..core.errors import RepositoryUnavailable
from ..core.models import Order
from .base import OrderRepository

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"


def service_account_info(project_id: str, client_email: str, private_key: str) -> Dict[str, Any]:
    """
    Build service account info from environment-style values.

    Private keys kept in environment variables usually have escaped
    newlines; they are restored here.
    """
    return {
        "type": "service_account",
        "project_id": project_id,
        "client_email": client_email,
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": TOKEN_URI,
    }


def create_firestore_client(account_info: Optional[Dict[str, Any]] = None):
    """
    Get a Firestore client, initializing the default Firebase app once.

    Without account info the app uses application default credentials.
    """
    try:
        app = firebase_admin.get_app()
    except ValueError:
        if account_info:
            app = firebase_admin.initialize_app(credentials.Certificate(account_info))
        else:
            app = firebase_admin.initialize_app()
        logger.info("Initialized Firebase app")
    return firestore.client(app)


class FirestoreOrderRepository(OrderRepository):
    """Order repository reading a whole Firestore collection per fetch."""

    def __init__(self, collection: str = "orders", client: Any = None, account_info: Optional[Dict[str, Any]] = None):
        """
        Initialize the repository.

        Args:
            collection: Name of the order collection
            client: Firestore client (created from account_info when omitted)
            account_info: Service account info for the Firebase app
        """
        self.collection = collection
        self._client = client
        self._account_info = account_info

    def describe(self) -> str:
        return f"firestore:{self.collection}"

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = create_firestore_client(self._account_info)
            except Exception as e:
                raise RepositoryUnavailable(f"Cannot connect to Firestore: {e}") from e
        return self._client

    def fetch_all_orders(self) -> List[Order]:
        try:
            snapshots = self.client.collection(self.collection).get()
        except RepositoryUnavailable:
            raise
        except Exception as e:
            raise RepositoryUnavailable(f"Cannot read Firestore collection '{self.collection}': {e}") from e

        orders = [Order.from_document(snapshot.id, snapshot.to_dict()) for snapshot in snapshots]
        logger.debug(f"Fetched {len(orders)} orders from Firestore collection '{self.collection}'")
        return orders
