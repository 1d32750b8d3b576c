"""
Related orders service.

This module answers "which stored orders reference a token this wallet
holds". The balance snapshot and the order fetch run concurrently under one
query deadline; the matcher runs once both have completed.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..chain.reader import CachingTokenReader, Web3TokenReader, build_rpc_url
from ..repository import (
    FirestoreOrderRepository,
    InMemoryOrderRepository,
    JsonFileOrderRepository,
    OrderRepository,
    service_account_info,
)
from ..utils.logger import RelevanceLogger
from ..utils.performance import QueryMetrics, get_query_metrics
from .addresses import is_valid_address
from .context import QueryContext
from .errors import InvalidAddress, MalformedOrder, QueryAborted, RepositoryUnavailable
from .matcher import RelevanceMatcher
from .models import Order, RelevantOrder
from .registry import ContractRegistry, load_registry, load_registry_file
from .snapshotter import BalanceSnapshotter, SnapshotResult

logger = logging.getLogger(__name__)


@dataclass
class RelatedOrdersResult:
    """Outcome of one relevance query."""

    network: str
    wallet_address: str
    relevant: List[RelevantOrder] = field(default_factory=list)
    snapshot: Optional[SnapshotResult] = None
    malformed: List[MalformedOrder] = field(default_factory=list)
    orders_scanned: int = 0

    @property
    def partial(self) -> bool:
        """True when some contracts could not be queried."""
        return self.snapshot is not None and self.snapshot.partial

    @property
    def failed_contracts(self) -> List[str]:
        return self.snapshot.failed_contracts if self.snapshot else []

    def orders_payload(self) -> List[Dict[str, Any]]:
        """Relevant orders as stored documents with their ids attached."""
        return [relevant.to_dict() for relevant in self.relevant]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wallet": self.wallet_address,
            "network": self.network,
            "orders": self.orders_payload(),
            "holdings": [holding.to_dict() for holding in self.snapshot.holdings] if self.snapshot else [],
            "failed_contracts": [failure.to_dict() for failure in self.snapshot.failures] if self.snapshot else [],
            "malformed_orders": [error.to_dict() for error in self.malformed],
            "orders_scanned": self.orders_scanned,
            "partial": self.partial,
        }


class RelatedOrdersService:
    """
    Orchestrates the snapshotter, the order repository and the matcher.

    Holds no per-query state; concurrent queries share only the worker
    pools, the metadata cache and the query metrics.
    """

    def __init__(
        self,
        registry: ContractRegistry,
        snapshotter: BalanceSnapshotter,
        repository: OrderRepository,
        network: str,
        matcher: Optional[RelevanceMatcher] = None,
        query_timeout: Optional[float] = None,
        metrics: Optional[QueryMetrics] = None,
        process_stats: bool = False,
        fetch_workers: int = 4,
    ):
        """
        Initialize the service.

        Args:
            registry: Contract whitelist
            snapshotter: Balance snapshotter for the registry
            repository: Order store reader
            network: Network to query
            matcher: Relevance matcher (default instance when omitted)
            query_timeout: Default per-query deadline in seconds
            metrics: Stage latencies and counters (a private instance when omitted)
            process_stats: Include process resource usage in statistics
            fetch_workers: Concurrent order fetches allowed across queries
        """
        self.registry = registry
        self.snapshotter = snapshotter
        self.repository = repository
        self.network = network
        self.matcher = matcher or RelevanceMatcher()
        self.query_timeout = query_timeout
        self.metrics = metrics or QueryMetrics()
        self.process_stats = process_stats
        self.events = RelevanceLogger()
        self._fetch_executor = ThreadPoolExecutor(max_workers=fetch_workers, thread_name_prefix="orders")

        logger.info(f"Related orders service initialized for {network} using {repository.describe()}")

    @classmethod
    def from_settings(cls, settings) -> 'RelatedOrdersService':
        """Build the service and its collaborators from configuration."""
        if settings.contract_registry_file:
            registry = load_registry_file(settings.contract_registry_file)
        else:
            registry = load_registry()

        if not registry.contracts(settings.network):
            logger.warning(f"Contract registry has no entries for network '{settings.network}'")

        rpc_url = build_rpc_url(settings.network, settings.alchemy_key, settings.rpc_url)
        reader = CachingTokenReader(Web3TokenReader.from_url(rpc_url, timeout=settings.rpc_timeout_seconds))
        snapshotter = BalanceSnapshotter(
            registry,
            reader,
            max_workers=settings.rpc_max_workers,
            max_enumeration=settings.max_enumeration,
        )

        return cls(
            registry=registry,
            snapshotter=snapshotter,
            repository=create_repository(settings),
            network=settings.network,
            query_timeout=settings.query_timeout_seconds,
            metrics=get_query_metrics(),
            process_stats=settings.enable_performance_monitoring,
        )

    def new_context(self, timeout: Optional[float] = None) -> QueryContext:
        return QueryContext(timeout=timeout if timeout is not None else self.query_timeout)

    def _fetch_orders(self) -> List[Order]:
        with self.metrics.time_stage("fetch_orders"):
            return self.repository.fetch_all_orders()

    def holdings(self, wallet_address: Any, context: Optional[QueryContext] = None) -> SnapshotResult:
        """
        Snapshot a wallet's whitelisted holdings without matching.

        Raises:
            InvalidAddress: If wallet_address is malformed
            QueryAborted: On deadline expiry or cancellation
        """
        context = context or self.new_context()
        with self.metrics.time_stage("snapshot"):
            snapshot = self.snapshotter.snapshot(self.network, wallet_address, context)
        self._record_failures(snapshot)
        return snapshot

    def related_orders(self, wallet_address: Any, context: Optional[QueryContext] = None) -> RelatedOrdersResult:
        """
        Find the stored orders relevant to a wallet.

        Args:
            wallet_address: Wallet to query
            context: Deadline/cancellation (service default deadline when omitted)

        Returns:
            RelatedOrdersResult with relevant orders and partial-result details

        Raises:
            InvalidAddress: If wallet_address is malformed (no RPC or store calls are made)
            RepositoryUnavailable: If the order store cannot be read
            QueryTimeout: If the deadline expires
            QueryCancelled: If the caller cancels
        """
        if not is_valid_address(wallet_address):
            raise InvalidAddress(wallet_address)

        context = context or self.new_context()
        started = time.perf_counter()
        self.events.log_query_start(wallet_address, self.network)
        self.metrics.count("queries")

        orders_future = self._fetch_executor.submit(self._fetch_orders)
        try:
            snapshot = self.holdings(wallet_address, context)
            context.wait_all([orders_future])
        except QueryAborted as e:
            orders_future.cancel()
            self.metrics.count("aborted_queries")
            self.events.log_query_aborted(wallet_address, str(e))
            raise
        except Exception:
            orders_future.cancel()
            raise

        try:
            orders = orders_future.result()
        except RepositoryUnavailable as e:
            self.metrics.count("repository_failures")
            self.events.log_error("repository", str(e), wallet_address)
            raise

        with self.metrics.time_stage("match"):
            report = self.matcher.match_report(snapshot.holdings, orders)

        for error in report.malformed:
            self.events.log_malformed_order(error.order_id, error.reason)
        self.metrics.count("malformed_orders", len(report.malformed))

        result = RelatedOrdersResult(
            network=self.network,
            wallet_address=wallet_address,
            relevant=report.relevant,
            snapshot=snapshot,
            malformed=report.malformed,
            orders_scanned=report.orders_scanned,
        )

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.metrics.record_stage("query", elapsed_ms)
        self.events.log_performance_metric("query", elapsed_ms)
        self.events.log_query_result(
            wallet_address,
            holdings=len(snapshot.holdings),
            orders_scanned=report.orders_scanned,
            relevant=len(report.relevant),
            partial=result.partial,
        )
        return result

    def _record_failures(self, snapshot: SnapshotResult) -> None:
        for failure in snapshot.failures:
            self.events.log_contract_failure(failure.contract_address, failure.method, failure.reason)
        self.metrics.count("contract_failures", len(snapshot.failures))

    def get_statistics(self) -> Dict[str, Any]:
        """Service statistics for the API."""
        stats: Dict[str, Any] = {
            "network": self.network,
            "repository": self.repository.describe(),
            "whitelisted_contracts": len(self.registry.contracts(self.network)),
        }
        stats.update(self.metrics.summary())
        if self.process_stats:
            stats["process"] = self.metrics.process_stats()
        return stats

    def close(self) -> None:
        self._fetch_executor.shutdown(wait=False, cancel_futures=True)
        self.snapshotter.close()


def create_repository(settings) -> OrderRepository:
    """Build the order repository selected by ORDER_STORE."""
    if settings.order_store == "memory":
        return InMemoryOrderRepository()

    if settings.order_store == "firestore":
        account_info = None
        if settings.has_firebase_credentials:
            account_info = service_account_info(
                settings.firebase_project_id,
                settings.firebase_client_email,
                settings.firebase_private_key,
            )
        return FirestoreOrderRepository(settings.firestore_collection, account_info=account_info)

    return JsonFileOrderRepository(settings.orders_file)
