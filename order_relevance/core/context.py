"""
Deadline and cancellation handling for relevance queries.

A QueryContext travels with one query. Every wait on outstanding work goes
through it, so an expired deadline or a caller cancellation stops the query
instead of producing a partial result.
"""

import logging
import math
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, wait
from typing import Iterable, List, Optional

from .errors import QueryCancelled, QueryTimeout

logger = logging.getLogger(__name__)

# Upper bound on a single wait so cancellation is noticed promptly
POLL_INTERVAL_SECONDS = 0.05


class QueryContext:
    """
    Deadline and cancellation token for a single query.
    """

    def __init__(self, timeout: Optional[float] = None, cancel_event: Optional[threading.Event] = None):
        """
        Initialize the context.

        Args:
            timeout: Seconds until the query deadline (None for no deadline)
            cancel_event: Event the caller sets to cancel the query
        """
        if timeout is not None and (not math.isfinite(timeout) or timeout <= 0):
            raise ValueError(f"Timeout must be a positive finite number, got: {timeout}")

        self.timeout = timeout
        self.deadline = time.monotonic() + timeout if timeout is not None else None
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        """
        Raise if the query should stop.

        Raises:
            QueryCancelled: If the caller cancelled the query
            QueryTimeout: If the deadline has passed
        """
        if self.cancelled:
            raise QueryCancelled("Query cancelled by caller")
        if self.expired:
            raise QueryTimeout(f"Query exceeded its {self.timeout}s deadline")

    def wait_all(self, futures: Iterable[Future]) -> List[Future]:
        """
        Wait for every future to complete.

        On cancellation or deadline expiry, futures that have not started are
        cancelled, running ones are abandoned, and the matching error is
        raised.

        Returns:
            The futures, all completed
        """
        futures = list(futures)
        pending = set(futures)

        try:
            while pending:
                self.check()
                remaining = self.remaining()
                step = POLL_INTERVAL_SECONDS if remaining is None else min(POLL_INTERVAL_SECONDS, remaining)
                _, pending = wait(pending, timeout=step, return_when=FIRST_COMPLETED)
        except (QueryCancelled, QueryTimeout):
            for future in pending:
                future.cancel()
            logger.warning(f"Abandoning {len(pending)} outstanding calls")
            raise

        return futures
