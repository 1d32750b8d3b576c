"""
Relevance matcher.

This module decides which stored orders reference a token the wallet holds.
Relevance is defined at contract-address granularity: an order is relevant
when any of its offer or consideration items names a contract in the
wallet's interest set, whatever the item's token id or amount.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Sequence

from .addresses import normalize_address
from .errors import MalformedOrder
from .models import Order, RelevantOrder, TokenHolding

logger = logging.getLogger(__name__)


@dataclass
class MatchReport:
    """Relevant orders plus the orders skipped as malformed."""

    relevant: List[RelevantOrder] = field(default_factory=list)
    malformed: List[MalformedOrder] = field(default_factory=list)
    orders_scanned: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orders": [relevant.to_dict() for relevant in self.relevant],
            "malformed_orders": [error.to_dict() for error in self.malformed],
            "orders_scanned": self.orders_scanned,
        }


def interest_set(holdings: Iterable[TokenHolding]) -> FrozenSet[str]:
    """Normalized contract addresses the wallet holds a nonzero balance of."""
    return frozenset(normalize_address(holding.contract_address) for holding in holdings)


class RelevanceMatcher:
    """
    Matches wallet holdings against an order book.

    The matcher holds no state between calls; `match` is pure and total.
    """

    def match(self, holdings: Sequence[TokenHolding], orders: Sequence[Order]) -> List[RelevantOrder]:
        """
        Find the orders that reference any held contract.

        Args:
            holdings: Wallet holdings from the balance snapshotter
            orders: Every stored order

        Returns:
            Relevant orders, each exactly once, in input order
        """
        return self.match_report(holdings, orders).relevant

    def match_report(self, holdings: Sequence[TokenHolding], orders: Sequence[Order]) -> MatchReport:
        """
        Match holdings against orders, also reporting skipped orders.

        Each order's item addresses are tested against the interest set, so
        the cost is linear in holdings plus total order items.
        """
        report = MatchReport()
        interests = interest_set(holdings)
        seen = set()

        for order in orders:
            report.orders_scanned += 1

            if order.is_malformed:
                error = MalformedOrder(order.order_id, order.anomaly or "missing item lists")
                report.malformed.append(error)
                logger.warning(f"Skipping {error}")
                continue

            if order.anomaly:
                logger.debug(f"Order {order.order_id} has unreadable item fields: {order.anomaly}")

            if order.order_id in seen:
                continue

            if not interests or interests.isdisjoint(order.item_addresses()):
                continue

            seen.add(order.order_id)
            report.relevant.append(RelevantOrder(order_id=order.order_id, order=order))

        logger.debug(
            f"Matched {len(report.relevant)} of {report.orders_scanned} orders "
            f"against {len(interests)} held contracts"
        )
        return report


def naive_match(holdings: Sequence[TokenHolding], orders: Sequence[Order]) -> List[RelevantOrder]:
    """
    Nested-loop reference for `RelevanceMatcher.match`.

    Compares every holding with every item of every order. Each loop indexes
    its own sequence and an order is emitted at most once. Quadratic; kept for
    correctness checks and benchmarks only.
    """
    relevant: List[RelevantOrder] = []
    emitted = set()

    for order in orders:
        if order.is_malformed or order.order_id in emitted:
            continue

        matched = False
        for holding in holdings:
            held = normalize_address(holding.contract_address)
            for item in order.items:
                if item.address_key == held:
                    matched = True
                    break
            if matched:
                break

        if matched:
            emitted.add(order.order_id)
            relevant.append(RelevantOrder(order_id=order.order_id, order=order))

    return relevant
