"""
Load testing and benchmarking for the relevance matcher.

This module compares the interest-set matcher with the nested-loop
reference on generated order books of increasing size.
"""

import random
import statistics
from typing import Any, Dict, List

from order_relevance.core.matcher import RelevanceMatcher, naive_match
from order_relevance.core.models import Order, OrderItem, TokenHolding
from order_relevance.core.token_types import ItemType, TokenStandard
from order_relevance.utils.performance import get_query_metrics, time_calls


def random_address() -> str:
    return "0x" + "".join(random.choice("0123456789abcdef") for _ in range(40))


class LoadTester:
    """
    Load testing utility for the relevance matcher.
    """

    def __init__(self, contract_count: int = 50, held_count: int = 10):
        """
        Initialize load tester.

        Args:
            contract_count: Size of the contract universe orders draw from
            held_count: How many of those contracts the wallet holds
        """
        self.matcher = RelevanceMatcher()
        self.metrics = get_query_metrics()
        self.contracts = [random_address() for _ in range(contract_count)]
        self.holdings = self.generate_holdings(held_count)
        self.results: List[Dict[str, Any]] = []

    def generate_holdings(self, count: int) -> List[TokenHolding]:
        holdings = []
        for address in random.sample(self.contracts, count):
            if random.random() < 0.5:
                holdings.append(TokenHolding(
                    standard=TokenStandard.FUNGIBLE,
                    contract_address=address,
                    balance=random.randint(1, 10 ** 18),
                    decimals=18,
                ))
            else:
                ids = random.sample(range(10000), random.randint(1, 5))
                holdings.append(TokenHolding(
                    standard=TokenStandard.NON_FUNGIBLE,
                    contract_address=address,
                    balance=len(ids),
                    token_ids=frozenset(ids),
                ))
        return holdings

    def generate_random_orders(self, count: int, items_per_side: int = 3) -> List[Order]:
        """
        Generate random orders for testing.

        Args:
            count: Number of orders to generate
            items_per_side: Maximum items in each of offer and consideration

        Returns:
            List of random orders
        """
        def item() -> OrderItem:
            return OrderItem(
                item_type=random.choice([ItemType.ERC20, ItemType.ERC721]),
                token_address=random.choice(self.contracts),
                identifier_or_criteria=random.randint(0, 10000),
                amount=random.randint(1, 100),
            )

        return [
            Order(
                order_id=f"load_test_{i}",
                offer_items=[item() for _ in range(random.randint(1, items_per_side))],
                consideration_items=[item() for _ in range(random.randint(1, items_per_side))],
            )
            for i in range(count)
        ]

    def benchmark_matching(self, order_count: int, iterations: int = 20) -> Dict[str, Any]:
        """
        Benchmark both matchers on one generated order book.

        Args:
            order_count: Number of orders in the book
            iterations: Timed runs per matcher

        Returns:
            Performance metrics
        """
        print(f"Benchmarking matching against {order_count} orders...")

        orders = self.generate_random_orders(order_count)

        fast = time_calls(self.matcher.match, self.holdings, orders, iterations=iterations)
        naive = time_calls(naive_match, self.holdings, orders, iterations=iterations)

        matched = {r.order_id for r in self.matcher.match(self.holdings, orders)}
        reference = {r.order_id for r in naive_match(self.holdings, orders)}

        process_stats = self.metrics.process_stats()

        results = {
            "order_count": order_count,
            "relevant_orders": len(matched),
            "results_agree": matched == reference,
            "match_avg_ms": fast["avg"],
            "match_p99_ms": fast["p99"],
            "naive_avg_ms": naive["avg"],
            "speedup": naive["avg"] / fast["avg"] if fast["avg"] else 0,
            "memory_usage_mb": process_stats.get("memory_rss_mb", 0),
        }

        self.results.append(results)
        return results

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of all benchmark results."""
        if not self.results:
            return {"message": "No benchmark results available"}

        speedups = [r["speedup"] for r in self.results]

        return {
            "total_benchmarks": len(self.results),
            "all_agree": all(r["results_agree"] for r in self.results),
            "speedup": {
                "min": min(speedups),
                "max": max(speedups),
                "avg": statistics.mean(speedups),
            },
            "results": self.results
        }


def run_benchmarks():
    """Run matcher benchmarks."""
    print("Starting relevance matcher benchmarks...")

    tester = LoadTester()

    print("\n=== Matching Benchmarks ===")
    for order_count in (1000, 5000, 20000):
        result = tester.benchmark_matching(order_count)
        print(f"  {order_count} orders: match {result['match_avg_ms']:.2f}ms, "
              f"naive {result['naive_avg_ms']:.2f}ms, relevant {result['relevant_orders']}")

    print("\n=== Benchmark Summary ===")
    summary = tester.get_summary()
    print(f"Total benchmarks: {summary['total_benchmarks']}")
    print(f"Results agree with reference: {summary['all_agree']}")
    print(f"Speedup - Min: {summary['speedup']['min']:.2f}x, "
          f"Max: {summary['speedup']['max']:.2f}x, "
          f"Avg: {summary['speedup']['avg']:.2f}x")

    return summary


if __name__ == "__main__":
    run_benchmarks()
