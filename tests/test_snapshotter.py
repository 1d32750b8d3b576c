"""
Tests for the balance snapshotter.

This module tests holdings construction, per-contract failure isolation,
metadata caching and deadline/cancellation handling.
"""

import threading
import time
import unittest

from order_relevance.chain.reader import CachingTokenReader
from order_relevance.core.context import QueryContext
from order_relevance.core.errors import ContractQueryFailure, InvalidAddress, QueryCancelled, QueryTimeout
from order_relevance.core.snapshotter import BalanceSnapshotter
from order_relevance.core.token_types import TokenStandard

from tests.support import AAA, BBB, CCC, NETWORK, WALLET, FakeTokenReader, make_registry


class TestBalanceSnapshotter(unittest.TestCase):
    """Test cases for the balance snapshotter."""

    def setUp(self):
        self.registry = make_registry()
        self.snapshotters = []

    def tearDown(self):
        for snapshotter in self.snapshotters:
            snapshotter.close()

    def make_snapshotter(self, reader, max_workers=4):
        snapshotter = BalanceSnapshotter(self.registry, reader, max_workers=max_workers)
        self.snapshotters.append(snapshotter)
        return snapshotter

    def test_fungible_holding(self):
        reader = FakeTokenReader(balances={AAA: 5}, decimals={AAA: 6}, symbols={AAA: "AAA"})

        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET)

        self.assertFalse(result.partial)
        self.assertEqual(len(result.holdings), 1)
        holding = result.holdings[0]
        self.assertEqual(holding.standard, TokenStandard.FUNGIBLE)
        self.assertEqual(holding.contract_address.lower(), AAA)
        self.assertEqual(holding.balance, 5)
        self.assertEqual(holding.decimals, 6)
        self.assertEqual(holding.symbol, "AAA")

    def test_non_fungible_enumeration(self):
        reader = FakeTokenReader(balances={BBB: 2}, token_ids={BBB: [3, 7]})

        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET)

        holding = result.holdings[0]
        self.assertEqual(holding.standard, TokenStandard.NON_FUNGIBLE)
        self.assertEqual(holding.token_ids, frozenset({3, 7}))
        self.assertIsNone(holding.decimals)
        self.assertEqual(reader.count("tokenOfOwnerByIndex", BBB), 2)
        self.assertEqual(reader.count("decimals"), 0)

    def test_zero_balance_skips_metadata(self):
        """Test contracts with zero balance make only the balance call."""
        reader = FakeTokenReader(balances={AAA: 0, BBB: 0, CCC: 0})

        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET)

        self.assertEqual(result.holdings, [])
        self.assertFalse(result.partial)
        self.assertEqual(reader.count(), 3)
        self.assertEqual(reader.count("balanceOf"), 3)

    def test_holdings_follow_registry_order(self):
        reader = FakeTokenReader(balances={AAA: 1, BBB: 1, CCC: 1}, token_ids={BBB: [9]})

        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET)

        self.assertEqual([h.contract_address.lower() for h in result.holdings], [AAA, CCC, BBB])

    def test_failed_contract_is_isolated(self):
        """Test one failing contract is omitted while the others succeed."""
        reader = FakeTokenReader(
            balances={AAA: 5, BBB: 1, CCC: 2},
            token_ids={BBB: [1]},
            failures={(AAA, "balanceOf"): "execution reverted"},
        )

        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET)

        self.assertTrue(result.partial)
        self.assertEqual([a.lower() for a in result.failed_contracts], [AAA])
        self.assertEqual(result.failures[0].method, "balanceOf")
        self.assertEqual(result.failures[0].reason, "execution reverted")
        self.assertEqual({h.contract_address.lower() for h in result.holdings}, {BBB, CCC})

    def test_unexpected_reader_error_is_captured(self):
        reader = FakeTokenReader(
            balances={CCC: 2},
            failures={(CCC, "decimals"): RuntimeError("connection reset")},
        )

        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET)

        self.assertEqual(result.holdings, [])
        failure = result.failures[0]
        self.assertEqual(failure.contract_address.lower(), CCC)
        self.assertEqual(failure.reason, "connection reset")
        self.assertEqual(failure.symbol, "ccc")

    def test_enumeration_failure_omits_contract(self):
        reader = FakeTokenReader(
            balances={AAA: 1, BBB: 3},
            token_ids={BBB: [1, 2, 3]},
            failures={(BBB, "tokenOfOwnerByIndex"): "index out of bounds"},
        )

        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET)

        self.assertEqual([h.contract_address.lower() for h in result.holdings], [AAA])
        self.assertEqual(result.failures[0].method, "tokenOfOwnerByIndex")

    def test_duplicate_token_ids_are_a_failure(self):
        """Test an enumeration yielding repeated ids does not produce a holding."""
        reader = FakeTokenReader(balances={BBB: 2}, token_ids={BBB: [4, 4]})

        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET)

        self.assertEqual(result.holdings, [])
        self.assertEqual([a.lower() for a in result.failed_contracts], [BBB])

    def test_huge_non_fungible_balance_is_a_failure(self):
        """Test a balance above the enumeration limit is recorded without enumerating."""
        reader = FakeTokenReader(balances={AAA: 5, BBB: 2 ** 256 - 1})

        started = time.monotonic()
        result = self.make_snapshotter(reader).snapshot(NETWORK, WALLET, QueryContext(timeout=0.5))

        self.assertLess(time.monotonic() - started, 3)
        self.assertEqual([h.contract_address.lower() for h in result.holdings], [AAA])
        self.assertEqual([a.lower() for a in result.failed_contracts], [BBB])
        self.assertIn("enumeration limit", result.failures[0].reason)
        self.assertEqual(reader.count("tokenOfOwnerByIndex"), 0)

    def test_enumeration_limit_is_configurable(self):
        reader = FakeTokenReader(balances={BBB: 3}, token_ids={BBB: [1, 2, 3]})
        snapshotter = BalanceSnapshotter(self.registry, reader, max_workers=2, max_enumeration=2)
        self.snapshotters.append(snapshotter)

        result = snapshotter.snapshot(NETWORK, WALLET)

        self.assertEqual(result.holdings, [])
        self.assertEqual(result.failures[0].method, "balanceOf")

        with self.assertRaises(ValueError):
            BalanceSnapshotter(self.registry, reader, max_enumeration=0)

    def test_deadline_checked_while_submitting_enumeration(self):
        """Test a large enumeration stops at the deadline instead of running to completion."""
        reader = FakeTokenReader(balances={BBB: 500000}, delay=0.001)
        snapshotter = BalanceSnapshotter(self.registry, reader, max_workers=2, max_enumeration=10 ** 6)
        self.snapshotters.append(snapshotter)

        started = time.monotonic()
        with self.assertRaises(QueryTimeout):
            snapshotter.snapshot(NETWORK, WALLET, QueryContext(timeout=0.3))

        self.assertLess(time.monotonic() - started, 3)

    def test_invalid_wallet_makes_no_calls(self):
        reader = FakeTokenReader(balances={AAA: 5})
        snapshotter = self.make_snapshotter(reader)

        for wallet in ("0x1234", "", None, [WALLET], "0x" + "zz" * 20):
            with self.assertRaises(InvalidAddress):
                snapshotter.snapshot(NETWORK, wallet)

        self.assertEqual(reader.calls, [])

    def test_unknown_network_is_empty(self):
        reader = FakeTokenReader(balances={AAA: 5})

        result = self.make_snapshotter(reader).snapshot("nowhere", WALLET)

        self.assertEqual(result.holdings, [])
        self.assertEqual(reader.calls, [])

    def test_single_worker_completes(self):
        """Test enumeration does not deadlock when the pool has one worker."""
        reader = FakeTokenReader(balances={BBB: 5}, token_ids={BBB: [1, 2, 3, 4, 5]})

        result = self.make_snapshotter(reader, max_workers=1).snapshot(
            NETWORK, WALLET, QueryContext(timeout=5)
        )

        self.assertEqual(result.holdings[0].balance, 5)

    def test_timeout_raises(self):
        reader = FakeTokenReader(balances={AAA: 1}, delay=0.5)
        snapshotter = self.make_snapshotter(reader)

        started = time.monotonic()
        with self.assertRaises(QueryTimeout):
            snapshotter.snapshot(NETWORK, WALLET, QueryContext(timeout=0.1))

        self.assertLess(time.monotonic() - started, 0.45)

    def test_cancellation_raises(self):
        reader = FakeTokenReader(balances={AAA: 1}, delay=0.5)
        snapshotter = self.make_snapshotter(reader)
        context = QueryContext()

        threading.Timer(0.05, context.cancel).start()
        with self.assertRaises(QueryCancelled):
            snapshotter.snapshot(NETWORK, WALLET, context)

    def test_already_cancelled_makes_no_calls(self):
        reader = FakeTokenReader(balances={AAA: 1})
        context = QueryContext()
        context.cancel()

        with self.assertRaises(QueryCancelled):
            self.make_snapshotter(reader).snapshot(NETWORK, WALLET, context)

        self.assertEqual(reader.calls, [])

    def test_invalid_worker_count(self):
        with self.assertRaises(ValueError):
            BalanceSnapshotter(self.registry, FakeTokenReader(), max_workers=0)


class TestCachingTokenReader(unittest.TestCase):
    """Test cases for metadata caching."""

    def setUp(self):
        self.registry = make_registry()

    def test_metadata_is_cached_across_snapshots(self):
        inner = FakeTokenReader(balances={AAA: 5, CCC: 7})
        reader = CachingTokenReader(inner)
        snapshotter = BalanceSnapshotter(self.registry, reader, max_workers=2)
        self.addCleanup(snapshotter.close)

        snapshotter.snapshot(NETWORK, WALLET)
        snapshotter.snapshot(NETWORK, WALLET)

        self.assertEqual(inner.count("balanceOf"), 6)
        self.assertEqual(inner.count("decimals"), 2)
        self.assertEqual(inner.count("symbol"), 2)
        self.assertEqual(reader.hits, 4)
        self.assertEqual(reader.misses, 4)

    def test_failures_are_not_cached(self):
        contract = self.registry.contracts(NETWORK)[0]
        inner = FakeTokenReader(failures={(AAA, "decimals"): "rate limited"})
        reader = CachingTokenReader(inner)

        for _ in range(2):
            with self.assertRaises(ContractQueryFailure):
                reader.decimals(contract)

        inner.failures.clear()
        self.assertEqual(reader.decimals(contract), 18)
        self.assertEqual(inner.count("decimals"), 3)

    def test_clear(self):
        contract = self.registry.contracts(NETWORK)[0]
        inner = FakeTokenReader()
        reader = CachingTokenReader(inner)

        reader.symbol(contract)
        reader.clear()
        reader.symbol(contract)

        self.assertEqual(inner.count("symbol"), 2)


if __name__ == '__main__':
    unittest.main()
