"""
Balance snapshotter.

This module queries every whitelisted contract for a wallet's current
holdings. Contract queries are scattered over a bounded worker pool and
gathered before holdings are built; a failing contract is recorded and
skipped without affecting the others.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..chain.reader import TokenReader
from .addresses import is_valid_address
from .context import QueryContext
from .errors import ContractQueryFailure, InvalidAddress, QueryAborted
from .models import ContractDescriptor, TokenHolding
from .registry import ContractRegistry
from .token_types import TokenStandard

logger = logging.getLogger(__name__)

# Largest non-fungible balance enumerated id by id
MAX_ENUMERATION = 10000


@dataclass
class ContractProbe:
    """Balance and metadata of one contract, before token ids are known."""

    contract: ContractDescriptor
    balance: int
    symbol: str = ""
    decimals: Optional[int] = None


@dataclass
class SnapshotResult:
    """Holdings of one wallet plus the contracts that could not be queried."""

    network: str
    wallet_address: str
    holdings: List[TokenHolding] = field(default_factory=list)
    failures: List[ContractQueryFailure] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        """True when at least one contract was omitted because its query failed."""
        return bool(self.failures)

    @property
    def failed_contracts(self) -> List[str]:
        return [failure.contract_address for failure in self.failures]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": self.network,
            "wallet": self.wallet_address,
            "holdings": [holding.to_dict() for holding in self.holdings],
            "failed_contracts": [failure.to_dict() for failure in self.failures],
            "partial": self.partial,
        }


def _as_failure(contract: ContractDescriptor, method: str, error: Exception) -> ContractQueryFailure:
    if isinstance(error, ContractQueryFailure):
        return error
    return ContractQueryFailure(
        contract_address=contract.address,
        method=method,
        reason=str(error) or type(error).__name__,
        symbol=contract.symbol,
    )


class BalanceSnapshotter:
    """
    Produces TokenHolding records for a wallet across the whitelist.

    Queries run in two phases on a shared bounded pool: first balanceOf
    (plus metadata for nonzero balances) for every contract, then every
    tokenOfOwnerByIndex call for every held non-fungible contract. Pool
    tasks never wait on other pool tasks.
    """

    def __init__(
        self,
        registry: ContractRegistry,
        reader: TokenReader,
        max_workers: int = 8,
        executor: Optional[ThreadPoolExecutor] = None,
        max_enumeration: int = MAX_ENUMERATION,
    ):
        """
        Initialize the snapshotter.

        Args:
            registry: Contract whitelist
            reader: Chain reader for contract calls
            max_workers: Fan-out limit for concurrent RPC calls
            executor: Optional pool to use instead of creating one
            max_enumeration: Non-fungible balances above this are recorded
                as a failure instead of being enumerated
        """
        if max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got: {max_workers}")

        if max_enumeration <= 0:
            raise ValueError(f"max_enumeration must be positive, got: {max_enumeration}")

        self.registry = registry
        self.reader = reader
        self.max_workers = max_workers
        self.max_enumeration = max_enumeration
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="rpc"
        )

    def close(self) -> None:
        """Shut down the worker pool without waiting for abandoned calls."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def snapshot(self, network: str, wallet_address: Any, context: Optional[QueryContext] = None) -> SnapshotResult:
        """
        Query every whitelisted contract on a network for a wallet's holdings.

        Args:
            network: Network name in the registry
            wallet_address: Wallet to snapshot
            context: Deadline/cancellation for the query

        Returns:
            SnapshotResult with holdings in registry order and per-contract failures

        Raises:
            InvalidAddress: If wallet_address is not a well-formed address
            QueryTimeout: If the deadline expires before all calls complete
            QueryCancelled: If the caller cancels the query
        """
        if not is_valid_address(wallet_address):
            raise InvalidAddress(wallet_address)

        context = context or QueryContext()
        context.check()

        contracts = self.registry.contracts(network)
        result = SnapshotResult(network=network, wallet_address=wallet_address)

        if not contracts:
            logger.warning(f"No whitelisted contracts for network '{network}'")
            return result

        probes, failures = self._probe_all(contracts, wallet_address, context)
        token_ids, enum_failures = self._enumerate_all(probes, wallet_address, context)
        failures.update(enum_failures)

        for contract in contracts:
            if contract.address in failures:
                result.failures.append(failures[contract.address])
                continue

            probe = probes.get(contract.address)
            if probe is None:
                continue

            try:
                result.holdings.append(self._build_holding(probe, token_ids.get(contract.address)))
            except ValueError as e:
                failure = _as_failure(contract, "tokenOfOwnerByIndex", e)
                result.failures.append(failure)

        for failure in result.failures:
            logger.warning(f"Omitting {failure.symbol or failure.contract_address}: {failure}")

        logger.info(
            f"Snapshot of {wallet_address} on {network}: {len(result.holdings)} holdings, "
            f"{len(result.failures)} failed contracts"
        )
        return result

    def _probe(self, contract: ContractDescriptor, wallet_address: str) -> ContractProbe:
        balance = self.reader.balance_of(contract, wallet_address)
        if balance == 0:
            return ContractProbe(contract=contract, balance=0)

        if contract.standard == TokenStandard.NON_FUNGIBLE and balance > self.max_enumeration:
            raise ContractQueryFailure(
                contract_address=contract.address,
                method="balanceOf",
                reason=f"balance {balance} exceeds enumeration limit {self.max_enumeration}",
                symbol=contract.symbol,
            )

        symbol = self.reader.symbol(contract)
        decimals = None
        if contract.standard == TokenStandard.FUNGIBLE:
            decimals = self.reader.decimals(contract)

        return ContractProbe(contract=contract, balance=balance, symbol=symbol, decimals=decimals)

    def _probe_all(
        self, contracts: List[ContractDescriptor], wallet_address: str, context: QueryContext
    ) -> Tuple[Dict[str, ContractProbe], Dict[str, ContractQueryFailure]]:
        submitted: List[Tuple[ContractDescriptor, Future]] = [
            (contract, self._executor.submit(self._probe, contract, wallet_address))
            for contract in contracts
        ]
        context.wait_all(future for _, future in submitted)

        probes: Dict[str, ContractProbe] = {}
        failures: Dict[str, ContractQueryFailure] = {}

        for contract, future in submitted:
            try:
                probe = future.result()
            except Exception as e:
                failures[contract.address] = _as_failure(contract, "balanceOf", e)
                continue

            if probe.balance > 0:
                probes[contract.address] = probe

        return probes, failures

    def _enumerate_all(
        self, probes: Dict[str, ContractProbe], wallet_address: str, context: QueryContext
    ) -> Tuple[Dict[str, List[int]], Dict[str, ContractQueryFailure]]:
        submitted: Dict[str, List[Future]] = {}

        try:
            for address, probe in probes.items():
                if probe.contract.standard != TokenStandard.NON_FUNGIBLE:
                    continue
                futures = submitted.setdefault(address, [])
                for index in range(probe.balance):
                    context.check()
                    futures.append(self._executor.submit(
                        self.reader.token_of_owner_by_index, probe.contract, wallet_address, index
                    ))
        except QueryAborted:
            for futures in submitted.values():
                for future in futures:
                    future.cancel()
            raise

        context.wait_all(future for futures in submitted.values() for future in futures)

        token_ids: Dict[str, List[int]] = {}
        failures: Dict[str, ContractQueryFailure] = {}

        for address, futures in submitted.items():
            try:
                token_ids[address] = [future.result() for future in futures]
            except Exception as e:
                failures[address] = _as_failure(probes[address].contract, "tokenOfOwnerByIndex", e)

        return token_ids, failures

    @staticmethod
    def _build_holding(probe: ContractProbe, token_ids: Optional[List[int]]) -> TokenHolding:
        contract = probe.contract
        if contract.standard == TokenStandard.FUNGIBLE:
            return TokenHolding(
                standard=contract.standard,
                contract_address=contract.address,
                balance=probe.balance,
                symbol=probe.symbol,
                decimals=probe.decimals,
            )
        return TokenHolding(
            standard=contract.standard,
            contract_address=contract.address,
            balance=probe.balance,
            symbol=probe.symbol,
            token_ids=frozenset(token_ids or ()),
        )
