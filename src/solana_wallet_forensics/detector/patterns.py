"""Wallet risk-pattern detection.

Three independent heuristics over the transactions that touch a wallet:

- many small inputs: a burst of small native deposits (dusting, faucet
  farming, deposit aggregation),
- sudden token dump: most of a received token sent out within a short
  window,
- exchange-like behavior: deposit-aggregation or withdrawal-distribution
  flow, or an entity label naming a known exchange.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from solana_wallet_forensics.detector.models import (
    DetectedPatterns,
    ManySmallInputsDetail,
    SuddenTokenDumpDetail,
    WalletAnalysisResult,
)
from solana_wallet_forensics.ingestor.labels import EXCHANGE_CATEGORY_CODE, AddressLabel
from solana_wallet_forensics.ingestor.models import RawTransaction, parse_transactions
from solana_wallet_forensics.ingestor.sources import LabelFetcher, TransactionFetcher

logger = logging.getLogger(__name__)


class WalletAnalysisError(Exception):
    """Raised when a wallet's transactions cannot be fetched for analysis."""


@dataclass(frozen=True)
class PatternDetectionConfig:
    """Thresholds for the wallet pattern heuristics."""

    small_input_threshold: Decimal = Decimal("0.1")
    small_input_count_threshold: int = 10
    small_input_time_window_hours: float = 24.0
    token_dump_percentage: float = 90.0
    token_dump_time_window_hours: float = 1.0
    exchange_recent_limit: int = 100
    exchange_small_amount: Decimal = Decimal("0.1")
    exchange_large_amount: Decimal = Decimal("10")
    exchange_small_count: int = 10
    exchange_large_count: int = 2
    exchange_label_category_code: int = EXCHANGE_CATEGORY_CODE


class WalletPatternDetector:
    """Runs the three pattern heuristics for one wallet."""

    def __init__(self, config: PatternDetectionConfig | None = None) -> None:
        self.config = config or PatternDetectionConfig()

    def detect(
        self,
        address: str,
        transactions: Sequence[RawTransaction | dict[str, Any]] | None,
        *,
        label: AddressLabel | None = None,
        now: datetime | None = None,
    ) -> DetectedPatterns:
        """Detect risk patterns for ``address``.

        Args:
            address: Wallet under analysis.
            transactions: Transaction batch; only transactions touching the
                wallet (balance deltas or token transfers) are considered.
            label: Optional entity label for the wallet.
            now: Evaluation time for the small-input recency window.
        """
        relevant = [tx for tx in parse_transactions(transactions or ()) if tx.touches(address)]

        small_inputs = self.detect_many_small_inputs(address, relevant, now=now)
        token_dump = self.detect_sudden_token_dump(address, relevant)
        labeled_exchange = label is not None and label.has_category(
            self.config.exchange_label_category_code
        )
        exchange_like = labeled_exchange or self.detect_exchange_like(address, relevant)

        patterns = DetectedPatterns(
            has_many_small_inputs=small_inputs is not None,
            has_sudden_token_dump=token_dump is not None,
            is_exchange_like=exchange_like,
            many_small_inputs=small_inputs,
            sudden_token_dump=token_dump,
        )
        logger.debug(
            "Patterns for %s over %d relevant transactions: small_inputs=%s dump=%s exchange_like=%s",
            address,
            len(relevant),
            patterns.has_many_small_inputs,
            patterns.has_sudden_token_dump,
            patterns.is_exchange_like,
        )
        return patterns

    def detect_many_small_inputs(
        self,
        address: str,
        transactions: Sequence[RawTransaction],
        *,
        now: datetime | None = None,
    ) -> ManySmallInputsDetail | None:
        """Count recent small native deposits into the wallet.

        Recency is measured from ``now`` (evaluation time), not from the
        latest transaction. Transactions without a timestamp always count.
        """
        cfg = self.config
        now_ts = (now or datetime.now(UTC)).timestamp()
        window_seconds = cfg.small_input_time_window_hours * 3600

        amounts = [
            transfer.amount
            for tx in transactions
            if not tx.timestamp or now_ts - tx.timestamp <= window_seconds
            for transfer in tx.native_transfers
            if transfer.to_user_account == address and transfer.amount <= cfg.small_input_threshold
        ]
        if len(amounts) < cfg.small_input_count_threshold:
            return None

        total = sum(amounts, Decimal(0))
        return ManySmallInputsDetail(
            count=len(amounts),
            total_amount=total,
            average_amount=total / len(amounts),
            time_window=f"{cfg.small_input_time_window_hours:g} hours",
        )

    def detect_sudden_token_dump(
        self,
        address: str,
        transactions: Sequence[RawTransaction],
    ) -> SuddenTokenDumpDetail | None:
        """Find the first mint dumped above the percentage within the time window."""
        cfg = self.config
        inflows: dict[str, Decimal] = {}
        outflows: dict[str, Decimal] = {}

        for tx in transactions:
            for transfer in tx.token_transfers:
                if not transfer.mint or not transfer.token_amount:
                    continue
                if transfer.to_user_account == address:
                    inflows[transfer.mint] = inflows.get(transfer.mint, Decimal(0)) + transfer.token_amount
                if transfer.from_user_account == address:
                    outflows[transfer.mint] = outflows.get(transfer.mint, Decimal(0)) + transfer.token_amount

            for data in tx.account_data:
                if data.account != address:
                    continue
                for change in data.token_balance_changes:
                    if not change.mint or change.raw_token_amount is None:
                        continue
                    amount = change.amount
                    if amount < 0:
                        outflows[change.mint] = outflows.get(change.mint, Decimal(0)) + abs(amount)
                    else:
                        inflows[change.mint] = inflows.get(change.mint, Decimal(0)) + amount

        for mint, received in inflows.items():
            if received <= 0:
                continue
            sent = outflows.get(mint, Decimal(0))
            percentage = float(sent / received * 100)
            if percentage < cfg.token_dump_percentage:
                continue

            dumps = sorted(
                (tx for tx in transactions if self._is_dump(tx, address, mint)),
                key=lambda tx: tx.sort_key,
            )
            if not dumps:
                continue
            duration_hours = (dumps[-1].sort_key - dumps[0].sort_key) / 3600
            if duration_hours <= cfg.token_dump_time_window_hours:
                return SuddenTokenDumpDetail(
                    mint=mint,
                    percentage_dumped=percentage,
                    time_window=f"{duration_hours:.2f} hours",
                )
        return None

    @staticmethod
    def _is_dump(tx: RawTransaction, address: str, mint: str) -> bool:
        if any(t.from_user_account == address and t.mint == mint for t in tx.token_transfers):
            return True
        return any(
            change.mint == mint and change.raw_token_amount is not None and change.amount < 0
            for data in tx.account_data
            if data.account == address
            for change in data.token_balance_changes
        )

    def detect_exchange_like(self, address: str, transactions: Sequence[RawTransaction]) -> bool:
        """Check recent flow for deposit aggregation or withdrawal distribution."""
        cfg = self.config
        recent = sorted(transactions, key=lambda tx: tx.sort_key, reverse=True)[: cfg.exchange_recent_limit]

        def count(*, inbound: bool, small: bool) -> int:
            hits = 0
            for tx in recent:
                for t in tx.native_transfers:
                    endpoint = t.to_user_account if inbound else t.from_user_account
                    if endpoint != address:
                        continue
                    if (small and t.amount <= cfg.exchange_small_amount) or (
                        not small and t.amount >= cfg.exchange_large_amount
                    ):
                        hits += 1
                        break
            return hits

        aggregating = (
            count(inbound=True, small=True) >= cfg.exchange_small_count
            and count(inbound=False, small=False) >= cfg.exchange_large_count
        )
        distributing = (
            count(inbound=True, small=False) >= cfg.exchange_large_count
            and count(inbound=False, small=True) >= cfg.exchange_small_count
        )
        return aggregating or distributing


def detect_wallet_patterns(
    address: str,
    transactions: Sequence[RawTransaction | dict[str, Any]] | None,
    *,
    config: PatternDetectionConfig | None = None,
    label: AddressLabel | None = None,
    now: datetime | None = None,
) -> DetectedPatterns:
    """Detect wallet risk patterns with the given (or default) config."""
    return WalletPatternDetector(config).detect(address, transactions, label=label, now=now)


async def analyze_wallet(
    address: str,
    *,
    fetch_transactions: TransactionFetcher,
    fetch_label: LabelFetcher | None = None,
    config: PatternDetectionConfig | None = None,
    now: datetime | None = None,
) -> WalletAnalysisResult:
    """Fetch a wallet's transactions and label concurrently, then detect patterns.

    A failing label lookup degrades to no label; a failing transaction
    fetch is fatal.

    Raises:
        WalletAnalysisError: If the transactions cannot be fetched.
    """

    async def load_label() -> AddressLabel | None:
        if fetch_label is None:
            return None
        try:
            return await fetch_label(address)
        except Exception as e:
            logger.warning("Label lookup failed for %s: %s", address, e)
            return None

    try:
        transactions, label = await asyncio.gather(fetch_transactions(address), load_label())
    except Exception as e:
        logger.error("Failed to fetch transactions for %s: %s", address, e)
        raise WalletAnalysisError(f"Failed to fetch transactions for {address}") from e

    patterns = await asyncio.to_thread(
        detect_wallet_patterns,
        address,
        list(transactions),
        config=config,
        label=label,
        now=now,
    )
    return WalletAnalysisResult(address=address, label=label, patterns=patterns)
