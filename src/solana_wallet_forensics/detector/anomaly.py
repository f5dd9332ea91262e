"""Behavioral anomaly detection for a transaction batch.

Runs inside the clustering pass (per-transaction checks) and once more
after it (chronological rapid-succession check). Buckets accumulate
duplicates; consumers de-duplicate on read.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from solana_wallet_forensics.detector.models import AnomalyReport, WalletAssociation
from solana_wallet_forensics.ingestor.models import RawTransaction

logger = logging.getLogger(__name__)

# Default thresholds
DEFAULT_HIGH_VALUE = Decimal("1000")
DEFAULT_RAPID_SUCCESSION_MS = 60_000
DEFAULT_MIXER_TRANSFER_COUNT = 10
DEFAULT_MIXER_MAX_FEE = Decimal("1000")
DEFAULT_NEW_COUNTERPARTY_WINDOW_DAYS = 30


@dataclass(frozen=True)
class AnomalyThresholds:
    """Thresholds for the anomaly checks.

    Attributes:
        high_value: Summed transfer value at or above which a transaction is flagged.
        rapid_succession_ms: Gap between adjacent transactions below which both are flagged.
        mixer_transfer_count: Native transfer count above which a transaction may be a mixer.
        mixer_max_fee: Fee below which a many-transfer transaction is flagged as a mixer.
        new_counterparty_window_days: Age after which a known counterparty counts as new.
    """

    high_value: Decimal = DEFAULT_HIGH_VALUE
    rapid_succession_ms: int = DEFAULT_RAPID_SUCCESSION_MS
    mixer_transfer_count: int = DEFAULT_MIXER_TRANSFER_COUNT
    mixer_max_fee: Decimal = DEFAULT_MIXER_MAX_FEE
    new_counterparty_window_days: int = DEFAULT_NEW_COUNTERPARTY_WINDOW_DAYS

    @property
    def new_counterparty_window_seconds(self) -> int:
        return self.new_counterparty_window_days * 24 * 3600


class AnomalyDetector:
    """Flags value, temporal and behavioral anomalies."""

    def __init__(self, thresholds: AnomalyThresholds | None = None) -> None:
        self.thresholds = thresholds or AnomalyThresholds()

    @staticmethod
    def transaction_value(tx: RawTransaction) -> Decimal:
        """Sum native and token transfer amounts (units are not normalized)."""
        native = sum((t.amount for t in tx.native_transfers), Decimal(0))
        token = sum((t.token_amount for t in tx.token_transfers), Decimal(0))
        return native + token

    def is_high_value(self, tx: RawTransaction) -> bool:
        return self.transaction_value(tx) >= self.thresholds.high_value

    def is_mixer_pattern(self, tx: RawTransaction) -> bool:
        return (
            len(tx.native_transfers) > self.thresholds.mixer_transfer_count
            and tx.fee < self.thresholds.mixer_max_fee
        )

    def is_new_counterparty(
        self,
        association: WalletAssociation,
        counterparty: str,
        *,
        at: int,
    ) -> bool:
        """Return True if there is no connection, or it is older than the window at ``at``."""
        connection = association.connected_wallets.get(counterparty)
        if connection is None:
            return True
        return at - connection.last_interaction > self.thresholds.new_counterparty_window_seconds

    def check_transaction(
        self,
        report: AnomalyReport,
        tx: RawTransaction,
        *,
        involved: Sequence[str],
        wallet_map: dict[str, WalletAssociation],
        now: int,
    ) -> None:
        """Run the per-transaction checks.

        Must be called before the transaction's own associations are
        recorded, so counterparties are judged against prior history.
        """
        if tx.transaction_error:
            report.failed_transactions.append(tx)
        if self.is_high_value(tx):
            report.high_value_transactions.append(tx)
        if self.is_mixer_pattern(tx):
            report.mixer_patterns.append(tx)

        at = tx.timestamp or now
        for address in involved:
            association = wallet_map.get(address)
            if association is None:
                continue
            for other in involved:
                if other != address and self.is_new_counterparty(association, other, at=at):
                    report.new_counterparties.append(other)

    def rapid_succession(self, ordered: Sequence[RawTransaction]) -> list[RawTransaction]:
        """Return transactions that sit within the rapid gap of their neighbour.

        Each qualifying adjacent pair contributes both transactions; a
        transaction shared by two consecutive pairs is listed once.
        Transactions without a timestamp never qualify.
        """
        hits: list[RawTransaction] = []
        last_added = -1
        for i in range(1, len(ordered)):
            prev, cur = ordered[i - 1], ordered[i]
            if prev.timestamp is None or cur.timestamp is None:
                continue
            gap_ms = abs(cur.timestamp - prev.timestamp) * 1000
            if gap_ms >= self.thresholds.rapid_succession_ms:
                continue
            if last_added != i - 1:
                hits.append(prev)
            hits.append(cur)
            last_added = i
        return hits

    def detect_temporal(self, report: AnomalyReport, transactions: Sequence[RawTransaction]) -> None:
        """Add rapid-succession hits from input order and from chronological order."""
        by_input = self.rapid_succession(transactions)
        by_time = self.rapid_succession(sorted(transactions, key=lambda tx: tx.sort_key))
        report.rapid_succession.extend(by_input)
        report.rapid_succession.extend(by_time)
        logger.debug(
            "Rapid succession: %d hits in input order, %d in time order",
            len(by_input),
            len(by_time),
        )
