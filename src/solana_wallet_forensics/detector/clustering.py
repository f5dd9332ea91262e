"""Transaction clustering and wallet association mapping.

Transactions are grouped by shared address membership. The grouping is
an approximation of connected components: when a transaction touches
addresses from several existing clusters it joins the one with the
lowest index, its addresses are remapped there, and the other clusters
are left as they were (never merged or split).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from solana_wallet_forensics.detector.anomaly import AnomalyDetector
from solana_wallet_forensics.detector.models import (
    Cluster,
    Connection,
    TransactionAnalysis,
    WalletAssociation,
)
from solana_wallet_forensics.ingestor.models import RawTransaction, parse_transactions

logger = logging.getLogger(__name__)


def involved_addresses(tx: RawTransaction) -> list[str]:
    """Addresses a transaction involves, in first-seen order.

    Native and token transfer endpoints plus token balance change owners.
    """
    seen: dict[str, None] = {}
    for native in tx.native_transfers:
        seen.update(dict.fromkeys(a for a in (native.from_user_account, native.to_user_account) if a))
    for token in tx.token_transfers:
        seen.update(dict.fromkeys(a for a in (token.from_user_account, token.to_user_account) if a))
    for data in tx.account_data:
        seen.update(dict.fromkeys(c.user_account for c in data.token_balance_changes if c.user_account))
    return list(seen)


class ClusterEngine:
    """Clusters transactions and maps wallet connections in one pass.

    The anomaly detector runs in the same pass; see :class:`AnomalyDetector`.
    """

    def __init__(self, anomaly_detector: AnomalyDetector | None = None) -> None:
        self.anomaly_detector = anomaly_detector or AnomalyDetector()

    def analyze(
        self,
        transactions: Sequence[RawTransaction | dict[str, Any]] | None,
        *,
        now: datetime | None = None,
    ) -> TransactionAnalysis:
        """Cluster the batch in input order.

        Args:
            transactions: Transaction batch; not re-sorted.
            now: Stands in for missing transaction timestamps (defaults to
                the current time).

        Returns:
            Clusters, the wallet connection map and anomaly buckets.
        """
        analysis = TransactionAnalysis()
        if not transactions:
            return analysis

        now_ts = int((now or datetime.now(UTC)).timestamp())
        batch = [tx for tx in parse_transactions(transactions) if tx.is_valid]
        skipped = len(transactions) - len(batch)
        if skipped:
            logger.debug("Ignoring %d transactions without signature", skipped)

        cluster_index: dict[str, int] = {}
        for tx in batch:
            involved = involved_addresses(tx)

            self.anomaly_detector.check_transaction(
                analysis.anomalies,
                tx,
                involved=involved,
                wallet_map=analysis.wallet_map,
                now=now_ts,
            )
            self._record_associations(analysis.wallet_map, tx, now_ts)
            self._assign_cluster(analysis.clusters, cluster_index, tx, involved)

        self.anomaly_detector.detect_temporal(analysis.anomalies, batch)

        logger.info(
            "Clustered %d transactions into %d clusters (%d wallets, %d anomalies)",
            len(batch),
            len(analysis.clusters),
            len(analysis.wallet_map),
            analysis.anomalies.total,
        )
        return analysis

    def _assign_cluster(
        self,
        clusters: list[Cluster],
        cluster_index: dict[str, int],
        tx: RawTransaction,
        involved: list[str],
    ) -> None:
        existing = [cluster_index[a] for a in involved if a in cluster_index]
        if existing:
            index = min(existing)
            clusters[index].add_transaction(tx, involved)
        else:
            index = len(clusters)
            cluster = Cluster()
            cluster.add_transaction(tx, involved)
            clusters.append(cluster)
        for address in involved:
            cluster_index[address] = index

    def _record_associations(
        self,
        wallet_map: dict[str, WalletAssociation],
        tx: RawTransaction,
        now_ts: int,
    ) -> None:
        pairs = [(t.from_user_account, t.to_user_account) for t in tx.native_transfers if t.has_endpoints]
        pairs += [(t.from_user_account, t.to_user_account) for t in tx.token_transfers if t.has_endpoints]
        for sender, receiver in pairs:
            self._connect(wallet_map, sender, receiver, tx, now_ts)
            self._connect(wallet_map, receiver, sender, tx, now_ts)

    @staticmethod
    def _connect(
        wallet_map: dict[str, WalletAssociation],
        wallet: str,
        counterparty: str,
        tx: RawTransaction,
        now_ts: int,
    ) -> None:
        association = wallet_map.get(wallet)
        if association is None:
            association = WalletAssociation(wallet=wallet)
            wallet_map[wallet] = association
        # Volume is fee-based, not transfer-value based.
        association.total_volume += tx.fee

        connection = association.connected_wallets.setdefault(counterparty, Connection())
        connection.count += 1
        connection.last_interaction = tx.timestamp or now_ts
        if tx.type:
            connection.types.add(tx.type)


def analyze_transactions(
    transactions: Sequence[RawTransaction | dict[str, Any]] | None,
    *,
    anomaly_detector: AnomalyDetector | None = None,
    now: datetime | None = None,
) -> TransactionAnalysis:
    """Cluster a batch and detect anomalies with default thresholds."""
    return ClusterEngine(anomaly_detector).analyze(transactions, now=now)
