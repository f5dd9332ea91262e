"""Data models for the detector module."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from solana_wallet_forensics.ingestor.labels import AddressLabel
from solana_wallet_forensics.ingestor.models import RawTransaction


@dataclass
class Cluster:
    """Transactions grouped by shared address membership.

    Attributes:
        common_addresses: Member addresses, in the order they joined.
        transaction_signatures: Member transactions.
        total_value: Sum of member transaction fees.
        activity_types: Transaction types of members (duplicates kept).
    """

    common_addresses: list[str] = field(default_factory=list)
    transaction_signatures: list[str] = field(default_factory=list)
    total_value: Decimal = Decimal(0)
    activity_types: list[str] = field(default_factory=list)

    @property
    def unique_activity_types(self) -> list[str]:
        return list(dict.fromkeys(self.activity_types))

    @property
    def transaction_count(self) -> int:
        return len(self.transaction_signatures)

    def add_transaction(self, tx: RawTransaction, addresses: list[str]) -> None:
        """Fold a transaction and its involved addresses into this cluster."""
        self.transaction_signatures.append(tx.signature)
        self.total_value += tx.fee
        if tx.type:
            self.activity_types.append(tx.type)
        for address in addresses:
            if address not in self.common_addresses:
                self.common_addresses.append(address)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "common_addresses": list(self.common_addresses),
            "transaction_signatures": list(self.transaction_signatures),
            "total_value": str(self.total_value),
            "activity_types": list(self.activity_types),
        }


@dataclass
class Connection:
    """Interaction history between a wallet and one counterparty."""

    count: int = 0
    last_interaction: int = 0
    types: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "count": self.count,
            "last_interaction": self.last_interaction,
            "types": sorted(self.types),
        }


@dataclass
class WalletAssociation:
    """A wallet's counterparties and its fee-based volume."""

    wallet: str
    connected_wallets: dict[str, Connection] = field(default_factory=dict)
    total_volume: Decimal = Decimal(0)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "wallet": self.wallet,
            "connected_wallets": {
                address: conn.to_dict() for address, conn in self.connected_wallets.items()
            },
            "total_volume": str(self.total_volume),
        }


@dataclass
class AnomalyReport:
    """Anomaly buckets collected over one batch.

    Transaction buckets may hold the same transaction more than once;
    ``new_counterparties`` may hold duplicate addresses.
    """

    high_value_transactions: list[RawTransaction] = field(default_factory=list)
    new_counterparties: list[str] = field(default_factory=list)
    rapid_succession: list[RawTransaction] = field(default_factory=list)
    mixer_patterns: list[RawTransaction] = field(default_factory=list)
    failed_transactions: list[RawTransaction] = field(default_factory=list)

    @property
    def unique_new_counterparties(self) -> list[str]:
        return list(dict.fromkeys(self.new_counterparties))

    @property
    def total(self) -> int:
        return (
            len(self.high_value_transactions)
            + len(self.new_counterparties)
            + len(self.rapid_succession)
            + len(self.mixer_patterns)
            + len(self.failed_transactions)
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary (transactions by signature)."""
        return {
            "high_value_transactions": [tx.signature for tx in self.high_value_transactions],
            "new_counterparties": list(self.new_counterparties),
            "rapid_succession": [tx.signature for tx in self.rapid_succession],
            "mixer_patterns": [tx.signature for tx in self.mixer_patterns],
            "failed_transactions": [tx.signature for tx in self.failed_transactions],
        }


@dataclass
class TransactionAnalysis:
    """Output of the clustering pass: clusters, wallet map and anomalies."""

    clusters: list[Cluster] = field(default_factory=list)
    wallet_map: dict[str, WalletAssociation] = field(default_factory=dict)
    anomalies: AnomalyReport = field(default_factory=AnomalyReport)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "clusters": [c.to_dict() for c in self.clusters],
            "wallet_map": {w: a.to_dict() for w, a in self.wallet_map.items()},
            "anomalies": self.anomalies.to_dict(),
        }


@dataclass(frozen=True)
class ManySmallInputsDetail:
    count: int
    total_amount: Decimal
    average_amount: Decimal
    time_window: str

    def to_dict(self) -> dict[str, object]:
        return {
            "count": self.count,
            "total_amount": str(self.total_amount),
            "average_amount": str(self.average_amount),
            "time_window": self.time_window,
        }


@dataclass(frozen=True)
class SuddenTokenDumpDetail:
    mint: str
    percentage_dumped: float
    time_window: str

    def to_dict(self) -> dict[str, object]:
        return {
            "mint": self.mint,
            "percentage_dumped": self.percentage_dumped,
            "time_window": self.time_window,
        }


@dataclass(frozen=True)
class DetectedPatterns:
    """Risk-pattern flags for a wallet, with details for detected patterns.

    Attributes:
        has_many_small_inputs: Many recent small native deposits.
        has_sudden_token_dump: Most of a received token sent out in a short window.
        is_exchange_like: Deposit-aggregation or withdrawal-distribution flow,
            or a known-exchange entity label.
        many_small_inputs: Detail, set only when detected.
        sudden_token_dump: Detail, set only when detected.
    """

    has_many_small_inputs: bool = False
    has_sudden_token_dump: bool = False
    is_exchange_like: bool = False
    many_small_inputs: ManySmallInputsDetail | None = None
    sudden_token_dump: SuddenTokenDumpDetail | None = None

    @property
    def any_detected(self) -> bool:
        return self.has_many_small_inputs or self.has_sudden_token_dump or self.is_exchange_like

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "has_many_small_inputs": self.has_many_small_inputs,
            "has_sudden_token_dump": self.has_sudden_token_dump,
            "is_exchange_like": self.is_exchange_like,
            "patterns": {
                "many_small_inputs": (
                    self.many_small_inputs.to_dict() if self.many_small_inputs else None
                ),
                "sudden_token_dump": (
                    self.sudden_token_dump.to_dict() if self.sudden_token_dump else None
                ),
            },
        }


@dataclass(frozen=True)
class WalletAnalysisResult:
    """Entity label (if any) combined with the detected patterns."""

    address: str
    label: AddressLabel | None
    patterns: DetectedPatterns

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "address": self.address,
            "label": self.label.to_dict() if self.label else None,
            "patterns": self.patterns.to_dict(),
        }
