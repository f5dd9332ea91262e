"""Data models for the funding profiler."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal

UNKNOWN = "UNKNOWN"

EPOCH = datetime.fromtimestamp(0, tz=UTC)


@dataclass(frozen=True)
class FundingSource:
    """A counterparty that sent native funds to the target.

    Attributes:
        address: Counterparty address.
        total_amount: Amount attributed to this counterparty.
        first_contact: Earliest funding event involving it.
        last_contact: Latest funding event involving it.
        type: First transaction type observed for it.
        is_exchange: True if any of its funding events carried an exchange origin tag.
    """

    address: str
    total_amount: Decimal
    first_contact: datetime
    last_contact: datetime
    type: str = UNKNOWN
    is_exchange: bool = False

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "address": self.address,
            "total_amount": str(self.total_amount),
            "first_contact": self.first_contact.isoformat(),
            "last_contact": self.last_contact.isoformat(),
            "type": self.type,
            "is_exchange": self.is_exchange,
        }


@dataclass(frozen=True)
class PrimarySource:
    """The largest funding source and its share of all funding."""

    address: str = ""
    amount: Decimal = Decimal(0)
    percentage: float = 0.0
    type: str = UNKNOWN
    # Origin is not tracked per source; always UNKNOWN.
    source: str = UNKNOWN

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "address": self.address,
            "amount": str(self.amount),
            "percentage": self.percentage,
            "type": self.type,
            "source": self.source,
        }


@dataclass(frozen=True)
class TimelineEntry:
    """Funding received on one UTC calendar day."""

    date: date
    amount: Decimal
    count: int

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "count": self.count,
        }


@dataclass(frozen=True)
class FundingAnalysisResult:
    """Inbound funding provenance for one target wallet."""

    target_address: str
    primary_source: PrimarySource = field(default_factory=PrimarySource)
    sources: list[FundingSource] = field(default_factory=list)
    timeline: list[TimelineEntry] = field(default_factory=list)
    exchange_percentage: float = 0.0

    @property
    def total_funding(self) -> Decimal:
        return sum((s.total_amount for s in self.sources), Decimal(0))

    @property
    def funding_event_count(self) -> int:
        return sum(entry.count for entry in self.timeline)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "target_address": self.target_address,
            "primary_source": self.primary_source.to_dict(),
            "sources": [s.to_dict() for s in self.sources],
            "timeline": [t.to_dict() for t in self.timeline],
            "exchange_percentage": self.exchange_percentage,
        }
