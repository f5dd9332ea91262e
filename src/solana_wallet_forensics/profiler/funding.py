"""Funding-origin tracking.

Reconstructs where a wallet's native funds came from. A funding event is
a transaction in which the target's native balance went up. The amount
the target received is attributed to every other account whose native
balance went down in the same transaction, so multi-party transactions
over-attribute: each co-signer is credited with the full amount.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from solana_wallet_forensics.ingestor.models import RawTransaction, parse_transactions
from solana_wallet_forensics.profiler.models import (
    EPOCH,
    FundingAnalysisResult,
    FundingSource,
    PrimarySource,
    TimelineEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_EXCHANGE_SOURCES: tuple[str, ...] = (
    "COINBASE",
    "MAGIC_EDEN",
    "OPENSEA",
    "HYPERSPACE",
    "TENSOR",
)


@dataclass
class _SourceStats:
    total: Decimal
    first: datetime
    last: datetime
    types: list[str] = field(default_factory=list)
    origins: set[str] = field(default_factory=set)


def _event_time(tx: RawTransaction) -> datetime:
    if tx.timestamp is None:
        return EPOCH
    try:
        return datetime.fromtimestamp(tx.timestamp, tz=UTC)
    except (OverflowError, OSError, ValueError):
        logger.warning("Timestamp %d of %s is out of range, using epoch", tx.timestamp, tx.signature)
        return EPOCH


def _percentage(part: Decimal, total: Decimal) -> float:
    if total <= 0:
        return 0.0
    value = float(part / total * 100)
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(100.0, value))


class FundingOriginTracker:
    """Aggregates inbound funding per counterparty for a target wallet."""

    def __init__(self, *, exchange_sources: Iterable[str] = DEFAULT_EXCHANGE_SOURCES) -> None:
        self.exchange_sources = frozenset(s.upper() for s in exchange_sources)

    def is_exchange_source(self, origin: str) -> bool:
        """Return True if the transaction origin tag is a known exchange or marketplace."""
        return origin.upper() in self.exchange_sources

    def analyze(
        self,
        transactions: Sequence[RawTransaction | dict[str, Any]] | None,
        target_address: str,
    ) -> FundingAnalysisResult:
        """Analyze funding sources of ``target_address``.

        Never raises for empty or missing input; a zeroed result is returned.
        """
        if not transactions or not target_address:
            return FundingAnalysisResult(target_address=target_address or "")

        events = [
            tx
            for tx in parse_transactions(transactions)
            if any(
                a.account == target_address and a.native_balance_change > 0
                for a in tx.account_data
            )
        ]

        stats: dict[str, _SourceStats] = {}
        daily: dict[date, tuple[Decimal, int]] = {}
        for tx in events:
            when = _event_time(tx)
            amount = tx.native_amount_to(target_address)

            for data in tx.account_data:
                if data.account == target_address or data.native_balance_change >= 0:
                    continue
                entry = stats.get(data.account)
                if entry is None:
                    entry = _SourceStats(total=Decimal(0), first=when, last=when)
                    stats[data.account] = entry
                entry.total += amount
                entry.first = min(entry.first, when)
                entry.last = max(entry.last, when)
                if tx.type_or_unknown not in entry.types:
                    entry.types.append(tx.type_or_unknown)
                entry.origins.add(tx.source_or_unknown)

            day = when.date()
            day_amount, day_count = daily.get(day, (Decimal(0), 0))
            daily[day] = (day_amount + amount, day_count + 1)

        sources = sorted(
            (
                FundingSource(
                    address=address,
                    total_amount=entry.total,
                    first_contact=entry.first,
                    last_contact=entry.last,
                    type=entry.types[0],
                    is_exchange=any(self.is_exchange_source(o) for o in entry.origins),
                )
                for address, entry in stats.items()
            ),
            key=lambda s: s.total_amount,
            reverse=True,
        )

        total = sum((s.total_amount for s in sources), Decimal(0))
        exchange_total = sum((s.total_amount for s in sources if s.is_exchange), Decimal(0))

        primary = PrimarySource()
        if sources:
            top = sources[0]
            primary = PrimarySource(
                address=top.address,
                amount=top.total_amount,
                percentage=_percentage(top.total_amount, total),
                type=top.type,
            )

        timeline = [
            TimelineEntry(date=day, amount=amount, count=count)
            for day, (amount, count) in sorted(daily.items())
        ]

        result = FundingAnalysisResult(
            target_address=target_address,
            primary_source=primary,
            sources=sources,
            timeline=timeline,
            exchange_percentage=_percentage(exchange_total, total),
        )
        logger.info(
            "Funding analysis for %s: %d events, %d sources, exchange share %.2f%%",
            target_address,
            len(events),
            len(sources),
            result.exchange_percentage,
        )
        return result


def analyze_funding(
    transactions: Sequence[RawTransaction | dict[str, Any]] | None,
    target_address: str,
    *,
    exchange_sources: Iterable[str] = DEFAULT_EXCHANGE_SOURCES,
) -> FundingAnalysisResult:
    """Analyze funding sources with the default exchange allow-list."""
    return FundingOriginTracker(exchange_sources=exchange_sources).analyze(
        transactions, target_address
    )
