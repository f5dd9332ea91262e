"""Wallet profiling layer - Funding provenance."""

from solana_wallet_forensics.profiler.funding import FundingOriginTracker, analyze_funding
from solana_wallet_forensics.profiler.models import (
    FundingAnalysisResult,
    FundingSource,
    PrimarySource,
    TimelineEntry,
)

__all__ = [
    "FundingAnalysisResult",
    "FundingOriginTracker",
    "FundingSource",
    "PrimarySource",
    "TimelineEntry",
    "analyze_funding",
]
