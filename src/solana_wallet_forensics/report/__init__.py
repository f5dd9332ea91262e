"""Reporting layer - Plain-data views of analysis results."""

from solana_wallet_forensics.report.formatter import (
    format_analysis,
    format_funding_summary,
    format_patterns_summary,
    format_sol,
    get_detected_patterns,
    truncate_address,
)

__all__ = [
    "format_analysis",
    "format_funding_summary",
    "format_patterns_summary",
    "format_sol",
    "get_detected_patterns",
    "truncate_address",
]
