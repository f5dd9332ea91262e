"""Plain-data formatting of analysis results.

Transforms analysis outputs into the flat arrays and short text lines a
presentation layer consumes.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from solana_wallet_forensics.detector.models import DetectedPatterns, TransactionAnalysis
from solana_wallet_forensics.ingestor.validation import lamports_to_sol
from solana_wallet_forensics.profiler.models import FundingAnalysisResult

SOLSCAN_ACCOUNT_URL = "https://solscan.io/account/{address}"


def truncate_address(address: str, chars: int = 4) -> str:
    """Truncate a base58 address to ABCD...WXYZ format."""
    if len(address) < chars * 2 + 3:
        return address
    return f"{address[:chars]}...{address[-chars:]}"


def format_sol(amount: Decimal, places: int = 4) -> str:
    """Format a SOL amount with thousands separators."""
    return f"{amount:,.{places}f} SOL"


def get_detected_patterns(patterns: DetectedPatterns) -> list[str]:
    """Get names of detected patterns."""
    names = []
    if patterns.has_many_small_inputs:
        names.append("Many Small Inputs")
    if patterns.has_sudden_token_dump:
        names.append("Sudden Token Dump")
    if patterns.is_exchange_like:
        names.append("Exchange-like Behavior")
    return names


def format_analysis(analysis: TransactionAnalysis) -> dict[str, Any]:
    """Flatten a clustering pass into plain arrays.

    Clusters report addresses, transaction count, fee-based value and
    de-duplicated activity types; anomalies report bucket sizes and the
    de-duplicated new counterparties.
    """
    anomalies = analysis.anomalies
    return {
        "clusters": [
            {
                "addresses": list(c.common_addresses),
                "transactions": c.transaction_count,
                "total_value": str(c.total_value),
                "types": c.unique_activity_types,
            }
            for c in analysis.clusters
        ],
        "wallets": [
            {
                "wallet": w.wallet,
                "connections": [
                    {
                        "address": address,
                        "count": conn.count,
                        "last_interaction": conn.last_interaction,
                        "types": sorted(conn.types),
                    }
                    for address, conn in w.connected_wallets.items()
                ],
                "total_volume": str(w.total_volume),
            }
            for w in analysis.wallet_map.values()
        ],
        "anomalies": {
            "high_value_count": len(anomalies.high_value_transactions),
            "new_counterparties": anomalies.unique_new_counterparties,
            "rapid_succession_count": len(anomalies.rapid_succession),
            "mixer_patterns_count": len(anomalies.mixer_patterns),
            "failed_transactions_count": len(anomalies.failed_transactions),
        },
    }


def format_funding_summary(result: FundingAnalysisResult) -> str:
    """One-paragraph text summary of funding provenance."""
    if not result.sources:
        return f"No inbound funding found for {truncate_address(result.target_address)}."
    primary = result.primary_source
    # Native amounts are lamports.
    total_sol = lamports_to_sol(result.total_funding)
    return (
        f"{truncate_address(result.target_address)} received {format_sol(total_sol)} "
        f"from {len(result.sources)} sources over {result.funding_event_count} events. "
        f"Primary source {truncate_address(primary.address)} "
        f"({primary.percentage:.1f}%, {primary.type}). "
        f"Exchange-sourced: {result.exchange_percentage:.1f}%."
    )


def format_patterns_summary(address: str, patterns: DetectedPatterns) -> str:
    """Short text summary of detected wallet patterns."""
    detected = get_detected_patterns(patterns)
    wallet_short = truncate_address(address)
    if not detected:
        return f"{wallet_short}: no risk patterns detected"

    lines = [f"{wallet_short}: {', '.join(detected)}"]
    if patterns.many_small_inputs:
        d = patterns.many_small_inputs
        lines.append(
            f"  {d.count} small inputs totalling {d.total_amount} "
            f"(avg {d.average_amount:.4f}) in {d.time_window}"
        )
    if patterns.sudden_token_dump:
        d = patterns.sudden_token_dump
        lines.append(
            f"  {d.percentage_dumped:.1f}% of {truncate_address(d.mint)} dumped in {d.time_window}"
        )
    lines.append(f"  {SOLSCAN_ACCOUNT_URL.format(address=address)}")
    return "\n".join(lines)
