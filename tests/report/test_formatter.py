"""Tests for the report formatter."""

from datetime import UTC, datetime
from decimal import Decimal

from solana_wallet_forensics.detector.clustering import analyze_transactions
from solana_wallet_forensics.detector.models import (
    DetectedPatterns,
    ManySmallInputsDetail,
    SuddenTokenDumpDetail,
)
from solana_wallet_forensics.ingestor.models import NativeTransfer, RawTransaction
from solana_wallet_forensics.profiler.models import (
    FundingAnalysisResult,
    FundingSource,
    PrimarySource,
    TimelineEntry,
)
from solana_wallet_forensics.report.formatter import (
    format_analysis,
    format_funding_summary,
    format_patterns_summary,
    format_sol,
    get_detected_patterns,
    truncate_address,
)

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
FUNDER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
NOW = datetime(2024, 1, 1, tzinfo=UTC)


class TestHelpers:
    """Tests for small formatting helpers."""

    def test_truncate_address(self):
        """Test long addresses are shortened and short ones kept."""
        assert truncate_address(WALLET) == "7xKX...gAsU"
        assert truncate_address(WALLET, chars=6) == "7xKXtg...osgAsU"
        assert truncate_address("short") == "short"

    def test_format_sol(self):
        """Test SOL amounts use thousands separators."""
        assert format_sol(Decimal("1234.5")) == "1,234.5000 SOL"
        assert format_sol(Decimal("0.123456"), places=2) == "0.12 SOL"

    def test_get_detected_patterns(self):
        """Test pattern names follow flag order."""
        patterns = DetectedPatterns(has_many_small_inputs=True, is_exchange_like=True)
        assert get_detected_patterns(patterns) == ["Many Small Inputs", "Exchange-like Behavior"]
        assert get_detected_patterns(DetectedPatterns()) == []


class TestFormatAnalysis:
    """Tests for format_analysis."""

    def test_flattens_clusters_wallets_and_anomalies(self):
        """Test the clustering pass is reduced to counts and de-duplicated lists."""
        txs = [
            RawTransaction(
                signature="s1",
                timestamp=1_000,
                fee=Decimal(5000),
                type="TRANSFER",
                native_transfers=(NativeTransfer("A", "B", Decimal(1)),),
            ),
            RawTransaction(
                signature="s2",
                timestamp=1_010,
                fee=Decimal(5000),
                type="TRANSFER",
                native_transfers=(NativeTransfer("B", "C", Decimal(1)),),
            ),
        ]
        data = format_analysis(analyze_transactions(txs, now=NOW))

        assert data["clusters"] == [
            {"addresses": ["A", "B", "C"], "transactions": 2, "total_value": "10000", "types": ["TRANSFER"]}
        ]
        wallet_b = next(w for w in data["wallets"] if w["wallet"] == "B")
        assert [c["address"] for c in wallet_b["connections"]] == ["A", "C"]
        assert wallet_b["total_volume"] == "10000"
        assert data["anomalies"] == {
            "high_value_count": 0,
            "new_counterparties": ["C"],
            "rapid_succession_count": 4,
            "mixer_patterns_count": 0,
            "failed_transactions_count": 0,
        }


class TestSummaries:
    """Tests for text summaries."""

    def test_funding_summary(self):
        """Test the funding summary names the primary source and exchange share."""
        result = FundingAnalysisResult(
            target_address=WALLET,
            primary_source=PrimarySource(address=FUNDER, amount=Decimal(3_000_000_000), percentage=75.0, type="TRANSFER"),
            sources=[
                FundingSource(FUNDER, Decimal(3_000_000_000), NOW, NOW, "TRANSFER", True),
                FundingSource("other", Decimal(1_500_000_000), NOW, NOW),
            ],
            timeline=[TimelineEntry(NOW.date(), Decimal(4_500_000_000), 2)],
            exchange_percentage=75.0,
        )
        summary = format_funding_summary(result)

        assert "7xKX...gAsU received 4.5000 SOL from 2 sources over 2 events" in summary
        assert "Primary source 9WzD...AWWM (75.0%, TRANSFER)" in summary
        assert summary.endswith("Exchange-sourced: 75.0%.")

    def test_funding_summary_converts_lamports(self):
        """Test lamport totals are rendered in SOL."""
        result = FundingAnalysisResult(
            target_address=WALLET,
            sources=[FundingSource(FUNDER, Decimal(1_234_500_000_000), NOW, NOW)],
            timeline=[TimelineEntry(NOW.date(), Decimal(1_234_500_000_000), 1)],
        )

        assert "received 1,234.5000 SOL from 1 sources" in format_funding_summary(result)

    def test_empty_funding_summary(self):
        """Test the summary for a wallet without funding."""
        assert format_funding_summary(FundingAnalysisResult(target_address=WALLET)) == (
            "No inbound funding found for 7xKX...gAsU."
        )

    def test_patterns_summary(self):
        """Test the patterns summary lists details and the explorer link."""
        patterns = DetectedPatterns(
            has_many_small_inputs=True,
            has_sudden_token_dump=True,
            many_small_inputs=ManySmallInputsDetail(12, Decimal("0.60"), Decimal("0.05"), "24 hours"),
            sudden_token_dump=SuddenTokenDumpDetail(FUNDER, 95.0, "0.50 hours"),
        )
        lines = format_patterns_summary(WALLET, patterns).splitlines()

        assert lines[0] == "7xKX...gAsU: Many Small Inputs, Sudden Token Dump"
        assert lines[1] == "  12 small inputs totalling 0.60 (avg 0.0500) in 24 hours"
        assert lines[2] == "  95.0% of 9WzD...AWWM dumped in 0.50 hours"
        assert lines[3] == f"  https://solscan.io/account/{WALLET}"

    def test_patterns_summary_nothing_detected(self):
        """Test the summary when no pattern fired."""
        assert format_patterns_summary(WALLET, DetectedPatterns()) == "7xKX...gAsU: no risk patterns detected"
