"""Tests for the analysis pipeline."""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from solana_wallet_forensics.config import Settings
from solana_wallet_forensics.detector.patterns import WalletAnalysisError
from solana_wallet_forensics.graph.builder import GraphBuildError
from solana_wallet_forensics.ingestor.labels import AddressLabel, LabelCategory
from solana_wallet_forensics.pipeline import AnalysisPipeline, PipelineStats, WalletReport
from solana_wallet_forensics.worker import AnalysisWorker

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
FUNDER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
NOW = datetime(2024, 1, 1, tzinfo=UTC)
NOW_TS = int(NOW.timestamp())


def create_payload(signature: str, timestamp: int, amount: int = 500_000_000) -> dict[str, object]:
    """Create a Helius payload in which FUNDER sends native funds to WALLET."""
    return {
        "signature": signature,
        "timestamp": timestamp,
        "fee": 5000,
        "feePayer": FUNDER,
        "type": "TRANSFER",
        "source": "COINBASE",
        "nativeTransfers": [{"fromUserAccount": FUNDER, "toUserAccount": WALLET, "amount": amount}],
        "accountData": [
            {"account": FUNDER, "nativeBalanceChange": -(amount + 5000)},
            {"account": WALLET, "nativeBalanceChange": amount},
        ],
    }


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def transactions() -> list[dict[str, object]]:
    return [create_payload("s1", NOW_TS - 3_600), create_payload("s2", NOW_TS - 1_800)]


class TestPipelineStats:
    """Tests for PipelineStats."""

    def test_defaults(self):
        """Test default values."""
        stats = PipelineStats()
        assert stats.runs == 0
        assert stats.transactions_processed == 0
        assert stats.errors == 0
        assert stats.last_run_at is None
        assert stats.last_error is None


class TestAnalysisPipelineInit:
    """Tests for pipeline construction."""

    def test_uses_settings_groups(self, monkeypatch):
        """Test analyzers are configured from the settings groups."""
        monkeypatch.setenv("GRAPH_CRITICAL_PATH_MAX_DEPTH", "5")
        monkeypatch.setenv("ANOMALY_HIGH_VALUE", "42")
        monkeypatch.setenv("PATTERN_SMALL_INPUT_COUNT_THRESHOLD", "3")
        monkeypatch.setenv("PATTERN_EXCHANGE_RECENT_LIMIT", "7")
        monkeypatch.setenv("PATTERN_EXCHANGE_SMALL_AMOUNT", "0.5")

        pipeline = AnalysisPipeline()

        assert pipeline._graph_builder.max_depth == 5
        assert pipeline._cluster_engine.anomaly_detector.thresholds.high_value == Decimal("42")
        assert pipeline._pattern_detector.config.small_input_count_threshold == 3
        assert pipeline._pattern_detector.config.exchange_recent_limit == 7
        assert pipeline._pattern_detector.config.exchange_small_amount == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_shared_worker_not_closed(self, settings):
        """Test an injected worker is left open on close."""
        worker = MagicMock(spec=AnalysisWorker)
        pipeline = AnalysisPipeline(settings, worker=worker)
        await pipeline.close()

        assert pipeline.worker is worker
        worker.close.assert_not_called()


class TestAnalysisPipelineRun:
    """Tests for AnalysisPipeline.run."""

    @pytest.mark.asyncio
    async def test_run_produces_report(self, settings, transactions):
        """Test every analysis contributes to the report."""
        async with AnalysisPipeline(settings) as pipeline:
            report = await pipeline.run(transactions, WALLET, now=NOW)

            assert isinstance(report, WalletReport)
            assert report.graph.node_count == 2
            assert report.graph.metadata.critical_path == []
            assert report.funding.primary_source.address == FUNDER
            assert report.funding.exchange_percentage == 100.0
            assert len(report.analysis.clusters) == 1
            assert not report.patterns.any_detected
            assert report.label is None

            assert pipeline.stats.runs == 1
            assert pipeline.stats.transactions_processed == 2
            assert pipeline.stats.last_run_at is not None
            assert pipeline.worker.pending_count == 0

    @pytest.mark.asyncio
    async def test_report_to_dict(self, settings, transactions):
        """Test the report serializes to plain data."""
        label = AddressLabel(address=WALLET, categories=(LabelCategory("Exchange", 3011),))
        async with AnalysisPipeline(settings) as pipeline:
            report = await pipeline.run(transactions, WALLET, label=label, now=NOW)

        data = report.to_dict()
        assert data["address"] == WALLET
        assert data["patterns"]["is_exchange_like"] is True
        assert data["analysis"]["anomalies"]["high_value_count"] == 2
        assert data["label"]["categories"] == [{"name": "Exchange", "code": 3011}]

    @pytest.mark.asyncio
    async def test_empty_batch(self, settings):
        """Test an empty batch still yields a report."""
        async with AnalysisPipeline(settings) as pipeline:
            report = await pipeline.run([], WALLET, now=NOW)

        assert report.graph.node_count == 1
        assert report.funding.sources == []
        assert report.analysis.clusters == []

    @pytest.mark.asyncio
    async def test_invalid_input(self, settings):
        """Test unusable input raises GraphBuildError before any work is submitted."""
        async with AnalysisPipeline(settings) as pipeline:
            with pytest.raises(GraphBuildError):
                await pipeline.run("nope", WALLET)  # type: ignore[arg-type]
            with pytest.raises(GraphBuildError):
                await pipeline.run([], "")
            assert pipeline.worker.pending_count == 0

    @pytest.mark.asyncio
    async def test_analysis_failure_updates_stats(self, settings, transactions, caplog):
        """Test a failing analysis is counted and re-raised."""
        async with AnalysisPipeline(settings) as pipeline:
            pipeline._funding_tracker.analyze = MagicMock(side_effect=RuntimeError("bad batch"))

            with caplog.at_level(logging.ERROR), pytest.raises(RuntimeError):
                await pipeline.run(transactions, WALLET, now=NOW)

            assert pipeline.stats.errors == 1
            assert pipeline.stats.last_error == "bad batch"
            assert pipeline.stats.runs == 0
            assert pipeline.worker.pending_count == 0
        assert "Analysis of" in caplog.text


class TestAnalyzeAddress:
    """Tests for AnalysisPipeline.analyze_address."""

    @pytest.mark.asyncio
    async def test_fetches_then_runs(self, settings, transactions):
        """Test transactions and label are fetched and passed to run."""
        fetch_transactions = AsyncMock(return_value=transactions)
        fetch_label = AsyncMock(return_value=None)

        async with AnalysisPipeline(settings) as pipeline:
            report = await pipeline.analyze_address(
                WALLET, fetch_transactions=fetch_transactions, fetch_label=fetch_label, now=NOW
            )

        fetch_transactions.assert_awaited_once_with(WALLET)
        assert report.funding.total_funding == Decimal(1_000_000_000)

    @pytest.mark.asyncio
    async def test_label_failure_degrades(self, settings, transactions):
        """Test a failing label lookup does not fail the run."""
        async with AnalysisPipeline(settings) as pipeline:
            report = await pipeline.analyze_address(
                WALLET,
                fetch_transactions=AsyncMock(return_value=transactions),
                fetch_label=AsyncMock(side_effect=RuntimeError("down")),
                now=NOW,
            )

        assert report.label is None

    @pytest.mark.asyncio
    async def test_fetch_failure(self, settings):
        """Test a failing transaction fetch raises WalletAnalysisError."""
        async with AnalysisPipeline(settings) as pipeline:
            with pytest.raises(WalletAnalysisError):
                await pipeline.analyze_address(
                    WALLET, fetch_transactions=AsyncMock(side_effect=ConnectionError("rpc"))
                )
            assert pipeline.stats.errors == 1
