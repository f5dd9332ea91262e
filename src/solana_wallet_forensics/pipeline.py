"""Analysis pipeline orchestrator.

This module provides the AnalysisPipeline class that wires the four
independent analyses (flow graph, funding provenance, clustering with
anomalies, wallet patterns) together and runs them concurrently over one
read-only transaction batch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from solana_wallet_forensics.config import Settings, get_settings
from solana_wallet_forensics.detector.anomaly import AnomalyDetector, AnomalyThresholds
from solana_wallet_forensics.detector.clustering import ClusterEngine
from solana_wallet_forensics.detector.models import DetectedPatterns, TransactionAnalysis
from solana_wallet_forensics.detector.patterns import (
    PatternDetectionConfig,
    WalletAnalysisError,
    WalletPatternDetector,
)
from solana_wallet_forensics.graph.builder import GraphBuildError, TransactionGraphBuilder
from solana_wallet_forensics.graph.models import TransactionGraph
from solana_wallet_forensics.ingestor.labels import AddressLabel
from solana_wallet_forensics.ingestor.models import RawTransaction, parse_transactions
from solana_wallet_forensics.ingestor.sources import LabelFetcher, TransactionFetcher
from solana_wallet_forensics.profiler.funding import FundingOriginTracker
from solana_wallet_forensics.profiler.models import FundingAnalysisResult
from solana_wallet_forensics.report.formatter import format_analysis
from solana_wallet_forensics.worker import AnalysisWorker

logger = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    """Statistics for the pipeline."""

    runs: int = 0
    transactions_processed: int = 0
    errors: int = 0
    last_run_at: datetime | None = None
    last_duration_seconds: float | None = None
    last_error: str | None = None


@dataclass(frozen=True)
class WalletReport:
    """All analysis outputs for one wallet and batch."""

    address: str
    graph: TransactionGraph
    funding: FundingAnalysisResult
    analysis: TransactionAnalysis
    patterns: DetectedPatterns
    label: AddressLabel | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "address": self.address,
            "graph": self.graph.to_dict(),
            "funding": self.funding.to_dict(),
            "analysis": format_analysis(self.analysis),
            "patterns": self.patterns.to_dict(),
            "label": self.label.to_dict() if self.label else None,
            "generated_at": self.generated_at.isoformat(),
        }


class AnalysisPipeline:
    """Runs every analysis for a wallet on a background worker.

    Example:
        ```python
        from solana_wallet_forensics.pipeline import AnalysisPipeline

        async with AnalysisPipeline() as pipeline:
            report = await pipeline.run(transactions, address)
            print(report.funding.exchange_percentage)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        worker: AnalysisWorker | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Application settings. If not provided, uses get_settings().
            worker: Background worker. A private one is created if not provided.
        """
        self._settings = settings or get_settings()
        self._worker = worker or AnalysisWorker()
        self._owns_worker = worker is None
        self._stats = PipelineStats()

        s = self._settings
        self._graph_builder = TransactionGraphBuilder(
            max_depth=s.graph.critical_path_max_depth,
            top_active_limit=s.graph.top_active_limit,
        )
        self._funding_tracker = FundingOriginTracker(exchange_sources=s.funding.exchange_sources)
        self._cluster_engine = ClusterEngine(
            AnomalyDetector(
                AnomalyThresholds(
                    high_value=s.anomaly.high_value,
                    rapid_succession_ms=s.anomaly.rapid_succession_ms,
                    mixer_transfer_count=s.anomaly.mixer_transfer_count,
                    mixer_max_fee=s.anomaly.mixer_max_fee,
                    new_counterparty_window_days=s.anomaly.new_counterparty_window_days,
                )
            )
        )
        self._pattern_detector = WalletPatternDetector(
            PatternDetectionConfig(
                small_input_threshold=s.pattern.small_input_threshold,
                small_input_count_threshold=s.pattern.small_input_count_threshold,
                small_input_time_window_hours=s.pattern.small_input_time_window_hours,
                token_dump_percentage=s.pattern.token_dump_percentage,
                token_dump_time_window_hours=s.pattern.token_dump_time_window_hours,
                exchange_label_category_code=s.pattern.exchange_label_category_code,
                exchange_recent_limit=s.pattern.exchange_recent_limit,
                exchange_small_amount=s.pattern.exchange_small_amount,
                exchange_large_amount=s.pattern.exchange_large_amount,
                exchange_small_count=s.pattern.exchange_small_count,
                exchange_large_count=s.pattern.exchange_large_count,
            )
        )

    @property
    def stats(self) -> PipelineStats:
        """Current pipeline statistics."""
        return self._stats

    @property
    def worker(self) -> AnalysisWorker:
        return self._worker

    async def run(
        self,
        transactions: Sequence[RawTransaction | dict[str, Any]] | None,
        address: str,
        *,
        label: AddressLabel | None = None,
        now: datetime | None = None,
    ) -> WalletReport:
        """Run all analyses concurrently over one batch.

        Args:
            transactions: Transaction batch (models or raw payload dicts).
            address: Focal wallet.
            label: Optional entity label for the wallet.
            now: Evaluation time for time-relative heuristics.

        Returns:
            WalletReport bundling every analysis output.

        Raises:
            GraphBuildError: If the batch or address is unusable.
            TimeoutError: If an analysis exceeds the configured timeout.
        """
        if transactions is not None and not isinstance(transactions, (list, tuple)):
            raise GraphBuildError(
                f"Expected a list of transactions, got {type(transactions).__name__}"
            )
        if not address:
            raise GraphBuildError("Invalid wallet address provided")

        # Parsed once; frozen models are shared read-only by all analyses.
        batch = parse_transactions(transactions or [])
        timeout = self._settings.worker.result_timeout_seconds
        started = time.monotonic()

        request_ids = [
            self._worker.submit(self._graph_builder.build, batch, address),
            self._worker.submit(self._funding_tracker.analyze, batch, address),
            self._worker.submit(self._cluster_engine.analyze, batch, now=now),
            self._worker.submit(self._pattern_detector.detect, address, batch, label=label, now=now),
        ]

        try:
            graph, funding, analysis, patterns = await asyncio.gather(
                *(self._worker.result(request_id, timeout=timeout) for request_id in request_ids)
            )
        except Exception as e:
            for request_id in request_ids:
                self._worker.cancel(request_id)
            self._stats.errors += 1
            self._stats.last_error = str(e) or type(e).__name__
            logger.error("Analysis of %s failed: %s", address, self._stats.last_error)
            raise

        elapsed = time.monotonic() - started
        self._stats.runs += 1
        self._stats.transactions_processed += len(batch)
        self._stats.last_run_at = datetime.now(UTC)
        self._stats.last_duration_seconds = elapsed
        logger.info(
            "Analyzed %s: %d transactions in %.3fs (%d nodes, %d clusters, %d funding sources)",
            address,
            len(batch),
            elapsed,
            graph.node_count,
            len(analysis.clusters),
            len(funding.sources),
        )
        return WalletReport(
            address=address,
            graph=graph,
            funding=funding,
            analysis=analysis,
            patterns=patterns,
            label=label,
        )

    async def analyze_address(
        self,
        address: str,
        *,
        fetch_transactions: TransactionFetcher,
        fetch_label: LabelFetcher | None = None,
        now: datetime | None = None,
    ) -> WalletReport:
        """Fetch a wallet's batch and label concurrently, then run all analyses.

        Raises:
            WalletAnalysisError: If the transactions cannot be fetched.
        """

        async def load_label() -> AddressLabel | None:
            if fetch_label is None:
                return None
            try:
                return await fetch_label(address)
            except Exception as e:
                logger.warning("Label lookup failed for %s: %s", address, e)
                return None

        try:
            transactions, label = await asyncio.gather(fetch_transactions(address), load_label())
        except Exception as e:
            self._stats.errors += 1
            self._stats.last_error = str(e) or type(e).__name__
            raise WalletAnalysisError(f"Failed to fetch transactions for {address}") from e

        return await self.run(list(transactions), address, label=label, now=now)

    async def close(self) -> None:
        """Release the worker if the pipeline created it."""
        if self._owns_worker:
            await self._worker.close()

    async def __aenter__(self) -> AnalysisPipeline:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
