"""Detection layer - Clusters, anomalies and wallet risk patterns."""

from solana_wallet_forensics.detector.anomaly import AnomalyDetector, AnomalyThresholds
from solana_wallet_forensics.detector.clustering import ClusterEngine, analyze_transactions
from solana_wallet_forensics.detector.models import (
    AnomalyReport,
    Cluster,
    Connection,
    DetectedPatterns,
    ManySmallInputsDetail,
    SuddenTokenDumpDetail,
    TransactionAnalysis,
    WalletAnalysisResult,
    WalletAssociation,
)
from solana_wallet_forensics.detector.patterns import (
    PatternDetectionConfig,
    WalletAnalysisError,
    WalletPatternDetector,
    analyze_wallet,
    detect_wallet_patterns,
)

__all__ = [
    "AnomalyDetector",
    "AnomalyReport",
    "AnomalyThresholds",
    "Cluster",
    "ClusterEngine",
    "Connection",
    "DetectedPatterns",
    "ManySmallInputsDetail",
    "PatternDetectionConfig",
    "SuddenTokenDumpDetail",
    "TransactionAnalysis",
    "WalletAnalysisError",
    "WalletAnalysisResult",
    "WalletAssociation",
    "WalletPatternDetector",
    "analyze_transactions",
    "analyze_wallet",
    "detect_wallet_patterns",
]
