"""Tests for the anomaly detector."""

from decimal import Decimal

import pytest

from solana_wallet_forensics.detector.anomaly import AnomalyDetector, AnomalyThresholds
from solana_wallet_forensics.detector.models import AnomalyReport, Connection, WalletAssociation
from solana_wallet_forensics.ingestor.models import NativeTransfer, RawTransaction, TokenTransfer


def create_tx(signature: str, timestamp: int | None) -> RawTransaction:
    """Create a bare transaction at the given time."""
    return RawTransaction(signature=signature, timestamp=timestamp)


@pytest.fixture
def detector() -> AnomalyDetector:
    return AnomalyDetector()


class TestValueChecks:
    """Tests for value-based checks."""

    def test_transaction_value_sums_native_and_token(self, detector):
        """Test native and token amounts are added without unit normalization."""
        tx = RawTransaction(
            signature="s",
            native_transfers=(NativeTransfer("A", "B", Decimal("600")),),
            token_transfers=(TokenTransfer("A", "B", "mint", Decimal("400")),),
        )
        assert detector.transaction_value(tx) == Decimal("1000")
        assert detector.is_high_value(tx)

    def test_below_threshold(self, detector):
        """Test values under the threshold are not flagged."""
        tx = RawTransaction(signature="s", native_transfers=(NativeTransfer("A", "B", Decimal("999.9")),))
        assert not detector.is_high_value(tx)

    def test_custom_threshold(self):
        """Test thresholds are configurable."""
        detector = AnomalyDetector(AnomalyThresholds(high_value=Decimal("5")))
        tx = RawTransaction(signature="s", native_transfers=(NativeTransfer("A", "B", Decimal("5")),))
        assert detector.is_high_value(tx)


class TestMixerPattern:
    """Tests for the mixer heuristic."""

    def _create_spray(self, count: int, fee: str) -> RawTransaction:
        return RawTransaction(
            signature="spray",
            fee=Decimal(fee),
            native_transfers=tuple(NativeTransfer("M", f"R{i}", Decimal(1)) for i in range(count)),
        )

    def test_many_transfers_low_fee(self, detector):
        """Test more than ten transfers with a low fee is a mixer pattern."""
        assert detector.is_mixer_pattern(self._create_spray(11, "5"))

    def test_exactly_ten_transfers(self, detector):
        """Test the transfer count must exceed the threshold."""
        assert not detector.is_mixer_pattern(self._create_spray(10, "5"))

    def test_normal_fee(self, detector):
        """Test a regular fee does not qualify."""
        assert not detector.is_mixer_pattern(self._create_spray(11, "5000"))


class TestNewCounterparty:
    """Tests for is_new_counterparty."""

    def test_unknown_is_new(self, detector):
        """Test a counterparty without a connection is new."""
        assert detector.is_new_counterparty(WalletAssociation(wallet="A"), "B", at=100)

    def test_stale_connection_is_new(self, detector):
        """Test a connection older than 30 days counts as new."""
        association = WalletAssociation(wallet="A", connected_wallets={"B": Connection(1, 0)})

        assert not detector.is_new_counterparty(association, "B", at=30 * 86_400)
        assert detector.is_new_counterparty(association, "B", at=30 * 86_400 + 1)

    def test_check_transaction_only_for_known_wallets(self, detector):
        """Test addresses without association history are not evaluated."""
        report = AnomalyReport()
        wallet_map = {"A": WalletAssociation(wallet="A")}
        tx = RawTransaction(signature="s", timestamp=10)

        detector.check_transaction(report, tx, involved=["A", "B", "C"], wallet_map=wallet_map, now=0)

        assert report.new_counterparties == ["B", "C"]


class TestRapidSuccession:
    """Tests for the temporal checks."""

    def test_adjacent_pairs_listed_once(self, detector):
        """Test a chain of close transactions lists each member once."""
        txs = [create_tx("a", 0), create_tx("b", 30), create_tx("c", 50), create_tx("d", 500)]
        assert [tx.signature for tx in detector.rapid_succession(txs)] == ["a", "b", "c"]

    def test_gap_at_threshold_not_flagged(self, detector):
        """Test a gap equal to the threshold is not rapid."""
        assert detector.rapid_succession([create_tx("a", 0), create_tx("b", 60)]) == []

    def test_missing_timestamp_skipped(self, detector):
        """Test pairs involving a missing timestamp never qualify."""
        assert detector.rapid_succession([create_tx("a", None), create_tx("b", 1)]) == []

    def test_absolute_gap(self, detector):
        """Test out-of-order neighbours are compared by absolute gap."""
        hits = detector.rapid_succession([create_tx("late", 40), create_tx("early", 10)])
        assert [tx.signature for tx in hits] == ["late", "early"]

    def test_detect_temporal_uses_both_orders(self, detector):
        """Test input order and chronological order each contribute hits."""
        report = AnomalyReport()
        txs = [create_tx("x", 1_000), create_tx("y", 0), create_tx("z", 1_030)]

        detector.detect_temporal(report, txs)

        # Input order finds nothing; time order finds x and z.
        assert [tx.signature for tx in report.rapid_succession] == ["x", "z"]
        assert report.total == 2
