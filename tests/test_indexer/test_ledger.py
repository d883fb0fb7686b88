"""Tests for the bounded newest-first trade ledger."""

import pytest

from curve_indexer.indexer.ledger import DEFAULT_RETENTION_CAP, TradeLedger
from curve_indexer.models import TradeRecord


def _record(n: int) -> TradeRecord:
    return TradeRecord(
        transaction_hash=f"0x{n:064x}",
        trader="0xabc",
        is_buy=True,
        quantity=n,
        cost_or_proceeds=n,
        step_index=0,
        observed_at=float(n),
        block_number=n,
    )


class TestTradeLedgerRetention:
    """Retention cap and eviction order."""

    def test_default_cap_is_1000(self) -> None:
        assert TradeLedger().retention_cap == DEFAULT_RETENTION_CAP == 1000

    def test_1500_inserts_keep_newest_1000(self) -> None:
        ledger = TradeLedger()
        for n in range(1500):
            ledger.prepend(_record(n))

        assert len(ledger) == 1000
        block_numbers = [t.block_number for t in ledger]
        # Newest first: 1499, 1498, ..., 500
        assert block_numbers == list(range(1499, 499, -1))

    def test_below_cap_keeps_everything(self) -> None:
        ledger = TradeLedger(retention_cap=10)
        for n in range(3):
            ledger.prepend(_record(n))
        assert len(ledger) == 3
        assert [t.block_number for t in ledger] == [2, 1, 0]

    def test_small_cap_evicts_oldest(self) -> None:
        ledger = TradeLedger(retention_cap=2)
        for n in range(5):
            ledger.prepend(_record(n))
        assert [t.block_number for t in ledger] == [4, 3]

    @pytest.mark.parametrize("cap", [0, -1])
    def test_non_positive_cap_rejected(self, cap: int) -> None:
        with pytest.raises(ValueError):
            TradeLedger(retention_cap=cap)


class TestTradeLedgerLatest:
    """Newest-first slicing."""

    def test_latest_returns_newest_first(self) -> None:
        ledger = TradeLedger()
        for n in range(10):
            ledger.prepend(_record(n))
        assert [t.block_number for t in ledger.latest(3)] == [9, 8, 7]

    def test_latest_larger_than_size(self) -> None:
        ledger = TradeLedger()
        ledger.prepend(_record(1))
        assert len(ledger.latest(50)) == 1

    def test_latest_zero_or_negative_is_empty(self) -> None:
        ledger = TradeLedger()
        ledger.prepend(_record(1))
        assert ledger.latest(0) == []
        assert ledger.latest(-3) == []

    def test_latest_is_a_copy(self) -> None:
        ledger = TradeLedger()
        ledger.prepend(_record(1))
        page = ledger.latest(1)
        page.clear()
        assert len(ledger) == 1
