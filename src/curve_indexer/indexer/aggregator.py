"""Trade event aggregator -- owns all indexer state for one curve.

Holds the trade ledger, the current curve snapshot and the (one-time)
graduation record. Chain events arrive through ``handle_event``; HTTP routes
read through the query methods. Handlers never await, so on a single event
loop every mutation is atomic with respect to readers.

Graduation is first-write-wins: a second Graduated event is an anomaly that
is logged and dropped, never applied.
"""

import asyncio
import time
from collections.abc import Callable

from curve_indexer.chain.client import CurveClient
from curve_indexer.config import IndexerSettings, TrendSettings
from curve_indexer.exceptions import CurveAlreadyGraduatedError
from curve_indexer.indexer import metrics
from curve_indexer.indexer.ledger import TradeLedger
from curve_indexer.logging import get_logger
from curve_indexer.models import (
    CurveEvent,
    CurveSnapshot,
    GraduatedEvent,
    GraduationRecord,
    StepAdvancedEvent,
    TradeEvent,
    TradeRecord,
    TradesPage,
    TrendingSnapshot,
    to_millis,
    to_token_units,
)

logger = get_logger(__name__)


class TrendAggregator:
    """In-memory trade ledger plus windowed trending queries.

    Args:
        indexer_settings: Retention cap and page sizes.
        trend_settings: Classification thresholds.
        clock: Returns epoch seconds. Injected so tests control window edges.
    """

    def __init__(
        self,
        indexer_settings: IndexerSettings | None = None,
        trend_settings: TrendSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = indexer_settings or IndexerSettings()
        self._trend = trend_settings or TrendSettings()
        self._clock = clock
        self._ledger = TradeLedger(self._settings.retention_cap)
        self._curve_stats: CurveSnapshot | None = None
        self._graduation: GraduationRecord | None = None

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def ledger(self) -> TradeLedger:
        return self._ledger

    @property
    def curve_stats(self) -> CurveSnapshot | None:
        return self._curve_stats

    @property
    def graduation(self) -> GraduationRecord | None:
        return self._graduation

    @property
    def has_graduated(self) -> bool:
        return self._graduation is not None

    def now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Startup seeding
    # ------------------------------------------------------------------

    async def seed(self, client: CurveClient) -> bool:
        """Read the current step and price once to initialize the snapshot.

        Failure is logged and leaves curve_stats as None; the aggregator
        stays usable. Returns True if the snapshot was seeded.
        """
        try:
            step, price = await asyncio.gather(
                client.get_current_step(), client.get_current_price()
            )
        except Exception:
            logger.warning(
                "curve_stats_seed_failed",
                curve=client.curve_address,
                exc_info=True,
            )
            return False

        self._curve_stats = CurveSnapshot(
            current_step=step,
            current_price=price,
            captured_at=self._clock(),
        )
        logger.info("curve_stats_seeded", step=step, price=str(price))
        return True

    # ------------------------------------------------------------------
    # Event ingestion
    # ------------------------------------------------------------------

    def handle_event(self, event: CurveEvent) -> None:
        """Apply one chain event. Never raises.

        This is the handler boundary: any exception is logged here so a bad
        event cannot kill the subscription that delivered it.
        """
        try:
            if isinstance(event, TradeEvent):
                self.record_trade(event)
            elif isinstance(event, StepAdvancedEvent):
                self.record_step_advanced(event)
            elif isinstance(event, GraduatedEvent):
                self.record_graduation(event)
            else:
                logger.warning("unknown_curve_event", event_type=type(event).__name__)
        except CurveAlreadyGraduatedError:
            stored = self._graduation
            logger.error(
                "duplicate_graduation",
                tx=event.transaction_hash,
                block=event.block_number,
                first_tx=stored.transaction_hash if stored else None,
                first_block=stored.block_number if stored else None,
            )
        except Exception:
            logger.exception(
                "event_handler_error",
                event_type=type(event).__name__,
                tx=getattr(event, "transaction_hash", None),
            )

    def record_trade(self, event: TradeEvent) -> TradeRecord:
        """Stamp a Trade event with receipt time and prepend it to the ledger."""
        trade = TradeRecord(
            transaction_hash=event.transaction_hash,
            trader=event.trader.lower(),
            is_buy=event.is_buy,
            quantity=event.quantity,
            cost_or_proceeds=event.cost_or_proceeds,
            step_index=event.step_index,
            observed_at=self._clock(),
            block_number=event.block_number,
        )
        self._ledger.prepend(trade)

        logger.info(
            "trade_recorded",
            side="buy" if trade.is_buy else "sell",
            qty=str(to_token_units(trade.quantity)),
            native=str(to_token_units(trade.cost_or_proceeds)),
            step=trade.step_index,
            block=trade.block_number,
        )
        return trade

    def record_step_advanced(self, event: StepAdvancedEvent) -> CurveSnapshot:
        """Overwrite the curve snapshot with the new step and price."""
        price = to_token_units(event.new_price)
        now = self._clock()
        if self._curve_stats is None:
            self._curve_stats = CurveSnapshot(
                current_step=event.new_step,
                current_price=price,
                captured_at=now,
            )
        else:
            self._curve_stats.current_step = event.new_step
            self._curve_stats.current_price = price
            self._curve_stats.captured_at = now

        logger.info("step_advanced", step=event.new_step, price=str(price))
        return self._curve_stats

    def record_graduation(self, event: GraduatedEvent) -> GraduationRecord:
        """Set the graduation record.

        Raises:
            CurveAlreadyGraduatedError: If the curve already graduated.
        """
        if self._graduation is not None:
            raise CurveAlreadyGraduatedError(
                f"curve already graduated in {self._graduation.transaction_hash}"
            )

        self._graduation = GraduationRecord(
            tokens_sold_on_curve=event.tokens_sold_on_curve,
            native_reserve=event.native_reserve,
            graduated_at=event.timestamp,
            transaction_hash=event.transaction_hash,
            block_number=event.block_number,
        )
        logger.info(
            "curve_graduated",
            tokens_sold=str(to_token_units(event.tokens_sold_on_curve)),
            reserve=str(to_token_units(event.native_reserve)),
            tx=event.transaction_hash,
        )
        return self._graduation

    # ------------------------------------------------------------------
    # Queries (pure reads)
    # ------------------------------------------------------------------

    def get_trending_snapshot(self, now: float | None = None) -> TrendingSnapshot:
        """Compute windowed metrics and trending classification at ``now``."""
        if now is None:
            now = self._clock()

        trades = list(self._ledger)
        computed = metrics.compute_metrics(trades, now)
        classification = metrics.classify(
            computed,
            trending_velocity_threshold=self._trend.trending_velocity_threshold,
            high_volume_threshold=self._trend.high_volume_threshold,
        )

        return TrendingSnapshot(
            timestamp=now,
            curve_stats=self._curve_stats,
            graduation=self._graduation,
            metrics=computed,
            recent_trades=trades[: self._settings.recent_trades],
            trending=classification,
        )

    def get_trades(self, limit: int | None = None) -> TradesPage:
        """Return the ``limit`` most recent trades plus the ledger size.

        A missing or negative limit falls back to the default page size.
        The result is clamped to the ledger size.
        """
        if limit is None or limit < 0:
            limit = self._settings.default_trade_limit
        limit = min(limit, len(self._ledger))
        return TradesPage(
            trades=self._ledger.latest(limit),
            total=len(self._ledger),
            timestamp=self._clock(),
        )

    def get_curve_stats(self) -> dict:
        """Return the stored snapshot and graduation record verbatim."""
        return {
            "curveStats": self._curve_stats.to_dict() if self._curve_stats else None,
            "graduation": self._graduation.to_dict() if self._graduation else None,
            "timestamp": to_millis(self._clock()),
        }
