"""Windowed trading-activity metrics.

Pure Decimal functions over newest-first trade sequences: window filtering,
volume, velocity, step-based price change and the trending heuristics.
No I/O, no clock access -- ``now`` is always passed in.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from curve_indexer.models import (
    Momentum,
    TradeRecord,
    TrendingClassification,
    TrendingMetrics,
    VolumeLevel,
    to_token_units,
)

HOUR_WINDOW_MINUTES = 60
MEDIUM_WINDOW_MINUTES = 15
SHORT_WINDOW_MINUTES = 5


def trades_in_window(
    trades: Iterable[TradeRecord], now: float, window_minutes: int
) -> list[TradeRecord]:
    """Return trades observed within the last ``window_minutes`` of ``now``.

    The window is closed at its start (observed_at >= now - window). Input
    order is preserved, so newest-first in gives newest-first out.
    """
    cutoff = now - window_minutes * 60
    return [t for t in trades if t.observed_at >= cutoff]


def total_volume(trades: Iterable[TradeRecord]) -> Decimal:
    """Sum cost_or_proceeds across buys and sells, in token units.

    Summed as int in base units and converted once, so no precision is lost.
    """
    return to_token_units(sum(t.cost_or_proceeds for t in trades))


def velocity(trade_count: int, window_minutes: int) -> Decimal:
    """Trades per minute over a window. Zero trades gives Decimal 0."""
    return Decimal(trade_count) / Decimal(window_minutes)


def price_change_pct(window_trades: Sequence[TradeRecord]) -> Decimal:
    """Percent change in step index from the oldest to the newest trade.

    Args:
        window_trades: Trades in a single window, newest first.

    Returns:
        (newest.step - oldest.step) / oldest.step * 100, or 0 when fewer
        than two trades are present or the oldest step is 0.
    """
    if len(window_trades) < 2:
        return Decimal("0")

    newest = window_trades[0]
    oldest = window_trades[-1]
    if oldest.step_index == 0:
        return Decimal("0")

    delta = Decimal(newest.step_index - oldest.step_index)
    return delta / Decimal(oldest.step_index) * Decimal("100")


def compute_metrics(trades: Sequence[TradeRecord], now: float) -> TrendingMetrics:
    """Compute 1h/15m/5m metrics from a newest-first trade sequence."""
    last_hour = trades_in_window(trades, now, HOUR_WINDOW_MINUTES)
    # Sub-windows are subsets of the hour; filter the smaller list.
    last_15 = trades_in_window(last_hour, now, MEDIUM_WINDOW_MINUTES)
    last_5 = trades_in_window(last_15, now, SHORT_WINDOW_MINUTES)

    buy_count = sum(1 for t in last_hour if t.is_buy)

    return TrendingMetrics(
        trades_last_hour=len(last_hour),
        buy_count=buy_count,
        sell_count=len(last_hour) - buy_count,
        total_volume=total_volume(last_hour),
        velocity_5min=velocity(len(last_5), SHORT_WINDOW_MINUTES),
        velocity_15min=velocity(len(last_15), MEDIUM_WINDOW_MINUTES),
        price_change=price_change_pct(last_hour),
    )


def classify(
    metrics: TrendingMetrics,
    trending_velocity_threshold: Decimal = Decimal("2.0"),
    high_volume_threshold: Decimal = Decimal("1.0"),
) -> TrendingClassification:
    """Apply the fixed-threshold trending heuristics.

    Momentum compares the 5m and 15m averages directly; it is not a
    derivative. All comparisons are strict.
    """
    momentum = (
        Momentum.INCREASING
        if metrics.velocity_5min > metrics.velocity_15min
        else Momentum.DECREASING
    )
    volume = (
        VolumeLevel.HIGH
        if metrics.total_volume > high_volume_threshold
        else VolumeLevel.LOW
    )
    return TrendingClassification(
        is_trending=metrics.velocity_5min > trending_velocity_threshold,
        momentum=momentum,
        volume=volume,
    )
