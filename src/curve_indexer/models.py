"""Shared data models for the curve trend indexer.

CRITICAL: On-chain amounts are int (base units, 18 implied decimals) and become
Decimal only when converted to token units. Never use float for amounts.
"""

from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from enum import Enum
from typing import Union

TOKEN_DECIMALS = 18


def to_token_units(raw: int) -> Decimal:
    """Convert an 18-decimal fixed-point integer into token units.

    Exact for any uint256: the digits are kept and only the exponent moves,
    so the decimal context precision never applies. Trailing fractional
    zeros are dropped (10**12 becomes 0.000001).
    """
    if raw == 0:
        return Decimal(0)
    sign, digits, exponent = Decimal(raw).as_tuple()
    exponent -= TOKEN_DECIMALS
    while exponent < 0 and digits[-1] == 0:
        digits = digits[:-1]
        exponent += 1
    return Decimal((sign, digits, exponent))


def format_decimal(value: Decimal) -> str:
    """Render a Decimal as a plain string, never in scientific notation."""
    return format(value, "f")


def quantize_places(value: Decimal, places: Decimal) -> Decimal:
    """Round to a fixed number of places without overflowing the context.

    quantize raises InvalidOperation when the result needs more digits than
    the context precision, so the precision is sized to the value.
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() - places.as_tuple().exponent + 2)
        return value.quantize(places)


def to_millis(timestamp: float) -> int:
    """Convert epoch seconds to integer epoch milliseconds."""
    return int(timestamp * 1000)


class Momentum(str, Enum):
    """Short-window vs medium-window velocity comparison."""

    INCREASING = "increasing"
    DECREASING = "decreasing"


class VolumeLevel(str, Enum):
    """One-hour volume classification."""

    HIGH = "high"
    LOW = "low"


# ---------------------------------------------------------------------------
# Chain events (transport-neutral; produced by the chain client)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TradeEvent:
    """Decoded Trade(trader, isBuy, qty, costOrProceeds, stepIndex) log."""

    trader: str
    is_buy: bool
    quantity: int
    cost_or_proceeds: int
    step_index: int
    transaction_hash: str
    block_number: int
    log_index: int = 0


@dataclass(frozen=True)
class StepAdvancedEvent:
    """Decoded StepAdvanced(newStep, newPrice) log."""

    new_step: int
    new_price: int  # base units per token
    transaction_hash: str
    block_number: int
    log_index: int = 0


@dataclass(frozen=True)
class GraduatedEvent:
    """Decoded Graduated(tokensSoldOnCurve, nativeReserve, timestamp) log."""

    tokens_sold_on_curve: int
    native_reserve: int
    timestamp: int  # chain epoch seconds
    transaction_hash: str
    block_number: int
    log_index: int = 0


CurveEvent = Union[TradeEvent, StepAdvancedEvent, GraduatedEvent]


# ---------------------------------------------------------------------------
# Aggregator state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TradeRecord:
    """One observed trade, stamped with the aggregator's receipt time.

    observed_at is wall-clock receipt time, not block time: windows are
    computed over when the trade was seen.
    """

    transaction_hash: str
    trader: str
    is_buy: bool
    quantity: int
    cost_or_proceeds: int
    step_index: int
    observed_at: float
    block_number: int

    def to_dict(self) -> dict:
        return {
            "txHash": self.transaction_hash,
            "trader": self.trader,
            "isBuy": self.is_buy,
            "qty": str(self.quantity),
            "costOrProceeds": str(self.cost_or_proceeds),
            "stepIndex": self.step_index,
            "timestamp": to_millis(self.observed_at),
            "blockNumber": self.block_number,
        }


@dataclass
class CurveSnapshot:
    """Latest known curve step and price. Overwritten in place."""

    current_step: int
    current_price: Decimal  # token units per token
    captured_at: float

    def to_dict(self) -> dict:
        return {
            "currentStep": self.current_step,
            "currentPrice": format_decimal(self.current_price),
            "timestamp": to_millis(self.captured_at),
        }


@dataclass(frozen=True)
class GraduationRecord:
    """Terminal graduation state. Set once, never overwritten."""

    tokens_sold_on_curve: int
    native_reserve: int
    graduated_at: int  # chain epoch seconds
    transaction_hash: str
    block_number: int

    def to_dict(self) -> dict:
        return {
            "tokensSoldOnCurve": str(self.tokens_sold_on_curve),
            "nativeReserve": str(self.native_reserve),
            "graduatedAt": self.graduated_at,
            "txHash": self.transaction_hash,
            "blockNumber": self.block_number,
        }


# ---------------------------------------------------------------------------
# Query results
# ---------------------------------------------------------------------------

_VOLUME_PLACES = Decimal("0.000001")
_RATE_PLACES = Decimal("0.01")


@dataclass
class TrendingMetrics:
    """Windowed trading statistics. Values are unrounded until serialized."""

    trades_last_hour: int = 0
    buy_count: int = 0
    sell_count: int = 0
    total_volume: Decimal = Decimal("0")  # token units
    velocity_5min: Decimal = Decimal("0")  # trades per minute
    velocity_15min: Decimal = Decimal("0")
    price_change: Decimal = Decimal("0")  # percent, by step index

    def to_dict(self) -> dict:
        return {
            "tradesLastHour": self.trades_last_hour,
            "buyCount": self.buy_count,
            "sellCount": self.sell_count,
            "totalVolume": format_decimal(quantize_places(self.total_volume, _VOLUME_PLACES)),
            "velocity5Min": format_decimal(quantize_places(self.velocity_5min, _RATE_PLACES)),
            "velocity15Min": format_decimal(quantize_places(self.velocity_15min, _RATE_PLACES)),
            "priceChange": format_decimal(quantize_places(self.price_change, _RATE_PLACES)),
        }


@dataclass
class TrendingClassification:
    """Threshold heuristics derived from TrendingMetrics."""

    is_trending: bool
    momentum: Momentum
    volume: VolumeLevel

    def to_dict(self) -> dict:
        return {
            "isTrending": self.is_trending,
            "momentum": self.momentum.value,
            "volume": self.volume.value,
        }


@dataclass
class TrendingSnapshot:
    """Full /trending payload computed at a single instant."""

    timestamp: float
    curve_stats: CurveSnapshot | None
    graduation: GraduationRecord | None
    metrics: TrendingMetrics
    trending: TrendingClassification
    recent_trades: list[TradeRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "timestamp": to_millis(self.timestamp),
            "curveStats": self.curve_stats.to_dict() if self.curve_stats else None,
            "graduation": self.graduation.to_dict() if self.graduation else None,
            "metrics": self.metrics.to_dict(),
            "recentTrades": [t.to_dict() for t in self.recent_trades],
            "trending": self.trending.to_dict(),
        }


@dataclass
class TradesPage:
    """Result of a GetTrades query."""

    trades: list[TradeRecord]
    total: int
    timestamp: float

    def to_dict(self) -> dict:
        return {
            "trades": [t.to_dict() for t in self.trades],
            "count": len(self.trades),
            "total": self.total,
            "timestamp": to_millis(self.timestamp),
        }
