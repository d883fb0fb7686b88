"""Shared test fixtures for the curve trend indexer."""

import itertools

import pytest

from curve_indexer.config import (
    AppSettings,
    ChainSettings,
    IndexerSettings,
    ServerSettings,
    TrendSettings,
)
from curve_indexer.indexer.aggregator import TrendAggregator
from curve_indexer.models import GraduatedEvent, StepAdvancedEvent, TradeEvent

ONE_TOKEN = 10**18
CURVE_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
START_TIME = 1_700_000_000.0

_tx_counter = itertools.count(1)


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_trade_event(
    trader: str = "0xAbC0000000000000000000000000000000000001",
    is_buy: bool = True,
    quantity: int = 100 * ONE_TOKEN,
    cost_or_proceeds: int = ONE_TOKEN,
    step_index: int = 0,
    block_number: int = 100,
    log_index: int = 0,
) -> TradeEvent:
    """Build a TradeEvent with a unique transaction hash."""
    return TradeEvent(
        trader=trader,
        is_buy=is_buy,
        quantity=quantity,
        cost_or_proceeds=cost_or_proceeds,
        step_index=step_index,
        transaction_hash=f"0x{next(_tx_counter):064x}",
        block_number=block_number,
        log_index=log_index,
    )


def make_step_event(new_step: int, new_price: int, block_number: int = 100) -> StepAdvancedEvent:
    return StepAdvancedEvent(
        new_step=new_step,
        new_price=new_price,
        transaction_hash=f"0x{next(_tx_counter):064x}",
        block_number=block_number,
    )


def make_graduated_event(
    tokens_sold: int = 800_000_000 * ONE_TOKEN,
    reserve: int = 24 * ONE_TOKEN,
    timestamp: int = 1_700_000_500,
    block_number: int = 200,
) -> GraduatedEvent:
    return GraduatedEvent(
        tokens_sold_on_curve=tokens_sold,
        native_reserve=reserve,
        timestamp=timestamp,
        transaction_hash=f"0x{next(_tx_counter):064x}",
        block_number=block_number,
    )


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults and a configured curve."""
    return AppSettings(
        log_level="DEBUG",
        chain=ChainSettings(
            rpc_url="http://localhost:8545",
            curve_address=CURVE_ADDRESS,
        ),
        indexer=IndexerSettings(poll_interval=0.01),
        trend=TrendSettings(),
        server=ServerSettings(port=3001),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def aggregator(mock_settings: AppSettings, clock: FakeClock) -> TrendAggregator:
    """Fresh TrendAggregator driven by the fake clock."""
    return TrendAggregator(mock_settings.indexer, mock_settings.trend, clock=clock)
