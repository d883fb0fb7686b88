"""Tests for component wiring and the lifespan startup/shutdown path."""

import asyncio
import time
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from curve_indexer.api.app import create_app
from curve_indexer.chain.client import CurveClient
from curve_indexer.chain.web3_client import Web3CurveClient
from curve_indexer.config import AppSettings, ChainSettings
from curve_indexer.exceptions import ChainUnavailableError
from curve_indexer.indexer.aggregator import TrendAggregator
from curve_indexer.indexer.subscriber import EventSubscriber
from curve_indexer.main import build_components, lifespan, start_chain_side


def _mock_components(aggregator: TrendAggregator) -> dict:
    client = AsyncMock(spec=CurveClient)
    client.curve_address = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
    client.get_current_step.return_value = 1
    client.get_current_price.return_value = Decimal("0.000001")
    subscriber = AsyncMock(spec=EventSubscriber)
    subscriber.status.return_value = {
        "running": True,
        "connected": True,
        "lastBlock": 100,
        "eventsDispatched": 0,
    }
    return {"aggregator": aggregator, "client": client, "subscriber": subscriber}


def _real_subscriber_components(aggregator: TrendAggregator) -> dict:
    """Mocked client behind a real EventSubscriber polling every 10ms."""
    components = _mock_components(aggregator)
    client = components["client"]
    client.get_block_number.return_value = 100
    client.fetch_events.return_value = []
    components["subscriber"] = EventSubscriber(client, aggregator, poll_interval=0.01)
    return components


# ===========================================================================
# build_components
# ===========================================================================


class TestBuildComponents:

    def test_no_curve_address(self) -> None:
        components = build_components(AppSettings(chain=ChainSettings(curve_address="")))
        assert isinstance(components["aggregator"], TrendAggregator)
        assert components["client"] is None
        assert components["subscriber"] is None

    def test_configured_curve(self, mock_settings: AppSettings) -> None:
        components = build_components(mock_settings)
        assert isinstance(components["client"], Web3CurveClient)
        assert isinstance(components["subscriber"], EventSubscriber)
        assert components["aggregator"].ledger.retention_cap == (
            mock_settings.indexer.retention_cap
        )

    def test_invalid_curve_address(self) -> None:
        components = build_components(
            AppSettings(chain=ChainSettings(curve_address="0x1234"))
        )
        assert components["client"] is None
        assert components["subscriber"] is None


# ===========================================================================
# start_chain_side
# ===========================================================================


class TestStartChainSide:

    @pytest.mark.asyncio
    async def test_starts_subscriber(self, aggregator: TrendAggregator) -> None:
        components = _mock_components(aggregator)
        assert await start_chain_side(components) is True
        components["subscriber"].start.assert_awaited_once()
        # Connecting and seeding belong to the subscriber's poll loop
        components["client"].connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_nothing_configured(self, aggregator: TrendAggregator) -> None:
        components = {"aggregator": aggregator, "client": None, "subscriber": None}
        assert await start_chain_side(components) is False

    @pytest.mark.asyncio
    async def test_boot_outage_is_retried(self, aggregator: TrendAggregator) -> None:
        components = _real_subscriber_components(aggregator)
        client = components["client"]
        client.connect.side_effect = [ChainUnavailableError("blip"), None]

        assert await start_chain_side(components) is True
        for _ in range(100):
            if components["subscriber"].last_block is not None:
                break
            await asyncio.sleep(0.01)
        await components["subscriber"].stop()

        assert client.connect.await_count == 2
        assert components["subscriber"].last_block == 100
        assert aggregator.curve_stats is not None
        assert aggregator.curve_stats.current_step == 1


# ===========================================================================
# lifespan
# ===========================================================================


class TestLifespan:

    def test_subscriber_exposed_and_stopped(
        self, aggregator: TrendAggregator, mock_settings: AppSettings
    ) -> None:
        components = _mock_components(aggregator)
        app = create_app(aggregator, mock_settings, lifespan=lifespan)
        app.state.components = components

        with TestClient(app) as http:
            body = http.get("/health").json()
            assert body["subscriber"]["running"] is True
            assert body["subscriber"]["lastBlock"] == 100

        components["subscriber"].stop.assert_awaited_once()
        components["client"].close.assert_awaited_once()

    def test_serves_without_chain(
        self, aggregator: TrendAggregator, mock_settings: AppSettings
    ) -> None:
        app = create_app(aggregator, mock_settings, lifespan=lifespan)
        app.state.components = {
            "aggregator": aggregator,
            "client": None,
            "subscriber": None,
        }

        with TestClient(app) as http:
            assert http.get("/health").json()["subscriber"] is None
            assert http.get("/trending").status_code == 200

    def test_health_reports_recovery_after_boot_outage(
        self, aggregator: TrendAggregator, mock_settings: AppSettings
    ) -> None:
        components = _real_subscriber_components(aggregator)
        components["client"].connect.side_effect = [ChainUnavailableError("blip"), None]
        app = create_app(aggregator, mock_settings, lifespan=lifespan)
        app.state.components = components

        with TestClient(app) as http:
            for _ in range(100):
                status = http.get("/health").json()["subscriber"]
                if status["lastBlock"] is not None:
                    break
                time.sleep(0.01)

            assert status["running"] is True
            assert status["connected"] is True
            assert status["lastBlock"] == 100

        assert components["client"].connect.await_count == 2
        components["client"].close.assert_awaited_once()
