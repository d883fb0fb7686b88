"""Entry point for the curve trend indexer.

Wires all components together and serves the query API. The event
subscriber and the FastAPI app share a single asyncio event loop via
uvicorn's programmatic API and FastAPI's lifespan context manager.

Component wiring order (in build_components):
1. AppSettings (configuration)
2. Logging setup
3. TrendAggregator (ledger, snapshot, graduation)
4. Web3CurveClient (skipped when CHAIN_CURVE_ADDRESS is unset)
5. EventSubscriber (poll loop feeding the aggregator)

Startup never fails on chain problems: connect, seed and subscription errors
are logged and retried by the subscriber while the query surface keeps
serving empty/zero statistics.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from curve_indexer.api.app import create_app
from curve_indexer.chain.web3_client import Web3CurveClient
from curve_indexer.config import AppSettings
from curve_indexer.exceptions import IndexerError
from curve_indexer.indexer.aggregator import TrendAggregator
from curve_indexer.indexer.subscriber import EventSubscriber
from curve_indexer.logging import bind_curve_context, get_logger, setup_logging

ENDPOINTS = ("/trending", "/curve-stats", "/trades", "/health")


def build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the aggregator and, when a curve is configured, the chain side.

    Does NOT connect to the RPC -- that happens in the lifespan.

    Returns:
        Dict with "aggregator", "client" and "subscriber"; the latter two
        are None when no curve address is configured or it is invalid.
    """
    logger = get_logger("curve_indexer.main")

    aggregator = TrendAggregator(settings.indexer, settings.trend)
    components: dict[str, Any] = {
        "aggregator": aggregator,
        "client": None,
        "subscriber": None,
    }

    if not settings.chain.curve_address:
        logger.warning(
            "no_curve_address_configured",
            note="Event listening disabled. Set CHAIN_CURVE_ADDRESS to index a curve.",
        )
        return components

    try:
        client = Web3CurveClient(settings.chain)
    except IndexerError:
        logger.error("curve_client_init_failed", exc_info=True)
        return components

    components["client"] = client
    components["subscriber"] = EventSubscriber(
        client,
        aggregator,
        poll_interval=settings.indexer.poll_interval,
        start_block=settings.indexer.start_block,
        max_block_range=settings.indexer.max_block_range,
    )
    return components


async def start_chain_side(components: dict[str, Any]) -> bool:
    """Start the subscriber, which connects and seeds the curve snapshot.

    RPC failures never surface here: the subscriber retries connecting
    on every poll interval, so the HTTP surface comes up regardless.
    Returns True if a subscriber was started.
    """
    logger = get_logger("curve_indexer.main")
    client = components["client"]
    subscriber = components["subscriber"]
    if client is None or subscriber is None:
        return False

    await subscriber.start()
    logger.info("listening_for_curve_events", curve=client.curve_address)
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage chain-side lifecycle within the FastAPI application.

    On startup: starts the subscriber (which connects and seeds in the
    background) and exposes it on app.state for /health.

    On shutdown: stops the subscriber, then closes the RPC session.
    """
    logger = get_logger("curve_indexer.main")
    components = app.state.components

    if await start_chain_side(components):
        app.state.subscriber = components["subscriber"]

    settings: AppSettings = app.state.settings
    base = f"http://localhost:{settings.server.port}"
    logger.info("indexer_started", endpoints=[base + path for path in ENDPOINTS])

    yield

    if components["subscriber"] is not None:
        await components["subscriber"].stop()
    if components["client"] is not None:
        await components["client"].close()

    logger.info("indexer_stopped")


async def run() -> None:
    """Run the indexer: build components and serve the API via uvicorn.

    SIGINT/SIGTERM are handled by uvicorn, which drives the lifespan
    shutdown path above.
    """
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level)
    bind_curve_context(settings.chain.curve_address, settings.chain.rpc_url)
    logger = get_logger("curve_indexer.main")

    # 3-5. Build components
    components = build_components(settings)

    app = create_app(components["aggregator"], settings, lifespan=lifespan)
    app.state.components = components

    logger.info(
        "starting_indexer",
        host=settings.server.host,
        port=settings.server.port,
        retention_cap=settings.indexer.retention_cap,
    )

    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # keep the structlog handlers installed above
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
