"""FastAPI application factory for the indexer query surface."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from curve_indexer.api import routes
from curve_indexer.config import AppSettings
from curve_indexer.indexer.aggregator import TrendAggregator


def create_app(
    aggregator: TrendAggregator,
    settings: AppSettings,
    lifespan: Any = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The aggregator is injected rather than created here so the event
    subscriber and the HTTP routes share one instance.

    Args:
        aggregator: The TrendAggregator serving every query.
        settings: Application settings (exposed to /health).
        lifespan: Optional async context manager for startup/shutdown.
                  Used by main.py to start seeding and the subscriber.

    Returns:
        Configured FastAPI application with CORS and routes.
    """
    app = FastAPI(
        title="Curve Trend Indexer",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.aggregator = aggregator
    app.state.settings = settings
    # Set by the lifespan once the subscriber starts
    app.state.subscriber = None

    app.include_router(routes.router)

    return app
