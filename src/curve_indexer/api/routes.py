"""JSON query endpoints: trending metrics, curve stats, recent trades, health.

All reads go through the TrendAggregator on app.state; no route touches the
chain. Amounts are serialized as decimal strings (see models.to_dict).
"""

from __future__ import annotations

import re

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from curve_indexer.indexer.aggregator import TrendAggregator
from curve_indexer.models import to_millis

router = APIRouter()

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _aggregator(request: Request) -> TrendAggregator:
    return request.app.state.aggregator


def parse_limit(raw: str | None) -> int | None:
    """Coerce the ?limit query value from its leading integer.

    "10abc" and "5.5" give 10 and 5. No leading integer, or a negative one,
    gives None.
    """
    if raw is None:
        return None
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    value = int(match.group(1))
    return value if value >= 0 else None


@router.get("/trending")
async def get_trending(request: Request) -> JSONResponse:
    """Windowed metrics, classification and the most recent trades."""
    snapshot = _aggregator(request).get_trending_snapshot()
    return JSONResponse(content=snapshot.to_dict())


@router.get("/curve-stats")
async def get_curve_stats(request: Request) -> JSONResponse:
    """Current curve step/price and graduation record as stored."""
    return JSONResponse(content=_aggregator(request).get_curve_stats())


@router.get("/trades")
async def get_trades(request: Request, limit: str | None = None) -> JSONResponse:
    """Most recent trades. Invalid limits fall back to the default; never a 400."""
    page = _aggregator(request).get_trades(parse_limit(limit))
    return JSONResponse(content=page.to_dict())


@router.get("/health")
async def get_health(request: Request) -> JSONResponse:
    """Liveness plus indexer configuration and subscriber progress."""
    aggregator = _aggregator(request)
    settings = request.app.state.settings
    subscriber = getattr(request.app.state, "subscriber", None)

    return JSONResponse(content={
        "status": "healthy",
        "timestamp": to_millis(aggregator.now()),
        "curveAddress": settings.chain.curve_address or None,
        "rpc": settings.chain.rpc_url,
        "tradesCount": len(aggregator.ledger),
        "hasGraduated": aggregator.has_graduated,
        "subscriber": subscriber.status() if subscriber is not None else None,
    })
