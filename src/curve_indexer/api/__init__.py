"""HTTP query surface -- FastAPI app factory and JSON routes."""

from curve_indexer.api.app import create_app

__all__ = ["create_app"]
