"""Indexer layer -- trade ledger, windowed metrics, aggregator and event subscriber."""

from curve_indexer.indexer.aggregator import TrendAggregator
from curve_indexer.indexer.ledger import TradeLedger
from curve_indexer.indexer.metrics import classify, compute_metrics
from curve_indexer.indexer.subscriber import EventSubscriber

__all__ = [
    "EventSubscriber",
    "TradeLedger",
    "TrendAggregator",
    "classify",
    "compute_metrics",
]
