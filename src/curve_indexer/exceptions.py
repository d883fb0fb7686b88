"""Custom exceptions for the curve trend indexer.

Chain-layer and aggregator exceptions live here to avoid circular imports
between the chain client, the subscriber and the aggregator.
"""


class IndexerError(Exception):
    """Base exception for all indexer errors."""


class ChainUnavailableError(IndexerError):
    """Raised when the JSON-RPC endpoint cannot be reached or errors out."""


class EventDecodeError(IndexerError):
    """Raised when a log cannot be decoded into a known curve event."""


class CurveAlreadyGraduatedError(IndexerError):
    """Raised when a second Graduated event arrives for the same curve."""
