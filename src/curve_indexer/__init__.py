"""Bonding-curve trade event indexer with windowed trending metrics."""

__version__ = "0.1.0"
