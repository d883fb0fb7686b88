"""Bounded, newest-first in-memory trade ledger.

Backed by a deque with maxlen: appendleft is O(1) and, once the cap is
reached, silently drops the oldest record from the right end.
"""

from collections import deque
from collections.abc import Iterator
from itertools import islice

from curve_indexer.models import TradeRecord

DEFAULT_RETENTION_CAP = 1000


class TradeLedger:
    """Newest-first trade store capped at ``retention_cap`` records.

    Not locked: all mutation happens synchronously on the event loop, so a
    reader never observes a half-applied insert.
    """

    def __init__(self, retention_cap: int = DEFAULT_RETENTION_CAP) -> None:
        if retention_cap < 1:
            raise ValueError(f"retention_cap must be positive, got {retention_cap}")
        self._trades: deque[TradeRecord] = deque(maxlen=retention_cap)

    @property
    def retention_cap(self) -> int:
        return self._trades.maxlen or 0

    def prepend(self, trade: TradeRecord) -> None:
        """Insert a trade at the front, evicting the oldest when full."""
        self._trades.appendleft(trade)

    def latest(self, n: int) -> list[TradeRecord]:
        """Return up to n most recent trades, newest first."""
        if n <= 0:
            return []
        return list(islice(self._trades, n))

    def __len__(self) -> int:
        return len(self._trades)

    def __iter__(self) -> Iterator[TradeRecord]:
        return iter(self._trades)
