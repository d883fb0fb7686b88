"""Abstract curve client interface.

Defines the contract for reading one bonding-curve contract over JSON-RPC.
The subscriber and aggregator depend only on this interface, keeping
web3-specific details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from curve_indexer.models import CurveEvent


class CurveClient(ABC):
    """Abstract base class for bonding-curve chain clients."""

    @property
    @abstractmethod
    def curve_address(self) -> str:
        """Checksummed address of the indexed curve contract."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Open the RPC session and bind the contract."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the RPC session."""
        ...

    @abstractmethod
    async def get_block_number(self) -> int:
        """Return the current chain head."""
        ...

    @abstractmethod
    async def get_current_step(self) -> int:
        """Read getCurrentStep() from the curve."""
        ...

    @abstractmethod
    async def get_current_price(self) -> Decimal:
        """Read getCurrentPrice() from the curve, in token units."""
        ...

    @abstractmethod
    async def fetch_events(self, from_block: int, to_block: int) -> list[CurveEvent]:
        """Fetch and decode Trade/StepAdvanced/Graduated logs in a block range.

        Both bounds are inclusive. Returned events are ordered by
        (block_number, log_index). Undecodable logs are skipped.
        Range chunking is NOT handled here -- callers bound the range.
        """
        ...
