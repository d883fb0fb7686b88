"""Curve event subscriber -- polls eth_getLogs and feeds the aggregator.

Uses HTTP polling (not a websocket subscription), which is also what a
JSON-RPC provider does under a `contract.on(...)` listener. One background
task owns the block cursor; each poll fetches the new block range in
bounded chunks and dispatches the decoded events synchronously, in
(block_number, log_index) order, one at a time. Handlers therefore never
overlap.

The cursor advances only after a chunk has been dispatched, so within one
process no range is fetched twice.

Connecting, seeding the curve snapshot and positioning the cursor all happen
inside the poll loop, so an RPC outage at boot is retried every interval
instead of disabling indexing for the life of the process.
"""

import asyncio

from curve_indexer.chain.client import CurveClient
from curve_indexer.indexer.aggregator import TrendAggregator
from curve_indexer.logging import get_logger

logger = get_logger(__name__)


class EventSubscriber:
    """Long-lived poll loop delivering curve events to a TrendAggregator.

    Args:
        client: Chain client bound to the curve contract.
        aggregator: Receives every decoded event via handle_event().
        poll_interval: Seconds to sleep between polls.
        start_block: First block to index. None starts at the current head.
        max_block_range: Max blocks per eth_getLogs request.
    """

    def __init__(
        self,
        client: CurveClient,
        aggregator: TrendAggregator,
        poll_interval: float = 2.0,
        start_block: int | None = None,
        max_block_range: int = 1000,
    ) -> None:
        if max_block_range < 1:
            raise ValueError(f"max_block_range must be positive, got {max_block_range}")
        self._client = client
        self._aggregator = aggregator
        self._poll_interval = poll_interval
        self._start_block = start_block
        self._max_block_range = max_block_range
        self._last_block: int | None = None
        self._events_dispatched = 0
        self._connected = False
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def running(self) -> bool:
        return self._running

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def last_block(self) -> int | None:
        """Last block whose events have been fully dispatched."""
        return self._last_block

    @property
    def events_dispatched(self) -> int:
        return self._events_dispatched

    async def start(self) -> None:
        """Begin polling in the background.

        Never touches the RPC itself: the first poll connects, seeds and
        positions the cursor, and failures there are retried.
        """
        if self._running:
            logger.warning("subscriber_already_running")
            return

        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(
            "subscriber_started",
            curve=self._client.curve_address,
            start_block=self._start_block,
            poll_interval=self._poll_interval,
        )

    async def stop(self) -> None:
        """Stop polling gracefully."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(
            "subscriber_stopped",
            last_block=self._last_block,
            events=self._events_dispatched,
        )

    def status(self) -> dict:
        return {
            "running": self._running,
            "connected": self._connected,
            "lastBlock": self._last_block,
            "eventsDispatched": self._events_dispatched,
        }

    async def _poll_loop(self) -> None:
        """Main polling loop: fetch new logs, dispatch, sleep."""
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("subscriber_poll_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._poll_interval)

    async def poll_once(self) -> int:
        """Fetch and dispatch every event between the cursor and the head.

        Returns:
            Number of events dispatched in this poll.
        """
        if not self._connected:
            await self._connect()

        if self._last_block is None:
            if self._start_block is None:
                # Index from the next block onward
                self._last_block = await self._client.get_block_number()
                logger.info("subscriber_cursor_positioned", last_block=self._last_block)
                return 0
            self._last_block = self._start_block - 1
            logger.info("subscriber_cursor_positioned", last_block=self._last_block)

        head = await self._client.get_block_number()
        dispatched = 0

        while self._last_block < head:
            from_block = self._last_block + 1
            to_block = min(head, from_block + self._max_block_range - 1)

            events = await self._client.fetch_events(from_block, to_block)
            for event in events:
                self._aggregator.handle_event(event)
            dispatched += len(events)
            self._events_dispatched += len(events)

            self._last_block = to_block
            logger.debug(
                "subscriber_chunk_dispatched",
                from_block=from_block,
                to_block=to_block,
                events=len(events),
            )

        return dispatched

    async def _connect(self) -> None:
        """Open the RPC session and seed the snapshot if nothing has set it yet."""
        await self._client.connect()
        self._connected = True
        if self._aggregator.curve_stats is None:
            await self._aggregator.seed(self._client)
