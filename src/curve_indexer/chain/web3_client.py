"""Bonding-curve client implementation via web3.py async.

Wraps AsyncWeb3 over an HTTP provider with an explicitly managed aiohttp
session, contract binding, log decoding and async cleanup.
"""

import asyncio
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

import aiohttp
from eth_abi.exceptions import DecodingError
from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from curve_indexer.chain.abi import CURVE_ABI, EVENT_TOPICS, TOPIC_TO_EVENT
from curve_indexer.chain.client import CurveClient
from curve_indexer.config import ChainSettings
from curve_indexer.exceptions import (
    ChainUnavailableError,
    EventDecodeError,
    IndexerError,
)
from curve_indexer.logging import get_logger
from curve_indexer.models import (
    CurveEvent,
    GraduatedEvent,
    StepAdvancedEvent,
    TradeEvent,
    to_token_units,
)

logger = get_logger(__name__)

_RPC_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, Web3Exception, ValueError)


def _hex(value: Any) -> str:
    if isinstance(value, str):
        return value.lower()
    return Web3.to_hex(value)


def event_from_decoded(name: str, decoded: Mapping[str, Any]) -> CurveEvent:
    """Convert a web3-decoded log (EventData) into a transport-neutral event.

    Args:
        name: Event name ("Trade", "StepAdvanced" or "Graduated").
        decoded: Mapping with "args", "transactionHash", "blockNumber", "logIndex".

    Raises:
        EventDecodeError: Unknown event name or missing fields.
    """
    try:
        args = decoded["args"]
        tx_hash = _hex(decoded["transactionHash"])
        block_number = int(decoded["blockNumber"])
        log_index = int(decoded.get("logIndex", 0))

        if name == "Trade":
            return TradeEvent(
                trader=str(args["trader"]).lower(),
                is_buy=bool(args["isBuy"]),
                quantity=int(args["qty"]),
                cost_or_proceeds=int(args["costOrProceeds"]),
                step_index=int(args["stepIndex"]),
                transaction_hash=tx_hash,
                block_number=block_number,
                log_index=log_index,
            )
        if name == "StepAdvanced":
            return StepAdvancedEvent(
                new_step=int(args["newStep"]),
                new_price=int(args["newPrice"]),
                transaction_hash=tx_hash,
                block_number=block_number,
                log_index=log_index,
            )
        if name == "Graduated":
            return GraduatedEvent(
                tokens_sold_on_curve=int(args["tokensSoldOnCurve"]),
                native_reserve=int(args["nativeReserve"]),
                timestamp=int(args["timestamp"]),
                transaction_hash=tx_hash,
                block_number=block_number,
                log_index=log_index,
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise EventDecodeError(f"malformed {name} log: {exc}") from exc

    raise EventDecodeError(f"unknown curve event: {name}")


class Web3CurveClient(CurveClient):
    """Concrete curve client using web3.py AsyncWeb3."""

    def __init__(self, settings: ChainSettings) -> None:
        self._settings = settings
        try:
            self._address = Web3.to_checksum_address(settings.curve_address)
        except ValueError as exc:
            raise IndexerError(
                f"invalid curve address: {settings.curve_address!r}"
            ) from exc

        self._provider = AsyncWeb3.AsyncHTTPProvider(
            settings.rpc_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=settings.request_timeout)},
        )
        self._w3 = AsyncWeb3(self._provider)
        self._contract = self._w3.eth.contract(address=self._address, abi=CURVE_ABI)
        self._session: aiohttp.ClientSession | None = None

    @property
    def curve_address(self) -> str:
        return self._address

    async def connect(self) -> None:
        """Open an aiohttp session and hand it to the provider.

        Safe to call again after a failure: an open session is reused.
        """
        logger.info("connecting_to_rpc", rpc=self._settings.rpc_url)
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            await self._provider.cache_async_session(self._session)
        chain_id = await self._call(self._w3.eth.chain_id)
        logger.info("rpc_connected", chain_id=chain_id, curve=self._address)

    async def close(self) -> None:
        """Close the aiohttp session. Must be called to avoid resource leaks."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.info("rpc_connection_closed")

    async def get_block_number(self) -> int:
        return int(await self._call(self._w3.eth.block_number))

    async def get_current_step(self) -> int:
        return int(await self._call(self._contract.functions.getCurrentStep().call()))

    async def get_current_price(self) -> Decimal:
        raw = await self._call(self._contract.functions.getCurrentPrice().call())
        return to_token_units(int(raw))

    async def fetch_events(self, from_block: int, to_block: int) -> list[CurveEvent]:
        """Fetch all three curve events in one eth_getLogs call and decode them."""
        logs = await self._call(
            self._w3.eth.get_logs(
                {
                    "address": self._address,
                    "fromBlock": from_block,
                    "toBlock": to_block,
                    "topics": [list(EVENT_TOPICS.values())],
                }
            )
        )

        events: list[CurveEvent] = []
        for log in logs:
            try:
                events.append(self._decode_log(log))
            except EventDecodeError:
                logger.warning(
                    "curve_log_decode_failed",
                    tx=_hex(log.get("transactionHash", "")),
                    block=log.get("blockNumber"),
                    exc_info=True,
                )

        events.sort(key=lambda e: (e.block_number, e.log_index))
        return events

    def _decode_log(self, log: Mapping[str, Any]) -> CurveEvent:
        topics = log.get("topics") or []
        if not topics:
            raise EventDecodeError("log has no topics")
        name = TOPIC_TO_EVENT.get(_hex(topics[0]))
        if name is None:
            raise EventDecodeError(f"unexpected topic0 {_hex(topics[0])}")
        try:
            decoded = getattr(self._contract.events, name)().process_log(log)
        except (Web3Exception, DecodingError) as exc:
            raise EventDecodeError(f"cannot decode {name} log: {exc}") from exc
        return event_from_decoded(name, decoded)

    async def _call(self, awaitable: Any) -> Any:
        try:
            return await awaitable
        except _RPC_ERRORS as exc:
            raise ChainUnavailableError(str(exc) or type(exc).__name__) from exc
