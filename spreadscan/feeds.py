"""Background feeds: periodic network status polling and subscription chunking."""

from __future__ import annotations

import asyncio
import logging
from itertools import islice
from typing import Any, Iterable, Iterator, Sequence

from .channels import Channel, ChannelClosed
from .models import ExchangeId, Instrument, NetworkSpecs, StreamKind

logger = logging.getLogger(__name__)

NETWORK_STATUS_INTERVAL = 60.0

SubscriptionTuple = tuple[ExchangeId, str, str, StreamKind]


def _as_network_specs(info: Any) -> NetworkSpecs:
    if isinstance(info, NetworkSpecs):
        return info
    convert = getattr(info, "to_network_specs", None)
    if convert is None:
        raise TypeError(f"cannot convert {type(info).__name__} to NetworkSpecs")
    return convert()


async def send_network_status_snapshots(
    connector: Any,
    instruments: Sequence[Instrument],
    sender: Channel,
    interval: float = NETWORK_STATUS_INTERVAL,
) -> None:
    """Poll the connector's network info forever, forwarding each snapshot."""
    instruments = list(instruments)
    while True:
        try:
            info = await connector.get_network_info(list(instruments))
            specs = _as_network_specs(info)
        except Exception as error:  # noqa: BLE001 - keep polling after failures
            logger.warning("network status request failed: exchange=%s error=%s",
                           connector.ID, error)
        else:
            try:
                sender.send(specs)
            except ChannelClosed:
                pass
        await asyncio.sleep(interval)


class NetworkStatusStream:
    """Collects network status snapshots from several exchanges into one channel."""

    def __init__(self, interval: float = NETWORK_STATUS_INTERVAL) -> None:
        self.interval = interval
        self.channel: Channel = Channel()
        self.tasks: list[asyncio.Task] = []

    def add_exchange(self, connector: Any, instruments: Iterable[Instrument]) -> "NetworkStatusStream":
        """Start polling the connector; must be called with a running event loop."""
        task = asyncio.ensure_future(
            send_network_status_snapshots(connector, list(instruments), self.channel, self.interval)
        )
        self.tasks.append(task)
        return self

    def build(self) -> Channel:
        return self.channel


def _chunked(items: Sequence[Any], size: int) -> Iterator[list[Any]]:
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


class StreamChunks:
    """Groups an exchange's USDT pairs into websocket-sized subscription batches."""

    def __init__(self) -> None:
        self.chunks: list[list[SubscriptionTuple]] = []

    async def add_exchange(self, connector: Any) -> "StreamChunks":
        """Fetch the connector's pairs and add one order book and one trade batch per chunk."""
        tickers = await connector.get_usdt_pair()
        exchange_id = connector.ID
        chunk_size = connector.ws_chunk_size()
        if chunk_size <= 0:
            raise ValueError(f"chunk size must be positive, got {chunk_size}")
        orderbook_type = connector.ORDERBOOK
        trade_type = connector.TRADE

        for chunk in _chunked(list(tickers), chunk_size):
            self.chunks.append([(exchange_id, base, quote, orderbook_type) for base, quote in chunk])
            self.chunks.append([(exchange_id, base, quote, trade_type) for base, quote in chunk])
        return self

    def build(self) -> list[list[SubscriptionTuple]]:
        return self.chunks