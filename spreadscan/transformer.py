"""Turn decoded exchange messages into market events."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Iterable, Optional, Protocol, TypeVar

from .models import EventOrderBook, ExchangeId, Instrument, MarketEvent

U = TypeVar("U")


class TransformerNone(Exception):
    """The update was applied but produced no event to emit."""


class OrderBookFindError(LookupError):
    """No instrument is registered for the update's market symbol."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"failed to find instrument for symbol: {symbol}")
        self.symbol = symbol


class _Subscription(Protocol):
    market: str
    instrument: Instrument


class _Identified(Protocol):
    id: str


@dataclass
class InstrumentOrderBook(Generic[U]):
    """An instrument together with its book and the updater that maintains it."""

    instrument: Instrument
    updater: U
    book: Any


@dataclass
class StatelessTransformer:
    """Maps each update to an event by looking up its instrument."""

    instrument_map: dict[str, Instrument] = field(default_factory=dict)
    event_factory: Optional[Callable[[Any, Instrument], MarketEvent]] = None

    @classmethod
    def from_subscriptions(
        cls,
        subscriptions: Iterable[_Subscription],
        event_factory: Callable[[Any, Instrument], MarketEvent],
    ) -> "StatelessTransformer":
        instrument_map = {str(sub.market): sub.instrument for sub in subscriptions}
        return cls(instrument_map=instrument_map, event_factory=event_factory)

    def transform(self, update: _Identified) -> MarketEvent:
        instrument = self.instrument_map.get(update.id)
        if instrument is None:
            raise OrderBookFindError(update.id)
        if self.event_factory is None:
            raise TypeError("no event factory configured")
        return self.event_factory(update, instrument)


@dataclass
class MultiBookTransformer:
    """Keeps one order book per market and applies updates to it."""

    exchange: ExchangeId
    orderbooks: dict[str, InstrumentOrderBook] = field(default_factory=dict)

    @classmethod
    async def create(
        cls,
        subscriptions: Iterable[_Subscription],
        updater_type: Any,
        exchange: ExchangeId,
    ) -> "MultiBookTransformer":
        """Initialise every book concurrently; the first failure is raised."""
        subs = list(subscriptions)
        books = await asyncio.gather(*(updater_type.init(sub.instrument) for sub in subs))
        orderbooks = {str(sub.market): book for sub, book in zip(subs, books)}
        return cls(exchange=exchange, orderbooks=orderbooks)

    def transform(self, update: _Identified) -> MarketEvent:
        entry = self.orderbooks.get(update.id)
        if entry is None:
            raise OrderBookFindError(update.id)
        event_book: Optional[EventOrderBook] = entry.updater.update(entry.book, update)
        if event_book is None:
            raise TransformerNone()
        return MarketEvent(
            exchange_time=event_book.last_update_time,
            received_time=datetime.now(timezone.utc),
            exchange=self.exchange,
            instrument=entry.instrument,
            event_data=event_book,
        )