"""Market data types shared by the scanner, plus sample data builders."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence, Union


class ExchangeId(str, Enum):
    """Spot exchanges the scanner knows about."""

    ASCENDEX_SPOT = "AscendExSpot"
    BINANCE_SPOT = "BinanceSpot"
    BITSTAMP_SPOT = "BitstampSpot"
    COINEX_SPOT = "CoinExSpot"
    EXMO_SPOT = "ExmoSpot"
    HTX_SPOT = "HtxSpot"
    KUCOIN_SPOT = "KuCoinSpot"
    OKX_SPOT = "OkxSpot"
    PHEMEX_SPOT = "PhemexSpot"
    POLONIEX_SPOT = "PoloniexSpot"
    WOOX_SPOT = "WooxSpot"

    def __str__(self) -> str:
        return self.value


class StreamKind(str, Enum):
    """Kinds of market data stream an exchange can provide."""

    L2 = "l2"
    TRADE = "trade"
    TRADES = "trades"
    AGG_TRADES = "agg_trades"
    SNAPSHOT = "snapshot"


class EventKind(str, Enum):
    """Whether a stream carries order book or trade data."""

    ORDER_BOOK = "OrderBook"
    TRADE = "Trade"


@dataclass(frozen=True, order=True)
class Instrument:
    base: str
    quote: str


@dataclass(frozen=True, order=True)
class Coin:
    name: str


@dataclass(frozen=True)
class Level:
    price: float
    size: float

    @classmethod
    def random(cls) -> "Level":
        """A level with a random price and size in [0, 100)."""
        return cls(random.uniform(0.0, 100.0), random.uniform(0.0, 100.0))


@dataclass(frozen=True)
class EventTrade:
    trade: Level
    is_buy: bool


@dataclass(frozen=True)
class WsStatus:
    """Connection state of one websocket stream."""

    event_kind: EventKind
    connected: bool

    @classmethod
    def up(cls, event_kind: EventKind) -> "WsStatus":
        return cls(event_kind, True)

    @classmethod
    def down(cls, event_kind: EventKind) -> "WsStatus":
        return cls(event_kind, False)

    def is_connected(self) -> bool:
        return self.connected


@dataclass
class ChainSpecs:
    chain_name: str
    fee_is_fixed: bool
    fees: float
    can_deposit: bool
    can_withdraw: bool


@dataclass
class NetworkSpecData:
    chains: list[ChainSpecs] = field(default_factory=list)


@dataclass
class NetworkSpecs:
    specs: dict[tuple[ExchangeId, Coin], NetworkSpecData] = field(default_factory=dict)


@dataclass
class EventOrderBook:
    last_update_time: datetime
    bids: list[Level]
    asks: list[Level]


@dataclass
class EventOrderBookSnapshot:
    last_update_time: datetime
    bids: list[Level]
    asks: list[Level]


DataKind = Union[EventOrderBook, EventOrderBookSnapshot, EventTrade, list, WsStatus]


@dataclass
class MarketEvent:
    exchange_time: datetime
    received_time: datetime
    exchange: ExchangeId
    instrument: Instrument
    event_data: DataKind


def _now() -> datetime:
    return datetime.now(timezone.utc)


def sample_bids() -> list[Level]:
    """Five fixed bid levels, best first."""
    return [
        Level(12.5, 2.5),
        Level(11.23, 5.25),
        Level(10.29, 10.11),
        Level(9.99, 22.44),
        Level(8.47, 39.89),
    ]


def sample_asks() -> list[Level]:
    """Five fixed ask levels sorted by ascending price."""
    asks = [
        Level(13.75, 3.23),
        Level(13.99, 6.81),
        Level(17.19, 11.01),
        Level(20.06, 19.46),
        Level(23.87, 20.82),
    ]
    return sorted(asks, key=lambda level: level.price)


def random_bids() -> list[Level]:
    """Five random bid levels sorted by descending price."""
    return sorted((Level.random() for _ in range(5)), key=lambda lv: lv.price, reverse=True)


def random_asks() -> list[Level]:
    """Five random ask levels in no particular order."""
    return [Level.random() for _ in range(5)]


def market_event_orderbook(
    exchange: ExchangeId,
    instrument: Instrument,
    bids: Optional[Sequence[Level]] = None,
    asks: Optional[Sequence[Level]] = None,
) -> MarketEvent:
    """An order book event; missing sides default to the sample levels."""
    now = _now()
    book = EventOrderBook(
        last_update_time=now,
        bids=list(sample_bids() if bids is None else bids),
        asks=list(sample_asks() if asks is None else asks),
    )
    return MarketEvent(now, now, exchange, instrument, book)


def market_event_trade(exchange: ExchangeId, instrument: Instrument) -> MarketEvent:
    """A single buy trade event."""
    now = _now()
    trade = EventTrade(trade=Level(13.0, 12.08), is_buy=True)
    return MarketEvent(now, now, exchange, instrument, trade)