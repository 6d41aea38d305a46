"""Per-instrument market state, spread history and the ranked spread table."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from itertools import islice
from typing import Generic, Iterable, Optional, Sequence, TypeVar

from sortedcontainers import SortedDict

from .models import EventTrade, ExchangeId, Instrument, Level

T = TypeVar("T")

HISTORY_WINDOW = timedelta(minutes=10)
SNAPSHOT_LIMIT = 150


@dataclass
class VecDequeTime(Generic[T]):
    """Time-stamped values, keeping only those inside a sliding window."""

    data: deque = field(default_factory=deque)
    window: timedelta = HISTORY_WINDOW

    def push(self, current_time: datetime, value: T) -> None:
        threshold = current_time - self.window
        while self.data and self.data[0][0] < threshold:
            self.data.popleft()
        self.data.append((current_time, value))


@dataclass
class AverageTradeInfo:
    avg_price: float = 0.0
    avg_notional: float = 0.0
    avg_buy_notional: float = 0.0
    avg_sell_notional: float = 0.0
    buy_sell_ratio: float = 0.0


@dataclass
class LatestSpreads:
    take_take: float = 0.0
    take_make: float = 0.0
    make_take: float = 0.0


@dataclass
class SpreadHistory:
    latest_spreads: LatestSpreads = field(default_factory=LatestSpreads)
    take_take: VecDequeTime = field(default_factory=VecDequeTime)
    take_make: VecDequeTime = field(default_factory=VecDequeTime)
    make_take: VecDequeTime = field(default_factory=VecDequeTime)

    def insert(self, time: datetime, spread_array: Sequence[Optional[float]]) -> None:
        """Record the spreads present in (take_take, take_make, make_take)."""
        take_take, take_make, make_take = spread_array
        if take_take is not None:
            self.latest_spreads.take_take = take_take
            self.take_take.push(time, take_take)
        if take_make is not None:
            self.latest_spreads.take_make = take_make
            self.take_make.push(time, take_make)
        if make_take is not None:
            self.latest_spreads.make_take = make_take
            self.make_take.push(time, make_take)


@dataclass
class InstrumentMarketData:
    trades_last_update_time: datetime
    orderbook_last_update_time: datetime
    bids: list[Level] = field(default_factory=list)
    asks: list[Level] = field(default_factory=list)
    trades: VecDequeTime = field(default_factory=VecDequeTime)
    spreads: dict[ExchangeId, SpreadHistory] = field(default_factory=dict)
    trades_ws_is_connected: bool = False
    orderbook_ws_is_connected: bool = False

    @classmethod
    def empty(cls, update_time: datetime) -> "InstrumentMarketData":
        return cls(update_time, update_time)

    @classmethod
    def with_orderbook(
        cls, update_time: datetime, bids: Iterable[Level], asks: Iterable[Level]
    ) -> "InstrumentMarketData":
        return cls(
            update_time,
            update_time,
            bids=list(bids),
            asks=list(asks),
            orderbook_ws_is_connected=True,
        )

    @classmethod
    def with_trade(cls, update_time: datetime, trade: EventTrade) -> "InstrumentMarketData":
        data = cls(update_time, update_time, trades_ws_is_connected=True)
        data.trades.push(update_time, trade)
        return data

    def average_trades(self) -> AverageTradeInfo:
        """Averages over the trades currently in the window."""
        trades = [trade for _, trade in self.trades.data]
        if not trades:
            return AverageTradeInfo()

        count = float(len(trades))
        price_sum = sum(t.trade.price for t in trades)
        total_volume = sum(t.trade.size for t in trades)
        buy_volume = sum(t.trade.size for t in trades if t.is_buy)
        sell_volume = sum(t.trade.size for t in trades if not t.is_buy)
        buy_count = sum(1 for t in trades if t.is_buy)

        avg_price = price_sum / count
        return AverageTradeInfo(
            avg_price=avg_price,
            avg_notional=avg_price * total_volume,
            avg_buy_notional=avg_price * buy_volume,
            avg_sell_notional=avg_price * sell_volume,
            buy_sell_ratio=buy_count / count,
        )


@dataclass(frozen=True, order=True)
class SpreadKey:
    """A (spread-change exchange, other exchange) pair for one instrument."""

    exchanges: tuple[ExchangeId, ExchangeId]
    instrument: Instrument


class SpreadsSorted:
    """Spreads indexed both by key and by value, for a ranked snapshot."""

    def __init__(self) -> None:
        self._by_key: dict[SpreadKey, float] = {}
        self._by_value: SortedDict = SortedDict()

    def __len__(self) -> int:
        return len(self._by_value)

    def insert(self, spread_key: SpreadKey, new_spread: float) -> None:
        new_spread = float(new_spread)
        old_spread = self._by_key.get(spread_key)
        if old_spread is None:
            self._by_value[new_spread] = spread_key
            self._by_key[spread_key] = new_spread
        elif old_spread != new_spread:
            self._by_value.pop(old_spread, None)
            self._by_key[spread_key] = new_spread
            self._by_value[new_spread] = spread_key

    def snapshot(self) -> list[tuple[float, SpreadKey]]:
        """The largest spreads, highest first, at most SNAPSHOT_LIMIT of them."""
        return list(islice(reversed(self._by_value.items()), SNAPSHOT_LIMIT))