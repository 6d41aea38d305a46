"""Best bid/ask change detection and cross-exchange spread calculation."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Optional, Sequence

from .core_types import InstrumentMarketData
from .models import ExchangeId, Instrument, Level

SpreadArray = tuple[Optional[float], Optional[float], Optional[float]]


@dataclass
class SpreadChange:
    """A change in the best bid and/or ask of one instrument on one exchange."""

    exchange: ExchangeId
    instrument: Instrument
    bid: Optional[Level] = None
    ask: Optional[Level] = None

    @classmethod
    def with_bid(cls, exchange: ExchangeId, instrument: Instrument, bid: Level) -> "SpreadChange":
        return cls(exchange, instrument, bid=bid)

    @classmethod
    def with_ask(cls, exchange: ExchangeId, instrument: Instrument, ask: Level) -> "SpreadChange":
        return cls(exchange, instrument, ask=ask)

    def add_bid(self, bid: Level) -> None:
        self.bid = bid

    def add_ask(self, ask: Level) -> None:
        self.ask = ask


@dataclass
class SpreadsCalculated:
    """Spreads (take_take, take_make, make_take) between two exchanges."""

    sc_exchange: ExchangeId
    other_exchange: ExchangeId
    instrument: Instrument
    spread_array: SpreadArray


def did_bba_change(
    exchange: ExchangeId,
    instrument: Instrument,
    old_bid: Level,
    old_ask: Level,
    new_bid: Level,
    new_ask: Level,
) -> Optional[SpreadChange]:
    """The change in best prices, or None if neither price moved."""
    result: Optional[SpreadChange] = None
    if old_bid.price != new_bid.price:
        result = SpreadChange.with_bid(exchange, instrument, new_bid)
    if old_ask.price != new_ask.price:
        if result is None:
            result = SpreadChange.with_ask(exchange, instrument, new_ask)
        else:
            result.add_ask(new_ask)
    return result


def _compare(a: Optional[float], b: Optional[float]) -> int:
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def sort_option_array(arr: Sequence[Optional[float]]) -> SpreadArray:
    """Sort ascending with None values placed last."""
    first, second, third = sorted(arr, key=cmp_to_key(_compare))
    return (first, second, third)


def calculate_spreads(
    spread_change: SpreadChange,
    other_exchange: ExchangeId,
    market_data: InstrumentMarketData,
) -> SpreadsCalculated:
    """Spreads with the changed exchange as buyer and the other as seller."""
    take_take = take_make = make_take = None

    if spread_change.ask is not None:
        ask_price = spread_change.ask.price
        if market_data.bids:
            take_take = market_data.bids[0].price / ask_price - 1.0
        if market_data.asks:
            take_make = market_data.asks[0].price / ask_price - 1.0

    if spread_change.bid is not None and market_data.bids:
        make_take = market_data.bids[0].price / spread_change.bid.price - 1.0

    return SpreadsCalculated(
        sc_exchange=spread_change.exchange,
        other_exchange=other_exchange,
        instrument=spread_change.instrument,
        spread_array=(take_take, take_make, make_take),
    )