"""Market state kept by the scanner: books, trades, connection flags and spreads."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

from .core_types import InstrumentMarketData, SpreadHistory, SpreadKey, SpreadsSorted
from .models import (
    Coin,
    EventKind,
    EventTrade,
    ExchangeId,
    Instrument,
    Level,
    NetworkSpecData,
    NetworkSpecs,
    WsStatus,
)
from .spreads import (
    SpreadChange,
    SpreadsCalculated,
    calculate_spreads,
    did_bba_change,
    sort_option_array,
)

SpreadWork = Union[SpreadChange, SpreadsCalculated]


@dataclass(eq=False)
class MarketState:
    """Everything the scanner knows about each exchange and instrument."""

    exchange_data: dict[ExchangeId, dict[Instrument, InstrumentMarketData]] = field(
        default_factory=dict
    )
    network_status: dict[tuple[ExchangeId, Coin], NetworkSpecData] = field(default_factory=dict)
    spreads_sorted: SpreadsSorted = field(default_factory=SpreadsSorted)
    spread_change_queue: deque = field(default_factory=deque)

    def _instruments(self, exchange: ExchangeId) -> dict[Instrument, InstrumentMarketData]:
        return self.exchange_data.setdefault(exchange, {})

    def process_orderbook(
        self,
        exchange: ExchangeId,
        instrument: Instrument,
        bids: Iterable[Level],
        asks: Iterable[Level],
        update_time: datetime,
    ) -> None:
        """Replace the book sides that are non-empty and queue any best price change."""
        instruments = self._instruments(exchange)
        bids = list(bids)
        asks = list(asks)
        state = instruments.get(instrument)
        if state is None:
            instruments[instrument] = InstrumentMarketData.with_orderbook(update_time, bids, asks)
            return

        # After these swaps, bids/asks hold the previous sides when a swap happened.
        if bids:
            state.bids, bids = bids, state.bids
        if asks:
            state.asks, asks = asks, state.asks

        if bids and asks:
            change = did_bba_change(
                exchange, instrument, bids[0], asks[0], state.bids[0], state.asks[0]
            )
            if change is not None:
                self.spread_change_queue.append(change)

        state.orderbook_last_update_time = update_time

    def process_trade(
        self,
        exchange: ExchangeId,
        instrument: Instrument,
        time: datetime,
        trade: EventTrade,
    ) -> None:
        instruments = self._instruments(exchange)
        state = instruments.get(instrument)
        if state is None:
            instruments[instrument] = InstrumentMarketData.with_trade(time, trade)
            return
        state.trades.push(time, trade)
        state.trades_last_update_time = time

    def process_trades(
        self,
        exchange: ExchangeId,
        instrument: Instrument,
        update_time: datetime,
        trades: Iterable[EventTrade],
    ) -> None:
        instruments = self._instruments(exchange)
        state = instruments.get(instrument)
        if state is None:
            state = InstrumentMarketData.empty(update_time)
            instruments[instrument] = state
        for trade in trades:
            state.trades.push(update_time, trade)

    def process_network_status(self, network_status: NetworkSpecs) -> None:
        """Replace or add the network data of every (exchange, coin) in the update."""
        for key, spec_data in network_status.specs.items():
            self.network_status[key] = spec_data

    def process_ws_status(
        self,
        exchange: ExchangeId,
        instrument: Instrument,
        ws_status: WsStatus,
        update_time: datetime,
    ) -> None:
        instruments = self._instruments(exchange)
        state = instruments.get(instrument)
        if state is None:
            state = InstrumentMarketData.empty(update_time)
            instruments[instrument] = state
        if ws_status.event_kind is EventKind.ORDER_BOOK:
            state.orderbook_ws_is_connected = ws_status.is_connected()
        else:
            state.trades_ws_is_connected = ws_status.is_connected()

    def process_spread_change(self, spread_change: SpreadChange) -> None:
        """Queue spreads against every other exchange that lists the instrument."""
        for exchange, instruments in self.exchange_data.items():
            if exchange == spread_change.exchange:
                continue
            market_data = instruments.get(spread_change.instrument)
            if market_data is not None:
                self.spread_change_queue.append(
                    calculate_spreads(spread_change, exchange, market_data)
                )

    def process_calculated_spreads(self, time: datetime, spreads: SpreadsCalculated) -> None:
        """Record the spreads in history and rank the largest if it is positive."""
        sc_data = self.exchange_data.get(spreads.sc_exchange, {}).get(spreads.instrument)
        if sc_data is not None:
            history = sc_data.spreads.setdefault(spreads.other_exchange, SpreadHistory())
            history.insert(time, spreads.spread_array)

        max_spread = sort_option_array(spreads.spread_array)[2]
        if max_spread is not None and max_spread > 0.0:
            self.spreads_sorted.insert(
                SpreadKey(
                    (spreads.sc_exchange, spreads.other_exchange),
                    spreads.instrument,
                ),
                max_spread,
            )

    def drain_spread_queue(self, time: Optional[datetime] = None) -> None:
        """Process queued work until the queue is empty, including work it adds."""
        while self.spread_change_queue:
            work: SpreadWork = self.spread_change_queue.popleft()
            if isinstance(work, SpreadChange):
                self.process_spread_change(work)
            else:
                when = time if time is not None else datetime.now(timezone.utc)
                self.process_calculated_spreads(when, work)