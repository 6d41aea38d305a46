"""The spot arbitrage scanner: consumes market data and answers HTTP queries."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from .channels import Channel, ChannelClosed, ChannelEmpty
from .market_state import MarketState
from .messages import (
    GetSpreadHistory,
    GetTopSpreads,
    GetWsConnectionStatus,
    HttpRequest,
    HttpResponse,
    ScannerHttpChannel,
    SpreadHistoryNotFound,
    SpreadHistoryReply,
    SpreadHistoryResponse,
    SpreadResponse,
    TopSpreadsReply,
    WsConnectionStatusReply,
)
from .models import (
    Coin,
    EventOrderBook,
    EventOrderBookSnapshot,
    EventTrade,
    ExchangeId,
    Instrument,
    MarketEvent,
    WsStatus,
)

logger = logging.getLogger(__name__)

CUMULATIVE_TRADES_THRESHOLD = 1000.0
WS_STATUS_WINDOW = timedelta(minutes=2)
_IDLE_PAUSE = 0.0005


class SpotArbScanner:
    """Keeps market state up to date and serves spread queries over channels."""

    def __init__(
        self,
        network_status_stream: Channel,
        market_data_stream: Channel,
        http_channel: ScannerHttpChannel,
    ) -> None:
        self.state = MarketState()
        self.network_status_stream = network_status_stream
        self.market_data_stream = market_data_stream
        self.http_channel = http_channel

    # ----- market data -----

    def process_market_event(self, event: MarketEvent) -> None:
        """Apply one market event to the state."""
        data = event.event_data
        if isinstance(data, (EventOrderBook, EventOrderBookSnapshot)):
            self.state.process_orderbook(
                event.exchange, event.instrument, data.bids, data.asks, event.exchange_time
            )
        elif isinstance(data, EventTrade):
            self.state.process_trade(event.exchange, event.instrument, event.received_time, data)
        elif isinstance(data, list):
            self.state.process_trades(
                event.exchange, event.instrument, event.received_time, data
            )
        elif isinstance(data, WsStatus):
            self.state.process_ws_status(
                event.exchange, event.instrument, data, event.exchange_time
            )
        else:
            raise TypeError(f"unsupported market event data: {type(data).__name__}")

    # ----- queries -----

    def top_spreads(self) -> list[SpreadResponse]:
        """Ranked spreads whose exchanges both trade enough notional."""
        responses = []
        for spread, key in self.state.spreads_sorted.snapshot():
            base_exchange, quote_exchange = key.exchanges
            instrument = key.instrument
            coin = Coin(instrument.base)

            base_data = self.state.exchange_data[base_exchange][instrument]
            quote_data = self.state.exchange_data[quote_exchange][instrument]

            response = SpreadResponse(
                base_exchange=base_exchange,
                quote_exchange=quote_exchange,
                instrument=instrument,
                spread=spread,
                base_avg_trade_info=base_data.average_trades(),
                quote_avg_trade_info=quote_data.average_trades(),
                base_network_info=self.state.network_status.get((base_exchange, coin)),
                quote_network_info=self.state.network_status.get((quote_exchange, coin)),
                base_trades_ws=base_data.trades_ws_is_connected,
                base_orderbook_ws=base_data.orderbook_ws_is_connected,
                quote_trades_ws=quote_data.trades_ws_is_connected,
                quote_orderbook_ws=quote_data.orderbook_ws_is_connected,
            )
            if (
                response.quote_avg_trade_info.avg_notional < CUMULATIVE_TRADES_THRESHOLD
                or response.base_avg_trade_info.avg_notional < CUMULATIVE_TRADES_THRESHOLD
            ):
                continue
            responses.append(response)
        return responses

    def spread_history(
        self,
        base_exchange: ExchangeId,
        quote_exchange: ExchangeId,
        instrument: Instrument,
    ) -> HttpResponse:
        """Spread history and book details, or a not-found reply."""
        not_found = SpreadHistoryNotFound(base_exchange, quote_exchange, instrument)
        coin = Coin(instrument.base)
        response = SpreadHistoryResponse(base_exchange, quote_exchange, instrument)

        base_data = self.state.exchange_data.get(base_exchange, {}).get(instrument)
        if base_data is None:
            return not_found
        response.base_bids = list(base_data.bids)
        response.base_asks = list(base_data.asks)
        response.base_network_info = self.state.network_status.get((base_exchange, coin))
        response.spread_history = base_data.spreads.get(quote_exchange)
        response.base_avg_trade_info = base_data.average_trades()

        quote_data = self.state.exchange_data.get(quote_exchange, {}).get(instrument)
        if quote_data is None:
            return not_found
        response.quote_bids = list(quote_data.bids)
        response.quote_asks = list(quote_data.asks)
        response.quote_network_info = self.state.network_status.get((quote_exchange, coin))
        response.quote_avg_trade_info = quote_data.average_trades()

        return SpreadHistoryReply(response)

    def ws_connection_status(self, now: Optional[datetime] = None) -> WsConnectionStatusReply:
        """Counts of instruments updated recently and of connected streams."""
        if now is None:
            now = datetime.now(timezone.utc)
        threshold = now - WS_STATUS_WINDOW
        reply = WsConnectionStatusReply()
        for instruments in self.state.exchange_data.values():
            for data in instruments.values():
                if data.orderbook_last_update_time > threshold:
                    reply.snapshot_time_based += 1
                if data.trades_last_update_time > threshold:
                    reply.trade_time_based += 1
                if data.orderbook_ws_is_connected:
                    reply.snapshot_ws_based += 1
                if data.trades_ws_is_connected:
                    reply.trade_ws_based += 1
        return reply

    def handle_request(self, request: HttpRequest) -> HttpResponse:
        """Answer a request and send the reply back to the server."""
        if isinstance(request, GetTopSpreads):
            reply: HttpResponse = TopSpreadsReply(self.top_spreads())
        elif isinstance(request, GetSpreadHistory):
            reply = self.spread_history(
                request.base_exchange, request.quote_exchange, request.instrument
            )
        elif isinstance(request, GetWsConnectionStatus):
            reply = self.ws_connection_status()
        else:
            raise TypeError(f"unknown request: {type(request).__name__}")

        try:
            self.http_channel.http_response_tx.send(reply)
        except ChannelClosed:
            pass
        return reply

    # ----- event loop -----

    def _poll(self) -> tuple[bool, bool]:
        """One pass over every input; returns (keep running, did any work)."""
        worked = False

        try:
            self.state.process_network_status(self.network_status_stream.try_recv())
            worked = True
        except ChannelEmpty:
            pass
        except ChannelClosed:
            logger.warning("network status stream disconnected; stopping scanner")
            return False, worked

        try:
            self.handle_request(self.http_channel.http_request_rx.try_recv())
            worked = True
        except ChannelEmpty:
            pass
        except ChannelClosed:
            logger.warning("http request channel disconnected; stopping scanner")
            return False, worked

        try:
            self.process_market_event(self.market_data_stream.try_recv())
            worked = True
        except ChannelEmpty:
            pass
        except ChannelClosed:
            logger.warning("market data stream disconnected; stopping scanner")
            return False, worked

        if self.state.spread_change_queue:
            self.state.drain_spread_queue()
            worked = True

        return True, worked

    def step(self) -> bool:
        """Process at most one item from each input; False once an input has closed."""
        alive, _ = self._poll()
        return alive

    def run(self) -> None:
        """Loop until one of the input channels is closed and drained."""
        while True:
            alive, worked = self._poll()
            if not alive:
                return
            if not worked:
                time.sleep(_IDLE_PAUSE)