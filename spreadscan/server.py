"""HTTP front end that forwards queries to the scanner and returns its replies."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from aiohttp import web

from .channels import Channel, ChannelClosed
from .messages import (
    GetSpreadHistory,
    GetTopSpreads,
    GetWsConnectionStatus,
    HttpRequest,
    ServerHttpChannel,
    make_http_channels,
    to_json,
)
from .models import ExchangeId, Instrument
from .scanner import SpotArbScanner

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
RESPONSE_TIMEOUT = 0.1
LOG_LEVEL_ENV = "SPREADSCAN_LOG"

SERVER_CHANNEL = web.AppKey("server_channel", ServerHttpChannel)
CHANNEL_LOCK = web.AppKey("channel_lock", asyncio.Lock)


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _ask_scanner(request: web.Request, message: HttpRequest) -> web.Response:
    """Send one request to the scanner and wait briefly for its reply."""
    channel = request.app[SERVER_CHANNEL]
    async with request.app[CHANNEL_LOCK]:
        try:
            channel.http_request_tx.send(message)
        except ChannelClosed:
            return _error(500, "Failed to send request to scanner")

        try:
            reply = await asyncio.to_thread(channel.http_response_rx.recv, RESPONSE_TIMEOUT)
        except TimeoutError:
            return _error(408, "Request timed out after 5 seconds")
        except ChannelClosed:
            return _error(500, "Scanner channel closed unexpectedly")

    return web.json_response(to_json(reply))


async def get_top_spreads_handler(request: web.Request) -> web.Response:
    """GET / : the highest current spreads."""
    return await _ask_scanner(request, GetTopSpreads())


async def get_ws_connection_status_handler(request: web.Request) -> web.Response:
    """GET /ws-status : counts of live streams."""
    return await _ask_scanner(request, GetWsConnectionStatus())


def _parse_spread_history_query(request: web.Request) -> GetSpreadHistory:
    query = request.query
    try:
        base_exchange = ExchangeId(query["base_exchange"])
        quote_exchange = ExchangeId(query["quote_exchange"])
        base_instrument = query["base_instrument"].lower()
        quote_instrument = query["quote_instrument"].lower()
    except KeyError as missing:
        raise ValueError(f"missing query parameter: {missing.args[0]}") from None
    return GetSpreadHistory(
        base_exchange, quote_exchange, Instrument(base_instrument, quote_instrument)
    )


async def get_spread_history_handler(request: web.Request) -> web.Response:
    """GET /spread-history : spread history for an exchange pair and instrument."""
    try:
        message = _parse_spread_history_query(request)
    except ValueError as error:
        return _error(400, f"Query deserialize error: {error}")
    return await _ask_scanner(request, message)


def create_app(server_channel: ServerHttpChannel) -> web.Application:
    """Build the web application around the server's channel ends."""
    app = web.Application()
    app[SERVER_CHANNEL] = server_channel
    app[CHANNEL_LOCK] = asyncio.Lock()
    app.router.add_get("/", get_top_spreads_handler)
    app.router.add_get("/spread-history", get_spread_history_handler)
    app.router.add_get("/ws-status", get_ws_connection_status_handler)
    return app


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "target": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _init_logging() -> None:
    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Start the scanner in a background thread and serve HTTP queries."""
    parser = argparse.ArgumentParser(prog="spreadscan", description="Spot arbitrage scanner")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    _init_logging()

    scanner_channel, server_channel = make_http_channels()
    network_status_stream: Channel = Channel()
    market_data_stream: Channel = Channel()

    scanner = SpotArbScanner(network_status_stream, market_data_stream, scanner_channel)
    threading.Thread(target=scanner.run, name="spot-arb-scanner", daemon=True).start()

    try:
        web.run_app(create_app(server_channel), host=args.host, port=args.port)
    finally:
        network_status_stream.close()
        market_data_stream.close()