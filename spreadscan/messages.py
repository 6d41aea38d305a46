"""Requests and replies exchanged between the HTTP server and the scanner."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union

from .channels import Channel
from .core_types import AverageTradeInfo, SpreadHistory
from .models import Coin, ExchangeId, Instrument, Level, NetworkSpecData


@dataclass
class SpreadResponse:
    """One ranked spread together with the context of both exchanges."""

    base_exchange: ExchangeId
    quote_exchange: ExchangeId
    instrument: Instrument
    spread: float
    base_avg_trade_info: AverageTradeInfo
    quote_avg_trade_info: AverageTradeInfo
    base_network_info: Optional[NetworkSpecData]
    quote_network_info: Optional[NetworkSpecData]
    base_trades_ws: bool
    base_orderbook_ws: bool
    quote_trades_ws: bool
    quote_orderbook_ws: bool


@dataclass
class SpreadHistoryResponse:
    """Spread history and book state for one exchange pair and instrument."""

    base_exchange: ExchangeId
    quote_exchange: ExchangeId
    instrument: Instrument
    spread_history: Optional[SpreadHistory] = None
    base_bids: Optional[list[Level]] = None
    base_asks: Optional[list[Level]] = None
    quote_bids: Optional[list[Level]] = None
    quote_asks: Optional[list[Level]] = None
    base_network_info: Optional[NetworkSpecData] = None
    quote_network_info: Optional[NetworkSpecData] = None
    base_avg_trade_info: AverageTradeInfo = field(default_factory=AverageTradeInfo)
    quote_avg_trade_info: AverageTradeInfo = field(default_factory=AverageTradeInfo)


# Requests sent from the server to the scanner


@dataclass(frozen=True)
class GetTopSpreads:
    """Ask for the highest current spreads."""


@dataclass(frozen=True)
class GetSpreadHistory:
    """Ask for the spread history of one exchange pair and instrument."""

    base_exchange: ExchangeId
    quote_exchange: ExchangeId
    instrument: Instrument


@dataclass(frozen=True)
class GetWsConnectionStatus:
    """Ask for counts of live websocket streams."""


HttpRequest = Union[GetTopSpreads, GetSpreadHistory, GetWsConnectionStatus]


# Replies sent from the scanner to the server


@dataclass
class TopSpreadsReply:
    spreads: list[SpreadResponse] = field(default_factory=list)


@dataclass
class SpreadHistoryReply:
    response: SpreadHistoryResponse


@dataclass
class WsConnectionStatusReply:
    snapshot_time_based: int = 0
    trade_time_based: int = 0
    snapshot_ws_based: int = 0
    trade_ws_based: int = 0


@dataclass
class SpreadHistoryNotFound:
    base_exchange: ExchangeId
    quote_exchange: ExchangeId
    instrument: Instrument


HttpResponse = Union[
    TopSpreadsReply, SpreadHistoryReply, WsConnectionStatusReply, SpreadHistoryNotFound
]


@dataclass
class ScannerHttpChannel:
    """The scanner's ends: it reads requests and writes replies."""

    http_request_rx: Channel
    http_response_tx: Channel


@dataclass
class ServerHttpChannel:
    """The server's ends: it writes requests and reads replies."""

    http_request_tx: Channel
    http_response_rx: Channel


def make_http_channels() -> tuple[ScannerHttpChannel, ServerHttpChannel]:
    """Create the paired request and reply channels for scanner and server."""
    requests: Channel = Channel()
    responses: Channel = Channel()
    return (
        ScannerHttpChannel(http_request_rx=requests, http_response_tx=responses),
        ServerHttpChannel(http_request_tx=requests, http_response_rx=responses),
    )


def _encode_time(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None).isoformat() + "Z"
    return value.isoformat()


def _encode_key(key: Any) -> str:
    if isinstance(key, Enum):
        return str(key.value)
    if isinstance(key, str):
        return key
    raise TypeError(f"map key must be a string, got {type(key).__name__}")


def _fields_of(value: Any) -> dict[str, Any]:
    return {f.name: to_json(getattr(value, f.name)) for f in fields(value)}


def to_json(value: Any) -> Any:
    """Convert a message or model value into a JSON-compatible structure.

    Request and reply variants are tagged by name, as the HTTP API reports them.
    """
    if value is None or isinstance(value, (bool, int, float)) and not isinstance(value, Enum):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value

    if isinstance(value, GetTopSpreads):
        return "GetTopSpreads"
    if isinstance(value, GetWsConnectionStatus):
        return "GetWsConnectionStatus"
    if isinstance(value, GetSpreadHistory):
        return {
            "GetSpreadHistory": [
                to_json(value.base_exchange),
                to_json(value.quote_exchange),
                to_json(value.instrument),
            ]
        }
    if isinstance(value, TopSpreadsReply):
        return {"GetTopSpreads": [to_json(spread) for spread in value.spreads]}
    if isinstance(value, SpreadHistoryReply):
        return {"GetSpreadHistory": to_json(value.response)}
    if isinstance(value, WsConnectionStatusReply):
        return {"GetWsConnectionStatus": _fields_of(value)}
    if isinstance(value, SpreadHistoryNotFound):
        return {"CouldNotFindSpreadHistory": _fields_of(value)}

    if isinstance(value, Coin):
        return value.name
    if isinstance(value, NetworkSpecData):
        return [to_json(chain) for chain in value.chains]
    if isinstance(value, datetime):
        return _encode_time(value)
    if isinstance(value, timedelta):
        return value.total_seconds()
    if is_dataclass(value) and not isinstance(value, type):
        return _fields_of(value)
    if isinstance(value, dict):
        return {_encode_key(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, deque)):
        return [to_json(item) for item in value]
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")