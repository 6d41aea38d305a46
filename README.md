# spreadscan

spreadscan keeps order books and trades for spot instruments on several
exchanges. It computes the price spreads for the same instrument between
exchanges and keeps a ten-minute rolling history of every spread and trade.
It also ranks the widest positive spreads. A small HTTP API serves the results.

## Installation

```
pip install .
```

To install the test tools as well:

```
pip install ".[test]"
```

## Running the server

```
spreadscan [--host HOST] [--port PORT]
```

By default the server listens on `127.0.0.1:8080`. It logs JSON lines to
standard error. To set the log level, use the `SPREADSCAN_LOG` environment
variable (default `INFO`).

The server has three endpoints:

| Path | What it returns |
|------|-----------------|
| `GET /` | The top spreads, best first, tagged as `{"GetTopSpreads": [...]}`. A spread appears only if the average notional of the recent trades is at least 1000 on both exchanges. |
| `GET /spread-history?base_exchange=..&quote_exchange=..&base_instrument=..&quote_instrument=..` | `{"GetSpreadHistory": {...}}`: the spread history for one pair of exchanges and one instrument. The reply also holds both books, any network information and the average trade figures. If either exchange has no data for the instrument, the reply is `{"CouldNotFindSpreadHistory": {...}}`. |
| `GET /ws-status` | `{"GetWsConnectionStatus": {...}}`, which holds four counts. Two count instruments whose book or trades were updated in the last two minutes. The other two count instruments whose book or trade feed is marked connected. |

Exchange names are the values of `spreadscan.models.ExchangeId`, for example
`BinanceSpot` or `HtxSpot`. Instrument names are lower-cased before lookup.
If a query parameter is missing or an exchange name is unknown, the server
answers with status 400.

The scanner has 100 ms to answer each request. If it takes longer, the server
replies with status 408. If the scanner's channel is closed, the server
replies with status 500.

## What it does not do

spreadscan does not connect to any exchange. The `spreadscan` command starts
the scanner with empty input channels, and nothing feeds them. Until your own
code sends market data and network status into the scanner, every query
returns empty results or a not-found reply.

`spreadscan.feeds` provides `NetworkStatusStream` and `StreamChunks`. They work
with connector objects that you supply. Such a connector has
`get_network_info`, `get_usdt_pair`, `ws_chunk_size`, `ID`, `ORDERBOOK` and
`TRADE`. The package itself has no connectors.

## Library use

```python
from spreadscan.channels import Channel
from spreadscan.messages import make_http_channels
from spreadscan.scanner import SpotArbScanner
from spreadscan.server import create_app

scanner_channel, server_channel = make_http_channels()
network_status = Channel()
market_data = Channel()

scanner = SpotArbScanner(network_status, market_data, scanner_channel)
app = create_app(server_channel)  # an aiohttp web.Application
```

Send `spreadscan.models.MarketEvent` objects into `market_data`. The
`event_data` of an event can be:

- an `EventOrderBook` or an `EventOrderBookSnapshot`
- an `EventTrade`
- a list of `EventTrade`
- a `WsStatus`

Send `NetworkSpecs` into `network_status`.

- `scanner.step()` takes at most one item from each input and processes any
  spread work that results. It returns `False` once an input channel is
  closed and empty.
- `scanner.run()` loops until that happens.
- `scanner.top_spreads()`, `scanner.spread_history(...)` and
  `scanner.ws_connection_status()` answer queries directly.
- `spreadscan.messages.to_json` turns any reply into the JSON form the server
  sends.

`Channel` is a thread-safe, unbounded FIFO. `try_recv` raises `ChannelEmpty`
if nothing is waiting. `recv` raises `TimeoutError` if nothing arrives in
time. Both raise `ChannelClosed` once the channel is closed and drained.

`spreadscan.transformer` has two transformers that turn decoded exchange
updates into `MarketEvent` objects. `StatelessTransformer` looks up the
instrument for each update. `MultiBookTransformer` keeps one book per market
and applies updates to it with an updater type that you supply.

### Spreads

When the best bid or ask of an instrument changes on one exchange, spreads are
computed against every other exchange that has the same instrument:

- take/take, if the best ask changed: the other exchange's best bid divided by
  this exchange's best ask, minus 1
- take/make, if the best ask changed: the other exchange's best ask divided by
  this exchange's best ask, minus 1
- make/take, if the best bid changed: the other exchange's best bid divided by
  this exchange's best bid, minus 1

Each spread is added to the history for that exchange pair. The largest spread
is ranked if it is positive. The ranking snapshot holds at most 150 entries.