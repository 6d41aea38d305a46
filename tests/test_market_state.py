from datetime import datetime, timezone

from spreadscan.core_types import InstrumentMarketData, SpreadHistory, SpreadKey, SpreadsSorted
from spreadscan.market_state import MarketState
from spreadscan.models import (
    ChainSpecs,
    Coin,
    EventKind,
    EventTrade,
    ExchangeId,
    Instrument,
    Level,
    NetworkSpecData,
    NetworkSpecs,
    WsStatus,
    random_asks,
    random_bids,
    sample_asks,
    sample_bids,
)
from spreadscan.spreads import SpreadChange, SpreadsCalculated

BTC = Instrument("btc", "usdt")
ETH = Instrument("eth", "usdt")


def _now():
    return datetime.now(timezone.utc)


def test_network_status():
    state = MarketState()
    state.network_status = {
        (ExchangeId.BINANCE_SPOT, Coin("btc")): NetworkSpecData(
            [ChainSpecs("Ethereum", True, 0.001, True, True)]
        )
    }
    updates = NetworkSpecs(
        {
            (ExchangeId.BINANCE_SPOT, Coin("btc")): NetworkSpecData(
                [ChainSpecs("Ethereum", False, 0.002, True, False)]
            ),
            (ExchangeId.HTX_SPOT, Coin("sol")): NetworkSpecData(
                [ChainSpecs("Solana", True, 0.0001, True, True)]
            ),
        }
    )
    state.process_network_status(updates)

    binance_btc = state.network_status[(ExchangeId.BINANCE_SPOT, Coin("btc"))]
    assert len(binance_btc.chains) == 1
    assert binance_btc.chains[0].chain_name == "Ethereum"
    assert not binance_btc.chains[0].fee_is_fixed
    assert binance_btc.chains[0].fees == 0.002
    assert not binance_btc.chains[0].can_withdraw

    htx_sol = state.network_status[(ExchangeId.HTX_SPOT, Coin("sol"))]
    assert len(htx_sol.chains) == 1
    assert htx_sol.chains[0].chain_name == "Solana"
    assert htx_sol.chains[0].fee_is_fixed
    assert htx_sol.chains[0].fees == 0.0001
    assert htx_sol.chains[0].can_withdraw


def test_ws_status():
    state = MarketState()
    time = _now()

    state.process_ws_status(ExchangeId.BINANCE_SPOT, BTC, WsStatus.up(EventKind.ORDER_BOOK), time)
    expected = InstrumentMarketData.empty(time)
    expected.orderbook_ws_is_connected = True
    assert state.exchange_data[ExchangeId.BINANCE_SPOT][BTC] == expected

    state.process_ws_status(ExchangeId.BINANCE_SPOT, BTC, WsStatus.up(EventKind.TRADE), time)
    expected.trades_ws_is_connected = True
    assert state.exchange_data[ExchangeId.BINANCE_SPOT][BTC] == expected

    state.process_ws_status(
        ExchangeId.BINANCE_SPOT, BTC, WsStatus.down(EventKind.ORDER_BOOK), time
    )
    expected.orderbook_ws_is_connected = False
    assert state.exchange_data[ExchangeId.BINANCE_SPOT][BTC] == expected

    state.process_ws_status(ExchangeId.HTX_SPOT, ETH, WsStatus.up(EventKind.TRADE), time)
    htx_expected = InstrumentMarketData.empty(time)
    htx_expected.trades_ws_is_connected = True
    assert state.exchange_data[ExchangeId.HTX_SPOT][ETH] == htx_expected

    state.process_ws_status(ExchangeId.HTX_SPOT, ETH, WsStatus.up(EventKind.ORDER_BOOK), time)
    htx_expected.orderbook_ws_is_connected = True
    assert state.exchange_data[ExchangeId.HTX_SPOT][ETH] == htx_expected


def _expected_history(time, take_take, take_make, make_take):
    history = SpreadHistory()
    history.latest_spreads.take_take = take_take
    history.take_take.push(time, take_take)
    history.latest_spreads.take_make = take_make
    history.take_make.push(time, take_make)
    history.latest_spreads.make_take = make_take
    history.make_take.push(time, make_take)
    return history


def test_scanner_spread():
    state = MarketState()
    time = _now()
    binance, htx = ExchangeId.BINANCE_SPOT, ExchangeId.HTX_SPOT

    state.process_orderbook(binance, BTC, [Level(12.0, 10.0)], [Level(13.0, 11.0)], time)
    state.process_orderbook(binance, ETH, [Level(20.0, 3.0)], [Level(21.0, 12.0)], time)
    state.process_orderbook(htx, BTC, [Level(13.5, 11.0)], [Level(14.5, 13.0)], time)
    state.process_orderbook(htx, ETH, [Level(19.22, 5.0)], [Level(20.11, 17.0)], time)
    assert len(state.spread_change_queue) == 0

    state.process_orderbook(binance, BTC, [Level(12.22, 9.0)], [Level(15.12, 18.03)], time)
    state.process_orderbook(binance, ETH, [Level(20.78, 9.255)], [Level(21.92, 18.78)], time)
    assert all(isinstance(w, SpreadChange) for w in state.spread_change_queue)
    assert len(state.spread_change_queue) == 2
    state.drain_spread_queue(time)
    assert len(state.spread_change_queue) == 0

    assert state.exchange_data[binance][BTC].spreads[htx] == _expected_history(
        time, (13.5 / 15.12) - 1.0, (14.5 / 15.12) - 1.0, (13.5 / 12.22) - 1.0
    )
    assert state.exchange_data[binance][ETH].spreads[htx] == _expected_history(
        time, (19.22 / 21.92) - 1.0, (20.11 / 21.92) - 1.0, (19.22 / 20.78) - 1.0
    )

    state.process_orderbook(htx, BTC, [Level(13.12, 3.0)], [Level(18.02, 19.03)], time)
    state.process_orderbook(htx, ETH, [Level(20.0, 9.5)], [Level(22.87, 11.78)], time)
    state.drain_spread_queue(time)

    assert state.exchange_data[htx][BTC].spreads[binance] == _expected_history(
        time, (12.22 / 18.02) - 1.0, (15.12 / 18.02) - 1.0, (12.22 / 13.12) - 1.0
    )
    htx_binance_eth_make_take = (20.78 / 20.0) - 1.0
    assert state.exchange_data[htx][ETH].spreads[binance] == _expected_history(
        time, (20.78 / 22.87) - 1.0, (21.92 / 22.87) - 1.0, htx_binance_eth_make_take
    )

    expected = SpreadsSorted()
    expected.insert(SpreadKey((htx, binance), ETH), htx_binance_eth_make_take)
    expected.insert(SpreadKey((binance, htx), BTC), (13.5 / 12.22) - 1.0)
    assert state.spreads_sorted.snapshot() == expected.snapshot()


def test_scanner_swap_existing_data():
    state = MarketState()
    time = _now()
    binance = ExchangeId.BINANCE_SPOT

    state.process_orderbook(binance, BTC, sample_bids(), sample_asks(), time)
    new_bids, new_asks = random_bids(), random_asks()
    state.process_orderbook(binance, BTC, list(new_bids), list(new_asks), time)

    expected_data = InstrumentMarketData.with_orderbook(time, new_bids, new_asks)
    expected = {binance: {BTC: expected_data}}
    assert state.exchange_data == expected

    state.process_orderbook(binance, BTC, [], [], time)
    assert state.exchange_data == expected

    new_asks2 = random_asks()
    state.process_orderbook(binance, BTC, [], list(new_asks2), time)
    expected_data.asks = new_asks2
    assert state.exchange_data == expected

    new_bids2 = random_bids()
    state.process_orderbook(binance, BTC, list(new_bids2), [], time)
    expected_data.bids = new_bids2
    assert state.exchange_data == expected


def test_scanner_insert():
    state = MarketState()
    time = _now()
    expected = {}
    cases = [
        (ExchangeId.BINANCE_SPOT, Instrument("btc", "usdt")),
        (ExchangeId.EXMO_SPOT, Instrument("arb", "usdt")),
        (ExchangeId.HTX_SPOT, Instrument("op", "usdt")),
    ]
    for exchange, instrument in cases:
        state.process_orderbook(exchange, instrument, sample_bids(), sample_asks(), time)
        expected[exchange] = {
            instrument: InstrumentMarketData.with_orderbook(time, sample_bids(), sample_asks())
        }
        assert state.exchange_data == expected


def test_orderbook_after_trade_does_not_queue_change():
    state = MarketState()
    time = _now()
    trade = EventTrade(Level(13.0, 1.0), True)
    state.process_trade(ExchangeId.OKX_SPOT, BTC, time, trade)
    state.process_orderbook(ExchangeId.OKX_SPOT, BTC, sample_bids(), sample_asks(), time)
    data = state.exchange_data[ExchangeId.OKX_SPOT][BTC]
    assert data.bids == sample_bids()
    assert data.asks == sample_asks()
    assert len(state.spread_change_queue) == 0


def test_process_trade_new_and_existing():
    state = MarketState()
    t1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    t2 = datetime(2024, 1, 1, 0, 1, tzinfo=timezone.utc)
    first = EventTrade(Level(10.0, 1.0), True)
    second = EventTrade(Level(11.0, 2.0), False)

    state.process_trade(ExchangeId.KUCOIN_SPOT, BTC, t1, first)
    data = state.exchange_data[ExchangeId.KUCOIN_SPOT][BTC]
    assert data == InstrumentMarketData.with_trade(t1, first)

    state.process_trade(ExchangeId.KUCOIN_SPOT, BTC, t2, second)
    assert list(data.trades.data) == [(t1, first), (t2, second)]
    assert data.trades_last_update_time == t2


def test_process_trades_new_and_existing():
    state = MarketState()
    t1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    t2 = datetime(2024, 1, 1, 0, 2, tzinfo=timezone.utc)
    trades = [EventTrade(Level(10.0, 1.0), True), EventTrade(Level(10.5, 3.0), False)]

    state.process_trades(ExchangeId.COINEX_SPOT, ETH, t1, trades)
    data = state.exchange_data[ExchangeId.COINEX_SPOT][ETH]
    assert [value for _, value in data.trades.data] == trades
    assert data.trades_ws_is_connected is False

    extra = EventTrade(Level(11.0, 1.0), True)
    state.process_trades(ExchangeId.COINEX_SPOT, ETH, t2, [extra])
    assert len(data.trades.data) == 3
    assert data.trades_last_update_time == t1


def test_calculated_spreads_with_missing_values_are_not_ranked():
    state = MarketState()
    time = _now()
    state.process_calculated_spreads(
        time,
        SpreadsCalculated(ExchangeId.BINANCE_SPOT, ExchangeId.HTX_SPOT, BTC, (0.5, None, None)),
    )
    assert state.spreads_sorted.snapshot() == []


def test_negative_spreads_are_not_ranked():
    state = MarketState()
    time = _now()
    state.process_calculated_spreads(
        time,
        SpreadsCalculated(ExchangeId.BINANCE_SPOT, ExchangeId.HTX_SPOT, BTC, (-0.1, -0.2, -0.3)),
    )
    assert state.spreads_sorted.snapshot() == []


def test_spread_change_skips_own_exchange_and_missing_instrument():
    state = MarketState()
    time = _now()
    state.process_orderbook(ExchangeId.BINANCE_SPOT, BTC, [Level(10.0, 1.0)], [Level(11.0, 1.0)], time)
    state.process_orderbook(ExchangeId.HTX_SPOT, ETH, [Level(10.0, 1.0)], [Level(11.0, 1.0)], time)
    state.process_spread_change(
        SpreadChange.with_bid(ExchangeId.BINANCE_SPOT, BTC, Level(10.5, 1.0))
    )
    assert len(state.spread_change_queue) == 0

# End of tests