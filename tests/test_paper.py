"""Paper mode: state persistence and resume."""

import json

import pytest
from breakout_bot.backtesting.engine import apply_candle, new_state
from breakout_bot.core.exceptions import StateError
from breakout_bot.core.params import EngineSettings, StrategyParams
from breakout_bot.feeds.base import CandleFeed
from breakout_bot.paper.state_store import StateStore, state_from_dict, state_to_dict
from breakout_bot.paper.trader import PaperTrader

from synthetic import bar, breakout_long, random_walk

PARAMS = StrategyParams(lookback=10, volume_multiplier=1.2)


class ListFeed(CandleFeed):
    """Feed over a fixed candle list; `available` controls how many have closed so far."""

    def __init__(self, candles):
        self.candles = candles
        self.available = 0

    def get_candles(self, symbol, interval, limit=50):
        return self.candles[:self.available][-limit:]


def _trader(feed, path, params=PARAMS):
    return PaperTrader(feed=feed, store=StateStore(path), params=params, limit=50)


def test_resume_matches_uninterrupted_run(tmp_path):
    candles = random_walk(150, seed=5)
    state = new_state(PARAMS)
    for c in candles:
        state = apply_candle(state, c)

    path = tmp_path / "state.json"
    feed = ListFeed(candles)
    for available in range(7, len(candles) + 7, 7):
        feed.available = min(available, len(candles))
        # fresh trader each poll, as after a process restart
        _trader(feed, path).tick()

    resumed = StateStore(path).load(PARAMS)
    assert resumed == state
    assert state_to_dict(resumed) == state_to_dict(state)


def test_state_dict_round_trip_with_open_position():
    state = new_state(PARAMS, EngineSettings(initial_balance=5000.0))
    for c in breakout_long():
        state = apply_candle(state, c)
    assert state.position is not None
    data = json.loads(json.dumps(state_to_dict(state)))
    assert state_from_dict(data) == state


def test_tick_actions(tmp_path):
    candles = breakout_long() + [bar(11, 105.0, 112.0, 104.0, 111.0, 10.0)]
    feed = ListFeed(candles)
    trader = _trader(feed, tmp_path / "state.json", StrategyParams())

    feed.available = 10
    first = trader.tick()
    assert first.applied == 10
    assert first.action == "HOLD"

    feed.available = 11
    opened = trader.tick()
    assert opened.applied == 1
    assert opened.action == "OPEN"
    assert opened.state.position.entry_price == 105.0

    feed.available = 12
    closed = trader.tick()
    assert closed.action == "CLOSE"
    assert closed.closed_trades[0].exit_price == pytest.approx(111.3)

    idle = trader.tick()
    assert idle.applied == 0
    assert idle.action == "HOLD"


def test_changed_params_refuse_to_resume(tmp_path):
    path = tmp_path / "state.json"
    feed = ListFeed(breakout_long())
    feed.available = 5
    _trader(feed, path).tick()
    with pytest.raises(StateError):
        StateStore(path).load(StrategyParams(lookback=20))


def test_changed_settings_refuse_to_resume(tmp_path):
    store = StateStore(tmp_path / "state.json")
    store.save(new_state(PARAMS, EngineSettings(balance_floor=0.0)))
    with pytest.raises(StateError):
        store.load(PARAMS, EngineSettings(balance_floor=9000.0))
    with pytest.raises(StateError):
        store.load(PARAMS, EngineSettings(equity_sample_every=4))
    assert store.load(PARAMS, EngineSettings(balance_floor=0.0)).settings.balance_floor == 0.0
    assert store.load(PARAMS).settings == EngineSettings()


def test_trader_with_other_settings_refuses_stored_account(tmp_path):
    path = tmp_path / "state.json"
    feed = ListFeed(breakout_long())
    feed.available = 5
    _trader(feed, path).tick()
    changed = PaperTrader(
        feed=feed, store=StateStore(path), params=PARAMS, settings=EngineSettings(initial_balance=500.0),
    )
    with pytest.raises(StateError):
        changed.tick()


def test_corrupt_state_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StateError):
        StateStore(path).load(PARAMS)
    path.write_text(json.dumps({"version": 1, "params": PARAMS.to_dict()}), encoding="utf-8")
    with pytest.raises(StateError):
        StateStore(path).load(PARAMS)
    path.write_text(json.dumps({"version": 99}), encoding="utf-8")
    with pytest.raises(StateError):
        StateStore(path).load(PARAMS)


def test_missing_state_starts_fresh(tmp_path):
    store = StateStore(tmp_path / "none.json")
    assert not store.exists()
    state = store.load(PARAMS)
    assert state.balance == 10000.0
    assert state.last_timestamp is None
