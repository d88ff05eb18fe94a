from __future__ import annotations

import pytest

from quantai.broker.account import AccountState
from quantai.broker.executor import ExecutionEngine
from quantai.core.config import BotConfig, UserSettings
from quantai.core.types import AccountKind
from quantai.monitor.notifications import NotificationCenter
from quantai.strategy.runner import IDLE_EVENTS, RunnerState, StrategyRunner
from quantai.strategy.synthetic import generate_mock_trade

WIN_TICK = [0.1, 0.2, 0.5, 0.0, 0.1]
LOSS_TICK = [0.1, 0.9, 0.5, 0.0, 0.9]


def _runner(rng, balance: float = 500000.0, active: AccountKind = AccountKind.PAPER, settings=None):
    account = AccountState(active=active, balances={AccountKind.PAPER: balance, AccountKind.REAL: 1000.0})
    notes = NotificationCenter()
    engine = ExecutionEngine(account, notifier=notes)
    runner = StrategyRunner(engine, rng=rng, notifier=notes, settings=settings, threaded=False)
    return runner, engine, notes


def test_generate_mock_trade_uses_draw_order(scripted_rng) -> None:
    win = generate_mock_trade(scripted_rng(*WIN_TICK[1:]))
    assert (win.symbol, win.action, win.profit) == ("NVDA", "BUY", 125.0)
    loss = generate_mock_trade(scripted_rng(*LOSS_TICK[1:]))
    assert (loss.symbol, loss.action, loss.profit) == ("NVDA", "SELL", -60.0)


def test_profit_stays_within_configured_ranges(scripted_rng) -> None:
    cfg = BotConfig()
    for draw in (0.0, 0.3, 0.999):
        win = generate_mock_trade(scripted_rng(0.0, draw, 0.0, 0.0), cfg)
        assert cfg.win_min <= win.profit <= cfg.win_max
        loss = generate_mock_trade(scripted_rng(0.99, draw, 0.0, 0.0), cfg)
        assert -cfg.loss_max <= loss.profit <= -cfg.loss_min


def test_ticks_do_nothing_while_stopped(scripted_rng) -> None:
    rng = scripted_rng(*WIN_TICK)
    runner, engine, _ = _runner(rng)
    assert runner.state is RunnerState.STOPPED
    assert runner.tick() is None
    assert rng.calls == 0
    assert engine.active_balance() == 500000.0


def test_winning_tick_settles_against_active_balance(scripted_rng) -> None:
    runner, engine, notes = _runner(scripted_rng(*WIN_TICK))
    runner.start()
    trade = runner.tick()
    assert trade is not None and trade.profit == 125.0
    assert engine.active_balance() == pytest.approx(500125.0)
    assert runner.metrics.session_pnl == pytest.approx(125.0)
    assert runner.metrics.trade_count == 1 and runner.metrics.win_count == 1
    assert runner.logs()[-1].details == "EXECUTED: BUY NVDA | PnL: +$125.00"
    assert notes.history()[0].title == "Trade Executed: NVDA"
    assert notes.history()[0].message == "BUY order filled. Result: +$125.00 (New Balance: $500125.00)"
    # Bot results are not manual fills
    assert engine.trades() == []
    assert engine.positions() == []


def test_losing_tick_and_win_rate(scripted_rng) -> None:
    runner, engine, notes = _runner(scripted_rng(*WIN_TICK, *LOSS_TICK))
    runner.start()
    runner.tick()
    trade = runner.tick()
    assert trade.profit == -60.0 and trade.action == "SELL"
    assert engine.active_balance() == pytest.approx(500065.0)
    assert runner.metrics.session_pnl == pytest.approx(65.0)
    assert runner.metrics.win_rate == pytest.approx(0.5)
    assert runner.logs()[-1].severity == "error"
    assert notes.history()[0].severity == "warning"


def test_idle_tick_logs_without_trading(scripted_rng) -> None:
    runner, engine, _ = _runner(scripted_rng(0.5, 0.0))
    runner.start()
    before = len(runner.logs())
    assert runner.tick() is None
    logs = runner.logs()
    assert len(logs) == before + 1
    assert logs[-1].details == IDLE_EVENTS[0][0]
    assert engine.active_balance() == 500000.0
    assert runner.metrics.trade_count == 0


def test_loss_larger_than_balance_is_skipped(scripted_rng) -> None:
    runner, engine, _ = _runner(scripted_rng(*LOSS_TICK), balance=10.0)
    runner.start()
    assert runner.tick() is None
    assert engine.active_balance() == 10.0
    assert runner.metrics.trade_count == 0
    assert runner.logs()[-1].details.startswith("SKIPPED: SELL NVDA")


def test_settles_against_real_account_when_active(scripted_rng) -> None:
    runner, engine, _ = _runner(scripted_rng(*WIN_TICK), active=AccountKind.REAL)
    runner.start()
    runner.tick()
    assert engine.balance(AccountKind.REAL) == pytest.approx(1125.0)
    assert engine.balance(AccountKind.PAPER) == 500000.0
    assert not any("PAPER TRADING MODE" in entry.details for entry in runner.logs())


def test_start_and_stop_are_idempotent(scripted_rng) -> None:
    runner, _, notes = _runner(scripted_rng())
    assert runner.stop() is False
    assert runner.start() is True
    assert runner.start() is False
    assert runner.is_running
    details = [entry.details for entry in runner.logs()]
    assert details[0] == "Strategy initialized: Momentum Alpha v1"
    assert details[1] == "Bot engine started. Risk Level: Moderate"
    assert "Running in PAPER TRADING MODE. No real capital at risk." in details
    assert runner.stop() is True
    assert runner.stop() is False
    assert runner.state is RunnerState.STOPPED
    titles = [n.title for n in notes.history()]
    assert titles.count("Algo Engine Started") == 1
    assert titles.count("Algo Engine Stopped") == 1


def test_metrics_survive_restart_and_stop_halts_trading(scripted_rng) -> None:
    runner, engine, _ = _runner(scripted_rng(*WIN_TICK, *WIN_TICK))
    runner.start()
    runner.tick()
    runner.stop()
    balance = engine.active_balance()
    assert runner.tick() is None
    assert engine.active_balance() == balance
    runner.start()
    assert runner.metrics.trade_count == 1
    runner.tick()
    assert runner.metrics.trade_count == 2
    assert runner.metrics.session_pnl == pytest.approx(250.0)


def test_notifications_follow_user_setting(scripted_rng) -> None:
    muted = UserSettings(notifications_enabled=False)
    runner, _, notes = _runner(scripted_rng(*WIN_TICK), settings=lambda: muted)
    runner.start()
    runner.tick()
    assert not any(n.title.startswith("Trade Executed") for n in notes.history())


def test_update_profile(scripted_rng) -> None:
    runner, _, notes = _runner(scripted_rng())
    profile = runner.update_profile(stop_loss=1.5, take_profit=4.0)
    assert profile.stop_loss == 1.5 and profile.name == "Momentum Alpha v1"
    assert runner.logs()[-1].details == "Updated Parameters: SL 1.5%, TP 4.0%"
    assert notes.history()[0].title == "Strategy Updated"
