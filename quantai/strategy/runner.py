from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from loguru import logger as log

from quantai.broker.executor import ExecutionEngine
from quantai.core.config import BotConfig, UserSettings
from quantai.core.errors import TradingError
from quantai.core.types import AccountKind, BotLog, Severity
from quantai.core.utils import clock_time, format_pnl, new_id
from quantai.core.worker import IntervalWorker
from quantai.monitor.notifications import NotificationSink, safe_notify
from quantai.strategy.metrics import SessionMetrics
from quantai.strategy.synthetic import SyntheticTrade, generate_mock_trade

IDLE_EVENTS: List[Tuple[str, Severity]] = [
    ("Scanning US Tech sector for volatility...", "info"),
    ("Analyzing sentiment matrix. No high-confidence signals.", "info"),
    ("Price anomaly detected. Checking correlations.", "warning"),
    ("Holding positions. Risk parameters within safe range.", "info"),
]


class RunnerState(str, Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"


@dataclass
class StrategyProfile:
    name: str = "Momentum Alpha v1"
    stop_loss: float = 2.5
    take_profit: float = 5.0
    indicators: Dict[str, bool] = field(
        default_factory=lambda: {"rsi": True, "macd": False, "bb": True, "sentiment": True}
    )


class StrategyRunner:
    """Simulated trading bot with a two-state lifecycle.

    Each tick either settles one synthetic trade through the execution engine
    or appends an informational log line. The active account is read from the
    engine on every tick. `stop()` waits for an in-flight tick and no trade is
    settled after it returns.
    """

    def __init__(
        self,
        engine: ExecutionEngine,
        rng: Optional[np.random.Generator] = None,
        config: Optional[BotConfig] = None,
        notifier: Optional[NotificationSink] = None,
        settings: Optional[Callable[[], UserSettings]] = None,
        threaded: bool = True,
        max_logs: int = 1000,
    ) -> None:
        self.engine = engine
        self.rng = rng if rng is not None else np.random.default_rng()
        self.config = config or BotConfig()
        self.notifier = notifier
        self.settings = settings or UserSettings
        self.profile = StrategyProfile()
        self.metrics = SessionMetrics()
        self.max_logs = max_logs
        self._state = RunnerState.STOPPED
        self._lock = threading.RLock()
        self._logs: List[BotLog] = []
        self._worker: Optional[IntervalWorker] = (
            IntervalWorker("strategy-runner", self.tick, self.config.tick_interval_sec) if threaded else None
        )

    @property
    def state(self) -> RunnerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RunnerState.RUNNING

    def logs(self) -> List[BotLog]:
        with self._lock:
            return list(self._logs)

    def start(self) -> bool:
        """STOPPED -> RUNNING. Returns False when already running."""
        with self._lock:
            if self._state is RunnerState.RUNNING:
                return False
            self._state = RunnerState.RUNNING
            settings = self.settings()
            self._add_log(f"Strategy initialized: {self.profile.name}", "info")
            self._add_log(f"Bot engine started. Risk Level: {settings.bot_risk_level}", "success")
            if self.engine.active_account is AccountKind.PAPER:
                self._add_log("Running in PAPER TRADING MODE. No real capital at risk.", "warning")
        log.info(f"Strategy runner started | strategy={self.profile.name}")
        safe_notify(self.notifier, "Algo Engine Started", f'Strategy "{self.profile.name}" is now active.', "success")
        if self._worker is not None:
            self._worker.start()
        return True

    def stop(self) -> bool:
        """RUNNING -> STOPPED. Returns False when already stopped."""
        with self._lock:
            if self._state is RunnerState.STOPPED:
                return False
            self._state = RunnerState.STOPPED
            self._add_log("Bot engine stopped by user.", "warning")
        if self._worker is not None:
            self._worker.stop()
        log.info("Strategy runner stopped")
        safe_notify(self.notifier, "Algo Engine Stopped", "Trading has been paused manually.", "warning")
        return True

    def update_profile(self, **changes) -> StrategyProfile:
        with self._lock:
            self.profile = replace(self.profile, **changes)
            self._add_log(
                f"Updated Parameters: SL {self.profile.stop_loss}%, TP {self.profile.take_profit}%", "warning"
            )
        safe_notify(self.notifier, "Strategy Updated", "Parameters have been saved successfully.", "success")
        return self.profile

    def tick(self) -> Optional[SyntheticTrade]:
        """Run one step. Returns the settled trade, or None for idle, skipped or stopped ticks."""
        with self._lock:
            if self._state is not RunnerState.RUNNING:
                return None
            if float(self.rng.random()) >= self.config.trade_probability:
                msg, severity = IDLE_EVENTS[int(float(self.rng.random()) * len(IDLE_EVENTS)) % len(IDLE_EVENTS)]
                self._add_log(msg, severity)
                return None

            trade = generate_mock_trade(self.rng, self.config)
            try:
                new_balance = self.engine.settle_pnl(trade.profit)
            except TradingError as e:
                log.warning(f"Bot tick skipped | {trade.action} {trade.symbol} pnl={trade.profit:.2f}: {e}")
                self._add_log(f"SKIPPED: {trade.action} {trade.symbol} | {e}", "error")
                return None

            self.metrics.record(trade.profit)
            profit_str = format_pnl(trade.profit)
            self._add_log(
                f"EXECUTED: {trade.action} {trade.symbol} | PnL: {profit_str}",
                "success" if trade.profit > 0 else "error",
            )
            notify = self.settings().notifications_enabled

        log.info(f"Bot trade | {trade.action} {trade.symbol} pnl={trade.profit:.2f} balance={new_balance:.2f}")
        if notify:
            safe_notify(
                self.notifier,
                f"Trade Executed: {trade.symbol}",
                f"{trade.action} order filled. Result: {profit_str} (New Balance: ${new_balance:.2f})",
                "success" if trade.profit > 0 else "warning",
            )
        return trade

    def _add_log(self, details: str, severity: Severity, action: str = "SYSTEM") -> None:
        self._logs.append(BotLog(id=new_id(), timestamp=clock_time(), action=action, details=details, severity=severity))
        if len(self._logs) > self.max_logs:
            del self._logs[: len(self._logs) - self.max_logs]
