from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

import numpy as np
from loguru import logger as log

from quantai.broker.account import AccountState
from quantai.broker.executor import ExecutionEngine
from quantai.core.config import AppConfig, UserSettings
from quantai.auth.profiles import ProfileStore
from quantai.core.errors import AuthError, InvalidPrice, SettingsError
from quantai.core.settings import SettingsStore
from quantai.core.types import AccountKind, Action, NewsItem, PortfolioSnapshot, TradeIntent, TradeRecord
from quantai.core.worker import IntervalWorker
from quantai.data.market_feed import MarketDataService, MarketFeed
from quantai.data.news_feed import NewsFeed
from quantai.llm.advisor import AITextService
from quantai.llm.client import LLMClient
from quantai.monitor.notifications import NotificationCenter
from quantai.strategy.runner import StrategyRunner

_ENGINE_OWNED = {"paper_balance", "real_balance", "is_paper_trading"}


class TradingSession:
    """One mounted desk: settings, accounting core, feeds, bot and AI helper.

    Balances and the paper/real flag are owned by the execution engine; every
    engine mutation is mirrored into UserSettings and written to the store.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        settings_store: Optional[SettingsStore] = None,
        ai: Optional[AITextService] = None,
        profile_store: Optional[ProfileStore] = None,
        seed: Optional[int] = None,
        threaded: bool = True,
    ) -> None:
        self.config = config or AppConfig()
        self.store = settings_store or SettingsStore(self.config.general.settings_path)
        self._settings_lock = threading.Lock()
        self._settings = self.store.load()
        self.profiles = profile_store or ProfileStore(self.config.general.profile_path)
        self._locked = False

        seq = np.random.SeedSequence(seed if seed is not None else self.config.general.seed)
        feed_seed, news_seed, bot_seed = seq.spawn(3)

        self.notifications = NotificationCenter(toasts_enabled=self._settings.notifications_enabled)
        self.engine = ExecutionEngine(AccountState.from_settings(self._settings), notifier=self.notifications)
        self.engine.add_listener(self._sync_balances)

        self.market = MarketDataService(
            MarketFeed(
                rng=np.random.default_rng(feed_seed),
                volatility=self.config.feed.volatility,
                history_length=self.config.feed.history_length,
            )
        )
        self.news = NewsFeed(rng=np.random.default_rng(news_seed), max_items=self.config.news.max_items)
        self.ai = ai or AITextService(LLMClient.from_config(self.config.llm), enabled=self.config.llm.enabled)
        self.runner = StrategyRunner(
            self.engine,
            rng=np.random.default_rng(bot_seed),
            config=self.config.bot,
            notifier=self.notifications,
            settings=lambda: self.settings,
            threaded=threaded,
        )

        self._workers: List[IntervalWorker] = []
        if threaded:
            self._workers.append(IntervalWorker("market-feed", self.market.refresh, self.config.feed.interval_sec))
            if self.config.news.enabled:
                self._workers.append(IntervalWorker("news-feed", self.refresh_news, self.config.news.interval_sec))

        self.notifications.notify("Welcome to QuantAI", "System initialized successfully.", "success")

    @property
    def settings(self) -> UserSettings:
        with self._settings_lock:
            return self._settings

    def start(self) -> None:
        for w in self._workers:
            w.start()
        log.info(f"Session started | mode={self.engine.active_account.value}")

    def stop(self) -> None:
        self.runner.stop()
        for w in self._workers:
            w.stop()
        log.info("Session stopped")

    # Settings
    def update_settings(self, **changes: Any) -> UserSettings:
        owned = _ENGINE_OWNED.intersection(changes)
        if owned:
            raise SettingsError(f"{', '.join(sorted(owned))} change through deposits, trades or set_mode()")
        with self._settings_lock:
            self._settings = self._settings.merged(changes)
            current = self._settings
            self.store.save(current)
        self.notifications.toasts_enabled = current.notifications_enabled
        return current

    def add_to_watchlist(self, ticker: str) -> UserSettings:
        return self.update_settings(watchlist=self.settings.with_ticker(ticker).watchlist)

    def remove_from_watchlist(self, ticker: str) -> UserSettings:
        return self.update_settings(watchlist=self.settings.without_ticker(ticker).watchlist)

    def set_mode(self, kind: AccountKind) -> None:
        self.engine.set_active(kind)

    def toggle_mode(self) -> AccountKind:
        return self.engine.toggle_mode()

    def reset_paper_balance(self) -> None:
        self.engine.reset_paper()

    def reset_to_defaults(self) -> UserSettings:
        defaults = self.settings.reset_to_defaults()
        with self._settings_lock:
            self._settings = defaults
        self.engine.reset_paper()
        self.engine.set_active(AccountKind.PAPER)
        self.notifications.toasts_enabled = defaults.notifications_enabled
        return self.settings

    def _sync_balances(self, engine: ExecutionEngine) -> None:
        with self._settings_lock:
            self._settings = self._settings.model_copy(
                update={
                    "paper_balance": engine.balance(AccountKind.PAPER),
                    "real_balance": engine.balance(AccountKind.REAL),
                    "is_paper_trading": engine.active_account is AccountKind.PAPER,
                }
            )
            # Read and saved under one lock; the last write holds the newest balances
            self.store.save(self._settings)

    # PIN lock
    @property
    def is_locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        self._locked = True
        log.info("Session locked")

    def unlock(self, pin: str) -> bool:
        if self.profiles.verify_pin(pin):
            self._locked = False
            log.info("Session unlocked")
            return True
        self.notifications.notify("Incorrect PIN", "The PIN does not match the stored profile.", "error")
        return False

    def _require_unlocked(self) -> None:
        if self._locked:
            raise AuthError("Session is locked. Enter your PIN to continue.")

    # Trading
    def place_order(self, symbol: str, action: Action, quantity: float) -> TradeRecord:
        """Market order at the feed's current price against the active account."""
        self._require_unlocked()
        quote = self.market.get(symbol)
        if quote is None:
            raise InvalidPrice(f"No market data for {symbol}.")
        return self.engine.execute(TradeIntent(symbol=symbol, action=action, quantity=quantity, price=quote.price))

    def deposit(self, amount: float) -> float:
        self._require_unlocked()
        return self.engine.deposit(amount)

    def total_equity(self) -> float:
        return self.engine.total_equity(self.market.prices())

    def unrealized_pnl(self) -> float:
        return self.engine.unrealized_pnl(self.market.prices())

    def snapshot(self) -> PortfolioSnapshot:
        return self.engine.snapshot(self.market.prices())

    # Feeds and AI
    def refresh_news(self) -> NewsItem:
        item = self.news.fetch_update()
        if self.config.news.analyze_impact:
            self.news.attach_analysis(item.id, self.ai.analyze_impact(item))
        if abs(item.sentiment_score) >= self.settings.alert_threshold:
            self.notifications.notify(f"{item.sentiment} Alert: {item.related_tickers[0]}", item.title, "info")
        return item

    def strategy_outlook(self) -> str:
        return self.ai.strategy_outlook(self.settings.watchlist)

    def summary(self) -> Dict[str, Any]:
        snap = self.snapshot()
        return {
            "mode": self.engine.active_account.value,
            "balance": snap.cash,
            "equity": snap.equity,
            "unrealized_pnl": snap.unrealized_pnl,
            "timestamp": snap.timestamp,
        }
