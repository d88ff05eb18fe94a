from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, field_validator
from pydantic.alias_generators import to_camel

SETTINGS_VERSION = 1
DEFAULT_PAPER_BALANCE = 500000.00
DEFAULT_REAL_BALANCE = 124592.50
DEFAULT_WATCHLIST = ["NVDA", "TSLA", "AAPL"]


def normalize_tickers(tickers: List[str]) -> List[str]:
    out: List[str] = []
    for ticker in tickers:
        t = str(ticker).strip().upper()
        if t and t not in out:
            out.append(t)
    return out


class UserSettings(BaseModel):
    """Persisted user preferences and both cash balances.

    Serialized with camelCase keys so blobs written by the dashboard
    (`paperBalance`, `isPaperTrading`, ...) load unchanged.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    version: int = SETTINGS_VERSION
    watchlist: List[str] = Field(default_factory=lambda: list(DEFAULT_WATCHLIST))
    alert_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    chart_type: Literal["area", "line", "bar"] = "area"
    is_paper_trading: bool = True
    bot_risk_level: Literal["Low", "Moderate", "High"] = "Moderate"
    bot_max_drawdown: float = Field(default=5.0, ge=0.0, le=100.0)
    notifications_enabled: bool = True
    real_balance: float = Field(default=DEFAULT_REAL_BALANCE, ge=0.0)
    paper_balance: float = Field(default=DEFAULT_PAPER_BALANCE, ge=0.0)

    @field_validator("watchlist")
    @classmethod
    def _normalize_watchlist(cls, v: List[str]) -> List[str]:
        return normalize_tickers(v)

    def merged(self, changes: Dict[str, Any]) -> "UserSettings":
        """Return a validated copy with `changes` (keyed by field name) applied."""
        data = self.model_dump()
        data.update(changes)
        return UserSettings.model_validate(data)

    def with_ticker(self, ticker: str) -> "UserSettings":
        return self.model_copy(update={"watchlist": normalize_tickers(self.watchlist + [ticker])})

    def without_ticker(self, ticker: str) -> "UserSettings":
        t = ticker.strip().upper()
        return self.model_copy(update={"watchlist": [w for w in self.watchlist if w != t]})

    def reset_to_defaults(self) -> "UserSettings":
        # Factory reset keeps real money
        return UserSettings(real_balance=self.real_balance)

    def to_blob(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class GeneralConfig(BaseModel):
    seed: Optional[int] = None
    settings_path: str = "~/.quantai/settings.json"
    profile_path: str = "~/.quantai/profile.json"
    log_dir: str = "logs"


class FeedConfig(BaseModel):
    interval_sec: PositiveFloat = 3.0
    volatility: PositiveFloat = 0.003
    history_length: int = Field(default=20, ge=2)


class NewsConfig(BaseModel):
    enabled: bool = True
    interval_sec: PositiveFloat = 8.0
    max_items: int = Field(default=50, ge=1)
    analyze_impact: bool = False


class BotConfig(BaseModel):
    tick_interval_sec: PositiveFloat = 2.0
    trade_probability: float = Field(default=0.3, ge=0.0, le=1.0)
    win_probability: float = Field(default=0.65, ge=0.0, le=1.0)
    win_min: float = 50.0
    win_max: float = 200.0
    loss_min: float = 20.0
    loss_max: float = 100.0
    universe: List[str] = Field(
        default_factory=lambda: ["NVDA", "TSLA", "AAPL", "MSFT", "AMD", "GOOGL", "AMZN", "META"]
    )


class LLMConfig(BaseModel):
    enabled: bool = True
    model: str = "deepseek-chat"
    base_url: str = "https://api.deepseek.com/v1"
    api_key: str = ""
    timeout_sec: PositiveFloat = 30.0
    retries: int = Field(default=2, ge=1)


class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    news: NewsConfig = Field(default_factory=NewsConfig)
    bot: BotConfig = Field(default_factory=BotConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)

    @staticmethod
    def load(path: str | Path) -> "AppConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return AppConfig(**data)
