from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Literal, Optional


Action = Literal["BUY", "SELL"]
TradeStatus = Literal["FILLED", "PENDING"]
Severity = Literal["info", "success", "warning", "error"]
Sentiment = Literal["Bullish", "Bearish", "Neutral"]
Region = Literal["Global", "US", "EU", "Asia"]


class AccountKind(str, Enum):
    PAPER = "paper"
    REAL = "real"

    @classmethod
    def from_flag(cls, is_paper_trading: bool) -> "AccountKind":
        return cls.PAPER if is_paper_trading else cls.REAL


@dataclass
class PricePoint:
    time: str  # "HH:MM"
    value: float


@dataclass
class StockQuote:
    symbol: str
    name: str
    sector: str
    price: float
    change: float
    change_percent: float
    volume: str
    market_cap: str
    history: List[PricePoint] = field(default_factory=list)


@dataclass
class NewsItem:
    id: str
    title: str
    source: str
    time: str
    summary: str
    sentiment: Sentiment
    sentiment_score: float  # -1 to 1
    related_tickers: List[str]
    region: Region
    impact_analysis: Optional[str] = None


@dataclass
class Position:
    symbol: str
    quantity: float
    avg_price: float


@dataclass
class TradeIntent:
    symbol: str
    action: Action
    quantity: float
    price: float
    account: Optional[AccountKind] = None  # None -> active account


@dataclass(frozen=True)
class TradeRecord:
    id: str
    symbol: str
    action: Action
    quantity: float
    price: float
    total: float
    timestamp: str
    account: AccountKind
    status: TradeStatus = "FILLED"


@dataclass
class PortfolioSnapshot:
    timestamp: float
    cash: float
    equity: float
    unrealized_pnl: float


@dataclass
class Notification:
    id: str
    title: str
    message: str
    time: str
    severity: Severity
    read: bool = False


@dataclass
class BotLog:
    id: str
    timestamp: str
    action: str
    details: str
    severity: Severity
