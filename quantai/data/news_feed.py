from __future__ import annotations

import copy
import threading
from typing import List, Optional, Tuple

import numpy as np

from quantai.core.types import NewsItem, Sentiment
from quantai.core.utils import new_id

NEWS_SOURCES = ["Global Finance Wire", "Tech Daily", "Energy Markets Report", "Crypto Insider", "BioTech Weekly"]
REGIONS = ["Global", "US", "EU", "Asia"]
TICKERS = ["NVDA", "TSLA", "AAPL", "MSFT", "AMD", "GOOGL", "AMZN", "META"]

TEMPLATES: List[Tuple[str, str, Sentiment]] = [
    ("{ticker} Reports Q3 Earnings Beat", "Revenue exceeds expectations by 15% driven by AI sector demand.", "Bullish"),
    ("Regulatory Scrutiny Increases for {ticker}", "Antitrust investigation launched regarding recent acquisitions.", "Bearish"),
    ("{ticker} Announces Strategic Partnership", "New collaboration aims to accelerate next-gen product development.", "Bullish"),
    ("Supply Chain Disruptions Hit {ticker}", "Component shortages may delay shipments for the upcoming quarter.", "Bearish"),
    ("Analyst Upgrade for {ticker}", "Price target raised due to strong market positioning.", "Bullish"),
    ("Market Volatility Impacts {ticker}", "Shares slide amidst broader tech sector sell-off.", "Bearish"),
    ("{ticker} Unveils New AI Chip", "Revolutionary architecture promises 2x performance gains.", "Bullish"),
    ("CEO of {ticker} Steps Down", "Unexpected leadership change causes minor market turbulence.", "Neutral"),
]

INITIAL_NEWS: List[NewsItem] = [
    NewsItem(
        id="1",
        title="Federal Reserve Signals Potential Rate Cut in Q3",
        source="Global Finance Wire",
        time="10 mins ago",
        summary="Central bank officials hint at easing monetary policy as inflation metrics stabilize across key sectors.",
        sentiment="Bullish",
        sentiment_score=0.75,
        related_tickers=["SPY", "QQQ", "TLT"],
        region="US",
    ),
    NewsItem(
        id="2",
        title="New Semiconductor Trade Restrictions Announced by EU",
        source="Tech Daily",
        time="45 mins ago",
        summary="European Union implements stricter export controls on advanced chip manufacturing equipment.",
        sentiment="Bearish",
        sentiment_score=-0.6,
        related_tickers=["ASML", "INTC", "AMD"],
        region="EU",
    ),
    NewsItem(
        id="3",
        title="Oil Prices Surge Amidst Middle East Tensions",
        source="Energy Markets Report",
        time="2 hours ago",
        summary="Geopolitical instability in key shipping lanes drives crude oil futures to a 3-month high.",
        sentiment="Neutral",
        sentiment_score=0.1,
        related_tickers=["XOM", "CVX", "USO"],
        region="Global",
    ),
]


def _pick(rng: np.random.Generator, items: list):
    return items[int(float(rng.random()) * len(items)) % len(items)]


def sentiment_score(sentiment: Sentiment, draw: float) -> float:
    """Map a uniform draw in [0, 1) to a score consistent with the sentiment label."""
    if sentiment == "Bullish":
        score = 0.6 + draw * 0.3
    elif sentiment == "Bearish":
        score = -0.6 - draw * 0.3
    else:
        score = draw * 0.2 - 0.1
    return round(score, 2)


def generate_news_item(rng: np.random.Generator) -> NewsItem:
    title, summary, sentiment = _pick(rng, TEMPLATES)
    ticker = _pick(rng, TICKERS)
    score = sentiment_score(sentiment, float(rng.random()))
    return NewsItem(
        id=new_id(),
        title=title.replace("{ticker}", ticker),
        source=_pick(rng, NEWS_SOURCES),
        time="Just now",
        summary=summary.replace("{ticker}", ticker),
        sentiment=sentiment,
        sentiment_score=score,
        related_tickers=[ticker],
        region=_pick(rng, REGIONS),
    )


class NewsFeed:
    """Newest-first headline buffer fed by `generate_news_item`."""

    def __init__(self, rng: Optional[np.random.Generator] = None, max_items: int = 50) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.max_items = int(max_items)
        self._lock = threading.Lock()
        self._items: List[NewsItem] = copy.deepcopy(INITIAL_NEWS)

    def fetch_update(self) -> NewsItem:
        item = generate_news_item(self.rng)
        with self._lock:
            self._items.insert(0, item)
            del self._items[self.max_items:]
        return item

    def items(self) -> List[NewsItem]:
        with self._lock:
            return list(self._items)

    def attach_analysis(self, news_id: str, analysis: str) -> bool:
        with self._lock:
            for item in self._items:
                if item.id == news_id:
                    item.impact_analysis = analysis
                    return True
        return False
