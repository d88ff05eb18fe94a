from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional

import numpy as np

from quantai.core.types import PricePoint, StockQuote


@dataclass
class SeedQuote:
    symbol: str
    name: str
    sector: str
    price: float
    change: float
    change_percent: float
    volume: str
    market_cap: str
    history_base: float
    history_spread: float


SEED_QUOTES: List[SeedQuote] = [
    SeedQuote("NVDA", "NVIDIA Corp", "Technology", 124.50, 3.20, 2.64, "45.2M", "3.1T", 118.0, 10.0),
    SeedQuote("TSLA", "Tesla Inc", "Auto", 175.30, -1.50, -0.85, "28.1M", "580B", 173.0, 8.0),
    SeedQuote("AAPL", "Apple Inc", "Consumer Electronics", 210.15, 0.45, 0.21, "15.6M", "3.2T", 209.0, 4.0),
]


def _clock_label(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{now.hour}:{now.minute:02d}"


class MarketFeed:
    """Mock quote generator: seeded history, then a uniform +/- volatility walk per tick.

    `rng` is any object with the numpy Generator `random()` method; pass
    `np.random.default_rng(seed)` for reproducible runs.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        volatility: float = 0.003,
        history_length: int = 20,
        clock: Callable[[], str] = _clock_label,
    ) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.volatility = float(volatility)
        self.history_length = int(history_length)
        self.clock = clock

    def get_initial(self) -> List[StockQuote]:
        quotes: List[StockQuote] = []
        for seed in SEED_QUOTES:
            history = [
                PricePoint(
                    time=f"{10 + i}:00",
                    value=round(seed.history_base + float(self.rng.random()) * seed.history_spread, 2),
                )
                for i in range(self.history_length)
            ]
            quotes.append(
                StockQuote(
                    symbol=seed.symbol,
                    name=seed.name,
                    sector=seed.sector,
                    price=seed.price,
                    change=seed.change,
                    change_percent=seed.change_percent,
                    volume=seed.volume,
                    market_cap=seed.market_cap,
                    history=history,
                )
            )
        return quotes

    def tick(self, previous: List[StockQuote]) -> List[StockQuote]:
        label = self.clock()
        return [self._step(q, label) for q in previous]

    def _step(self, quote: StockQuote, label: str) -> StockQuote:
        change_pct = float(self.rng.random()) * self.volatility * 2 - self.volatility
        new_price = quote.price + quote.price * change_pct
        # Floor keeps prices strictly positive
        new_price = max(0.01, new_price)
        rounded = round(new_price, 2)

        history = list(quote.history) + [PricePoint(time=label, value=rounded)]
        if len(history) > self.history_length:
            history = history[-self.history_length:]

        # Change is measured from the oldest point before this tick shifts the window
        start_price = quote.history[0].value if quote.history else rounded
        total_change = new_price - start_price
        total_change_pct = (total_change / start_price) * 100 if start_price else 0.0
        return replace(
            quote,
            price=rounded,
            change=round(total_change, 2),
            change_percent=round(total_change_pct, 2),
            history=history,
        )


class MarketDataService:
    """Holds the latest quotes and advances them on each `refresh()`."""

    def __init__(self, feed: MarketFeed) -> None:
        self.feed = feed
        self._lock = threading.Lock()
        self._quotes: List[StockQuote] = feed.get_initial()

    def refresh(self) -> List[StockQuote]:
        with self._lock:
            current = self._quotes
        updated = self.feed.tick(current)
        with self._lock:
            self._quotes = updated
        return self.quotes()

    def quotes(self) -> List[StockQuote]:
        with self._lock:
            return copy.deepcopy(self._quotes)

    def get(self, symbol: str) -> Optional[StockQuote]:
        with self._lock:
            for q in self._quotes:
                if q.symbol == symbol:
                    return copy.deepcopy(q)
        return None

    def prices(self) -> Dict[str, float]:
        with self._lock:
            return {q.symbol: q.price for q in self._quotes}
