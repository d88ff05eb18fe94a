from __future__ import annotations

import time
from typing import Dict, Iterable, Optional

from quantai.core.types import PortfolioSnapshot, Position


def _mark(pos: Position, prices: Dict[str, float]) -> float:
    # Unknown symbols are valued at cost
    return float(prices.get(pos.symbol, pos.avg_price))


def market_value(positions: Iterable[Position], prices: Dict[str, float]) -> float:
    return sum(pos.quantity * _mark(pos, prices) for pos in positions)


def total_equity(cash: float, positions: Iterable[Position], prices: Dict[str, float]) -> float:
    return float(cash) + market_value(positions, prices)


def unrealized_pnl(positions: Iterable[Position], prices: Dict[str, float]) -> float:
    return sum(pos.quantity * (_mark(pos, prices) - pos.avg_price) for pos in positions)


def snapshot(
    cash: float,
    positions: Iterable[Position],
    prices: Dict[str, float],
    timestamp: Optional[float] = None,
) -> PortfolioSnapshot:
    positions = list(positions)
    return PortfolioSnapshot(
        timestamp=time.time() if timestamp is None else float(timestamp),
        cash=float(cash),
        equity=total_equity(cash, positions, prices),
        unrealized_pnl=unrealized_pnl(positions, prices),
    )
