from __future__ import annotations

from typing import List

from quantai.core.types import TradeRecord


class TradeLedger:
    """Append-only trade history. Stored in execution order, read newest first."""

    def __init__(self) -> None:
        self._trades: List[TradeRecord] = []

    def __len__(self) -> int:
        return len(self._trades)

    def record(self, trade: TradeRecord) -> None:
        self._trades.append(trade)

    def trades(self) -> List[TradeRecord]:
        return list(reversed(self._trades))

    def latest(self, n: int) -> List[TradeRecord]:
        if n <= 0:
            return []
        return list(reversed(self._trades[-n:]))
