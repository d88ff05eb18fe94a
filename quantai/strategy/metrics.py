from __future__ import annotations

import threading
import time
from typing import Any, Dict, List


class SessionMetrics:
    """Cumulative bot performance for one mounted runner.

    Survives stop/start cycles; a new runner starts from zero.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.session_pnl: float = 0.0
        self.trade_count: int = 0
        self.win_count: int = 0
        self._pnls: List[float] = []
        self.started_at: float = time.time()

    def record(self, profit: float) -> None:
        with self._lock:
            self.session_pnl += float(profit)
            self.trade_count += 1
            if profit > 0:
                self.win_count += 1
            self._pnls.append(float(profit))

    @property
    def win_rate(self) -> float:
        with self._lock:
            return self.win_count / self.trade_count if self.trade_count else 0.0

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            wins = [p for p in self._pnls if p > 0]
            losses = [p for p in self._pnls if p <= 0]
            return {
                "session_pnl": self.session_pnl,
                "trade_count": self.trade_count,
                "win_count": self.win_count,
                "win_rate": self.win_count / self.trade_count if self.trade_count else 0.0,
                "avg_win": sum(wins) / len(wins) if wins else 0.0,
                "avg_loss": sum(losses) / len(losses) if losses else 0.0,
                "max_loss": min(0.0, min(self._pnls)) if self._pnls else 0.0,
            }
