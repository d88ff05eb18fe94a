from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from quantai.core.config import BotConfig
from quantai.core.types import Action


@dataclass
class SyntheticTrade:
    symbol: str
    action: Action
    profit: float


def generate_mock_trade(rng: np.random.Generator, cfg: Optional[BotConfig] = None) -> SyntheticTrade:
    """Draw one simulated round trip.

    Wins come with probability `win_probability` and size U(win_min, win_max);
    losses are U(loss_min, loss_max). Profit is rounded to cents.
    """
    cfg = cfg or BotConfig()
    is_win = float(rng.random()) < cfg.win_probability
    draw = float(rng.random())
    if is_win:
        profit = cfg.win_min + draw * (cfg.win_max - cfg.win_min)
    else:
        profit = -(cfg.loss_min + draw * (cfg.loss_max - cfg.loss_min))
    universe = cfg.universe or ["NVDA"]
    symbol = universe[int(float(rng.random()) * len(universe)) % len(universe)]
    action: Action = "BUY" if float(rng.random()) < 0.5 else "SELL"
    return SyntheticTrade(symbol=symbol, action=action, profit=round(profit, 2))
