from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from quantai.core.errors import InsufficientHoldings, NoPosition
from quantai.core.types import Action, Position


class PositionBook:
    """Aggregate holdings keyed by symbol.

    BUY fills recompute the volume-weighted average price. SELL fills reduce
    quantity and keep the average cost; a position that reaches zero is dropped.
    """

    def __init__(self) -> None:
        self._positions: Dict[str, Position] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._positions

    def __iter__(self) -> Iterator[Position]:
        return iter(self.positions())

    def get(self, symbol: str) -> Optional[Position]:
        pos = self._positions.get(symbol)
        return None if pos is None else Position(pos.symbol, pos.quantity, pos.avg_price)

    def quantity(self, symbol: str) -> float:
        pos = self._positions.get(symbol)
        return pos.quantity if pos else 0.0

    def positions(self) -> List[Position]:
        return [Position(p.symbol, p.quantity, p.avg_price) for p in self._positions.values()]

    def check_sell(self, symbol: str, quantity: float) -> Position:
        pos = self._positions.get(symbol)
        if pos is None:
            raise NoPosition(symbol, quantity)
        if quantity > pos.quantity:
            raise InsufficientHoldings(symbol, quantity, pos.quantity)
        return pos

    def apply_fill(self, symbol: str, action: Action, quantity: float, price: float) -> Optional[Position]:
        """Apply a fill and return the resulting position (None once closed)."""
        if action == "BUY":
            pos = self._positions.get(symbol)
            if pos is None:
                self._positions[symbol] = Position(symbol=symbol, quantity=quantity, avg_price=price)
            else:
                new_qty = pos.quantity + quantity
                new_avg = (pos.quantity * pos.avg_price + quantity * price) / new_qty
                self._positions[symbol] = Position(symbol=symbol, quantity=new_qty, avg_price=new_avg)
            return self.get(symbol)

        if action != "SELL":
            raise ValueError(f"unknown action {action!r}")
        pos = self.check_sell(symbol, quantity)
        new_qty = pos.quantity - quantity
        if new_qty <= 0:
            del self._positions[symbol]
            return None
        self._positions[symbol] = Position(symbol=symbol, quantity=new_qty, avg_price=pos.avg_price)
        return self.get(symbol)
