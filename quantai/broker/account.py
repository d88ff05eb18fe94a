from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Optional

from quantai.core.config import DEFAULT_PAPER_BALANCE, DEFAULT_REAL_BALANCE, UserSettings
from quantai.core.errors import InvalidAmount
from quantai.core.types import AccountKind


@dataclass
class AccountState:
    """Cash pools for the paper and real accounts plus the active selector.

    Writes go through `apply_cash_delta` / `deposit` only, and each touches
    exactly one pool.
    """

    active: AccountKind = AccountKind.PAPER
    balances: Dict[AccountKind, float] = field(
        default_factory=lambda: {
            AccountKind.PAPER: DEFAULT_PAPER_BALANCE,
            AccountKind.REAL: DEFAULT_REAL_BALANCE,
        }
    )

    @classmethod
    def from_settings(cls, settings: UserSettings) -> "AccountState":
        return cls(
            active=AccountKind.from_flag(settings.is_paper_trading),
            balances={
                AccountKind.PAPER: float(settings.paper_balance),
                AccountKind.REAL: float(settings.real_balance),
            },
        )

    @property
    def is_paper_trading(self) -> bool:
        return self.active is AccountKind.PAPER

    def resolve(self, kind: Optional[AccountKind]) -> AccountKind:
        return self.active if kind is None else AccountKind(kind)

    def balance(self, kind: Optional[AccountKind] = None) -> float:
        return self.balances[self.resolve(kind)]

    def get_active_balance(self) -> float:
        return self.balances[self.active]

    def apply_cash_delta(self, kind: AccountKind, delta: float) -> float:
        # Unconditional write; sufficiency is checked by the execution engine
        k = self.resolve(kind)
        self.balances[k] = self.balances[k] + float(delta)
        return self.balances[k]

    def deposit(self, kind: Optional[AccountKind], amount: float) -> float:
        try:
            value = float(amount)
        except (TypeError, ValueError):
            raise InvalidAmount("Please enter a valid positive amount.") from None
        if not math.isfinite(value) or value <= 0:
            raise InvalidAmount("Please enter a valid positive amount.")
        return self.apply_cash_delta(self.resolve(kind), value)

    def set_active(self, kind: AccountKind) -> None:
        self.active = AccountKind(kind)

    def toggle_mode(self) -> AccountKind:
        self.active = AccountKind.REAL if self.is_paper_trading else AccountKind.PAPER
        return self.active

    def reset_paper(self) -> None:
        self.balances[AccountKind.PAPER] = DEFAULT_PAPER_BALANCE
