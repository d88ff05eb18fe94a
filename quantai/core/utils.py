from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional


def new_id() -> str:
    """Short random id for trades, notifications and log lines."""
    return uuid.uuid4().hex[:9]


def clock_time(now: Optional[datetime] = None) -> str:
    """Wall-clock label like 14:05:09. Display only, not a sortable key."""
    return (now or datetime.now()).strftime("%H:%M:%S")


def format_money(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_pnl(profit: float) -> str:
    return f"+${profit:.2f}" if profit > 0 else f"-${abs(profit):.2f}"
