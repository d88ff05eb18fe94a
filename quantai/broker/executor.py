from __future__ import annotations

import math
import threading
from typing import Callable, Dict, List, Optional

from loguru import logger as log

from quantai.broker import portfolio as valuation
from quantai.broker.account import AccountState
from quantai.broker.ledger import TradeLedger
from quantai.broker.positions import PositionBook
from quantai.core.errors import InsufficientFunds, InvalidAmount, InvalidPrice, InvalidQuantity, TradingError
from quantai.core.types import AccountKind, Action, PortfolioSnapshot, Position, TradeIntent, TradeRecord
from quantai.core.utils import clock_time, new_id
from quantai.monitor.notifications import NotificationSink, safe_notify

ChangeListener = Callable[["ExecutionEngine"], None]


def _finite_positive(value: float) -> bool:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(v) and v > 0


class ExecutionEngine:
    """Single writer for account balances, positions and the trade ledger.

    Every mutation runs validate-then-apply under one re-entrant lock, so the
    strategy runner thread and manual orders can never interleave a cash update
    with the matching position update. Each account has its own position book;
    a fill only touches the book and cash pool of the account it resolves to.
    """

    def __init__(
        self,
        account: AccountState,
        books: Optional[Dict[AccountKind, PositionBook]] = None,
        ledger: Optional[TradeLedger] = None,
        notifier: Optional[NotificationSink] = None,
        clock: Callable[[], str] = clock_time,
    ) -> None:
        self.account = account
        self.books: Dict[AccountKind, PositionBook] = {kind: PositionBook() for kind in AccountKind}
        if books:
            self.books.update({AccountKind(k): b for k, b in books.items()})
        self.ledger = ledger if ledger is not None else TradeLedger()
        self.notifier = notifier
        self.clock = clock
        self._lock = threading.RLock()
        self._listeners: List[ChangeListener] = []

    # Read side
    @property
    def active_account(self) -> AccountKind:
        with self._lock:
            return self.account.active

    def book(self, kind: Optional[AccountKind] = None) -> PositionBook:
        """Position book of `kind`, or of the active account when omitted."""
        with self._lock:
            return self.books[self.account.resolve(kind)]

    def active_balance(self) -> float:
        with self._lock:
            return self.account.get_active_balance()

    def balance(self, kind: Optional[AccountKind] = None) -> float:
        with self._lock:
            return self.account.balance(kind)

    def positions(self, kind: Optional[AccountKind] = None) -> List[Position]:
        with self._lock:
            return self.book(kind).positions()

    def trades(self) -> List[TradeRecord]:
        with self._lock:
            return self.ledger.trades()

    def total_equity(self, prices: Dict[str, float], kind: Optional[AccountKind] = None) -> float:
        with self._lock:
            return valuation.total_equity(self.account.balance(kind), self.book(kind).positions(), prices)

    def unrealized_pnl(self, prices: Dict[str, float], kind: Optional[AccountKind] = None) -> float:
        with self._lock:
            return valuation.unrealized_pnl(self.book(kind).positions(), prices)

    def snapshot(self, prices: Dict[str, float], timestamp: Optional[float] = None) -> PortfolioSnapshot:
        with self._lock:
            return valuation.snapshot(
                self.account.get_active_balance(), self.book().positions(), prices, timestamp
            )

    def add_listener(self, fn: ChangeListener) -> None:
        self._listeners.append(fn)

    # Write side
    def execute(self, intent: TradeIntent) -> TradeRecord:
        try:
            record = self._execute_locked(intent)
        except TradingError as e:
            log.info(f"Order rejected | {intent.action} {intent.quantity} {intent.symbol}: {e}")
            safe_notify(self.notifier, e.title, str(e), "error")
            raise
        self._changed()
        return record

    def buy(self, symbol: str, quantity: float, price: float, account: Optional[AccountKind] = None) -> TradeRecord:
        return self.execute(TradeIntent(symbol=symbol, action="BUY", quantity=quantity, price=price, account=account))

    def sell(self, symbol: str, quantity: float, price: float, account: Optional[AccountKind] = None) -> TradeRecord:
        return self.execute(TradeIntent(symbol=symbol, action="SELL", quantity=quantity, price=price, account=account))

    def _execute_locked(self, intent: TradeIntent) -> TradeRecord:
        if not _finite_positive(intent.quantity):
            raise InvalidQuantity("Please enter a valid quantity.")
        if not _finite_positive(intent.price):
            raise InvalidPrice(f"No valid price for {intent.symbol}.")
        action: Action = intent.action
        if action not in ("BUY", "SELL"):
            raise ValueError(f"unknown action {action!r}")
        qty = float(intent.quantity)
        price = float(intent.price)
        total = qty * price

        with self._lock:
            kind = self.account.resolve(intent.account)
            book = self.books[kind]
            if action == "BUY":
                available = self.account.balance(kind)
                if total > available:
                    raise InsufficientFunds(required=total, available=available)
                delta = -total
            else:
                book.check_sell(intent.symbol, qty)
                delta = total

            # Both checks passed; neither write below can fail
            book.apply_fill(intent.symbol, action, qty, price)
            new_balance = self.account.apply_cash_delta(kind, delta)
            record = TradeRecord(
                id=new_id(),
                symbol=intent.symbol,
                action=action,
                quantity=qty,
                price=price,
                total=total,
                timestamp=self.clock(),
                account=kind,
                status="FILLED",
            )
            self.ledger.record(record)

        log.info(f"Order filled | {action} {qty:g} {intent.symbol} @ {price:.2f} total={total:.2f} acct={kind.value}")
        safe_notify(
            self.notifier,
            "Order Executed",
            f"{action} {qty:g} {intent.symbol} @ ${price:.2f} (Balance: ${new_balance:,.2f})",
            "success",
        )
        return record

    def deposit(self, amount: float, account: Optional[AccountKind] = None) -> float:
        try:
            with self._lock:
                kind = self.account.resolve(account)
                new_balance = self.account.deposit(kind, amount)
        except InvalidAmount as e:
            safe_notify(self.notifier, "Deposit Failed", str(e), "error")
            raise
        value = float(amount)
        if kind is AccountKind.PAPER:
            safe_notify(self.notifier, "Paper Funds Added", f"${value:,.2f} added to simulation account.", "success")
        else:
            safe_notify(self.notifier, "Deposit Successful", f"${value:,.2f} has been deposited to your real account.", "success")
        self._changed()
        return new_balance

    def settle_pnl(self, profit: float, account: Optional[AccountKind] = None) -> float:
        """Book a realized profit or loss against one cash pool and return the new balance."""
        try:
            value = float(profit)
        except (TypeError, ValueError):
            raise InvalidAmount(f"Invalid P&L amount {profit!r}.") from None
        if not math.isfinite(value):
            raise InvalidAmount(f"Invalid P&L amount {profit!r}.")
        with self._lock:
            kind = self.account.resolve(account)
            available = self.account.balance(kind)
            if available + value < 0:
                raise InsufficientFunds(required=-value, available=available)
            new_balance = self.account.apply_cash_delta(kind, value)
        self._changed()
        return new_balance

    def set_active(self, kind: AccountKind) -> None:
        with self._lock:
            self.account.set_active(kind)
        self._changed()

    def toggle_mode(self) -> AccountKind:
        with self._lock:
            kind = self.account.toggle_mode()
        self._changed()
        return kind

    def reset_paper(self) -> None:
        with self._lock:
            self.account.reset_paper()
        self._changed()

    def _changed(self) -> None:
        for fn in list(self._listeners):
            try:
                fn(self)
            except Exception:
                log.exception("Execution engine listener failed")
