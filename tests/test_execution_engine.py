import math
import threading
import unittest

from quantai.broker.account import AccountState
from quantai.broker.executor import ExecutionEngine
from quantai.core.errors import (
    InsufficientFunds,
    InsufficientHoldings,
    InvalidAmount,
    InvalidPrice,
    InvalidQuantity,
    NoPosition,
    TradingError,
)
from quantai.core.types import AccountKind, TradeIntent
from quantai.monitor.notifications import NotificationCenter


class TestExecutionEngine(unittest.TestCase):
    def setUp(self):
        self.notes = NotificationCenter()
        self.account = AccountState(
            active=AccountKind.PAPER,
            balances={AccountKind.PAPER: 500000.0, AccountKind.REAL: 124592.50},
        )
        self.engine = ExecutionEngine(self.account, notifier=self.notes, clock=lambda: "10:30:00")
        self.changes = []
        self.engine.add_listener(lambda eng: self.changes.append(eng.active_balance()))

    def test_buy_then_average_then_close(self):
        rec = self.engine.buy("NVDA", 100, 124.50)
        self.assertEqual(rec.status, "FILLED")
        self.assertEqual(rec.account, AccountKind.PAPER)
        self.assertAlmostEqual(rec.total, 12450.0)
        self.assertAlmostEqual(self.engine.active_balance(), 487550.0)

        self.engine.buy("NVDA", 50, 130.0)
        self.assertAlmostEqual(self.engine.active_balance(), 481050.0)
        pos = self.engine.book().get("NVDA")
        self.assertEqual(pos.quantity, 150)
        self.assertAlmostEqual(pos.avg_price, 18950.0 / 150)

        self.engine.sell("NVDA", 150, 140.0)
        self.assertAlmostEqual(self.engine.active_balance(), 502050.0)
        self.assertIsNone(self.engine.book().get("NVDA"))
        self.assertEqual(len(self.engine.trades()), 3)
        self.assertEqual(self.engine.trades()[0].action, "SELL")

    def test_oversell_leaves_state_unchanged(self):
        self.engine.buy("NVDA", 150, 100.0)
        balance = self.engine.active_balance()
        with self.assertRaises(InsufficientHoldings):
            self.engine.sell("NVDA", 200, 140.0)
        self.assertEqual(self.engine.active_balance(), balance)
        self.assertEqual(self.engine.book().get("NVDA").quantity, 150)
        self.assertEqual(len(self.engine.trades()), 1)
        self.assertEqual(self.notes.history()[0].severity, "error")

    def test_sell_without_position(self):
        with self.assertRaises(NoPosition):
            self.engine.sell("TSLA", 1, 175.30)
        self.assertEqual(self.notes.history()[0].title, "No Position")
        self.assertEqual(self.changes, [])

    def test_insufficient_funds(self):
        with self.assertRaises(InsufficientFunds) as ctx:
            self.engine.buy("AAPL", 10000, 210.15)
        self.assertIn("You need $", str(ctx.exception))
        self.assertEqual(self.engine.active_balance(), 500000.0)
        self.assertEqual(len(self.engine.positions()), 0)
        self.assertEqual(len(self.engine.trades()), 0)

    def test_spend_entire_balance(self):
        self.engine.buy("AAPL", 1000, 500.0)
        self.assertEqual(self.engine.active_balance(), 0.0)

    def test_invalid_inputs(self):
        for qty in (0, -5, float("nan"), float("inf")):
            with self.assertRaises(InvalidQuantity):
                self.engine.buy("NVDA", qty, 124.50)
        for price in (0, -1.0, float("nan")):
            with self.assertRaises(InvalidPrice):
                self.engine.execute(TradeIntent(symbol="NVDA", action="BUY", quantity=1, price=price))
        self.assertEqual(len(self.engine.trades()), 0)
        self.assertEqual(self.engine.active_balance(), 500000.0)

    def test_fill_notification(self):
        self.engine.buy("NVDA", 100, 124.50)
        note = self.notes.history()[0]
        self.assertEqual(note.title, "Order Executed")
        self.assertEqual(note.message, "BUY 100 NVDA @ $124.50 (Balance: $487,550.00)")
        self.assertEqual(self.changes, [487550.0])

    def test_accounts_are_isolated(self):
        self.engine.buy("NVDA", 10, 100.0)
        self.assertEqual(self.engine.balance(AccountKind.REAL), 124592.50)
        self.engine.toggle_mode()
        self.assertEqual(self.engine.active_account, AccountKind.REAL)
        self.engine.buy("NVDA", 10, 100.0)
        self.assertAlmostEqual(self.engine.balance(AccountKind.REAL), 123592.50)
        self.assertAlmostEqual(self.engine.balance(AccountKind.PAPER), 499000.0)
        self.assertEqual(self.engine.trades()[0].account, AccountKind.REAL)

    def test_explicit_account_on_intent(self):
        self.engine.execute(
            TradeIntent(symbol="TSLA", action="BUY", quantity=2, price=100.0, account=AccountKind.REAL)
        )
        self.assertEqual(self.engine.active_account, AccountKind.PAPER)
        self.assertAlmostEqual(self.engine.balance(AccountKind.REAL), 124392.50)
        self.assertEqual(self.engine.balance(AccountKind.PAPER), 500000.0)

    def test_shares_cannot_be_sold_from_other_account(self):
        self.engine.buy("NVDA", 100, 124.50)
        self.engine.set_active(AccountKind.REAL)
        with self.assertRaises(NoPosition):
            self.engine.sell("NVDA", 100, 124.50)
        self.assertEqual(self.engine.balance(AccountKind.REAL), 124592.50)
        self.assertEqual(self.engine.positions(), [])
        self.assertEqual(self.engine.positions(AccountKind.PAPER)[0].quantity, 100)

        self.engine.set_active(AccountKind.PAPER)
        self.engine.sell("NVDA", 100, 124.50)
        self.assertAlmostEqual(self.engine.balance(AccountKind.PAPER), 500000.0)
        self.assertEqual(self.engine.balance(AccountKind.REAL), 124592.50)

    def test_valuation_uses_resolved_account_book(self):
        self.engine.buy("NVDA", 10, 100.0)
        prices = {"NVDA": 110.0}
        self.assertAlmostEqual(self.engine.total_equity(prices), 499000.0 + 1100.0)
        self.assertAlmostEqual(self.engine.total_equity(prices, AccountKind.REAL), 124592.50)
        self.assertEqual(self.engine.unrealized_pnl(prices, AccountKind.REAL), 0.0)
        self.engine.toggle_mode()
        self.assertAlmostEqual(self.engine.snapshot(prices).equity, 124592.50)

    def test_concurrent_writers_never_apply_partially(self):
        engine = ExecutionEngine(
            AccountState(active=AccountKind.PAPER, balances={AccountKind.PAPER: 1000000.0, AccountKind.REAL: 0.0})
        )
        results = {"bought": 0, "sold": 0, "settled": 0.0}
        results_lock = threading.Lock()
        start = threading.Barrier(8)

        def worker(seed):
            bought = sold = 0
            settled = 0.0
            start.wait()
            for i in range(200):
                step = (i + seed) % 3
                try:
                    if step == 0:
                        engine.buy("NVDA", 1, 10.0)
                        bought += 1
                    elif step == 1:
                        engine.sell("NVDA", 1, 12.0)
                        sold += 1
                    else:
                        amount = 1.5 if i % 2 else -0.5
                        engine.settle_pnl(amount)
                        settled += amount
                except TradingError:
                    pass
            with results_lock:
                results["bought"] += bought
                results["sold"] += sold
                results["settled"] += settled

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        expected_cash = 1000000.0 + results["settled"] - 10.0 * results["bought"] + 12.0 * results["sold"]
        self.assertAlmostEqual(engine.active_balance(), expected_cash)
        self.assertEqual(engine.book().quantity("NVDA"), results["bought"] - results["sold"])
        self.assertEqual(len(engine.trades()), results["bought"] + results["sold"])
        self.assertEqual(engine.balance(AccountKind.REAL), 0.0)

    def test_deposit(self):
        with self.assertRaises(InvalidAmount):
            self.engine.deposit(-50)
        self.assertEqual(self.notes.history()[0].title, "Deposit Failed")
        self.assertEqual(self.engine.active_balance(), 500000.0)

        self.assertAlmostEqual(self.engine.deposit(1000), 501000.0)
        self.assertEqual(self.notes.history()[0].title, "Paper Funds Added")

        self.engine.set_active(AccountKind.REAL)
        self.engine.deposit(500)
        self.assertAlmostEqual(self.engine.balance(AccountKind.REAL), 125092.50)
        self.assertEqual(self.notes.history()[0].title, "Deposit Successful")
        self.assertAlmostEqual(self.engine.balance(AccountKind.PAPER), 501000.0)

    def test_deposit_rejects_non_finite(self):
        for amount in (0, float("nan"), float("inf"), "abc"):
            with self.assertRaises(InvalidAmount):
                self.engine.deposit(amount)
        self.assertEqual(self.engine.active_balance(), 500000.0)

    def test_settle_pnl(self):
        self.assertAlmostEqual(self.engine.settle_pnl(125.0), 500125.0)
        self.assertAlmostEqual(self.engine.settle_pnl(-60.0), 500065.0)
        self.assertEqual(len(self.engine.trades()), 0)
        with self.assertRaises(InsufficientFunds):
            self.engine.settle_pnl(-600000.0)
        with self.assertRaises(InvalidAmount):
            self.engine.settle_pnl(float("nan"))
        self.assertAlmostEqual(self.engine.active_balance(), 500065.0)

    def test_equity_identity(self):
        self.engine.buy("NVDA", 100, 124.50)
        self.engine.buy("TSLA", 10, 175.30)
        prices = {"NVDA": 130.0, "TSLA": 170.0}
        cash = self.engine.active_balance()
        expected_value = 100 * 130.0 + 10 * 170.0
        self.assertAlmostEqual(self.engine.total_equity(prices), cash + expected_value)
        self.assertAlmostEqual(
            self.engine.unrealized_pnl(prices), 100 * (130.0 - 124.50) + 10 * (170.0 - 175.30)
        )
        snap = self.engine.snapshot(prices, timestamp=1.0)
        self.assertEqual(snap.timestamp, 1.0)
        self.assertAlmostEqual(snap.equity, cash + expected_value)

    def test_missing_price_values_at_cost(self):
        self.engine.buy("NVDA", 10, 100.0)
        self.assertAlmostEqual(self.engine.total_equity({}), 500000.0)
        self.assertEqual(self.engine.unrealized_pnl({}), 0.0)

    def test_failing_listener_does_not_break_fill(self):
        def boom(_):
            raise RuntimeError("listener down")

        self.engine.add_listener(boom)
        rec = self.engine.buy("NVDA", 1, 124.50)
        self.assertFalse(math.isnan(rec.total))
        self.assertEqual(len(self.engine.trades()), 1)

    def test_reset_paper(self):
        self.engine.buy("NVDA", 10, 100.0)
        self.engine.reset_paper()
        self.assertEqual(self.engine.balance(AccountKind.PAPER), 500000.0)
        self.assertEqual(self.engine.balance(AccountKind.REAL), 124592.50)


if __name__ == "__main__":
    unittest.main()
