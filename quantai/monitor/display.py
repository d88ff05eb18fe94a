from __future__ import annotations

from typing import Any, Dict, List, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from quantai.core.types import BotLog, Notification, Position, StockQuote, TradeRecord
from quantai.core.utils import format_money

console = Console()

_SEVERITY_STYLE = {"info": "white", "success": "green", "warning": "yellow", "error": "red"}


def _pnl(value: float) -> str:
    return f"[green]{value:,.2f}[/green]" if value >= 0 else f"[red]{value:,.2f}[/red]"


def render_portfolio(summary: Dict[str, Any]) -> None:
    mode = str(summary.get("mode", "paper"))
    table = Table(title="Simulated Equity" if mode == "paper" else "Real Net Equity")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Mode", "Paper Trading" if mode == "paper" else "REAL MONEY")
    table.add_row("Cash", format_money(float(summary.get("balance", 0.0))))
    table.add_row("Equity", format_money(float(summary.get("equity", 0.0))))
    table.add_row("Unrealized PnL", _pnl(float(summary.get("unrealized_pnl", 0.0))))
    console.print(table)


def render_quotes(quotes: Sequence[StockQuote], watchlist: Sequence[str] = ()) -> None:
    table = Table(title="Market")
    table.add_column("Symbol")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Change %", justify="right")
    for q in quotes:
        if watchlist and q.symbol not in watchlist:
            continue
        table.add_row(q.symbol, q.name, f"{q.price:.2f}", _pnl(q.change), _pnl(q.change_percent))
    console.print(table)


def render_positions(positions: Sequence[Position], prices: Dict[str, float]) -> None:
    if not positions:
        console.print(Panel("No open positions", title="Positions"))
        return
    table = Table(title="Open Positions")
    table.add_column("Symbol")
    table.add_column("Qty", justify="right")
    table.add_column("Avg Price", justify="right")
    table.add_column("Last", justify="right")
    table.add_column("Unrealized", justify="right")
    for p in positions:
        last = float(prices.get(p.symbol, p.avg_price))
        table.add_row(p.symbol, f"{p.quantity:g}", f"{p.avg_price:.2f}", f"{last:.2f}", _pnl(p.quantity * (last - p.avg_price)))
    console.print(table)


def render_trades(trades: Sequence[TradeRecord], *, title: str = "Recent Trades", limit: int = 10) -> None:
    if not trades:
        console.print(Panel("No trades yet", title=title))
        return
    table = Table(title=title)
    table.add_column("Time")
    table.add_column("Symbol")
    table.add_column("Side")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Status")
    for t in list(trades)[:limit]:
        side = f"[green]{t.action}[/green]" if t.action == "BUY" else f"[red]{t.action}[/red]"
        table.add_row(t.timestamp, t.symbol, side, f"{t.quantity:g}", f"{t.price:.2f}", f"{t.total:,.2f}", t.status)
    console.print(table)


def render_bot(metrics: Dict[str, Any], logs: List[BotLog], *, state: str, limit: int = 12) -> None:
    table = Table(title=f"Algo Engine ({state})")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Session PnL", _pnl(float(metrics.get("session_pnl", 0.0))))
    table.add_row("Trades", str(metrics.get("trade_count", 0)))
    table.add_row("Win Rate", f"{float(metrics.get('win_rate', 0.0)) * 100:.1f}%")
    console.print(table)
    if logs:
        lines = [
            f"[{_SEVERITY_STYLE.get(entry.severity, 'white')}]{entry.timestamp}  {entry.details}[/]"
            for entry in logs[-limit:]
        ]
        console.print(Panel("\n".join(lines), title="Bot Log"))


def render_notifications(items: Sequence[Notification], *, limit: int = 8) -> None:
    if not items:
        console.print(Panel("No notifications", title="Notifications"))
        return
    table = Table(title="Notifications")
    table.add_column("Title")
    table.add_column("Message")
    for n in list(items)[:limit]:
        style = _SEVERITY_STYLE.get(n.severity, "white")
        table.add_row(f"[{style}]{n.title}[/]", n.message[:90])
    console.print(table)
