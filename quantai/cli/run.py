from __future__ import annotations

import argparse
import time
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from quantai.auth.profiles import ProfileStore
from quantai.core.config import AppConfig
from quantai.core.env import load_local_environment
from quantai.core.errors import TradingError
from quantai.core.logging import get_logger, setup_logging
from quantai.core.settings import SettingsStore
from quantai.core.types import AccountKind, PortfolioSnapshot
from quantai.monitor.display import (
    console,
    render_bot,
    render_notifications,
    render_portfolio,
    render_positions,
    render_quotes,
    render_trades,
)
from quantai.session import TradingSession


def _parse_order(spec: str) -> Tuple[str, float]:
    symbol, _, qty = spec.partition(":")
    if not symbol or not qty:
        raise argparse.ArgumentTypeError(f"expected SYMBOL:QTY, got {spec!r}")
    try:
        return symbol.strip().upper(), float(qty)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid quantity in {spec!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="QuantAI simulated trading desk")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config")
    parser.add_argument("--settings", type=str, default=None, help="Override settings JSON path")
    parser.add_argument("--profile", type=str, default=None, help="Override credential profile JSON path")
    parser.add_argument("--pin", type=str, default=None, help="Unlock with the stored profile PIN before trading")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--mode", choices=["paper", "real"], default=None)
    parser.add_argument("--deposit", type=float, default=None)
    parser.add_argument("--buy", type=_parse_order, action="append", default=[], metavar="SYMBOL:QTY")
    parser.add_argument("--sell", type=_parse_order, action="append", default=[], metavar="SYMBOL:QTY")
    parser.add_argument("--bot", action="store_true", help="Run the strategy runner during the session")
    parser.add_argument("--ticks", type=int, default=30, help="Simulated steps when --duration is 0")
    parser.add_argument("--duration", type=float, default=0.0, help="Wall-clock seconds to run with live workers")
    parser.add_argument("--outlook", action="store_true", help="Print the AI strategy outlook")
    parser.add_argument("--report-dir", type=str, default="logs/reports")
    return parser


def _run_stepped(session: TradingSession, ticks: int, bot: bool) -> List[PortfolioSnapshot]:
    snaps: List[PortfolioSnapshot] = []
    news_every = max(1, int(round(session.config.news.interval_sec / session.config.feed.interval_sec)))
    for step in range(ticks):
        session.market.refresh()
        if bot:
            session.runner.tick()
        if session.config.news.enabled and step % news_every == news_every - 1:
            session.refresh_news()
        snaps.append(session.engine.snapshot(session.market.prices(), timestamp=float(step)))
    return snaps


def _run_live(session: TradingSession, duration: float) -> List[PortfolioSnapshot]:
    snaps: List[PortfolioSnapshot] = []
    session.start()
    deadline = time.time() + duration
    try:
        while time.time() < deadline:
            time.sleep(min(1.0, max(0.0, deadline - time.time())))
            snaps.append(session.snapshot())
    finally:
        session.stop()
    return snaps


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    load_local_environment()
    cfg = AppConfig.load(args.config) if args.config else AppConfig()
    setup_logging(log_dir=cfg.general.log_dir, level="INFO")
    log = get_logger()

    store = SettingsStore(args.settings or cfg.general.settings_path)
    live = args.duration > 0
    profiles = ProfileStore(args.profile or cfg.general.profile_path)
    session = TradingSession(cfg, settings_store=store, profile_store=profiles, seed=args.seed, threaded=live)

    if args.pin is not None:
        session.lock()
        if not session.unlock(args.pin):
            log.error("PIN rejected; session stays locked")
            render_notifications(session.notifications.history())
            return

    if args.mode:
        session.set_mode(AccountKind(args.mode))
    if args.deposit is not None:
        try:
            session.deposit(args.deposit)
        except TradingError as e:
            log.error(f"Deposit rejected: {e}")

    for action, orders in (("BUY", args.buy), ("SELL", args.sell)):
        for symbol, qty in orders:
            try:
                session.place_order(symbol, action, qty)
            except TradingError as e:
                log.error(f"{action} {symbol} rejected: {e}")

    if args.bot:
        session.runner.start()
    snaps = _run_live(session, args.duration) if live else _run_stepped(session, args.ticks, args.bot)
    session.runner.stop()

    prices = session.market.prices()
    render_quotes(session.market.quotes(), session.settings.watchlist)
    render_portfolio(session.summary())
    render_positions(session.engine.positions(), prices)
    render_trades(session.engine.trades())
    if args.bot:
        render_bot(session.runner.metrics.summary(), session.runner.logs(), state=session.runner.state.value)
    render_notifications(session.notifications.history())
    if args.outlook:
        console.print(f"[bold]AI Outlook:[/bold] {session.strategy_outlook()}")
        if session.ai.client is not None:
            console.print(f"[dim]LLM usage: {session.ai.client.usage.get_stats()}[/dim]")

    outdir = Path(args.report_dir)
    outdir.mkdir(parents=True, exist_ok=True)
    eq = pd.DataFrame([vars(s) for s in snaps], columns=["timestamp", "cash", "equity", "unrealized_pnl"])
    out_csv = outdir / "equity_curve.csv"
    eq.to_csv(out_csv, index=False)
    if not eq.empty:
        log.info(f"Final equity: {eq['equity'].iloc[-1]:.2f}")
    log.info(f"Saved equity curve to {out_csv}")


if __name__ == "__main__":
    main()
