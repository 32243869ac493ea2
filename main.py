"""CLI entry point for the forex signal engine."""

import argparse
import logging
import sys
from pathlib import Path

from fxsignal.config import (
    CURRENCY_PAIRS,
    TIMEFRAMES,
    BacktestConfig,
    Settings,
    load_settings,
)
from fxsignal.data_loader import load_csv, load_series, validate_ohlcv
from fxsignal.engine import InsufficientDataError, run_backtest
from fxsignal.history import TRADE_STATUSES, HistoryError, TradeHistory
from fxsignal.market_data import (
    MarketData,
    MarketDataError,
    get_historical_series,
    get_latest_indicators,
    save_to_csv,
)
from fxsignal.market_hours import (
    MARKETS,
    is_market_open,
    market_session_open,
    overlap_active,
    pair_overlaps,
)
from fxsignal.models import RiskParameters, StrategyChoice
from fxsignal.notifier import format_signal_message, notify_signal
from fxsignal.signal_engine import generate_signal

STRATEGIES = [s.value for s in StrategyChoice]


def _print_issues(issues: list[str]) -> None:
    if issues:
        print("Data validation warnings:")
        for issue in issues:
            print(f"  - {issue}")


def _risk_from_args(args: argparse.Namespace) -> RiskParameters:
    try:
        return RiskParameters(args.balance, args.risk)
    except ValueError as exc:
        print(f"Invalid risk settings: {exc}")
        sys.exit(1)


def _market_data(
    args: argparse.Namespace, bars: int, settings: Settings
) -> MarketData:
    """Series from --data if given, otherwise from the provider."""
    if args.data:
        issues = validate_ohlcv(load_csv(args.data))
        _print_issues(issues)
        if any(issue.startswith("Missing columns") for issue in issues):
            print(f"Cannot use {args.data}: open, high, low and close columns are required.")
            sys.exit(1)
        return MarketData(series=load_series(args.data), source="csv")

    try:
        return get_historical_series(
            args.pair, args.timeframe, bars,
            api_key=settings.twelve_data_api_key,
            allow_mock=not args.no_mock,
        )
    except MarketDataError as exc:
        print(f"Failed to retrieve market data: {exc}")
        sys.exit(1)


def cmd_signal(args: argparse.Namespace) -> None:
    """Generate a signal from the latest bar."""
    risk = _risk_from_args(args)
    settings = load_settings()
    market = _market_data(args, BacktestConfig().default_bar_count, settings)

    if market.series.empty:
        print("No bars available.")
        sys.exit(1)

    if not is_market_open():
        print("Note: the forex market is currently closed.")
    else:
        sessions = [m.name for m in MARKETS if market_session_open(m)]
        active = [o.name for o in pair_overlaps(args.pair) if overlap_active(o)]
        print(f"Open sessions: {', '.join(sessions) or 'none'}")
        if active:
            print(f"High-liquidity overlap: {', '.join(active)}")

    signal = generate_signal(
        get_latest_indicators(market.series), args.strategy, risk, args.pair
    )
    print(format_signal_message(signal, args.pair, args.timeframe, market.source))

    if args.save:
        try:
            history = TradeHistory(args.history or settings.history_path)
            entry = history.add(signal, args.pair, args.timeframe)
        except HistoryError as exc:
            print(exc)
            sys.exit(1)
        print(f"\nSaved to history as {entry.id}")

    if args.notify:
        sent = notify_signal(
            signal, args.pair, args.timeframe, market.source,
            settings.telegram_bot_token, args.chat_id or settings.telegram_chat_id,
        )
        print("Telegram notification sent." if sent else "Telegram notification skipped.")


def cmd_backtest(args: argparse.Namespace) -> None:
    """Run a historical backtest."""
    risk = _risk_from_args(args)
    market = _market_data(args, args.bars, load_settings())

    try:
        results = run_backtest(
            market.series, args.strategy, risk, args.pair, args.timeframe
        )
    except InsufficientDataError as exc:
        print(exc)
        sys.exit(1)

    print(f"\nStrategy: {StrategyChoice.parse(args.strategy).label}")
    print(f"Data: {args.data or market.source}")
    print(results.format_report())


def cmd_fetch(args: argparse.Namespace) -> None:
    """Download bars from Twelve Data into a CSV."""
    settings = load_settings()
    if not settings.twelve_data_api_key:
        print("Missing Twelve Data credentials. Set TWELVE_DATA_API_KEY in .env file.")
        sys.exit(1)

    print(f"\nFetching {args.pair} ({args.timeframe}), {args.bars} bars...")
    try:
        market = get_historical_series(
            args.pair, args.timeframe, args.bars,
            api_key=settings.twelve_data_api_key, allow_mock=False,
        )
    except MarketDataError as exc:
        print(f"Failed to retrieve market data: {exc}")
        sys.exit(1)

    df = market.series
    filepath = save_to_csv(df, args.pair, args.output_dir)
    _print_issues(validate_ohlcv(df))

    print(f"\nFetched {len(df)} bars")
    print(f"Date range: {df.index[0]} to {df.index[-1]}")
    print(f"Saved to: {filepath}")
    print("\nRun backtest with:")
    print(f"  python main.py backtest --strategy trend --pair {args.pair} --data {filepath}")


def cmd_history(args: argparse.Namespace) -> None:
    """List, update or export recorded signals."""
    try:
        history = TradeHistory(args.history or load_settings().history_path)
        if args.set_status:
            entry_id, status = args.set_status
            history.update_status(entry_id, status)
            print(f"Trade {entry_id} marked as {status}.")
        if args.export:
            print(f"Exported to: {history.export_csv(args.export)}")
    except HistoryError as exc:
        print(exc)
        sys.exit(1)
    except (KeyError, ValueError) as exc:
        print(f"Cannot update trade: {exc}")
        sys.exit(1)

    entries = history.filter(args.pair, args.strategy, args.status)
    if not entries:
        print("No trade signals recorded." if not len(history) else "No trades match the filters.")
        return

    print(f"{'ID':<34}{'Pair':<10}{'TF':<5}{'Strategy':<11}{'Signal':<7}"
          f"{'Entry':>11}{'Lots':>8}  Status")
    for e in entries:
        s = e.signal
        print(f"{e.id:<34}{e.currency_pair:<10}{e.timeframe:<5}{s.strategy.value:<11}"
              f"{s.action.value:<7}{s.entry:>11.5f}{s.lot_size:>8.2f}  {e.status}")

    perf = history.performance()
    print(f"\nTotal: {perf.total}  Won: {perf.wins}  Lost: {perf.losses}  "
          f"Open: {perf.open}  Win Rate: {perf.win_rate:.1f}%")


def _add_market_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--pair", "-p", default="EUR/USD",
                   help=f"Currency pair (e.g. {', '.join(CURRENCY_PAIRS[:3])})")
    p.add_argument("--timeframe", "-t", default="1H", type=str.upper, choices=TIMEFRAMES)
    p.add_argument("--strategy", "-s", required=True, choices=STRATEGIES)
    p.add_argument("--data", "-d", help="Path to CSV file (skips the API)")
    p.add_argument("--balance", type=float, default=10_000, help="Account balance")
    p.add_argument("--risk", type=float, default=1.0, help="Risk per trade %%")
    p.add_argument("--no-mock", action="store_true",
                   help="Fail instead of falling back to mock data")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Forex signal generator and strategy backtester"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sig = subparsers.add_parser("signal", help="Generate a signal from the latest bar")
    _add_market_args(sig)
    sig.add_argument("--save", action="store_true", help="Record the signal in history")
    sig.add_argument("--history", type=Path, help="History file path")
    sig.add_argument("--notify", action="store_true", help="Send to Telegram")
    sig.add_argument("--chat-id", help="Telegram chat id (overrides TELEGRAM_CHAT_ID)")

    bt = subparsers.add_parser("backtest", help="Run a historical backtest")
    _add_market_args(bt)
    bt.add_argument("--bars", type=int, default=BacktestConfig().default_bar_count,
                    help="Bars to fetch when --data is not given")

    fetch = subparsers.add_parser("fetch", help="Fetch OHLC data from Twelve Data")
    fetch.add_argument("--pair", "-p", required=True)
    fetch.add_argument("--timeframe", "-t", default="1H", type=str.upper, choices=TIMEFRAMES)
    fetch.add_argument("--bars", type=int, default=BacktestConfig().default_bar_count)
    fetch.add_argument("--output-dir", default="data",
                       help="Output directory (default: data/)")

    hist = subparsers.add_parser("history", help="Show recorded signals")
    hist.add_argument("--history", type=Path, help="History file path")
    hist.add_argument("--pair", "-p")
    hist.add_argument("--strategy", "-s", choices=STRATEGIES)
    hist.add_argument("--status", choices=TRADE_STATUSES)
    hist.add_argument("--set-status", nargs=2, metavar=("ID", "STATUS"),
                      help="Mark a trade as open, won or lost")
    hist.add_argument("--export", type=Path, help="Write the history to a CSV file")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "signal":
        cmd_signal(args)
    elif args.command == "backtest":
        cmd_backtest(args)
    elif args.command == "fetch":
        cmd_fetch(args)
    elif args.command == "history":
        cmd_history(args)


if __name__ == "__main__":
    main()
