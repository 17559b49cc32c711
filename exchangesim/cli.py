# exchangesim/cli.py
from __future__ import annotations

import argparse
import json
import sys
from typing import Dict, List, Optional, TextIO, Tuple

from .core import OrderBook
from .errors import ExchangeError
from .loader import write_csv
from .logger import get_logger, setup_logging
from .metrics import (
    candlesticks,
    mean_price_by_minute,
    step_latency_summary,
    trade_counts_by_product,
    volume_series,
)
from .models import Side
from .sim import SimConfig, Simulator, SyntheticConfig, generate_orders, save_artifacts
from .textplot import render_candlesticks, render_mean_price, render_trade_counts, render_volume

logger = get_logger(__name__)


def _side(value: str) -> Side:
    side = Side.from_string(value)
    if side is Side.UNKNOWN:
        raise argparse.ArgumentTypeError(f"side must be ask or bid, got {value!r}")
    return side


def _balance(value: str) -> Tuple[str, float]:
    currency, sep, amount = value.partition("=")
    if not sep or not currency:
        raise argparse.ArgumentTypeError(f"expected CUR=AMOUNT, got {value!r}")
    try:
        return currency, float(amount)
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad amount in {value!r}") from None


def _book(args: argparse.Namespace) -> OrderBook:
    return OrderBook.from_files(args.data)


def run_stats(args: argparse.Namespace) -> None:
    sim = Simulator(_book(args))
    if args.timestamp:
        sim.current_time = args.timestamp
    print(json.dumps({"timestamp": sim.current_time, "products": sim.market_stats()}, indent=2))


def run_candles(args: argparse.Namespace) -> None:
    candles = candlesticks(_book(args), args.side, args.product)
    if args.max and len(candles) > args.max:
        candles = candles[-args.max:]
    print(render_candlesticks(candles), end="")
    if args.plot:
        from .viz import plot_candlesticks

        print(json.dumps({"saved": plot_candlesticks(candles, args.product, args.plot)}))


def run_volume(args: argparse.Namespace) -> None:
    series = volume_series(_book(args), args.side, args.product)
    print(render_volume(series), end="")
    if args.plot:
        from .viz import plot_volume

        print(json.dumps({"saved": plot_volume(series, args.product, args.plot)}))


def run_mean_price(args: argparse.Namespace) -> None:
    data = mean_price_by_minute(_book(args), args.side, args.product)
    print(render_mean_price(data), end="")
    if args.plot and data:
        from .viz import plot_mean_price

        print(json.dumps({"saved": plot_mean_price(data, args.product, args.plot)}))


def run_trades(args: argparse.Namespace) -> None:
    counts = trade_counts_by_product(_book(args))
    print(render_trade_counts(counts), end="")
    if args.plot:
        from .viz import plot_trade_counts

        print(json.dumps({"saved": plot_trade_counts(counts, args.plot)}))


def run_sim(args: argparse.Namespace) -> None:
    cfg = SimConfig(data_files=args.data, balances=dict(args.balance or []), record_trades=not args.no_record)
    sim = Simulator.from_config(cfg)
    for line in args.ask or []:
        sim.enter_line(line, Side.ASK)
    for line in args.bid or []:
        sim.enter_line(line, Side.BID)
    art = sim.run(args.steps)
    out: Dict[str, object] = {
        "steps": art.steps,
        "final_time": art.final_time,
        "balances": art.balances,
        "latency_summary": step_latency_summary(art.latencies_ns),
        "trades": art.trade_summary,
    }
    if args.report:
        from .viz import plot_step_latency

        out["saved"] = {**save_artifacts(art, args.report), "step_latency": plot_step_latency(art.latencies_ns, args.report)}
    print(json.dumps(out, indent=2))


def run_generate(args: argparse.Namespace) -> None:
    cfg = SyntheticConfig(seed=args.seed, n_timestamps=args.n_timestamps, orders_per_step=args.orders_per_step)
    orders = generate_orders(cfg)
    path = write_csv(orders, args.out)
    print(json.dumps({"saved": path, "orders": len(orders)}, indent=2))


HELP_TEXT = "Help - your aim is to make money. Analyse the market and make bids and offers."

MENU = (
    "1: Print help\n"
    "2: Print exchange stats\n"
    "3: Make an offer\n"
    "4: Make a bid\n"
    "5: Print wallet\n"
    "6: Continue\n"
    "7: Print candlestick chart\n"
    "8: Print volume chart\n"
    "9: Print average price chart\n"
    "10: Print number of trades per product\n"
    "0: Quit\n"
)


class Shell:
    """Interactive menu over a Simulator, reading one option per line."""

    def __init__(self, sim: Simulator, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> None:
        self.sim = sim
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    def _write(self, text: str) -> None:
        self.stdout.write(text)

    def _prompt(self, text: str) -> Optional[str]:
        self._write(text)
        line = self.stdin.readline()
        if not line:
            return None
        return line.strip()

    def loop(self) -> None:
        while True:
            self._write(f"\nCurrent time is: {self.sim.current_time}\n")
            choice = self._prompt(MENU + "Enter option: ")
            if choice is None or choice == "0":
                return
            self.dispatch(choice)

    def dispatch(self, choice: str) -> None:
        actions = {
            "1": lambda: self._write(HELP_TEXT + "\n"),
            "2": self.print_stats,
            "3": lambda: self.enter_order(Side.ASK),
            "4": lambda: self.enter_order(Side.BID),
            "5": lambda: self._write(str(self.sim.wallet)),
            "6": self.next_timeframe,
            "7": self.print_candles,
            "8": self.print_volume,
            "9": self.print_mean_price,
            "10": lambda: self._write(render_trade_counts(trade_counts_by_product(self.sim.book))),
        }
        action = actions.get(choice)
        if action is None:
            self._write("Invalid choice, please type 0-10\n")
            return
        action()

    def print_stats(self) -> None:
        for product, s in self.sim.market_stats().items():
            self._write(f"Product: {product}\nAsks seen: {s['asks_seen']}\nMax ask: {s['max_ask']}\nMin ask: {s['min_ask']}\n")

    def enter_order(self, side: Side) -> None:
        kind = "an ask" if side is Side.ASK else "a bid"
        line = self._prompt(f"Make {kind} - enter product,price,amount (e.g. ETH/BTC,200,0.5): ")
        if line is None:
            return
        try:
            order = self.sim.enter_line(line, side)
        except ExchangeError as exc:
            self._write(f"Order rejected: {exc}\n")
            return
        self._write(f"{side.value.capitalize()} placed: {order.product} {order.amount} @ {order.price}\n")

    def next_timeframe(self) -> None:
        self._write("Going to next time frame...\n")
        for sale in self.sim.step():
            self._write(f"Sale {sale.product} price: {sale.price} amount: {sale.amount}\n")

    def _ask_product(self, what: str) -> Optional[str]:
        return self._prompt(f"Enter product for {what} (e.g. ETH/USDT): ")

    def print_candles(self) -> None:
        product = self._ask_product("candlestick")
        if product:
            candles = candlesticks(self.sim.book, Side.ASK, product)[-self.sim.cfg.max_candles:]
            self._write(render_candlesticks(candles))

    def print_volume(self) -> None:
        product = self._ask_product("volume chart")
        if product:
            self._write(render_volume(volume_series(self.sim.book, Side.ASK, product)))

    def print_mean_price(self) -> None:
        products = sorted(self.sim.book.known_products())
        self._write("Available products:\n" + "".join(f"  - {p}\n" for p in products))
        product = self._ask_product("mean price")
        if not product:
            return
        choice = self._prompt("Plot mean price for (1) ask or (2) bid? Enter 1 or 2: ")
        side = Side.ASK if choice == "1" else Side.BID
        self._write(render_mean_price(mean_price_by_minute(self.sim.book, side, product)))


def run_shell(args: argparse.Namespace) -> None:
    cfg = SimConfig(data_files=args.data, balances=dict(args.balance or []))
    Shell(Simulator.from_config(cfg)).loop()


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--log-level", type=str, default="WARNING")
    common.add_argument("--log-file", type=str, default=None)

    data = argparse.ArgumentParser(add_help=False, parents=[common])
    data.add_argument("--data", nargs="+", required=True, help="historical order CSV files")

    series = argparse.ArgumentParser(add_help=False, parents=[data])
    series.add_argument("--product", type=str, required=True)
    series.add_argument("--side", type=_side, default=Side.ASK)
    series.add_argument("--plot", type=str, default=None, help="directory for PNG output")

    parser = argparse.ArgumentParser(prog="exchangesim", description="Historical exchange simulator")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_stats = sub.add_parser("stats", parents=[data], help="Ask statistics per product at a timestamp")
    p_stats.add_argument("--timestamp", type=str, default=None)
    p_stats.set_defaults(func=run_stats)

    p_candles = sub.add_parser("candles", parents=[series], help="Candlestick chart")
    p_candles.add_argument("--max", type=int, default=50)
    p_candles.set_defaults(func=run_candles)

    p_volume = sub.add_parser("volume", parents=[series], help="Volume per timestamp")
    p_volume.set_defaults(func=run_volume)

    p_mean = sub.add_parser("mean-price", parents=[series], help="Mean price per minute")
    p_mean.set_defaults(func=run_mean_price)

    p_trades = sub.add_parser("trades", parents=[data], help="Number of orders per product")
    p_trades.add_argument("--plot", type=str, default=None)
    p_trades.set_defaults(func=run_trades)

    p_run = sub.add_parser("run", parents=[data], help="Step the simulation and report")
    p_run.add_argument("--steps", type=int, default=10)
    p_run.add_argument("--balance", type=_balance, action="append", help="CUR=AMOUNT, repeatable")
    p_run.add_argument("--ask", action="append", help="product,price,amount placed before the first step")
    p_run.add_argument("--bid", action="append", help="product,price,amount placed before the first step")
    p_run.add_argument("--no-record", action="store_true", help="do not add sale records to the book")
    p_run.add_argument("--report", type=str, default=None)
    p_run.set_defaults(func=run_sim)

    p_gen = sub.add_parser("generate", parents=[common], help="Write a synthetic dataset")
    p_gen.add_argument("--out", type=str, required=True)
    p_gen.add_argument("--seed", type=int, default=30)
    p_gen.add_argument("--n-timestamps", type=int, default=120)
    p_gen.add_argument("--orders-per-step", type=int, default=20)
    p_gen.set_defaults(func=run_generate)

    p_shell = sub.add_parser("shell", parents=[data], help="Interactive menu")
    p_shell.add_argument("--balance", type=_balance, action="append", help="CUR=AMOUNT, repeatable")
    p_shell.set_defaults(func=run_shell)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    try:
        args.func(args)
    except ExchangeError as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
