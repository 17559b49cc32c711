# exchangesim/sim.py
from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .core import OrderBook
from .errors import InsufficientFunds
from .loader import check_price_amount, parse_user_order
from .logger import get_logger
from .matching import MatchingEngine
from .metrics import high_price, low_price, orders_frame, summarize_trades
from .models import DATASET_OWNER, USER_OWNER, Order, Side
from .wallet import Wallet

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S.%f"


@dataclass(slots=True)
class SimConfig:
    data_files: Sequence[str] = ()
    balances: Dict[str, float] = field(default_factory=dict)
    max_candles: int = 50
    # sale records go back into the book so trade counts include them
    record_trades: bool = True


@dataclass(slots=True)
class SyntheticConfig:
    seed: int = 30
    n_timestamps: int = 120
    step_seconds: float = 3.0
    start: str = "2020/03/17 17:01:24.884492"
    products: Tuple[str, ...] = ("ETH/BTC", "DOGE/BTC", "BTC/USDT", "ETH/USDT")
    mids: Tuple[float, ...] = (0.0217, 3.1e-07, 5350.0, 116.0)
    orders_per_step: int = 20
    sigma: float = 0.002
    half_spread: float = 0.0005
    size_mean: float = 5.0


@dataclass(slots=True)
class SimArtifacts:
    trades: pd.DataFrame
    steps: int
    latencies_ns: np.ndarray
    final_time: str
    balances: Dict[str, float]
    trade_summary: Dict[str, float]


def generate_orders(cfg: SyntheticConfig) -> List[Order]:
    """
    Reproducible random order stream in the historical data format.
    Each product's mid follows a random walk; asks sit above it and bids
    below it, with enough noise that some prices cross and trade.
    """
    if len(cfg.products) != len(cfg.mids):
        raise ValueError("products and mids must have the same length")
    rs = np.random.RandomState(cfg.seed)
    start = datetime.strptime(cfg.start, TIMESTAMP_FORMAT)
    mids = list(cfg.mids)
    orders: List[Order] = []
    for i in range(cfg.n_timestamps):
        ts = (start + timedelta(seconds=i * cfg.step_seconds)).strftime(TIMESTAMP_FORMAT)
        for k, product in enumerate(cfg.products):
            mids[k] *= math.exp(rs.normal(0.0, cfg.sigma))
            for _ in range(cfg.orders_per_step):
                side = Side.ASK if rs.rand() < 0.5 else Side.BID
                offset = cfg.half_spread if side is Side.ASK else -cfg.half_spread
                price = mids[k] * (1.0 + offset + rs.normal(0.0, cfg.sigma))
                amount = float(rs.lognormal(mean=math.log(cfg.size_mean), sigma=0.75))
                orders.append(Order(
                    price=max(price, mids[k] * 1e-3),
                    amount=amount,
                    timestamp=ts,
                    product=product,
                    side=side,
                    owner=DATASET_OWNER,
                ))
    return orders


class Simulator:
    """
    Drives the exchange one timestamp at a time: the user places orders at
    the current time, `step` matches every product, settles the user's
    trades against the wallet and moves the cursor to the next timestamp
    (wrapping at the end of the data).
    """

    def __init__(self, book: OrderBook, wallet: Optional[Wallet] = None, cfg: Optional[SimConfig] = None) -> None:
        self.cfg = cfg or SimConfig()
        self.book = book
        self.wallet = wallet if wallet is not None else Wallet(self.cfg.balances)
        self.engine = MatchingEngine(book)
        self.current_time: str = book.earliest_timestamp()

    @classmethod
    def from_config(cls, cfg: SimConfig) -> "Simulator":
        return cls(OrderBook.from_files(list(cfg.data_files)), Wallet(cfg.balances), cfg)

    def place_order(self, side: Side, product: str, price: float, amount: float) -> Order:
        check_price_amount(price, amount)
        order = Order(price=price, amount=amount, timestamp=self.current_time, product=product, side=side, owner=USER_OWNER)
        return self._submit(order)

    def enter_line(self, line: str, side: Side) -> Order:
        """Place an order typed as "product,price,amount"."""
        return self._submit(parse_user_order(line, side, self.current_time))

    def _submit(self, order: Order) -> Order:
        if order.side not in (Side.ASK, Side.BID):
            raise ValueError(f"user orders must be ask or bid, got {order.side.value}")
        if not self.wallet.can_fulfill_order(order):
            currency, needed = self.wallet.required_funds(order)
            raise InsufficientFunds(currency, needed, self.wallet.balance(currency))
        self.book.insert(order)
        logger.info("Placed %s %s %s @ %s at %s", order.side.value, order.amount, order.product, order.price, order.timestamp)
        return order

    def market_stats(self) -> Dict[str, Dict[str, object]]:
        stats: Dict[str, Dict[str, object]] = {}
        for product in sorted(self.book.known_products()):
            asks = self.book.query(Side.ASK, product, self.current_time)
            stats[product] = {
                "asks_seen": len(asks),
                "max_ask": high_price(asks) if asks else None,
                "min_ask": low_price(asks) if asks else None,
            }
        return stats

    def step(self) -> List[Order]:
        trades: List[Order] = []
        for product, sales in self.engine.match_all(self.current_time).items():
            for sale in sales:
                logger.info("Sale %s price: %s amount: %s", product, sale.price, sale.amount)
                if sale.is_user:
                    self.wallet.process_sale(sale)
            trades.extend(sales)
        if self.cfg.record_trades:
            for sale in trades:
                self.book.insert(sale)
        previous = self.current_time
        self.current_time = self.book.next_timestamp(previous)
        logger.info("Advanced from %s to %s (%d trades)", previous, self.current_time, len(trades))
        return trades

    def run(self, n_steps: int) -> SimArtifacts:
        trades: List[Order] = []
        latencies: List[int] = []
        for _ in range(n_steps):
            t0 = time.perf_counter_ns()
            trades.extend(self.step())
            latencies.append(time.perf_counter_ns() - t0)
        return SimArtifacts(
            trades=orders_frame(trades),
            steps=n_steps,
            latencies_ns=np.array(latencies, dtype=np.int64),
            final_time=self.current_time,
            balances=self.wallet.balances(),
            trade_summary=summarize_trades(trades),
        )


def save_artifacts(art: SimArtifacts, out_dir: str) -> Dict[str, str]:
    ts = pd.Timestamp.now(tz="UTC").strftime("%Y%m%d_%H%M%S")
    base = Path(out_dir)
    base.mkdir(parents=True, exist_ok=True)
    files: Dict[str, str] = {}

    trades_path = base / f"trades_{ts}.csv"
    art.trades.to_csv(trades_path, index=False)
    files["trades_csv"] = str(trades_path)

    lat_path = base / f"latencies_{ts}.csv"
    pd.DataFrame({"latency_ns": art.latencies_ns}).to_csv(lat_path, index=False)
    files["latencies_csv"] = str(lat_path)

    bal_path = base / f"balances_{ts}.csv"
    pd.DataFrame(sorted(art.balances.items()), columns=["currency", "amount"]).to_csv(bal_path, index=False)
    files["balances_csv"] = str(bal_path)
    return files
