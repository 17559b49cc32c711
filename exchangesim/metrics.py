# exchangesim/metrics.py
"""
Analytics over the order book: candlesticks, volume, mean price per minute
and record counts. Everything here reads the book and never mutates it.
"""
from __future__ import annotations

import math
from collections import OrderedDict, defaultdict
from dataclasses import asdict
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from .core import OrderBook
from .models import Candlestick, Order, Side

MEAN_PRICE_DECIMALS = 6


def high_price(orders: Sequence[Order]) -> float:
    if not orders:
        raise ValueError("high_price of an empty order list")
    return max(o.price for o in orders)


def low_price(orders: Sequence[Order]) -> float:
    if not orders:
        raise ValueError("low_price of an empty order list")
    return min(o.price for o in orders)


def vwap(orders: Iterable[Order]) -> float:
    total_value = 0.0
    total_amount = 0.0
    for o in orders:
        total_value += o.price * o.amount
        total_amount += o.amount
    return total_value / total_amount


def round_half_away(x: float, ndigits: int = MEAN_PRICE_DECIMALS) -> float:
    """Round like C's round(): ties go away from zero, not to even."""
    scale = 10.0 ** ndigits
    return math.copysign(math.floor(abs(x) * scale + 0.5), x) / scale


def candlesticks(book: OrderBook, side: Side, product: str) -> List[Candlestick]:
    """
    One candle per global timestamp that has orders for (side, product).

    Timestamps without orders are skipped, so the result is sparse. The
    close is the bucket VWAP; the open is the previous emitted close, or the
    candle's own close for the first one.
    """
    candles: List[Candlestick] = []
    for ts in book.distinct_timestamps():
        entries = book.query(side, product, ts)
        if not entries:
            continue
        close = vwap(entries)
        open_ = candles[-1].close if candles else close
        candles.append(Candlestick(ts, open_, high_price(entries), low_price(entries), close))
    return candles


def volume_series(book: OrderBook, side: Side, product: str) -> List[Tuple[str, float]]:
    """Total amount per global timestamp; timestamps with no orders report 0."""
    return [
        (ts, sum(o.amount for o in book.query(side, product, ts)))
        for ts in book.distinct_timestamps()
    ]


def mean_price_by_minute(book: OrderBook, side: Side, product: str) -> "OrderedDict[str, float]":
    """Arithmetic mean price grouped by the HH:MM part of the timestamp, ascending by minute."""
    prices: Dict[str, List[float]] = defaultdict(list)
    for o in book:
        if o.side is side and o.product == product:
            prices[o.minute].append(o.price)
    return OrderedDict(
        (minute, round_half_away(sum(ps) / len(ps)))
        for minute, ps in sorted(prices.items())
    )


def trade_counts_by_product(book: OrderBook) -> Dict[str, int]:
    counts: Dict[str, int] = defaultdict(int)
    for o in book:
        counts[o.product] += 1
    return dict(sorted(counts.items()))


def candles_frame(candles: Sequence[Candlestick]) -> pd.DataFrame:
    return pd.DataFrame(
        [asdict(c) for c in candles],
        columns=["timestamp", "open", "high", "low", "close"],
    )


def series_frame(series: Iterable[Tuple[str, float]], label: str = "label", value: str = "value") -> pd.DataFrame:
    return pd.DataFrame(list(series), columns=[label, value])


def orders_frame(orders: Iterable[Order]) -> pd.DataFrame:
    rows = [
        {
            "timestamp": o.timestamp,
            "product": o.product,
            "side": o.side.value,
            "price": o.price,
            "amount": o.amount,
            "owner": o.owner,
        }
        for o in orders
    ]
    return pd.DataFrame(rows, columns=["timestamp", "product", "side", "price", "amount", "owner"])


def summarize_trades(trades: Sequence[Order]) -> Dict[str, float]:
    if not trades:
        return {"count": 0, "volume": 0.0, "vwap": 0.0, "min_price": 0.0, "max_price": 0.0}
    prices = np.array([t.price for t in trades], dtype=float)
    amounts = np.array([t.amount for t in trades], dtype=float)
    volume = float(amounts.sum())
    return {
        "count": len(trades),
        "volume": volume,
        "vwap": float((prices * amounts).sum() / volume) if volume > 0 else 0.0,
        "min_price": float(prices.min()),
        "max_price": float(prices.max()),
    }


def step_latency_summary(latencies_ns: np.ndarray) -> Dict[str, float]:
    """Per-step wall time of a simulator run, in microseconds."""
    if latencies_ns.size == 0:
        return {"steps": 0, "mean_us": 0.0, "p50_us": 0.0, "p95_us": 0.0, "max_us": 0.0, "steps_per_sec": 0.0}
    us = latencies_ns.astype(float) / 1_000.0
    p50, p95 = np.percentile(us, [50, 95])
    mean_us = float(us.mean())
    return {
        "steps": int(us.size),
        "mean_us": mean_us,
        "p50_us": float(p50),
        "p95_us": float(p95),
        "max_us": float(us.max()),
        "steps_per_sec": 1e6 / mean_us if mean_us > 0 else 0.0,
    }
