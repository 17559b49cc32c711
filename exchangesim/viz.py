# exchangesim/viz.py
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np

from .metrics import candles_frame, series_frame
from .models import Candlestick


def _figdir(out_dir: str) -> Path:
    figdir = Path(out_dir) / "figures"
    figdir.mkdir(parents=True, exist_ok=True)
    return figdir


def _slug(product: str) -> str:
    return product.replace("/", "_")


def plot_candlesticks(candles: Sequence[Candlestick], product: str, out_dir: str) -> str:
    df = candles_frame(candles)
    x = np.arange(len(df))
    up = (df["close"] >= df["open"]).to_numpy()

    plt.figure(figsize=(max(6.0, len(df) * 0.15), 4.0))
    plt.vlines(x, df["low"], df["high"], color="black", linewidth=0.8)
    body_lo = np.minimum(df["open"], df["close"])
    body_h = np.abs(df["close"] - df["open"])
    plt.bar(x, body_h, bottom=body_lo, width=0.6, color=np.where(up, "tab:green", "tab:red"))
    step = max(len(df) // 10, 1)
    plt.xticks(x[::step], [ts[11:19] for ts in df["timestamp"]][::step], rotation=45)
    plt.title(f"{product} candlesticks (VWAP close)")
    plt.xlabel("timestamp")
    plt.ylabel("price")
    p = _figdir(out_dir) / f"candles_{_slug(product)}.png"
    plt.tight_layout()
    plt.savefig(p)
    plt.close()
    return str(p)


def plot_volume(series: Iterable[Tuple[str, float]], product: str, out_dir: str) -> str:
    df = series_frame(series, "timestamp", "volume")
    plt.figure()
    plt.bar(np.arange(len(df)), df["volume"], width=1.0)
    plt.title(f"{product} volume")
    plt.xlabel("timestamp index")
    plt.ylabel("amount")
    p = _figdir(out_dir) / f"volume_{_slug(product)}.png"
    plt.tight_layout()
    plt.savefig(p)
    plt.close()
    return str(p)


def plot_mean_price(data: Mapping[str, float], product: str, out_dir: str) -> str:
    df = series_frame(data.items(), "minute", "mean_price")
    plt.figure()
    plt.plot(df["minute"], df["mean_price"], marker="o")
    plt.title(f"{product} mean price per minute")
    plt.xlabel("minute")
    plt.ylabel("price")
    plt.xticks(rotation=45)
    p = _figdir(out_dir) / f"mean_price_{_slug(product)}.png"
    plt.tight_layout()
    plt.savefig(p)
    plt.close()
    return str(p)


def plot_trade_counts(counts: Mapping[str, int], out_dir: str) -> str:
    plt.figure()
    plt.bar(list(counts.keys()), list(counts.values()))
    plt.title("Orders per product")
    plt.xlabel("product")
    plt.ylabel("count")
    p = _figdir(out_dir) / "trade_counts.png"
    plt.tight_layout()
    plt.savefig(p)
    plt.close()
    return str(p)


def plot_step_latency(latencies_ns: np.ndarray, out_dir: str) -> str:
    """Wall time of each simulator step, with the median and p95 marked."""
    us = np.asarray(latencies_ns, dtype=float) / 1_000.0
    plt.figure()
    plt.plot(np.arange(1, us.size + 1), us, linewidth=0.8)
    if us.size:
        for q, style in ((50, "--"), (95, ":")):
            plt.axhline(float(np.percentile(us, q)), linestyle=style, color="grey", label=f"p{q}")
        plt.legend()
    plt.title("Step latency")
    plt.xlabel("step")
    plt.ylabel("wall time (us)")
    p = _figdir(out_dir) / "step_latency.png"
    plt.tight_layout()
    plt.savefig(p)
    plt.close()
    return str(p)
