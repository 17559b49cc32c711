# bench/benchmark.py
from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from exchangesim.core import OrderBook
from exchangesim.metrics import candlesticks, step_latency_summary
from exchangesim.models import Side
from exchangesim.sim import SimConfig, Simulator, SyntheticConfig, generate_orders
from exchangesim.viz import plot_step_latency


def main() -> None:
    syn = SyntheticConfig(seed=123, n_timestamps=500, orders_per_step=40)
    book = OrderBook(generate_orders(syn))
    sim = Simulator(book, cfg=SimConfig(record_trades=True))
    art = sim.run(syn.n_timestamps)

    Path("results").mkdir(parents=True, exist_ok=True)
    summary = step_latency_summary(art.latencies_ns)
    summary["candles"] = len(candlesticks(book, Side.ASK, syn.products[0]))
    latency_png = plot_step_latency(art.latencies_ns, "results")
    pd.DataFrame([summary]).to_csv("results/benchmark_summary.csv", index=False)
    print(json.dumps({"benchmark": summary, "trades": art.trade_summary, "step_latency": latency_png}, indent=2))


if __name__ == "__main__":
    main()
