# exchangesim/textplot.py
"""Plain-text charts for terminal output. Every renderer returns a string."""
from __future__ import annotations

from typing import Iterable, List, Mapping, Sequence, Tuple

from .models import Candlestick

BAR_WIDTH = 50
PRICE_PRECISION = 6
PRICE_WIDTH = PRICE_PRECISION + 3
LABEL_EVERY = 10


def _bar(frac: float, width: int = BAR_WIDTH) -> str:
    return "*" * int(frac * width)


def render_candlesticks(candles: Sequence[Candlestick], rows: int = 20) -> str:
    """
    Vertical candle chart, one column per candle: '*' inside the open/close
    body, '|' on the high/low wick. Time labels (HH:MM:SS) under every
    LABEL_EVERY-th column.
    """
    if not candles:
        return "No candlestick data\n"
    top = max(c.high for c in candles)
    bottom = min(c.low for c in candles)
    step = ((top - bottom) or 1.0) / rows

    lines: List[str] = []
    for r in range(rows, -1, -1):
        level = bottom + r * step
        cells = []
        for c in candles:
            body_lo, body_hi = sorted((c.open, c.close))
            if body_lo <= level <= body_hi:
                cells.append("*")
            elif c.low <= level <= c.high:
                cells.append("|")
            else:
                cells.append(" ")
        lines.append(f"{level:{PRICE_WIDTH}.{PRICE_PRECISION}f} |" + "".join(cells))

    pad = " " * (PRICE_WIDTH + 2)
    lines.append(pad + "-" * len(candles))
    labels = [" "] * (len(candles) + 8)
    for i in range(0, len(candles), LABEL_EVERY):
        labels[i:i + 8] = candles[i].timestamp[11:19].ljust(8)
    lines.append((pad + "".join(labels)).rstrip())
    return "\n".join(lines) + "\n"


def render_volume(series: Iterable[Tuple[str, float]]) -> str:
    series = list(series)
    if not series:
        return "No volume data\n"
    peak = max(v for _, v in series)
    out = []
    for ts, v in series:
        bar = _bar(v / peak) if peak > 0 else ""
        out.append(f"{ts} | {bar} ({v:g})")
    return "\n".join(out) + "\n"


def render_mean_price(data: Mapping[str, float]) -> str:
    if not data:
        return "No mean price data\n"
    lo, hi = min(data.values()), max(data.values())
    span = (hi - lo) or 1.0
    return "".join(
        f"{minute} | {_bar((avg - lo) / span)} ({avg:.{PRICE_PRECISION}f})\n"
        for minute, avg in data.items()
    )


def render_trade_counts(counts: Mapping[str, int]) -> str:
    if not counts:
        return "No trade data\n"
    peak = max(counts.values())
    width = max(len(p) for p in counts)
    return "".join(
        f"{product:<{width}} | {_bar(n / peak) if peak else ''} ({n} orders)\n"
        for product, n in counts.items()
    )
