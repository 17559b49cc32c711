# exchangesim/loader.py
"""
CSV loading for historical order data.

Each line is `timestamp,product,side,price,amount`. A bad line never aborts a
load: it is logged and skipped, so the book only ever sees well-formed orders.
"""
from __future__ import annotations

import csv
import math
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

import pandas as pd

from .errors import MalformedRecord
from .logger import get_logger
from .models import DATASET_OWNER, USER_OWNER, Order, Side

logger = get_logger(__name__)

COLUMNS = ["timestamp", "product", "side", "price", "amount"]


def _parse_number(token: object, field: str) -> float:
    if not isinstance(token, str) or not token:
        raise MalformedRecord(f"missing {field}")
    try:
        value = float(token)
    except ValueError:
        raise MalformedRecord(f"bad {field}: {token!r}") from None
    if not math.isfinite(value):
        raise MalformedRecord(f"non-finite {field}: {token!r}")
    return value


def check_price_amount(price: float, amount: float) -> None:
    """Both must be finite and strictly positive; a zero amount has no VWAP weight."""
    if not (math.isfinite(price) and price > 0):
        raise MalformedRecord(f"price must be positive, got {price}")
    if not (math.isfinite(amount) and amount > 0):
        raise MalformedRecord(f"amount must be positive, got {amount}")


def _parse_price_amount(price_token: object, amount_token: object) -> Tuple[float, float]:
    price = _parse_number(price_token, "price")
    amount = _parse_number(amount_token, "amount")
    check_price_amount(price, amount)
    return price, amount


def parse_record(tokens: Sequence[object], owner: str = DATASET_OWNER) -> Order:
    """Build an order from the five fields of one CSV line."""
    if len(tokens) != len(COLUMNS):
        raise MalformedRecord(f"expected {len(COLUMNS)} fields, got {len(tokens)}", ",".join(map(str, tokens)))
    timestamp, product, side = tokens[0], tokens[1], tokens[2]
    if not all(isinstance(t, str) and t for t in (timestamp, product, side)):
        raise MalformedRecord("empty timestamp, product or side", ",".join(map(str, tokens)))
    price, amount = _parse_price_amount(tokens[3], tokens[4])
    return Order(
        price=price,
        amount=amount,
        timestamp=timestamp,
        product=product,
        side=Side.from_string(side),
        owner=owner,
    )


def parse_user_order(line: str, side: Side, timestamp: str) -> Order:
    """
    Turn user input "product,price,amount" into a user-owned order at `timestamp`.
    Only ASK and BID can be entered.
    """
    if side not in (Side.ASK, Side.BID):
        raise ValueError(f"user orders must be ask or bid, got {side.value}")
    tokens = tokenise(line)
    if len(tokens) != 3 or not tokens[0]:
        raise MalformedRecord(f"expected product,price,amount; got {line!r}", line)
    price, amount = _parse_price_amount(tokens[1], tokens[2])
    return Order(price=price, amount=amount, timestamp=timestamp, product=tokens[0], side=side, owner=USER_OWNER)


def tokenise(line: str, separator: str = ",") -> List[str]:
    """Split one line into stripped fields; quoted fields may contain the separator."""
    line = line.strip()
    if not line:
        return []
    try:
        row = next(csv.reader([line], delimiter=separator, skipinitialspace=True), [])
    except csv.Error as exc:
        raise MalformedRecord(str(exc), line) from None
    return [t.strip() for t in row]


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedRecord(f"undecodable bytes at offset {exc.start}") from None


def read_csv(path: str | Path) -> List[Order]:
    """Read one data file. A missing file is an error; bad lines are not."""
    orders: List[Order] = []
    skipped = 0
    with open(path, "rb") as fh:
        for lineno, raw in enumerate(fh, start=1):
            try:
                tokens = tokenise(_decode(raw))
                if not tokens:
                    continue
                orders.append(parse_record(tokens))
            except MalformedRecord as exc:
                skipped += 1
                logger.warning("%s:%d: skipping bad record (%s)", path, lineno, exc)
    logger.info("%s: read %d orders, skipped %d", path, len(orders), skipped)
    return orders


def load_orders(paths: Iterable[str | Path]) -> List[Order]:
    orders: List[Order] = []
    for p in paths:
        orders.extend(read_csv(p))
    return orders


def write_csv(orders: Iterable[Order], path: str | Path) -> str:
    """Write orders back out in the five-column input format."""
    df = pd.DataFrame(
        [(o.timestamp, o.product, o.side.value, o.price, o.amount) for o in orders],
        columns=COLUMNS,
    )
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, header=False, index=False)
    return str(out)
