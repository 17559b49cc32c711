# exchangesim/core.py
from __future__ import annotations

from bisect import bisect_left, bisect_right, insort_right
from operator import attrgetter
from typing import Iterable, Iterator, List, Sequence, Set

from .errors import EmptyStore
from .logger import get_logger
from .models import Order, Side

logger = get_logger(__name__)

_ts = attrgetter("timestamp")


class OrderBook:
    """
    Chronological store of every order seen by the simulation.

    Orders are kept sorted by timestamp string; entries sharing a timestamp
    stay in insertion order. Nothing is ever removed: matching produces new
    sale records instead of editing stored ones.
    Invariants:
      - timestamps are non-decreasing along storage order
      - equal timestamps preserve arrival order (stable)
    """

    def __init__(self, orders: Iterable[Order] = ()) -> None:
        self._orders: List[Order] = sorted(orders, key=_ts)

    @classmethod
    def from_files(cls, paths: Sequence[str]) -> "OrderBook":
        from .loader import load_orders

        book = cls(load_orders(paths))
        logger.info("Loaded %d orders from %d file(s)", len(book), len(paths))
        return book

    def __len__(self) -> int:
        return len(self._orders)

    def __iter__(self) -> Iterator[Order]:
        return iter(list(self._orders))

    def orders(self) -> List[Order]:
        return list(self._orders)

    def query(self, side: Side, product: str, timestamp: str) -> List[Order]:
        """All orders with exactly this side, product and timestamp, in storage order."""
        lo = bisect_left(self._orders, timestamp, key=_ts)
        hi = bisect_right(self._orders, timestamp, lo=lo, key=_ts)
        return [o for o in self._orders[lo:hi] if o.side is side and o.product == product]

    def insert(self, order: Order) -> None:
        # lands after any existing entry with the same timestamp
        insort_right(self._orders, order, key=_ts)

    def earliest_timestamp(self) -> str:
        if not self._orders:
            raise EmptyStore("order book is empty")
        return self._orders[0].timestamp

    def next_timestamp(self, current: str) -> str:
        """Smallest stored timestamp after `current`, wrapping to the earliest at the end."""
        if not self._orders:
            raise EmptyStore("order book is empty")
        i = bisect_right(self._orders, current, key=_ts)
        if i == len(self._orders):
            return self._orders[0].timestamp
        return self._orders[i].timestamp

    def known_products(self) -> Set[str]:
        return {o.product for o in self._orders}

    def distinct_timestamps(self) -> List[str]:
        out: List[str] = []
        for o in self._orders:
            if not out or out[-1] != o.timestamp:
                out.append(o.timestamp)
        return out
