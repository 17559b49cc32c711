# exchangesim/matching.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .core import OrderBook
from .logger import get_logger
from .models import Order, Side, USER_OWNER, DATASET_OWNER

logger = get_logger(__name__)


@dataclass(slots=True)
class _Working:
    """Private working copy of a snapshot order; only `remaining` changes."""
    order: Order
    remaining: float


def _trade_side_and_owner(ask: Order, bid: Order) -> Tuple[Side, str]:
    if ask.is_user:
        return Side.ASK_SALE, USER_OWNER
    if bid.is_user:
        return Side.BID_SALE, USER_OWNER
    return Side.ASK_SALE, DATASET_OWNER


def match_asks_to_bids(book: OrderBook, product: str, timestamp: str) -> List[Order]:
    """
    Match the asks and bids resting at one (product, timestamp).

    Works on a snapshot: stored orders are never reduced, so calling twice
    yields the same trades. Asks go cheapest first, bids highest first, both
    stable. Each ask walks the bids and trades at the ask's price against any
    bid priced at or above it, for min(ask remaining, bid remaining), until
    the ask is used up. An empty list means there was no liquidity.
    """
    asks = [_Working(o, o.amount) for o in sorted(book.query(Side.ASK, product, timestamp), key=lambda o: o.price)]
    bids = [_Working(o, o.amount) for o in sorted(book.query(Side.BID, product, timestamp), key=lambda o: o.price, reverse=True)]

    if not asks or not bids:
        logger.debug("no bids or asks for %s at %s", product, timestamp)
        return []

    logger.debug(
        "%s at %s: ask %s..%s, bid %s..%s",
        product, timestamp,
        asks[0].order.price, asks[-1].order.price,
        bids[-1].order.price, bids[0].order.price,
    )

    sales: List[Order] = []
    for ask in asks:
        for bid in bids:
            if ask.remaining <= 0:
                break
            if bid.remaining <= 0 or bid.order.price < ask.order.price:
                continue
            qty = min(ask.remaining, bid.remaining)
            side, owner = _trade_side_and_owner(ask.order, bid.order)
            sales.append(Order(
                price=ask.order.price,
                amount=qty,
                timestamp=timestamp,
                product=product,
                side=side,
                owner=owner,
            ))
            ask.remaining -= qty
            bid.remaining -= qty
    return sales


class MatchingEngine:
    """Runs one matching round per product against a shared order book."""

    def __init__(self, book: OrderBook) -> None:
        self.book = book

    def match(self, product: str, timestamp: str) -> List[Order]:
        return match_asks_to_bids(self.book, product, timestamp)

    def match_all(self, timestamp: str) -> Dict[str, List[Order]]:
        return {p: self.match(p, timestamp) for p in sorted(self.book.known_products())}
