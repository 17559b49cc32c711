# tests/test_properties.py
from __future__ import annotations

import math

import hypothesis.strategies as st
from hypothesis import given, settings

from exchangesim.core import OrderBook
from exchangesim.matching import match_asks_to_bids
from exchangesim.metrics import candlesticks
from exchangesim.models import DATASET_OWNER, USER_OWNER, Order, Side

STAMPS = [f"2020/03/17 10:{m:02d}:{s:02d}.000000" for m in range(3) for s in (0, 15, 30, 45)]
PRODUCTS = ["ETH/BTC", "BTC/USDT"]


@st.composite
def orders(draw, sides=(Side.ASK, Side.BID)):
    return Order(
        price=draw(st.floats(min_value=1.0, max_value=200.0, allow_nan=False, allow_infinity=False)),
        amount=draw(st.floats(min_value=0.01, max_value=50.0, allow_nan=False, allow_infinity=False)),
        timestamp=draw(st.sampled_from(STAMPS)),
        product=draw(st.sampled_from(PRODUCTS)),
        side=draw(st.sampled_from(list(sides))),
        owner=draw(st.sampled_from([DATASET_OWNER, USER_OWNER])),
    )


@given(st.lists(orders(), min_size=1, max_size=60))
@settings(deadline=None, max_examples=50)
def test_next_timestamp_cycles_through_every_stamp(seq):
    book = OrderBook(seq)
    start = book.earliest_timestamp()
    seen = [start]
    t = book.next_timestamp(start)
    while t != start:
        seen.append(t)
        t = book.next_timestamp(t)
        assert len(seen) <= len(seq)
    assert seen == book.distinct_timestamps()


@given(st.lists(orders(), max_size=20), st.lists(orders(), max_size=40))
@settings(deadline=None, max_examples=50)
def test_inserts_keep_book_sorted(initial, inserted):
    book = OrderBook(initial)
    for x in inserted:
        book.insert(x)
    stamps = [x.timestamp for x in book]
    assert stamps == sorted(stamps)
    assert len(book) == len(initial) + len(inserted)
    for x in inserted:
        assert x in book.query(x.side, x.product, x.timestamp)


@given(
    st.lists(orders(sides=(Side.ASK,)), max_size=15),
    st.lists(orders(sides=(Side.BID,)), max_size=15),
)
@settings(deadline=None, max_examples=100)
def test_matching_conserves_quantity_and_respects_prices(asks, bids):
    ts, product = STAMPS[0], PRODUCTS[0]
    asks = [Order(a.price, a.amount, ts, product, Side.ASK, a.owner) for a in asks]
    bids = [Order(b.price, b.amount, ts, product, Side.BID, b.owner) for b in bids]
    trades = match_asks_to_bids(OrderBook(asks + bids), product, ts)

    total = sum(t.amount for t in trades)
    cap = min(sum(a.amount for a in asks), sum(b.amount for b in bids))
    assert total <= cap + 1e-9 * max(cap, 1.0)

    ask_prices = {a.price for a in asks}
    max_bid = max((b.price for b in bids), default=0.0)
    for t in trades:
        assert t.price in ask_prices
        assert t.price <= max_bid
        assert t.amount > 0
        assert t.side in (Side.ASK_SALE, Side.BID_SALE)


@given(
    st.lists(st.floats(min_value=0.01, max_value=50.0), min_size=1, max_size=10),
    st.lists(st.floats(min_value=0.01, max_value=50.0), min_size=1, max_size=10),
)
@settings(deadline=None, max_examples=50)
def test_fully_crossed_book_trades_smaller_side(ask_amounts, bid_amounts):
    ts, product = STAMPS[0], PRODUCTS[0]
    book = OrderBook(
        [Order(10.0 + i, a, ts, product, Side.ASK) for i, a in enumerate(ask_amounts)]
        + [Order(100.0 + i, b, ts, product, Side.BID) for i, b in enumerate(bid_amounts)]
    )
    total = sum(t.amount for t in match_asks_to_bids(book, product, ts))
    assert math.isclose(total, min(sum(ask_amounts), sum(bid_amounts)), rel_tol=1e-9)


@given(st.lists(orders(), min_size=1, max_size=60))
@settings(deadline=None, max_examples=50)
def test_candle_close_within_high_low(seq):
    book = OrderBook(seq)
    for product in PRODUCTS:
        for side in (Side.ASK, Side.BID):
            for c in candlesticks(book, side, product):
                tol = 1e-9 * c.high
                assert c.low - tol <= c.close <= c.high + tol
                assert c.low <= c.high
