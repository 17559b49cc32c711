# tests/test_core_unit.py
from __future__ import annotations

import pytest

from exchangesim.core import OrderBook
from exchangesim.errors import EmptyStore
from exchangesim.matching import MatchingEngine, match_asks_to_bids
from exchangesim.models import DATASET_OWNER, USER_OWNER, Order, Side

T1 = "2020/03/17 10:00:00.000000"
T2 = "2020/03/17 10:00:05.000000"
T3 = "2020/03/17 10:01:00.000000"


def o(price, amount, side, ts=T1, product="ETH/BTC", owner=DATASET_OWNER):
    return Order(price=price, amount=amount, timestamp=ts, product=product, side=side, owner=owner)


def test_query_filters_on_side_product_and_timestamp():
    book = OrderBook([
        o(1.0, 1, Side.ASK),
        o(2.0, 1, Side.BID),
        o(3.0, 1, Side.ASK, product="BTC/USDT"),
        o(4.0, 1, Side.ASK, ts=T2),
        o(5.0, 1, Side.ASK),
    ])
    got = book.query(Side.ASK, "ETH/BTC", T1)
    assert [x.price for x in got] == [1.0, 5.0]
    assert book.query(Side.BID, "DOGE/BTC", T1) == []
    assert book.query(Side.ASK, "ETH/BTC", "2021/01/01 00:00:00.000000") == []


def test_construction_sorts_stably_by_timestamp():
    book = OrderBook([o(1.0, 1, Side.ASK, ts=T2), o(2.0, 1, Side.ASK, ts=T1), o(3.0, 1, Side.ASK, ts=T2)])
    assert [x.price for x in book] == [2.0, 1.0, 3.0]


def test_insert_keeps_order_and_puts_ties_last():
    book = OrderBook([o(1.0, 1, Side.ASK, ts=T1), o(2.0, 1, Side.ASK, ts=T3)])
    book.insert(o(9.0, 1, Side.ASK, ts=T2))
    book.insert(o(8.0, 1, Side.ASK, ts=T1))
    stamps = [x.timestamp for x in book]
    assert stamps == sorted(stamps)
    assert [x.price for x in book.query(Side.ASK, "ETH/BTC", T1)] == [1.0, 8.0]
    assert len(book) == 4


def test_earliest_and_next_timestamp_wrap():
    book = OrderBook([o(1.0, 1, Side.ASK, ts=T2), o(1.0, 1, Side.BID, ts=T1), o(1.0, 1, Side.ASK, ts=T3)])
    assert book.earliest_timestamp() == T1
    assert book.next_timestamp(T1) == T2
    assert book.next_timestamp(T2) == T3
    assert book.next_timestamp(T3) == T1
    # a cursor between stored stamps moves to the next one up
    assert book.next_timestamp("2020/03/17 10:00:01.000000") == T2


def test_empty_book_timestamp_queries_raise():
    book = OrderBook()
    with pytest.raises(EmptyStore):
        book.earliest_timestamp()
    with pytest.raises(EmptyStore):
        book.next_timestamp(T1)
    assert book.distinct_timestamps() == []
    assert book.known_products() == set()


def test_known_products_and_distinct_timestamps():
    book = OrderBook([
        o(1.0, 1, Side.ASK, ts=T2),
        o(1.0, 1, Side.BID, ts=T1, product="BTC/USDT"),
        o(1.0, 1, Side.ASK, ts=T2, product="DOGE/BTC"),
    ])
    assert book.known_products() == {"ETH/BTC", "BTC/USDT", "DOGE/BTC"}
    assert book.distinct_timestamps() == [T1, T2]


def test_single_match_from_example():
    book = OrderBook([o(100, 1, Side.ASK), o(105, 2, Side.BID)])
    trades = match_asks_to_bids(book, "ETH/BTC", T1)
    assert len(trades) == 1
    t = trades[0]
    assert (t.price, t.amount, t.side, t.owner) == (100, 1, Side.ASK_SALE, DATASET_OWNER)
    assert t.timestamp == T1 and t.product == "ETH/BTC"


def test_no_liquidity_is_empty_result():
    book = OrderBook([o(100, 1, Side.ASK), o(105, 2, Side.BID, product="BTC/USDT")])
    assert match_asks_to_bids(book, "ETH/BTC", T1) == []
    assert match_asks_to_bids(book, "BTC/USDT", T1) == []


def test_ask_walks_bids_until_filled():
    book = OrderBook([
        o(100, 5, Side.ASK),
        o(90, 10, Side.BID),
        o(105, 2, Side.BID),
        o(110, 2, Side.BID),
    ])
    trades = match_asks_to_bids(book, "ETH/BTC", T1)
    assert [(t.price, t.amount) for t in trades] == [(100, 2), (100, 2)]


def test_asks_cheapest_first_and_exhausted_bids_skipped():
    book = OrderBook([
        o(101, 5, Side.ASK),
        o(100, 1, Side.ASK),
        o(105, 1, Side.BID),
    ])
    trades = match_asks_to_bids(book, "ETH/BTC", T1)
    assert [(t.price, t.amount) for t in trades] == [(100, 1)]


def test_ask_moves_on_after_fill():
    book = OrderBook([
        o(100, 1, Side.ASK),
        o(102, 3, Side.ASK),
        o(103, 1, Side.ASK),
        o(105, 3, Side.BID),
        o(101, 5, Side.BID),
    ])
    trades = match_asks_to_bids(book, "ETH/BTC", T1)
    assert [(t.price, t.amount) for t in trades] == [(100, 1), (102, 2)]


def test_matching_does_not_touch_stored_orders():
    book = OrderBook([o(100, 1, Side.ASK), o(105, 2, Side.BID)])
    first = match_asks_to_bids(book, "ETH/BTC", T1)
    second = match_asks_to_bids(book, "ETH/BTC", T1)
    assert first == second
    assert [x.amount for x in book] == [1, 2]
    assert len(book) == 2


def test_user_owned_leg_marks_trade():
    user_bid = OrderBook([o(100, 1, Side.ASK), o(105, 1, Side.BID, owner=USER_OWNER)])
    (t,) = match_asks_to_bids(user_bid, "ETH/BTC", T1)
    assert (t.side, t.owner) == (Side.BID_SALE, USER_OWNER)

    user_ask = OrderBook([o(100, 1, Side.ASK, owner=USER_OWNER), o(105, 1, Side.BID)])
    (t,) = match_asks_to_bids(user_ask, "ETH/BTC", T1)
    assert (t.side, t.owner) == (Side.ASK_SALE, USER_OWNER)

    both = OrderBook([o(100, 1, Side.ASK, owner=USER_OWNER), o(105, 1, Side.BID, owner=USER_OWNER)])
    (t,) = match_asks_to_bids(both, "ETH/BTC", T1)
    assert (t.side, t.owner) == (Side.ASK_SALE, USER_OWNER)


def test_equal_prices_keep_query_order():
    book = OrderBook([
        o(100, 1, Side.ASK),
        o(105, 1, Side.BID, owner=USER_OWNER),
        o(105, 1, Side.BID),
    ])
    (t,) = match_asks_to_bids(book, "ETH/BTC", T1)
    # first 105 bid in storage order is the user's
    assert t.side is Side.BID_SALE


def test_sale_records_are_not_matched_again():
    book = OrderBook([o(100, 1, Side.ASK_SALE), o(105, 1, Side.BID_SALE)])
    assert match_asks_to_bids(book, "ETH/BTC", T1) == []


def test_engine_matches_every_product():
    book = OrderBook([
        o(100, 1, Side.ASK),
        o(105, 1, Side.BID),
        o(5000, 1, Side.ASK, product="BTC/USDT"),
        o(4000, 1, Side.BID, product="BTC/USDT"),
    ])
    out = MatchingEngine(book).match_all(T1)
    assert list(out) == ["BTC/USDT", "ETH/BTC"]
    assert out["BTC/USDT"] == []
    assert len(out["ETH/BTC"]) == 1


def test_orders_returns_a_copy_and_sale_sides_are_flagged():
    book = OrderBook([o(100, 1, Side.ASK)])
    copy = book.orders()
    copy.clear()
    assert len(book) == 1
    assert Side.ASK_SALE.is_sale and Side.BID_SALE.is_sale
    assert not Side.ASK.is_sale and not Side.UNKNOWN.is_sale
    assert Side.from_string("bid") is Side.BID
    assert Side.from_string("BID") is Side.UNKNOWN
