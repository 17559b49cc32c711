# exchangesim/__init__.py
"""
Historical Exchange Simulator: time-stepped ask/bid matching and analytics.

Export the primary types and entry points for convenience.
"""
from .models import Side, Order, Candlestick, DATASET_OWNER, USER_OWNER
from .errors import ExchangeError, MalformedRecord, EmptyStore, InsufficientFunds
from .core import OrderBook
from .matching import MatchingEngine, match_asks_to_bids
from .wallet import Wallet

__all__ = [
    "Side",
    "Order",
    "Candlestick",
    "DATASET_OWNER",
    "USER_OWNER",
    "ExchangeError",
    "MalformedRecord",
    "EmptyStore",
    "InsufficientFunds",
    "OrderBook",
    "MatchingEngine",
    "match_asks_to_bids",
    "Wallet",
]

__version__ = "0.1.0"
