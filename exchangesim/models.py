# exchangesim/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class Side(Enum):
    ASK = "ask"
    BID = "bid"
    ASK_SALE = "asksale"
    BID_SALE = "bidsale"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, s: str) -> "Side":
        """Map the dataset strings "ask"/"bid" to a side; anything else is UNKNOWN."""
        if s == "ask":
            return cls.ASK
        if s == "bid":
            return cls.BID
        return cls.UNKNOWN

    @property
    def is_sale(self) -> bool:
        return self in (Side.ASK_SALE, Side.BID_SALE)


DATASET_OWNER = "dataset"
USER_OWNER = "simuser"


@dataclass(frozen=True, slots=True)
class Order:
    """
    One order book entry.
    - price: unit price in the quote currency
    - amount: quantity of the base currency
    - timestamp: fixed-width "YYYY/MM/DD HH:MM:SS.ffffff", sortable as text
    - product: "BASE/QUOTE", e.g. "ETH/USDT"
    - side: ASK/BID for open orders, ASK_SALE/BID_SALE for matched trades.
      Only the side decides how a trade is settled against the wallet.
    - owner: DATASET_OWNER for historical rows, USER_OWNER for user orders
    """
    price: float
    amount: float
    timestamp: str
    product: str
    side: Side
    owner: str = DATASET_OWNER

    @property
    def currencies(self) -> Tuple[str, str]:
        base, _, quote = self.product.partition("/")
        return base, quote

    @property
    def base(self) -> str:
        return self.currencies[0]

    @property
    def quote(self) -> str:
        return self.currencies[1]

    @property
    def minute(self) -> str:
        return self.timestamp[11:16]

    @property
    def is_user(self) -> bool:
        return self.owner == USER_OWNER


@dataclass(frozen=True, slots=True)
class Candlestick:
    """OHLC summary for one timestamp; close is the VWAP of the bucket."""
    timestamp: str
    open: float
    high: float
    low: float
    close: float
