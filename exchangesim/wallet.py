# exchangesim/wallet.py
from __future__ import annotations

from typing import Dict, Optional, Tuple

from .logger import get_logger
from .models import Order, Side

logger = get_logger(__name__)


class Wallet:
    """
    Currency balances of the simulated user.
    Asks need the base currency, bids need amount * price of the quote
    currency. Sales move both legs of the product at the trade price.
    """

    def __init__(self, balances: Optional[Dict[str, float]] = None) -> None:
        self._currencies: Dict[str, float] = {}
        for currency, amount in (balances or {}).items():
            self.insert_currency(currency, amount)

    def insert_currency(self, currency: str, amount: float) -> None:
        if amount < 0:
            raise ValueError(f"cannot insert a negative amount of {currency}: {amount}")
        self._currencies[currency] = self._currencies.get(currency, 0.0) + amount

    def remove_currency(self, currency: str, amount: float) -> bool:
        if amount < 0 or not self.contains_currency(currency, amount):
            return False
        self._currencies[currency] -= amount
        return True

    def contains_currency(self, currency: str, amount: float) -> bool:
        if currency not in self._currencies:
            return False
        return self._currencies[currency] >= amount

    def balance(self, currency: str) -> float:
        return self._currencies.get(currency, 0.0)

    def balances(self) -> Dict[str, float]:
        return dict(self._currencies)

    def required_funds(self, order: Order) -> Tuple[str, float]:
        """(currency, amount) the wallet must hold to place `order`."""
        if order.side is Side.ASK:
            return order.base, order.amount
        if order.side is Side.BID:
            return order.quote, order.amount * order.price
        raise ValueError(f"only ask and bid orders need funds, got {order.side.value}")

    def can_fulfill_order(self, order: Order) -> bool:
        if order.side not in (Side.ASK, Side.BID):
            return False
        currency, needed = self.required_funds(order)
        logger.debug("can_fulfill_order %s : %s", currency, needed)
        return self.contains_currency(currency, needed)

    def process_sale(self, sale: Order) -> None:
        """Settle a matched trade: ask-sale means the user sold base, bid-sale means they bought it."""
        if not sale.side.is_sale:
            return
        base, quote = sale.currencies
        value = sale.amount * sale.price
        if sale.side is Side.ASK_SALE:
            self._currencies[quote] = self.balance(quote) + value
            self._currencies[base] = self.balance(base) - sale.amount
        elif sale.side is Side.BID_SALE:
            self._currencies[base] = self.balance(base) + sale.amount
            self._currencies[quote] = self.balance(quote) - value

    def __str__(self) -> str:
        return "".join(f"{currency} : {amount:.6f}\n" for currency, amount in self._currencies.items())
