# exchangesim/errors.py
from __future__ import annotations


class ExchangeError(Exception):
    """Base class for simulator errors."""


class MalformedRecord(ExchangeError, ValueError):
    """A single input record has the wrong field count or unparseable values."""

    def __init__(self, message: str, line: str = "") -> None:
        super().__init__(message)
        self.line = line


class EmptyStore(ExchangeError, LookupError):
    """A timestamp query was made against an order book holding no orders."""


class InsufficientFunds(ExchangeError):
    """The wallet cannot cover the order the user tried to place."""

    def __init__(self, currency: str, needed: float, available: float) -> None:
        super().__init__(f"insufficient {currency}: need {needed}, have {available}")
        self.currency = currency
        self.needed = needed
        self.available = available
