"""Test doubles shared across test modules."""

from decimal import Decimal
from typing import Dict, Iterable, Optional

from portfolio_api.core.exceptions import UpstreamUnavailable
from portfolio_api.services.prices.provider import PriceSource


class StaticPriceSource(PriceSource):
    """Price source answering from a dict; symbols in `failing` act as an outage."""

    def __init__(self, name: str, prices: Optional[Dict[str, Decimal]] = None, failing: Iterable[str] = ()):
        self.name = name
        self.prices = dict(prices or {})
        self.failing = set(failing)
        self.calls = []

    def fetch_price(self, symbol: str) -> Optional[Decimal]:
        self.calls.append(symbol)
        if symbol in self.failing:
            raise UpstreamUnavailable(f"{self.name} is down")
        return self.prices.get(symbol)
