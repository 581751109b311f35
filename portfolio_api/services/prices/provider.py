from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import requests

from portfolio_api.core.exceptions import UpstreamUnavailable
from portfolio_api.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Quote:
    symbol: str
    price: Decimal
    source: str
    fetched_at: datetime
    stale: bool = False  # True when served from the last-known cache


class PriceSource(ABC):
    name: str = "unknown"

    @abstractmethod
    def fetch_price(self, symbol: str) -> Optional[Decimal]:
        """
        Fetch the current price of a single symbol.

        Returns None when the provider answers but has no price for the
        symbol. Raises UpstreamUnavailable on network, timeout or
        malformed-response errors.
        """


class HttpPriceSource(PriceSource):
    """Shared request handling for JSON-over-HTTP providers."""

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _get_json(self, path: str, params: Dict[str, str]) -> Optional[Any]:
        """GET a JSON document; None for 'no such symbol' style client errors."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamUnavailable(f"{self.name} request failed: {type(e).__name__}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise UpstreamUnavailable(f"{self.name} returned HTTP {response.status_code}")
        if response.status_code >= 400:
            logger.info(
                "Provider rejected symbol lookup",
                extra={'provider': self.name, 'status_code': response.status_code, 'symbol': params.get('symbol')}
            )
            return None

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"{self.name} returned invalid JSON") from e

    @staticmethod
    def _to_decimal(value: Any) -> Optional[Decimal]:
        if value is None:
            return None
        try:
            price = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
        if not price.is_finite() or price <= 0:
            return None
        return price
