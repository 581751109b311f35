from decimal import Decimal
from typing import Optional

import requests

from portfolio_api.core.exceptions import UpstreamUnavailable
from portfolio_api.core.logging_config import get_logger
from portfolio_api.core.secure_logging import mask_api_key
from portfolio_api.services.prices.provider import HttpPriceSource

logger = get_logger(__name__)


class FinnhubPriceSource(HttpPriceSource):
    """
    Equity / ETF quotes from Finnhub.

    Quote response: c=current, d=change, dp=percent change, h=high, l=low,
    o=open, pc=previous close. An unknown symbol answers with c=0.
    """

    name = "finnhub"
    BASE_URL = "https://finnhub.io/api/v1"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = BASE_URL,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(base_url, timeout=timeout, session=session)
        self.api_key = api_key

    def fetch_price(self, symbol: str) -> Optional[Decimal]:
        if not self.api_key:
            raise UpstreamUnavailable("Finnhub API key not configured")

        data = self._get_json("quote", {"symbol": symbol, "token": self.api_key})
        if not isinstance(data, dict):
            return None
        if data.get("error"):
            logger.error(
                "Finnhub API error",
                extra={'symbol': symbol, 'api_key': mask_api_key(self.api_key), 'error': data["error"]}
            )
            raise UpstreamUnavailable("Finnhub API error")
        return self._to_decimal(data.get("c"))
