from decimal import Decimal
from typing import Optional

import requests

from portfolio_api.services.prices.provider import HttpPriceSource


class BinancePriceSource(HttpPriceSource):
    """Crypto spot prices from Binance, quoted against a stablecoin pair."""

    name = "binance"
    BASE_URL = "https://api.binance.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        quote_asset: str = "USDT",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(base_url, timeout=timeout, session=session)
        self.quote_asset = quote_asset.upper()

    def pair_for(self, symbol: str) -> str:
        return f"{symbol}{self.quote_asset}"

    def fetch_price(self, symbol: str) -> Optional[Decimal]:
        # Unknown pairs answer HTTP 400 {"code": -1121, "msg": "Invalid symbol."}
        data = self._get_json("api/v3/ticker/price", {"symbol": self.pair_for(symbol)})
        if not isinstance(data, dict):
            return None
        return self._to_decimal(data.get("price"))
