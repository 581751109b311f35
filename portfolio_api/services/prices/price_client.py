import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from pynamodb.exceptions import DoesNotExist, PynamoDBException

from portfolio_api.core.config import settings
from portfolio_api.core.exceptions import PriceUnavailable, UpstreamUnavailable
from portfolio_api.core.logging_config import get_logger
from portfolio_api.models.price_quote import PriceQuote
from portfolio_api.services.prices.binance_source import BinancePriceSource
from portfolio_api.services.prices.finnhub_source import FinnhubPriceSource
from portfolio_api.services.prices.provider import PriceSource, Quote

logger = get_logger(__name__)

ASSET_CLASS_STOCK = "stock"
ASSET_CLASS_CRYPTO = "crypto"


class AssetPriceClient:
    """
    Routes each symbol to the price source for its asset class.

    `get_price` is the strict live lookup (one retry on transport errors).
    `get_quote` is what valuation uses: live when possible, otherwise the
    last-known price persisted from an earlier successful fetch.
    """

    def __init__(
        self,
        stock_source: PriceSource,
        crypto_source: PriceSource,
        crypto_symbols: Iterable[str] = (),
        max_retries: int = 1,
        retry_backoff: float = 0.25,
        remember_quotes: bool = True,
    ):
        self._stock_source = stock_source
        self._crypto_source = crypto_source
        self._crypto_symbols = {s.upper() for s in crypto_symbols}
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.remember_quotes = remember_quotes

    @classmethod
    def from_settings(cls) -> "AssetPriceClient":
        return cls(
            stock_source=FinnhubPriceSource(
                api_key=settings.FINNHUB_API_KEY,
                base_url=settings.FINNHUB_BASE_URL,
                timeout=settings.PRICE_TIMEOUT_SECONDS,
            ),
            crypto_source=BinancePriceSource(
                base_url=settings.BINANCE_BASE_URL,
                quote_asset=settings.BINANCE_QUOTE_ASSET,
                timeout=settings.PRICE_TIMEOUT_SECONDS,
            ),
            crypto_symbols=settings.CRYPTO_SYMBOLS,
            max_retries=settings.PRICE_MAX_RETRIES,
            retry_backoff=settings.PRICE_RETRY_BACKOFF,
        )

    def classify(self, symbol: str) -> str:
        return ASSET_CLASS_CRYPTO if symbol.upper() in self._crypto_symbols else ASSET_CLASS_STOCK

    def source_for(self, symbol: str) -> PriceSource:
        if self.classify(symbol) == ASSET_CLASS_CRYPTO:
            return self._crypto_source
        return self._stock_source

    def get_price(self, symbol: str) -> Decimal:
        """
        Fetch the live price for a symbol.

        Raises:
            UpstreamUnavailable: provider unreachable after the retry
            PriceUnavailable: provider answered but has no price for the symbol
        """
        symbol = symbol.upper()
        source = self.source_for(symbol)

        last_error: Optional[UpstreamUnavailable] = None
        for attempt in range(self.max_retries + 1):
            try:
                price = source.fetch_price(symbol)
            except UpstreamUnavailable as e:
                last_error = e
                if attempt < self.max_retries:
                    logger.warning(
                        "Price fetch failed, retrying",
                        extra={'symbol': symbol, 'provider': source.name, 'attempt': attempt + 1, 'error': e.detail}
                    )
                    time.sleep(self.retry_backoff)
                continue

            if price is None:
                raise PriceUnavailable(symbol)
            return price

        logger.error(
            "Price provider unavailable",
            extra={'symbol': symbol, 'provider': source.name, 'error': last_error.detail if last_error else None}
        )
        raise UpstreamUnavailable(f"Price provider {source.name} unavailable for {symbol}")

    def get_quote(self, symbol: str) -> Quote:
        """
        Live quote with last-known fallback.

        Raises:
            PriceUnavailable: neither a live nor a last-known price exists
        """
        symbol = symbol.upper()
        source = self.source_for(symbol)
        try:
            price = self.get_price(symbol)
        except (UpstreamUnavailable, PriceUnavailable) as e:
            logger.warning(
                "Live price unavailable, trying last-known",
                extra={'symbol': symbol, 'error_code': e.error_code}
            )
            return self._last_known(symbol)

        quote = Quote(
            symbol=symbol,
            price=price,
            source=source.name,
            fetched_at=datetime.now(timezone.utc),
        )
        self._remember(quote)
        return quote

    def _remember(self, quote: Quote) -> None:
        if not self.remember_quotes:
            return
        try:
            PriceQuote(
                symbol=quote.symbol,
                price=quote.price,
                source=quote.source,
                fetched_at=quote.fetched_at,
            ).save()
        except PynamoDBException as e:
            logger.warning("Could not store last-known price", extra={'symbol': quote.symbol, 'error': str(e)})

    def _last_known(self, symbol: str) -> Quote:
        if not self.remember_quotes:
            raise PriceUnavailable(symbol)
        try:
            cached = PriceQuote.get(symbol)
        except DoesNotExist:
            raise PriceUnavailable(symbol)
        except PynamoDBException as e:
            logger.warning("Could not read last-known price", extra={'symbol': symbol, 'error': str(e)})
            raise PriceUnavailable(symbol)

        return Quote(
            symbol=symbol,
            price=cached.price,
            source=cached.source,
            fetched_at=cached.fetched_at,
            stale=True,
        )
