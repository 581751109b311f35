from pynamodb.models import Model
from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute
from datetime import datetime, timezone

from portfolio_api.models.base import DecimalAttribute, TableMeta


class PriceQuote(Model):
    """
    Last successfully fetched price per symbol.
    Read only when a live fetch fails.
    """
    class Meta(TableMeta):
        table_name = "price_quotes"

    symbol = UnicodeAttribute(hash_key=True)
    price = DecimalAttribute()
    source = UnicodeAttribute()
    fetched_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<PriceQuote(symbol='{self.symbol}', price={self.price})>"
