from pynamodb.models import Model
from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute
from datetime import datetime, timezone

from portfolio_api.models.base import DecimalAttribute, TableMeta

KIND_BUY = "buy"
KIND_SELL = "sell"
KIND_ADJUSTMENT = "adjustment"


class Transaction(Model):
    """Append-only ledger entry. Never updated after it is written."""
    class Meta(TableMeta):
        table_name = "transactions"

    user_id = UnicodeAttribute(hash_key=True)
    transaction_key = UnicodeAttribute(range_key=True)  # {ISO timestamp}#{transaction_id}

    transaction_id = UnicodeAttribute()
    symbol = UnicodeAttribute()
    quantity = DecimalAttribute()  # Signed: positive buys, negative sells
    price = DecimalAttribute()
    kind = UnicodeAttribute()  # buy / sell / adjustment
    created_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))

    @staticmethod
    def make_key(created_at: datetime, transaction_id: str) -> str:
        return f"{created_at.isoformat(timespec='microseconds')}#{transaction_id}"
