from pynamodb.models import Model
from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute, VersionAttribute
from datetime import datetime, timezone

from portfolio_api.models.base import DecimalAttribute, TableMeta


class Holding(Model):
    """
    Current quantity of one asset owned by a user.
    Materialised from the transaction ledger; `version` guards concurrent writers.
    """
    class Meta(TableMeta):
        table_name = "holdings"

    user_id = UnicodeAttribute(hash_key=True)
    symbol = UnicodeAttribute(range_key=True)

    quantity = DecimalAttribute()
    average_cost = DecimalAttribute(null=True)
    version = VersionAttribute()
    updated_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Holding(user_id='{self.user_id}', symbol='{self.symbol}', quantity={self.quantity})>"
