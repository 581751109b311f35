from pynamodb.models import Model
from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute
from datetime import datetime, timezone

from portfolio_api.models.base import TableMeta


class User(Model):
    """
    Registered user.
    Keyed by email so registration can enforce uniqueness with a conditional put.
    """
    class Meta(TableMeta):
        table_name = "users"

    email = UnicodeAttribute(hash_key=True)  # Stored lower-cased
    user_id = UnicodeAttribute()
    password_hash = UnicodeAttribute()
    created_at = UTCDateTimeAttribute(default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<User(user_id='{self.user_id}')>"
