from decimal import Decimal

from pynamodb.attributes import Attribute
from pynamodb.constants import NUMBER

from portfolio_api.core.config import settings


class TableMeta:
    """Connection settings shared by every table."""
    region = settings.AWS_REGION
    host = settings.DYNAMODB_ENDPOINT or None
    connect_timeout_seconds = settings.DB_TIMEOUT_SECONDS
    read_timeout_seconds = settings.DB_TIMEOUT_SECONDS
    max_retry_attempts = settings.DB_MAX_RETRIES


class DecimalAttribute(Attribute[Decimal]):
    """DynamoDB number stored and loaded as an exact Decimal."""
    attr_type = NUMBER

    def serialize(self, value):
        return format(Decimal(value), "f")

    def deserialize(self, value):
        return Decimal(value)
