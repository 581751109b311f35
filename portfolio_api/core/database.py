from pynamodb.connection import Connection

from portfolio_api.core.config import settings
from portfolio_api.core.logging_config import get_logger
from portfolio_api.models.holding import Holding
from portfolio_api.models.price_quote import PriceQuote
from portfolio_api.models.transaction import Transaction
from portfolio_api.models.user import User

logger = get_logger(__name__)

ALL_MODELS = (User, Holding, Transaction, PriceQuote)


def get_connection() -> Connection:
    """Low-level connection used for multi-item DynamoDB transactions."""
    return Connection(
        region=settings.AWS_REGION,
        host=settings.DYNAMODB_ENDPOINT or None,
        connect_timeout_seconds=settings.DB_TIMEOUT_SECONDS,
        read_timeout_seconds=settings.DB_TIMEOUT_SECONDS,
        max_retry_attempts=settings.DB_MAX_RETRIES,
    )


def create_tables() -> None:
    """Create any missing tables (local development and tests)."""
    for model in ALL_MODELS:
        if not model.exists():
            logger.info("Creating table", extra={'table': model.Meta.table_name})
            model.create_table(billing_mode="PAY_PER_REQUEST", wait=True)
