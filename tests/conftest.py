"""
Shared pytest fixtures.

Provides a moto-backed DynamoDB with every table created, a price client
backed by static price sources, and an API test client.
"""

import os

# Set test environment variables before any imports that use them
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-0123456789abcdef")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.pop("DYNAMODB_ENDPOINT", None)
os.environ.pop("SECRETS_NAME", None)

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from helpers import StaticPriceSource


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def dynamodb(aws_credentials):
    """All application tables on a mocked DynamoDB."""
    with mock_aws():
        from portfolio_api.core.database import create_tables
        create_tables()
        yield


@pytest.fixture
def ctx():
    from portfolio_api.core.context import RequestContext
    return RequestContext(user_id="user-a", email="a@example.com")


@pytest.fixture
def other_ctx():
    from portfolio_api.core.context import RequestContext
    return RequestContext(user_id="user-b", email="b@example.com")


@pytest.fixture
def stock_source():
    return StaticPriceSource("stocks", {"AAPL": Decimal("190.50"), "SPY": Decimal("500")})


@pytest.fixture
def crypto_source():
    return StaticPriceSource("crypto", {"BTC": Decimal("120"), "ETH": Decimal("3000")})


@pytest.fixture
def price_client(dynamodb, stock_source, crypto_source):
    from portfolio_api.services.prices.price_client import AssetPriceClient
    return AssetPriceClient(
        stock_source=stock_source,
        crypto_source=crypto_source,
        crypto_symbols=["BTC", "ETH"],
        max_retries=1,
        retry_backoff=0,
    )


@pytest.fixture
def portfolio_service(price_client):
    from portfolio_api.services.portfolio_service import PortfolioService
    return PortfolioService(price_client=price_client)


@pytest.fixture
def client(dynamodb, price_client):
    """API client with the price client swapped for static sources."""
    from portfolio_api.core.dependencies import get_price_client
    from portfolio_api.main import create_app

    app = create_app()
    app.dependency_overrides[get_price_client] = lambda: price_client
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    """Register a user and return its Authorization header."""
    def _register(email="alice@example.com", password="correct-horse-battery"):
        response = client.post("/auth/register", json={"email": email, "password": password})
        assert response.status_code == 201
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _register
