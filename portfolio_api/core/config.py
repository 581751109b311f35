import json
import os
from typing import List, Optional

import boto3
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_secrets(secret_name: Optional[str], region: str) -> dict:
    """Fetch sensitive config from AWS Secrets Manager."""
    if not secret_name:
        return {}
    client = boto3.client("secretsmanager", region_name=region)
    response = client.get_secret_value(SecretId=secret_name)
    return json.loads(response["SecretString"])


_secrets = _load_secrets(
    os.getenv("SECRETS_NAME"),
    os.getenv("AWS_REGION", "us-east-1"),
)


class Settings(BaseSettings):
    """Application settings and configuration"""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",
    )

    # API Settings
    API_PREFIX: str = ""
    PROJECT_NAME: str = "Portfolio Tracker API"

    # Auth
    JWT_SECRET_KEY: str = _secrets.get("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "portfolio-tracker"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    # AWS Settings
    AWS_REGION: str = "us-east-1"

    # Database
    DYNAMODB_ENDPOINT: Optional[str] = None  # For local development
    DYNAMODB_CREATE_TABLES: bool = False
    DB_TIMEOUT_SECONDS: float = 5.0
    DB_MAX_RETRIES: int = 3

    # Market data
    FINNHUB_API_KEY: str = _secrets.get("FINNHUB_API_KEY", "")
    FINNHUB_BASE_URL: str = "https://finnhub.io/api/v1"
    BINANCE_BASE_URL: str = "https://api.binance.com"
    BINANCE_QUOTE_ASSET: str = "USDT"
    CRYPTO_SYMBOLS: List[str] = [
        "BTC", "ETH", "SOL", "XRP", "ADA", "DOGE", "DOT", "LTC", "BNB", "AVAX",
    ]
    PRICE_TIMEOUT_SECONDS: float = 5.0
    PRICE_MAX_RETRIES: int = 1
    PRICE_RETRY_BACKOFF: float = 0.25

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def secret_key_present(cls, v: str) -> str:
        if len(v) < 16:
            raise ValueError("JWT_SECRET_KEY must be set to at least 16 characters")
        return v

    @field_validator("CRYPTO_SYMBOLS")
    @classmethod
    def upper_symbols(cls, v: List[str]) -> List[str]:
        return [s.strip().upper() for s in v if s.strip()]


settings = Settings()
