from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from portfolio_api.services.portfolio_service import PortfolioService
from portfolio_api.services.prices.price_client import AssetPriceClient

from .context import RequestContext
from .exceptions import Unauthorized
from .logging_config import bind_log_context
from .security import decode_token


security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> RequestContext:
    """
    Dependency to get the current authenticated user from JWT token.

    Returns:
        RequestContext: Caller identity from the token payload

    Raises:
        Unauthorized: If the header is missing or the token is invalid or expired
    """
    if credentials is None:
        raise Unauthorized("Not authenticated")

    payload = decode_token(credentials.credentials)
    ctx = RequestContext(user_id=payload["sub"], email=payload.get("email"))
    # Scoped to this request's task; records from the route carry the caller
    bind_log_context(user_id=ctx.user_id)
    return ctx


@lru_cache
def get_price_client() -> AssetPriceClient:
    """Process-wide price client; swapped out in tests via dependency_overrides."""
    return AssetPriceClient.from_settings()


def get_portfolio_service(
    price_client: AssetPriceClient = Depends(get_price_client),
) -> PortfolioService:
    return PortfolioService(price_client=price_client)
