from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portfolio_api.core.config import settings
from portfolio_api.core.database import create_tables
from portfolio_api.core.error_handlers import register_error_handlers
from portfolio_api.core.logging_config import get_logger, setup_logging
from portfolio_api.core.middleware import (
    SecurityHeadersMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware
)
from portfolio_api.routers import auth, portfolio, transactions

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DYNAMODB_CREATE_TABLES:
        create_tables()
    logger.info("Service started", extra={'service': settings.PROJECT_NAME})
    yield


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Portfolio tracking API with JWT authentication",
        docs_url=f"{settings.API_PREFIX}/docs",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    # CORS Middleware - Configure allowed origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=3600,  # Cache preflight requests for 1 hour
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        calls=settings.RATE_LIMIT_PER_MINUTE,
        period=60
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)

    for router in (auth.router, portfolio.router, transactions.router):
        app.include_router(router, prefix=settings.API_PREFIX)

    # Health check endpoint (no auth required)
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for monitoring"""
        return {"status": "healthy", "service": settings.PROJECT_NAME}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "portfolio_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True  # Disable in production
    )
