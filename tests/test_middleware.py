from datetime import datetime, timedelta

from fastapi import FastAPI
from fastapi.testclient import TestClient

from portfolio_api.core.middleware import RateLimitMiddleware, SecurityHeadersMiddleware


def _app(calls):
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RateLimitMiddleware, calls=calls, period=60)

    @app.get("/ping")
    def ping():
        return {"ok": True}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


def test_rate_limit_rejects_after_quota():
    client = TestClient(_app(calls=2))

    first = client.get("/ping")
    second = client.get("/ping")
    third = client.get("/ping")

    assert first.status_code == second.status_code == 200
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert third.status_code == 429
    assert third.json()["error_code"] == "RATE_LIMIT_EXCEEDED"
    assert third.headers["Retry-After"] == "60"


def test_health_is_not_rate_limited():
    client = TestClient(_app(calls=1))

    responses = [client.get("/health") for _ in range(3)]

    assert all(r.status_code == 200 for r in responses)


def test_security_headers_on_every_response():
    client = TestClient(_app(calls=10))

    response = client.get("/ping")

    assert response.headers["Content-Security-Policy"] == "default-src 'none'; frame-ancestors 'none'"
    assert response.headers["Cache-Control"] == "no-store"


def test_idle_clients_are_forgotten():
    limiter = RateLimitMiddleware(FastAPI(), calls=5, period=60)
    now = datetime.now()
    limiter.clients["10.0.0.1"] = [now - timedelta(seconds=120)]
    limiter.clients["10.0.0.2"] = []
    limiter.clients["10.0.0.3"] = [now - timedelta(seconds=5)]

    limiter._sweep(now)

    assert set(limiter.clients) == {"10.0.0.3"}


def test_idle_clients_swept_on_next_request_after_window():
    app = FastAPI()

    @app.get("/ping")
    def ping():
        return {"ok": True}

    limiter = RateLimitMiddleware(app, calls=5, period=60)
    limiter.clients["10.0.0.1"] = [datetime.now() - timedelta(seconds=120)]
    limiter._last_sweep = datetime.now() - timedelta(seconds=61)
    client = TestClient(limiter)

    client.get("/ping")

    assert "10.0.0.1" not in limiter.clients
    assert list(limiter.clients) == ["testclient"]
