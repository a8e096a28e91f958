"""
限流中间件测试
"""

from collections import deque

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from app.core.config import settings
from app.core.rate_limit import RateLimitMiddleware


def _limited_app(**options) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, max_requests=2, window_seconds=60, **options)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


def _request(headers=None) -> Request:
    return Request({
        "type": "http", "method": "GET", "path": "/", "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("10.0.0.5", 5000),
    })


async def test_forwarded_header_ignored_without_trusted_proxy(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    transport = ASGITransport(app=_limited_app(trust_proxy=False))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        statuses = [
            (await ac.get("/ping", headers={"X-Forwarded-For": f"203.0.113.{n}"})).status_code
            for n in range(3)
        ]
    assert statuses == [200, 200, 429]


async def test_too_many_requests_response(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    transport = ASGITransport(app=_limited_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        await ac.get("/ping")
        await ac.get("/ping")
        response = await ac.get("/ping")
    assert response.status_code == 429
    assert response.json() == {"success": False, "message": "Too many requests, please try again later."}
    assert int(response.headers["Retry-After"]) >= 1


def test_client_ip_from_trusted_proxy():
    trusted = RateLimitMiddleware(FastAPI(), trust_proxy=True)
    direct = RateLimitMiddleware(FastAPI(), trust_proxy=False)
    request = _request({"X-Forwarded-For": "198.51.100.7, 10.0.0.1"})
    assert trusted._client_ip(request) == "198.51.100.7"
    assert direct._client_ip(request) == "10.0.0.5"


def test_sweep_drops_idle_clients():
    limiter = RateLimitMiddleware(FastAPI(), window_seconds=60)
    limiter._last_sweep = 0.0
    limiter._hits = {"idle": deque([10.0]), "active": deque([10.0, 95.0])}

    limiter._sweep(100.0)
    assert list(limiter._hits) == ["active"]
    assert list(limiter._hits["active"]) == [95.0]

    # 同一窗口期内不重复清理
    limiter._hits["late"] = deque([41.0])
    limiter._sweep(120.0)
    assert "late" in limiter._hits
