"""
按客户端IP的滑动窗口限流中间件
"""

import time
from collections import deque
from typing import Deque, Dict

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings


class RateLimitMiddleware(BaseHTTPMiddleware):
    """内存滑动窗口：窗口期内超过上限返回429"""

    def __init__(self, app, max_requests: int = None, window_seconds: int = None, trust_proxy: bool = None):
        super().__init__(app)
        self.max_requests = max_requests or settings.RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self.trust_proxy = settings.RATE_LIMIT_TRUST_PROXY if trust_proxy is None else trust_proxy
        self.whitelist = {ip.strip() for ip in settings.RATE_LIMIT_WHITELIST if ip.strip()}
        self.exclude_paths = [p.strip() for p in settings.RATE_LIMIT_EXCLUDE_PATHS if p.strip()]
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = time.monotonic()

    def _client_ip(self, request: Request) -> str:
        if self.trust_proxy:
            forwarded = request.headers.get("X-Forwarded-For")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _is_excluded(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "/") for p in self.exclude_paths)

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        """每个窗口期清理一次不再活跃的IP"""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for ip in list(self._hits):
            self._prune(self._hits[ip], now)
            if not self._hits[ip]:
                del self._hits[ip]

    async def dispatch(self, request: Request, call_next):
        if not settings.RATE_LIMIT_ENABLED or self._is_excluded(request.url.path):
            return await call_next(request)

        client_ip = self._client_ip(request)
        if client_ip in self.whitelist:
            return await call_next(request)

        now = time.monotonic()
        self._sweep(now)
        hits = self._hits.setdefault(client_ip, deque())
        self._prune(hits, now)

        if len(hits) >= self.max_requests:
            logger.warning(f"🚫 触发限流: {client_ip} {request.method} {request.url.path}")
            retry_after = max(1, int(self.window_seconds - (now - hits[0])))
            return JSONResponse(
                status_code=429,
                content={"success": False, "message": "Too many requests, please try again later."},
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)
        return await call_next(request)
