import os
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from accessboard.core.errors import RateLimitError, app_error_handler
from accessboard.core.logging import get_request_id
from accessboard.core.ratelimit import (
    InMemoryRateLimiter,
    RateLimitConfig,
    build_rate_limit_config_from_env,
    rate_limit_key,
)

LIMITED_PREFIXES = ("/api/entries",)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token-bucket rate limiting middleware (opt-in via env)."""

    def __init__(self, app, *, config: Optional[RateLimitConfig] = None, env: Optional[dict] = None, time_fn: Optional[Callable[[], float]] = None):
        super().__init__(app)
        self.config = config or build_rate_limit_config_from_env(env or os.environ)
        self.limiter = InMemoryRateLimiter(self.config, time_fn=time_fn or time.monotonic)

    async def dispatch(self, request: Request, call_next):
        if not self.config.enabled or not request.url.path.startswith(LIMITED_PREFIXES):
            return await call_next(request)

        client_host = request.client.host if request.client else None
        key = rate_limit_key(request.headers, client_host, route=request.url.path)
        decision = self.limiter.consume(key)
        if decision.ok:
            response = await call_next(request)
            response.headers["X-RateLimit-Limit"] = str(self.config.capacity)
            response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
            return response

        rid = getattr(request.state, "request_id", None) or get_request_id()
        response = await app_error_handler(
            request,
            RateLimitError("Too many requests", request_id=rid),
        )
        response.headers["Retry-After"] = str(decision.retry_after or 1)
        response.headers["X-RateLimit-Limit"] = str(self.config.capacity)
        response.headers["X-RateLimit-Remaining"] = "0"
        return response
