import hashlib
import os
import time
from dataclasses import dataclass
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from routeready.core.errors import RateLimitError, app_error_handler
from routeready.core.metrics import ratelimit_block_total, ratelimit_buckets_active, normalize_path
from routeready.core.logging import get_request_id
from routeready.core.ratelimit import InMemoryRateLimiter, RateLimitConfig, build_rate_limit_config_from_env


@dataclass
class RoutePolicy:
    per_minute: int
    burst: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token-bucket rate limiting middleware (opt-in via env)."""

    def __init__(self, app, *, config: Optional[RateLimitConfig] = None, env: Optional[dict] = None, time_fn: Optional[Callable[[], float]] = None):
        super().__init__(app)
        self.config = config or build_rate_limit_config_from_env(env or os.environ)
        self.limiter = InMemoryRateLimiter(self.config, time_fn=time_fn or time.monotonic)
        if hasattr(app, "state"):
            setattr(app.state, "rate_limiter", self.limiter)

    def _policy_for_request(self, request: Request) -> Optional[RoutePolicy]:
        path = request.url.path

        # Checkout creation talks to Stripe; keep it tight
        if path.startswith("/api/billing/checkout"):
            per_minute = max(1, self.config.checkout_per_minute)
            return RoutePolicy(per_minute=per_minute, burst=per_minute)

        if path in {"/healthz", "/readyz", "/metrics"}:
            return None

        return RoutePolicy(per_minute=self.config.per_minute_default, burst=self.config.burst_default)

    def _client_key(self, request: Request, category: str) -> str:
        subject = None
        if category != "checkout":
            subject = request.headers.get("X-Session-Id")
            auth = request.headers.get("Authorization")
            if auth:
                # Digest only; the token itself is never stored
                subject = hashlib.sha256(auth.encode("utf-8")).hexdigest()[:16]
        if subject:
            return f"subject:{subject}:{category}"

        ip = request.headers.get("x-forwarded-for") or (request.client.host if request.client else "unknown")
        return f"ip:{ip}:{category}"

    async def dispatch(self, request: Request, call_next):
        if not self.config.enabled:
            return await call_next(request)

        policy = self._policy_for_request(request)
        if not policy:
            return await call_next(request)

        category = "checkout" if request.url.path.startswith("/api/billing/checkout") else (
            "mutation" if request.method.upper() in {"POST", "PUT", "PATCH", "DELETE"} else "read"
        )
        key = self._client_key(request, category)

        allowed = self.limiter.allow(key, per_minute=policy.per_minute, burst=policy.burst)
        ratelimit_buckets_active.set(len(self.limiter.buckets))
        if allowed:
            return await call_next(request)

        rid = getattr(request.state, "request_id", None) or get_request_id()
        ratelimit_block_total.inc(labels={"scope": normalize_path(request.url.path)})

        response = await app_error_handler(
            request,
            RateLimitError("Rate limit exceeded for this endpoint", request_id=rid),
        )
        retry_after = max(1, int(60 / max(1, policy.per_minute)))
        response.headers["Retry-After"] = str(retry_after)
        response.headers["X-RateLimit-Limit"] = str(policy.per_minute)
        response.headers["X-RateLimit-Remaining"] = "0"
        response.headers["X-RateLimit-Reset"] = "60"
        return response
