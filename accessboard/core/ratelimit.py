"""
Token-bucket rate limiter.

- In-memory, keyed by route+client ip.
- Injected into the HTTP layer only; the analytics core never sees it.
- Defaults are safe (disabled unless enabled via env/settings).
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional


@dataclass
class RateLimitConfig:
    enabled: bool = False
    per_minute: int = 60

    @property
    def capacity(self) -> int:
        # burst equals the per-minute budget
        return max(1, self.per_minute)

    @property
    def refill_per_sec(self) -> float:
        return self.per_minute / 60.0


@dataclass(frozen=True)
class RateLimitDecision:
    ok: bool
    remaining: int = 0
    retry_after: Optional[int] = None


class TokenBucket:
    def __init__(self, capacity: int, refill_rate_per_sec: float, time_fn: Callable[[], float] = time.monotonic):
        self.capacity = max(1, capacity)
        self.tokens = float(self.capacity)
        self.refill_rate = max(0.0, refill_rate_per_sec)
        self.time_fn = time_fn
        self.last_refill = self.time_fn()

    def _refill(self) -> None:
        now = self.time_fn()
        elapsed = now - self.last_refill
        if elapsed <= 0:
            return
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, cost: float = 1.0) -> RateLimitDecision:
        self._refill()
        if self.tokens >= cost:
            self.tokens -= cost
            return RateLimitDecision(ok=True, remaining=int(self.tokens))
        if self.refill_rate <= 0:
            return RateLimitDecision(ok=False, retry_after=60)
        missing = cost - self.tokens
        # 1 / (1 / 60) is not exactly 60 in floating point
        wait = round(missing / self.refill_rate, 6)
        return RateLimitDecision(ok=False, retry_after=max(1, math.ceil(wait)))


class InMemoryRateLimiter:
    def __init__(self, config: RateLimitConfig, time_fn: Callable[[], float] = time.monotonic):
        self.config = config
        self.time_fn = time_fn
        self.buckets: Dict[str, TokenBucket] = {}

    def _bucket_for(self, key: str) -> TokenBucket:
        if key not in self.buckets:
            self.buckets[key] = TokenBucket(
                capacity=self.config.capacity,
                refill_rate_per_sec=self.config.refill_per_sec,
                time_fn=self.time_fn,
            )
        return self.buckets[key]

    def consume(self, key: str) -> RateLimitDecision:
        return self._bucket_for(key).consume()


def rate_limit_key(headers: Mapping[str, str], client_host: Optional[str], route: str = "api") -> str:
    ip = headers.get("x-forwarded-for") or headers.get("x-real-ip") or ""
    if "," in ip:
        ip = ip.split(",")[0].strip()
    if not ip:
        ip = client_host or "unknown"
    return f"{route}:{ip}"


def build_rate_limit_config_from_env(env: Mapping[str, str]) -> RateLimitConfig:
    def _bool(name: str, default: bool) -> bool:
        raw = env.get(name)
        if raw is None:
            return default
        return str(raw).lower() in {"1", "true", "yes", "on"}

    def _int(name: str, default: int) -> int:
        raw = env.get(name)
        if raw is None:
            return default
        try:
            value = int(raw)
            return value if value > 0 else default
        except (TypeError, ValueError):
            return default

    return RateLimitConfig(
        enabled=_bool("RATE_LIMIT_ENABLED", False),
        per_minute=_int("RATE_LIMIT_PER_MIN", 60),
    )
