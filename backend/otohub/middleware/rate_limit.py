# backend/otohub/middleware/rate_limit.py
"""
Sliding-window rate limiting behind a pluggable counter store.

InMemoryCounterStore serves a single process; RedisCounterStore shares
counters between instances using a sorted set per key.
"""
import asyncio
import logging
import time
import uuid
from collections import deque
from typing import Deque, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from redis import asyncio as aioredis

from otohub.core.errors import RateLimited

logger = logging.getLogger(__name__)


class CounterStore:
    """Records a hit and returns (hits in window, seconds until the oldest expires)"""

    async def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        raise NotImplementedError

    async def close(self):
        pass


class InMemoryCounterStore(CounterStore):
    def __init__(self):
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = asyncio.Lock()
        self._last_prune = time.monotonic()

    def tracked_keys(self) -> int:
        return len(self._hits)

    def _prune(self, cutoff: float) -> None:
        """Drop keys whose newest hit has left the window"""
        stale = [key for key, bucket in self._hits.items() if not bucket or bucket[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    async def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        now = time.monotonic()
        async with self._lock:
            if now - self._last_prune >= window_seconds:
                self._prune(now - window_seconds)
                self._last_prune = now
            bucket = self._hits.setdefault(key, deque())
            while bucket and bucket[0] <= now - window_seconds:
                bucket.popleft()
            bucket.append(now)
            reset = int(bucket[0] + window_seconds - now) + 1
            return len(bucket), reset


class RedisCounterStore(CounterStore):
    def __init__(self, url: str, prefix: str = "ratelimit"):
        self.redis = aioredis.from_url(url, decode_responses=True)
        self.prefix = prefix

    async def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        now = time.time()
        redis_key = f"{self.prefix}:{key}"
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(redis_key, 0, now - window_seconds)
            pipe.zadd(redis_key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
            pipe.zcard(redis_key)
            pipe.zrange(redis_key, 0, 0, withscores=True)
            pipe.expire(redis_key, window_seconds)
            _, _, count, oldest, _ = await pipe.execute()
        reset = int(oldest[0][1] + window_seconds - now) + 1 if oldest else window_seconds
        return count, reset

    async def close(self):
        await self.redis.aclose()


class RateLimiter:
    """Rate limiting service"""

    def __init__(self, store: CounterStore, limit: int, window: int = 60):
        self.store = store
        self.limit = limit
        self.window = window

    async def check(self, identifier: str) -> int:
        """Count a request; returns remaining budget or raises RateLimited."""
        count, reset = await self.store.hit(identifier, self.window)
        if count > self.limit:
            raise RateLimited(retry_after=reset, limit=self.limit)
        return self.limit - count


def build_counter_store(redis_url: Optional[str]) -> CounterStore:
    if redis_url:
        return RedisCounterStore(redis_url)
    return InMemoryCounterStore()


def rate_limit_middleware(limiter: RateLimiter, exempt_paths: Tuple[str, ...] = ("/health",)):
    """Build the HTTP middleware applying ``limiter`` per client IP."""

    async def middleware(request: Request, call_next):
        if request.url.path in exempt_paths:
            return await call_next(request)

        identifier = request.client.host if request.client else "anonymous"
        try:
            remaining = await limiter.check(identifier)
        except RateLimited as exc:
            logger.warning(f"Rate limit exceeded for {identifier}", extra={"path": request.url.path})
            body = exc.to_dict(path=request.url.path)
            return JSONResponse(
                status_code=exc.status_code,
                content=body,
                headers={"Retry-After": str(exc.retry_after), "X-RateLimit-Limit": str(limiter.limit), "X-RateLimit-Remaining": "0"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limiter.limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, remaining))
        return response

    return middleware
