import asyncio
import logging
import time
from typing import Dict, List, NamedTuple, Optional

from redis.exceptions import RedisError
from starlette.responses import JSONResponse

from app.constants.messages import MessageConstants
from app.core.config import settings
from app.utils.redis import get_async_redis_client

logger = logging.getLogger(__name__)

UNTHROTTLED_PATHS = ("/docs", "/redoc", "/openapi.json")


class RateLimitResult(NamedTuple):
    allowed: bool
    remaining: int
    reset_after: float


class RateLimiter:
    """
    Sliding window limiter over a Redis sorted set per client.

    Each admitted request adds its timestamp as a member; members older than
    the window are trimmed before counting.
    """

    def __init__(
        self,
        window_seconds: int = settings.THROTTLING_WINDOW_SECONDS,
        max_requests: int = settings.THROTTLING_MAX_REQUESTS_DASHBOARD,
        redis_key_prefix: str = settings.THROTTLING_REDIS_KEY_PREFIX,
        name: str = "dashboard",
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.redis_key_prefix = redis_key_prefix
        self.name = name

    @property
    def key_pattern(self) -> str:
        return f"{self.redis_key_prefix}:{self.name}:*"

    def key_for(self, client_id: str) -> str:
        return f"{self.redis_key_prefix}:{self.name}:{client_id}"

    async def is_allowed(self, client_id: str) -> RateLimitResult:
        try:
            client = await get_async_redis_client()
            key = self.key_for(client_id)
            now = time.time()

            await client.zremrangebyscore(key, "-inf", now - self.window_seconds)
            used = await client.zcard(key)

            if used >= self.max_requests:
                oldest = await client.zrange(key, 0, 0, withscores=True)
                reset_after = oldest[0][1] + self.window_seconds - now if oldest else self.window_seconds
                return RateLimitResult(False, 0, max(0.0, reset_after))

            await client.zadd(key, {str(now): now})
            await client.expire(key, self.window_seconds * 2)
            return RateLimitResult(True, self.max_requests - used - 1, self.window_seconds)
        except (RedisError, OSError) as e:
            # Redis down: let the request through
            logger.warning("Rate limiter unavailable for %s: %s", self.name, e)
            return RateLimitResult(True, self.max_requests - 1, self.window_seconds)

    async def cleanup_old_entries(self) -> None:
        """Trim members older than twice the window from every client key"""
        try:
            client = await get_async_redis_client()
            cutoff = time.time() - self.window_seconds * 2
            async for key in client.scan_iter(match=self.key_pattern):
                await client.zremrangebyscore(key, "-inf", cutoff)
        except (RedisError, OSError) as e:
            logger.error("Rate limit cleanup failed for %s: %s", self.name, e)

    def headers(self, result: RateLimitResult) -> List[List[bytes]]:
        return [
            [b"x-ratelimit-limit", str(self.max_requests).encode()],
            [b"x-ratelimit-remaining", str(result.remaining).encode()],
            [b"x-ratelimit-reset", str(int(time.time() + result.reset_after)).encode()],
        ]


class ThrottlingMiddleware:
    """
    ASGI middleware limiting requests per client IP.

    Requests fall into three classes with separate limits: health checks,
    the typeahead search endpoints and every other dashboard endpoint.
    """

    def __init__(self, app):
        self.app = app
        self.rate_limiters: Dict[str, RateLimiter] = {
            "health": RateLimiter(max_requests=settings.THROTTLING_MAX_REQUESTS_HEALTH, name="health"),
            "search": RateLimiter(max_requests=settings.THROTTLING_MAX_REQUESTS_SEARCH, name="search"),
            "dashboard": RateLimiter(max_requests=settings.THROTTLING_MAX_REQUESTS_DASHBOARD, name="dashboard"),
        }
        self._cleanup_task: Optional[asyncio.Task] = None

    async def _periodic_cleanup(self):
        while True:
            await asyncio.sleep(settings.THROTTLING_CLEANUP_INTERVAL)
            for limiter in self.rate_limiters.values():
                await limiter.cleanup_old_entries()

    def _get_client_ip_from_scope(self, scope) -> str:
        headers = dict(scope.get("headers", []))

        forwarded_for = headers.get(b"x-forwarded-for")
        if forwarded_for:
            return forwarded_for.decode("utf-8", errors="ignore").split(",")[0].strip()

        real_ip = headers.get(b"x-real-ip")
        if real_ip:
            return real_ip.decode("utf-8", errors="ignore").strip()

        client = scope.get("client")
        return client[0] if client else "unknown"

    def _get_endpoint_type(self, path: str) -> str:
        if path.startswith("/health"):
            return "health"
        if path.rsplit("/", 1)[-1].startswith("search-"):
            return "search"
        return "dashboard"

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not settings.THROTTLING_ENABLED:
            return await self.app(scope, receive, send)

        path = scope.get("path", "")
        if path in UNTHROTTLED_PATHS:
            return await self.app(scope, receive, send)

        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._periodic_cleanup())

        client_ip = self._get_client_ip_from_scope(scope)
        endpoint_type = self._get_endpoint_type(path)
        limiter = self.rate_limiters[endpoint_type]
        result = await limiter.is_allowed(client_ip)

        if not result.allowed:
            logger.warning(
                "Rate limit exceeded for %s on %s requests, reset in %.1fs",
                client_ip, endpoint_type, result.reset_after,
            )
            retry_after = int(result.reset_after)
            response = JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": MessageConstants.RATE_LIMIT_EXCEEDED,
                    "retry_after": retry_after,
                    "limit": limiter.max_requests,
                    "window_seconds": limiter.window_seconds,
                },
                headers={"retry-after": str(retry_after)},
            )
            response.raw_headers.extend(
                (name, value) for name, value in limiter.headers(result)
            )
            return await response(scope, receive, send)

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message["headers"] = list(message.get("headers", [])) + limiter.headers(result)
            await send(message)

        return await self.app(scope, receive, send_with_headers)
