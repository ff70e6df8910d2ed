"""
Cache-aside layer for dashboard responses.

Keys look like::

    dashboard:stats/summary:landing:OWNER:user-12:2025-01-01:2025-01-30
    dashboard:recent-tasks:workspace:MEMBER:workspace-3:viewer-41:all:2025-01-30:5f2c0a9e41b7

The trailing hash only appears when the endpoint has extra parameters
(filters, paging, search). Redis problems are logged and the request is
served uncached.
"""

import hashlib
import json
import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError

from app.core.config import settings
from app.schemas.dashboard import ViewType
from app.services.dashboard_scope import DashboardContext
from app.utils.date_range import DateRange, utc_today
from app.utils.redis import get_redis_client

logger = logging.getLogger(__name__)


class CacheKind(str, Enum):
    STANDARD = "standard"
    ANALYTICS = "analytics"
    SEARCH = "search"


def base_ttl(view_type: ViewType) -> int:
    return {
        ViewType.LANDING: settings.DASHBOARD_TTL_LANDING,
        ViewType.WORKSPACE: settings.DASHBOARD_TTL_WORKSPACE,
        ViewType.PROJECT: settings.DASHBOARD_TTL_PROJECT,
        ViewType.PROFILE: settings.DASHBOARD_TTL_PROFILE,
    }[view_type]


def select_ttl(
    view_type: ViewType,
    kind: CacheKind = CacheKind.STANDARD,
    date_range: Optional[DateRange] = None,
    today: Optional[date] = None,
) -> int:
    """
    Seconds a response may live in the cache.

    Search results are short-lived; closed historical ranges cannot change
    through new activity and get the long TTL.
    """
    today = today or utc_today()
    if kind == CacheKind.SEARCH:
        ttl = settings.DASHBOARD_TTL_SEARCH
    elif date_range is not None and date_range.end < today:
        ttl = settings.DASHBOARD_TTL_HISTORICAL
    else:
        ttl = base_ttl(view_type)
        if kind == CacheKind.ANALYTICS:
            ttl *= settings.DASHBOARD_ANALYTICS_TTL_MULTIPLIER
    return min(ttl, settings.DASHBOARD_TTL_MAX)


def hash_params(params: Dict[str, Any]) -> Optional[str]:
    """Stable short hash of the non-empty extra parameters"""
    cleaned = {k: v for k, v in params.items() if v is not None and v != ""}
    if not cleaned:
        return None
    encoded = json.dumps(jsonable_encoder(cleaned), sort_keys=True, separators=(",", ":"))
    return hashlib.md5(encoded.encode("utf-8")).hexdigest()[:12]


def build_cache_key(
    endpoint: str,
    context: DashboardContext,
    date_range: Optional[DateRange] = None,
    params: Optional[Dict[str, Any]] = None,
) -> str:
    parts = [
        settings.DASHBOARD_CACHE_PREFIX,
        endpoint,
        context.view_type.value,
        context.user_role.upper(),
        context.scope_key,
    ]
    if date_range is not None:
        parts.append(date_range.start.isoformat() if date_range.start else "all")
        parts.append(date_range.end.isoformat())
    params_hash = hash_params(params or {})
    if params_hash:
        parts.append(params_hash)
    return ":".join(parts)


class DashboardCache:
    def __init__(self, client=None, enabled: bool = settings.DASHBOARD_CACHE_ENABLED):
        self.client = client
        self.enabled = enabled and client is not None

    def get_json(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            raw = self.client.get(key)
        except RedisError as e:
            logger.warning("[CACHE] read failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("[CACHE] dropping undecodable entry %s", key)
            self.delete(key)
            return None

    def set_json(self, key: str, value: Any, ttl: int) -> bool:
        if not self.enabled:
            return False
        try:
            self.client.setex(key, ttl, json.dumps(jsonable_encoder(value)))
            return True
        except RedisError as e:
            logger.warning("[CACHE] write failed for %s: %s", key, e)
            return False

    def delete(self, key: str) -> None:
        if not self.enabled:
            return
        try:
            self.client.delete(key)
        except RedisError as e:
            logger.warning("[CACHE] delete failed for %s: %s", key, e)

    def delete_prefix(self, prefix: str) -> int:
        """Remove every key under ``prefix``; returns the number removed"""
        if not self.enabled:
            return 0
        removed = 0
        try:
            for key in self.client.scan_iter(match=f"{prefix}*"):
                removed += self.client.delete(key)
        except RedisError as e:
            logger.warning("[CACHE] prefix delete failed for %s: %s", prefix, e)
        return removed

    def fetch(self, key: str, ttl: int, compute: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        """
        Cache-aside lookup of a response body.

        ``compute`` returns ``{"data": ..., "_meta": {...}, ...}``; the cache
        block is stamped into ``_meta`` on both paths.
        """
        cached = self.get_json(key)
        if cached is not None:
            logger.debug("[CACHE] hit %s", key)
            cached.setdefault("_meta", {})["cache"] = {"hit": True, "key": key, "ttl": ttl}
            return cached

        logger.debug("[CACHE] miss %s", key)
        body = jsonable_encoder(compute())
        body.setdefault("_meta", {})
        body["_meta"].setdefault("updatedAt", datetime.now(timezone.utc).isoformat())
        self.set_json(key, body, ttl)
        body["_meta"]["cache"] = {"hit": False, "key": key, "ttl": ttl}
        return body


def get_dashboard_cache() -> DashboardCache:
    """FastAPI dependency returning the Redis-backed cache"""
    return DashboardCache(get_redis_client())
