"""Unit tests for dashboard cache keys, TTLs and the cache-aside fetch"""

from datetime import date

import pytest

from app.core.config import settings
from app.schemas.dashboard import ViewType
from app.services.dashboard_cache import (
    CacheKind,
    DashboardCache,
    build_cache_key,
    hash_params,
    select_ttl,
)
from app.services.dashboard_scope import DashboardContext
from app.utils.date_range import resolve_date_range
from tests.factories import UserFactory

TODAY = date(2025, 3, 15)


@pytest.fixture
def owner_context(db_session):
    owner = UserFactory.create(db_session)
    return DashboardContext(view_type=ViewType.WORKSPACE, user=owner, user_role="owner", workspace_id=3)


class TestCacheKeys:
    """Tests for build_cache_key"""

    def test_key_layout(self, owner_context):
        date_range = resolve_date_range(start_date="2025-01-01", end_date="2025-01-30", today=TODAY)

        key = build_cache_key("stats/summary", owner_context, date_range)

        assert key == (
            f"{settings.DASHBOARD_CACHE_PREFIX}:stats/summary:workspace:OWNER:"
            f"workspace-3:viewer-{owner_context.user_id}:2025-01-01:2025-01-30"
        )

    def test_all_time_range_marker(self, owner_context):
        key = build_cache_key("task-statistics", owner_context, resolve_date_range("allTime", today=TODAY))

        assert key.endswith(f":workspace-3:viewer-{owner_context.user_id}:all:2025-03-15")

    def test_params_are_hashed(self, owner_context):
        """Test that extra parameters add a stable hash segment"""
        first = build_cache_key("recent-tasks", owner_context, params={"page": 1, "search": "api"})
        same = build_cache_key("recent-tasks", owner_context, params={"search": "api", "page": 1})
        other = build_cache_key("recent-tasks", owner_context, params={"page": 2, "search": "api"})

        assert first == same
        assert first != other
        assert len(first.rsplit(":", 1)[1]) == 12

    def test_empty_params_add_nothing(self, owner_context):
        assert hash_params({"search": None, "cursor": ""}) is None
        assert build_cache_key("search-tags", owner_context, params={"search": None}).endswith(
            f":workspace-3:viewer-{owner_context.user_id}"
        )

    def test_role_separates_entries(self, owner_context):
        """Test that users of different roles never share an entry"""
        member_context = DashboardContext(
            view_type=ViewType.WORKSPACE, user=owner_context.user, user_role="MEMBER", workspace_id=3
        )

        assert build_cache_key("stats/summary", owner_context) != build_cache_key("stats/summary", member_context)

    @pytest.mark.parametrize("view_type", [ViewType.WORKSPACE, ViewType.PROJECT])
    def test_viewers_with_same_role_get_separate_entries(self, db_session, view_type):
        first = UserFactory.create(db_session)
        second = UserFactory.create(db_session)
        contexts = [
            DashboardContext(view_type=view_type, user=user, user_role="MEMBER", workspace_id=3, project_id=8)
            for user in (first, second)
        ]

        keys = {build_cache_key("recent-tasks", context) for context in contexts}

        assert len(keys) == 2
        assert any(f":viewer-{first.id}" in key for key in keys)


class TestTtlSelection:
    """Tests for select_ttl"""

    def test_view_base_ttls(self):
        assert select_ttl(ViewType.LANDING, today=TODAY) == settings.DASHBOARD_TTL_LANDING
        assert select_ttl(ViewType.PROJECT, today=TODAY) == settings.DASHBOARD_TTL_PROJECT

    def test_analytics_multiplier(self):
        expected = min(
            settings.DASHBOARD_TTL_WORKSPACE * settings.DASHBOARD_ANALYTICS_TTL_MULTIPLIER,
            settings.DASHBOARD_TTL_MAX,
        )
        assert select_ttl(ViewType.WORKSPACE, CacheKind.ANALYTICS, today=TODAY) == expected

    def test_search_is_short_lived(self):
        assert select_ttl(ViewType.PROFILE, CacheKind.SEARCH, today=TODAY) == settings.DASHBOARD_TTL_SEARCH

    def test_closed_range_gets_historical_ttl(self):
        """Test that a range ending before today is cached longer"""
        past = resolve_date_range(start_date="2024-01-01", end_date="2024-01-31", today=TODAY)
        current = resolve_date_range(today=TODAY)

        assert select_ttl(ViewType.WORKSPACE, date_range=past, today=TODAY) == min(
            settings.DASHBOARD_TTL_HISTORICAL, settings.DASHBOARD_TTL_MAX
        )
        assert select_ttl(ViewType.WORKSPACE, date_range=current, today=TODAY) == settings.DASHBOARD_TTL_WORKSPACE


class TestDashboardCache:
    """Tests for DashboardCache"""

    def test_miss_then_hit(self, dashboard_cache, redis_client):
        calls = []

        def compute():
            calls.append(1)
            return {"data": {"value": 7}, "_meta": {}}

        first = dashboard_cache.fetch("dashboard:test", 60, compute)
        second = dashboard_cache.fetch("dashboard:test", 60, compute)

        assert len(calls) == 1
        assert first["_meta"]["cache"] == {"hit": False, "key": "dashboard:test", "ttl": 60}
        assert second["_meta"]["cache"]["hit"] is True
        assert second["data"] == {"value": 7}
        assert second["_meta"]["updatedAt"] == first["_meta"]["updatedAt"]
        assert 0 < redis_client.ttl("dashboard:test") <= 60

    def test_redis_failure_serves_uncached(self, dashboard_cache, redis_client):
        """Test that a Redis outage falls back to computing the response"""
        redis_client.fail = True

        result = dashboard_cache.fetch("dashboard:test", 60, lambda: {"data": [1, 2], "_meta": {}})

        assert result["data"] == [1, 2]
        assert result["_meta"]["cache"]["hit"] is False

    def test_undecodable_entry_is_dropped(self, dashboard_cache, redis_client):
        redis_client.set("dashboard:broken", "{not json")

        result = dashboard_cache.fetch("dashboard:broken", 60, lambda: {"data": 1})

        assert result["data"] == 1
        assert result["_meta"]["cache"]["hit"] is False

    def test_disabled_cache_never_touches_redis(self, redis_client):
        cache = DashboardCache(redis_client, enabled=False)

        cache.fetch("dashboard:test", 60, lambda: {"data": 1})

        assert redis_client.calls == {}

    def test_delete_prefix(self, dashboard_cache, redis_client):
        dashboard_cache.set_json("dashboard:a:1", {"x": 1}, 60)
        dashboard_cache.set_json("dashboard:a:2", {"x": 2}, 60)
        dashboard_cache.set_json("dashboard:b:1", {"x": 3}, 60)

        removed = dashboard_cache.delete_prefix("dashboard:a:")

        assert removed == 2
        assert dashboard_cache.get_json("dashboard:b:1") == {"x": 3}
        assert dashboard_cache.get_json("dashboard:a:1") is None
