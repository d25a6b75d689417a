"""Tests for core infrastructure helpers."""

import pytest

from src.config.settings import Settings
from src.core.context import (
    clear_context,
    get_context,
    set_request_id,
    set_user_id,
    trace_id_from_headers,
)
from src.core.database.async_cassandra import keyspace_cql
from src.core.logging import MAX_LOGGED_TEXT, scrub_event
from src.core.redis import post_lock_name, posts_cache_pattern


class TestContext:
    def test_binds_and_clears(self) -> None:
        request_id = set_request_id()
        set_user_id("cuser1")

        assert get_context() == {"request_id": request_id, "user_id": "cuser1"}

        clear_context()
        assert get_context() == {}

    def test_reuses_caller_request_id(self) -> None:
        assert set_request_id("req-1") == "req-1"
        clear_context()

    @pytest.mark.parametrize(
        ("headers", "expected"),
        [
            ({"x-trace-id": "abc"}, "abc"),
            ({"traceparent": "00-4bf92f3577b34da6-00f067aa0ba902b7-01"}, "4bf92f3577b34da6"),
            ({"traceparent": "garbage"}, None),
            ({}, None),
        ],
    )
    def test_trace_id_from_headers(self, headers, expected) -> None:
        assert trace_id_from_headers(headers) == expected


class TestScrubEvent:
    def test_masks_credentials(self) -> None:
        event = scrub_event(
            None,
            "info",
            {"event": "login", "access_token": "eyJhbGciOiJIUzI1NiJ9", "secret": "x"},
        )

        assert event["access_token"] == "ey***"
        assert event["secret"] == "***"
        assert event["event"] == "login"

    def test_masks_nested_headers(self) -> None:
        event = scrub_event(None, "info", {"headers": {"Authorization": "Bearer abcdefgh"}})

        assert event["headers"]["Authorization"] == "Be***"

    def test_clips_long_text(self) -> None:
        content = "x" * (MAX_LOGGED_TEXT + 100)

        event = scrub_event(None, "info", {"content": content, "count": 3})

        assert event["content"].endswith(f"({len(content)} chars)")
        assert event["count"] == 3


class TestKeyspaceCql:
    def test_simple_strategy_by_default(self) -> None:
        cql = keyspace_cql(Settings(cassandra_keyspace="forum_ks"))

        assert "CREATE KEYSPACE IF NOT EXISTS forum_ks" in cql
        assert "'class': 'SimpleStrategy', 'replication_factor': 1" in cql

    def test_network_topology_with_datacenter(self) -> None:
        cql = keyspace_cql(
            Settings(cassandra_datacenter="dc1", cassandra_replication_factor=3)
        )

        assert "'class': 'NetworkTopologyStrategy', 'dc1': 3" in cql


class TestRedisKeys:
    def test_lock_name(self) -> None:
        assert post_lock_name("cpost1") == "forum:post:cpost1:lock"

    def test_cache_pattern(self) -> None:
        assert posts_cache_pattern() == "forum:posts:*"
