"""Unit tests for RedisCacheBackend using fakeredis."""

from __future__ import annotations

import json
from unittest.mock import patch

import fakeredis
import pytest

from ipdr_ingest.core.exceptions import CacheError
from ipdr_ingest.persistence.redis_backend import RedisCacheBackend


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def raw(fake_server):
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def backend(fake_server):
    with patch("redis.Redis", return_value=fakeredis.FakeRedis(server=fake_server, decode_responses=True)):
        return RedisCacheBackend(host="localhost", port=6379, db=0)


class TestGet:
    def test_returns_none_on_miss(self, backend):
        assert backend.get("nonexistent") is None

    def test_returns_stored_mapping_json(self, backend):
        data = {"a_party_id": "MSISDN", "src_ip": "Client IP"}
        backend.setex("mapping:abc", 300, json.dumps(data))
        assert json.loads(backend.get("mapping:abc")) == data


class TestSetex:
    def test_stores_value_under_prefix_with_ttl(self, backend, raw):
        backend.setex("mapping:k", 86400, "{}")
        assert raw.get("ipdr:mapping:k") == "{}"
        assert 0 < raw.ttl("ipdr:mapping:k") <= 86400

    def test_overwrites_existing_value(self, backend):
        backend.setex("k", 60, "old")
        backend.setex("k", 60, "new")
        assert backend.get("k") == "new"


class TestDelete:
    def test_removes_existing_key(self, backend):
        backend.setex("del_me", 60, "val")
        backend.delete("del_me")
        assert backend.get("del_me") is None

    def test_noop_on_missing_key(self, backend):
        backend.delete("never_existed")  # should not raise


class TestErrorWrapping:
    def _broken(self):
        b = RedisCacheBackend.__new__(RedisCacheBackend)
        b._prefix = "ipdr:"
        b._client = None  # will cause AttributeError -> CacheError
        return b

    def test_get_wraps_redis_error(self):
        with pytest.raises(CacheError):
            self._broken().get("k")

    def test_setex_wraps_redis_error(self):
        with pytest.raises(CacheError):
            self._broken().setex("k", 1, "v")
