"""Unit test fixtures shared across mapping, pipeline and service tests."""

from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from ipdr_ingest.mapping.catalog import SchemaCatalog
from ipdr_ingest.mapping.fuzzy import FuzzyMatcher
from ipdr_ingest.models.schema_mapping import ColumnMapping

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def catalog():
    return SchemaCatalog()


@pytest.fixture
def matcher(catalog):
    return FuzzyMatcher(catalog)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def session_mapping(catalog):
    """Confirmed mapping for files built with ``tests.fakes.SESSION_HEADERS``."""
    return ColumnMapping.from_dict(
        {
            "a_party_id": "msisdn",
            "start_time": "session_start",
            "end_time": "session_end",
            "src_ip": "client_ip",
            "dst_ip": "server_ip",
            "dst_port": "server_port",
            "protocol": "protocol",
            "bytes_up": "uplink_volume",
            "bytes_down": "downlink_volume",
        },
        catalog.names(),
    )
