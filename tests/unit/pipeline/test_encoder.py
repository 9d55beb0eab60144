"""Tests for canonical delimited-line encoding."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ipdr_ingest.models.ipdr_record import CanonicalRecord
from ipdr_ingest.pipeline.encoder import COLUMNS, CanonicalEncoder, format_timestamp, format_value

START = datetime(2024, 1, 15, 10, 0, 0, 123456, tzinfo=timezone.utc)


def _record(**overrides):
    values = {
        "a_party_id": "919876500000",
        "start_time": START,
        "end_time": START + timedelta(seconds=30),
        "duration_ms": 30000,
        "src_ip": "10.0.0.1",
        "src_port": 51000,
        "nat_ip": "203.0.113.7",
        "nat_port": 40000,
        "dst_ip": "142.250.190.46",
        "dst_port": 443,
        "protocol": "TCP",
        "service_label": "HTTPS/WEB",
        "bytes_up": 1000,
        "bytes_down": 20000,
    }
    values.update(overrides)
    return CanonicalRecord(**values)


def test_column_order_is_fixed():
    assert COLUMNS == (
        "a_party_id", "start_time", "end_time", "duration_ms", "nat_ip", "nat_port",
        "src_ip", "src_port", "dst_ip", "dst_port", "protocol", "service_label",
        "bytes_up", "bytes_down",
    )


def test_encodes_full_record():
    line = CanonicalEncoder().encode(_record())
    assert line == (
        "919876500000,2024-01-15T10:00:00.123Z,2024-01-15T10:00:30.123Z,30000,"
        "203.0.113.7,40000,10.0.0.1,51000,142.250.190.46,443,TCP,HTTPS/WEB,1000,20000\n"
    )


def test_missing_values_become_empty_fields():
    line = CanonicalEncoder().encode(
        _record(end_time=None, duration_ms=None, nat_ip=None, nat_port=None, src_port=None)
    )
    fields = CanonicalEncoder.decode(line)
    assert len(fields) == 14
    assert fields[2] == fields[3] == fields[4] == fields[5] == fields[7] == ""


def test_quotes_only_when_needed():
    assert format_value('a,"b"') == '"a,""b"""'
    assert format_value("line\nbreak") == '"line\nbreak"'
    assert format_value('say "hi"') == '"say ""hi"""'
    assert format_value("plain") == "plain"


def test_nan_and_none_are_empty():
    assert format_value(float("nan")) == ""
    assert format_value(None) == ""
    assert format_value(0) == "0"


def test_timestamps_are_utc_with_milliseconds():
    eastern = timezone(timedelta(hours=-5))
    assert format_timestamp(datetime(2024, 1, 15, 5, 0, tzinfo=eastern)) == "2024-01-15T10:00:00.000Z"
    assert format_timestamp(datetime(2024, 1, 15, 10, 0)) == "2024-01-15T10:00:00.000Z"


def test_awkward_identifier_survives_round_trip():
    encoder = CanonicalEncoder()
    line = encoder.encode(_record(a_party_id='a,"b"'))
    assert line.startswith('"a,""b""",')
    assert encoder.decode(line)[0] == 'a,"b"'
