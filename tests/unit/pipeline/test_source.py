"""Tests for the CSV row source."""

from __future__ import annotations

import pytest

from ipdr_ingest.core.exceptions import SourceReadError
from ipdr_ingest.pipeline.source import CsvRowSource
from tests.fakes import MemoryFileStore


@pytest.fixture
def store():
    return MemoryFileStore()


def test_reads_headers_and_strips_bom(store):
    store.write("a.csv", "\ufeffMSISDN,Start Time\n1,2024-01-01\n".encode("utf-8"))
    assert CsvRowSource(store).read_headers("a.csv") == ["MSISDN", "Start Time"]


def test_rows_are_keyed_by_header(store):
    store.write("a.csv", b'msisdn,note\n123,"hello, world"\n456,\n')
    rows = list(CsvRowSource(store).rows("a.csv"))
    assert rows == [{"msisdn": "123", "note": "hello, world"}, {"msisdn": "456", "note": ""}]


def test_short_rows_yield_none_for_missing_cells(store):
    store.write("a.csv", b"a,b,c\n1,2\n")
    assert list(CsvRowSource(store).rows("a.csv")) == [{"a": "1", "b": "2", "c": None}]


def test_extra_cells_are_dropped(store):
    store.write("a.csv", b"a,b\n1,2,3\n")
    assert list(CsvRowSource(store).rows("a.csv")) == [{"a": "1", "b": "2"}]


def test_empty_file_has_no_headers(store):
    store.write("empty.csv", b"")
    assert CsvRowSource(store).read_headers("empty.csv") == []


def test_missing_file_is_a_source_error(store):
    with pytest.raises(SourceReadError):
        CsvRowSource(store).read_headers("nope.csv")
    with pytest.raises(SourceReadError):
        list(CsvRowSource(store).rows("nope.csv"))


def test_semicolon_delimiter(store):
    store.write("a.csv", b"a;b\n1;2\n")
    assert list(CsvRowSource(store, delimiter=";").rows("a.csv")) == [{"a": "1", "b": "2"}]
