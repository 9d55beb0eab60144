"""Tests for RunStatistics folding and summaries."""

from __future__ import annotations

from datetime import datetime, timezone

from ipdr_ingest.models.ipdr_record import CanonicalRecord, RecordOutcome, RunStatistics

RECORD = CanonicalRecord(a_party_id="1", start_time=datetime(2024, 1, 1, tzinfo=timezone.utc))


def test_record_returns_a_new_value():
    stats = RunStatistics()
    updated = stats.record(RecordOutcome(index=1, record=RECORD))
    assert stats.record_count == 0
    assert updated.record_count == 1


def test_rejections_keep_diagnostics_up_to_the_cap():
    stats = RunStatistics(max_diagnostics=2)
    for i in range(1, 5):
        stats = stats.record(RecordOutcome(index=i, errors=["bad"], raw_record={"x": str(i)}))
    assert stats.error_count == 4
    assert [d.record for d in stats.diagnostics] == [1, 2]
    assert stats.diagnostics[1].raw_record == {"x": "2"}


def test_success_rate_rounds_to_two_decimals():
    stats = RunStatistics(record_count=2, error_count=1)
    assert stats.success_rate == "66.67"


def test_summary_caps_the_sample():
    stats = RunStatistics()
    for i in range(1, 4):
        stats = stats.record(RecordOutcome(index=i, errors=["bad"]))
    summary = stats.summary(sample=1)
    assert summary["records_processed"] == 0
    assert summary["errors"] == 3
    assert summary["success_rate"] == "0.00"
    assert len(summary["validation_errors"]) == 1
