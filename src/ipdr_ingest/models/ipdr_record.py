"""Canonical IPDR record and per-run statistics.

Every input row, whatever the source column naming, is either normalized into
a ``CanonicalRecord`` or rejected with a list of reasons. Outcomes are folded
into ``RunStatistics`` one at a time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CanonicalRecord(BaseModel):
    """Single IP session in canonical, bulk-loadable form."""

    model_config = {"frozen": True}

    # --- Identity ---
    a_party_id: str

    # --- Timing ---
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_ms: Optional[int] = None

    # --- Endpoints ---
    src_ip: Optional[str] = None
    src_port: Optional[int] = None
    nat_ip: Optional[str] = None
    nat_port: Optional[int] = None
    dst_ip: Optional[str] = None
    dst_port: Optional[int] = None

    # --- Service ---
    protocol: str = "TCP"
    service_label: str = "UNKNOWN"

    # --- Volume ---
    bytes_up: int = 0
    bytes_down: int = 0


class RecordDiagnostic(BaseModel):
    """Why a single row was rejected."""

    record: int  # 1-based row index in the data section of the file
    errors: list[str]
    raw_record: dict[str, Optional[str]] = Field(default_factory=dict)


class RecordOutcome(BaseModel):
    """Result of transforming one row: a record, or the reasons it was rejected."""

    index: int
    record: Optional[CanonicalRecord] = None
    errors: list[str] = Field(default_factory=list)
    raw_record: dict[str, Optional[str]] = Field(default_factory=dict)

    @property
    def accepted(self) -> bool:
        return self.record is not None


class RunStatistics(BaseModel):
    """Counters for one file's pipeline. Each ``record`` call returns a new value."""

    model_config = {"frozen": True}

    record_count: int = 0
    error_count: int = 0
    max_diagnostics: int = 100
    diagnostics: tuple[RecordDiagnostic, ...] = ()

    @property
    def total(self) -> int:
        return self.record_count + self.error_count

    @property
    def success_rate(self) -> str:
        """Accepted share of all rows seen, as a percentage with two decimals."""
        if self.total == 0:
            return "0.00"
        return f"{self.record_count / self.total * 100:.2f}"

    def record(self, outcome: RecordOutcome) -> RunStatistics:
        if outcome.accepted:
            return self.model_copy(update={"record_count": self.record_count + 1})

        diagnostics = self.diagnostics
        if len(diagnostics) < self.max_diagnostics:
            diagnostics = diagnostics + (
                RecordDiagnostic(
                    record=outcome.index,
                    errors=list(outcome.errors),
                    raw_record=dict(outcome.raw_record),
                ),
            )
        return self.model_copy(
            update={"error_count": self.error_count + 1, "diagnostics": diagnostics}
        )

    def summary(self, sample: int | None = None) -> dict:
        """User-visible result: counts, success rate and a capped diagnostic sample."""
        shown = self.diagnostics if sample is None else self.diagnostics[:sample]
        return {
            "records_processed": self.record_count,
            "errors": self.error_count,
            "success_rate": self.success_rate,
            "validation_errors": [d.model_dump() for d in shown],
        }
