"""Canonical record to delimited-text line encoding for the bulk-load sink."""

from __future__ import annotations

import csv
import math
from datetime import datetime, timezone
from typing import Any

from ipdr_ingest.models.ipdr_record import CanonicalRecord

# Column order is part of the sink contract.
COLUMNS: tuple[str, ...] = (
    "a_party_id",
    "start_time",
    "end_time",
    "duration_ms",
    "nat_ip",
    "nat_port",
    "src_ip",
    "src_port",
    "dst_ip",
    "dst_port",
    "protocol",
    "service_label",
    "bytes_up",
    "bytes_down",
)

_NEEDS_QUOTING = (",", '"', "\n")


def format_timestamp(moment: datetime) -> str:
    """``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if isinstance(value, datetime):
        return format_timestamp(value)
    text = str(value)
    if any(marker in text for marker in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


class CanonicalEncoder:
    """Serializes canonical records to newline-terminated delimited lines."""

    def encode(self, record: CanonicalRecord) -> str:
        return ",".join(format_value(getattr(record, column)) for column in COLUMNS) + "\n"

    @staticmethod
    def decode(line: str) -> list[str]:
        """Split one encoded line back into its field values."""
        return next(csv.reader([line.rstrip("\n")]))
