"""Shared test doubles: memory backends plus a CSV builder for upload fixtures."""

from __future__ import annotations

import csv
import io

from ipdr_ingest.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryFileStore,
    MemorySink,
)

__all__ = ["MemoryCacheBackend", "MemoryFileStore", "MemorySink", "make_csv", "session_rows"]

SESSION_HEADERS = [
    "msisdn", "session_start", "session_end", "client_ip", "server_ip",
    "server_port", "protocol", "uplink_volume", "downlink_volume",
]


def make_csv(headers: list[str], rows: list[dict[str, str]]) -> bytes:
    buffer = io.StringIO(newline="")
    writer = csv.DictWriter(buffer, fieldnames=headers, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def session_rows(count: int, missing_dst_ip: set[int] | None = None) -> list[dict[str, str]]:
    """``count`` well-formed session rows keyed by SESSION_HEADERS; listed indexes lack server_ip."""
    missing_dst_ip = missing_dst_ip or set()
    rows = []
    for i in range(count):
        rows.append({
            "msisdn": f"9198765{i:05d}",
            "session_start": f"2024-01-15T10:{i % 60:02d}:00Z",
            "session_end": f"2024-01-15T11:{i % 60:02d}:30Z",
            "client_ip": f"10.0.{i // 250}.{i % 250 + 1}",
            "server_ip": "" if i in missing_dst_ip else "142.250.190.46",
            "server_port": "443",
            "protocol": "tcp",
            "uplink_volume": str(1000 + i),
            "downlink_volume": str(20000 + i),
        })
    return rows
