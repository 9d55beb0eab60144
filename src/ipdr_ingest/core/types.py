"""Type aliases used across the ingest package."""

from __future__ import annotations

RawRecord = dict[str, str | None]  # short rows yield None cells
