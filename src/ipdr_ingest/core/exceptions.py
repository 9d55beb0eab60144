"""IPDR ingest exception hierarchy."""

from __future__ import annotations

from typing import Any


class IpdrIngestError(Exception):
    """Base exception for all ingest errors."""


class MappingError(IpdrIngestError):
    """Column mapping could not be produced or used."""


class SuggestionError(MappingError):
    """The suggestion collaborator failed."""


class SuggestionParseError(SuggestionError):
    """The suggestion response was not a JSON object."""


class PreflightError(IpdrIngestError):
    """A job was rejected before any row was read."""

    def __init__(
        self, violations: list[str], available_headers: list[str] | None = None
    ) -> None:
        self.violations = violations
        self.available_headers = available_headers or []
        super().__init__("Preflight failed: " + "; ".join(violations))


class PipelineError(IpdrIngestError):
    """Error during pipeline execution."""


class SourceReadError(PipelineError):
    """Reading the input file failed."""


class SinkWriteError(PipelineError):
    """Writing to the bulk-load sink failed."""


class PipelineAbortedError(PipelineError):
    """Infrastructure failure aborted the pipeline."""

    def __init__(self, message: str, statistics: Any = None) -> None:
        self.statistics = statistics
        super().__init__(f"Pipeline aborted: {message}")


class CacheError(IpdrIngestError):
    """Redis cache operation failed."""


class FileStoreError(IpdrIngestError):
    """Upload store operation failed."""
