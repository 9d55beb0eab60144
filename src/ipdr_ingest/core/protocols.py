"""Protocol interfaces for the ingest collaborators.

All seams between the mapping engine, the pipeline and infrastructure use
these Protocols: structural typing, no inheritance required, easy to fake
in tests with the memory backends.
"""

from __future__ import annotations

from typing import Any, Protocol, TextIO, runtime_checkable


# ---------------------------------------------------------------------------
# Model Provider
# ---------------------------------------------------------------------------

@runtime_checkable
class IModelProvider(Protocol):
    """Suggestion collaborator: returns raw text for a chat prompt."""

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str: ...


# ---------------------------------------------------------------------------
# Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# File Store (uploaded input files)
# ---------------------------------------------------------------------------

@runtime_checkable
class IFileStore(Protocol):
    """Storage for uploaded input files."""

    def exists(self, path: str) -> bool: ...

    def open_text(self, path: str) -> TextIO: ...

    def write(self, path: str, data: bytes) -> str: ...

    def delete(self, path: str) -> None: ...


# ---------------------------------------------------------------------------
# Record Sink (bulk-load consumer)
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecordSink(Protocol):
    """Line-oriented bulk-load consumer of canonical delimited text."""

    def open(self, name: str) -> None: ...

    def write_lines(self, lines: list[str]) -> None: ...

    def close(self) -> str: ...

    def abort(self) -> None: ...
