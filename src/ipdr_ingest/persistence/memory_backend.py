"""In-memory backends for unit tests: dict- and list-backed fakes."""

from __future__ import annotations

import io
from typing import TextIO

from ipdr_ingest.core.exceptions import FileStoreError, SinkWriteError


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value
        self.ttls[key] = ttl

    def delete(self, key: str) -> None:
        self._store.pop(key, None)
        self.ttls.pop(key, None)


class MemoryFileStore:
    """Dict-backed IFileStore for unit tests."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}
        self.deleted: list[str] = []

    def exists(self, path: str) -> bool:
        return path in self._files

    def open_text(self, path: str) -> TextIO:
        try:
            data = self._files[path]
        except KeyError as exc:
            raise FileStoreError(f"No such file: {path!r}") from exc
        return io.StringIO(data.decode("utf-8-sig"), newline="")

    def write(self, path: str, data: bytes) -> str:
        self._files[path] = data
        return path

    def delete(self, path: str) -> None:
        self._files.pop(path, None)
        self.deleted.append(path)


class MemorySink:
    """List-backed IRecordSink; ``fail_after`` simulates a sink outage."""

    def __init__(self, fail_after: int | None = None) -> None:
        self.name = ""
        self.lines: list[str] = []
        self.closed = False
        self.aborted = False
        self.batches = 0
        self._fail_after = fail_after

    def open(self, name: str) -> None:
        self.name = name

    def write_lines(self, lines: list[str]) -> None:
        if self._fail_after is not None and len(self.lines) + len(lines) > self._fail_after:
            raise SinkWriteError(f"Sink unavailable after {self._fail_after} lines")
        self.lines.extend(lines)
        self.batches += 1

    def close(self) -> str:
        self.closed = True
        return f"memory://{self.name}"

    def abort(self) -> None:
        self.aborted = True
