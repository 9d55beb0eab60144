"""Local filesystem upload store and staging-file sink."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TextIO

from ipdr_ingest.core.exceptions import FileStoreError, SinkWriteError


class LocalFileStore:
    """IFileStore rooted at a directory; paths are relative to the root."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        resolved = (self._root / path).resolve()
        if not resolved.is_relative_to(self._root):
            raise FileStoreError(f"Path {path!r} escapes upload directory")
        return resolved

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except FileStoreError:
            return False

    def open_text(self, path: str) -> TextIO:
        try:
            return self._resolve(path).open("r", encoding="utf-8-sig", newline="")
        except OSError as exc:
            raise FileStoreError(f"Open failed for {path!r}: {exc}") from exc

    def write(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise FileStoreError(f"Write failed for {path!r}: {exc}") from exc
        return path

    def delete(self, path: str) -> None:
        try:
            self._resolve(path).unlink(missing_ok=True)
        except OSError as exc:
            raise FileStoreError(f"Delete failed for {path!r}: {exc}") from exc


class LocalFileSink:
    """IRecordSink writing canonical lines to ``<output_dir>/<name>.csv``.

    Lines go to a ``.part`` file that is renamed into place on close, so a
    bulk loader watching the directory only sees complete files.
    """

    def __init__(self, output_dir: str | Path) -> None:
        self._output_dir = Path(output_dir)
        self._handle: TextIO | None = None
        self._partial: Path | None = None
        self._final: Path | None = None

    def open(self, name: str) -> None:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._final = self._output_dir / f"{name}.csv"
        self._partial = self._output_dir / f"{name}.csv.part"
        try:
            self._handle = self._partial.open("w", encoding="utf-8", newline="")
        except OSError as exc:
            raise SinkWriteError(f"Cannot open sink {self._partial}: {exc}") from exc

    def write_lines(self, lines: list[str]) -> None:
        if self._handle is None:
            raise SinkWriteError("Sink is not open")
        try:
            self._handle.writelines(lines)
        except OSError as exc:
            raise SinkWriteError(f"Write to {self._partial} failed: {exc}") from exc

    def close(self) -> str:
        if self._handle is None or self._partial is None or self._final is None:
            raise SinkWriteError("Sink is not open")
        try:
            self._handle.close()
            os.replace(self._partial, self._final)
        except OSError as exc:
            raise SinkWriteError(f"Finalizing {self._final} failed: {exc}") from exc
        finally:
            self._handle = None
        return str(self._final)

    def abort(self) -> None:
        # Partial output stays on disk as the .part file; nothing is rolled back.
        if self._handle is not None:
            self._handle.close()
            self._handle = None
