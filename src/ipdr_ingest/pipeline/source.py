"""CSV row source over an upload file store."""

from __future__ import annotations

import csv
from collections.abc import Iterator

from ipdr_ingest.core.exceptions import FileStoreError, SourceReadError
from ipdr_ingest.core.protocols import IFileStore
from ipdr_ingest.core.types import RawRecord


class CsvRowSource:
    """Reads the header row and data rows of a delimited upload."""

    def __init__(self, file_store: IFileStore, delimiter: str = ",") -> None:
        self._store = file_store
        self._delimiter = delimiter

    def read_headers(self, path: str) -> list[str]:
        try:
            with self._store.open_text(path) as handle:
                row = next(csv.reader(handle, delimiter=self._delimiter), [])
        except (OSError, csv.Error, UnicodeDecodeError, FileStoreError) as exc:
            raise SourceReadError(f"Failed to read headers from {path!r}: {exc}") from exc
        return [header.lstrip("\ufeff") for header in row]

    def rows(self, path: str) -> Iterator[RawRecord]:
        """Yield one ``{header: value}`` dict per data row; the file closes with the iterator."""
        try:
            with self._store.open_text(path) as handle:
                reader = csv.DictReader(handle, delimiter=self._delimiter)
                for row in reader:
                    yield {key: value for key, value in row.items() if key is not None}
        except (OSError, csv.Error, UnicodeDecodeError, FileStoreError) as exc:
            raise SourceReadError(f"Failed to read rows from {path!r}: {exc}") from exc
