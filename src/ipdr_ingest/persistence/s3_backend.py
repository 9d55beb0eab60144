"""S3 upload store and multipart staging sink."""

from __future__ import annotations

import codecs
from typing import Any, TextIO

import boto3
from botocore.exceptions import ClientError

from ipdr_ingest.core.exceptions import FileStoreError, SinkWriteError

# S3 rejects multipart parts smaller than 5 MiB, except the last one.
MIN_PART_SIZE = 5 * 1024 * 1024


def _client(region: str, endpoint_url: str | None) -> Any:
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.client("s3", **kwargs)


class S3FileStore:
    """IFileStore backed by S3; paths are object keys."""

    def __init__(self, bucket: str, region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._bucket = bucket
        self._client = _client(region, endpoint_url)

    def exists(self, path: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=path)
            return True
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise FileStoreError(f"S3 HEAD failed for {path!r}: {exc}") from exc

    def open_text(self, path: str) -> TextIO:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=path)
        except ClientError as exc:
            raise FileStoreError(f"S3 read failed for {path!r}: {exc}") from exc
        return codecs.getreader("utf-8-sig")(resp["Body"])  # type: ignore[return-value]

    def write(self, path: str, data: bytes) -> str:
        try:
            self._client.put_object(
                Bucket=self._bucket, Key=path, Body=data, ContentType="text/csv",
            )
            return path
        except ClientError as exc:
            raise FileStoreError(f"S3 write failed for {path!r}: {exc}") from exc

    def delete(self, path: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=path)
        except ClientError as exc:
            raise FileStoreError(f"S3 delete failed for {path!r}: {exc}") from exc


class S3StagingSink:
    """IRecordSink staging canonical lines as ``<prefix><name>.csv`` in S3.

    Lines are buffered and shipped as multipart parts once the buffer reaches
    ``part_size``; small outputs are written with a single PUT on close.
    """

    def __init__(self, bucket: str, prefix: str = "canonical/", region: str = "us-east-1",
                 endpoint_url: str | None = None, part_size: int = MIN_PART_SIZE) -> None:
        self._bucket = bucket
        self._prefix = prefix
        self._part_size = max(part_size, MIN_PART_SIZE)
        self._client = _client(region, endpoint_url)
        self._key = ""
        self._buffer = bytearray()
        self._upload_id: str | None = None
        self._parts: list[dict[str, Any]] = []

    def open(self, name: str) -> None:
        self._key = f"{self._prefix}{name}.csv"
        self._buffer.clear()
        self._upload_id = None
        self._parts = []

    def write_lines(self, lines: list[str]) -> None:
        self._buffer.extend("".join(lines).encode("utf-8"))
        if len(self._buffer) >= self._part_size:
            self._flush_part()

    def _flush_part(self) -> None:
        try:
            if self._upload_id is None:
                resp = self._client.create_multipart_upload(
                    Bucket=self._bucket, Key=self._key, ContentType="text/csv",
                )
                self._upload_id = resp["UploadId"]
            number = len(self._parts) + 1
            resp = self._client.upload_part(
                Bucket=self._bucket, Key=self._key, UploadId=self._upload_id,
                PartNumber=number, Body=bytes(self._buffer),
            )
        except ClientError as exc:
            raise SinkWriteError(f"S3 part upload failed for {self._key!r}: {exc}") from exc
        self._parts.append({"ETag": resp["ETag"], "PartNumber": number})
        self._buffer.clear()

    def close(self) -> str:
        try:
            if self._upload_id is None:
                self._client.put_object(
                    Bucket=self._bucket, Key=self._key, Body=bytes(self._buffer),
                    ContentType="text/csv",
                )
            else:
                if self._buffer:
                    self._flush_part()
                self._client.complete_multipart_upload(
                    Bucket=self._bucket, Key=self._key, UploadId=self._upload_id,
                    MultipartUpload={"Parts": self._parts},
                )
        except ClientError as exc:
            raise SinkWriteError(f"S3 finalize failed for {self._key!r}: {exc}") from exc
        self._buffer.clear()
        return f"s3://{self._bucket}/{self._key}"

    def abort(self) -> None:
        self._buffer.clear()
        if self._upload_id is None:
            return
        try:
            self._client.abort_multipart_upload(
                Bucket=self._bucket, Key=self._key, UploadId=self._upload_id,
            )
        except ClientError as exc:
            raise SinkWriteError(f"S3 abort failed for {self._key!r}: {exc}") from exc
        finally:
            self._upload_id = None
