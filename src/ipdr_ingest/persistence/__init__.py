"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from collections.abc import Callable

from ipdr_ingest.core.config import AppSettings
from ipdr_ingest.core.protocols import ICacheBackend, IFileStore, IRecordSink
from ipdr_ingest.persistence.local_backend import LocalFileSink, LocalFileStore
from ipdr_ingest.persistence.redis_backend import RedisCacheBackend
from ipdr_ingest.persistence.s3_backend import S3FileStore, S3StagingSink

SinkFactory = Callable[[], IRecordSink]


def create_persistence(
    settings: AppSettings | None = None,
) -> tuple[IFileStore, SinkFactory, ICacheBackend | None]:
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (file_store, sink_factory, cache). ``sink_factory`` builds a
        fresh sink per job; ``cache`` is None when Redis is disabled.
    """
    if settings is None:
        settings = AppSettings()
    storage = settings.storage

    cache: ICacheBackend | None = None
    if settings.redis.enabled:
        cache = RedisCacheBackend(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
        )

    if storage.backend == "s3":
        file_store: IFileStore = S3FileStore(
            bucket=storage.bucket,
            region=storage.region,
            endpoint_url=storage.endpoint_url,
        )

        def sink_factory() -> IRecordSink:
            return S3StagingSink(
                bucket=storage.bucket,
                prefix=storage.output_prefix,
                region=storage.region,
                endpoint_url=storage.endpoint_url,
            )
    else:
        file_store = LocalFileStore(storage.upload_dir)

        def sink_factory() -> IRecordSink:
            return LocalFileSink(storage.output_dir)

    return file_store, sink_factory, cache
