"""Backpressure-coupled async pipeline: row source -> transformer -> sink.

Stages exchange batches over bounded ``asyncio.Queue``s, so a slow sink
suspends the transformer and the source instead of letting rows pile up.
Blocking file reads and sink writes run in worker threads.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator
from itertools import islice

from ipdr_ingest.core.exceptions import PipelineAbortedError, SinkWriteError
from ipdr_ingest.core.protocols import IRecordSink
from ipdr_ingest.core.types import RawRecord
from ipdr_ingest.models.pipeline import PipelineResult
from ipdr_ingest.pipeline.encoder import CanonicalEncoder
from ipdr_ingest.pipeline.transformer import RecordTransformer

logger = logging.getLogger(__name__)

_DONE = object()


def _next_batch(rows: Iterator[RawRecord], size: int) -> list[RawRecord]:
    return list(islice(rows, size))


async def _source_stage(rows: Iterable[RawRecord], out: asyncio.Queue, batch_size: int) -> None:
    iterator = iter(rows)
    read: asyncio.Task | None = None
    try:
        while True:
            read = asyncio.create_task(asyncio.to_thread(_next_batch, iterator, batch_size))
            batch = await asyncio.shield(read)
            if not batch:
                break
            await out.put(batch)
        await out.put(_DONE)
    finally:
        # A cancelled read keeps running in its worker thread; the source can
        # only be closed once it has returned.
        if read is not None and not read.done():
            await asyncio.wait([read])


def _close_source(rows: Iterable[RawRecord]) -> None:
    close = getattr(rows, "close", None)
    if close is not None:
        close()


async def _transform_stage(
    inbox: asyncio.Queue,
    out: asyncio.Queue,
    transformer: RecordTransformer,
    encoder: CanonicalEncoder,
) -> None:
    index = 1
    while True:
        batch = await inbox.get()
        if batch is _DONE:
            break
        lines = [encoder.encode(record) for record in transformer.stream(batch, start=index)]
        index += len(batch)
        if lines:
            await out.put(lines)
    await out.put(_DONE)


async def _sink_stage(inbox: asyncio.Queue, sink: IRecordSink) -> None:
    while True:
        lines = await inbox.get()
        if lines is _DONE:
            break
        try:
            await asyncio.to_thread(sink.write_lines, lines)
        except OSError as exc:
            raise SinkWriteError(f"Sink write failed: {exc}") from exc


async def run_pipeline(
    rows: Iterable[RawRecord],
    transformer: RecordTransformer,
    encoder: CanonicalEncoder,
    sink: IRecordSink,
    *,
    name: str,
    queue_size: int = 8,
    batch_size: int = 500,
) -> PipelineResult:
    """Stream ``rows`` into ``sink`` and return the final statistics.

    Any stage failure (source read, sink write) cancels the others, aborts the
    sink and raises ``PipelineAbortedError`` carrying the statistics gathered
    up to that point. Lines already delivered to the sink are not retracted.
    """
    raw_queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
    line_queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)

    tasks: list[asyncio.Task] = []
    try:
        await asyncio.to_thread(sink.open, name)
        tasks = [
            asyncio.create_task(_source_stage(rows, raw_queue, batch_size), name="source"),
            asyncio.create_task(
                _transform_stage(raw_queue, line_queue, transformer, encoder), name="transform"
            ),
            asyncio.create_task(_sink_stage(line_queue, sink), name="sink"),
        ]
        await asyncio.gather(*tasks)
        output = await asyncio.to_thread(sink.close)
    except Exception as exc:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        try:
            sink.abort()
        except Exception as abort_exc:
            logger.error("Sink abort failed for %s: %s", name, abort_exc)
        raise PipelineAbortedError(str(exc), statistics=transformer.statistics()) from exc
    finally:
        _close_source(rows)

    return PipelineResult(statistics=transformer.statistics(), output=output)
