"""Analyze and process boundaries for uploaded IPDR files.

``analyze`` reads only the header row and proposes a mapping. ``submit`` runs
the pre-flight checks synchronously and registers a job; ``execute`` does the
transform-and-load work and always releases the uploaded file afterwards.
"""

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ipdr_ingest.core.config import AppSettings
from ipdr_ingest.core.exceptions import (
    FileStoreError,
    IpdrIngestError,
    MappingError,
    PipelineAbortedError,
    PreflightError,
)
from ipdr_ingest.core.protocols import ICacheBackend, IFileStore, IModelProvider, IRecordSink
from ipdr_ingest.mapping.catalog import SchemaCatalog
from ipdr_ingest.mapping.fuzzy import FuzzyMatcher
from ipdr_ingest.mapping.suggester import MappingSuggester
from ipdr_ingest.mapping.validator import MappingValidator, missing_headers
from ipdr_ingest.model_providers import create_model_provider
from ipdr_ingest.models.pipeline import AnalyzeResult, JobState, JobStatus
from ipdr_ingest.models.schema_mapping import ColumnMapping
from ipdr_ingest.persistence import create_persistence
from ipdr_ingest.pipeline.encoder import CanonicalEncoder
from ipdr_ingest.pipeline.source import CsvRowSource
from ipdr_ingest.pipeline.stages import run_pipeline
from ipdr_ingest.pipeline.transformer import Clock, RecordTransformer, utc_now

logger = logging.getLogger(__name__)


class JobRegistry:
    """In-memory job states; the side channel callers poll after submitting."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobState] = {}

    def create(self, file_path: str, submitted_at: datetime) -> JobState:
        job = JobState(job_id=uuid.uuid4().hex, file_path=file_path, submitted_at=submitted_at)
        self._jobs[job.job_id] = job
        return job

    def get(self, job_id: str) -> JobState | None:
        return self._jobs.get(job_id)

    def update(self, job_id: str, **changes: Any) -> JobState:
        job = self._jobs[job_id].model_copy(update=changes)
        self._jobs[job_id] = job
        return job


class IngestService:
    """Wires the mapping engine, the row source and the sink for one deployment."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        catalog: SchemaCatalog,
        suggester: MappingSuggester,
        validator: MappingValidator,
        file_store: IFileStore,
        sink_factory: Callable[[], IRecordSink],
        jobs: JobRegistry | None = None,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._catalog = catalog
        self._suggester = suggester
        self._validator = validator
        self._store = file_store
        self._source = CsvRowSource(file_store)
        self._sink_factory = sink_factory
        self._encoder = CanonicalEncoder()
        self._clock = clock
        self._rng = rng
        self.jobs = jobs or JobRegistry()

    @property
    def catalog(self) -> SchemaCatalog:
        return self._catalog

    @property
    def file_store(self) -> IFileStore:
        return self._store

    # ---- analyze ----

    def store_upload(self, path: str, data: bytes) -> str:
        return self._store.write(path, data)

    def analyze(self, path: str) -> AnalyzeResult:
        headers = self._source.read_headers(path)
        if not headers:
            raise MappingError(f"File {path!r} has no header row")

        suggestion = self._suggester.suggest(headers)
        validation = self._validator.validate(suggestion.mapping, headers)
        logger.info(
            "Analyzed %s: %d headers, %d/%d required fields mapped (%s)",
            path, len(headers), validation.mapped_required_count,
            validation.required_fields_count, suggestion.source,
        )
        return AnalyzeResult(
            file_path=path,
            file_headers=headers,
            suggested_mapping=suggestion.mapping.as_dict(),
            mapping_source=suggestion.source,
            schema_definition=self._catalog.definition(),
            validation=validation,
        )

    # ---- process ----

    def preflight(self, path: str, mapping: ColumnMapping) -> None:
        """Reject the job before any row is read; checks run in order, first failure wins."""
        if not self._store.exists(path):
            raise PreflightError([f"File not found: {path}"])

        report = self._validator.validate(mapping)
        if not report.is_valid:
            raise PreflightError(
                [f"Missing required field mapping: {issue.field}" for issue in report.errors]
            )

        headers = self._source.read_headers(path)
        mismatches = missing_headers(mapping, headers)
        if mismatches:
            raise PreflightError(mismatches, available_headers=headers)

    def submit(self, path: str, confirmed_mapping: dict[str, Any]) -> tuple[JobState, ColumnMapping]:
        mapping = ColumnMapping.from_dict(confirmed_mapping, self._catalog.names())
        self.preflight(path, mapping)
        job = self.jobs.create(path, submitted_at=self._clock())
        logger.info("Processing accepted for %s as job %s", path, job.job_id)
        return job, mapping

    async def execute(self, job_id: str, path: str, mapping: ColumnMapping) -> JobState:
        """Run the pipeline for an accepted job; the upload is released exactly once."""
        pipeline_config = self._settings.pipeline
        self.jobs.update(job_id, status=JobStatus.PROCESSING, start_time=self._clock())
        transformer = RecordTransformer(
            mapping,
            self._catalog,
            clock=self._clock,
            rng=self._rng,
            max_diagnostics=pipeline_config.max_diagnostics,
        )
        logger.info("Starting IPDR processing pipeline for %s (job %s)", path, job_id)

        try:
            result = await run_pipeline(
                self._source.rows(path),
                transformer,
                self._encoder,
                self._sink_factory(),
                name=job_id,
                queue_size=pipeline_config.queue_size,
                batch_size=pipeline_config.batch_size,
            )
        except PipelineAbortedError as exc:
            stats = exc.statistics or transformer.statistics()
            logger.error("Pipeline failed for %s: %s", path, exc)
            logger.error("Processing stats: %s", stats.summary(pipeline_config.log_diagnostics))
            return self.jobs.update(
                job_id,
                status=JobStatus.FAILED,
                end_time=self._clock(),
                result=stats.summary(),
                error_details=str(exc),
            )
        except IpdrIngestError as exc:
            logger.error("Pipeline could not start for %s: %s", path, exc)
            return self.jobs.update(
                job_id, status=JobStatus.FAILED, end_time=self._clock(), error_details=str(exc),
            )
        finally:
            self._release(path)

        stats = result.statistics
        logger.info(
            "Pipeline succeeded for %s: %d records, %d errors, %s%% success",
            path, stats.record_count, stats.error_count, stats.success_rate,
        )
        if stats.error_count:
            sample = stats.diagnostics[:pipeline_config.log_diagnostics]
            logger.warning(
                "First validation errors: %s",
                [d.model_dump(exclude={"raw_record"}) for d in sample],
            )
        return self.jobs.update(
            job_id,
            status=JobStatus.COMPLETED,
            end_time=self._clock(),
            output=result.output,
            result=stats.summary(),
        )

    def _release(self, path: str) -> None:
        try:
            self._store.delete(path)
        except FileStoreError as exc:
            logger.error("Failed to release upload %s: %s", path, exc)


def create_ingest_service(
    settings: AppSettings | None = None,
    *,
    model: IModelProvider | None = None,
    file_store: IFileStore | None = None,
    sink_factory: Callable[[], IRecordSink] | None = None,
    cache: ICacheBackend | None = None,
) -> IngestService:
    """Build an ``IngestService`` from settings; explicit collaborators override the defaults."""
    if settings is None:
        settings = AppSettings()

    if file_store is None or sink_factory is None:
        default_store, default_sink_factory, default_cache = create_persistence(settings)
        file_store = file_store or default_store
        sink_factory = sink_factory or default_sink_factory
        cache = cache if cache is not None else default_cache

    catalog = SchemaCatalog()
    mapping_config = settings.mapping
    matcher = FuzzyMatcher(
        catalog,
        confidence_threshold=mapping_config.confidence_threshold,
        similarity_threshold=mapping_config.similarity_threshold,
    )
    suggester = MappingSuggester(
        catalog=catalog,
        model=model or create_model_provider(settings.llm),
        matcher=matcher,
        cache=cache,
        coverage_threshold=mapping_config.coverage_threshold,
        cache_ttl=mapping_config.cache_ttl,
    )
    return IngestService(
        settings=settings,
        catalog=catalog,
        suggester=suggester,
        validator=MappingValidator(catalog),
        file_store=file_store,
        sink_factory=sink_factory,
    )
