"""Job, analyze and process request/response models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ipdr_ingest.models.ipdr_record import RunStatistics
from ipdr_ingest.models.schema_mapping import ValidationReport


class JobStatus(StrEnum):
    ACCEPTED = "ACCEPTED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class MappingSource(StrEnum):
    MODEL = "model"
    MODEL_WITH_FALLBACK = "model+fallback"
    FALLBACK = "fallback"
    CACHE = "cache"


class AnalyzeResult(BaseModel):
    """Headers, suggested mapping and header-only validation for an uploaded file."""

    file_path: str
    file_headers: list[str]
    suggested_mapping: dict[str, Optional[str]]
    mapping_source: MappingSource
    schema_definition: dict[str, dict[str, Any]]
    validation: ValidationReport


class ProcessRequest(BaseModel):
    """Confirmed mapping for a previously analyzed file."""

    file_path: str
    confirmed_mapping: dict[str, Optional[str]]


class JobState(BaseModel):
    """Execution state of one file's transform-and-load job."""

    job_id: str
    file_path: str
    status: JobStatus = JobStatus.ACCEPTED
    submitted_at: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    output: str = ""
    result: dict[str, Any] = Field(default_factory=dict)
    error_details: str = ""


class PipelineResult(BaseModel):
    """Terminal statistics of a completed pipeline and where its output landed."""

    statistics: RunStatistics
    output: str = ""
