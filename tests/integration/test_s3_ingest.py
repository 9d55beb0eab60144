"""End-to-end ingest against LocalStack S3."""

from __future__ import annotations

import pytest

from ipdr_ingest.core.config import AppSettings, StorageConfig
from ipdr_ingest.model_providers.mock_provider import MockModelProvider
from ipdr_ingest.models.pipeline import JobStatus
from ipdr_ingest.services.ingest import create_ingest_service
from tests.fakes import SESSION_HEADERS, make_csv, session_rows
from tests.integration.conftest import LOCALSTACK_URL, skip_no_localstack


@skip_no_localstack
class TestS3Ingest:
    @pytest.fixture
    def service(self, bucket):
        settings = AppSettings(
            storage=StorageConfig(backend="s3", bucket=bucket, endpoint_url=LOCALSTACK_URL),
        )
        return create_ingest_service(settings, model=MockModelProvider(fail=True))

    async def test_upload_analyze_and_process(self, service, localstack_s3, bucket):
        path = service.store_upload("uploads/sessions.csv", make_csv(SESSION_HEADERS, session_rows(50)))

        result = service.analyze(path)
        assert result.validation.is_valid

        job, mapping = service.submit(path, result.suggested_mapping)
        await service.execute(job.job_id, path, mapping)

        state = service.jobs.get(job.job_id)
        assert state.status == JobStatus.COMPLETED
        assert state.output == f"s3://{bucket}/canonical/{job.job_id}.csv"
        body = localstack_s3.get_object(Bucket=bucket, Key=f"canonical/{job.job_id}.csv")["Body"].read()
        assert body.decode("utf-8").count("\n") == 50
        assert not service.file_store.exists(path)
