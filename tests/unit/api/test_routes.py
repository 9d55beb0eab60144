"""HTTP tests for the upload, job and health endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ipdr_ingest.api.app import create_app
from ipdr_ingest.core.config import AppSettings
from ipdr_ingest.model_providers.mock_provider import MockModelProvider
from ipdr_ingest.services.ingest import create_ingest_service
from tests.fakes import SESSION_HEADERS, MemoryFileStore, MemorySink, make_csv, session_rows


@pytest.fixture
def store():
    return MemoryFileStore()


@pytest.fixture
def sinks():
    return []


@pytest.fixture
def client(store, sinks):
    def sink_factory():
        sink = MemorySink()
        sinks.append(sink)
        return sink

    settings = AppSettings()
    service = create_ingest_service(
        settings, model=MockModelProvider(fail=True), file_store=store, sink_factory=sink_factory,
    )
    with TestClient(create_app(settings, service=service)) as client:
        yield client


def _upload(client, rows=20, missing=None):
    body = make_csv(SESSION_HEADERS, session_rows(rows, missing))
    return client.post("/api/upload/analyze", files={"ipdrFile": ("sessions.csv", body, "text/csv")})


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready"}


class TestSchema:
    def test_schema_lists_canonical_fields(self, client):
        schema = client.get("/api/schema").json()["schema_definition"]
        assert schema["dst_port"]["required"] is True
        assert schema["bytes_up"]["required"] is False


class TestAnalyze:
    def test_returns_headers_and_fallback_mapping(self, client, store):
        resp = _upload(client)
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"].startswith("File analyzed successfully")
        assert data["file_headers"] == SESSION_HEADERS
        assert data["mapping_source"] == "fallback"
        assert data["suggested_mapping"]["a_party_id"] == "msisdn"
        assert data["validation"]["is_valid"] is True
        assert data["file_path"].endswith(".csv")
        assert store.exists(data["file_path"])

    def test_missing_file_part_is_400(self, client):
        resp = client.post("/api/upload/analyze")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Please upload a file."

    def test_empty_upload_is_500_with_message(self, client):
        resp = client.post("/api/upload/analyze", files={"ipdrFile": ("empty.csv", b"", "text/csv")})
        assert resp.status_code == 500
        assert resp.json()["message"] == "Failed to analyze file."


class TestProcess:
    def test_accepts_and_completes_job(self, client, store, sinks):
        analyzed = _upload(client, rows=20, missing={0}).json()

        resp = client.post(
            "/api/upload/process",
            json={"file_path": analyzed["file_path"], "confirmed_mapping": analyzed["suggested_mapping"]},
        )
        assert resp.status_code == 202
        accepted = resp.json()
        assert accepted["message"] == f"Processing started for file: {analyzed['file_path']}"
        assert accepted["status"] == "ACCEPTED"

        # TestClient runs background tasks before returning the response
        job = client.get(f"/api/jobs/{accepted['job_id']}").json()
        assert job["status"] == "COMPLETED"
        assert job["result"]["records_processed"] == 19
        assert job["result"]["errors"] == 1
        assert job["result"]["success_rate"] == "95.00"
        assert len(sinks[0].lines) == 19
        assert not store.exists(analyzed["file_path"])

    def test_unknown_header_is_400_with_available_headers(self, client, store):
        analyzed = _upload(client).json()
        mapping = {**analyzed["suggested_mapping"], "src_ip": "Source Address"}

        resp = client.post(
            "/api/upload/process",
            json={"file_path": analyzed["file_path"], "confirmed_mapping": mapping},
        )

        assert resp.status_code == 400
        data = resp.json()
        assert data["violations"] == ["src_ip -> 'Source Address' not found in file headers"]
        assert data["available_headers"] == SESSION_HEADERS
        assert store.exists(analyzed["file_path"])

    def test_missing_required_mapping_is_400(self, client):
        analyzed = _upload(client).json()
        mapping = {**analyzed["suggested_mapping"], "a_party_id": None}
        resp = client.post(
            "/api/upload/process",
            json={"file_path": analyzed["file_path"], "confirmed_mapping": mapping},
        )
        assert resp.status_code == 400
        assert resp.json()["violations"] == ["Missing required field mapping: a_party_id"]

    def test_unreadable_upload_is_400_with_error(self, client, store):
        store.write("latin1.csv", b"msisdn,caf\xe9\n1,2\n")
        mapping = {
            "a_party_id": "msisdn", "start_time": "msisdn", "src_ip": "msisdn",
            "dst_ip": "msisdn", "dst_port": "msisdn",
        }

        resp = client.post(
            "/api/upload/process", json={"file_path": "latin1.csv", "confirmed_mapping": mapping},
        )

        assert resp.status_code == 400
        data = resp.json()
        assert data["message"] == "Cannot process file."
        assert "latin1.csv" in data["error"]
        assert store.exists("latin1.csv")

    def test_unknown_file_is_400(self, client):
        resp = client.post(
            "/api/upload/process", json={"file_path": "ghost.csv", "confirmed_mapping": {}},
        )
        assert resp.status_code == 400
        assert resp.json()["violations"] == ["File not found: ghost.csv"]


class TestJobs:
    def test_unknown_job_is_404(self, client):
        assert client.get("/api/jobs/does-not-exist").status_code == 404
