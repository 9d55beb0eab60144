"""Analyze and load a local IPDR file without the HTTP service.

Usage:
    python scripts/ingest_file.py sessions.csv --output-dir output
    python scripts/ingest_file.py sessions.csv --mapping mapping.json --analyze-only
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import tempfile
from pathlib import Path
from typing import Any

from ipdr_ingest.core.config import AppSettings
from ipdr_ingest.core.exceptions import PreflightError
from ipdr_ingest.core.logging import setup_logging
from ipdr_ingest.models.pipeline import JobState
from ipdr_ingest.persistence.local_backend import LocalFileSink, LocalFileStore
from ipdr_ingest.services.ingest import create_ingest_service


def ingest(
    source: Path,
    output_dir: Path,
    mapping: dict[str, Any] | None = None,
    settings: AppSettings | None = None,
    analyze_only: bool = False,
) -> dict[str, Any]:
    """Copy ``source`` into a scratch upload store, analyze it and (optionally) load it."""
    with tempfile.TemporaryDirectory() as scratch:
        service = create_ingest_service(
            settings,
            file_store=LocalFileStore(scratch),
            sink_factory=lambda: LocalFileSink(output_dir),
        )
        upload = service.store_upload(source.name, source.read_bytes())
        analysis = service.analyze(upload)
        report: dict[str, Any] = {"analysis": analysis.model_dump(mode="json")}
        if analyze_only:
            return report

        confirmed = mapping if mapping is not None else analysis.suggested_mapping
        job, column_mapping = service.submit(upload, confirmed)
        final: JobState = asyncio.run(service.execute(job.job_id, upload, column_mapping))
        report["job"] = final.model_dump(mode="json")
        return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Analyze and load an IPDR file")
    parser.add_argument("source", type=Path, help="Delimited IPDR file with a header row")
    parser.add_argument("--mapping", type=Path, default=None, help="JSON file {field: header|null}")
    parser.add_argument("--output-dir", type=Path, default=Path("output"), help="Canonical output directory")
    parser.add_argument("--analyze-only", action="store_true", help="Print the suggested mapping and stop")
    args = parser.parse_args(argv)

    settings = AppSettings()
    setup_logging(settings.log_level)
    mapping = json.loads(args.mapping.read_text()) if args.mapping else None

    try:
        report = ingest(args.source, args.output_dir, mapping, settings, args.analyze_only)
    except PreflightError as exc:
        print(json.dumps({"violations": exc.violations,
                          "available_headers": exc.available_headers}, indent=2))
        return 2

    print(json.dumps(report, indent=2))
    job = report.get("job")
    return 1 if job and job["status"] == "FAILED" else 0


if __name__ == "__main__":
    sys.exit(main())
