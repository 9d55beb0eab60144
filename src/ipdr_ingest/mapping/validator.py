"""Schema-level checks of a candidate column mapping (no row data involved)."""

from __future__ import annotations

from ipdr_ingest.mapping.catalog import IMPORTANT_OPTIONAL, SchemaCatalog
from ipdr_ingest.models.schema_mapping import ColumnMapping, ValidationIssue, ValidationReport

_SUBSCRIBER_MARKERS = ("subscriber", "msisdn", "imsi")
_IP_MARKERS = ("ip", "address")
_DESTINATION_MARKERS = ("dest", "server", "b_party")


class MappingValidator:
    """Checks required-field coverage and flags implausible mappings.

    Used twice per file: against the suggested mapping at analysis time (to
    warn) and against the confirmed mapping before processing (to hard-fail).
    """

    def __init__(self, catalog: SchemaCatalog) -> None:
        self._catalog = catalog

    def validate(self, mapping: ColumnMapping, headers: list[str] | None = None) -> ValidationReport:
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        required = self._catalog.required_fields()
        for field in required:
            if not mapping.is_mapped(field.name):
                errors.append(ValidationIssue(
                    field=field.name,
                    message=field.requirement or f"{field.name} is required",
                    severity="error",
                ))

        for name in IMPORTANT_OPTIONAL:
            if not mapping.is_mapped(name):
                warnings.append(ValidationIssue(
                    field=name,
                    message=f"{name} is not mapped - data volume/protocol analysis will be limited",
                    severity="warning",
                ))

        warnings.extend(self._quality_warnings(mapping, headers))

        return ValidationReport(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            required_fields_count=len(required),
            mapped_required_count=sum(1 for f in required if mapping.is_mapped(f.name)),
        )

    def _quality_warnings(
        self, mapping: ColumnMapping, headers: list[str] | None
    ) -> list[ValidationIssue]:
        warnings: list[ValidationIssue] = []

        subscriber = mapping.header_for("a_party_id")
        if subscriber:
            lowered = subscriber.lower()
            if "session" in lowered and not any(m in lowered for m in _SUBSCRIBER_MARKERS):
                warnings.append(ValidationIssue(
                    field="a_party_id",
                    message=(
                        "Mapped field appears to be session ID rather than subscriber ID"
                        " - this may limit subscriber analysis"
                    ),
                    severity="warning",
                ))
            if headers and subscriber in headers and any(m in lowered for m in _IP_MARKERS):
                warnings.append(ValidationIssue(
                    field="a_party_id",
                    message=(
                        "Mapped field appears to be an IP address, not a subscriber ID;"
                        " look for MSISDN, IMSI, subscriber_id or user_id instead"
                    ),
                    severity="warning",
                ))

        source = mapping.header_for("src_ip")
        if source and mapping.is_mapped("dst_ip"):
            lowered = source.lower()
            if any(m in lowered for m in _DESTINATION_MARKERS):
                warnings.append(ValidationIssue(
                    field="src_ip",
                    message=(
                        "Source IP appears to be mapped to a destination field;"
                        " check if src_ip and dst_ip mappings are swapped"
                    ),
                    severity="warning",
                ))

        return warnings


def missing_headers(mapping: ColumnMapping, headers: list[str]) -> list[str]:
    """Every mapped header that does not literally appear in the file's header row."""
    available = set(headers)
    return [
        f"{field} -> {header!r} not found in file headers"
        for field, header in mapping.entries.items()
        if header is not None and header not in available
    ]
