"""Canonical schema and column mapping models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field

UNMAPPED = "unmapped"


class SchemaField(BaseModel):
    """One field of the canonical IPDR schema."""

    model_config = {"frozen": True}

    name: str
    label: str
    required: bool = False
    description: str = ""
    requirement: str = ""  # why the field is required, used in validation messages


class ColumnMapping(BaseModel):
    """Mapping from canonical field name to source header (None when unmapped).

    Holds exactly one entry per canonical field. Built once per file and never
    mutated; use ``merge_missing`` to derive a new mapping.
    """

    model_config = {"frozen": True}

    entries: dict[str, str | None] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], field_names: Iterable[str]) -> ColumnMapping:
        """Build a mapping over ``field_names`` from loosely-typed input.

        Unknown keys are ignored; missing keys, ``None``, blank strings and the
        literal ``"unmapped"`` all become unmapped.
        """
        entries: dict[str, str | None] = {}
        for name in field_names:
            value = raw.get(name)
            if isinstance(value, str) and value.strip() and value != UNMAPPED:
                entries[name] = value
            else:
                entries[name] = None
        return cls(entries=entries)

    def header_for(self, field: str) -> str | None:
        return self.entries.get(field)

    def is_mapped(self, field: str) -> bool:
        return self.entries.get(field) is not None

    def mapped_fields(self) -> list[str]:
        return [name for name, header in self.entries.items() if header is not None]

    def merge_missing(self, fallback: ColumnMapping) -> ColumnMapping:
        """Fill unmapped fields from ``fallback``; mapped fields are kept as-is."""
        merged = dict(self.entries)
        for name, header in fallback.entries.items():
            if merged.get(name) is None and header is not None:
                merged[name] = header
        return ColumnMapping(entries=merged)

    def as_dict(self) -> dict[str, str | None]:
        return dict(self.entries)


class ValidationIssue(BaseModel):
    """A single error or warning raised while validating a mapping."""

    field: str
    message: str
    severity: str = "error"  # error, warning


class ValidationReport(BaseModel):
    """Outcome of schema-level mapping validation."""

    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    required_fields_count: int = 0
    mapped_required_count: int = 0
