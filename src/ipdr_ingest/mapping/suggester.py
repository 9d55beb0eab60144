"""Mapping suggestion: model collaborator first, fuzzy matching as the fallback."""

from __future__ import annotations

import hashlib
import json
import logging
import re
from typing import Any

from pydantic import BaseModel

from ipdr_ingest.core.exceptions import CacheError, SuggestionParseError
from ipdr_ingest.core.protocols import ICacheBackend, IModelProvider
from ipdr_ingest.mapping.catalog import SchemaCatalog
from ipdr_ingest.mapping.fuzzy import FuzzyMatcher
from ipdr_ingest.models.pipeline import MappingSource
from ipdr_ingest.models.schema_mapping import ColumnMapping

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)

PROMPT_TEMPLATE = """\
You are an expert IPDR/CDR telecommunications data mapping specialist.

Map the file headers below to our telecom session schema.

OUR SCHEMA:
{schema}

FILE HEADERS: {headers}

MAPPING RULES:

1. Subscriber identification:
   - a_party_id = ONLY subscriber identifiers (MSISDN, IMSI, UserID, subscriber_id)
   - a_party_id is never an IP address, session ID or connection ID
   - If no subscriber ID exists, map a_party_id to null
2. IP addresses:
   - src_ip = A-Party/source/client/user IP addresses
   - dst_ip = B-Party/destination/server IP addresses
   - nat_ip = public/translated address of the subscriber
3. Ports:
   - dst_port = destination/server/target port (NOT the source port)
4. Data volume:
   - bytes_up = uplink/upload/sent/tx data
   - bytes_down = downlink/download/received/rx data
   - If only one volume field exists, map it to bytes_down
5. Time fields:
   - start_time = session/call/connection start
   - duration_ms may be in seconds or milliseconds (we convert)
6. Only map a field if you are at least 80% confident; otherwise use null.

Return a raw JSON object only, keyed by schema field, values are header names or null.
Example: {{"a_party_id": "subscriber_id", "src_ip": "a_party_ip"}}
"""


class Suggestion(BaseModel):
    """A candidate mapping and where it came from."""

    mapping: ColumnMapping
    source: MappingSource
    coverage: float = 0.0


def headers_fingerprint(headers: list[str]) -> str:
    return hashlib.sha256(json.dumps(headers).encode("utf-8")).hexdigest()


def strip_fences(text: str) -> str:
    """Remove markdown code fences and blank lines around a JSON payload."""
    text = _FENCE.sub("", text)
    return "\n".join(line for line in text.splitlines() if line.strip()).strip()


def parse_response(text: str) -> dict[str, Any]:
    cleaned = strip_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise SuggestionParseError(f"Suggestion is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise SuggestionParseError(
            f"Suggestion must be a JSON object, got {type(parsed).__name__}"
        )
    return parsed


class MappingSuggester:
    """Produces a candidate ``ColumnMapping`` for a file's header row."""

    CACHE_PREFIX = "mapping:"

    def __init__(
        self,
        *,
        catalog: SchemaCatalog,
        model: IModelProvider,
        matcher: FuzzyMatcher,
        cache: ICacheBackend | None = None,
        coverage_threshold: float = 0.6,
        cache_ttl: int = 86400,
    ) -> None:
        self._catalog = catalog
        self._model = model
        self._matcher = matcher
        self._cache = cache
        self.coverage_threshold = coverage_threshold
        self.cache_ttl = cache_ttl

    def describe_schema(self) -> str:
        lines = []
        for field in self._catalog.fields():
            flag = " [REQUIRED]" if field.required else " [OPTIONAL]"
            aliases = self._catalog.aliases(field.name)[:3]
            examples = f" (Common names: {', '.join(aliases)})" if aliases else ""
            lines.append(f'- "{field.name}"{flag}: {field.label} - {field.description}{examples}')
        return "\n".join(lines)

    def build_prompt(self, headers: list[str]) -> str:
        return PROMPT_TEMPLATE.format(schema=self.describe_schema(), headers=json.dumps(headers))

    def coverage(self, mapping: ColumnMapping) -> float:
        required = self._catalog.required_fields()
        if not required:
            return 1.0
        return sum(1 for f in required if mapping.is_mapped(f.name)) / len(required)

    def suggest(self, headers: list[str]) -> Suggestion:
        cached = self._cache_get(headers)
        if cached is not None:
            return Suggestion(mapping=cached, source=MappingSource.CACHE, coverage=self.coverage(cached))

        suggestion = self._suggest_uncached(headers)
        self._cache_put(headers, suggestion.mapping)
        return suggestion

    def _suggest_uncached(self, headers: list[str]) -> Suggestion:
        try:
            raw = self._model.chat([{"role": "user", "content": self.build_prompt(headers)}])
            suggested = self._sanitize(parse_response(raw), headers)
        except Exception as exc:  # any collaborator failure means "no suggestion"
            logger.warning("Mapping suggestion failed, using fallback mapping: %s", exc)
            fallback = self._matcher.match(headers)
            return Suggestion(
                mapping=fallback, source=MappingSource.FALLBACK, coverage=self.coverage(fallback)
            )

        coverage = self.coverage(suggested)
        logger.info(
            "Model mapped %d/%d required fields",
            round(coverage * len(self._catalog.required_fields())),
            len(self._catalog.required_fields()),
        )
        if coverage >= self.coverage_threshold:
            return Suggestion(mapping=suggested, source=MappingSource.MODEL, coverage=coverage)

        logger.info("Model mapping incomplete, enhancing with fallback mapping")
        merged = suggested.merge_missing(self._matcher.match(headers))
        for field in merged.mapped_fields():
            if not suggested.is_mapped(field):
                logger.info("Enhanced: %s -> %s", field, merged.header_for(field))
        return Suggestion(
            mapping=merged, source=MappingSource.MODEL_WITH_FALLBACK, coverage=self.coverage(merged)
        )

    def _sanitize(self, raw: dict[str, Any], headers: list[str]) -> ColumnMapping:
        mapping = ColumnMapping.from_dict(raw, self._catalog.names())
        available = set(headers)
        entries = dict(mapping.entries)
        for field, header in mapping.entries.items():
            if header is not None and header not in available:
                logger.warning("Ignoring suggested header %r for %s: not in file", header, field)
                entries[field] = None
        return ColumnMapping(entries=entries)

    def _cache_get(self, headers: list[str]) -> ColumnMapping | None:
        if self._cache is None:
            return None
        try:
            payload = self._cache.get(self.CACHE_PREFIX + headers_fingerprint(headers))
        except CacheError as exc:
            logger.warning("Mapping cache read failed: %s", exc)
            return None
        if payload is None:
            return None
        return ColumnMapping.from_dict(json.loads(payload), self._catalog.names())

    def _cache_put(self, headers: list[str], mapping: ColumnMapping) -> None:
        if self._cache is None:
            return
        try:
            self._cache.setex(
                self.CACHE_PREFIX + headers_fingerprint(headers),
                self.cache_ttl,
                json.dumps(mapping.as_dict()),
            )
        except CacheError as exc:
            logger.warning("Mapping cache write failed: %s", exc)
