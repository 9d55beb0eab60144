"""Deterministic header-to-field matcher based on alias lists and edit distance."""

from __future__ import annotations

import logging
import re

from rapidfuzz.distance import Levenshtein

from ipdr_ingest.mapping.catalog import SchemaCatalog
from ipdr_ingest.models.schema_mapping import ColumnMapping

logger = logging.getLogger(__name__)

EXACT_SCORE = 1.0
CONTAINS_SCORE = 0.8

_SEPARATORS = re.compile(r"[_\s-]")


def normalize(value: str) -> str:
    return _SEPARATORS.sub("", value.lower())


def levenshtein(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """``(longest - distance) / longest``; two empty strings are identical."""
    return Levenshtein.normalized_similarity(a, b)


class FuzzyMatcher:
    """Scores file headers against each canonical field's aliases.

    Fields are matched independently of one another, so a single header may be
    chosen for more than one field.
    """

    def __init__(
        self,
        catalog: SchemaCatalog,
        confidence_threshold: float = 0.6,
        similarity_threshold: float = 0.7,
    ) -> None:
        self._catalog = catalog
        self.confidence_threshold = confidence_threshold
        self.similarity_threshold = similarity_threshold

    def score(self, header: str, aliases: tuple[str, ...] | list[str]) -> float:
        """Best score of ``header`` across ``aliases`` (0.0 when nothing qualifies)."""
        normalized = normalize(header)
        if not normalized:
            return 0.0

        best = 0.0
        for alias in aliases:
            candidate = normalize(alias)
            if not candidate:
                continue
            if normalized == candidate:
                return EXACT_SCORE
            if candidate in normalized or normalized in candidate:
                best = max(best, CONTAINS_SCORE)
                continue
            ratio = similarity(normalized, candidate)
            if ratio > self.similarity_threshold:
                best = max(best, ratio)
        return best

    def match_field(self, field: str, headers: list[str]) -> tuple[str | None, float]:
        """Highest-scoring header for ``field``; ties keep the earliest header."""
        aliases = self._catalog.aliases(field)
        best_header: str | None = None
        best_score = 0.0
        for header in headers:
            score = self.score(header, aliases)
            if score > best_score:
                best_header, best_score = header, score
        if best_score > self.confidence_threshold:
            return best_header, best_score
        return None, best_score

    def match(self, headers: list[str]) -> ColumnMapping:
        entries: dict[str, str | None] = {}
        for field in self._catalog.names():
            header, score = self.match_field(field, headers)
            entries[field] = header
            if header is not None:
                logger.info(
                    "Fallback mapping: %s -> %s (confidence: %.1f%%)", field, header, score * 100
                )
        return ColumnMapping(entries=entries)
