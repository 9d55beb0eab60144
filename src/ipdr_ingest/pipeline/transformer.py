"""Per-row extraction, validation and normalization into canonical records.

One ``RecordTransformer`` serves one file. Rows that fail data-level checks
come back as rejected ``RecordOutcome`` values; nothing a single row contains
can stop the stream.
"""

from __future__ import annotations

import logging
import random
import re
import string
from collections.abc import Callable, Iterable, Iterator
from datetime import datetime, timezone

from ipdr_ingest.core.types import RawRecord
from ipdr_ingest.mapping.catalog import SchemaCatalog
from ipdr_ingest.models.ipdr_record import CanonicalRecord, RecordOutcome, RunStatistics
from ipdr_ingest.models.schema_mapping import ColumnMapping

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Explicit durations below this many milliseconds (~16.7 min) are taken to be seconds.
SECONDS_DURATION_CEILING = 1_000_000

SERVICE_LABELS: dict[int, str] = {
    80: "HTTP/WEB",
    443: "HTTPS/WEB",
    53: "DNS",
    22: "SSH",
    21: "FTP",
    25: "SMTP",
    110: "POP3",
    143: "IMAP",
    993: "IMAPS",
    995: "POP3S",
    3306: "MySQL",
    5432: "PostgreSQL",
    6379: "Redis",
    27017: "MongoDB",
    8080: "HTTP-ALT",
    8443: "HTTPS-ALT",
    1194: "OpenVPN",
    1723: "PPTP",
    5060: "SIP",
}

_NULL_MARKERS = frozenset({"", "null", "NULL"})
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_IPV4 = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
_IPV6 = re.compile(r"^(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$")
_FALLBACK_FORMATS = (
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%d-%b-%Y %H:%M:%S",
)
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_int(value: str | int | None) -> int | None:
    """Integer from the leading digits of ``value`` ("80abc" -> 80, "abc" -> None)."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def parse_timestamp(value: str | None) -> datetime | None:
    """Aware UTC datetime from an ISO-8601 or common log timestamp; naive input is UTC."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        # offsets at the edge of the datetime range have no UTC equivalent
        return None


def is_valid_ip(value: str) -> bool:
    # Anything with a colon passes so that abbreviated IPv6 forms are kept.
    return bool(_IPV4.match(value) or _IPV6.match(value) or ":" in value)


def service_label(port: str | int | None) -> str:
    number = parse_int(port)
    if number is None:
        return "UNKNOWN"
    return SERVICE_LABELS.get(number, "OTHER")


def is_blank(value: str | None) -> bool:
    return value is None or value.strip() in _NULL_MARKERS


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class RecordTransformer:
    """Turns raw rows into canonical records and keeps the run's statistics."""

    def __init__(
        self,
        mapping: ColumnMapping,
        catalog: SchemaCatalog,
        *,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
        max_diagnostics: int = 100,
    ) -> None:
        self._mapping = mapping
        self._catalog = catalog
        self._required = [f.name for f in catalog.required_fields()]
        self._clock = clock
        self._rng = rng or random.Random()
        self._stats = RunStatistics(max_diagnostics=max_diagnostics)

    @property
    def mapping(self) -> ColumnMapping:
        return self._mapping

    def extract(self, raw: RawRecord) -> dict[str, str | None]:
        values: dict[str, str | None] = {}
        for name in self._catalog.names():
            header = self._mapping.header_for(name)
            values[name] = raw.get(header) if header is not None else None
        return values

    def check(self, values: dict[str, str | None]) -> list[str]:
        """Data-level reasons to reject a row; empty when the row is usable."""
        errors: list[str] = []

        for name in self._required:
            if is_blank(values.get(name)):
                requirement = self._catalog.get(name).requirement
                errors.append(f"Missing required field: {name} ({requirement})")

        start = values.get("start_time")
        if not is_blank(start) and parse_timestamp(start) is None:
            errors.append("Invalid start_time format")

        port = values.get("dst_port")
        if not is_blank(port):
            number = parse_int(port)
            if number is None or number < 1:
                errors.append("Invalid dst_port - must be a positive number")

        for name in ("src_ip", "dst_ip"):
            address = values.get(name)
            if not is_blank(address) and not is_valid_ip(address.strip()):
                errors.append(f"Invalid {name} format")

        return errors

    def normalize(self, values: dict[str, str | None]) -> CanonicalRecord:
        start_raw = values.get("start_time")
        if is_blank(start_raw):
            start_time = self._clock()
        else:
            start_time = parse_timestamp(start_raw)
            if start_time is None:
                raise ValueError("Invalid start_time format")

        end_time = None
        end_raw = values.get("end_time")
        if not is_blank(end_raw):
            end_time = parse_timestamp(end_raw)
            if end_time is None:
                raise ValueError("Invalid end_time format")

        duration: int | None = None
        duration_raw = values.get("duration_ms")
        if not is_blank(duration_raw):
            duration = parse_int(duration_raw)
            if duration is not None and duration < SECONDS_DURATION_CEILING:
                duration *= 1000
        elif end_time is not None:
            duration = epoch_millis(end_time) - epoch_millis(start_time)

        src_ip = None if is_blank(values.get("src_ip")) else values["src_ip"].strip()
        dst_port = self._optional_int(values.get("dst_port"))
        protocol = values.get("protocol")

        a_party_id = values.get("a_party_id")
        if is_blank(a_party_id):
            a_party_id = self.synthesize_party_id(src_ip, start_time)

        return CanonicalRecord(
            a_party_id=a_party_id.strip(),
            start_time=start_time,
            end_time=end_time,
            duration_ms=duration,
            src_ip=src_ip,
            src_port=self._optional_int(values.get("src_port")),
            nat_ip=None if is_blank(values.get("nat_ip")) else values["nat_ip"].strip(),
            nat_port=self._optional_int(values.get("nat_port")),
            dst_ip=None if is_blank(values.get("dst_ip")) else values["dst_ip"].strip(),
            dst_port=dst_port,
            protocol=(protocol.strip() if protocol and protocol.strip() else "TCP").upper(),
            service_label=service_label(dst_port),
            bytes_up=self._optional_int(values.get("bytes_up")) or 0,
            bytes_down=self._optional_int(values.get("bytes_down")) or 0,
        )

    def synthesize_party_id(self, src_ip: str | None, start_time: datetime) -> str:
        """Best-effort grouping key for rows without a subscriber id; not unique."""
        suffix = "".join(self._rng.choice(_SUFFIX_ALPHABET) for _ in range(9))
        return f"{src_ip or 'unknown'}_{epoch_millis(start_time)}_{suffix}"

    def transform(self, index: int, raw: RawRecord) -> RecordOutcome:
        try:
            values = self.extract(raw)
            errors = self.check(values)
            if errors:
                return RecordOutcome(index=index, errors=errors, raw_record=dict(raw))
            record = self.normalize(values)
        except (ValueError, TypeError, OverflowError) as exc:
            return RecordOutcome(index=index, errors=[str(exc)], raw_record=dict(raw))
        return RecordOutcome(index=index, record=record)

    def observe(self, outcome: RecordOutcome) -> RecordOutcome:
        self._stats = self._stats.record(outcome)
        if not outcome.accepted:
            logger.debug("Rejected record %d: %s", outcome.index, "; ".join(outcome.errors))
        return outcome

    def stream(self, rows: Iterable[RawRecord], start: int = 1) -> Iterator[CanonicalRecord]:
        """Pull-based stage: yields accepted records, folding every outcome into the stats."""
        for index, raw in enumerate(rows, start=start):
            outcome = self.observe(self.transform(index, raw))
            if outcome.record is not None:
                yield outcome.record

    def statistics(self) -> RunStatistics:
        return self._stats

    @staticmethod
    def _optional_int(value: str | None) -> int | None:
        return None if is_blank(value) else parse_int(value)
