"""Canonical IPDR schema registry and header alias table."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from ipdr_ingest.models.schema_mapping import SchemaField

DEFAULT_FIELDS: tuple[SchemaField, ...] = (
    SchemaField(
        name="a_party_id",
        label="Subscriber ID",
        required=True,
        description="The unique ID for the user (e.g., MSISDN, UserID).",
        requirement="Subscriber identifier is absolutely required for IPDR analysis",
    ),
    SchemaField(
        name="start_time",
        label="Session Start Time",
        required=True,
        description="When the data session began.",
        requirement="Session start time is required for temporal analysis",
    ),
    SchemaField(
        name="end_time",
        label="Session End Time",
        description="When the data session ended.",
    ),
    SchemaField(
        name="duration_ms",
        label="Duration (ms)",
        description="The length of the session in milliseconds.",
    ),
    SchemaField(
        name="src_ip",
        label="Private/Source IP",
        required=True,
        description="The user's internal device IP.",
        requirement="Source IP is required to identify the subscriber's network endpoint",
    ),
    SchemaField(
        name="src_port",
        label="Source Port",
        description="The user's device port.",
    ),
    SchemaField(
        name="nat_ip",
        label="Public/NAT IP",
        description="The user's public-facing IP address.",
    ),
    SchemaField(
        name="nat_port",
        label="NAT Port",
        description="The user's public-facing port after translation.",
    ),
    SchemaField(
        name="dst_ip",
        label="Destination IP",
        required=True,
        description="The B-Party's IP address.",
        requirement="Destination IP is required to identify what service was accessed",
    ),
    SchemaField(
        name="dst_port",
        label="Destination Port",
        required=True,
        description="The B-Party's port.",
        requirement="Destination port is required to identify the service type",
    ),
    SchemaField(
        name="protocol",
        label="Protocol",
        description="e.g., TCP, UDP.",
    ),
    SchemaField(
        name="bytes_up",
        label="Data Uploaded (Bytes)",
        description="Bytes sent from the user.",
    ),
    SchemaField(
        name="bytes_down",
        label="Data Downloaded (Bytes)",
        description="Bytes received by the user.",
    ),
)

# Common header spellings seen in vendor IPDR/CDR exports.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "a_party_id": (
        "msisdn", "imsi", "subscriber_id", "user_id", "calling_party", "a_number",
        "mobile_number", "phone_number", "caller_id", "subscriber", "account_id",
        "customer_id",
    ),
    "src_ip": (
        "a_party_ip", "source_ip", "private_ip", "client_ip", "user_ip",
        "internal_ip", "local_ip", "originating_ip",
    ),
    "src_port": ("a_party_port", "source_port", "src_port", "client_port", "private_port"),
    "nat_ip": ("nat_ip", "public_ip", "translated_ip", "post_nat_ip"),
    "nat_port": ("nat_port", "public_port", "translated_port", "post_nat_port"),
    "dst_ip": (
        "b_party_ip", "destination_ip", "dest_ip", "server_ip", "target_ip",
        "remote_ip", "external_ip", "called_ip",
    ),
    "start_time": (
        "start_time", "session_start", "begin_time", "call_start", "timestamp",
        "start_timestamp", "session_begin", "connection_start",
    ),
    "end_time": (
        "end_time", "session_end", "stop_time", "call_end", "finish_time",
        "end_timestamp", "session_stop", "connection_end",
    ),
    "duration_ms": ("duration_ms", "duration", "session_duration", "elapsed_time"),
    "dst_port": (
        "b_party_port", "destination_port", "dest_port", "server_port",
        "target_port", "remote_port", "called_port",
    ),
    "protocol": ("protocol", "l4_protocol", "transport_protocol", "ip_protocol"),
    "bytes_up": (
        "bytes_up", "uplink_volume", "upload_bytes", "tx_bytes", "sent_bytes",
        "outbound_bytes", "upstream_bytes",
    ),
    "bytes_down": (
        "bytes_down", "downlink_volume", "download_bytes", "rx_bytes",
        "received_bytes", "inbound_bytes", "downstream_bytes", "bytes_transferred",
    ),
}

# Optional fields whose absence limits analysis enough to warn about.
IMPORTANT_OPTIONAL: tuple[str, ...] = ("bytes_up", "bytes_down", "protocol")


class SchemaCatalog:
    """Read-only, ordered registry of canonical fields and their aliases."""

    def __init__(
        self,
        fields: Iterable[SchemaField] = DEFAULT_FIELDS,
        aliases: dict[str, tuple[str, ...]] | None = None,
    ) -> None:
        self._fields: tuple[SchemaField, ...] = tuple(fields)
        self._by_name = {f.name: f for f in self._fields}
        self._aliases = dict(FIELD_ALIASES if aliases is None else aliases)

    def fields(self) -> list[SchemaField]:
        return list(self._fields)

    def required_fields(self) -> list[SchemaField]:
        return [f for f in self._fields if f.required]

    def names(self) -> list[str]:
        return [f.name for f in self._fields]

    def get(self, name: str) -> SchemaField:
        return self._by_name[name]

    def aliases(self, name: str) -> tuple[str, ...]:
        return self._aliases.get(name, ())

    def definition(self) -> dict[str, dict[str, Any]]:
        """Schema as a JSON-ready ``{name: {label, required, description}}`` dict."""
        return {
            f.name: {"label": f.label, "required": f.required, "description": f.description}
            for f in self._fields
        }
