"""Helpers around the schema-less JSON payload of a record.

Payloads are plain ``dict`` objects keyed by field key. Keys that the owning
dataset does not declare are kept as they are.
"""
import json
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from errors import MalformedPayloadError

METADATA_KEYS = ("id", "datasetId", "createdAt", "lastModified")


def load_payload(value) -> Dict[str, Any]:
    """Accept a mapping or a JSON object string and return a fresh dict."""
    if isinstance(value, (str, bytes, bytearray)):
        try:
            value = json.loads(value)
        except ValueError as exc:
            raise MalformedPayloadError(f"Record data is not valid JSON: {exc}") from exc
    if not isinstance(value, Mapping):
        raise MalformedPayloadError("Record data must be a JSON object")
    payload = dict(value)
    try:
        json.dumps(payload)
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError(f"Record data is not JSON serializable: {exc}") from exc
    return payload


def strip_metadata(payload: Mapping) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in METADATA_KEYS}


def get_optional(payload: Mapping, key: str) -> Optional[Any]:
    """Value under ``key``, with explicit nulls treated as absent."""
    value = payload.get(key)
    return None if value is None else value


def canonical_string(value) -> Optional[str]:
    """Render a payload value the way constraint checks compare it.

    Numbers never use exponent notation and integral floats lose their
    fraction (``1.0`` -> ``"1"``), so ``1`` and ``1.0`` compare equal.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return str(value)
        return format(Decimal(repr(value)).normalize(), "f")
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def flatten_record(row) -> Dict[str, Any]:
    """Payload of a ``models.Record`` row plus its metadata keys."""
    data = dict(row.data or {})
    data["id"] = row.id
    data["datasetId"] = row.dataset_id
    data["createdAt"] = row.created_at.isoformat()
    data["lastModified"] = row.last_modified.isoformat()
    return data
