"""Schema validation wrappers for inbound viewer messages."""

from __future__ import annotations

from typing import Any

from jsonschema import ValidationError

from ..errors import ProtocolError
from ..validation.validator import get_schema_registry

MESSAGE_SCHEMA_MAP = {
    "bid": "bid",
    "start": "start",
}

# Field names used by earlier clients.
MESSAGE_ALIASES = {
    "bid": {"username": "bidder"},
    "start": {"amount": "opening_price"},
}


def normalize_message(message_type: str, payload: dict[str, Any]) -> dict[str, Any]:
    normalized = dict(payload)
    for alias, canonical in MESSAGE_ALIASES.get(message_type, {}).items():
        if alias in normalized and canonical not in normalized:
            normalized[canonical] = normalized.pop(alias)
    return normalized


def validate_message(payload: dict[str, Any]) -> dict[str, Any]:
    message_type = payload.get("type")
    schema = MESSAGE_SCHEMA_MAP.get(message_type) if isinstance(message_type, str) else None
    if not schema:
        raise ProtocolError(f"unknown message type {message_type!r}")
    normalized = normalize_message(message_type, payload)
    registry = get_schema_registry()
    try:
        registry.validate(schema, normalized)
    except ValidationError as exc:
        raise ProtocolError(f"invalid {message_type} message: {exc.message}") from exc
    return normalized
