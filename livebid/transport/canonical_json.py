"""Helpers for canonical JSON serialization of viewer and bus messages."""

from __future__ import annotations

from typing import Any

import orjson

from ..auction.models import StateChangeEvent
from ..errors import ProtocolError

_ORJSON_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_STRICT_INTEGER


def canonical_dumps(payload: Any) -> bytes:
    """Return canonical JSON bytes with sorted keys and stable formatting."""
    return orjson.dumps(payload, option=_ORJSON_OPTIONS)


def encode_event(event: StateChangeEvent) -> bytes:
    return canonical_dumps(event.to_wire())


def decode_event(raw: bytes | str) -> StateChangeEvent:
    try:
        payload = orjson.loads(raw)
        return StateChangeEvent.from_wire(payload)
    except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        raise ProtocolError(f"undecodable event payload: {exc}") from exc


def decode_message(raw: bytes | str) -> dict[str, Any]:
    """Parse an inbound viewer message into a JSON object."""
    try:
        payload = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise ProtocolError("message is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ProtocolError("message must be a JSON object")
    return payload
