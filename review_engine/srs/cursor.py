"""Opaque pagination cursors.

A cursor is the sort key of the last row on a page, serialized as compact JSON
and wrapped in URL-safe base64 without padding.
"""

import base64
import binascii
import json
from datetime import datetime
from typing import Any

from review_engine.errors import ErrorCode, InvalidInput


def encode_cursor(values: dict[str, Any]) -> str:
    raw = json.dumps(values, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> dict[str, Any]:
    """Decode a cursor produced by ``encode_cursor`` or raise InvalidInput."""
    padded = token + "=" * (-len(token) % 4)
    try:
        values = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError):
        raise _invalid_cursor() from None
    if not isinstance(values, dict):
        raise _invalid_cursor()
    return values


def encode_event_cursor(reviewed_at: datetime, event_id: int) -> str:
    return encode_cursor({"t": reviewed_at.isoformat(), "id": event_id})


def decode_event_cursor(token: str) -> tuple[datetime, int]:
    values = decode_cursor(token)
    try:
        return datetime.fromisoformat(values["t"]), int(values["id"])
    except (KeyError, TypeError, ValueError):
        raise _invalid_cursor() from None


def encode_stats_cursor(next_review_at: datetime, card_id: str) -> str:
    return encode_cursor({"t": next_review_at.isoformat(), "card": card_id})


def decode_stats_cursor(token: str) -> tuple[datetime, str]:
    values = decode_cursor(token)
    try:
        card_id = values["card"]
        if not isinstance(card_id, str):
            raise TypeError(card_id)
        return datetime.fromisoformat(values["t"]), card_id
    except (KeyError, TypeError, ValueError):
        raise _invalid_cursor() from None


def _invalid_cursor() -> InvalidInput:
    return InvalidInput("Cursor is invalid.", code=ErrorCode.INVALID_QUERY)
