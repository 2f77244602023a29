"""
domain/cursor.py
──────────────────────────────────────────────────────────────────────────────
Opaque pagination cursor and its codec.

Wire format (must stay stable for clients):
  base64( utf-8( JSON {"id": "<entity id>", "createdAt": "<ISO-8601 UTC>"} ) )

No other component interprets the token.  decode_cursor() either returns a
complete Cursor or raises InvalidCursorError — never a partial value and
never any other exception.
"""
from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from taxonomy.domain.exceptions import InvalidCursorError

MAX_CURSOR_LENGTH = 1024

# YYYY-MM-DDTHH:MM:SS, optional 1-6 digit fraction, optional Z or ±HH:MM
_TIMESTAMP = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d{1,6}))?([Zz]|[+-]\d{2}:\d{2})?",
    re.ASCII,
)


@dataclass(frozen=True)
class Cursor:
    """Keyset position: the (created_at, id) sort key of the last seen item."""

    id: str
    created_at: datetime


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    return _as_utc(value).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _parse_timestamp(raw: str) -> datetime:
    match = _TIMESTAMP.fullmatch(raw)
    if match is None:
        raise ValueError(f"unsupported timestamp format {raw!r}")
    date_time, fraction, offset = match.groups()
    # Normalised to the one shape every supported fromisoformat() accepts
    fraction = (fraction or "").ljust(6, "0")
    if offset in (None, "Z", "z"):
        offset = "+00:00"
    return _as_utc(datetime.fromisoformat(f"{date_time}.{fraction}{offset}"))


def encode_cursor(entity_id: str, created_at: datetime) -> str:
    """Encode a keyset position as an opaque token.

    Pure and deterministic: the same (id, created_at) instant always yields
    the same token.
    """
    payload = {"id": entity_id, "createdAt": _format_timestamp(created_at)}
    raw = json.dumps(payload, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(token: str, max_length: int = MAX_CURSOR_LENGTH) -> Cursor:
    """Decode a token produced by encode_cursor().

    Args:
        token:      Client-supplied token.
        max_length: Tokens longer than this are rejected outright.

    Returns:
        The Cursor carried by the token.

    Raises:
        InvalidCursorError: If the token is not base64 of a JSON object with a
            non-empty string ``id`` and a parseable ``createdAt`` timestamp.
    """
    if not isinstance(token, str) or not token or len(token) > max_length:
        raise InvalidCursorError("Cursor is empty, too long or not a string")

    try:
        raw = base64.b64decode(token, validate=True).decode("utf-8")
        payload = json.loads(raw)
    except (binascii.Error, ValueError, RecursionError) as exc:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        raise InvalidCursorError(f"Cursor is not valid base64 JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise InvalidCursorError("Cursor payload is not an object")

    entity_id = payload.get("id")
    created_at = payload.get("createdAt")
    if not isinstance(entity_id, str) or not entity_id:
        raise InvalidCursorError("Cursor is missing 'id'")
    if not isinstance(created_at, str):
        raise InvalidCursorError("Cursor is missing 'createdAt'")

    try:
        parsed = _parse_timestamp(created_at)
    except (ValueError, OverflowError) as exc:
        raise InvalidCursorError(f"Cursor 'createdAt' is not a timestamp: {exc}") from exc

    return Cursor(id=entity_id, created_at=parsed)
