"""Turns raw kick/error/end payloads into DisconnectReason values."""

from __future__ import annotations

import json
from typing import Any

from ..constants import (
    BANNED_MARKERS,
    BENIGN_ERROR_MARKERS,
    DUPLICATE_LOGIN_MARKERS,
    NON_CRITICAL_PACKETS,
    SOCKET_CLOSED_TAG,
)
from ..models.disconnect import DisconnectReason, KickKind


def flatten_reason(payload: Any) -> str:
    """Render a kick payload as one string.

    Accepts plain strings, JSON-encoded chat components, and already
    decoded components ({"text", "translate", "extra", "with"}).
    """
    if payload is None:
        return ""
    if isinstance(payload, str):
        stripped = payload.strip()
        if stripped[:1] in ("{", "["):
            try:
                return flatten_reason(json.loads(stripped))
            except ValueError:
                return stripped
        return stripped
    if isinstance(payload, dict):
        parts = []
        for key in ("translate", "text"):
            if payload.get(key):
                parts.append(str(payload[key]))
        for key in ("with", "extra"):
            for child in payload.get(key) or []:
                child_text = flatten_reason(child)
                if child_text:
                    parts.append(child_text)
        return " ".join(parts)
    if isinstance(payload, (list, tuple)):
        return " ".join(filter(None, (flatten_reason(item) for item in payload)))
    return str(payload)


def is_banned(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in BANNED_MARKERS)


def is_duplicate_login(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in DUPLICATE_LOGIN_MARKERS)


def classify_kick(payload: Any) -> DisconnectReason:
    text = flatten_reason(payload)
    if is_banned(text):
        kick = KickKind.BANNED
    elif is_duplicate_login(text):
        kick = KickKind.DUPLICATE_LOGIN
    else:
        kick = KickKind.OTHER
    return DisconnectReason.kicked(kick, payload, text)


def error_message(payload: Any) -> str:
    if isinstance(payload, BaseException):
        return f"{type(payload).__name__}: {payload}"
    if isinstance(payload, dict):
        name = str(payload.get("name") or "")
        message = str(payload.get("message") or "")
        if name and message and not message.startswith(name):
            return f"{name}: {message}"
        return message or name or str(payload)
    return str(payload)


def is_benign_error(payload: Any) -> bool:
    """A decode failure on a packet the client never needs."""
    lowered = error_message(payload).lower()
    if not any(marker in lowered for marker in BENIGN_ERROR_MARKERS):
        return False
    return any(packet in lowered for packet in NON_CRITICAL_PACKETS)


def classify_error(payload: Any) -> DisconnectReason:
    return DisconnectReason.error(payload, error_message(payload))


def classify_end(tag: Any) -> DisconnectReason:
    tag = "" if tag is None else str(tag)
    if tag == SOCKET_CLOSED_TAG:
        return DisconnectReason.socket_closed(tag)
    return DisconnectReason.normal(tag)
