"""Disconnect reasons produced by the game connection layer."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class DisconnectKind(str, Enum):
    SOCKET_CLOSED = "socket_closed"
    KICKED = "kicked"
    ERROR = "error"
    NORMAL = "normal"


class KickKind(str, Enum):
    BANNED = "banned"
    DUPLICATE_LOGIN = "duplicate_login"
    OTHER = "other"


class DisconnectReason(BaseModel):
    """Tagged variant: SocketClosed | Kicked(payload) | ErrorEvent(payload) | Normal."""

    model_config = ConfigDict(frozen=True)

    kind: DisconnectKind
    kick: Optional[KickKind] = None
    payload: Any = None
    text: str = ""

    @classmethod
    def socket_closed(cls, tag: str = "") -> "DisconnectReason":
        return cls(kind=DisconnectKind.SOCKET_CLOSED, payload=tag, text=tag)

    @classmethod
    def normal(cls, tag: str = "") -> "DisconnectReason":
        return cls(kind=DisconnectKind.NORMAL, payload=tag, text=tag)

    @classmethod
    def error(cls, payload: Any, text: str) -> "DisconnectReason":
        return cls(kind=DisconnectKind.ERROR, payload=payload, text=text)

    @classmethod
    def kicked(cls, kick: KickKind, payload: Any, text: str) -> "DisconnectReason":
        return cls(kind=DisconnectKind.KICKED, kick=kick, payload=payload, text=text)

    def describe(self) -> str:
        label = self.kind.value
        if self.kick is not None:
            label = f"{label}:{self.kick.value}"
        return f"{label} ({self.text})" if self.text else label
