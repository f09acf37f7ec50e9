"""The game connection capability the supervisor drives."""

from __future__ import annotations

from typing import Any, Callable, Protocol

from pydantic import BaseModel

from ..config import BOT_NAME, GAME_HOST, GAME_PORT, GAME_VERSION

# Events every connection relays; chat carries (username, message)
EVENTS = ("connect", "spawn", "error", "kicked", "end", "chat")


class GameConnectionConfig(BaseModel):
    host: str = GAME_HOST
    port: int = GAME_PORT
    username: str = BOT_NAME
    version: str = GAME_VERSION
    auth: str = "offline"
    check_timeout_ms: int = 30000


class GameConnection(Protocol):
    """A live client connection.

    Handlers registered with on() are invoked on the event loop thread.
    """

    def on(self, event: str, handler: Callable[..., None]) -> None: ...

    def off(self, event: str, handler: Callable[..., None]) -> None: ...

    def terminate(self, reason: str = "") -> None: ...

    def chat(self, message: str) -> None: ...

    def set_control_state(self, control: str, state: bool) -> None: ...

    def look(self, yaw: float, pitch: float) -> Any: ...

    @property
    def username(self) -> str: ...

    @property
    def yaw(self) -> float: ...


ConnectionFactory = Callable[[GameConnectionConfig], GameConnection]
