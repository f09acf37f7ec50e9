"""mineflayer bot driven from Python through the JSPyBridge ``javascript`` package.

Bridge callbacks arrive on the bridge's own thread; they are re-posted onto
the asyncio loop that created the connection.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, Callable, Optional

from javascript import On, globalThis, require

from .connection import EVENTS, GameConnectionConfig

logger = logging.getLogger(__name__)


def to_python(value: Any) -> Any:
    """Copy a JS value into plain Python data."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    try:
        return json.loads(globalThis.JSON.stringify(value))
    except Exception:
        return str(value)


def error_payload(err: Any) -> dict:
    try:
        return {"name": str(err.name), "message": str(err.message)}
    except Exception:
        return {"name": "Error", "message": str(err)}


class MineflayerConnection:
    def __init__(self, config: GameConnectionConfig, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        self._handlers: dict[str, list[Callable[..., None]]] = defaultdict(list)
        self._closed = False

        mineflayer = require("mineflayer")
        self._bot = mineflayer.createBot(
            {
                "host": config.host,
                "port": config.port,
                "username": config.username,
                "version": config.version,
                "auth": config.auth,
                "checkTimeoutInterval": config.check_timeout_ms,
                "hideErrors": False,
            }
        )
        for event in EVENTS:
            self._relay(event)

    def _relay(self, event: str) -> None:
        @On(self._bot, event)
        def _handler(this, *args):
            if event == "error":
                args = (error_payload(args[0]) if args else {},)
            elif event == "kicked":
                args = (to_python(args[0]) if args else None,)
            elif event == "end":
                args = (str(args[0]) if args else "",)
            elif event == "chat":
                args = tuple(str(arg) for arg in args[:2])
            else:
                args = ()
            self._loop.call_soon_threadsafe(self._emit, event, *args)

    def _emit(self, event: str, *args) -> None:
        for handler in list(self._handlers[event]):
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Handler for '{event}' failed")

    def on(self, event: str, handler: Callable[..., None]) -> None:
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Callable[..., None]) -> None:
        if handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    def terminate(self, reason: str = "") -> None:
        if self._closed:
            return
        self._closed = True
        self._handlers.clear()
        self._bot.quit(reason or "disconnect.quitting")

    def chat(self, message: str) -> None:
        self._bot.chat(message)

    def set_control_state(self, control: str, state: bool) -> None:
        self._bot.setControlState(control, state)

    def look(self, yaw: float, pitch: float) -> Any:
        return self._bot.look(yaw, pitch, False)

    @property
    def username(self) -> str:
        return str(self._bot.username)

    @property
    def yaw(self) -> float:
        return float(self._bot.entity.yaw)
