"""Idle behaviours run while the bot is in the world: chat, jump, walk.

Players can also trigger behaviours by chatting "hello", "jump" or "spin".
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
import time
from typing import Optional

from .game.connection import GameConnection

logger = logging.getLogger(__name__)

CHAT_MESSAGES = [
    "Hello there!",
    "Beautiful day in Minecraft!",
    "Just exploring around",
    "This area looks nice",
    "Anyone online?",
    "Having fun in the game",
]

_DIRECTION_YAW = {
    "forward": 0.0,
    "back": math.pi,
    "left": math.pi / 2,
    "right": -math.pi / 2,
}

# One full turn in eighth-of-pi steps
SPIN_STEPS = 16
SPIN_INTERVAL = 0.2


class ActivityScheduler:
    """Performs a random action every 10-30s until stopped.

    If nothing has succeeded for idle_limit seconds the next action fires
    after 5s. Action failures are logged and otherwise ignored.
    """

    def __init__(
        self,
        connection: GameConnection,
        min_delay: float = 10.0,
        max_delay: float = 30.0,
        idle_limit: float = 120.0,
        rng: Optional[random.Random] = None,
    ):
        self._connection = connection
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._idle_limit = idle_limit
        self._rng = rng or random.Random()
        self._task: asyncio.Task[None] | None = None
        self._commands: set[asyncio.Task] = set()
        self._listening = False
        self._last_activity = time.monotonic()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._last_activity = time.monotonic()
        self._task = asyncio.create_task(self._loop(), name="activity-scheduler")
        if not self._listening:
            self._connection.on("chat", self.on_chat)
            self._listening = True

    def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None
        if self._listening:
            self._connection.off("chat", self.on_chat)
            self._listening = False
        for task in list(self._commands):
            task.cancel()

    def next_delay(self) -> float:
        if time.monotonic() - self._last_activity > self._idle_limit:
            logger.info("Bot has been idle too long, scheduling activity soon")
            return 5.0
        return self._rng.uniform(self._min_delay, self._max_delay)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.next_delay())
            await self.perform_random_activity()

    async def perform_random_activity(self) -> None:
        if await self._run(self._rng.choice([self.chat, self.jump, self.walk])):
            self._last_activity = time.monotonic()

    async def _run(self, action, *args) -> bool:
        try:
            await action(*args)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Error in {action.__name__}: {e}")
            return False
        return True

    # ── Chat commands ───────────────────────────────────────────────────────

    def on_chat(self, username: str, message: str) -> None:
        if username == self._connection.username:
            return
        logger.info(f"{username}: {message}")

        command = message.strip().lower()
        if command == "hello":
            self._dispatch(self.greet, username)
        elif command == "jump":
            self._dispatch(self.jump_on_request)
        elif command == "spin":
            self._dispatch(self.spin)

    def _dispatch(self, action, *args) -> None:
        task = asyncio.create_task(self._run(action, *args), name=f"chat-{action.__name__}")
        self._commands.add(task)
        task.add_done_callback(self._commands.discard)

    async def greet(self, username: str) -> None:
        self._connection.chat(f"Hello, {username}!")

    async def jump_on_request(self) -> None:
        self._connection.chat("Jumping!")
        await self.jump()

    async def spin(self) -> None:
        logger.info("Bot is spinning around")
        self._connection.chat("Spinning around!")
        for step in range(1, SPIN_STEPS + 1):
            await asyncio.sleep(SPIN_INTERVAL)
            self._connection.look(step * math.pi / 8, 0)

    # ── Actions ─────────────────────────────────────────────────────────────

    async def chat(self) -> None:
        self._connection.chat(self._rng.choice(CHAT_MESSAGES))
        logger.info("Bot sent a chat message")

    async def jump(self) -> None:
        jumps = self._rng.randint(1, 3)
        logger.info(f"Bot jumping {jumps} time(s)")
        for i in range(jumps):
            self._connection.set_control_state("jump", True)
            try:
                await asyncio.sleep(0.3)
            finally:
                self._connection.set_control_state("jump", False)
            if i < jumps - 1:
                await asyncio.sleep(0.7)

    async def walk(self) -> None:
        direction = self._rng.choice(list(_DIRECTION_YAW))
        target = self._connection.yaw + _DIRECTION_YAW[direction]
        target = ((target + math.pi) % (2 * math.pi)) - math.pi
        duration = self._rng.uniform(1.0, 4.0)
        logger.info(f"Bot moving {direction} for {duration:.1f}s")

        self._connection.look(target, 0)
        self._connection.set_control_state("forward", True)
        try:
            await asyncio.sleep(duration)
        finally:
            self._connection.set_control_state("forward", False)
