"""Connection supervisor: activation, connect, spawn tracking and reconnects.

All state lives on the supervisor instance and is only touched from the
event loop thread. Every delay is a named asyncio task so it can be
superseded or cancelled; nothing new is armed once stop() has begun.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from ..activities import ActivityScheduler
from ..errors import AuthError
from ..game.connection import ConnectionFactory, GameConnection, GameConnectionConfig
from ..models.disconnect import DisconnectReason
from ..models.policy import SupervisorPolicy
from ..models.session import ActivationAttempt, SessionState, SessionStatus
from .backoff import counts_as_failure, reconnect_delay
from .reasons import classify_end, classify_error, classify_kick, is_benign_error

logger = logging.getLogger(__name__)

RECONNECT = "reconnect"
CONNECT = "connect"
SPAWN_TIMEOUT = "spawn_timeout"


class Activator(Protocol):
    async def activate(self) -> str: ...


@dataclass
class _Timer:
    task: asyncio.Task
    delay: float


class ConnectionSupervisor:
    """Keeps one game connection alive, activating the server first when needed."""

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        activator: Optional[Activator] = None,
        game_config: Optional[GameConnectionConfig] = None,
        policy: Optional[SupervisorPolicy] = None,
        activity_factory: Optional[Callable[[GameConnection], Any]] = ActivityScheduler,
    ):
        self._connection_factory = connection_factory
        self._activator = activator
        self._game_config = game_config or GameConnectionConfig()
        self._policy = policy or SupervisorPolicy()
        self._activity_factory = activity_factory

        self._state = SessionState.IDLE
        self._busy = False
        self._shutting_down = False
        self._halted_reason: Optional[str] = None
        self._attempts = ActivationAttempt(max_attempts=self._policy.max_activation_attempts)
        self._failures = 0
        self._last_disconnect: Optional[DisconnectReason] = None

        self._connection: Optional[GameConnection] = None
        self._generation = 0
        self._activities = None
        self._activation_task: Optional[asyncio.Task] = None
        self._timers: dict[str, _Timer] = {}

    # ── Introspection ───────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connection(self) -> Optional[GameConnection]:
        return self._connection

    @property
    def attempts(self) -> ActivationAttempt:
        return self._attempts

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    @property
    def halted_reason(self) -> Optional[str]:
        return self._halted_reason

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def pending_timers(self) -> list[str]:
        return [name for name, timer in self._timers.items() if not timer.task.done()]

    def timer_delay(self, name: str) -> Optional[float]:
        timer = self._timers.get(name)
        return timer.delay if timer and not timer.task.done() else None

    def status(self) -> SessionStatus:
        return SessionStatus(
            state=self._state,
            connected=self._state is SessionState.CONNECTED,
            activation_attempts=self._attempts.attempt_number,
            max_activation_attempts=self._attempts.max_attempts,
            last_activation_error=self._attempts.last_error,
            consecutive_failures=self._failures,
            last_disconnect=self._last_disconnect.describe() if self._last_disconnect else None,
            halted_reason=self._halted_reason,
            pending_timers=self.pending_timers,
        )

    # ── Entry points ────────────────────────────────────────────────────────

    def start(self) -> bool:
        """Begin an activation + connection cycle.

        Returns False (and does nothing) while shutting down, while an
        attempt is already in flight, or when already connected.
        """
        if self._shutting_down:
            logger.info("Supervisor is shutting down, ignoring start()")
            return False
        if self._busy:
            logger.info(f"Connection attempt already in flight ({self._state.value}), ignoring start()")
            return False
        if self._state is SessionState.CONNECTED:
            logger.info("Already connected, ignoring start()")
            return False

        self._busy = True
        self._halted_reason = None
        self._cancel_timer(RECONNECT)

        if self._activator is None:
            self._open_connection()
        else:
            self._state = SessionState.ACTIVATING
            self._activation_task = asyncio.create_task(self._activate(), name="supervisor-activation")
        return True

    async def stop(self) -> None:
        """Cancel every timer, abandon any activation and close the connection."""
        if self._shutting_down:
            return
        self._shutting_down = True
        self._state = SessionState.DISCONNECTING
        logger.info("Shutting down supervisor...")

        for name in list(self._timers):
            self._cancel_timer(name)

        task, self._activation_task = self._activation_task, None
        if task and not task.done():
            task.cancel()
            # Cancelling stop() itself must still propagate to the caller.
            await asyncio.wait([task])

        self._stop_activities()
        self._teardown_connection()
        self._busy = False
        self._state = SessionState.IDLE
        logger.info("Supervisor stopped.")

    # ── Activation ──────────────────────────────────────────────────────────

    async def _activate(self) -> None:
        try:
            status = await self._activator.activate()
        except asyncio.CancelledError:
            raise
        except AuthError as e:
            self._busy = False
            self._state = SessionState.IDLE
            self._attempts.record_failure(str(e))
            self._halt(f"Activation login failed: {e}")
            return
        except Exception as e:
            self._on_activation_failed(e)
            return
        finally:
            if self._activation_task is asyncio.current_task():
                self._activation_task = None

        self._attempts.reset()
        grace = self._policy.connect_grace_delay
        logger.info(f"Server is {status}, connecting in {grace:g}s")
        self._schedule(CONNECT, grace, self._open_connection)

    def _on_activation_failed(self, error: Exception) -> None:
        self._busy = False
        self._state = SessionState.IDLE
        self._attempts.record_failure(str(error))
        attempt, ceiling = self._attempts.attempt_number, self._attempts.max_attempts

        if self._attempts.exhausted:
            cooldown = self._policy.activation_cooldown
            logger.error(
                f"Activation failed {attempt}/{ceiling} times (last: {error}), "
                f"cooling down for {cooldown:g}s"
            )
            self._attempts.reset()
            self._schedule(RECONNECT, cooldown, self.start)
        else:
            delay = self._policy.activation_retry_delay
            logger.warning(f"Activation attempt {attempt}/{ceiling} failed: {error}; retrying in {delay:g}s")
            self._schedule(RECONNECT, delay, self.start)

    # ── Game connection ─────────────────────────────────────────────────────

    def _open_connection(self) -> None:
        if self._shutting_down:
            return
        self._teardown_connection()
        self._state = SessionState.CONNECTING
        self._busy = True
        cfg = self._game_config
        logger.info(f"Connecting to {cfg.host}:{cfg.port} as {cfg.username}")

        try:
            connection = self._connection_factory(cfg)
        except Exception as e:
            logger.error(f"Could not create game connection: {e}")
            self._handle_disconnect(classify_error(e))
            return

        self._generation += 1
        generation = self._generation
        self._connection = connection
        connection.on("connect", self._bind(generation, self._on_connect))
        connection.on("spawn", self._bind(generation, self._on_spawn))
        connection.on("error", self._bind(generation, self._on_error))
        connection.on("kicked", self._bind(generation, self._on_kicked))
        connection.on("end", self._bind(generation, self._on_end))
        self._schedule(SPAWN_TIMEOUT, self._policy.spawn_timeout, self._bind(generation, self._on_spawn_timeout))

    def _bind(self, generation: int, handler: Callable[..., None]) -> Callable[..., None]:
        """Drop events from connections that have since been replaced or torn down."""

        def dispatch(*args):
            if generation != self._generation:
                logger.debug(f"Ignoring {handler.__name__} from stale connection")
                return None
            return handler(*args)

        return dispatch

    def _on_connect(self) -> None:
        cfg = self._game_config
        logger.info(f"Connected to {cfg.host}:{cfg.port}")

    def _on_spawn(self) -> None:
        self._cancel_timer(SPAWN_TIMEOUT)
        self._state = SessionState.CONNECTED
        self._busy = False
        self._attempts.reset()
        self._failures = 0
        logger.info("Bot successfully spawned in world")

        if self._activity_factory is not None and self._connection is not None:
            self._stop_activities()
            self._activities = self._activity_factory(self._connection)
            self._activities.start()

    def _on_spawn_timeout(self) -> None:
        delay = self._policy.spawn_timeout_retry_delay
        logger.warning(f"No spawn within {self._policy.spawn_timeout:g}s, dropping connection; retrying in {delay:g}s")
        self._stop_activities()
        self._teardown_connection()
        self._state = SessionState.IDLE
        self._busy = False
        self._failures += 1
        self._schedule(RECONNECT, delay, self.start)

    def _on_error(self, payload: Any) -> None:
        if is_benign_error(payload):
            logger.debug(f"Ignoring benign packet error: {payload}")
            return
        reason = classify_error(payload)
        logger.error(f"Connection error: {reason.text}")
        self._handle_disconnect(reason)

    def _on_kicked(self, payload: Any) -> None:
        reason = classify_kick(payload)
        logger.warning(f"Kicked: {reason.text or payload!r}")
        self._handle_disconnect(reason)

    def _on_end(self, tag: Any = "") -> None:
        reason = classify_end(tag)
        logger.info(f"Bot session ended ({reason.text or 'no reason'})")
        self._handle_disconnect(reason)

    def _handle_disconnect(self, reason: DisconnectReason) -> None:
        self._cancel_timer(SPAWN_TIMEOUT)
        self._last_disconnect = reason
        self._stop_activities()
        self._teardown_connection()
        self._state = SessionState.IDLE
        self._busy = False

        if counts_as_failure(reason):
            self._failures += 1
        delay = reconnect_delay(reason, self._failures, self._policy)
        if delay is None:
            self._halt(f"Not reconnecting after {reason.describe()}")
            return
        logger.info(f"Disconnected: {reason.describe()}; reconnecting in {delay:g}s (failures: {self._failures})")
        self._schedule(RECONNECT, delay, self.start)

    def _halt(self, message: str) -> None:
        self._cancel_timer(RECONNECT)
        self._halted_reason = message
        logger.error(f"{message}. Automatic retries halted until restarted.")

    def _teardown_connection(self) -> None:
        connection, self._connection = self._connection, None
        self._generation += 1
        if connection is None:
            return
        try:
            connection.terminate()
        except Exception as e:
            logger.warning(f"Error terminating previous connection: {e}")

    def _stop_activities(self) -> None:
        activities, self._activities = self._activities, None
        if activities is None:
            return
        try:
            activities.stop()
        except Exception as e:
            logger.warning(f"Error stopping activities: {e}")

    # ── Timers ──────────────────────────────────────────────────────────────

    def _schedule(self, name: str, delay: float, callback: Callable[[], Any]) -> bool:
        if self._shutting_down:
            logger.debug(f"Shutting down, not arming {name} timer")
            return False
        self._cancel_timer(name)
        task = asyncio.create_task(self._fire(name, delay, callback), name=f"supervisor-{name}")
        self._timers[name] = _Timer(task=task, delay=delay)
        return True

    def _cancel_timer(self, name: str) -> None:
        timer = self._timers.pop(name, None)
        if timer and not timer.task.done() and timer.task is not asyncio.current_task():
            timer.task.cancel()

    async def _fire(self, name: str, delay: float, callback: Callable[[], Any]) -> None:
        await asyncio.sleep(delay)
        timer = self._timers.get(name)
        if timer is not None and timer.task is asyncio.current_task():
            del self._timers[name]
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"{name} timer callback failed")
