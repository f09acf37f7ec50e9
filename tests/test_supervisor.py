"""Tests for the connection supervisor state machine."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from afkbot.errors import AuthError, NavigationError
from afkbot.models.policy import SupervisorPolicy
from afkbot.models.session import SessionState
from afkbot.supervisor.supervisor import CONNECT, RECONNECT, SPAWN_TIMEOUT, ConnectionSupervisor
from fakes import FakeActivities, FakeConnection


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def make_supervisor(policy: SupervisorPolicy, activator=None) -> ConnectionSupervisor:
    return ConnectionSupervisor(
        connection_factory=FakeConnection,
        activator=activator,
        policy=policy,
        activity_factory=FakeActivities,
    )


async def connect(supervisor: ConnectionSupervisor) -> FakeConnection:
    """Start without activation and return the new connection."""
    assert supervisor.start()
    connection = FakeConnection.instances[-1]
    assert supervisor.state is SessionState.CONNECTING
    return connection


@pytest.mark.asyncio
async def test_double_start_activates_once(supervisor_policy) -> None:
    gate = asyncio.Event()
    activator = AsyncMock()

    async def slow_activate():
        await gate.wait()
        return "online"

    activator.activate.side_effect = slow_activate
    supervisor = make_supervisor(supervisor_policy, activator)

    assert supervisor.start() is True
    assert supervisor.start() is False
    await settle()
    gate.set()
    await settle()

    assert activator.activate.await_count == 1
    assert supervisor.timer_delay(CONNECT) == supervisor_policy.connect_grace_delay
    await supervisor.stop()


@pytest.mark.asyncio
async def test_activation_success_connects_after_grace() -> None:
    policy = SupervisorPolicy(connect_grace_delay=0)
    activator = AsyncMock()
    activator.activate.return_value = "online"
    supervisor = make_supervisor(policy, activator)

    supervisor.start()
    assert supervisor.state is SessionState.ACTIVATING
    await settle()

    assert supervisor.state is SessionState.CONNECTING
    assert len(FakeConnection.instances) == 1
    assert SPAWN_TIMEOUT in supervisor.pending_timers
    await supervisor.stop()


@pytest.mark.asyncio
async def test_spawn_marks_connected_and_starts_activities(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)

    connection.emit("connect")
    connection.emit("spawn")

    assert supervisor.state is SessionState.CONNECTED
    assert SPAWN_TIMEOUT not in supervisor.pending_timers
    assert supervisor.attempts.attempt_number == 0
    assert supervisor._activities.started
    assert supervisor.start() is False
    await supervisor.stop()


@pytest.mark.asyncio
async def test_banned_kick_schedules_nothing(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)
    connection.emit("spawn")
    activities = supervisor._activities

    connection.emit("kicked", {"translate": "multiplayer.disconnect.banned"})
    connection.emit("end", "disconnect.quitting")

    assert supervisor.pending_timers == []
    assert supervisor.state is SessionState.IDLE
    assert "banned" in supervisor.halted_reason
    assert connection.terminated
    assert activities.stopped


@pytest.mark.asyncio
async def test_duplicate_login_waits_long(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)

    connection.emit("kicked", "multiplayer.disconnect.duplicate_login")

    assert supervisor.timer_delay(RECONNECT) == supervisor_policy.duplicate_login_delay
    assert supervisor.consecutive_failures == 0
    await supervisor.stop()


@pytest.mark.asyncio
async def test_kick_then_end_schedules_one_reconnect(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)
    connection.emit("spawn")

    connection.emit("kicked", {"text": "Server closed"})
    connection.emit("end", "socketClosed")

    assert supervisor.pending_timers == [RECONNECT]
    assert supervisor.timer_delay(RECONNECT) == supervisor_policy.kick_retry_delay
    assert supervisor.consecutive_failures == 1
    await supervisor.stop()


@pytest.mark.asyncio
async def test_socket_closed_waits_longer_than_graceful_end(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)
    connection.emit("end", "socketClosed")
    socket_delay = supervisor.timer_delay(RECONNECT)
    await supervisor.stop()

    other = make_supervisor(supervisor_policy)
    connection = await connect(other)
    connection.emit("end", "disconnect.quitting")
    graceful_delay = other.timer_delay(RECONNECT)
    await other.stop()

    assert socket_delay > graceful_delay


@pytest.mark.asyncio
async def test_benign_error_is_ignored(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)
    connection.emit("spawn")

    connection.emit("error", {"message": "PartialReadError: Read error for declare_recipes"})

    assert supervisor.state is SessionState.CONNECTED
    assert not connection.terminated
    assert RECONNECT not in supervisor.pending_timers
    await supervisor.stop()


@pytest.mark.asyncio
async def test_error_drops_connection_and_retries(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)

    connection.emit("error", {"message": "connect ECONNREFUSED"})

    assert supervisor.state is SessionState.IDLE
    assert connection.terminated
    assert supervisor.timer_delay(RECONNECT) == supervisor_policy.error_retry_delay
    assert SPAWN_TIMEOUT not in supervisor.pending_timers
    await supervisor.stop()


@pytest.mark.asyncio
async def test_spawn_timeout_terminates_and_retries() -> None:
    policy = SupervisorPolicy(spawn_timeout=0)
    supervisor = make_supervisor(policy)
    connection = await connect(supervisor)

    await settle()

    assert connection.terminated
    assert supervisor.state is SessionState.IDLE
    assert supervisor.timer_delay(RECONNECT) == policy.spawn_timeout_retry_delay
    await supervisor.stop()


@pytest.mark.asyncio
async def test_reconnect_replaces_connection() -> None:
    policy = SupervisorPolicy(end_retry_delay=0)
    supervisor = make_supervisor(policy)
    first = await connect(supervisor)
    first.emit("spawn")

    first.emit("end", "disconnect.quitting")
    await settle()

    assert len(FakeConnection.instances) == 2
    second = FakeConnection.instances[-1]
    assert supervisor.connection is second
    first.emit("spawn")
    assert supervisor.state is SessionState.CONNECTING
    second.emit("spawn")
    assert supervisor.state is SessionState.CONNECTED
    await supervisor.stop()


@pytest.mark.asyncio
async def test_repeated_activation_failures_trigger_cooldown() -> None:
    policy = SupervisorPolicy(activation_retry_delay=0, max_activation_attempts=5)
    activator = AsyncMock()
    activator.activate.side_effect = NavigationError("Server list did not load")
    supervisor = make_supervisor(policy, activator)

    supervisor.start()
    for _ in range(50):
        await asyncio.sleep(0)
        if supervisor.timer_delay(RECONNECT) == policy.activation_cooldown:
            break

    assert activator.activate.await_count == 5
    assert supervisor.timer_delay(RECONNECT) == policy.activation_cooldown
    assert supervisor.attempts.attempt_number == 0
    await supervisor.stop()


@pytest.mark.asyncio
async def test_auth_error_halts(supervisor_policy) -> None:
    activator = AsyncMock()
    activator.activate.side_effect = AuthError("Missing Aternos credentials")
    supervisor = make_supervisor(supervisor_policy, activator)

    supervisor.start()
    await settle()

    assert supervisor.pending_timers == []
    assert supervisor.halted_reason
    assert supervisor.state is SessionState.IDLE


@pytest.mark.asyncio
async def test_stop_cancels_everything(supervisor_policy) -> None:
    gate = asyncio.Event()
    activator = AsyncMock()
    activator.activate.side_effect = gate.wait
    supervisor = make_supervisor(supervisor_policy, activator)

    supervisor.start()
    await settle()
    await supervisor.stop()

    assert supervisor.pending_timers == []
    assert supervisor.start() is False
    assert supervisor._schedule(RECONNECT, 1, supervisor.start) is False
    assert supervisor.state is SessionState.IDLE


class HangingTeardownActivator:
    """Activation whose cleanup never finishes once cancelled."""

    def __init__(self) -> None:
        self.cleanup_started = asyncio.Event()

    async def activate(self) -> str:
        try:
            await asyncio.Event().wait()
        finally:
            self.cleanup_started.set()
            await asyncio.sleep(100)
        return "online"


@pytest.mark.asyncio
async def test_stop_times_out_when_activation_teardown_hangs(supervisor_policy) -> None:
    activator = HangingTeardownActivator()
    supervisor = make_supervisor(supervisor_policy, activator)
    supervisor.start()
    await settle()
    activation = supervisor._activation_task

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(supervisor.stop(), timeout=0.2)

    assert activator.cleanup_started.is_set()
    assert not activation.done()
    activation.cancel()
    await asyncio.wait([activation])


@pytest.mark.asyncio
async def test_stop_terminates_open_connection(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)
    connection.emit("spawn")

    await supervisor.stop()

    assert connection.terminated
    assert supervisor.connection is None
    assert supervisor.pending_timers == []


@pytest.mark.asyncio
async def test_status_snapshot(supervisor_policy) -> None:
    supervisor = make_supervisor(supervisor_policy)
    connection = await connect(supervisor)
    connection.emit("kicked", "Server is restarting")

    status = supervisor.status()

    assert status.state is SessionState.IDLE
    assert status.consecutive_failures == 1
    assert status.last_disconnect.startswith("kicked:other")
    assert status.pending_timers == [RECONNECT]
    await supervisor.stop()
