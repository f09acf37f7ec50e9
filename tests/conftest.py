"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from afkbot.models.policy import ActivationPolicy, SupervisorPolicy
from fakes import FakeConnection


@pytest.fixture
def activation_policy() -> ActivationPolicy:
    """Activation limits with every delay zeroed."""
    return ActivationPolicy(
        max_server_attempts=10,
        retry_interval=0,
        post_start_delay=0,
        status_timeout=0,
        cookie_verify_timeout=0,
        login_field_timeout=0,
        read_timeout=1,
        transient_poll_interval=0,
        max_transient_polls=5,
        monitor_checks=5,
        monitor_interval=0,
        max_queue_checks=10,
        queue_short_wait=0,
        queue_long_wait=0,
        queue_error_wait=0,
        confirm_timeout=0,
        post_confirm_delay=0,
    )


@pytest.fixture
def supervisor_policy() -> SupervisorPolicy:
    """Default delays: tests inspect armed timers rather than waiting for them."""
    return SupervisorPolicy()


@pytest.fixture
def cookie_path(tmp_path: Path) -> Path:
    return tmp_path / "cookies.json"


@pytest.fixture(autouse=True)
def reset_fake_connections():
    FakeConnection.instances.clear()
    yield
    FakeConnection.instances.clear()
