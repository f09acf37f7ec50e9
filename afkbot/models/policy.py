"""Tunable ceilings and delays for activation and reconnection.

All durations are in seconds.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ActivationPolicy(BaseModel):
    """Limits for driving the Aternos dashboard to a terminal status."""

    # Status loop
    max_server_attempts: int = 10
    retry_interval: float = 10.0
    post_start_delay: float = 5.0
    max_recoveries: int = 3

    # Landmark waits
    status_timeout: float = 30.0
    cookie_verify_timeout: float = 10.0
    login_field_timeout: float = 10.0
    read_timeout: float = 10.0

    # Status poller
    transient_poll_interval: float = 5.0
    max_transient_polls: int = 60

    # Starting-phase monitor
    monitor_checks: int = 30
    monitor_interval: float = 10.0

    # Queue
    max_queue_checks: int = 60
    queue_near_front: int = Field(
        default=3000, description="Positions strictly below this poll at the short interval"
    )
    queue_short_wait: float = 5.0
    queue_long_wait: float = 15.0
    queue_error_wait: float = 10.0
    confirm_timeout: float = 30.0
    post_confirm_delay: float = 5.0


class SupervisorPolicy(BaseModel):
    """Attempt ceilings and reconnect delays for the connection supervisor."""

    max_activation_attempts: int = 5
    activation_retry_delay: float = 10.0
    activation_cooldown: float = 300.0

    connect_grace_delay: float = 15.0
    spawn_timeout: float = 60.0
    spawn_timeout_retry_delay: float = 30.0

    error_retry_delay: float = 30.0
    kick_retry_delay: float = 30.0
    duplicate_login_delay: float = 300.0
    end_retry_delay: float = 30.0
    socket_closed_delay: float = 60.0
    max_backoff_multiplier: int = 4

    shutdown_grace: float = 10.0
