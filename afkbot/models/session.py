"""Pydantic models for session state."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVATING = "activating"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class ActivationAttempt(BaseModel):
    """Consecutive activation failures within the current cycle."""

    attempt_number: int = 0
    max_attempts: int = 5
    last_error: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        return self.attempt_number >= self.max_attempts

    def record_failure(self, error: str) -> None:
        self.attempt_number = min(self.attempt_number + 1, self.max_attempts)
        self.last_error = error

    def reset(self) -> None:
        self.attempt_number = 0
        self.last_error = None


class SessionStatus(BaseModel):
    """Snapshot of the supervisor, served by the health endpoint."""

    state: SessionState = SessionState.IDLE
    connected: bool = False
    activation_attempts: int = 0
    max_activation_attempts: int = 0
    last_activation_error: Optional[str] = None
    consecutive_failures: int = 0
    last_disconnect: Optional[str] = None
    halted_reason: Optional[str] = None
    pending_timers: list[str] = Field(default_factory=list)
