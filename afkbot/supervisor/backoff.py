"""Reconnect delay selection."""

from __future__ import annotations

from typing import Optional

from ..models.disconnect import DisconnectKind, DisconnectReason, KickKind
from ..models.policy import SupervisorPolicy


def base_delay(reason: DisconnectReason, policy: SupervisorPolicy) -> Optional[float]:
    """Delay class for a disconnect reason; None means do not reconnect."""
    if reason.kind is DisconnectKind.KICKED:
        if reason.kick is KickKind.BANNED:
            return None
        if reason.kick is KickKind.DUPLICATE_LOGIN:
            return policy.duplicate_login_delay
        return policy.kick_retry_delay
    if reason.kind is DisconnectKind.ERROR:
        return policy.error_retry_delay
    if reason.kind is DisconnectKind.SOCKET_CLOSED:
        return policy.socket_closed_delay
    return policy.end_retry_delay


def counts_as_failure(reason: DisconnectReason) -> bool:
    """Duplicate logins resolve on their own and do not escalate the backoff."""
    return not (reason.kind is DisconnectKind.KICKED and reason.kick is KickKind.DUPLICATE_LOGIN)


def reconnect_delay(reason: DisconnectReason, failures: int, policy: SupervisorPolicy) -> Optional[float]:
    """Pure function of (reason, consecutive failure count) to a delay in seconds.

    Repeated failures double the base delay, capped at max_backoff_multiplier.
    Duplicate-login kicks always get their fixed long delay.
    """
    delay = base_delay(reason, policy)
    if delay is None or not counts_as_failure(reason):
        return delay
    multiplier = min(2 ** max(failures - 1, 0), policy.max_backoff_multiplier)
    return delay * multiplier
