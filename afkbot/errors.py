"""Exception hierarchy for server activation."""

import math
from typing import Optional


class ActivationError(Exception):
    """Base exception for the activation workflow."""

    pass


class AuthError(ActivationError):
    """Login failed: bad credentials, captcha, or missing configuration."""

    pass


class NavigationError(ActivationError):
    """Target server entry or its status landmark could not be reached."""

    pass


class PageStateError(ActivationError):
    """A landmark element did not appear, or a page operation timed out."""

    pass


class PageDetachedError(ActivationError):
    """The browser page was closed or detached mid-operation."""

    pass


class ActivationTimeoutError(ActivationError):
    """The status loop ran out of attempts before the server came online."""

    pass


class QueueTimeoutError(ActivationError):
    """The queue check budget ran out before the server left the queue."""

    def __init__(self, checks: int, last_position: Optional[float] = None):
        self.checks = checks
        self.last_position = last_position
        if last_position is None or math.isinf(last_position):
            where = "unknown position"
        else:
            where = f"position {int(last_position)}"
        super().__init__(f"Queue processing failed after {checks} checks at {where}")
