"""Reads the server status label from the Aternos dashboard."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..constants import QUEUE_PHASES, SELECTORS, STARTING_PHASES, STATUS_ONLINE, TRANSIENT_PHASES
from ..errors import PageStateError
from ..models.policy import ActivationPolicy

logger = logging.getLogger(__name__)


def normalize_status(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def is_transient(status: str) -> bool:
    return any(phase in status for phase in TRANSIENT_PHASES)


def is_starting(status: str) -> bool:
    return any(phase in status for phase in STARTING_PHASES)


def is_queued(status: str) -> bool:
    return any(phase in status for phase in QUEUE_PHASES)


def has_progressed(status: str) -> bool:
    """Online, or past the queue into the starting phase."""
    return status == STATUS_ONLINE or is_starting(status)


class StatusPoller:
    """Reads the status landmark, waiting out short-lived transient labels."""

    def __init__(self, session, policy: Optional[ActivationPolicy] = None):
        self._session = session
        self._policy = policy or ActivationPolicy()

    async def _pause(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def _read(self) -> str:
        text = await self._session.read_text(SELECTORS["status_label"], timeout=self._policy.read_timeout)
        if text is None:
            raise PageStateError("Status label disappeared")
        return normalize_status(text)

    async def poll(self) -> str:
        """Return the current status, lower-cased and trimmed.

        While the label shows a transient phase ("loading", "saving",
        "stopping") it is re-read every transient_poll_interval until it
        changes, for at most max_transient_polls reads.

        Raises:
            PageStateError: the landmark never appeared.
            PageDetachedError: the page went away mid-read.
        """
        await self._session.wait_for(SELECTORS["status_label"], timeout=self._policy.status_timeout)
        status = await self._read()

        for _ in range(self._policy.max_transient_polls):
            if not is_transient(status):
                return status
            logger.info(f"Server is {status}, waiting {self._policy.transient_poll_interval:g} seconds...")
            await self._pause(self._policy.transient_poll_interval)
            after = await self._read()
            if after != status:
                return after

        logger.warning(f"Status still '{status}' after {self._policy.max_transient_polls} re-reads")
        return status
