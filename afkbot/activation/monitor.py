"""Watches a server through its preparing/starting phase."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..constants import STATUS_OFFLINE, STATUS_ONLINE
from ..models.policy import ActivationPolicy
from .status import StatusPoller, is_starting

logger = logging.getLogger(__name__)


class StartupMonitor:
    def __init__(self, poller: StatusPoller, policy: Optional[ActivationPolicy] = None):
        self._poller = poller
        self._policy = policy or ActivationPolicy()

    async def _pause(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def run(self) -> str:
        """Poll until the server is online, offline, or leaves the starting phase.

        Returns the last status read once monitor_checks polls are used up.
        """
        checks = self._policy.monitor_checks
        logger.info("Monitoring server starting phase...")
        status = ""
        for check in range(1, checks + 1):
            status = await self._poller.poll()
            logger.info(f"Check {check}/{checks}: server status is {status}")

            if status == STATUS_ONLINE:
                logger.info("Server is now ONLINE!")
                return status
            if status == STATUS_OFFLINE:
                logger.warning("Server went offline during startup")
                return status
            if not is_starting(status):
                logger.info(f"Server is no longer in starting phase: {status}")
                return status

            if check < checks:
                await self._pause(self._policy.monitor_interval)

        logger.warning(f"Starting phase monitor timed out, last status: {status}")
        return status
