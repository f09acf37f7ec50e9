"""Waits out the Aternos start queue and confirms the start when at the front."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..constants import SELECTORS, STATUS_OFFLINE, STATUS_ONLINE
from ..errors import PageDetachedError, PageStateError, QueueTimeoutError
from ..models.activation import QueuePosition
from ..models.policy import ActivationPolicy
from .monitor import StartupMonitor
from .status import StatusPoller, has_progressed, is_starting

logger = logging.getLogger(__name__)


class QueueWaiter:
    """Polls the queue position until the server can be confirmed.

    Distant positions are polled at queue_long_wait, positions below
    queue_near_front at queue_short_wait.
    """

    def __init__(
        self,
        session,
        poller: StatusPoller,
        monitor: StartupMonitor,
        policy: Optional[ActivationPolicy] = None,
    ):
        self._session = session
        self._poller = poller
        self._monitor = monitor
        self._policy = policy or ActivationPolicy()
        self.last_position = QueuePosition()
        self.confirmations = 0

    async def _pause(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def wait_interval(self, position: QueuePosition) -> float:
        if position.value < self._policy.queue_near_front:
            return self._policy.queue_short_wait
        return self._policy.queue_long_wait

    async def read_position(self) -> QueuePosition:
        pos_text = await self._session.read_text(SELECTORS["queue_position"], timeout=self._policy.read_timeout)
        eta_text = await self._session.read_text(SELECTORS["queue_time"], timeout=self._policy.read_timeout)
        return QueuePosition.parse(pos_text, eta_text.strip() if eta_text else None)

    async def _confirm(self) -> None:
        try:
            await self._session.wait_for(SELECTORS["confirm_button"], timeout=self._policy.confirm_timeout)
            await self._session.click(SELECTORS["confirm_button"], timeout=self._policy.confirm_timeout)
        except PageDetachedError:
            raise
        except PageStateError as e:
            logger.warning(f"Confirm button not clickable: {e}")
            return
        self.confirmations += 1
        logger.info("Confirm button clicked")
        await self._pause(self._policy.post_confirm_delay)

    async def _confirm_and_monitor(self) -> str:
        await self._confirm()
        return await self._monitor.run()

    async def wait(self) -> str:
        """Return the status the server reached after leaving the queue.

        Raises:
            QueueTimeoutError: max_queue_checks used up while still queued.
            PageDetachedError: the page went away; never retried here.
        """
        max_checks = self._policy.max_queue_checks
        self.last_position = QueuePosition()

        for check in range(1, max_checks + 1):
            try:
                if await self._session.is_visible(SELECTORS["confirm_button"]):
                    logger.info("Confirm button is showing")
                    return await self._confirm_and_monitor()

                logger.info(f"Queue check {check}/{max_checks}")
                status = await self._poller.poll()
                if status in (STATUS_ONLINE, STATUS_OFFLINE) or is_starting(status):
                    logger.info(f"Left the queue, status: {status}")
                    return status

                position = await self.read_position()
                self.last_position = position
                logger.info(f"Queue position: {position}")

                if position.value <= 1:
                    logger.info("Queue position reached the front")
                    return await self._confirm_and_monitor()

                delay = self.wait_interval(position)
            except PageDetachedError:
                raise
            except PageStateError as e:
                logger.warning(f"Queue check {check} failed: {e}")
                delay = self._policy.queue_error_wait

            logger.info(f"Waiting {delay:g}s...")
            await self._pause(delay)

        final_status = await self._poller.poll()
        if has_progressed(final_status):
            logger.info(f"Queue exited but server is in valid state: {final_status}")
            return final_status
        raise QueueTimeoutError(max_checks, self.last_position.value)
