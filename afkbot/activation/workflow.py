"""Brings the Aternos server online: login, navigate, drive status to online.

The workflow owns one ControlSession for the duration of activate() and
always closes it before returning or raising.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from ..config import ATERNOS_PASSWORD, ATERNOS_SERVER_NAME, ATERNOS_USERNAME, COOKIE_PATH
from ..constants import (
    ATERNOS_LOGIN_URL,
    ATERNOS_SERVERS_URL,
    LOGIN_FAILED_MARKER,
    SELECTORS,
    STATUS_OFFLINE,
    STATUS_ONLINE,
)
from ..errors import (
    ActivationError,
    ActivationTimeoutError,
    AuthError,
    NavigationError,
    PageDetachedError,
    PageStateError,
)
from ..models.activation import ActivationResult
from ..models.policy import ActivationPolicy
from .browser import ControlSession
from .cookies import CredentialCache
from .monitor import StartupMonitor
from .queue import QueueWaiter
from .status import StatusPoller, is_queued, is_starting

logger = logging.getLogger(__name__)


def find_server_index(names: list[str], target: Optional[str]) -> int:
    """Index of the listing entry to open: first match on target, else the first entry."""
    if not names:
        raise NavigationError("No servers found")
    if not target:
        return 0
    wanted = target.strip().casefold()
    for index, name in enumerate(names):
        if wanted in name.strip().casefold():
            return index
    raise NavigationError(f'Server "{target}" not found')


class ActivationWorkflow:
    """Logs into Aternos and starts the configured server."""

    def __init__(
        self,
        username: Optional[str] = ATERNOS_USERNAME,
        password: Optional[str] = ATERNOS_PASSWORD,
        server_name: Optional[str] = ATERNOS_SERVER_NAME,
        cookie_path: Path = COOKIE_PATH,
        session_factory: Callable[[], ControlSession] = ControlSession,
        policy: Optional[ActivationPolicy] = None,
    ):
        self._username = username
        self._password = password
        self._server_name = server_name
        self._cookies = CredentialCache(cookie_path)
        self._session_factory = session_factory
        self._policy = policy or ActivationPolicy()
        self.start_clicks = 0

    async def _pause(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def activate(self) -> str:
        """Run login → navigate → status loop and return the terminal status.

        Raises:
            AuthError, NavigationError, PageDetachedError, QueueTimeoutError,
            ActivationTimeoutError: the first error the workflow could not recover from.
        """
        if not self._username or not self._password:
            raise AuthError("Missing Aternos credentials in environment variables")

        session = self._session_factory()
        try:
            await session.start()
            await self.login(session)
            await self.navigate(session)
            return await self.drive(session)
        finally:
            await session.close()

    async def run(self) -> ActivationResult:
        """activate(), with the outcome folded into an ActivationResult."""
        try:
            status = await self.activate()
        except ActivationError as e:
            logger.error(f"Server initiation failed: {e}")
            return ActivationResult(success=False, error=str(e))
        return ActivationResult(success=True, status=status)

    # ── Login ───────────────────────────────────────────────────────────────

    async def login(self, session: ControlSession) -> None:
        if await self._cookie_login(session):
            return
        await self._full_login(session)

    async def _cookie_login(self, session: ControlSession) -> bool:
        cookies = self._cookies.load()
        if not cookies:
            return False

        try:
            await session.add_cookies(cookies)
            await session.goto(ATERNOS_SERVERS_URL)
            await session.wait_for(SELECTORS["server_entry"], timeout=self._policy.cookie_verify_timeout)
        except PageDetachedError:
            raise
        except PageStateError as e:
            logger.info(f"Cookie login failed ({e}), falling back to full login")
            self._cookies.clear()
            return False

        logger.info("Logged in using cookies")
        return True

    async def _full_login(self, session: ControlSession) -> None:
        logger.info("Performing full login")
        await session.goto(ATERNOS_LOGIN_URL, wait_until="networkidle")
        try:
            await session.wait_for(SELECTORS["login_username"], timeout=self._policy.login_field_timeout)
            await session.type(SELECTORS["login_username"], self._username)
            await session.wait_for(SELECTORS["login_password"], timeout=self._policy.login_field_timeout)
            await session.type(SELECTORS["login_password"], self._password)
            await session.submit(SELECTORS["login_submit"])
        except PageStateError as e:
            raise AuthError(f"Full login process failed: {e}") from e

        if LOGIN_FAILED_MARKER in session.url:
            raise AuthError("Login failed: bad credentials or captcha")

        self._cookies.save(await session.cookies())
        logger.info("Login successful, cookies saved for future sessions")

    # ── Navigate ────────────────────────────────────────────────────────────

    async def navigate(self, session: ControlSession) -> None:
        logger.info("Navigating to the servers page")
        try:
            await session.goto(ATERNOS_SERVERS_URL)
            await session.wait_for(SELECTORS["server_entry"], timeout=self._policy.status_timeout)
            names = await session.read_all_text(SELECTORS["server_name"])
        except PageStateError as e:
            raise NavigationError(f"Server list did not load: {e}") from e

        index = find_server_index(names, self._server_name)
        try:
            await session.click(SELECTORS["server_entry"], index=index)
            await session.wait_for(SELECTORS["status_label"], timeout=self._policy.status_timeout)
        except PageStateError as e:
            raise NavigationError(f"Server page did not load: {e}") from e
        logger.info(f"Opened server '{names[index]}'")

    # ── Status loop ─────────────────────────────────────────────────────────

    async def drive(self, session: ControlSession) -> str:
        """Push the server towards online, bounded by max_server_attempts."""
        poller = StatusPoller(session, self._policy)
        monitor = StartupMonitor(poller, self._policy)
        queue = QueueWaiter(session, poller, monitor, self._policy)
        max_attempts = self._policy.max_server_attempts
        recoveries = 0
        needs_recovery = False

        for attempt in range(1, max_attempts + 1):
            try:
                if needs_recovery:
                    await session.recover()
                    await self.navigate(session)
                    needs_recovery = False

                status = await poller.poll()
                logger.info(f"Checking server status (attempt {attempt}/{max_attempts}): {status}")

                if status == STATUS_ONLINE:
                    logger.info("Server is ONLINE!")
                    return status

                if status == STATUS_OFFLINE:
                    logger.info("Starting server")
                    await session.click(SELECTORS["start_button"])
                    self.start_clicks += 1
                    await self._pause(self._policy.post_start_delay)
                    continue

                if is_starting(status):
                    status = await monitor.run()
                    if status == STATUS_ONLINE:
                        return status
                    continue

                if is_queued(status):
                    status = await queue.wait()
                    if status == STATUS_ONLINE:
                        return status
                    continue

                logger.info(f"Unexpected server status: {status}")
                await self._pause(self._policy.retry_interval)

            except PageDetachedError as e:
                recoveries += 1
                if recoveries > self._policy.max_recoveries:
                    raise
                logger.warning(f"Attempting to recover from detached page ({recoveries}/{self._policy.max_recoveries}): {e}")
                needs_recovery = True

            except PageStateError as e:
                logger.warning(f"Server status error (attempt {attempt}/{max_attempts}): {e}")
                await self._pause(self._policy.retry_interval)

        raise ActivationTimeoutError(f"Failed after {max_attempts} attempts")
