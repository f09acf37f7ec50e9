"""Process entry point.

Starts the health-check server and the self-ping loop, then hands control
to the ConnectionSupervisor until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import sys

from .activation.workflow import ActivationWorkflow
from .config import ACTIVATION_ENABLED, HEALTH_HOST, HEALTH_PORT, SELF_PING_INTERVAL, SELF_URL, ensure_dirs
from .game.connection import GameConnectionConfig
from .health import start_health_server
from .keepwarm import keep_warm
from .models.policy import SupervisorPolicy
from .supervisor.supervisor import ConnectionSupervisor

# Configure logging to stderr
logging.basicConfig(
    stream=sys.stderr,
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("afkbot")


async def run() -> None:
    from .game.mineflayer import MineflayerConnection

    ensure_dirs()
    policy = SupervisorPolicy()
    activator = ActivationWorkflow() if ACTIVATION_ENABLED else None
    if activator is None:
        logger.info("Aternos credentials not configured, connecting without activation")

    supervisor = ConnectionSupervisor(
        connection_factory=MineflayerConnection,
        activator=activator,
        game_config=GameConnectionConfig(),
        policy=policy,
    )

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_requested.set)

    runner = await start_health_server(supervisor, HEALTH_HOST, HEALTH_PORT)
    pinger = asyncio.create_task(keep_warm(SELF_URL, SELF_PING_INTERVAL), name="keep-warm")

    supervisor.start()
    try:
        await stop_requested.wait()
        logger.info("Received termination signal. Cleaning up...")
    finally:
        pinger.cancel()
        try:
            await asyncio.wait_for(supervisor.stop(), timeout=policy.shutdown_grace)
        except asyncio.TimeoutError:
            logger.error(f"Shutdown did not finish within {policy.shutdown_grace:g}s, forcing exit")
            os._exit(1)
        if runner is not None:
            await runner.cleanup()


def main():
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted before shutdown completed")
    sys.exit(0)


if __name__ == "__main__":
    main()
