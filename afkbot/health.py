"""Health-check HTTP service.

Endpoints:
    GET /        - Plain-text liveness line plus the current session state
    GET /status  - Supervisor snapshot as JSON
"""

from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web
from aiohttp.web import AppRunner, TCPSite

from .supervisor.supervisor import ConnectionSupervisor

logger = logging.getLogger(__name__)


async def handle_root(request: web.Request) -> web.Response:
    supervisor: ConnectionSupervisor = request.app["supervisor"]
    return web.Response(text=f"Bot is alive!\nstate: {supervisor.state.value}\n")


async def handle_status(request: web.Request) -> web.Response:
    supervisor: ConnectionSupervisor = request.app["supervisor"]
    return web.json_response(supervisor.status().model_dump(mode="json"))


def create_app(supervisor: ConnectionSupervisor) -> web.Application:
    app = web.Application()
    app["supervisor"] = supervisor
    app.router.add_get("/", handle_root)
    app.router.add_get("/status", handle_status)
    return app


async def start_health_server(supervisor: ConnectionSupervisor, host: str, port: int) -> Optional[AppRunner]:
    """Serve the health endpoints; returns None if the port is already taken."""
    runner = AppRunner(create_app(supervisor))
    await runner.setup()
    site = TCPSite(runner, host, port)
    try:
        await site.start()
    except OSError as e:
        logger.error(f"Health server could not bind {host}:{port}: {e}")
        await runner.cleanup()
        return None
    logger.info(f"HTTP server running on {host}:{port}")
    return runner
