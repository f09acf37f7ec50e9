"""Periodic self-ping so free hosting does not put the process to sleep."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


async def ping_once(client: httpx.AsyncClient, url: str) -> Optional[int]:
    """GET the URL once; returns the status code, or None on failure."""
    try:
        resp = await client.get(url)
    except httpx.TimeoutException:
        logger.warning(f"Self-ping to {url} timed out")
        return None
    except httpx.HTTPError as e:
        logger.warning(f"Self-ping error: {e}")
        return None
    logger.info(f"Self-ping success: {resp.status_code}")
    return resp.status_code


async def keep_warm(url: Optional[str], interval: float) -> None:
    if not url:
        logger.info("SELF_URL not set, self-ping disabled")
        return
    async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
        while True:
            await asyncio.sleep(interval)
            await ping_once(client, url)
