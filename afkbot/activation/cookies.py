"""Persisted Aternos session cookies, reused across process restarts."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class CredentialCache:
    """A JSON array of browser cookie objects stored at a fixed path."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[list[dict]]:
        """Return the cached cookies, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            cookies = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Cookie cache at {self.path} is unreadable, discarding: {e}")
            self.clear()
            return None
        if not isinstance(cookies, list) or not cookies:
            logger.warning(f"Cookie cache at {self.path} holds no cookies, discarding")
            self.clear()
            return None
        return [c for c in cookies if isinstance(c, dict) and "name" in c and "value" in c]

    def save(self, cookies: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(cookies, indent=2), encoding="utf-8")
        logger.info(f"Saved {len(cookies)} cookies to {self.path}")

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete cookie file: {e}")
