"""Application configuration loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
if os.getenv("APP_ENV", "").lower() == "production":
    _DEFAULT_DATA_DIR = Path("/tmp/afkbot")
else:
    _DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

DATA_DIR = Path(os.getenv("DATA_DIR", _DEFAULT_DATA_DIR))
COOKIE_PATH = Path(os.getenv("COOKIE_PATH", DATA_DIR / "cookies.json"))

# Game server
GAME_HOST = os.getenv("host", "localhost")
GAME_PORT = int(os.getenv("port", "25565"))
BOT_NAME = os.getenv("name", "AfkBot")
GAME_VERSION = os.getenv("GAME_VERSION", "1.21.4")

# Health check / keep-warm
HEALTH_HOST = os.getenv("HEALTH_HOST", "0.0.0.0")
HEALTH_PORT = int(os.getenv("server_port", "3000"))
SELF_URL = os.getenv("SELF_URL") or None
SELF_PING_INTERVAL = 12 * 60  # seconds

# Aternos control panel
ATERNOS_USERNAME = os.getenv("ATERNOS_USERNAME") or None
ATERNOS_PASSWORD = os.getenv("ATERNOS_PASSWORD") or None
ATERNOS_SERVER_NAME = os.getenv("ATERNOS_SERVER_NAME") or None
ACTIVATION_ENABLED = os.getenv(
    "ACTIVATION_ENABLED",
    "true" if ATERNOS_USERNAME and ATERNOS_PASSWORD else "false",
).lower() == "true"

# Browser
BROWSER_HEADLESS = os.getenv("BROWSER_HEADLESS", "true").lower() == "true"
BROWSER_TIMEOUT = int(os.getenv("BROWSER_TIMEOUT", "60000"))


def ensure_dirs():
    """Create required data directories if they don't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    COOKIE_PATH.parent.mkdir(parents=True, exist_ok=True)
