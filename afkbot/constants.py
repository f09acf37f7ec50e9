"""Aternos URLs, CSS selectors, status vocabularies and kick reason codes."""

# ── URLs ─────────────────────────────────────────────────────────────────────

ATERNOS_BASE = "https://aternos.org"
ATERNOS_LOGIN_URL = f"{ATERNOS_BASE}/go/"
ATERNOS_SERVERS_URL = f"{ATERNOS_BASE}/servers/"

# Present in the URL after a rejected login submit
LOGIN_FAILED_MARKER = "go/?login"

# ── CSS Selectors ────────────────────────────────────────────────────────────

SELECTORS = {
    # Login page
    "login_username": ".username",
    "login_password": ".password",
    "login_submit": ".login-button",

    # Server listing
    "server_entry": ".server-body",
    "server_name": ".server-name",

    # Server detail page
    "status_label": ".statuslabel-label",
    "start_button": "#start",
    "confirm_button": "#confirm",
    "queue_position": ".queue-position",
    "queue_time": ".queue-time",
}

# ── Server Status Phases ─────────────────────────────────────────────────────

STATUS_ONLINE = "online"
STATUS_OFFLINE = "offline"

# Re-read until the label settles
TRANSIENT_PHASES = ("loading", "saving", "stopping")

STARTING_PHASES = ("preparing", "starting", "loading")

QUEUE_PHASES = ("queue", "waiting")

# ── Kick / Error Classification ──────────────────────────────────────────────

BANNED_MARKERS = [
    "multiplayer.disconnect.banned",
    "you are banned",
    "banned from this server",
]

DUPLICATE_LOGIN_MARKERS = [
    "multiplayer.disconnect.duplicate_login",
    "logged in from another location",
    "duplicate_login",
]

# mineflayer reports these when a packet it does not need fails to decode
BENIGN_ERROR_MARKERS = ["partialreaderror", "chunk size is"]

NON_CRITICAL_PACKETS = [
    "declare_recipes",
    "player_info",
    "advancements",
    "entity_metadata",
    "tags",
]

# mineflayer's "end" reason for an abrupt TCP close
SOCKET_CLOSED_TAG = "socketClosed"
