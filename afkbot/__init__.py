"""Keeps an AFK client connected to an Aternos-hosted Minecraft server."""

__version__ = "0.1.0"
