"""Lifecycle states shared by server and client push channels."""

from __future__ import annotations

from enum import Enum


class ConnectionState(str, Enum):
    """State of one push channel object.

    Server side connections only move ``CONNECTING -> OPEN -> CLOSED``.
    The client controller also reports ``IDLE`` before its first attempt and
    ``GIVEN_UP`` once automatic reconnects are exhausted.
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    GIVEN_UP = "given_up"


__all__ = ["ConnectionState"]
