"""Reconnect timing for the client push channel."""

from __future__ import annotations

import logging

from campus_notify.domain.entities import ConnectionState

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0
DEFAULT_MAX_ATTEMPTS = 5


class ReconnectionPolicy:
    """State machine deciding whether and when to reconnect.

    ``IDLE -> CONNECTING -> OPEN -> CLOSED -> CONNECTING -> ...`` with
    ``GIVEN_UP`` once ``max_attempts`` consecutive retries have failed.
    The policy performs no I/O; the caller reports transport events and
    sleeps for the delay it is handed back.
    """

    def __init__(
        self,
        *,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if base_delay <= 0 or max_delay <= 0:
            raise ValueError("Backoff delays must be positive")
        if max_attempts < 0:
            raise ValueError("max_attempts cannot be negative")
        self.base_delay = base_delay
        self.max_delay = max(max_delay, base_delay)
        self.max_attempts = max_attempts
        self.state = ConnectionState.IDLE
        self.attempt = 0
        self._explicitly_closed = False

    @classmethod
    def from_settings(cls, settings) -> "ReconnectionPolicy":
        return cls(
            base_delay=settings.reconnect_base_delay,
            max_delay=settings.reconnect_max_delay,
            max_attempts=settings.reconnect_max_attempts,
        )

    @property
    def should_run(self) -> bool:
        """``False`` once the channel was closed on purpose or retries ran out."""

        return not self._explicitly_closed and self.state is not ConnectionState.GIVEN_UP

    def delay_for(self, attempt: int) -> float:
        return min(self.max_delay, self.base_delay * (2 ** attempt))

    def begin_connect(self) -> None:
        if not self.should_run:
            raise RuntimeError(f"Cannot connect from state {self.state.value}")
        self.state = ConnectionState.CONNECTING

    def opened(self) -> None:
        self.state = ConnectionState.OPEN
        self.attempt = 0

    def connection_lost(self) -> float | None:
        """Record an unexpected close or failed attempt.

        Returns the seconds to wait before the next attempt, or ``None`` when
        no further attempt should be made.
        """

        if self._explicitly_closed:
            self.state = ConnectionState.CLOSED
            return None

        if self.attempt >= self.max_attempts:
            self.state = ConnectionState.GIVEN_UP
            logger.warning(
                "Giving up on the notification channel after %s reconnect attempts",
                self.attempt,
            )
            return None

        delay = self.delay_for(self.attempt)
        self.attempt += 1
        self.state = ConnectionState.CLOSED
        return delay

    def disconnect(self) -> None:
        """Explicit close: no retry will be scheduled afterwards."""

        self._explicitly_closed = True
        self.state = ConnectionState.CLOSED

    def reset(self) -> None:
        """Manual reconnect: forget previous failures and allow retries again."""

        self._explicitly_closed = False
        self.attempt = 0
        self.state = ConnectionState.IDLE


__all__ = [
    "DEFAULT_BASE_DELAY",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_DELAY",
    "ReconnectionPolicy",
]
