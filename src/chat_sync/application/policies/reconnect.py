from __future__ import annotations

from typing import Protocol


class ReconnectPolicy(Protocol):
    def next_delay(self) -> float | None:
        """Seconds to wait before the next automatic attempt, or None to stop."""
        ...

    def reset(self) -> None: ...


class NoReconnect:
    """Reconnection is left to the consumer calling connect() again."""

    def next_delay(self) -> float | None:
        return None

    def reset(self) -> None:
        pass


class ExponentialBackoff:
    """base * 2**attempt, capped at max_delay, for at most max_attempts tries."""

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        max_attempts: int = 10,
    ) -> None:
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._max_attempts = max_attempts
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    def next_delay(self) -> float | None:
        if self._attempts >= self._max_attempts:
            return None
        delay = min(self._base_delay * (2 ** self._attempts), self._max_delay)
        self._attempts += 1
        return delay

    def reset(self) -> None:
        self._attempts = 0


def build_policy(
    mode: str,
    *,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    max_attempts: int = 10,
) -> ReconnectPolicy:
    if mode == "backoff":
        return ExponentialBackoff(base_delay, max_delay, max_attempts)
    return NoReconnect()
