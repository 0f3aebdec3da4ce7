"""
Cooldown after failed token requests.

The platform penalizes clients that retry the token endpoint within a minute
of a failed attempt. AuthManager consults this gate before each token request
when a cooldown is configured.
"""

import time


class AuthCooldown:
    """
    Blocks token requests for a fixed window after a failure.

    A window of 0 disables the gate.
    """

    def __init__(self, window_seconds: float = 0):
        self.window_seconds = window_seconds
        self._failed_at: float | None = None

    @property
    def enabled(self) -> bool:
        return self.window_seconds > 0

    def remaining(self) -> float:
        """Seconds until token requests are allowed again (0 if allowed)."""
        if not self.enabled or self._failed_at is None:
            return 0.0
        elapsed = time.monotonic() - self._failed_at
        if elapsed >= self.window_seconds:
            self._failed_at = None
            return 0.0
        return self.window_seconds - elapsed

    def record_failure(self) -> None:
        if self.enabled:
            self._failed_at = time.monotonic()

    def reset(self) -> None:
        self._failed_at = None
