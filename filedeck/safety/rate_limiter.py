"""Sliding-window attempt limiter keyed by request source"""

import time
from collections import defaultdict, deque
from threading import Lock
from typing import Callable, Deque, Dict, Optional

from ..utils.exceptions import RateLimitError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AttemptLimiter:
    """
    Allow at most `max_attempts` per key within `window_seconds`.

    Every call to hit() counts, whatever the outcome of the attempt itself.
    """

    def __init__(
        self,
        max_attempts: int = 20,
        window_seconds: float = 600.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.clock = clock or time.monotonic

        self.attempts: Dict[str, Deque[float]] = defaultdict(deque)
        self.lock = Lock()

    def hit(self, key: str) -> None:
        """
        Record an attempt for `key`.

        Raises:
            RateLimitError: when the key already used its budget for the window
        """
        with self.lock:
            now = self.clock()
            self._clean_old_attempts(now)

            attempts = self.attempts[key]
            if len(attempts) >= self.max_attempts:
                retry_after = int(attempts[0] + self.window_seconds - now) + 1
                logger.warning("Login rate limit reached", source=key, retry_after=retry_after)
                raise RateLimitError(retry_after=retry_after)

            attempts.append(now)

    def _clean_old_attempts(self, now: float) -> None:
        """Drop timestamps that fell out of the window"""
        cutoff = now - self.window_seconds
        for key in list(self.attempts.keys()):
            attempts = self.attempts[key]
            while attempts and attempts[0] <= cutoff:
                attempts.popleft()
            if not attempts:
                del self.attempts[key]
