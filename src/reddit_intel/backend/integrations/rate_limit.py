"""Client-side request pacing, one limiter per channel."""

import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator


class RateLimiter:
    """Enforces a minimum interval between granted acquisitions.

    Each channel owns its own instance, so one channel's pacing never delays
    another channel. Waiting happens under an internal lock which is always
    released, including when the caller's block raises.

    Example:
        limiter = RateLimiter(min_interval=1.0)
        with limiter.acquire():
            response = session.get(url)
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_granted = None

    @contextmanager
    def acquire(self) -> Iterator[None]:
        with self._lock:
            if self._last_granted is not None:
                wait = self.min_interval - (self._clock() - self._last_granted)
                if wait > 0:
                    self._sleep(wait)
            self._last_granted = self._clock()
        yield
