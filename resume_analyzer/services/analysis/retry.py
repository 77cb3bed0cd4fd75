"""Bounded retry with linear backoff, plus a request deadline."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from .exceptions import DeadlineExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Deadline:
    """Monotonic point in time after which outstanding work is abandoned."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = clock() + seconds

    @classmethod
    def from_timeout(cls, seconds: Optional[float]) -> Optional["Deadline"]:
        if seconds is None or seconds <= 0:
            return None
        return cls(seconds)

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def cap(self, timeout: float) -> float:
        """Shrink ``timeout`` so a call never outlives the deadline."""
        return min(timeout, self.remaining())


def linear_backoff(base: float) -> Callable[[int], float]:
    """Delay before retry number ``n`` (1-based) is ``base * n``: 1s, 2s, ..."""

    def _delay(retry_number: int) -> float:
        return base * retry_number

    return _delay


def call_with_retry(
    fn: Callable[[], T],
    *,
    max_attempts: int,
    backoff: Callable[[int], float],
    retry_on: Tuple[Type[BaseException], ...],
    sleep: Callable[[float], None] = time.sleep,
    deadline: Optional[Deadline] = None,
    label: str = "call",
) -> T:
    """Call ``fn`` up to ``max_attempts`` times, sleeping ``backoff(n)`` between tries.

    Only exceptions in ``retry_on`` are retried; anything else propagates on the
    first occurrence. When attempts run out the last error is re-raised.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        if deadline is not None and deadline.expired:
            raise DeadlineExceeded(f"{label}: deadline expired before attempt {attempt}")
        try:
            return fn()
        except retry_on as exc:
            if attempt >= max_attempts:
                logger.warning(
                    "%s failed after %d attempt(s): %s", label, attempt, exc
                )
                raise
            delay = backoff(attempt)
            if deadline is not None and deadline.remaining() <= delay:
                raise DeadlineExceeded(
                    f"{label}: no time left to retry after attempt {attempt}"
                ) from exc
            logger.info(
                "%s attempt %d/%d failed (%s); retrying in %.1fs",
                label,
                attempt,
                max_attempts,
                exc,
                delay,
            )
            sleep(delay)
            attempt += 1
