"""Debouncing of bursty user input (keystrokes, resizes)."""

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

SEARCH_DELAY_SECONDS = 0.4
RESIZE_DELAY_SECONDS = 0.25


class Debouncer:
    """
    Run ``func`` once input has been quiet for ``delay`` seconds.

    A call arriving while one is pending cancels it and starts the wait
    again with the new arguments, so only the last call of a burst runs.
    ``timer_factory`` defaults to ``threading.Timer``; it must return an
    object with ``start()`` and ``cancel()``.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        delay: float,
        timer_factory: Optional[Callable[..., Any]] = None,
    ):
        self.func = func
        self.delay = delay
        self._timer_factory = timer_factory or threading.Timer
        self._timer = None
        self._generation = 0
        self._lock = threading.Lock()

    def __call__(self, *args, **kwargs):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = self._timer_factory(
                self.delay, self._fire, args=(self._generation, args, kwargs)
            )
            self._timer.start()

    def _fire(self, generation: int, args: tuple, kwargs: dict):
        # A callback already running cannot be cancelled; it may only forget
        # the pending timer when that timer is its own.
        with self._lock:
            if generation == self._generation:
                self._timer = None
        try:
            self.func(*args, **kwargs)
        except Exception:
            logger.exception("Debounced call to %s failed", getattr(self.func, "__name__", self.func))

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
