"""
Last-request-wins sequencing for overlapping fetches.

In-flight requests are never cancelled. Each request takes a token from a
monotonically increasing counter and its response is applied only if no
newer token has been issued meanwhile.
"""
import itertools
import threading


class RequestSequencer:
    def __init__(self):
        self._counter = itertools.count(1)
        self._latest = 0
        self._lock = threading.Lock()

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        with self._lock:
            self._latest = next(self._counter)
            return self._latest

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._latest
