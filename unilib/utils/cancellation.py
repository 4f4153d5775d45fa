from __future__ import annotations

import threading

from unilib.errors import Cancelled


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled("Request was cancelled")


def check(token: CancelToken | None) -> None:
    if token is not None:
        token.raise_if_cancelled()


class LatestOnly:
    """
    Keeps one in-flight token per key. Starting a new lookup for the same key
    cancels the previous one, so an older search can never answer after a
    newer one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: dict = {}

    def begin(self, key) -> CancelToken:
        token = CancelToken()
        with self._lock:
            previous = self._tokens.get(key)
            self._tokens[key] = token
        if previous is not None:
            previous.cancel()
        return token

    def finish(self, key, token: CancelToken) -> None:
        with self._lock:
            if self._tokens.get(key) is token:
                del self._tokens[key]


# searches per (user, channel)
search_registry = LatestOnly()
