from __future__ import annotations

import logging
from typing import Callable, List, Sequence, Tuple

logger = logging.getLogger("dynamic_memory.snapshot")

Listener = Callable[[Tuple[str, ...]], None]


class MemorySnapshot:
    """
    Digests produced by the most recent summarizing run.

    Single writer (the pipeline that owns it); readers either poll read()
    or subscribe for a callback on every publish.
    """

    def __init__(self):
        self._digests: Tuple[str, ...] = ()
        self._listeners: List[Listener] = []

    def read(self) -> Tuple[str, ...]:
        return self._digests

    def as_text(self, sep: str = "\n") -> str:
        return sep.join(self._digests)

    def publish(self, digests: Sequence[str]) -> None:
        self._digests = tuple(digests)
        for listener in list(self._listeners):
            try:
                listener(self._digests)
            except Exception as e:
                logger.error("snapshot listener failed: %s", e)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
