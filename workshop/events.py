# ortoist/workshop/events.py

from __future__ import annotations

from dataclasses import dataclass
import functools
import itertools
import logging
import threading
import weakref
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

UPDATE = "update"
CLEAR = "clear"


@dataclass(frozen=True)
class JobUpdate:
    """Payload published once for every change to a technician's jobs."""

    type: str
    technician_email: str
    pending_count: int
    job_id: Optional[int] = None


Listener = Callable[[JobUpdate], None]


class JobEvents:
    """Process-wide fan-out of job updates to every open view.

    Listeners are called synchronously in the order they subscribed. A
    listener that raises is logged and the remaining listeners still run.

    A bound method subscribed with ``weak=True`` is held through a weak
    reference and drops out of the registry once its object is collected,
    so a session that ends without logging out leaves nothing behind.
    """

    def __init__(self) -> None:
        self._listeners: Dict[int, Callable[[], Optional[Listener]]] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.RLock()

    def subscribe(self, listener: Listener, weak: bool = False) -> int:
        with self._lock:
            token = next(self._tokens)
            if weak:
                ref = weakref.WeakMethod(listener, functools.partial(self._expire, token))
            else:
                ref = functools.partial(_resolve, listener)
            self._listeners[token] = ref
            return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def __len__(self) -> int:
        return len(self._listeners)

    def publish(self, event: JobUpdate) -> None:
        with self._lock:
            refs = list(self._listeners.values())
        for ref in refs:
            listener = ref()
            if listener is None:
                continue
            try:
                listener(event)
            except Exception:
                logger.exception("Job update listener %r failed for %s", listener, event)

    def _expire(self, token: int, _ref) -> None:
        logger.debug("Dropping listener %s whose owner was collected", token)
        self.unsubscribe(token)


def _resolve(listener: Listener) -> Listener:
    return listener
