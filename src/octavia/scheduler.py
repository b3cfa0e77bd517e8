"""Periodic auto-commit for entities.

Each entity with an interval owns one AutoCommitter: a daemon thread that
wakes every `interval` seconds and commits the entity if it is dirty.

Failures are logged and swallowed. Entity.commit() leaves the dirty flag set
when it raises, so the same changes are retried on the next tick or on the
next explicit commit.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from octavia.errors import EntityDeletedError

if TYPE_CHECKING:
    from octavia.entity import Entity

logger = logging.getLogger("octavia.scheduler")


class AutoCommitter:
    """Cancellable background commit loop bound to one entity."""

    def __init__(self, entity: Entity, interval: float) -> None:
        if interval <= 0:
            msg = f"auto-commit interval must be positive, got {interval!r}"
            raise ValueError(msg)
        self.entity = entity
        self.interval = float(interval)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=f"octavia-autocommit-{self.entity.name}",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the loop to exit and wait for it (unless called from it)."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def tick(self) -> bool:
        """Run one auto-commit pass. Returns True if a commit was written."""
        try:
            return self.entity.commit() if self.entity.dirty else False
        except EntityDeletedError:
            # deleted between the dirty check and the commit
            return False
        except Exception:
            logger.exception("auto-commit failed for %s", self.entity.name)
            return False

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.tick()
