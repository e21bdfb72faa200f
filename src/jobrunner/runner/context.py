# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/runner/context.py

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

log = logging.getLogger("jobrunner")

DEADLINE_EXCEEDED = "deadline exceeded"


class RunContext:
    """
    Cancellation and deadline for one run.

    Threaded through every cluster call of a run. ``cancel()`` is safe to
    call from any thread; it runs the registered callbacks once, which is how
    a blocked caller gets woken up. It takes locks, so a signal handler must
    hand it to another thread rather than call it directly.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._deadline: Optional[float] = None
        if timeout is not None:
            self._deadline = time.monotonic() + timeout
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._reason: Optional[str] = None

    @property
    def deadline(self) -> Optional[float]:
        """Monotonic clock deadline, or None when the run may wait forever."""
        return self._deadline

    @property
    def reason(self) -> Optional[str]:
        """Why the context is done, or None while it is still live."""
        if self._reason is None and self.expired:
            return DEADLINE_EXCEEDED
        return self._reason

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            callbacks, self._callbacks = self._callbacks, []
        log.debug("run context cancelled: %s", reason)
        for fn in callbacks:
            fn()

    def on_cancel(self, fn: Callable[[], None]) -> Callable[[], None]:
        """
        Register fn to run on cancel. Runs it immediately if already cancelled.
        Returns a function that unregisters it.
        """
        with self._lock:
            if self._reason is None:
                self._callbacks.append(fn)

                def _unregister() -> None:
                    with self._lock:
                        if fn in self._callbacks:
                            self._callbacks.remove(fn)

                return _unregister
        fn()
        return lambda: None

    def grace(self, timeout: float) -> "RunContext":
        """A fresh context for work that must happen even after this one is done."""
        return RunContext(timeout=timeout)
