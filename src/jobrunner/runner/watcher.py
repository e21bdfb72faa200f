# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/runner/watcher.py

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from ..errors import CancellationError, JobRunError, WatchError
from ..k8s.interface import ClusterClient, JobStream
from ..models import JobSpec, JobStatus
from ..observers.dispatcher import EventBus
from ..observers.events import JobStatusObserved, WatchFailed, WatchStarted, new_ctx, stamp
from .context import DEADLINE_EXCEEDED, RunContext

log = logging.getLogger("jobrunner")

# How long wait() gives the listener thread to exit after stopping the stream.
LISTENER_JOIN_SECONDS = 5.0


class _Outcome:
    """
    First result wins: a terminal status or an error. Settling sets the
    stop signal, so it fires at most once.
    """

    def __init__(self) -> None:
        self.stop = threading.Event()
        self._lock = threading.Lock()
        self.status: Optional[JobStatus] = None
        self.error: Optional[JobRunError] = None

    @property
    def settled(self) -> bool:
        return self.stop.is_set()

    def resolve(self, *, status: Optional[JobStatus] = None, error: Optional[JobRunError] = None) -> bool:
        with self._lock:
            if self.stop.is_set():
                return False
            self.status = status
            self.error = error
            self.stop.set()
            return True


class Watcher:
    """
    Blocks until the submitted job reaches a terminal state.

    Events are consumed on a background thread. Non-terminal updates are
    only reported; the caller wakes up on a terminal status, a subscription
    failure, or cancellation of the run context, whichever happens first.
    """

    def __init__(self, client: ClusterClient, *, bus: Optional[EventBus] = None):
        self.client = client
        self.bus = bus or EventBus()

    def wait(self, spec: JobSpec, ctx: RunContext, run_ctx: Optional[Dict[str, Any]] = None) -> JobStatus:
        run_ctx = run_ctx or new_ctx(None)
        ident = {"namespace": spec.namespace, "name": spec.name}

        try:
            stream = self.client.watch(spec.namespace, spec.name, ctx)
        except Exception as exc:
            self.bus.emit(WatchFailed(name=spec.name, error=str(exc), **stamp(run_ctx)))
            raise WatchError("could not open watch", cause=exc, **ident) from exc

        outcome = _Outcome()
        listener = threading.Thread(
            target=self._listen,
            args=(stream, spec, outcome, run_ctx),
            name=f"watch-{spec.namespace}-{spec.name}",
            daemon=True,
        )
        unregister = ctx.on_cancel(
            lambda: outcome.resolve(error=CancellationError(ctx.reason or "cancelled", **ident))
        )
        try:
            log.debug("watching job %s", spec.key)
            self.bus.emit(WatchStarted(**ident, **stamp(run_ctx)))
            listener.start()

            if not outcome.stop.wait(timeout=ctx.remaining()):
                outcome.resolve(error=CancellationError(DEADLINE_EXCEEDED, **ident))
        finally:
            unregister()
            stream.stop()
            if listener.ident is not None:
                listener.join(timeout=LISTENER_JOIN_SECONDS)
                if listener.is_alive():
                    log.warning("listener for job %s still running after stop", spec.key)

        if outcome.error is not None:
            if isinstance(outcome.error, WatchError):
                self.bus.emit(WatchFailed(name=spec.name, error=str(outcome.error), **stamp(run_ctx)))
            raise outcome.error
        log.info("job %s reached a terminal state: %s", spec.key, outcome.status.describe())
        return outcome.status

    def _listen(self, stream: JobStream, spec: JobSpec, outcome: _Outcome, run_ctx: Dict[str, Any]) -> None:
        ident = {"namespace": spec.namespace, "name": spec.name}
        try:
            for event in stream:
                if outcome.settled:
                    return
                if event.job.name != spec.name or event.job.namespace != spec.namespace:
                    continue

                status = event.job.status
                terminal = status.is_terminal()
                log.debug("job %s %s: %s", spec.key, event.type, status.describe())
                self.bus.emit(JobStatusObserved(
                    name=spec.name,
                    event_type=event.type,
                    active=status.active,
                    succeeded=status.succeeded,
                    failed=status.failed,
                    terminal=terminal,
                    **stamp(run_ctx),
                ))

                if event.type == "DELETED":
                    outcome.resolve(error=WatchError("job was deleted while being watched", **ident))
                    return
                if terminal:
                    outcome.resolve(status=status)
                    return
        except Exception as exc:
            err = WatchError("watch subscription failed", cause=exc, **ident)
            err.__cause__ = exc
            outcome.resolve(error=err)
            return

        outcome.resolve(error=WatchError("watch closed before the job finished", **ident))
