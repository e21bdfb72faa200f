# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..errors import CleanupError, JobRunError, VerificationError
from ..k8s.interface import ClusterClient
from ..models import JobSpec, JobStatus
from ..observers.dispatcher import EventBus
from ..observers.events import RunSummary, new_ctx, stamp
from .cleaner import Cleaner
from .context import RunContext
from .submitter import Submitter
from .verifier import Verifier
from .watcher import Watcher

log = logging.getLogger("jobrunner")


class RunState(str, Enum):
    CREATED = "Created"
    SUBMITTED = "Submitted"
    WATCHING = "Watching"
    VERIFIED = "Verified"
    CLEANED = "Cleaned"
    DONE = "Done"
    ABORTED = "Aborted"


@dataclass
class RunOptions:
    cleanup_timeout_seconds: float = 30.0
    kube_context: Optional[str] = None   # only used to label events
    run_id: Optional[str] = None


@dataclass
class RunReport:
    namespace: str
    name: str
    state: RunState = RunState.CREATED
    history: List[RunState] = field(default_factory=lambda: [RunState.CREATED])
    status: Optional[JobStatus] = None
    succeeded: Optional[bool] = None     # None until verification ran
    error: Optional[str] = None
    cleanup_error: Optional[str] = None

    def transition(self, state: RunState) -> None:
        log.debug("job %s/%s: %s -> %s", self.namespace, self.name, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    @property
    def ok(self) -> bool:
        return self.state == RunState.DONE and bool(self.succeeded)

    def summary(self) -> str:
        path = " -> ".join(s.value for s in self.history)
        return f"{self.namespace}/{self.name}: {path}"


class JobRunner:
    """
    Runs a one-shot job to completion: submit, wait for a terminal state,
    verify, delete.

    ``run`` blocks and returns the RunReport when the job succeeded and was
    removed. Anything else raises a JobRunError subclass naming the failed
    phase, with the report attached as ``err.report``. Once the job has been
    created the delete is always attempted, on every exit path.

    A failed run can leave the job on the cluster when the delete itself
    fails; that case always surfaces as a CleanupError, either raised or
    attached to the primary error as ``cleanup_error``.

    A job counts as finished as soon as one pod has failed (``failed >= 1``).
    With a ``backoffLimit`` above zero Kubernetes would retry that pod, so a
    job that fails once and then succeeds is still reported as failed and
    deleted. Set ``backoffLimit: 0`` on jobs run this way.
    """

    def __init__(
        self,
        client: ClusterClient,
        *,
        observers: Optional[List] = None,
        options: Optional[RunOptions] = None,
    ):
        self.options = options or RunOptions()
        self.bus = EventBus(observers or [])
        self.submitter = Submitter(client, bus=self.bus)
        self.watcher = Watcher(client, bus=self.bus)
        self.verifier = Verifier(client, bus=self.bus)
        self.cleaner = Cleaner(client, bus=self.bus)

    def run(self, spec: JobSpec, ctx: Optional[RunContext] = None) -> RunReport:
        ctx = ctx or RunContext()
        report = RunReport(namespace=spec.namespace, name=spec.name)
        run_ctx = new_ctx(context=self.options.kube_context, run_id=self.options.run_id)

        # 1) Submit. Nothing exists yet on failure, so nothing to clean.
        try:
            self.submitter.submit(spec, ctx, run_ctx)
        except JobRunError as exc:
            report.transition(RunState.ABORTED)
            self._fail(report, run_ctx, exc)
            raise
        report.transition(RunState.SUBMITTED)

        primary: Optional[JobRunError] = None
        try:
            # 2) Watch, 3) Verify
            try:
                report.transition(RunState.WATCHING)
                report.status = self.watcher.wait(spec, ctx, run_ctx)
                report.status = self.verifier.verify(spec, ctx, run_ctx)
                report.succeeded = True
                report.transition(RunState.VERIFIED)
            except VerificationError as exc:
                primary = exc
                if exc.status is not None:
                    report.status = exc.status
                    report.succeeded = False
                report.transition(RunState.VERIFIED)
            except JobRunError as exc:
                primary = exc
        finally:
            # 4) Cleanup, whatever happened above
            cleanup = self._cleanup(spec, ctx, report, run_ctx)

        # Watch/cancel failures never reach Verified; the job was still cleaned.
        if report.succeeded is None:
            report.transition(RunState.ABORTED)
        elif cleanup is None:
            report.transition(RunState.DONE)

        if primary is None and cleanup is None:
            self._emit_summary(report, run_ctx)
            return report

        if primary is None:
            raise self._fail(report, run_ctx, cleanup)
        if cleanup is not None:
            log.warning("cleanup also failed after %s error: %s", primary.phase, cleanup)
            primary.cleanup_error = cleanup
        raise self._fail(report, run_ctx, primary)

    def _cleanup(self, spec: JobSpec, ctx: RunContext, report: RunReport, run_ctx) -> Optional[CleanupError]:
        # A cancelled or expired run context still gets its job deleted.
        clean_ctx = ctx.grace(self.options.cleanup_timeout_seconds) if ctx.done else ctx
        try:
            self.cleaner.clean(spec, clean_ctx, run_ctx)
        except CleanupError as exc:
            exc.job_succeeded = report.succeeded
            report.cleanup_error = str(exc)
            return exc
        report.transition(RunState.CLEANED)
        return None

    def _fail(self, report: RunReport, run_ctx, error: JobRunError) -> JobRunError:
        report.error = str(error)
        error.report = report
        self._emit_summary(report, run_ctx, error)
        return error

    def _emit_summary(self, report: RunReport, run_ctx, error: Optional[JobRunError] = None) -> None:
        log.debug(report.summary())
        self.bus.emit(RunSummary(
            namespace=report.namespace,
            name=report.name,
            state=report.state.value,
            ok=error is None,
            error=str(error) if error is not None else None,
            **stamp(run_ctx),
        ))
