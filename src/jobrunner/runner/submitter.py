# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import CancellationError, JobRunError, SubmissionError
from ..k8s.interface import ClusterClient
from ..models import Job, JobSpec
from ..observers.dispatcher import EventBus
from ..observers.events import JobSubmitted, SubmissionFailed, new_ctx, stamp
from .context import RunContext

log = logging.getLogger("jobrunner")


class Submitter:
    """Creates the job. One request, no retries."""

    def __init__(self, client: ClusterClient, *, bus: Optional[EventBus] = None):
        self.client = client
        self.bus = bus or EventBus()

    def submit(self, spec: JobSpec, ctx: RunContext, run_ctx: Optional[Dict[str, Any]] = None) -> Job:
        run_ctx = run_ctx or new_ctx(None)
        if ctx.done:
            raise CancellationError(ctx.reason, namespace=spec.namespace, name=spec.name)

        log.debug("creating job %s", spec.key)
        try:
            job = self.client.create(spec.namespace, spec, ctx)
        except Exception as exc:
            self.bus.emit(SubmissionFailed(namespace=spec.namespace, name=spec.name, error=str(exc), **stamp(run_ctx)))
            if isinstance(exc, JobRunError):
                raise
            raise SubmissionError(
                "could not create job", namespace=spec.namespace, name=spec.name, cause=exc
            ) from exc

        log.info("submitted job %s (uid=%s)", spec.key, job.uid)
        self.bus.emit(JobSubmitted(namespace=spec.namespace, name=spec.name, uid=job.uid, **stamp(run_ctx)))
        return job
