# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import JobRunError, VerificationError
from ..k8s.interface import ClusterClient
from ..models import JobSpec, JobStatus
from ..observers.dispatcher import EventBus
from ..observers.events import JobVerified, new_ctx, stamp
from .context import RunContext

log = logging.getLogger("jobrunner")


class Verifier:
    """Re-reads the job from the cluster and checks that it succeeded."""

    def __init__(self, client: ClusterClient, *, bus: Optional[EventBus] = None):
        self.client = client
        self.bus = bus or EventBus()

    def verify(self, spec: JobSpec, ctx: RunContext, run_ctx: Optional[Dict[str, Any]] = None) -> JobStatus:
        run_ctx = run_ctx or new_ctx(None)
        ident = {"namespace": spec.namespace, "name": spec.name}

        # Status comes from a fresh read, never from the last watch event.
        try:
            job = self.client.get(spec.namespace, spec.name, ctx)
        except JobRunError:
            raise
        except Exception as exc:
            raise VerificationError("could not read job status", cause=exc, **ident) from exc

        status = job.status
        ok = status.is_successful()
        self.bus.emit(JobVerified(name=spec.name, ok=ok, succeeded=status.succeeded, failed=status.failed, **stamp(run_ctx)))
        if not ok:
            raise VerificationError("job did not complete successfully", status=status, **ident)

        log.info("job %s succeeded", spec.key)
        return status
