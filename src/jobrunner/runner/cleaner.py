# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import CleanupError, NotFoundError
from ..k8s.interface import ClusterClient
from ..models import JobSpec
from ..observers.dispatcher import EventBus
from ..observers.events import CleanupFailed, JobDeleted, new_ctx, stamp
from .context import RunContext

log = logging.getLogger("jobrunner")


class Cleaner:
    """Deletes the job once its outcome is known, whatever that outcome was."""

    def __init__(self, client: ClusterClient, *, bus: Optional[EventBus] = None):
        self.client = client
        self.bus = bus or EventBus()

    def clean(self, spec: JobSpec, ctx: RunContext, run_ctx: Optional[Dict[str, Any]] = None) -> None:
        run_ctx = run_ctx or new_ctx(None)
        try:
            self.client.delete(spec.namespace, spec.name, ctx)
        except NotFoundError:
            log.info("job %s already gone", spec.key)
        except Exception as exc:
            self.bus.emit(CleanupFailed(namespace=spec.namespace, name=spec.name, error=str(exc), **stamp(run_ctx)))
            raise CleanupError(
                "could not delete job; it may still exist on the cluster",
                namespace=spec.namespace,
                name=spec.name,
                cause=exc,
            ) from exc
        else:
            log.info("deleted job %s", spec.key)

        self.bus.emit(JobDeleted(namespace=spec.namespace, name=spec.name, **stamp(run_ctx)))
