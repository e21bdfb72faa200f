# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/k8s/convert.py
from __future__ import annotations

import json
from typing import Any

from kubernetes.client.rest import ApiException

from ..errors import ClusterError, ConflictError, NotFoundError
from ..models import Job, JobCondition, JobStatus


def cluster_error(exc: ApiException, action: str) -> ClusterError:
    """Translate an ApiException into a ClusterError, keeping the server's message."""
    reason, message = exc.reason, None
    try:
        body = json.loads(exc.body or "")
    except (TypeError, ValueError):
        body = None
    if isinstance(body, dict):
        message = body.get("message")
        reason = body.get("reason") or reason
    cls = {404: NotFoundError, 409: ConflictError}.get(exc.status, ClusterError)
    return cls(f"{action}: {message or reason or exc}", status=exc.status, reason=reason)


def job_from_api(obj: Any) -> Job:
    """Convert a V1Job into a Job."""
    meta = obj.metadata
    st = obj.status
    conditions = [
        JobCondition(type=c.type, status=c.status, reason=c.reason, message=c.message)
        for c in ((st.conditions if st else None) or [])
    ]
    status = JobStatus(
        active=(st.active if st else None) or 0,
        succeeded=(st.succeeded if st else None) or 0,
        failed=(st.failed if st else None) or 0,
        conditions=conditions,
    )
    return Job(
        namespace=meta.namespace,
        name=meta.name,
        uid=meta.uid,
        resource_version=meta.resource_version,
        status=status,
    )
