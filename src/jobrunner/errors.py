# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/errors.py
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import JobStatus


# ---------------------------------------------------------------------
# Cluster collaborator errors
# ---------------------------------------------------------------------
class ClusterError(RuntimeError):
    """Raised by a ClusterClient when the cluster API rejects a request."""

    def __init__(self, message: str, *, status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class NotFoundError(ClusterError):
    """The job does not exist (HTTP 404)."""


class ConflictError(ClusterError):
    """A job with the same namespace/name already exists (HTTP 409)."""


# ---------------------------------------------------------------------
# Run errors
# ---------------------------------------------------------------------
class JobRunError(RuntimeError):
    """
    Unexpected failure while running a job.

    Every phase of a run raises a subclass of this, so callers can catch a
    single kind and still tell the phases apart through ``phase``.

      - cause:         the collaborator error behind this one, if any
      - cleanup_error: a CleanupError that happened after this error
      - report:        the RunReport of the failed run, set by JobRunner
    """

    phase = "run"

    def __init__(
        self,
        message: str,
        *,
        namespace: Optional[str] = None,
        name: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.namespace = namespace
        self.name = name
        self.cause = cause
        self.cleanup_error: Optional[CleanupError] = None
        self.report = None

    @property
    def job(self) -> str:
        return f"{self.namespace}/{self.name}"

    def __str__(self) -> str:
        msg = f"unexpected {self.phase} failure for job {self.job}: {self.message}"
        if self.cause is not None:
            msg += f": {self.cause}"
        return msg


class SubmissionError(JobRunError):
    phase = "submission"


class WatchError(JobRunError):
    phase = "watch"


class CancellationError(JobRunError):
    phase = "cancellation"

    def __init__(self, reason: str, **kwargs):
        super().__init__(reason, **kwargs)
        self.reason = reason


class VerificationError(JobRunError):
    phase = "verification"

    def __init__(self, message: str, *, status: Optional["JobStatus"] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status

    def __str__(self) -> str:
        msg = super().__str__()
        if self.status is not None:
            msg += f" ({self.status.describe()})"
        return msg


class CleanupError(JobRunError):
    """
    The job could not be deleted and may still exist on the cluster.

    ``job_succeeded`` tells "the job failed" apart from "the job succeeded
    but was left behind": True/False once verification ran, None otherwise.
    """

    phase = "cleanup"

    def __init__(self, message: str, *, job_succeeded: Optional[bool] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.job_succeeded = job_succeeded
