# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Iterator, Protocol

from ..models import Job, JobEvent, JobSpec
from ..runner.context import RunContext


class JobStream(Protocol):
    """A change-notification subscription for a single job."""

    def __iter__(self) -> Iterator[JobEvent]: ...

    def stop(self) -> None: ...


class ClusterClient(Protocol):
    """
    Cluster operations the runner needs. Failures raise ClusterError
    (NotFoundError from get when the job is gone).
    """

    def create(self, namespace: str, spec: JobSpec, ctx: RunContext) -> Job: ...

    def get(self, namespace: str, name: str, ctx: RunContext) -> Job: ...

    def delete(self, namespace: str, name: str, ctx: RunContext) -> None: ...

    def watch(self, namespace: str, name: str, ctx: RunContext) -> JobStream: ...
