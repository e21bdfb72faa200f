# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/models.py

from __future__ import annotations

import copy
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobSpec(BaseModel):
    """A Job to submit. Identity is (namespace, name)."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(min_length=1)
    name: str = Field(min_length=1)
    manifest: Dict[str, Any] = Field(default_factory=dict)  # full batch/v1 Job body

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def body(self) -> Dict[str, Any]:
        """Manifest to send to the cluster, with metadata pinned to this identity."""
        body = copy.deepcopy(self.manifest)
        body.setdefault("apiVersion", "batch/v1")
        body.setdefault("kind", "Job")
        metadata = body.setdefault("metadata", {})
        metadata.pop("generateName", None)
        metadata["name"] = self.name
        metadata["namespace"] = self.namespace
        return body


class JobCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str                       # "Complete" | "Failed" | "Suspended" | ...
    status: str                     # "True" | "False" | "Unknown"
    reason: Optional[str] = None
    message: Optional[str] = None


class JobStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    active: int = Field(default=0, ge=0)
    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    conditions: List[JobCondition] = Field(default_factory=list)

    def _condition(self, kind: str) -> bool:
        return any(c.type == kind and c.status == "True" for c in self.conditions)

    @property
    def complete(self) -> bool:
        return self._condition("Complete")

    @property
    def failed_condition(self) -> bool:
        return self._condition("Failed")

    def is_successful(self) -> bool:
        return self.succeeded >= 1

    def is_terminal(self) -> bool:
        """True once the job will not progress further, either way."""
        return (
            self.succeeded >= 1
            or self.failed >= 1
            or self.complete
            or self.failed_condition
        )

    def describe(self) -> str:
        parts = [f"active={self.active}", f"succeeded={self.succeeded}", f"failed={self.failed}"]
        for c in self.conditions:
            cond = f"{c.type}={c.status}"
            if c.reason:
                cond += f" ({c.reason})"
            parts.append(cond)
        return " ".join(parts)


class Job(BaseModel):
    """A job as the cluster reports it."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str
    uid: Optional[str] = None
    resource_version: Optional[str] = None
    status: JobStatus = Field(default_factory=JobStatus)


class JobEvent(BaseModel):
    """One change notification delivered by a watch."""

    model_config = ConfigDict(frozen=True)

    type: Literal["ADDED", "MODIFIED", "DELETED"]
    job: Job
