# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/config/models.py

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class RunnerSettings(BaseModel):
    """Runtime settings. Read from JOBRUNNER_* env vars, overridden by CLI flags."""

    # Cluster access
    kube_context: Optional[str] = None
    kubeconfig: Optional[str] = None
    in_cluster: bool = False

    # Defaults for jobs
    namespace: str = "default"

    # Waiting
    timeout_seconds: Optional[float] = Field(default=None, gt=0)   # None = wait until cancelled
    watch_timeout_seconds: int = Field(default=60, gt=0)           # server-side watch window
    cleanup_timeout_seconds: float = Field(default=30.0, gt=0)

    # Logging
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".jobrunner" / "logs")
