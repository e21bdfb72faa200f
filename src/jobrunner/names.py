# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/names.py
from __future__ import annotations

import uuid

from . import PLUGIN_NAME, __version__

# Job names must be valid DNS labels.
MAX_NAME_LENGTH = 63
SUFFIX_LENGTH = 8

SOURCE_ANNOTATION = "jobrunner.io/source"
RUN_ID_ANNOTATION = "jobrunner.io/run-id"


def default_source() -> str:
    """Identifies this tool on the jobs it submits."""
    return f"{PLUGIN_NAME}/{__version__}"


def new_id() -> str:
    return str(uuid.uuid4())


def unique_job_name(base: str) -> str:
    """``<base>-<8 hex chars>``, with base clipped so the result fits a DNS label."""
    suffix = uuid.uuid4().hex[:SUFFIX_LENGTH]
    base = base.strip("-").lower()[: MAX_NAME_LENGTH - SUFFIX_LENGTH - 1].rstrip("-")
    return f"{base}-{suffix}" if base else f"job-{suffix}"
