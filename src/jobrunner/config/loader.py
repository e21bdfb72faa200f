# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/config/loader.py

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import yaml

from ..models import JobSpec
from ..names import unique_job_name
from .models import RunnerSettings

log = logging.getLogger("jobrunner")

ENV_PREFIX = "JOBRUNNER_"

_ENV_FIELDS = {
    "KUBE_CONTEXT": "kube_context",
    "KUBECONFIG": "kubeconfig",
    "IN_CLUSTER": "in_cluster",
    "NAMESPACE": "namespace",
    "TIMEOUT_SECONDS": "timeout_seconds",
    "WATCH_TIMEOUT_SECONDS": "watch_timeout_seconds",
    "CLEANUP_TIMEOUT_SECONDS": "cleanup_timeout_seconds",
    "LOG_DIR": "log_dir",
}


class ManifestError(ValueError):
    """The job manifest cannot be turned into a JobSpec."""


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides) -> RunnerSettings:
    """
    Build RunnerSettings from JOBRUNNER_* environment variables.

    Keyword overrides (e.g. CLI flags) win over the environment; None values
    are ignored so unset flags fall through.
    """
    environ = os.environ if environ is None else environ
    data = {}
    for suffix, field in _ENV_FIELDS.items():
        value = environ.get(ENV_PREFIX + suffix)
        if value not in (None, ""):
            data[field] = value
    data.update({k: v for k, v in overrides.items() if v is not None})
    return RunnerSettings.model_validate(data)


def _load_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ManifestError(f"{path}: invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{path}: expected a Job manifest mapping")
    return data


def load_job(
    path: str | Path,
    *,
    namespace: Optional[str] = None,
    name: Optional[str] = None,
    default_namespace: str = "default",
    generate_name: bool = False,
) -> JobSpec:
    """
    Load a batch/v1 Job manifest from YAML.

    Namespace resolution: ``namespace`` argument, then
    ``metadata.namespace``, then ``default_namespace``. Name resolution:
    ``name`` argument, then ``metadata.name``. With ``generate_name`` the
    resolved name (or ``metadata.generateName``) gets a random suffix.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Job manifest not found: {path}")
    manifest = _load_yaml(path)

    kind = manifest.get("kind", "Job")
    if kind != "Job":
        raise ManifestError(f"{path}: expected kind Job, got {kind}")

    metadata = manifest.get("metadata") or {}
    ns = namespace or metadata.get("namespace") or default_namespace
    job_name = name or metadata.get("name")
    if generate_name or (not job_name and metadata.get("generateName")):
        base = job_name or metadata.get("generateName") or ""
        job_name = unique_job_name(base)
    if not job_name:
        raise ManifestError(f"{path}: metadata.name is required (or pass a name)")

    log.debug("loaded job manifest %s as %s/%s", path, ns, job_name)
    return JobSpec(namespace=ns, name=job_name, manifest=manifest)
