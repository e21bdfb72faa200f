# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/k8s/client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ..models import Job, JobSpec
from ..runner.context import RunContext
from .convert import cluster_error, job_from_api
from .stream import KubernetesJobStream

log = logging.getLogger("jobrunner")

# Floor for per-request timeouts so a nearly-expired deadline still gets an answer.
MIN_REQUEST_TIMEOUT = 1.0


def build_api_client(
    *,
    kube_context: Optional[str] = None,
    kubeconfig: Optional[str] = None,
    in_cluster: bool = False,
) -> client.ApiClient:
    """
    Load cluster credentials.

    Args:
        kube_context: kubeconfig context to use (default: current context)
        kubeconfig: kubeconfig path (default: $KUBECONFIG or ~/.kube/config)
        in_cluster: use the pod's service account instead of a kubeconfig
    """
    if in_cluster:
        cfg = client.Configuration()
        config.load_incluster_config(client_configuration=cfg)
        return client.ApiClient(cfg)
    return config.new_client_from_config(config_file=kubeconfig, context=kube_context)


def request_timeout(ctx: RunContext) -> Dict[str, Any]:
    remaining = ctx.remaining()
    if remaining is None:
        return {}
    return {"_request_timeout": max(remaining, MIN_REQUEST_TIMEOUT)}


class KubernetesClusterClient:
    """
    ClusterClient backed by the Kubernetes batch/v1 API.
    """

    def __init__(
        self,
        api_client: Optional[client.ApiClient] = None,
        *,
        watch_timeout_seconds: int = 60,
        propagation_policy: str = "Background",
    ):
        self.batch = client.BatchV1Api(api_client)
        self.watch_timeout_seconds = watch_timeout_seconds
        self.propagation_policy = propagation_policy

    @classmethod
    def from_settings(cls, settings) -> "KubernetesClusterClient":
        api = build_api_client(
            kube_context=settings.kube_context,
            kubeconfig=settings.kubeconfig,
            in_cluster=settings.in_cluster,
        )
        return cls(api, watch_timeout_seconds=settings.watch_timeout_seconds)

    def create(self, namespace: str, spec: JobSpec, ctx: RunContext) -> Job:
        log.debug("POST batch/v1 job %s/%s", namespace, spec.name)
        try:
            obj = self.batch.create_namespaced_job(namespace, spec.body(), **request_timeout(ctx))
        except ApiException as exc:
            raise cluster_error(exc, f"create job {namespace}/{spec.name}") from exc
        return job_from_api(obj)

    def get(self, namespace: str, name: str, ctx: RunContext) -> Job:
        try:
            obj = self.batch.read_namespaced_job_status(name, namespace, **request_timeout(ctx))
        except ApiException as exc:
            raise cluster_error(exc, f"get job {namespace}/{name}") from exc
        return job_from_api(obj)

    def delete(self, namespace: str, name: str, ctx: RunContext) -> None:
        # Background propagation removes the job's pods as well.
        body = client.V1DeleteOptions(propagation_policy=self.propagation_policy)
        log.debug("DELETE batch/v1 job %s/%s (propagation=%s)", namespace, name, self.propagation_policy)
        try:
            self.batch.delete_namespaced_job(name, namespace, body=body, **request_timeout(ctx))
        except ApiException as exc:
            raise cluster_error(exc, f"delete job {namespace}/{name}") from exc

    def watch(self, namespace: str, name: str, ctx: RunContext) -> KubernetesJobStream:
        return KubernetesJobStream(
            self.batch,
            namespace,
            name,
            timeout_seconds=self.watch_timeout_seconds,
        )
