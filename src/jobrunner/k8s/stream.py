# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/k8s/stream.py
from __future__ import annotations

import functools
import logging
import threading
from typing import Any, Iterator, Optional

from kubernetes import watch
from kubernetes.client.rest import ApiException

from ..models import JobEvent
from .convert import job_from_api

log = logging.getLogger("jobrunner")

GONE = 410


class KubernetesJobStream:
    """
    Change notifications for one job, filtered server side by
    ``metadata.name``.

    List first, then watch from the list's resourceVersion, so a job that
    finished before the watch opened is still reported. When the server
    closes the watch it is reopened from the last seen resourceVersion; when
    that version is too old (410 Gone) the job is listed again.

    ``stop()`` may be called from any thread. It shuts down the socket of the
    open watch request, so a reader blocked on it wakes up, and no request is
    issued after it.
    """

    def __init__(self, batch: Any, namespace: str, name: str, *, timeout_seconds: int = 60):
        self.batch = batch
        self.namespace = namespace
        self.name = name
        self.timeout_seconds = timeout_seconds
        self.field_selector = f"metadata.name={name}"
        self._watch = watch.Watch()
        self._stopped = threading.Event()
        self._lock = threading.Lock()
        self._response = None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def request_timeout(self) -> int:
        return self.timeout_seconds + 5

    def stop(self) -> None:
        with self._lock:
            self._stopped.set()
            response, self._response = self._response, None
        self._watch.stop()
        if response is not None:
            _shutdown(response)

    def _open(self) -> Any:
        """The watch request, registered so stop() can cut it off."""
        list_jobs = self.batch.list_namespaced_job

        @functools.wraps(list_jobs)
        def request(*args, **kwargs):
            response = list_jobs(*args, **kwargs)
            with self._lock:
                if not self.stopped:
                    self._response = response
                    return response
            # stopped while the request was in flight
            _shutdown(response)
            return response

        return request

    def __iter__(self) -> Iterator[JobEvent]:
        resource_version: Optional[str] = None
        while not self.stopped:
            if resource_version is None:
                listing = self.batch.list_namespaced_job(
                    self.namespace,
                    field_selector=self.field_selector,
                    _request_timeout=self.request_timeout,
                )
                if self.stopped:
                    return
                resource_version = listing.metadata.resource_version
                for item in listing.items:
                    yield JobEvent(type="MODIFIED", job=job_from_api(item))
                if self.stopped:
                    return

            try:
                for event in self._watch.stream(
                    self._open(),
                    self.namespace,
                    field_selector=self.field_selector,
                    resource_version=resource_version,
                    timeout_seconds=self.timeout_seconds,
                    _request_timeout=self.request_timeout,
                ):
                    if self.stopped:
                        return
                    obj = event["object"]
                    resource_version = obj.metadata.resource_version
                    yield JobEvent(type=event["type"], job=job_from_api(obj))
            except ApiException as exc:
                if self.stopped:
                    return
                if exc.status != GONE:
                    raise
                log.debug("watch on %s/%s expired, listing again", self.namespace, self.name)
                resource_version = None
            except Exception:
                if not self.stopped:
                    raise
                # reading a shut down socket fails; the stream was closed on purpose
                log.debug("watch on %s/%s closed by stop()", self.namespace, self.name, exc_info=True)
                return
            finally:
                with self._lock:
                    self._response = None


def _shutdown(response: Any) -> None:
    try:
        response.shutdown()
    except (RuntimeError, ValueError, OSError):
        # already released back to the pool
        log.debug("watch response already closed", exc_info=True)
