import queue
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pytest

from jobrunner.errors import NotFoundError
from jobrunner.models import Job, JobCondition, JobEvent, JobSpec, JobStatus

END = object()     # scripted: the server closes the watch
_STOP = object()


def status(active=0, succeeded=0, failed=0, conditions=()):
    return JobStatus(
        active=active,
        succeeded=succeeded,
        failed=failed,
        conditions=[JobCondition(type=t, status=s) for t, s in conditions],
    )


def event(name="build-1", namespace="ci", type="MODIFIED", **kw):
    return JobEvent(type=type, job=Job(namespace=namespace, name=name, status=status(**kw)))


def job_spec(name="build-1", namespace="ci"):
    return JobSpec(
        namespace=namespace,
        name=name,
        manifest={
            "apiVersion": "batch/v1",
            "kind": "Job",
            "metadata": {"name": name},
            "spec": {"template": {"spec": {"restartPolicy": "Never", "containers": [{"name": "main", "image": "busybox"}]}}},
        },
    )


@dataclass
class Call:
    op: str
    namespace: str
    name: str


class FakeStream:
    """
    Blocks until scripted items arrive. The cluster's stored status advances
    as each event is delivered, like a real job progressing.
    """

    def __init__(self, cluster: "FakeCluster", namespace: str, name: str):
        self.cluster = cluster
        self.namespace = namespace
        self.name = name
        self._queue: "queue.Queue" = queue.Queue()
        self.stopped = threading.Event()
        self.stop_calls = 0

    def push(self, item) -> None:
        self._queue.put(item)

    def stop(self) -> None:
        self.stop_calls += 1
        self.stopped.set()
        self._queue.put(_STOP)

    def __iter__(self):
        while True:
            item = self._queue.get()
            if item is _STOP or item is END or self.stopped.is_set():
                return
            if isinstance(item, BaseException):
                raise item
            if item.type == "DELETED":
                self.cluster.statuses.pop((self.namespace, self.name), None)
            else:
                self.cluster.statuses[(self.namespace, self.name)] = item.job.status
            yield item


class FakeCluster:
    """In-memory ClusterClient with per-operation failure injection."""

    def __init__(self):
        self.calls: List[Call] = []
        self.statuses: Dict[Tuple[str, str], JobStatus] = {}
        self.script: list = []
        self.streams: List[FakeStream] = []
        self.create_error: Optional[Exception] = None
        self.get_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.watch_error: Optional[Exception] = None

    def ops(self) -> List[str]:
        return [c.op for c in self.calls]

    def create(self, namespace, spec, ctx):
        self.calls.append(Call("create", namespace, spec.name))
        if self.create_error:
            raise self.create_error
        self.statuses[(namespace, spec.name)] = JobStatus()
        return Job(namespace=namespace, name=spec.name, uid="uid-1", resource_version="1")

    def get(self, namespace, name, ctx):
        self.calls.append(Call("get", namespace, name))
        if self.get_error:
            raise self.get_error
        if (namespace, name) not in self.statuses:
            raise NotFoundError(f"job {namespace}/{name} not found", status=404, reason="NotFound")
        return Job(namespace=namespace, name=name, status=self.statuses[(namespace, name)])

    def delete(self, namespace, name, ctx):
        self.calls.append(Call("delete", namespace, name))
        if self.delete_error:
            raise self.delete_error
        if self.statuses.pop((namespace, name), None) is None:
            raise NotFoundError(f"job {namespace}/{name} not found", status=404, reason="NotFound")

    def watch(self, namespace, name, ctx):
        self.calls.append(Call("watch", namespace, name))
        if self.watch_error:
            raise self.watch_error
        stream = FakeStream(self, namespace, name)
        for item in self.script:
            stream.push(item)
        self.streams.append(stream)
        return stream


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)

    def kinds(self):
        return [e.__class__.__name__ for e in self.events]


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def capture():
    return Capture()


@pytest.fixture
def spec():
    return job_spec()
