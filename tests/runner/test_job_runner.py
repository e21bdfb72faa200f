import threading
import time

import pytest

from conftest import END, event, job_spec
from jobrunner.errors import (
    CancellationError,
    CleanupError,
    ClusterError,
    ConflictError,
    JobRunError,
    SubmissionError,
    VerificationError,
    WatchError,
)
from jobrunner.observers.events import JobDeleted, JobStatusObserved, RunSummary
from jobrunner.runner.context import RunContext
from jobrunner.runner.job_runner import JobRunner, RunState


def _runner(cluster, capture=None):
    return JobRunner(cluster, observers=[capture] if capture else [])


def test_successful_job_is_verified_and_deleted(cluster, spec, capture):
    cluster.script = [event(active=1), event(succeeded=1, conditions=[("Complete", "True")])]

    report = _runner(cluster, capture).run(spec)

    assert report.ok
    assert report.succeeded is True
    assert report.status.succeeded == 1
    assert cluster.ops() == ["create", "watch", "get", "delete"]
    assert cluster.calls[-1].name == "build-1" and cluster.calls[-1].namespace == "ci"
    assert ("ci", "build-1") not in cluster.statuses
    assert report.history == [
        RunState.CREATED, RunState.SUBMITTED, RunState.WATCHING,
        RunState.VERIFIED, RunState.CLEANED, RunState.DONE,
    ]

    kinds = capture.kinds()
    for k in ["JobSubmitted", "WatchStarted", "JobStatusObserved", "JobVerified", "JobDeleted", "RunSummary"]:
        assert k in kinds, f"missing event {k}"
    summary = next(e for e in capture.events if isinstance(e, RunSummary))
    assert summary.ok and summary.state == "Done"


def test_non_terminal_update_does_not_unblock(cluster, spec, capture):
    # The first update is the job starting; only the second one is final.
    cluster.script = [event(active=1), event(active=1), event(succeeded=1)]

    report = _runner(cluster, capture).run(spec)

    assert report.ok
    observed = [e for e in capture.events if isinstance(e, JobStatusObserved)]
    assert [e.terminal for e in observed] == [False, False, True]


def test_failed_job_raises_verification_error_and_still_deletes(cluster, spec):
    cluster.script = [event(active=1), event(failed=1, conditions=[("Failed", "True")])]

    with pytest.raises(VerificationError) as ei:
        _runner(cluster).run(spec)

    err = ei.value
    assert err.status.failed == 1
    assert err.cleanup_error is None
    assert "delete" in cluster.ops()
    assert err.report.succeeded is False
    assert err.report.state == RunState.DONE
    assert RunState.CLEANED in err.report.history


def test_create_conflict_aborts_without_watch_or_delete(cluster, spec, capture):
    cluster.create_error = ConflictError('jobs.batch "build-1" already exists', status=409, reason="AlreadyExists")

    with pytest.raises(SubmissionError) as ei:
        _runner(cluster, capture).run(spec)

    assert cluster.ops() == ["create"]
    assert isinstance(ei.value.__cause__, ConflictError)
    assert ei.value.report.state == RunState.ABORTED
    assert ei.value.report.history == [RunState.CREATED, RunState.ABORTED]
    assert "SubmissionFailed" in capture.kinds()


def test_any_create_failure_is_a_submission_error(cluster, spec):
    cluster.create_error = RuntimeError("connection refused")

    with pytest.raises(SubmissionError) as ei:
        _runner(cluster).run(spec)

    assert isinstance(ei.value, JobRunError)
    assert "connection refused" in str(ei.value)


def test_cancel_while_watching_returns_promptly_and_cleans_up(cluster, spec):
    ctx = RunContext()
    timer = threading.Timer(0.1, ctx.cancel)
    timer.start()

    t0 = time.monotonic()
    try:
        with pytest.raises(CancellationError) as ei:
            _runner(cluster).run(spec, ctx)
    finally:
        timer.cancel()

    assert time.monotonic() - t0 < 2.0
    assert ei.value.reason == "cancelled"
    assert cluster.streams[0].stopped.is_set()
    assert cluster.streams[0].stop_calls == 1
    assert "delete" in cluster.ops()
    assert "get" not in cluster.ops()
    assert ei.value.report.state == RunState.ABORTED
    assert RunState.VERIFIED not in ei.value.report.history
    assert not [t for t in threading.enumerate() if t.name == "watch-ci-build-1" and t.is_alive()]


def test_deadline_expiry_is_a_cancellation(cluster, spec):
    with pytest.raises(CancellationError) as ei:
        _runner(cluster).run(spec, RunContext(timeout=0.05))

    assert ei.value.reason == "deadline exceeded"
    assert cluster.streams[0].stopped.is_set()
    assert cluster.ops()[-1] == "delete"


def test_already_cancelled_context_submits_nothing(cluster, spec):
    ctx = RunContext()
    ctx.cancel("interrupted")

    with pytest.raises(CancellationError):
        _runner(cluster).run(spec, ctx)

    assert cluster.ops() == []


def test_watch_failure_surfaces_watch_error_and_cleans_up(cluster, spec):
    cluster.script = [event(active=1), ConnectionResetError("connection reset by peer")]

    with pytest.raises(WatchError) as ei:
        _runner(cluster).run(spec)

    assert isinstance(ei.value.cause, ConnectionResetError)
    assert cluster.ops()[-1] == "delete"
    assert cluster.streams[0].stopped.is_set()


def test_watch_closed_before_terminal_is_a_watch_error(cluster, spec):
    cluster.script = [event(active=1), END]

    with pytest.raises(WatchError, match="closed before the job finished"):
        _runner(cluster).run(spec)

    assert cluster.ops()[-1] == "delete"


def test_cannot_open_watch(cluster, spec):
    cluster.watch_error = ClusterError("forbidden", status=403)

    with pytest.raises(WatchError) as ei:
        _runner(cluster).run(spec)

    assert isinstance(ei.value.__cause__, ClusterError)
    assert cluster.ops() == ["create", "watch", "delete"]


def test_cleanup_failure_after_success_reports_job_succeeded(cluster, spec, capture):
    cluster.script = [event(succeeded=1)]
    cluster.delete_error = ClusterError("etcdserver: request timed out", status=500)

    with pytest.raises(CleanupError) as ei:
        _runner(cluster, capture).run(spec)

    err = ei.value
    assert err.job_succeeded is True
    assert err.report.succeeded is True
    assert err.report.state == RunState.VERIFIED
    assert RunState.CLEANED not in err.report.history
    assert "CleanupFailed" in capture.kinds()
    assert not any(isinstance(e, JobDeleted) for e in capture.events)


def test_verification_failure_takes_priority_over_cleanup_failure(cluster, spec):
    cluster.script = [event(failed=1)]
    cluster.delete_error = ClusterError("etcdserver: request timed out", status=500)

    with pytest.raises(VerificationError) as ei:
        _runner(cluster).run(spec)

    assert isinstance(ei.value.cleanup_error, CleanupError)
    assert ei.value.cleanup_error.job_succeeded is False
    assert ei.value.report.cleanup_error is not None


def test_job_already_gone_counts_as_cleaned(cluster, spec):
    cluster.script = [event(active=1), event(type="DELETED", active=1)]

    with pytest.raises(WatchError, match="deleted while being watched"):
        _runner(cluster).run(spec)

    assert cluster.ops()[-1] == "delete"


def test_cleanup_runs_on_keyboard_interrupt(cluster, spec, monkeypatch):
    runner = _runner(cluster)

    def interrupted(*a, **kw):
        raise KeyboardInterrupt

    monkeypatch.setattr(runner.watcher, "wait", interrupted)

    with pytest.raises(KeyboardInterrupt):
        runner.run(spec)

    assert cluster.ops() == ["create", "delete"]


def test_runner_is_reusable_across_jobs(cluster):
    cluster.script = [event(name="a", succeeded=1)]
    runner = _runner(cluster)
    spec_a = job_spec(name="a")

    report_a = runner.run(spec_a)

    cluster.script = [event(name="b", failed=1)]
    with pytest.raises(VerificationError):
        runner.run(job_spec(name="b"))

    assert report_a.ok
    assert [c.name for c in cluster.calls if c.op == "delete"] == ["a", "b"]


def test_first_pod_failure_ends_the_run_even_if_a_retry_would_succeed(cluster, spec):
    # With backoffLimit > 0 the cluster would go on to retry; the run does not wait for it.
    cluster.script = [event(active=1, failed=1), event(succeeded=1, failed=1)]

    with pytest.raises(VerificationError) as ei:
        _runner(cluster).run(spec)

    assert ei.value.status.failed == 1
    assert ei.value.status.succeeded == 0
    assert cluster.ops()[-1] == "delete"
