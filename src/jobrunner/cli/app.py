# src/jobrunner/cli/app.py
from __future__ import annotations

import signal
import threading
from pathlib import Path
from typing import List, Optional

import typer

from jobrunner.config.loader import ManifestError, load_job, load_settings
from jobrunner.config.models import RunnerSettings
from jobrunner.errors import CleanupError, JobRunError
from jobrunner.k8s.client import KubernetesClusterClient
from jobrunner.logging.log import init_logging
from jobrunner.models import JobSpec
from jobrunner.names import RUN_ID_ANNOTATION, SOURCE_ANNOTATION, default_source
from jobrunner.observers.console import ConsoleObserver
from jobrunner.observers.jsonfile import JsonFileObserver
from jobrunner.observers.logger import LoggerObserver
from jobrunner.runner.context import RunContext
from jobrunner.runner.job_runner import JobRunner, RunOptions


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Run a Kubernetes Job to completion and clean it up")

EXIT_FAILED = 1
EXIT_LEFT_BEHIND = 2   # job succeeded, delete failed


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def annotate(spec: JobSpec, run_id: str) -> JobSpec:
    """Mark the job with the tool that submitted it and the run it belongs to."""
    manifest = dict(spec.manifest)
    metadata = dict(manifest.get("metadata") or {})
    annotations = dict(metadata.get("annotations") or {})
    annotations.setdefault(SOURCE_ANNOTATION, default_source())
    annotations[RUN_ID_ANNOTATION] = run_id
    metadata["annotations"] = annotations
    manifest["metadata"] = metadata
    return spec.model_copy(update={"manifest": manifest})


def build_runner(settings: RunnerSettings, *, observers: List, run_id: str) -> JobRunner:
    return JobRunner(
        KubernetesClusterClient.from_settings(settings),
        observers=observers,
        options=RunOptions(
            cleanup_timeout_seconds=settings.cleanup_timeout_seconds,
            kube_context=settings.kube_context,
            run_id=run_id,
        ),
    )


def interrupt_handler(ctx: RunContext):
    """
    SIGINT handler. Cancels ctx on a helper thread: the interrupted main
    thread may be holding one of the locks cancel() takes.
    """

    def handler(signum, frame):
        threading.Thread(target=ctx.cancel, args=("interrupted",), name="sigint-cancel", daemon=True).start()

    return handler


def exit_code_for(err: JobRunError) -> int:
    if isinstance(err, CleanupError) and err.job_succeeded:
        return EXIT_LEFT_BEHIND
    return EXIT_FAILED


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command("run")
def run(
    manifest: Path = typer.Argument(..., help="Path to a batch/v1 Job manifest (YAML)"),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace (overrides the manifest)"),
    name: Optional[str] = typer.Option(None, "--name", help="Job name (overrides the manifest)"),
    context: Optional[str] = typer.Option(None, "--context", help="Kubeconfig context"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Kubeconfig path"),
    in_cluster: Optional[bool] = typer.Option(None, "--in-cluster/--no-in-cluster", help="Use the pod's service account"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for the job before giving up"),
    generate_name: bool = typer.Option(False, "--generate-name", help="Append a random suffix to the job name"),
    events_file: Optional[Path] = typer.Option(None, "--events-file", help="Append lifecycle events as JSON lines"),
    show_events: bool = typer.Option(False, "--show-events", help="Print lifecycle events to the console"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output on the console"),
):
    """
    Submit the job, wait until it finishes, check it succeeded, delete it.
    """
    settings = load_settings(
        kube_context=context,
        kubeconfig=kubeconfig,
        in_cluster=in_cluster,
        timeout_seconds=timeout,
    )
    logger, run_id, log_path = init_logging(base_dir=settings.log_dir, verbose=verbose)

    try:
        spec = load_job(
            manifest,
            namespace=namespace,
            name=name,
            default_namespace=settings.namespace,
            generate_name=generate_name,
        )
    except (FileNotFoundError, ManifestError) as exc:
        raise typer.BadParameter(str(exc), param_hint="MANIFEST")
    spec = annotate(spec, run_id)

    observers = [LoggerObserver(logger)]
    if events_file is not None:
        observers.append(JsonFileObserver(events_file))
    if show_events:
        observers.append(ConsoleObserver())
    runner = build_runner(settings, observers=observers, run_id=run_id)

    ctx = RunContext(timeout=settings.timeout_seconds)
    previous = signal.signal(signal.SIGINT, interrupt_handler(ctx))
    try:
        report = runner.run(spec, ctx)
    except JobRunError as err:
        typer.secho(f"[jobrunner] {err}", fg=typer.colors.RED, err=True)
        if err.cleanup_error is not None:
            typer.secho(f"[jobrunner] {err.cleanup_error}", fg=typer.colors.RED, err=True)
        if isinstance(err, CleanupError) and err.job_succeeded:
            typer.secho(f"[jobrunner] job {spec.key} succeeded but was left on the cluster", fg=typer.colors.YELLOW, err=True)
        elif isinstance(err, CleanupError) or err.cleanup_error is not None:
            typer.secho(f"[jobrunner] job {spec.key} may still exist on the cluster", fg=typer.colors.YELLOW, err=True)
        typer.echo(f"[jobrunner] log file: {log_path}", err=True)
        raise typer.Exit(code=exit_code_for(err))
    finally:
        signal.signal(signal.SIGINT, previous)

    typer.secho(f"[jobrunner] job {spec.key} succeeded ({report.status.describe()})", fg=typer.colors.GREEN)


@app.command("version")
def version():
    """Print the jobrunner version."""
    typer.echo(default_source())


if __name__ == "__main__":
    app()
