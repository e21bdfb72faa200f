# src/jobrunner/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str                 # ISO timestamp
    run_id: str             # correlates all events of a single run
    context: Optional[str]  # kube-context

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(context: Optional[str], run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "context": context,
    }


def stamp(run_ctx: Dict[str, Any]) -> Dict[str, Any]:
    """Same run, fresh timestamp."""
    return {**run_ctx, "ts": new_ctx(None)["ts"]}


# ---------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class JobSubmitted(BaseEvent):
    namespace: str
    name: str
    uid: Optional[str] = None

@dataclass(frozen=True)
class SubmissionFailed(BaseEvent):
    namespace: str
    name: str
    error: str


# ---------------------------------------------------------------------
# Watch
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class WatchStarted(BaseEvent):
    namespace: str
    name: str

@dataclass(frozen=True)
class JobStatusObserved(BaseEvent):
    name: str
    event_type: str
    active: int
    succeeded: int
    failed: int
    terminal: bool

@dataclass(frozen=True)
class WatchFailed(BaseEvent):
    name: str
    error: str


# ---------------------------------------------------------------------
# Verification & cleanup
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class JobVerified(BaseEvent):
    name: str
    ok: bool
    succeeded: int
    failed: int

@dataclass(frozen=True)
class JobDeleted(BaseEvent):
    namespace: str
    name: str

@dataclass(frozen=True)
class CleanupFailed(BaseEvent):
    namespace: str
    name: str
    error: str


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RunSummary(BaseEvent):
    namespace: str
    name: str
    state: str          # final RunState value
    ok: bool
    error: Optional[str] = None


FAILURE_EVENTS = (SubmissionFailed, WatchFailed, CleanupFailed)
