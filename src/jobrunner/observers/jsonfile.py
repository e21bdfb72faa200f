# src/jobrunner/observers/jsonfile.py
from __future__ import annotations

import json
from pathlib import Path

from .events import BaseEvent
from .interface import Observer


class JsonFileObserver(Observer):
    """Appends one JSON object per event (JSONL)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def notify(self, event: BaseEvent) -> None:
        record = {"type": event.__class__.__name__, **event.dict()}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=str) + "\n")
