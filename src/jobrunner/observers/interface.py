# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/jobrunner/observers/interface.py
from __future__ import annotations

from typing import Protocol

from .events import BaseEvent


class Observer(Protocol):
    """
    Sink for run lifecycle events.

    ``notify`` is called on the thread that produced the event, which for
    JobStatusObserved is the watch listener, so it should return quickly.
    """

    def notify(self, event: BaseEvent) -> None: ...
