"""Walkthrough cursor over the loaded scenarios."""

from __future__ import annotations

import threading
from typing import Iterable

from .models import ScenarioRecord


class WalkthroughSession:
    """Ordered scenarios plus a cursor that only moves forward.

    The scenario tuple is fixed at construction and safe to read from any
    thread; the cursor is guarded so concurrent submissions cannot skip or
    overshoot a scenario.
    """

    def __init__(self, scenarios: Iterable[ScenarioRecord]) -> None:
        self._scenarios: tuple[ScenarioRecord, ...] = tuple(scenarios)
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def scenarios(self) -> tuple[ScenarioRecord, ...]:
        return self._scenarios

    @property
    def total(self) -> int:
        return len(self._scenarios)

    @property
    def position(self) -> int:
        with self._lock:
            return self._cursor

    def current(self) -> ScenarioRecord | None:
        with self._lock:
            if self._cursor >= len(self._scenarios):
                return None
            return self._scenarios[self._cursor]

    def is_complete(self) -> bool:
        with self._lock:
            return self._cursor >= len(self._scenarios)

    def advance(self) -> int:
        """Move to the next scenario; a no-op once every scenario is processed."""

        with self._lock:
            self._cursor = min(self._cursor + 1, len(self._scenarios))
            return self._cursor
