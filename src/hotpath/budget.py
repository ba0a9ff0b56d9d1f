"""Cooperative time budget for one analysis request."""

from __future__ import annotations

import time

from hotpath.exit_codes import AnalysisTimeout


class Budget:
    """Deadline checked between units of work.

    ``seconds=None`` means unlimited. Checks are cheap enough to run once
    per rule/node pair.
    """

    def __init__(self, seconds: float | None = None, clock=time.monotonic):
        self._clock = clock
        self.started = clock()
        self.seconds = seconds
        self.deadline = None if seconds is None else self.started + max(0.0, float(seconds))

    @property
    def elapsed(self) -> float:
        return self._clock() - self.started

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() > self.deadline

    def check(self, stage: str) -> None:
        if self.expired:
            raise AnalysisTimeout(stage, self.elapsed)
