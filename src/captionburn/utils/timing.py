from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List

from captionburn.utils.logging import get_logger

log = get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class StepTiming:
    name: str
    duration_s: float
    ok: bool


class StepTimer:
    """Records how long each render step took, including steps that raised."""

    def __init__(self, *, label: str = "", clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self.label = label
        self.steps: List[StepTiming] = []

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        started = self._clock()
        ok = False
        try:
            yield
            ok = True
        finally:
            elapsed = self._clock() - started
            self.steps.append(StepTiming(name=name, duration_s=elapsed, ok=ok))
            log.debug("%s step=%s ok=%s %.3fs", self.label, name, ok, elapsed)

    def durations(self) -> dict[str, float]:
        return {step.name: round(step.duration_s, 3) for step in self.steps}

    @property
    def total_s(self) -> float:
        return sum(step.duration_s for step in self.steps)
