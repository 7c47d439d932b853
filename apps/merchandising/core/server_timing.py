"""Wall-clock instrumentation rendered as a ``Server-Timing`` header."""

from __future__ import annotations

import time
from typing import Callable, Dict, TypeVar

T = TypeVar("T")


class ServerTiming:
    def __init__(self) -> None:
        self._timings: Dict[str, float] = {}

    def instrument(self, fn: Callable[[], T], name: str) -> T:
        """Run ``fn`` and add its duration to ``name``, also when it raises."""
        start = time.perf_counter()
        try:
            return fn()
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._timings[name] = self._timings.get(name, 0.0) + elapsed_ms

    @property
    def timings(self) -> Dict[str, float]:
        return dict(self._timings)

    def header_value(self) -> str:
        return ", ".join(f"{name};dur={duration:.2f}" for name, duration in self._timings.items())
