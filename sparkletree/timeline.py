"""Rise timeline and the small event queue driving the reveal sequence."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

__all__ = [
    "RISING",
    "REVEALED",
    "ease_out_cubic",
    "AnimationClock",
    "ScheduledEvent",
    "EventQueue",
]

RISING = "rising"
REVEALED = "revealed"


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def ease_out_cubic(progress: float) -> float:
    """Fast start, slow finish. Maps 0 to 0 and 1 to exactly 1."""

    p = clamp01(progress)
    return 1.0 - (1.0 - p) ** 3


class AnimationClock:
    """Elapsed time, rise progress and the one-shot reveal flag of a run."""

    def __init__(self, rise_duration_ms: float, start_ms: float = 0.0) -> None:
        if rise_duration_ms <= 0:
            raise ValueError("rise duration must be positive")
        self.rise_duration_ms = float(rise_duration_ms)
        self.start_ms = float(start_ms)
        self.triggered = False

    def elapsed(self, now_ms: float) -> float:
        return max(0.0, now_ms - self.start_ms)

    def progress(self, now_ms: float) -> float:
        return clamp01(self.elapsed(now_ms) / self.rise_duration_ms)

    def eased(self, now_ms: float) -> float:
        return ease_out_cubic(self.progress(now_ms))

    def phase(self) -> str:
        return REVEALED if self.triggered else RISING

    def poll_reveal(self, now_ms: float) -> bool:
        """Return True exactly once, on the first call where progress is 1."""

        if self.triggered:
            return False
        if self.progress(now_ms) >= 1.0:
            self.triggered = True
            return True
        return False


@dataclass(order=True)
class ScheduledEvent:
    due_ms: float
    seq: int
    name: str = field(compare=False)
    action: Callable[..., Any] = field(compare=False, repr=False)
    payload: Any = field(default=None, compare=False)

    def fire(self) -> Any:
        if self.payload is None:
            return self.action()
        return self.action(self.payload)


class EventQueue:
    """Time ordered queue; events due at the same time keep insertion order."""

    def __init__(self) -> None:
        self._heap: List[ScheduledEvent] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def schedule(
        self,
        due_ms: float,
        name: str,
        action: Callable[..., Any],
        payload: Any = None,
    ) -> ScheduledEvent:
        event = ScheduledEvent(float(due_ms), next(self._counter), name, action, payload)
        heapq.heappush(self._heap, event)
        return event

    def pop_due(self, now_ms: float) -> List[ScheduledEvent]:
        due: List[ScheduledEvent] = []
        while self._heap and self._heap[0].due_ms <= now_ms:
            due.append(heapq.heappop(self._heap))
        return due

    def peek(self) -> Optional[ScheduledEvent]:
        return self._heap[0] if self._heap else None

    def pending(self) -> List[Tuple[float, str]]:
        return [(event.due_ms, event.name) for event in sorted(self._heap)]

    def clear(self) -> None:
        self._heap.clear()
