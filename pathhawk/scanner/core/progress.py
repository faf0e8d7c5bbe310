"""
PathHawk Scan Progress

Tracks the coordinator state and outcome counters of a run, smooths the
completion rate with an exponential moving average and estimates the time
left for the work queued so far. Every change is pushed to an optional
callback as a plain dict.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class ScanState(Enum):
    """Coordinator lifecycle."""
    IDLE = ("idle", "Waiting to start")
    RUNNING = ("running", "Scanning...")
    DRAINING = ("draining", "Waiting for in-flight requests...")
    DONE = ("done", "Scan completed")

    def __init__(self, state_id: str, default_msg: str):
        self.state_id = state_id
        self.default_msg = default_msg


@dataclass
class ScanProgress:
    """
    Counters for one run.

    ``total`` is the number of work items the queue has accepted; it keeps
    growing while recursion adds levels, so the percentage can move
    backwards. Updates all happen on the event loop thread.
    """

    # weight of the newest rate sample
    SMOOTHING: float = 0.3

    total_words: int = 0
    state: ScanState = ScanState.IDLE
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    total: int = 0
    completed: int = 0
    interesting: int = 0
    errors: int = 0
    in_flight: int = 0

    rate: float = 0.0
    _sampled_at: float = 0.0
    _sampled_count: int = 0

    callback: Optional[Callable[[Dict[str, Any]], None]] = field(default=None, repr=False)

    def start(self, total_words: int = 0):
        self.started_at = self._sampled_at = time.monotonic()
        self.total_words = total_words
        self.state = ScanState.RUNNING
        self._publish()

    def set_state(self, state: ScanState):
        if state is self.state:
            return
        self.state = state
        if state is ScanState.DONE:
            self.finished_at = time.monotonic()
        self._publish()

    def add_total(self, count: int):
        """Register newly accepted work items."""
        if count:
            self.total += count
            self._publish()

    def record(self, interesting: bool = False, error: bool = False):
        """Count one delivered outcome."""
        self.completed += 1
        self.interesting += int(interesting)
        self.errors += int(error)
        self._sample_rate()
        self._publish()

    def set_in_flight(self, count: int):
        self.in_flight = count

    def set_callback(self, callback: Callable[[Dict[str, Any]], None]):
        self.callback = callback

    def _sample_rate(self):
        now = time.monotonic()
        window = now - self._sampled_at
        if window <= 0:
            return
        sample = (self.completed - self._sampled_count) / window
        if self.rate:
            sample = self.SMOOTHING * sample + (1 - self.SMOOTHING) * self.rate
        self.rate = sample
        self._sampled_at = now
        self._sampled_count = self.completed

    @property
    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return (self.finished_at or time.monotonic()) - self.started_at

    @property
    def remaining(self) -> float:
        """Seconds left for the work known so far, 0 when unknown."""
        if self.state is ScanState.DONE or self.rate <= 0:
            return 0.0
        return max(0, self.total - self.completed) / self.rate

    @property
    def percentage(self) -> float:
        if self.state is ScanState.DONE:
            return 100.0
        if not self.total:
            return 0.0
        return min(100.0, 100.0 * self.completed / self.total)

    def _publish(self):
        if self.callback is None:
            return
        try:
            self.callback(self.to_dict())
        except Exception:
            logger.exception("Progress callback failed")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.state_id,
            "message": self.state.default_msg,
            "progress": round(self.percentage, 1),
            "total_words": self.total_words,
            "total": self.total,
            "completed": self.completed,
            "interesting": self.interesting,
            "errors": self.errors,
            "in_flight": self.in_flight,
            "rate": round(self.rate, 2),
            "elapsed": format_duration(self.elapsed),
            "remaining": format_duration(self.remaining),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def format_duration(seconds: float) -> str:
    """
    Compact duration string.

    Examples:
    - 0 -> "0s"
    - 125 -> "2m 5s"
    - 3600 -> "1h"
    """
    minutes, secs = divmod(max(0, int(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    units = [(hours, "h"), (minutes, "m"), (secs, "s")]
    text = " ".join(f"{value}{unit}" for value, unit in units if value)
    return text or "0s"
