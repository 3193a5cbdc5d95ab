from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float:
        ...

    def sleep(self, seconds: float) -> None:
        ...


class SystemClock:
    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


@dataclass
class PollScheduler:
    """Market-refresh and status-report timers for the polling loop.

    Both deadlines start one interval after ``start`` and are re-armed from the
    time they fire. The report timer is only consulted from inside a refresh
    tick, so reports land on refresh ticks.
    """

    refresh_seconds: float
    report_seconds: float
    start: float
    next_refresh: float = 0.0
    next_report: float = 0.0

    def __post_init__(self) -> None:
        self.next_refresh = self.start + self.refresh_seconds
        self.next_report = self.start + self.report_seconds

    def refresh_due(self, now: float) -> bool:
        if now > self.next_refresh:
            self.next_refresh = now + self.refresh_seconds
            return True
        return False

    def report_due(self, now: float) -> bool:
        if now > self.next_report:
            self.next_report = now + self.report_seconds
            return True
        return False
