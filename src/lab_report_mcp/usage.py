"""Request and token usage tracking against per-minute / per-day limits."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from datetime import date

from pydantic import BaseModel


class UsageSnapshot(BaseModel):
    requests_in_last_minute: int
    daily_requests: int
    total_requests: int
    total_tokens: int
    rpm_limit: int
    rpd_limit: int
    remaining_rpm: int
    remaining_rpd: int
    rpm_percent: float
    rpd_percent: float
    status: str  # "ok" | "warning" | "critical"


@dataclass
class UsageTracker:
    """In-process counters; timestamps older than a minute are pruned on every record and read."""

    rpm_limit: int = 15
    rpd_limit: int = 1500

    def __post_init__(self) -> None:
        self._timestamps: deque[float] = deque()
        self.total_requests = 0
        self.total_tokens = 0
        self.daily_requests = 0
        self._day = date.today()

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] > 60:
            self._timestamps.popleft()

    def _roll_day(self, today: date) -> None:
        if today != self._day:
            self._day = today
            self.daily_requests = 0

    def record(self, tokens: int = 0, now: float | None = None, today: date | None = None) -> None:
        now = time.time() if now is None else now
        self._roll_day(today or date.today())
        self._prune(now)
        self._timestamps.append(now)
        self.total_requests += 1
        self.daily_requests += 1
        self.total_tokens += max(tokens, 0)

    def snapshot(self, now: float | None = None, today: date | None = None) -> UsageSnapshot:
        now = time.time() if now is None else now
        self._roll_day(today or date.today())
        self._prune(now)

        rpm = len(self._timestamps)
        rpm_pct = min(rpm / self.rpm_limit * 100, 100.0)
        rpd_pct = min(self.daily_requests / self.rpd_limit * 100, 100.0)
        if rpm_pct > 85 or rpd_pct > 90:
            status = "critical"
        elif rpm_pct > 60 or rpd_pct > 70:
            status = "warning"
        else:
            status = "ok"
        return UsageSnapshot(
            requests_in_last_minute=rpm,
            daily_requests=self.daily_requests,
            total_requests=self.total_requests,
            total_tokens=self.total_tokens,
            rpm_limit=self.rpm_limit,
            rpd_limit=self.rpd_limit,
            remaining_rpm=max(0, self.rpm_limit - rpm),
            remaining_rpd=max(0, self.rpd_limit - self.daily_requests),
            rpm_percent=round(rpm_pct, 1),
            rpd_percent=round(rpd_pct, 1),
            status=status,
        )
