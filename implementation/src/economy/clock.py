from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from economy.snapshot import Record, make_record, prepare_record, read_str

logger = logging.getLogger(__name__)

STATE_KIND = "clock"
STATE_VERSION = 1

SECONDS_PER_HOUR = 3600.0


class OfflineClock:
    """Tracks the last tick time and turns a save-to-load gap into offline seconds.

    ``now`` returns epoch seconds and is injectable so tests can drive time.
    The last tick time is persisted as an ISO-8601 UTC string, so time between
    the last tick and a later save still counts as offline.
    """

    def __init__(
        self,
        max_offline_hours: float,
        efficiency: float,
        now: Optional[Callable[[], float]] = None,
    ) -> None:
        self.max_offline_seconds = max(0.0, max_offline_hours * SECONDS_PER_HOUR)
        # Efficiency above 1 is capped; non-positive values credit nothing offline.
        self.efficiency = min(1.0, max(0.0, efficiency))
        self._now = now or time.time
        self.last_tick_at = self._now()
        self._pending_offline = 0.0

    def mark(self) -> None:
        self.last_tick_at = self._now()

    @property
    def pending_offline_seconds(self) -> float:
        """Raw gap found on the last restore, not yet consumed."""
        return self._pending_offline

    def consume_offline(self) -> float:
        elapsed = self._pending_offline
        self._pending_offline = 0.0
        return elapsed

    def effective_seconds(self, elapsed: float) -> float:
        if elapsed <= 0.0:
            return 0.0
        return min(elapsed, self.max_offline_seconds) * self.efficiency

    def capture_state(self) -> Record:
        stamp = datetime.fromtimestamp(self.last_tick_at, tz=timezone.utc)
        return make_record(STATE_KIND, STATE_VERSION, last_tick_utc=stamp.isoformat())

    def restore_state(self, record: Record) -> None:
        now = self._now()
        self._pending_offline = 0.0
        self.last_tick_at = now
        data = prepare_record(record, STATE_KIND, STATE_VERSION)
        if data is None:
            return
        raw = read_str(data, "last_tick_utc")
        if not raw:
            return
        try:
            last = datetime.fromisoformat(raw)
        except ValueError:
            logger.warning("Malformed last tick timestamp %r in saved state; ignoring", raw)
            return
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        self._pending_offline = max(0.0, now - last.timestamp())
