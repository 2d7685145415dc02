"""Timed production events (comet showers, wormhole surges, ...).

At most one event runs at a time. While none is active, a new one starts with
probability 1 - exp(-rate * dt) per step, so the expected start frequency is
``rate`` per second regardless of how finely the host slices time.
"""
from __future__ import annotations

import logging
import math
import random
from typing import Dict, Iterable, List, Optional

from economy.definitions import EventDef
from economy.notifications import EventEnded, EventStarted, Notification
from economy.snapshot import Record, make_record, prepare_record, read_float, read_str

logger = logging.getLogger(__name__)

STATE_KIND = "events"
STATE_VERSION = 1


class EventScheduler:
    def __init__(
        self,
        events: Iterable[EventDef],
        rate_per_second: float,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._events: List[EventDef] = list(events)
        self._by_id: Dict[str, EventDef] = {e.id: e for e in self._events}
        self._rate = max(0.0, rate_per_second)
        self._rng = rng or random.Random()
        self._active: Optional[EventDef] = None
        self._remaining = 0.0

    @property
    def active(self) -> Optional[EventDef]:
        return self._active

    @property
    def remaining_seconds(self) -> float:
        return self._remaining if self._active is not None else 0.0

    @property
    def multiplier(self) -> float:
        if self._active is None or self._active.production_multiplier <= 0.0:
            return 1.0
        return self._active.production_multiplier

    def start_probability(self, dt: float) -> float:
        if dt <= 0.0 or self._rate <= 0.0:
            return 0.0
        return 1.0 - math.exp(-self._rate * dt)

    def tick(self, dt: float) -> List[Notification]:
        """Count down the active event, or roll for a new one."""
        if dt <= 0.0:
            return []
        if self._active is not None:
            self._remaining -= dt
            if self._remaining <= 0.0:
                return [self._end()]
            return []
        if self._events and self._rng.random() < self.start_probability(dt):
            return [self._begin(self._rng.choice(self._events))]
        return []

    def start(self, event_id: str) -> List[Notification]:
        """Force an event to start; refused while another one runs."""
        event = self._by_id.get(event_id)
        if event is None or self._active is not None:
            return []
        return [self._begin(event)]

    def _begin(self, event: EventDef) -> Notification:
        self._active = event
        self._remaining = max(0.0, event.duration_seconds)
        logger.info("Event %s started for %.0fs (x%g)", event.id, self._remaining, self.multiplier)
        return EventStarted(event.id, self._remaining, self.multiplier)

    def _end(self) -> Notification:
        ended = self._active
        self._active = None
        self._remaining = 0.0
        logger.info("Event %s ended", ended.id)
        return EventEnded(ended.id)

    def clear(self) -> None:
        self._active = None
        self._remaining = 0.0

    def capture_state(self) -> Record:
        return make_record(
            STATE_KIND,
            STATE_VERSION,
            active_event_id=self._active.id if self._active else "",
            remaining_seconds=self.remaining_seconds,
        )

    def restore_state(self, record: Record) -> None:
        self.clear()
        data = prepare_record(record, STATE_KIND, STATE_VERSION)
        if data is None:
            return
        event_id = read_str(data, "active_event_id")
        if not event_id:
            return
        event = self._by_id.get(event_id)
        if event is None:
            logger.warning("Saved active event %r is not configured; dropping it", event_id)
            return
        remaining = read_float(data, "remaining_seconds", 0.0)
        if remaining > 0.0:
            self._active = event
            self._remaining = remaining
