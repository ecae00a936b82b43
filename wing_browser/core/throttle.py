from __future__ import annotations

import time
from typing import Any, Callable, Optional

FRAME_INTERVAL = 1.0 / 60.0


class GestureThrottle:
    """
    Fixed-cadence throttle for continuous gestures (brushing, panning).

    submit() applies an event at most once per interval and keeps the latest
    suppressed one pending; flush() applies that pending event when the
    gesture is released, so the last-applied state is never stale.
    """

    def __init__(self, interval: float = FRAME_INTERVAL, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self._clock = clock
        self._last_applied: Optional[float] = None
        self._pending: Any = None
        self._has_pending = False

    @property
    def has_pending(self) -> bool:
        return self._has_pending

    def submit(self, event: Any, apply: Callable[[Any], Any]) -> bool:
        now = self._clock()
        if self._last_applied is None or now - self._last_applied >= self.interval:
            self._last_applied = now
            self._pending = None
            self._has_pending = False
            apply(event)
            return True

        self._pending = event
        self._has_pending = True
        return False

    def flush(self, apply: Callable[[Any], Any]) -> bool:
        if not self._has_pending:
            return False
        event = self._pending
        self.cancel()
        self._last_applied = self._clock()
        apply(event)
        return True

    def cancel(self) -> None:
        self._pending = None
        self._has_pending = False
