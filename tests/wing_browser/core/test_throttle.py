from __future__ import annotations

from wing_browser.core.throttle import GestureThrottle


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_first_event_applies_immediately_then_throttles():
    clock = _FakeClock()
    throttle = GestureThrottle(interval=0.1, clock=clock)
    applied = []

    assert throttle.submit(1, applied.append)
    assert not throttle.submit(2, applied.append)
    assert not throttle.submit(3, applied.append)

    assert applied == [1]
    assert throttle.has_pending


def test_next_interval_applies_latest_event():
    clock = _FakeClock()
    throttle = GestureThrottle(interval=0.1, clock=clock)
    applied = []

    throttle.submit(1, applied.append)
    throttle.submit(2, applied.append)
    clock.now = 0.1
    throttle.submit(3, applied.append)

    assert applied == [1, 3]
    assert not throttle.has_pending


def test_flush_never_drops_final_event():
    clock = _FakeClock()
    throttle = GestureThrottle(interval=0.1, clock=clock)
    applied = []

    throttle.submit("start", applied.append)
    throttle.submit("middle", applied.append)
    throttle.submit("final", applied.append)

    assert throttle.flush(applied.append)
    assert applied == ["start", "final"]
    # Nothing left to flush
    assert not throttle.flush(applied.append)


def test_cancel_drops_pending():
    throttle = GestureThrottle(interval=1.0, clock=_FakeClock())
    applied = []

    throttle.submit("a", applied.append)
    throttle.submit("b", applied.append)
    throttle.cancel()

    assert not throttle.flush(applied.append)
    assert applied == ["a"]
