from __future__ import annotations

import pandas as pd
import pytest

from wing_browser.core.viewport import (
    IDENTITY,
    SCALE_MAX,
    SCALE_MIN,
    AutoZoom,
    LinearScale,
    Margins,
    ViewportController,
    ViewportTransform,
    ease_cubic_in_out,
    uniform_domains,
)


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _make_points() -> pd.DataFrame:
    """Two landmarks (A, B) for each of three specimens spread over [0, 100] x [0, 50]."""
    return pd.DataFrame(
        {
            "specimen_id": ["s1", "s1", "s2", "s2", "s3", "s3"],
            "letter": ["A", "B", "A", "B", "A", "B"],
            "x": [10.0, 90.0, 12.0, 95.0, 14.0, 100.0],
            "y": [5.0, 40.0, 6.0, 45.0, 4.0, 50.0],
        }
    )


def _make_controller(clock=None) -> ViewportController:
    ctrl = ViewportController(
        width=500, height=400, margins=Margins(top=0, right=0, bottom=0, left=0), clock=clock or _FakeClock()
    )
    ctrl.set_extent((0.0, 100.0), (0.0, 50.0))
    return ctrl


# -----------------------------------------------------------------------------
# Scales / domains
# -----------------------------------------------------------------------------
def test_linear_scale_roundtrip_and_degenerate_domain():
    scale = LinearScale((0.0, 10.0), (100.0, 0.0))
    assert scale(2.5) == pytest.approx(75.0)
    assert scale.invert(75.0) == pytest.approx(2.5)

    flat = LinearScale((3.0, 3.0), (0.0, 200.0))
    assert flat(3.0) == 100.0
    assert flat(7.0) == 100.0


def test_uniform_domains_share_one_data_per_pixel_ratio():
    (x0, x1), (y0, y1) = uniform_domains((0.0, 100.0), (0.0, 10.0), 400, 400)

    assert (x1 - x0) / 400 == pytest.approx((y1 - y0) / 400)
    # x padded by 5 % on each side; y widened around its centre
    assert (x0, x1) == pytest.approx((-5.0, 105.0))
    assert (y0 + y1) / 2 == pytest.approx(5.0)


def test_uniform_domains_zero_span_substitutes_one():
    (x0, x1), (y0, y1) = uniform_domains((5.0, 5.0), (2.0, 2.0), 100, 100)
    assert x0 < 5.0 < x1
    assert y0 < 2.0 < y1
    assert x1 - x0 == pytest.approx(1.1)


def test_set_extent_rebuilds_only_on_change():
    ctrl = _make_controller()
    assert not ctrl.set_extent((0.0, 100.0), (0.0, 50.0))
    assert ctrl.set_extent((0.0, 200.0), (0.0, 50.0))


# -----------------------------------------------------------------------------
# Transform
# -----------------------------------------------------------------------------
def test_zoom_about_keeps_anchor_fixed():
    t = ViewportTransform(10.0, -20.0, 2.0)
    anchor = (150.0, 80.0)
    zoomed = t.zoom_about(anchor, 1.5)

    before = t.invert(*anchor)
    after = zoomed.invert(*anchor)
    assert zoomed.scale == pytest.approx(3.0)
    assert after == pytest.approx(before)


def test_zoom_scale_is_clamped():
    assert IDENTITY.zoom_about((0, 0), 1000).scale == SCALE_MAX
    assert IDENTITY.zoom_about((0, 0), 0.001).scale == SCALE_MIN


def test_apply_invert_roundtrip():
    t = ViewportTransform(7.0, 3.0, 2.5)
    assert t.invert(*t.apply(11.0, -4.0)) == pytest.approx((11.0, -4.0))


def test_easing_endpoints():
    assert ease_cubic_in_out(0.0) == 0.0
    assert ease_cubic_in_out(0.5) == pytest.approx(0.5)
    assert ease_cubic_in_out(1.0) == 1.0


# -----------------------------------------------------------------------------
# Auto-zoom state machine
# -----------------------------------------------------------------------------
def test_auto_zoom_frames_target_and_centres_it():
    ctrl = _make_controller()
    assert ctrl.set_target("A")

    end = ctrl.auto_zoom(_make_points())
    assert end is not None
    ctrl.settle()

    # Box of A: x [10, 14], y [4, 6] -> centre (12, 5) lands on the viewport centre
    cx, cy = ctrl.project(12.0, 5.0)
    assert (cx, cy) == pytest.approx(ctrl.plot_centre)
    assert 1.0 <= ctrl.transform.scale <= SCALE_MAX
    assert ctrl.target_satisfied


def test_auto_zoom_scale_formula():
    ctrl = _make_controller()
    ctrl.set_target("B")
    end = ctrl.auto_zoom(_make_points())

    # B box: x [90, 100] (span 10), y [40, 50] (span 10)
    full_x = ctrl.base_x.domain_span
    full_y = ctrl.base_y.domain_span
    expected = min(SCALE_MAX, max(1.0, 1.0 / max(10.0 / full_x, 10.0 / full_y)))
    assert end.scale == pytest.approx(expected)


def test_auto_zoom_is_idempotent_until_target_changes():
    ctrl = _make_controller()
    ctrl.set_target("A")
    ctrl.auto_zoom(_make_points())
    ctrl.settle()
    settled = ctrl.transform

    # Same target, already satisfied: nothing to do
    assert not ctrl.set_target("A")
    assert ctrl.auto_zoom(_make_points()) is None
    assert ctrl.transform == settled


def test_manual_gesture_disables_and_same_target_rearms():
    ctrl = _make_controller()
    ctrl.set_target("A")
    ctrl.auto_zoom(_make_points())
    ctrl.settle()

    ctrl.wheel((100.0, 100.0), 0.5)
    assert ctrl.auto_zoom_state is AutoZoom.DISABLED
    assert ctrl.auto_zoom(_make_points()) is None

    # Re-selecting the same letter after a manual gesture re-triggers
    assert ctrl.set_target("A")
    assert ctrl.auto_zoom_state is AutoZoom.ENABLED
    assert ctrl.auto_zoom(_make_points()) is not None


def test_new_gesture_supersedes_transition():
    clock = _FakeClock()
    ctrl = _make_controller(clock)
    ctrl.set_target("A")
    ctrl.auto_zoom(_make_points())
    assert ctrl.in_transition

    clock.now = 0.25
    ctrl.drag(5.0, 0.0)

    assert not ctrl.in_transition
    assert not ctrl.target_satisfied
    assert ctrl.auto_zoom_state is AutoZoom.DISABLED


def test_tick_completes_transition_and_marks_satisfied():
    clock = _FakeClock()
    ctrl = _make_controller(clock)
    ctrl.set_target("A")
    end = ctrl.auto_zoom(_make_points())

    clock.now = 0.25
    mid = ctrl.tick()
    assert mid != end
    assert not ctrl.target_satisfied

    clock.now = 1.0
    assert ctrl.tick() == end
    assert ctrl.target_satisfied
    assert not ctrl.in_transition


def test_reset_returns_to_identity_and_reenables():
    ctrl = _make_controller()
    ctrl.wheel((10.0, 10.0), 2.0)
    assert ctrl.reset()
    ctrl.settle()

    assert ctrl.transform == IDENTITY
    assert ctrl.auto_zoom_state is AutoZoom.ENABLED
    assert ctrl.target is None
    # Already at identity: no transition
    assert not ctrl.reset()


def test_set_target_none_resets():
    ctrl = _make_controller()
    ctrl.set_target("A")
    ctrl.auto_zoom(_make_points())
    ctrl.settle()

    ctrl.set_target(None)
    ctrl.settle()
    assert ctrl.transform == IDENTITY
    assert ctrl.target is None


def test_degenerate_target_box_does_not_divide_by_zero():
    ctrl = _make_controller()
    points = pd.DataFrame({"specimen_id": ["s1"], "letter": ["C"], "x": [30.0], "y": [20.0]})
    ctrl.set_target("C")
    end = ctrl.auto_zoom(points)

    assert end is not None
    assert SCALE_MIN <= end.scale <= SCALE_MAX


def test_auto_zoom_without_matching_points_stays_put():
    ctrl = _make_controller()
    ctrl.set_target("Z")
    assert ctrl.auto_zoom(_make_points()) is None
    assert ctrl.transform == IDENTITY
    assert not ctrl.target_satisfied


def test_throttled_drag_applies_final_delta_on_release():
    clock = _FakeClock()
    ctrl = _make_controller(clock)

    ctrl.drag_move(1.0, 0.0)
    ctrl.drag_move(2.0, 0.0)
    ctrl.drag_move(3.0, 1.0)
    ctrl.drag_end()

    assert ctrl.transform.translate_x == pytest.approx(6.0)
    assert ctrl.transform.translate_y == pytest.approx(1.0)


def test_apply_window_centres_requested_range():
    ctrl = _make_controller()
    ctrl.apply_window((40.0, 60.0), (20.0, 30.0))

    (x0, x1), _ = ctrl.visible_window()
    assert (x0 + x1) / 2 == pytest.approx(50.0)
    assert x1 - x0 == pytest.approx(20.0)
    assert ctrl.auto_zoom_state is AutoZoom.DISABLED


def test_dict_roundtrip_settles_transition():
    ctrl = _make_controller()
    ctrl.set_target("B")
    end = ctrl.auto_zoom(_make_points())

    data = ctrl.to_dict()
    rebuilt = _make_controller().load_dict(data)

    assert rebuilt.transform == end
    assert rebuilt.target == "B"
    assert rebuilt.target_satisfied
    assert rebuilt.auto_zoom_state is AutoZoom.ENABLED
