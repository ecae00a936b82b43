from __future__ import annotations

from pathlib import Path

import plotly.graph_objs as go
import pytest

from wing_browser.config.model import DataFiles, GlobalConfig, PlotConfig
from wing_browser.core.filter_state import PERCENTILE, FilterState
from wing_browser.core.record_store import RecordStore
from wing_browser.core.records import GradientProfile, Specimen, specimen_landmarks
from wing_browser.core.viewport import IDENTITY, ViewportTransform
from wing_browser.ui.callbacks.callbacks_filters import build_filter_state
from wing_browser.ui.callbacks.callbacks_render import render_view, selected_list_text, status_text
from wing_browser.ui.callbacks.callbacks_selection import (
    EVENT_BRUSH,
    EVENT_CLEAR,
    EVENT_CLICK,
    EVENT_FILTER,
    classify_trigger,
    clicked_specimen_id,
    reduce_selection,
)
from wing_browser.ui.callbacks.callbacks_viewport import (
    EVENT_RELAYOUT,
    EVENT_RESET,
    EVENT_TARGET,
    RESET_WINDOW,
    landmark_select_value,
    reduce_viewport,
    window_from_relayout,
)
from wing_browser.ui.config import AppConfig
from wing_browser.ui.dash_app import _build_view_registry
from wing_browser.ui.ids import IDs


def _make_ctx(specimens=None) -> AppConfig:
    """
    Three specimens (one per condition), areas 100 / 200 / 300 so the size
    scatter places them at x = 0, 0.5 and 1.
    """
    if specimens is None:
        specimens = [
            Specimen("a", "standard", "female", 1.0, area=100.0, A=0.2, C=0.0, D=20.0),
            Specimen("b", "hypoxia", "male", 2.0, area=200.0, A=0.1, C=5.0, D=30.0),
            Specimen("c", "cold", "female", 3.0, area=300.0, A=0.1, C=0.0, D=40.0),
        ]
    landmarks = []
    for offset, s in enumerate(specimens):
        landmarks += specimen_landmarks(s.specimen_id, [(i + offset, 2 * i + offset) for i in range(1, 16)])
    profiles = [
        GradientProfile.from_samples(s.specimen_id, s.condition, s.area, [-10, 0, 10], [1.0, 2.0, 1.0])
        for s in specimens
    ]
    store = RecordStore(specimens, landmarks=landmarks, profiles=profiles)

    global_config = GlobalConfig(
        ui_title="Test",
        data_root=None,
        files=DataFiles(),
        plot=PlotConfig(width=600, height=500),
    )
    return AppConfig(
        config_root=Path("."),
        global_config=global_config,
        store=store,
        registry=_build_view_registry(),
    )


def _everything(**kwargs) -> dict:
    return FilterState(below=1.0, within=(0.0, 1.0), **kwargs).to_dict()


def _annotation_text(fig: go.Figure) -> str:
    return fig.layout.annotations[0].text


# -----------------------------------------------------------------------------
# Filters
# -----------------------------------------------------------------------------
def test_build_filter_state_from_controls():
    state = build_filter_state(
        None,
        IDs.Control.BELOW_SLIDER,
        ["cold"],
        ["male"],
        PERCENTILE,
        0.2,
        0.7,
        0.1,
        0.8,
    )

    assert state.visible_conditions == frozenset({"cold"})
    assert state.sex_filters == frozenset({"male"})
    assert state.normalization_mode == PERCENTILE
    assert (state.below, state.above, state.within) == (0.2, 0.7, (0.1, 0.8))


def test_build_filter_state_crossed_handles_follow_trigger():
    lo_moved = build_filter_state(None, IDs.Control.WITHIN_LO_SLIDER, None, None, None, None, None, 0.6, 0.4)
    hi_moved = build_filter_state(None, IDs.Control.WITHIN_HI_SLIDER, None, None, None, None, None, 0.6, 0.4)

    assert lo_moved.within == (0.6, 0.6)
    assert hi_moved.within == (0.4, 0.4)


def test_build_filter_state_missing_values_keep_previous():
    previous = FilterState(visible_conditions={"hypoxia"}, below=0.3).to_dict()
    state = build_filter_state(previous, None, None, None, "unknown", None, None, None, None)

    assert state == FilterState.from_dict(previous)


def test_unchecking_every_condition_hides_everything():
    state = build_filter_state(None, IDs.Control.CONDITION_CHECKLIST, [], None, None, None, None, None, None)
    assert state.visible_conditions == frozenset()


# -----------------------------------------------------------------------------
# Selection
# -----------------------------------------------------------------------------
@pytest.mark.parametrize(
    "prop_id, expected",
    [
        ("graph-size-scatter.selectedData", (EVENT_BRUSH, "size-scatter")),
        ("graph-landmark-map.clickData", (EVENT_CLICK, "landmark-map")),
        ("filter-state.data", (EVENT_FILTER, None)),
        ("clear-selection-btn.n_clicks", (EVENT_CLEAR, None)),
        ("graph-landmark-map.relayoutData", (None, None)),
        ("unrelated", (None, None)),
        (None, (None, None)),
    ],
)
def test_classify_selection_trigger(prop_id, expected):
    assert classify_trigger(prop_id) == expected


def test_clicked_specimen_id():
    assert clicked_specimen_id({"points": [{"customdata": "s1"}]}) == "s1"
    assert clicked_specimen_id({"points": [{"customdata": ["s2", "A", 1.5]}]}) == "s2"
    assert clicked_specimen_id({"points": [{"x": 1}]}) is None
    assert clicked_specimen_id({"points": []}) is None
    assert clicked_specimen_id(None) is None


def test_reduce_selection_brush_then_filter_then_click():
    ctx = _make_ctx()
    brush = {"range": {"x2": [-0.1, 0.6], "y2": [0.0, 100.0]}, "points": []}

    data, changed = reduce_selection(ctx, None, _everything(), EVENT_BRUSH, "size-scatter", brush)
    assert changed
    assert data["selection"] == ["a", "b"]
    assert data["brush_source"] == "size-scatter"

    # Hiding hypoxia shrinks the brushed selection without a new brush
    narrowed = _everything(visible_conditions={"standard", "cold"})
    data, changed = reduce_selection(ctx, data, narrowed, EVENT_FILTER, None, narrowed)
    assert changed
    assert data["selection"] == ["a"]

    data, changed = reduce_selection(ctx, data, narrowed, EVENT_CLICK, "landmark-map", {"points": [{"customdata": ["c", "A", 3.0]}]})
    assert changed
    assert data["selection"] == ["a", "c"]
    assert data["brush"] is None

    data, changed = reduce_selection(ctx, data, narrowed, EVENT_CLEAR, None, 1)
    assert changed
    assert data["selection"] == []


def test_reduce_selection_ignores_lasso_and_unknown_events():
    ctx = _make_ctx()
    start, _ = reduce_selection(ctx, None, _everything(), EVENT_CLICK, "size-scatter", {"points": [{"customdata": "a"}]})

    lasso = {"lassoPoints": {"x2": [0, 1, 1], "y2": [0, 0, 1]}, "points": []}
    data, changed = reduce_selection(ctx, start, _everything(), EVENT_BRUSH, "size-scatter", lasso)
    assert not changed
    assert data["selection"] == ["a"]

    data, changed = reduce_selection(ctx, start, _everything(), None, None, None)
    assert not changed


def test_reduce_selection_deselect_clears():
    ctx = _make_ctx()
    start, _ = reduce_selection(ctx, None, _everything(), EVENT_CLICK, "size-scatter", {"points": [{"customdata": "a"}]})

    data, changed = reduce_selection(ctx, start, _everything(), EVENT_BRUSH, "size-scatter", None)
    assert changed
    assert data["selection"] == []


def test_reduce_selection_brush_on_landmark_map():
    ctx = _make_ctx()
    # Landmark 1 of a sits at (1, 2); of b at (2, 3); of c at (3, 4)
    brush = {"range": {"x": [0.5, 2.5], "y": [1.5, 3.5]}}

    data, changed = reduce_selection(ctx, None, _everything(), EVENT_BRUSH, "landmark-map", brush)

    assert changed
    assert data["selection"] == ["a", "b"]


def test_reduce_selection_ignores_box_on_marginal_histogram():
    ctx = _make_ctx()
    # Right histogram: x3 is a bin count, y3 is D
    brush = {"range": {"x3": [0, 2], "y3": [15, 45]}}

    data, changed = reduce_selection(ctx, None, _everything(), EVENT_BRUSH, "size-scatter", brush)

    assert not changed
    assert data["selection"] == []


# -----------------------------------------------------------------------------
# Viewport
# -----------------------------------------------------------------------------
def test_window_from_relayout():
    current = ((0.0, 10.0), (0.0, 20.0))

    assert window_from_relayout(None, current) is None
    assert window_from_relayout({"dragmode": "pan"}, current) is None
    assert window_from_relayout({"xaxis.autorange": True}, current) == RESET_WINDOW
    assert window_from_relayout({"xaxis.range[0]": 1, "xaxis.range[1]": 2}, current) == ((1.0, 2.0), (0.0, 20.0))
    assert window_from_relayout({"yaxis.range": [3, 4]}, current) == ((0.0, 10.0), (3.0, 4.0))
    assert window_from_relayout({"xaxis.range[0]": "x", "xaxis.range[1]": 2}, current) is None


def test_reduce_viewport_target_animates_and_settles():
    ctx = _make_ctx()

    data, animate = reduce_viewport(ctx, None, _everything(), EVENT_TARGET, "A")

    assert animate
    assert data["animate"] is True
    assert data["target"] == "A"
    assert data["target_satisfied"] is True
    assert landmark_select_value(data) == "A"
    assert ViewportTransform.from_dict(data["transform"]).scale > 1.0

    # Same letter again: already framed, nothing to animate
    again, animate = reduce_viewport(ctx, data, _everything(), EVENT_TARGET, "A")
    assert not animate
    assert again["transform"] == data["transform"]


def test_reduce_viewport_reset_and_autorange_return_to_identity():
    ctx = _make_ctx()
    zoomed, _ = reduce_viewport(ctx, None, _everything(), EVENT_TARGET, "B")

    data, animate = reduce_viewport(ctx, zoomed, _everything(), EVENT_RELAYOUT, {"xaxis.autorange": True})
    assert animate
    assert ViewportTransform.from_dict(data["transform"]) == IDENTITY
    assert data["target"] is None

    data, animate = reduce_viewport(ctx, data, _everything(), EVENT_RESET, None)
    assert not animate


def test_reduce_viewport_manual_zoom_disables_auto_zoom():
    ctx = _make_ctx()
    data, _ = reduce_viewport(ctx, None, _everything(), EVENT_TARGET, "A")

    data, animate = reduce_viewport(
        ctx, data, _everything(), EVENT_RELAYOUT, {"xaxis.range[0]": 2, "xaxis.range[1]": 6}
    )
    assert not animate
    assert data["auto_zoom"] == "disabled"
    assert landmark_select_value(data) is None

    # The cleared dropdown lets the same letter fire again and re-frame
    data, animate = reduce_viewport(ctx, data, _everything(), EVENT_TARGET, "A")
    assert animate
    assert data["auto_zoom"] == "enabled"
    assert landmark_select_value(data) == "A"


# -----------------------------------------------------------------------------
# Render
# -----------------------------------------------------------------------------
@pytest.mark.parametrize("view_id", ["size-scatter", "gradient-profiles", "gaussian-curves", "landmark-map"])
def test_render_view_returns_figure_for_every_view(view_id):
    ctx = _make_ctx()
    fig = render_view(ctx, view_id, _everything(), {"selection": ["a"]})

    assert isinstance(fig, go.Figure)
    assert len(fig.data) > 0


def test_render_view_landmark_map_uses_viewport_state():
    ctx = _make_ctx()
    viewport_data, _ = reduce_viewport(ctx, None, _everything(), EVENT_TARGET, "A")

    fig = render_view(ctx, "landmark-map", _everything(), None, viewport_data)

    assert fig.layout.transition.duration == 500
    assert fig.layout.height == 500


def test_render_view_no_data_message():
    ctx = _make_ctx()
    fig = render_view(ctx, "size-scatter", _everything(visible_conditions=set()), None)
    assert _annotation_text(fig).startswith("No data to display.")


def test_render_view_unknown_view_gives_error_figure():
    ctx = _make_ctx()
    fig = render_view(ctx, "nope", _everything(), None)
    assert "Something went wrong" in _annotation_text(fig)


def test_render_view_empty_store():
    ctx = _make_ctx(specimens=[])
    fig = render_view(ctx, "size-scatter", None, None)
    assert _annotation_text(fig).startswith("No specimens loaded.")


def test_status_text():
    ctx = _make_ctx()
    text = status_text(ctx, _everything(), {"selection": ["a", "b"]})
    assert text == "3 of 3 specimens visible (absolute sizes) · 2 selected"

    assert status_text(ctx, _everything(sex_filters={"male"}), None).startswith("1 of 3")


def test_selected_list_text():
    assert selected_list_text({"selection": ["b", "a"]}) == "Selected Wings (2): a, b"
    assert selected_list_text({"selection": []}) == ""
    assert selected_list_text(None) == ""
