from __future__ import annotations

import pandas as pd
import pytest

from wing_browser.core.base_view import RenderContext
from wing_browser.core.filter_state import FilterState
from wing_browser.core.record_store import RecordStore
from wing_browser.core.records import LANDMARK_CONNECTIONS, Specimen, specimen_landmarks
from wing_browser.core.viewport import ViewportController
from wing_browser.views.landmark_map_view import LandmarkMapView, connection_segments, hover_rows, size_colours


def _make_store() -> RecordStore:
    """Two specimens (one per condition) with 15 landmarks each."""
    specimens = [
        Specimen("a", "standard", "female", 1.0),
        Specimen("b", "hypoxia", "male", 3.0),
    ]
    landmarks = specimen_landmarks("a", [(i, 2 * i) for i in range(1, 16)]) + specimen_landmarks(
        "b", [(i + 1, 2 * i + 1) for i in range(1, 16)]
    )
    return RecordStore(specimens, landmarks=landmarks)


def _make_state(**kwargs) -> FilterState:
    return FilterState(below=1.0, within=(0.0, 1.0), **kwargs)


def test_landmark_compute_data_attaches_normalised_size():
    view = LandmarkMapView(_make_store())
    df = view.compute_data(_make_state())

    assert len(df) == 30
    sizes = df.groupby("specimen_id")["normalized_size"].first()
    assert sizes["a"] == 0.0
    assert sizes["b"] == 1.0


def test_connection_segments_draws_every_edge():
    store = _make_store()
    points = store.landmark_table.loc[store.landmark_table["specimen_id"] == "a"]

    xs, ys = connection_segments(points)

    assert len(xs) == len(ys) == 3 * len(LANDMARK_CONNECTIONS)
    assert xs[2::3] == [None] * len(LANDMARK_CONNECTIONS)
    # First edge joins landmark 1 (1, 2) to landmark 7 (7, 14)
    assert xs[:2] == [1.0, 7.0]
    assert ys[:2] == [2.0, 14.0]


def test_size_colours_are_darker_for_larger_discs():
    small, large, unknown = size_colours("standard", [0.0, 1.0, float("nan")])

    assert small != large
    assert all(c.startswith("rgb") for c in (small, large, unknown))


def test_landmark_render_figure_outlines_selection():
    view = LandmarkMapView(_make_store())
    state = _make_state()
    fig = view.render_figure(view.compute_data(state), state, RenderContext(selection=frozenset({"a"})))

    outline, standard, hypoxia = fig.data
    assert outline.mode == "lines"
    assert list(standard.marker.line.width) == [2] * 15
    assert list(hypoxia.marker.line.width) == [0] * 15
    assert list(standard.marker.opacity) == [1.0] * 15
    assert list(hypoxia.marker.opacity) == [0.4] * 15
    assert list(standard.customdata[0]) == ["a", "A", 1.0, "female", 0.0]
    assert "Sex: %{customdata[3]}" in standard.hovertemplate
    assert "Coordinates: (%{x:.2f}, %{y:.2f})" in standard.hovertemplate
    assert fig.layout.yaxis.scaleanchor == "x"
    assert fig.layout.uirevision.startswith("landmark-map:")


def test_landmark_axes_follow_viewport_window():
    store = _make_store()
    view = LandmarkMapView(store)
    state = _make_state()

    viewport = ViewportController(width=600, height=500)
    viewport.set_extent_from_points(store.landmark_table)
    viewport.apply_window((2.0, 6.0), (4.0, 12.0))

    fig = view.render_figure(view.compute_data(state), state, RenderContext(viewport=viewport))
    (x0, x1), (y0, y1) = viewport.visible_window()

    assert tuple(fig.layout.xaxis.range) == pytest.approx((x0, x1))
    assert tuple(fig.layout.yaxis.range) == pytest.approx((y0, y1))
    assert fig.layout.height == 500
    assert fig.layout.transition.duration is None


def test_landmark_animates_when_requested():
    view = LandmarkMapView(_make_store())
    state = _make_state()
    fig = view.render_figure(view.compute_data(state), state, RenderContext(animate=True))

    assert fig.layout.transition.duration == 500


def test_landmark_empty_figure():
    view = LandmarkMapView(_make_store())
    state = _make_state(sex_filters=set())
    df = view.compute_data(state)

    assert df.empty
    fig = view.render_figure(df, state, RenderContext())
    assert fig.layout.title.text == "No landmarks match the current filters"


def test_hover_rows_fill_missing_sex():
    points = pd.DataFrame(
        {
            "specimen_id": ["a", "b"],
            "letter": ["A", "B"],
            "centroid_size": [1.5, 2.0],
            "sex": ["male", None],
            "normalized_size": [0.25, 1.0],
        }
    )

    assert hover_rows(points) == [
        ["a", "A", 1.5, "male", 0.25],
        ["b", "B", 2.0, "unknown", 1.0],
    ]
