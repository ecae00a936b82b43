from __future__ import annotations

from typing import List

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from plotly.colors import sample_colorscale

from wing_browser.core.base_view import BaseView, RenderContext
from wing_browser.core.filter_state import FilterState
from wing_browser.core.records import CONDITIONS, LANDMARK_CONNECTIONS
from wing_browser.core.selection import selection_opacity
from wing_browser.core.viewport import TRANSITION_SECONDS, ViewportController

CONDITION_SCALES = {
    "standard": px.colors.sequential.OrRd,
    "hypoxia": px.colors.sequential.BuPu,
    "cold": px.colors.sequential.BuGn,
}


def size_colours(condition: str, normalized: np.ndarray) -> List[str]:
    """Sample the condition's palette over its upper third, darker for larger discs."""
    scale = CONDITION_SCALES.get(condition, px.colors.sequential.Greys)
    points = np.clip(0.67 + 0.33 * np.nan_to_num(np.asarray(normalized, dtype=float), nan=0.5), 0.0, 1.0)
    return sample_colorscale(scale, points.tolist())


def connection_segments(points: pd.DataFrame):
    """
    Line segments of the landmark graph for one specimen, as x / y lists with
    None separators (one trace draws every edge).
    """
    by_index = points.set_index("point_index")[["x", "y"]]
    xs, ys = [], []
    for a, b in LANDMARK_CONNECTIONS:
        if a not in by_index.index or b not in by_index.index:
            continue
        xs += [by_index.at[a, "x"], by_index.at[b, "x"], None]
        ys += [by_index.at[a, "y"], by_index.at[b, "y"], None]
    return xs, ys


def hover_rows(points: pd.DataFrame) -> List[list]:
    """customdata per point: id, letter, centroid size, sex, normalised size."""
    sexes = points["sex"].where(points["sex"].notna(), "unknown")
    return [
        [str(sid), letter, float(size), str(sex), float(norm)]
        for sid, letter, size, sex, norm in zip(
            points["specimen_id"],
            points["letter"],
            points["centroid_size"],
            sexes,
            points["normalized_size"],
        )
    ]


class LandmarkMapView(BaseView):
    """
    Landmark coordinates of every visible specimen.

    Points are coloured by condition palette and centroid size and labelled
    with their landmark letter. Selected specimens get a black outline and
    their wing outline drawn. Axis ranges come from the viewport controller.
    """

    id = "landmark-map"
    label = "Landmark Coordinates"
    brushable = True

    def compute_data(self, state: FilterState) -> pd.DataFrame:
        points = self.store.visible_landmarks(state)
        if points.empty:
            return points.assign(normalized_size=pd.Series(dtype=float))

        size_range = self.store.size_range
        points = points.copy()
        points["normalized_size"] = [size_range.normalize(s) for s in points["centroid_size"].to_numpy(dtype=float)]
        return points

    def brush_points(self, state: FilterState) -> pd.DataFrame:
        return self.compute_data(state)[["specimen_id", "x", "y"]]

    def viewport_for(self, context: RenderContext) -> ViewportController:
        viewport = context.viewport or ViewportController()
        # Base scales follow every landmark, not the filtered subset
        viewport.set_extent_from_points(self.store.landmark_table)
        return viewport

    def render_figure(self, data: pd.DataFrame, state: FilterState, context: RenderContext) -> go.Figure:
        if data is None or data.empty:
            return self.empty_figure("No landmarks match the current filters")

        selection = context.selection
        viewport = self.viewport_for(context)

        fig = go.Figure()

        for specimen_id, points in data.loc[data["specimen_id"].isin(list(selection))].groupby("specimen_id"):
            xs, ys = connection_segments(points)
            fig.add_trace(
                go.Scatter(
                    x=xs,
                    y=ys,
                    mode="lines",
                    line=dict(color="#333", width=1),
                    opacity=0.6,
                    showlegend=False,
                    hoverinfo="skip",
                    name=str(specimen_id),
                )
            )

        for condition in CONDITIONS:
            subset = data.loc[data["condition"] == condition]
            if subset.empty:
                continue
            ids = subset["specimen_id"].astype(str).tolist()
            outline = [2 if i in selection else 0 for i in ids]

            fig.add_trace(
                go.Scatter(
                    x=subset["x"],
                    y=subset["y"],
                    mode="markers+text",
                    text=subset["letter"],
                    textposition="top center",
                    textfont=dict(size=9),
                    name=condition,
                    customdata=hover_rows(subset),
                    marker=dict(
                        size=7,
                        color=size_colours(condition, subset["normalized_size"].to_numpy(dtype=float)),
                        opacity=selection_opacity(ids, selection, selected=1.0, dimmed=0.4, neutral=0.8),
                        line=dict(color="black", width=outline),
                    ),
                    hovertemplate=(
                        "ID: %{customdata[0]}<br>Landmark: %{customdata[1]}"
                        "<br>Sex: %{customdata[3]}"
                        "<br>Centroid size: %{customdata[2]:.4f}"
                        "<br>Normalized size: %{customdata[4]:.3f}"
                        "<br>Coordinates: (%{x:.2f}, %{y:.2f})"
                        "<extra>" + condition + "</extra>"
                    ),
                )
            )

        (x0, x1), (y0, y1) = viewport.visible_window()
        fig.update_xaxes(range=[x0, x1], title_text="X", zeroline=False)
        fig.update_yaxes(range=[y0, y1], title_text="Y", zeroline=False, scaleanchor="x", scaleratio=1)

        t = viewport.transform
        fig.update_layout(
            title=self.label,
            height=int(viewport.height),
            legend_title="Condition",
            dragmode="select",
            clickmode="event",
            margin=dict(
                l=viewport.margins.left,
                r=viewport.margins.right,
                t=viewport.margins.top,
                b=viewport.margins.bottom,
            ),
            # A new transform must override whatever zoom plotly kept client-side
            uirevision=f"{self.id}:{t.translate_x:.3f}:{t.translate_y:.3f}:{t.scale:.4f}",
        )
        if context.animate:
            fig.update_layout(transition=dict(duration=int(TRANSITION_SECONDS * 1000), easing="cubic-in-out"))
        return fig
