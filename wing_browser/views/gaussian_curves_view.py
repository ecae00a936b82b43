from __future__ import annotations

from typing import Tuple

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from wing_browser.core.base_view import BaseView, RenderContext
from wing_browser.core.filter_state import FilterState
from wing_browser.core.records import CONDITION_COLOURS
from wing_browser.views.gradient_profiles_view import curve_styles

N_CURVE_POINTS = 200
MIN_HALF_WIDTH = 50.0


def gaussian(x, A: float, C: float, D: float):
    """Fitted profile: baseline A rising to 1 at the peak C with width D."""
    x = np.asarray(x, dtype=float)
    return A + (1 - A) * np.exp(-((x - C) ** 2) / (2 * D ** 2))


def curve_x_range(C: float, D: float) -> Tuple[float, float]:
    # C +/- 3|D|, but never narrower than [-50, 50]
    return min(C - 3 * abs(D), -MIN_HALF_WIDTH), max(C + 3 * abs(D), MIN_HALF_WIDTH)


class GaussianCurvesView(BaseView):
    """
    Gaussian fits of the gradient profiles, centred on their peak.

    X: distance from peak (x - C)
    Y: normalised intensity
    """

    id = "gaussian-curves"
    label = "Gaussian Curves of Profiles"

    def compute_data(self, state: FilterState) -> pd.DataFrame:
        visible = self.store.visible_specimens(state)
        params = visible[["specimen_id", "condition", "A", "C", "D"]]
        usable = params[["A", "C", "D"]].apply(np.isfinite).all(axis=1) & (params["D"] != 0)
        params = params.loc[usable]

        frames = []
        for row in params.itertuples(index=False):
            x0, x1 = curve_x_range(row.C, row.D)
            xs = np.linspace(x0, x1, N_CURVE_POINTS)
            frames.append(
                pd.DataFrame(
                    {
                        "specimen_id": row.specimen_id,
                        "condition": row.condition,
                        "x": xs - row.C,
                        "y": gaussian(xs, row.A, row.C, row.D),
                    }
                )
            )

        if not frames:
            return pd.DataFrame(columns=["specimen_id", "condition", "x", "y"])
        return pd.concat(frames, ignore_index=True)

    def render_figure(self, data: pd.DataFrame, state: FilterState, context: RenderContext) -> go.Figure:
        if data is None or data.empty:
            return self.empty_figure("No fitted curves match the current filters")

        selection = context.selection
        have_selection = bool(selection)

        fig = go.Figure()
        curves = list(data.groupby("specimen_id", sort=False))
        layers = [(sid, c, False) for sid, c in curves] + [
            (sid, c, True) for sid, c in curves if sid in selection
        ]

        for specimen_id, curve, is_selected in layers:
            condition = curve["condition"].iloc[0]
            style = curve_styles(is_selected, have_selection)
            fig.add_trace(
                go.Scatter(
                    x=curve["x"],
                    y=curve["y"],
                    mode="lines",
                    line=dict(color=CONDITION_COLOURS.get(condition, "#999"), width=style["width"], shape="spline"),
                    opacity=style["opacity"],
                    name=condition,
                    legendgroup=condition,
                    showlegend=False,
                    customdata=[specimen_id] * len(curve),
                    hovertemplate="Disc: %{customdata}<extra></extra>",
                )
            )

        for condition in sorted(data["condition"].unique()):
            fig.add_trace(
                go.Scatter(
                    x=[None],
                    y=[None],
                    mode="lines",
                    line=dict(color=CONDITION_COLOURS.get(condition, "#999"), width=2),
                    name=condition,
                    legendgroup=condition,
                )
            )

        fig.update_xaxes(title_text="Distance from Peak (µm)")
        fig.update_yaxes(range=[0, float(data["y"].max()) * 1.1], title_text="Normalized Intensity")
        fig.update_layout(
            title=self.label,
            legend_title="Condition",
            margin=dict(l=54, r=48, t=48, b=42),
            uirevision=self.id,
        )
        return fig
