from __future__ import annotations

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from wing_browser.core.base_view import BaseView, RenderContext
from wing_browser.core.filter_state import FilterState
from wing_browser.core.records import CONDITION_COLOURS, CONDITIONS
from wing_browser.core.selection import selection_opacity

X_BINS = 20
Y_BINS = 15


class SizeScatterView(BaseView):
    """
    Wing disc area vs. gradient width scatter.

    X: wing disc area, normalised to [0, 1] over all specimens
    Y: gradient width D
    Colour: condition, with marginal histograms per condition
    """

    id = "size-scatter"
    label = "Wing Disc vs Standard Deviation"
    brushable = True
    # Marginal histograms sit on x/y and x3/y3
    brush_axes = ("x2", "y2")

    def compute_data(self, state: FilterState) -> pd.DataFrame:
        visible = self.store.visible_specimens(state)
        if visible.empty:
            return pd.DataFrame(columns=["specimen_id", "condition", "sex", "x", "y", "normalized_size"])

        area_range = self.store.area_range
        df = pd.DataFrame(
            {
                "specimen_id": visible["specimen_id"].astype(str).to_numpy(),
                "condition": visible["condition"].to_numpy(),
                "sex": visible["sex"].to_numpy(),
                "x": [area_range.normalize(a) for a in visible["area"].to_numpy(dtype=float)],
                "y": visible["D"].to_numpy(dtype=float),
                "normalized_size": visible["normalized_size"].to_numpy(dtype=float),
            }
        )

        # Specimens without area or D can be filtered but not plotted
        finite = np.isfinite(df["x"].to_numpy(dtype=float)) & np.isfinite(df["y"].to_numpy(dtype=float))
        df = df.loc[finite].reset_index(drop=True)

        df.attrs["y_extent"] = self._full_y_extent()
        return df

    def brush_points(self, state: FilterState) -> pd.DataFrame:
        return self.compute_data(state)[["specimen_id", "x", "y"]]

    def _full_y_extent(self):
        # Scales come from all data so filtering does not rescale the axes
        d = self.store.specimen_table["D"].to_numpy(dtype=float)
        d = d[np.isfinite(d)]
        if d.size == 0:
            return 0.0, 1.0
        return float(d.min()), float(d.max())

    def render_figure(self, data: pd.DataFrame, state: FilterState, context: RenderContext) -> go.Figure:
        if data is None or data.empty:
            return self.empty_figure("No specimens match the current filters")

        fig = make_subplots(
            rows=2,
            cols=2,
            column_widths=[0.85, 0.15],
            row_heights=[0.15, 0.85],
            shared_xaxes=True,
            shared_yaxes=True,
            horizontal_spacing=0.01,
            vertical_spacing=0.01,
            specs=[[{}, None], [{}, {}]],
        )

        y_lo, y_hi = data.attrs.get("y_extent", (data["y"].min(), data["y"].max()))
        y_pad = (y_hi - y_lo) * 0.05 or 0.5

        for condition in CONDITIONS:
            subset = data.loc[data["condition"] == condition]
            if subset.empty:
                continue
            colour = CONDITION_COLOURS[condition]
            ids = subset["specimen_id"].tolist()

            fig.add_trace(
                go.Scatter(
                    x=subset["x"],
                    y=subset["y"],
                    mode="markers",
                    name=condition,
                    legendgroup=condition,
                    customdata=ids,
                    marker=dict(
                        size=8,
                        color=colour,
                        opacity=selection_opacity(ids, context.selection, dimmed=0.2, neutral=0.7),
                        line=dict(color="#fff", width=1),
                    ),
                    hovertemplate="ID: %{customdata}<br>Area: %{x:.3f}<br>D: %{y:.3f}<extra>" + condition + "</extra>",
                ),
                row=2,
                col=1,
            )
            fig.add_trace(
                go.Histogram(
                    x=subset["x"],
                    xbins=dict(start=0.0, end=1.0, size=1.0 / X_BINS),
                    marker_color=colour,
                    opacity=0.5,
                    legendgroup=condition,
                    showlegend=False,
                    hoverinfo="skip",
                ),
                row=1,
                col=1,
            )
            fig.add_trace(
                go.Histogram(
                    y=subset["y"],
                    ybins=dict(start=y_lo, end=y_hi, size=(y_hi - y_lo) / Y_BINS or 1.0),
                    marker_color=colour,
                    opacity=0.5,
                    legendgroup=condition,
                    showlegend=False,
                    hoverinfo="skip",
                ),
                row=2,
                col=2,
            )

        fig.update_xaxes(range=[-0.02, 1.02], title_text="Normalized Wing Disc Area", row=2, col=1)
        fig.update_yaxes(range=[y_lo - y_pad, y_hi + y_pad], title_text="Standard Deviation (D)", row=2, col=1)
        fig.update_layout(
            title=self.label,
            barmode="overlay",
            dragmode="select",
            clickmode="event",
            legend_title="Condition",
            plot_bgcolor="#f0f0f5",
            margin=dict(l=60, r=20, t=60, b=50),
            uirevision=self.id,
        )
        return fig
