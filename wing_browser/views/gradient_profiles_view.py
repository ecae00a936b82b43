from __future__ import annotations

from typing import List

import numpy as np
import plotly.graph_objects as go

from wing_browser.core.base_view import BaseView, RenderContext
from wing_browser.core.filter_state import FilterState
from wing_browser.core.records import CONDITION_COLOURS, GradientProfile


def curve_styles(selected: bool, have_selection: bool) -> dict:
    """Line styling shared by the profile and Gaussian views."""
    if selected:
        return dict(width=2, opacity=0.9)
    return dict(width=1, opacity=0.1 if have_selection else 0.25)


class GradientProfilesView(BaseView):
    """
    Raw gradient profiles: relative intensity vs. distance to the peak.

    Every visible profile is drawn thin in the background; selected
    specimens are redrawn bold on top.
    """

    id = "gradient-profiles"
    label = "Raw Gradient Profiles"

    def compute_data(self, state: FilterState) -> List[GradientProfile]:
        return self.store.visible_profiles(state)

    def render_figure(self, data: List[GradientProfile], state: FilterState, context: RenderContext) -> go.Figure:
        if not data:
            return self.empty_figure("No gradient profiles match the current filters")

        selection = context.selection
        have_selection = bool(selection)

        fig = go.Figure()
        layers = [(p, False) for p in data] + [(p, True) for p in data if p.specimen_id in selection]

        for profile, is_selected in layers:
            style = curve_styles(is_selected, have_selection)
            fig.add_trace(
                go.Scatter(
                    x=profile.relative_distance,
                    y=profile.value,
                    mode="lines",
                    line=dict(color=CONDITION_COLOURS.get(profile.condition, "#999"), width=style["width"], shape="spline"),
                    opacity=style["opacity"],
                    name=profile.condition,
                    legendgroup=profile.condition,
                    showlegend=False,
                    customdata=[profile.specimen_id] * len(profile.value),
                    hovertemplate="Disc: %{customdata}<extra></extra>",
                )
            )

        # One legend entry per condition present
        for condition in sorted({p.condition for p in data}):
            fig.add_trace(
                go.Scatter(
                    x=[None],
                    y=[None],
                    mode="lines",
                    line=dict(color=CONDITION_COLOURS.get(condition, "#999"), width=2),
                    name=condition,
                    legendgroup=condition,
                    showlegend=True,
                )
            )

        all_x = np.concatenate([np.asarray(p.relative_distance) for p in self.store.profiles])
        fig.update_xaxes(range=[float(all_x.min()), float(all_x.max())], title_text="Actual Distance Relative to Peak (µm)")
        fig.update_yaxes(range=[0, 1.02], title_text="Relative Intensity")
        fig.update_layout(
            title=self.label,
            legend_title="Condition",
            margin=dict(l=54, r=48, t=48, b=60),
            uirevision=self.id,
        )
        return fig
