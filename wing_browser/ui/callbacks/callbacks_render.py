from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import dash
import pandas as pd
import plotly.graph_objs as go
from dash import Input, Output

from wing_browser.core.base_view import RenderContext
from wing_browser.core.filter_state import FilterState
from wing_browser.core.selection import SelectionCoordinator
from wing_browser.ui.callbacks.callbacks_viewport import LANDMARK_VIEW_ID, load_viewport
from wing_browser.ui.ids import IDs, graph_id

if TYPE_CHECKING:
    from wing_browser.ui.config import AppConfig

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helper: Empty/Error Figures
# -----------------------------------------------------------------------------
def _message_figure(title: str, details: Optional[str] = None) -> go.Figure:
    fig = go.Figure()
    text = title if details is None else f"{title}<br><br>{details}"
    fig.add_annotation(
        text=text,
        showarrow=False,
        xref="paper",
        yref="paper",
        x=0.5,
        y=0.5,
    )
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    fig.update_layout(margin=dict(l=40, r=40, t=40, b=40))
    return fig


def _error_figure(details: str) -> go.Figure:
    return _message_figure("Something went wrong while rendering this view.", details)


def render_view(
    ctx: AppConfig,
    view_id: str,
    fs_data: Optional[dict[str, Any]],
    selection_data: Optional[dict[str, Any]],
    viewport_data: Optional[dict[str, Any]] = None,
) -> go.Figure:
    """
    Pure helper: stores -> figure for one view. Never raises; failures become
    an error figure and a logged exception.
    """
    if len(ctx.store) == 0:
        return _message_figure(
            "No specimens loaded.",
            "Check the data files listed in global.json.",
        )

    try:
        state = FilterState.from_dict(fs_data) if fs_data else FilterState()
        selection = SelectionCoordinator.from_dict(selection_data).current_selection
    except Exception:
        logger.exception("Invalid store contents in render callback", extra={"view_id": view_id})
        return _error_figure("Internal error: invalid filter or selection state.")

    try:
        view = ctx.registry.create(view_id, ctx.store)

        context = RenderContext(selection=selection)
        if view_id == LANDMARK_VIEW_ID:
            context.viewport = load_viewport(ctx, viewport_data)
            context.animate = bool((viewport_data or {}).get("animate", False))

        logger.info(
            "render_start",
            extra={"view_id": view_id, "n_selected": len(selection)},
        )

        data = view.timed_compute(state)

        if data is None or (isinstance(data, pd.DataFrame) and data.empty) or (isinstance(data, list) and not data):
            return _message_figure(
                "No data to display.",
                "Your current filters removed every specimen for this view. "
                "Try enabling more conditions or widening the size thresholds.",
            )

        return view.render_figure(data, state, context)

    except Exception:
        logger.exception(
            "Error while rendering view",
            extra={"view_id": view_id, "filter_state": fs_data},
        )
        return _error_figure(
            "The app hit an unexpected error. "
            "If this keeps happening, grab the logs and open an issue."
        )


def status_text(ctx: AppConfig, fs_data: Optional[dict[str, Any]], selection_data: Optional[dict[str, Any]]) -> str:
    state = FilterState.from_dict(fs_data) if fs_data else FilterState()
    n_visible = len(ctx.store.visible_ids(state))
    n_selected = len(SelectionCoordinator.from_dict(selection_data).current_selection)
    return f"{n_visible} of {len(ctx.store)} specimens visible ({state.normalization_mode} sizes) · {n_selected} selected"


def selected_list_text(selection_data: Optional[dict[str, Any]]) -> str:
    """'Selected Wings (N): id, id, ...' for the current selection, '' when empty."""
    selection = SelectionCoordinator.from_dict(selection_data).current_selection
    if not selection:
        return ""
    return f"Selected Wings ({len(selection)}): " + ", ".join(sorted(selection))


def _register_view_render(app: dash.Dash, ctx: AppConfig, view_id: str) -> None:
    inputs = [
        Input(IDs.Store.FILTER_STATE, "data"),
        Input(IDs.Store.SELECTION_STATE, "data"),
    ]
    if view_id == LANDMARK_VIEW_ID:
        inputs.append(Input(IDs.Store.VIEWPORT_STATE, "data"))

    @app.callback(Output(graph_id(view_id), "figure"), *inputs)
    def update_view_figure(fs_data, selection_data, viewport_data=None):
        return render_view(ctx, view_id, fs_data, selection_data, viewport_data)


def register_render_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    # ---------------------------------------------------------
    # One figure callback per registered view
    # ---------------------------------------------------------
    for view_id in ctx.registry.ids():
        _register_view_render(app, ctx, view_id)

    # ---------------------------------------------------------
    # Status bar
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Control.STATUS_BAR, "children"),
        Input(IDs.Store.FILTER_STATE, "data"),
        Input(IDs.Store.SELECTION_STATE, "data"),
    )
    def update_status_bar(fs_data, selection_data):
        return status_text(ctx, fs_data, selection_data)

    # ---------------------------------------------------------
    # Selected wings list
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Control.SELECTED_LIST, "children"),
        Input(IDs.Store.SELECTION_STATE, "data"),
    )
    def update_selected_list(selection_data):
        return selected_list_text(selection_data)
