from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Tuple

import dash
import pandas as pd
from dash import Input, Output, State

from wing_browser.core.filter_state import FilterState
from wing_browser.core.selection import BrushRect, SelectionCoordinator
from wing_browser.core.viewport import AxisScales
from wing_browser.ui.ids import IDs, graph_id, view_id_from_graph

if TYPE_CHECKING:
    from wing_browser.ui.config import AppConfig

logger = logging.getLogger(__name__)

EVENT_FILTER = "filter"
EVENT_BRUSH = "brush"
EVENT_CLICK = "click"
EVENT_CLEAR = "clear"


def classify_trigger(prop_id: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Map a Dash prop id ("graph-size-scatter.selectedData") onto
    (event, view_id). Unknown triggers give (None, None).
    """
    if not prop_id or "." not in prop_id:
        return None, None
    component_id, prop = prop_id.rsplit(".", 1)

    if component_id == IDs.Store.FILTER_STATE:
        return EVENT_FILTER, None
    if component_id == IDs.Control.CLEAR_SELECTION_BTN:
        return EVENT_CLEAR, None

    view_id = view_id_from_graph(component_id)
    if view_id is None:
        return None, None
    if prop == "selectedData":
        return EVENT_BRUSH, view_id
    if prop == "clickData":
        return EVENT_CLICK, view_id
    return None, None


def clicked_specimen_id(click_data: Optional[dict[str, Any]]) -> Optional[str]:
    """Specimen id carried in the customdata of the clicked point, if any."""
    if not click_data:
        return None
    points = click_data.get("points") or []
    if not points:
        return None
    custom = points[0].get("customdata")
    # Some views pack extra hover fields after the id
    if isinstance(custom, (list, tuple)):
        custom = custom[0] if custom else None
    if custom is None:
        return None
    return str(custom)


def _brush_records(ctx: AppConfig, view_id: Optional[str], state: FilterState) -> pd.DataFrame:
    if view_id is not None and view_id in ctx.registry.ids():
        view = ctx.registry.create(view_id, ctx.store)
        if view.brushable:
            return view.brush_points(state)
    # Without a source view only the ids matter
    return ctx.store.visible_specimens(state)


def _brush_axes(ctx: AppConfig, view_id: Optional[str]) -> Tuple[str, str]:
    if view_id is not None and view_id in ctx.registry.ids():
        return ctx.registry.create(view_id, ctx.store).brush_axes
    return "x", "y"


def reduce_selection(
    ctx: AppConfig,
    selection_data: Optional[dict[str, Any]],
    fs_data: Optional[dict[str, Any]],
    event: Optional[str],
    view_id: Optional[str],
    payload: Any,
) -> Tuple[dict[str, Any], bool]:
    """
    Pure helper: apply one UI event to the stored selection.

    :return: (new selection-state dict, whether the selection changed)
    """
    coordinator = SelectionCoordinator.from_dict(selection_data)
    state = FilterState.from_dict(fs_data) if fs_data else FilterState()

    if event == EVENT_FILTER:
        changed = coordinator.apply_filter_change(_brush_records(ctx, coordinator.brush_source, state))
    elif event == EVENT_CLEAR:
        changed = coordinator.clear()
    elif event == EVENT_CLICK:
        specimen_id = clicked_specimen_id(payload)
        changed = coordinator.toggle(specimen_id) if specimen_id is not None else False
    elif event == EVENT_BRUSH:
        if payload is not None and not payload.get("range"):
            # Lasso or point selections carry no rectangle
            return coordinator.to_dict(), False
        x_key, y_key = _brush_axes(ctx, view_id)
        if payload is not None and not {x_key, y_key} <= set(payload["range"]):
            # Box drawn on a subplot the brush does not apply to (marginal histograms)
            return coordinator.to_dict(), False
        rect = BrushRect.from_plotly(payload, x_key, y_key)
        changed = coordinator.set_from_brush(
            rect,
            AxisScales.identity(),
            _brush_records(ctx, view_id, state),
            source=view_id,
        )
    else:
        return coordinator.to_dict(), False

    if changed:
        logger.info(
            "Selection updated",
            extra={
                "event": event,
                "view_id": view_id,
                "n_selected": len(coordinator.current_selection),
                "revision": coordinator.revision,
            },
        )
    return coordinator.to_dict(), changed


def register_selection_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    view_classes = ctx.registry.all_classes()
    brush_inputs = [Input(graph_id(cls.id), "selectedData") for cls in view_classes if cls.brushable]
    click_inputs = [Input(graph_id(cls.id), "clickData") for cls in view_classes]

    # ---------------------------------------------------------
    # Brush / click / clear / filter change -> selection-state
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Store.SELECTION_STATE, "data"),
        Input(IDs.Store.FILTER_STATE, "data"),
        Input(IDs.Control.CLEAR_SELECTION_BTN, "n_clicks"),
        *brush_inputs,
        *click_inputs,
        State(IDs.Store.SELECTION_STATE, "data"),
        prevent_initial_call=True,
    )
    def update_selection(fs_data, _clear_clicks, *args):
        selection_data = args[-1]
        triggered = dash.ctx.triggered[0] if dash.ctx.triggered else {}
        event, view_id = classify_trigger(triggered.get("prop_id"))

        new_data, changed = reduce_selection(
            ctx,
            selection_data,
            fs_data,
            event,
            view_id,
            triggered.get("value"),
        )
        if not changed:
            return dash.no_update
        return new_data
