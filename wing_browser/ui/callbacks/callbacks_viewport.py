from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Tuple, Union

import dash
from dash import Input, Output, State

from wing_browser.core.filter_state import FilterState
from wing_browser.core.viewport import AutoZoom, Extent, ViewportController
from wing_browser.ui.ids import IDs, graph_id

if TYPE_CHECKING:
    from wing_browser.ui.config import AppConfig

logger = logging.getLogger(__name__)

LANDMARK_VIEW_ID = "landmark-map"

EVENT_RELAYOUT = "relayout"
EVENT_TARGET = "target"
EVENT_RESET = "reset"
EVENT_FILTER = "filter"

RESET_WINDOW = "reset"


def _axis_range(relayout: dict[str, Any], axis: str) -> Optional[Extent]:
    if f"{axis}.range[0]" in relayout and f"{axis}.range[1]" in relayout:
        return float(relayout[f"{axis}.range[0]"]), float(relayout[f"{axis}.range[1]"])
    full = relayout.get(f"{axis}.range")
    if isinstance(full, (list, tuple)) and len(full) == 2:
        return float(full[0]), float(full[1])
    return None


def window_from_relayout(
    relayout: Optional[dict[str, Any]],
    current: Tuple[Extent, Extent],
) -> Union[None, str, Tuple[Extent, Extent]]:
    """
    Read a plotly relayoutData payload.

    :return: RESET_WINDOW for an autorange (double-click), an (x, y) window
             for a zoom / pan, or None when nothing about the axes changed.
             A missing axis keeps its current range.
    """
    if not relayout:
        return None
    if relayout.get("xaxis.autorange") or relayout.get("yaxis.autorange"):
        return RESET_WINDOW

    try:
        x_range = _axis_range(relayout, "xaxis")
        y_range = _axis_range(relayout, "yaxis")
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed relayout payload", extra={"relayout": relayout})
        return None

    if x_range is None and y_range is None:
        return None
    return x_range or current[0], y_range or current[1]


def classify_trigger(prop_id: Optional[str]) -> Optional[str]:
    if not prop_id or "." not in prop_id:
        return None
    component_id = prop_id.rsplit(".", 1)[0]
    return {
        graph_id(LANDMARK_VIEW_ID): EVENT_RELAYOUT,
        IDs.Control.LANDMARK_SELECT: EVENT_TARGET,
        IDs.Control.RESET_ZOOM_BTN: EVENT_RESET,
        IDs.Store.FILTER_STATE: EVENT_FILTER,
    }.get(component_id)


def load_viewport(ctx: AppConfig, viewport_data: Optional[dict[str, Any]]) -> ViewportController:
    return ctx.new_viewport().load_dict(viewport_data)


def reduce_viewport(
    ctx: AppConfig,
    viewport_data: Optional[dict[str, Any]],
    fs_data: Optional[dict[str, Any]],
    event: Optional[str],
    payload: Any,
) -> Tuple[dict[str, Any], bool]:
    """
    Pure helper: apply one UI event to the stored viewport.

    :return: (new viewport-state dict, whether the figure should animate to it).
             The dict carries the settled controller state plus an "animate" flag.
    """
    viewport = load_viewport(ctx, viewport_data)
    state = FilterState.from_dict(fs_data) if fs_data else FilterState()

    if event == EVENT_RELAYOUT:
        window = window_from_relayout(payload, viewport.visible_window())
        if window == RESET_WINDOW:
            viewport.reset()
        elif window is not None:
            viewport.apply_window(*window)
    elif event == EVENT_RESET:
        viewport.reset()
    elif event == EVENT_TARGET:
        viewport.set_target(payload or None)

    # New target, or points for a pending one may have become visible
    if event in (EVENT_TARGET, EVENT_FILTER):
        viewport.auto_zoom(ctx.store.visible_landmarks(state))

    animate = viewport.in_transition
    data = viewport.to_dict()
    data["animate"] = animate

    logger.debug(
        "Viewport updated",
        extra={"event": event, "target": viewport.target, "transform": data["transform"], "animate": animate},
    )
    return data, animate


def landmark_select_value(viewport_data: dict[str, Any]) -> Optional[str]:
    """
    Dropdown value to echo back. After a manual gesture the dropdown is cleared
    (the transform is kept) so that picking the same letter again fires a new
    target event.
    """
    if viewport_data.get("auto_zoom") != AutoZoom.ENABLED.value:
        return None
    return viewport_data.get("target")


def register_viewport_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    if LANDMARK_VIEW_ID not in ctx.registry.ids():
        return

    # ---------------------------------------------------------
    # Zoom box / pan / landmark target / reset -> viewport-state
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Store.VIEWPORT_STATE, "data"),
        Output(IDs.Control.LANDMARK_SELECT, "value"),
        Input(graph_id(LANDMARK_VIEW_ID), "relayoutData"),
        Input(IDs.Control.LANDMARK_SELECT, "value"),
        Input(IDs.Control.RESET_ZOOM_BTN, "n_clicks"),
        Input(IDs.Store.FILTER_STATE, "data"),
        State(IDs.Store.VIEWPORT_STATE, "data"),
        prevent_initial_call=True,
    )
    def update_viewport(relayout, letter, _reset_clicks, fs_data, viewport_data):
        triggered = dash.ctx.triggered[0] if dash.ctx.triggered else {}
        event = classify_trigger(triggered.get("prop_id"))
        if event is None:
            return dash.no_update, dash.no_update

        payload = {EVENT_RELAYOUT: relayout, EVENT_TARGET: letter}.get(event)
        data, _ = reduce_viewport(ctx, viewport_data, fs_data, event, payload)
        return data, landmark_select_value(data)
