from __future__ import annotations

__all__ = ["IDs", "graph_id", "view_id_from_graph"]

GRAPH_PREFIX = "graph-"


class IDs:
    class Store:
        FILTER_STATE = "filter-state"
        SELECTION_STATE = "selection-state"
        VIEWPORT_STATE = "viewport-state"

    class Control:
        # Size / condition / sex filters
        CONDITION_CHECKLIST = "condition-checklist"
        SEX_CHECKLIST = "sex-checklist"
        NORMALIZATION_RADIO = "normalization-radio"
        BELOW_SLIDER = "below-slider"
        ABOVE_SLIDER = "above-slider"
        WITHIN_LO_SLIDER = "within-lo-slider"
        WITHIN_HI_SLIDER = "within-hi-slider"

        # Selection + viewport
        LANDMARK_SELECT = "landmark-select"
        RESET_ZOOM_BTN = "reset-zoom-btn"
        CLEAR_SELECTION_BTN = "clear-selection-btn"

        # Status bar
        STATUS_BAR = "status-bar"
        SELECTED_LIST = "selected-list"


def graph_id(view_id: str) -> str:
    """dcc.Graph id of a registered view."""
    return f"{GRAPH_PREFIX}{view_id}"


def view_id_from_graph(component_id: str | None) -> str | None:
    if not component_id or not component_id.startswith(GRAPH_PREFIX):
        return None
    return component_id[len(GRAPH_PREFIX):]
