from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Tuple

import dash
from dash import Input, Output, State

from wing_browser.core.filter_state import NORMALIZATION_MODES, FilterState
from wing_browser.ui.ids import IDs

if TYPE_CHECKING:
    from wing_browser.ui.config import AppConfig

logger = logging.getLogger(__name__)


def build_filter_state(
    previous: Optional[dict[str, Any]],
    triggered_id: Optional[str],
    conditions,
    sexes,
    mode: Optional[str],
    below,
    above,
    within_lo,
    within_hi,
) -> FilterState:
    """
    Pure helper: turn the raw control values into a FilterState.

    Missing values fall back to the previous state. When the two "within"
    handles cross, the one that was not touched follows the one that was.
    """
    prev = FilterState.from_dict(previous) if previous else FilterState()

    state = prev.with_conditions(conditions if conditions is not None else prev.visible_conditions)
    state = state.with_sexes(sexes if sexes is not None else prev.sex_filters)
    if mode in NORMALIZATION_MODES:
        state = state.with_mode(mode)
    state = state.with_below(below if below is not None else prev.below)
    state = state.with_above(above if above is not None else prev.above)

    lo = within_lo if within_lo is not None else prev.within[0]
    hi = within_hi if within_hi is not None else prev.within[1]
    moved = "hi" if triggered_id == IDs.Control.WITHIN_HI_SLIDER else "lo"
    return state.with_within(lo, hi, moved=moved)


def register_filter_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    # ---------------------------------------------------------
    # Controls -> FilterState (canonical), slider bounds echoed back
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Store.FILTER_STATE, "data"),
        Output(IDs.Control.WITHIN_LO_SLIDER, "value"),
        Output(IDs.Control.WITHIN_HI_SLIDER, "value"),
        Input(IDs.Control.CONDITION_CHECKLIST, "value"),
        Input(IDs.Control.SEX_CHECKLIST, "value"),
        Input(IDs.Control.NORMALIZATION_RADIO, "value"),
        Input(IDs.Control.BELOW_SLIDER, "value"),
        Input(IDs.Control.ABOVE_SLIDER, "value"),
        Input(IDs.Control.WITHIN_LO_SLIDER, "value"),
        Input(IDs.Control.WITHIN_HI_SLIDER, "value"),
        State(IDs.Store.FILTER_STATE, "data"),
        prevent_initial_call=True,
    )
    def sync_filter_state_from_ui(
        cond_val, sex_val, mode_val, below_val, above_val, lo_val, hi_val, previous
    ) -> Tuple[dict, float, float]:
        state = build_filter_state(
            previous,
            dash.ctx.triggered_id,
            cond_val,
            sex_val,
            mode_val,
            below_val,
            above_val,
            lo_val,
            hi_val,
        )
        logger.debug("Filter state updated", extra={"filter_state": state.to_dict()})
        return state.to_dict(), state.within[0], state.within[1]
