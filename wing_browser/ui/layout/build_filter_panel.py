from __future__ import annotations

import dash_bootstrap_components as dbc
from dash import dcc, html

from wing_browser.core.filter_state import ABSOLUTE, PERCENTILE, FilterState
from wing_browser.core.record_store import RecordStore
from wing_browser.core.records import CONDITIONS, SEXES
from wing_browser.ui.ids import IDs

SLIDER_MARKS = {0: "0", 0.25: "0.25", 0.5: "0.5", 0.75: "0.75", 1: "1"}


def _threshold_slider(component_id: str, label: str, value: float) -> html.Div:
    return html.Div(
        [
            html.Label(label, className="form-label"),
            dcc.Slider(
                id=component_id,
                min=0,
                max=1,
                step=0.01,
                value=value,
                marks=SLIDER_MARKS,
                tooltip={"placement": "bottom", "always_visible": False},
            ),
        ],
        className="mb-2",
    )


def build_filter_panel(store: RecordStore, state: FilterState) -> dbc.Card:
    letter_options = [{"label": f"Landmark {letter}", "value": letter} for letter in store.letters]

    return dbc.Card(
        [
            dbc.CardHeader("Filters", className="fw-semibold"),
            dbc.CardBody(
                [
                    html.Label("Conditions", className="form-label"),
                    dbc.Checklist(
                        id=IDs.Control.CONDITION_CHECKLIST,
                        options=[{"label": f" {c}", "value": c} for c in CONDITIONS],
                        value=sorted(state.visible_conditions),
                        switch=True,
                        className="mb-3",
                    ),
                    html.Label("Sex", className="form-label"),
                    dbc.Checklist(
                        id=IDs.Control.SEX_CHECKLIST,
                        options=[{"label": f" {s}", "value": s} for s in SEXES],
                        value=sorted(state.sex_filters),
                        inline=True,
                        className="mb-3",
                    ),
                    html.Hr(),
                    html.Label("Centroid size normalisation", className="form-label"),
                    dbc.RadioItems(
                        id=IDs.Control.NORMALIZATION_RADIO,
                        options=[
                            {"label": "Absolute (global min-max)", "value": ABSOLUTE},
                            {"label": "Percentile (within condition)", "value": PERCENTILE},
                        ],
                        value=state.normalization_mode,
                        className="mb-3",
                    ),
                    _threshold_slider(IDs.Control.BELOW_SLIDER, "Show below", state.below),
                    _threshold_slider(IDs.Control.ABOVE_SLIDER, "And above", state.above),
                    _threshold_slider(IDs.Control.WITHIN_LO_SLIDER, "Within: from", state.within[0]),
                    _threshold_slider(IDs.Control.WITHIN_HI_SLIDER, "Within: to", state.within[1]),
                    html.Hr(),
                    html.Label("Zoom to landmark", className="form-label"),
                    dcc.Dropdown(
                        id=IDs.Control.LANDMARK_SELECT,
                        options=letter_options,
                        value=None,
                        placeholder="None (full view)",
                        className="mb-2",
                    ),
                    html.Div(
                        [
                            dbc.Button(
                                "Reset zoom",
                                id=IDs.Control.RESET_ZOOM_BTN,
                                color="secondary",
                                size="sm",
                                className="me-2",
                            ),
                            dbc.Button(
                                "Clear selection",
                                id=IDs.Control.CLEAR_SELECTION_BTN,
                                color="secondary",
                                outline=True,
                                size="sm",
                            ),
                        ],
                        className="d-flex mt-2",
                    ),
                ]
            ),
        ],
        className="wb-sidebar",
    )
