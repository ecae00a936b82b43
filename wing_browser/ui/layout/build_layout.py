from __future__ import annotations

from typing import TYPE_CHECKING

import dash_bootstrap_components as dbc
from dash import dcc

from wing_browser.core.filter_state import FilterState
from wing_browser.core.selection import SelectionCoordinator
from wing_browser.ui.ids import IDs
from wing_browser.ui.layout.build_filter_panel import build_filter_panel
from wing_browser.ui.layout.build_navbar import build_navbar
from wing_browser.ui.layout.build_plot_panel import build_plot_panel

if TYPE_CHECKING:
    from wing_browser.ui.config import AppConfig


def build_layout(ctx: AppConfig):
    state = FilterState()
    filter_panel = build_filter_panel(ctx.store, state)

    return dbc.Container(
        fluid=True,
        className="wb-root",
        children=[
            build_navbar(ctx.global_config, ctx.store),

            # App-level stores, memory only: nothing survives a reload
            dcc.Store(id=IDs.Store.FILTER_STATE, storage_type="memory", data=state.to_dict()),
            dcc.Store(
                id=IDs.Store.SELECTION_STATE,
                storage_type="memory",
                data=SelectionCoordinator().to_dict(),
            ),
            dcc.Store(
                id=IDs.Store.VIEWPORT_STATE,
                storage_type="memory",
                data=ctx.new_viewport().to_dict(),
            ),

            dbc.Row(
                [
                    dbc.Col(filter_panel, md=3, className="mt-3"),
                    dbc.Col(build_plot_panel(ctx.registry), md=9, className="mt-3"),
                ],
                className="gx-3",
            ),
        ],
    )
