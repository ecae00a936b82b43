from __future__ import annotations

from typing import List

import dash_bootstrap_components as dbc
from dash import dcc, html

from wing_browser.core.view_registry import ViewRegistry
from wing_browser.ui.ids import IDs, graph_id


def _graph_card(view_id: str, label: str) -> dbc.Card:
    return dbc.Card(
        [
            dbc.CardHeader(html.Strong(label), className="p-2"),
            dbc.CardBody(
                dcc.Graph(
                    id=graph_id(view_id),
                    style={"height": "520px"},
                    config={"responsive": True, "scrollZoom": True, "displaylogo": False},
                ),
                className="wb-graph-body",
            ),
        ],
        className="wb-graphcard mb-3",
    )


def build_plot_panel(registry: ViewRegistry) -> html.Div:
    """One card per registered view, two per row."""
    cards: List[dbc.Col] = [
        dbc.Col(_graph_card(cls.id, cls.label), lg=6)
        for cls in registry.all_classes()
    ]
    return html.Div(
        [
            html.Div(id=IDs.Control.STATUS_BAR, className="wb-status text-muted small mb-2"),
            html.Div(id=IDs.Control.SELECTED_LIST, className="wb-selected small mb-2"),
            dbc.Row(cards, className="gx-3"),
        ]
    )
