from __future__ import annotations

import dash_bootstrap_components as dbc
from dash import html

from wing_browser.config.model import GlobalConfig
from wing_browser.core.record_store import RecordStore


def build_navbar(global_config: GlobalConfig, store: RecordStore) -> dbc.Navbar:
    title = getattr(global_config, "ui_title", "Wing Disc Browser")
    subtitle = f"{store.name} · {len(store)} specimens · {len(store.profiles)} gradient profiles"

    return dbc.Navbar(
        dbc.Container(
            fluid=True,
            children=[
                html.Div(
                    [
                        html.H2(title, className="mb-0"),
                        html.Small(
                            subtitle,
                            className="text-muted",
                            id="navbar-subtitle",
                        ),
                    ],
                    className="d-flex flex-column justify-content-center",
                ),
            ],
        ),
        dark=False,
        className="shadow-sm wb-navbar",
    )
