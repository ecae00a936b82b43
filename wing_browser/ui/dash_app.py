from __future__ import annotations

import os
import logging
from pathlib import Path
from typing import Optional

import dash_bootstrap_components as dbc
from dash import Dash

from .config import AppConfig
from wing_browser.config.loader import load_global_config
from wing_browser.core.view_registry import ViewRegistry
from wing_browser.io.loaders import load_records
from wing_browser.ui.layout.build_layout import build_layout
from wing_browser.ui.callbacks.callbacks_filters import register_filter_callbacks
from wing_browser.ui.callbacks.callbacks_selection import register_selection_callbacks
from wing_browser.ui.callbacks.callbacks_viewport import register_viewport_callbacks
from wing_browser.ui.callbacks.callbacks_render import register_render_callbacks

logger = logging.getLogger(__name__)


def _build_view_registry() -> ViewRegistry:
    from wing_browser.views import (
        SizeScatterView,
        GradientProfilesView,
        GaussianCurvesView,
        LandmarkMapView,
    )

    registry = ViewRegistry()
    registry.register(SizeScatterView)
    registry.register(GradientProfilesView)
    registry.register(GaussianCurvesView)
    registry.register(LandmarkMapView)
    return registry


def create_dash_app(config_root: Optional[Path | str] = None) -> Dash:
    if config_root is None:
        config_root = os.getenv("WING_BROWSER_CONFIG", "config")
    config_root = Path(config_root)

    # 1) Load Config
    global_config = load_global_config(config_root)
    if global_config.files.is_empty:
        logger.warning("No data files configured", extra={"config_root": str(config_root)})

    # 2) Load Records (once, before any callback can run)
    store = load_records(global_config.files)

    # 3) App Context
    ctx = AppConfig(
        config_root=config_root,
        global_config=global_config,
        store=store,
        registry=_build_view_registry(),
    )
    ctx.validate()

    assets_path = Path(__file__).parent / "assets"

    app = Dash(
        __name__,
        external_stylesheets=[dbc.themes.FLATLY],
        assets_folder=str(assets_path),
    )

    app.title = getattr(global_config, "ui_title", "Wing Disc Browser")

    app.layout = build_layout(ctx)

    # Register callbacks
    register_filter_callbacks(app, ctx)
    register_selection_callbacks(app, ctx)
    register_viewport_callbacks(app, ctx)
    register_render_callbacks(app, ctx)

    logger.info(
        "Dash app created",
        extra={"config_root": str(config_root), "n_specimens": len(store), "views": ctx.registry.ids()},
    )
    return app
