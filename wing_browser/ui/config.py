from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from wing_browser.config.model import GlobalConfig
from wing_browser.core.record_store import RecordStore
from wing_browser.core.view_registry import ViewRegistry
from wing_browser.core.viewport import ViewportController


@dataclass
class AppConfig:
    config_root: Path
    global_config: GlobalConfig
    store: RecordStore
    registry: Optional[ViewRegistry] = None

    def validate(self) -> None:
        """Ensure all required services are attached before the app starts."""
        if self.registry is None:
            raise RuntimeError("AppConfig.registry must be initialized.")

    def new_viewport(self) -> ViewportController:
        """Fresh controller sized for the landmark map, with base scales over every landmark."""
        plot = self.global_config.plot
        viewport = ViewportController(width=plot.width, height=plot.height)
        viewport.set_extent_from_points(self.store.landmark_table)
        return viewport
