"""
Config package for wing_browser.

Responsible for:
- config models (GlobalConfig, DataFiles, PlotConfig)
- global.json loading (load_global_config)
"""

from .model import DataFiles, GlobalConfig, PlotConfig
from .loader import load_global_config

__all__ = ["DataFiles", "GlobalConfig", "PlotConfig", "load_global_config"]
