from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from wing_browser.config.model import DataFiles, GlobalConfig, PlotConfig
from wing_browser.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Wing Disc Browser"


def _resolve(path_raw: str, base: Path) -> Path:
    # Absolute paths are used as-is, relative ones hang off `base`
    path = Path(path_raw)
    return path if path.is_absolute() else (base / path).resolve()


def _as_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigError(f"files.{key} must be a path or a list of paths, got {value!r}")


def _parse_files(raw_files: Any, base: Path) -> DataFiles:
    if raw_files is None:
        return DataFiles()
    if not isinstance(raw_files, dict):
        raise ConfigError(f"'files' must be an object, got {type(raw_files).__name__}")

    landmarks_raw = raw_files.get("landmarks")
    if landmarks_raw is not None and not isinstance(landmarks_raw, str):
        raise ConfigError(f"files.landmarks must be a path, got {landmarks_raw!r}")

    return DataFiles(
        landmarks=_resolve(landmarks_raw, base) if landmarks_raw else None,
        parameters=[_resolve(p, base) for p in _as_list(raw_files.get("parameters"), "parameters")],
        profiles=[_resolve(p, base) for p in _as_list(raw_files.get("profiles"), "profiles")],
    )


def _parse_plot(raw_plot: Any) -> PlotConfig:
    if raw_plot is None:
        return PlotConfig()
    if not isinstance(raw_plot, dict):
        raise ConfigError(f"'plot' must be an object, got {type(raw_plot).__name__}")
    try:
        width = int(raw_plot.get("width", PlotConfig.width))
        height = int(raw_plot.get("height", PlotConfig.height))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid plot dimensions: {raw_plot!r}") from e
    if width <= 0 or height <= 0:
        raise ConfigError(f"Plot dimensions must be positive, got {width}x{height}")
    return PlotConfig(width=width, height=height)


def load_global_config(root: Path) -> GlobalConfig:
    """
    Load configuration from a directory.

    Expected structure:

        root/
            global.json

    global.json keys:
    - ui_title: title for UI, defaults to 'Wing Disc Browser'
    - data_root: directory the data files are relative to (itself relative to root)
    - files: {"landmarks": path, "parameters": path | [paths], "profiles": path | [paths]}
    - plot: {"width": px, "height": px} of the landmark map

    :param root: Directory containing 'global.json'.
    :return: A GlobalConfig instance.
    :raises FileNotFoundError: if global.json does not exist.
    :raises ConfigError: if global.json is malformed.
    """
    root = Path(root)
    logger.info(
        "Loading global config",
        extra={"config_root": str(root)},
    )

    global_path = root / "global.json"
    if not global_path.is_file():
        raise FileNotFoundError(f"File not found at {global_path}")

    try:
        with global_path.open() as f:
            raw_global = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {global_path}: {e}") from e

    if not isinstance(raw_global, dict):
        raise ConfigError(f"{global_path} must contain a JSON object")

    data_root_raw: Optional[str] = raw_global.get("data_root")
    data_root = _resolve(data_root_raw, root) if data_root_raw else None

    files = _parse_files(raw_global.get("files"), data_root or root)

    config = GlobalConfig(
        ui_title=raw_global.get("ui_title", DEFAULT_TITLE),
        data_root=data_root,
        files=files,
        plot=_parse_plot(raw_global.get("plot")),
    )
    logger.info(
        "Global config loaded",
        extra={
            "config_root": str(root),
            "data_root": str(data_root) if data_root else None,
            "n_parameter_files": len(files.parameters),
            "n_profile_files": len(files.profiles),
        },
    )
    return config
