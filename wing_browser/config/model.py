from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class DataFiles:
    """
    Input tables of the browser. Every entry is optional; parameter and
    profile tables may be split over several files (e.g. one per experiment).
    """
    landmarks: Optional[Path] = None
    parameters: List[Path] = field(default_factory=list)
    profiles: List[Path] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.landmarks is None and not self.parameters and not self.profiles


@dataclass(frozen=True)
class PlotConfig:
    """Pixel size of the landmark map, used by the viewport projection."""
    width: int = 1000
    height: int = 800


@dataclass
class GlobalConfig:
    ui_title: str
    data_root: Optional[Path]
    files: DataFiles
    plot: PlotConfig = field(default_factory=PlotConfig)
