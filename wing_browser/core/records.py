from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

CONDITIONS: Tuple[str, ...] = ("standard", "hypoxia", "cold")
SEXES: Tuple[str, ...] = ("female", "male")

N_LANDMARKS = 15

# Edges between landmark indices, used to draw the wing outline of a specimen
LANDMARK_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (1, 7), (2, 6), (2, 7), (3, 5), (3, 9),
    (4, 5), (4, 15), (5, 11), (6, 12), (7, 12),
    (8, 6), (8, 9), (8, 13), (9, 10), (10, 11),
    (10, 14), (11, 15), (12, 13), (13, 14), (14, 15),
)

CONDITION_COLOURS = {
    "standard": "#d95f02",
    "hypoxia": "#7570b3",
    "cold": "#1b9e77",
}


def landmark_letter(point_index: int) -> str:
    """Letter label for a landmark index (1 -> 'A', 15 -> 'O')."""
    if not 1 <= point_index <= N_LANDMARKS:
        raise ValueError(f"Landmark index must be in 1..{N_LANDMARKS}, got {point_index}")
    return chr(64 + point_index)


LANDMARK_LETTERS: Tuple[str, ...] = tuple(landmark_letter(i) for i in range(1, N_LANDMARKS + 1))


def map_condition(raw: Optional[str]) -> str:
    """
    Map a raw condition label from the source tables onto the closed set.

    "hypo..." -> hypoxia, anything mentioning cold / 17C / low -> cold,
    everything else (including missing labels) -> standard.
    """
    if raw is None:
        return "standard"
    s = str(raw).strip().lower()
    if not s or s == "nan":
        return "standard"
    if "hypo" in s:
        return "hypoxia"
    if "cold" in s or "17c" in s or "low" in s:
        return "cold"
    return "standard"


def map_sex(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    s = str(raw).strip().lower()
    if s in ("f", "female"):
        return "female"
    if s in ("m", "male"):
        return "male"
    return None


@dataclass(frozen=True)
class Specimen:
    """
    One measured wing disc.

    Size and gradient parameters are NaN when the source tables did not carry
    a usable value; such specimens stay in the store but are never visible.
    """

    specimen_id: str
    condition: str
    sex: Optional[str] = None
    centroid_size: float = float("nan")
    log_centroid_size: float = float("nan")
    area: float = float("nan")
    A: float = float("nan")
    B: float = float("nan")
    C: float = float("nan")
    D: float = float("nan")

    @property
    def has_finite_size(self) -> bool:
        return bool(np.isfinite(self.centroid_size))


@dataclass(frozen=True)
class LandmarkPoint:
    specimen_id: str
    point_index: int
    x: float
    y: float

    @property
    def letter(self) -> str:
        return landmark_letter(self.point_index)


@dataclass(frozen=True)
class GradientProfile:
    """Raw intensity profile of one specimen, normalised by its own maximum."""

    specimen_id: str
    condition: str
    area: float
    relative_distance: Tuple[float, ...]
    value: Tuple[float, ...]

    @classmethod
    def from_samples(
        cls,
        specimen_id: str,
        condition: str,
        area: float,
        relative_distance: Sequence[float],
        value: Sequence[float],
    ) -> Optional["GradientProfile"]:
        """
        Build a profile from raw samples, or return None when the samples
        cannot form a curve (no finite positive maximum, fewer than 2 points).
        """
        dist = np.asarray(relative_distance, dtype=float)
        vals = np.asarray(value, dtype=float)

        finite_vals = vals[np.isfinite(vals)]
        if finite_vals.size == 0:
            return None
        max_val = float(finite_vals.max())
        if not np.isfinite(max_val) or max_val <= 0:
            return None

        keep = np.isfinite(dist) & np.isfinite(vals)
        dist = dist[keep]
        vals = vals[keep] / max_val
        if dist.size < 2:
            return None

        order = np.argsort(dist, kind="stable")
        return cls(
            specimen_id=str(specimen_id),
            condition=condition,
            area=float(area),
            relative_distance=tuple(float(d) for d in dist[order]),
            value=tuple(float(v) for v in vals[order]),
        )


def specimen_landmarks(
    specimen_id: str, coords: Sequence[Tuple[float, float]]
) -> List[LandmarkPoint]:
    """Build the 15 landmark points of one specimen from (x, y) pairs in index order."""
    if len(coords) != N_LANDMARKS:
        raise ValueError(
            f"Specimen '{specimen_id}' must have {N_LANDMARKS} landmarks, got {len(coords)}"
        )
    return [
        LandmarkPoint(specimen_id=str(specimen_id), point_index=i, x=float(x), y=float(y))
        for i, (x, y) in enumerate(coords, start=1)
    ]
