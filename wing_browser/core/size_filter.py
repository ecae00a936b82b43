"""
Size-based visibility predicate.

A specimen is visible when its condition and sex are enabled and its
normalised centroid size falls in one of the two tails (<= below, >= above)
*and* inside the central inclusion window. Normalisation is either relative
to the specimen's own condition group (percentile) or to the global size
range (absolute).

Both a scalar predicate (is_visible) and a vectorised one over a specimen
table (visible_mask) are provided; they must agree element-wise.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from .filter_state import PERCENTILE, FilterState
from .records import SEXES, Specimen

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SizeRange:
    """Global [min, max] centroid size over all finite sizes."""

    min: float
    max: float

    @classmethod
    def from_sizes(cls, sizes: Iterable[float]) -> SizeRange:
        arr = np.asarray(list(sizes), dtype=float)
        arr = arr[np.isfinite(arr)]
        if arr.size == 0:
            return cls(0.0, 0.0)
        return cls(float(arr.min()), float(arr.max()))

    @property
    def is_degenerate(self) -> bool:
        return self.max == self.min

    def normalize(self, size: float) -> float:
        if not np.isfinite(size):
            return float("nan")
        if self.is_degenerate:
            return 0.5
        n = (size - self.min) / (self.max - self.min)
        return float(min(1.0, max(0.0, n)))

    def denormalize(self, value: float) -> float:
        """Map a [0, 1] slider value back to an actual centroid size (for labels)."""
        return self.min + value * (self.max - self.min)


class ConditionDistributions(Mapping[str, np.ndarray]):
    """
    Per-condition ascending arrays of finite centroid sizes.

    Built once per record store; used only for percentile lookups.
    """

    def __init__(self, by_condition: Dict[str, np.ndarray]):
        self._by_condition = {
            cond: np.sort(np.asarray(values, dtype=float)) for cond, values in by_condition.items()
        }

    @classmethod
    def from_table(cls, table: pd.DataFrame) -> ConditionDistributions:
        sizes = pd.to_numeric(table["centroid_size"], errors="coerce").to_numpy(dtype=float)
        finite = np.isfinite(sizes)

        if not finite.all():
            bad = table["specimen_id"].astype(str).to_numpy()[~finite].tolist()
            logger.warning(
                "Excluding specimens with non-finite centroid size from distributions",
                extra={"n_excluded": len(bad), "specimen_ids": bad[:20]},
            )

        conditions = table["condition"].astype(str).to_numpy()
        by_condition: Dict[str, np.ndarray] = {}
        for cond in np.unique(conditions[finite]):
            by_condition[str(cond)] = sizes[finite & (conditions == cond)]
        return cls(by_condition)

    @classmethod
    def from_specimens(cls, specimens: Iterable[Specimen]) -> ConditionDistributions:
        by_condition: Dict[str, list] = {}
        for s in specimens:
            if s.has_finite_size:
                by_condition.setdefault(s.condition, []).append(s.centroid_size)
        return cls({k: np.asarray(v, dtype=float) for k, v in by_condition.items()})

    def __getitem__(self, condition: str) -> np.ndarray:
        return self._by_condition[condition]

    def __iter__(self):
        return iter(self._by_condition)

    def __len__(self) -> int:
        return len(self._by_condition)

    def percentile(self, size: float, condition: str) -> float:
        """
        Index of the first value >= size in the condition's distribution,
        divided by the distribution's length. 1.0 when no value qualifies.
        """
        if not np.isfinite(size):
            return float("nan")
        values = self._by_condition.get(condition)
        if values is None or values.size == 0:
            return 1.0
        idx = int(np.searchsorted(values, size, side="left"))
        if idx >= values.size:
            return 1.0
        return idx / values.size


# -----------------------------------------------------------------------------
# Scalar predicate
# -----------------------------------------------------------------------------
def normalize_size(
    size: float,
    condition: str,
    state: FilterState,
    distributions: ConditionDistributions,
    size_range: SizeRange,
) -> float:
    """Normalised size in [0, 1] under the state's mode; NaN for malformed sizes."""
    try:
        size = float(size)
    except (TypeError, ValueError):
        return float("nan")
    if state.normalization_mode == PERCENTILE:
        return distributions.percentile(size, condition)
    return size_range.normalize(size)


def sex_enabled(sex: Optional[str], state: FilterState) -> bool:
    if sex is None:
        return all(s in state.sex_filters for s in SEXES)
    return sex in state.sex_filters


def passes_thresholds(normalized: float, state: FilterState) -> bool:
    if not np.isfinite(normalized):
        return False
    show_below = normalized <= state.below
    show_above = normalized >= state.above
    lo, hi = state.within
    show_within = lo <= normalized <= hi
    return (show_below or show_above) and show_within


def is_visible(
    record: Specimen,
    state: FilterState,
    distributions: ConditionDistributions,
    size_range: SizeRange,
) -> bool:
    if record.condition not in state.visible_conditions:
        return False
    if not sex_enabled(record.sex, state):
        return False
    normalized = normalize_size(
        record.centroid_size, record.condition, state, distributions, size_range
    )
    return passes_thresholds(normalized, state)


# -----------------------------------------------------------------------------
# Vectorised predicate
# -----------------------------------------------------------------------------
def normalized_sizes(
    table: pd.DataFrame,
    state: FilterState,
    distributions: ConditionDistributions,
    size_range: SizeRange,
) -> np.ndarray:
    """Normalised size per row of a specimen table (NaN where size is malformed)."""
    sizes = pd.to_numeric(table["centroid_size"], errors="coerce").to_numpy(dtype=float)
    finite = np.isfinite(sizes)
    out = np.full(sizes.shape, np.nan, dtype=float)

    if state.normalization_mode == PERCENTILE:
        conditions = table["condition"].astype(str).to_numpy()
        for cond in np.unique(conditions):
            rows = (conditions == cond) & finite
            if not rows.any():
                continue
            values = distributions.get(cond)
            if values is None or values.size == 0:
                out[rows] = 1.0
                continue
            idx = np.searchsorted(values, sizes[rows], side="left")
            out[rows] = np.where(idx >= values.size, 1.0, idx / values.size)
        return out

    if size_range.is_degenerate:
        out[finite] = 0.5
        return out
    out[finite] = np.clip(
        (sizes[finite] - size_range.min) / (size_range.max - size_range.min), 0.0, 1.0
    )
    return out


def visible_mask(
    table: pd.DataFrame,
    state: FilterState,
    distributions: ConditionDistributions,
    size_range: SizeRange,
) -> np.ndarray:
    """Boolean visibility per row of a specimen table."""
    if table.empty:
        return np.zeros(0, dtype=bool)

    cond_ok = table["condition"].isin(list(state.visible_conditions)).to_numpy()

    sexes = table["sex"]
    unknown_ok = all(s in state.sex_filters for s in SEXES)
    sex_ok = np.where(
        sexes.isna().to_numpy(),
        unknown_ok,
        sexes.isin(list(state.sex_filters)).to_numpy(),
    )

    normalized = normalized_sizes(table, state, distributions, size_range)
    finite = np.isfinite(normalized)
    # NaN compares False everywhere, the finite mask only makes that explicit
    tails = (normalized <= state.below) | (normalized >= state.above)
    lo, hi = state.within
    window = (normalized >= lo) & (normalized <= hi)

    return cond_ok & sex_ok.astype(bool) & finite & tails & window
