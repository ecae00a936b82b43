from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .filter_state import FilterState
from .records import GradientProfile, LandmarkPoint, Specimen
from .size_filter import ConditionDistributions, SizeRange, normalized_sizes, visible_mask

logger = logging.getLogger(__name__)

SPECIMEN_COLUMNS = [
    "specimen_id",
    "condition",
    "sex",
    "centroid_size",
    "log_centroid_size",
    "area",
    "A",
    "B",
    "C",
    "D",
]

LANDMARK_COLUMNS = ["specimen_id", "point_index", "letter", "x", "y"]


class RecordStore:
    """
    Immutable in-memory record set used throughout the browser.

    Includes:
    - Specimens, their landmark points and raw gradient profiles
    - pandas tables for vectorised filtering and plotting
    - Condition distributions + global size range (built once, at load)
    - Cached visibility per FilterState
    """

    MAX_VISIBLE_CACHE = 128

    def __init__(
        self,
        specimens: Iterable[Specimen],
        landmarks: Iterable[LandmarkPoint] = (),
        profiles: Iterable[GradientProfile] = (),
        name: str = "Wing discs",
    ) -> None:
        self.name = name

        by_id: Dict[str, Specimen] = {}
        for s in specimens:
            if s.specimen_id in by_id:
                logger.warning("Duplicate specimen id, keeping the last record", extra={"specimen_id": s.specimen_id})
            by_id[s.specimen_id] = s
        self._specimens: Dict[str, Specimen] = by_id

        self._landmarks: Tuple[LandmarkPoint, ...] = tuple(
            p for p in landmarks if p.specimen_id in by_id
        )
        self._profiles: Tuple[GradientProfile, ...] = tuple(
            p for p in profiles if p.specimen_id in by_id
        )

        self._specimen_table = self._build_specimen_table()
        self._landmark_table = self._build_landmark_table()

        self.distributions = ConditionDistributions.from_table(self._specimen_table)
        self.size_range = SizeRange.from_sizes(self._specimen_table["centroid_size"])
        self.area_range = SizeRange.from_sizes(self._specimen_table["area"])

        # Cache of visible specimen ids keyed by FilterState.cache_key()
        self._visible_cache: Dict[Tuple, frozenset] = {}

        logger.info(
            "Record store built",
            extra={
                "store": self.name,
                "n_specimens": len(self._specimens),
                "n_landmarks": len(self._landmarks),
                "n_profiles": len(self._profiles),
            },
        )

    # -------------------------------------------------------------------------
    # Table construction
    # -------------------------------------------------------------------------
    def _build_specimen_table(self) -> pd.DataFrame:
        rows = [
            {
                "specimen_id": s.specimen_id,
                "condition": s.condition,
                "sex": s.sex,
                "centroid_size": s.centroid_size,
                "log_centroid_size": s.log_centroid_size,
                "area": s.area,
                "A": s.A,
                "B": s.B,
                "C": s.C,
                "D": s.D,
            }
            for s in self._specimens.values()
        ]
        df = pd.DataFrame(rows, columns=SPECIMEN_COLUMNS)
        df.index = pd.Index(df["specimen_id"].astype(str).to_numpy())
        return df

    def _build_landmark_table(self) -> pd.DataFrame:
        rows = [
            {
                "specimen_id": p.specimen_id,
                "point_index": p.point_index,
                "letter": p.letter,
                "x": p.x,
                "y": p.y,
            }
            for p in self._landmarks
        ]
        df = pd.DataFrame(rows, columns=LANDMARK_COLUMNS)
        if df.empty:
            return df.assign(condition=pd.Series(dtype=str), sex=pd.Series(dtype=object),
                             centroid_size=pd.Series(dtype=float))

        meta = self._specimen_table[["specimen_id", "condition", "sex", "centroid_size"]].reset_index(drop=True)
        df = df.merge(meta, on="specimen_id", how="left")

        finite = np.isfinite(df["x"].to_numpy(dtype=float)) & np.isfinite(df["y"].to_numpy(dtype=float))
        if not finite.all():
            logger.warning(
                "Dropping landmark points with non-finite coordinates",
                extra={"n_dropped": int((~finite).sum())},
            )
            df = df.loc[finite].reset_index(drop=True)
        return df

    # -------------------------------------------------------------------------
    # Read-only access
    # -------------------------------------------------------------------------
    def __iter__(self) -> Iterator[Specimen]:
        return iter(self._specimens.values())

    def __len__(self) -> int:
        return len(self._specimens)

    def __contains__(self, specimen_id: object) -> bool:
        return specimen_id in self._specimens

    def get(self, specimen_id: str) -> Optional[Specimen]:
        return self._specimens.get(specimen_id)

    @property
    def specimen_table(self) -> pd.DataFrame:
        return self._specimen_table

    @property
    def landmark_table(self) -> pd.DataFrame:
        return self._landmark_table

    @property
    def landmarks(self) -> Sequence[LandmarkPoint]:
        return self._landmarks

    @property
    def profiles(self) -> Sequence[GradientProfile]:
        return self._profiles

    @property
    def conditions(self) -> List[str]:
        """Conditions that actually occur in the store, sorted."""
        return sorted(self._specimen_table["condition"].astype(str).unique())

    @property
    def letters(self) -> List[str]:
        if self._landmark_table.empty:
            return []
        return sorted(self._landmark_table["letter"].unique())

    # -------------------------------------------------------------------------
    # Filtering (cached per FilterState)
    # -------------------------------------------------------------------------
    def visible_ids(self, state: FilterState) -> frozenset:
        key = state.cache_key()
        cached = self._visible_cache.get(key)
        if cached is not None:
            return cached

        mask = visible_mask(self._specimen_table, state, self.distributions, self.size_range)
        ids = frozenset(self._specimen_table["specimen_id"].to_numpy()[mask].tolist())

        self._visible_cache[key] = ids

        # Prevent unbounded growth
        if len(self._visible_cache) > self.MAX_VISIBLE_CACHE:
            self._visible_cache.clear()

        return ids

    def visible_specimens(self, state: FilterState) -> pd.DataFrame:
        """Visible rows of the specimen table with a `normalized_size` column attached."""
        ids = self.visible_ids(state)
        df = self._specimen_table.loc[self._specimen_table["specimen_id"].isin(list(ids))].copy()
        df["normalized_size"] = normalized_sizes(df, state, self.distributions, self.size_range)
        return df

    def visible_landmarks(self, state: FilterState) -> pd.DataFrame:
        ids = self.visible_ids(state)
        df = self._landmark_table
        return df.loc[df["specimen_id"].isin(list(ids))].reset_index(drop=True)

    def visible_profiles(self, state: FilterState) -> List[GradientProfile]:
        ids = self.visible_ids(state)
        return [p for p in self._profiles if p.specimen_id in ids]

    def clear_caches(self) -> None:
        self._visible_cache.clear()
