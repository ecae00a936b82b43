from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from wing_browser.config.model import DataFiles
from wing_browser.core.exceptions import DatasetSchemaError
from wing_browser.core.record_store import RecordStore
from wing_browser.core.records import (
    N_LANDMARKS,
    GradientProfile,
    LandmarkPoint,
    Specimen,
    map_condition,
    map_sex,
    specimen_landmarks,
)

logger = logging.getLogger(__name__)

LANDMARK_ID_COLUMNS = ["Id", "Condition", "Sex", "Centroid Size", "Log Centroid Size"]
LANDMARK_COORD_COLUMNS = [f"{axis}{i}" for i in range(1, N_LANDMARKS + 1) for axis in ("X", "Y")]
PARAMETER_COLUMNS = ["disc", "area", "A", "B", "C", "D"]
PROFILE_COLUMNS = ["disc", "area", "relativedistance", "value"]

# Parameter / profile tables label the condition differently depending on the experiment
CONDITION_ALIASES = ("condition", "Condition", "O2")


# ---- Table reading ----

def read_table(path: Path, required: Sequence[str], kind: str) -> pd.DataFrame:
    """
    Read a CSV and check that the required columns are present.

    :raises FileNotFoundError: if the file does not exist
    :raises DatasetSchemaError: if any required column is missing
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"{kind} table not found at {path}")

    df = pd.read_csv(path)
    df.columns = [str(c).strip() for c in df.columns]

    missing = [c for c in required if c not in df.columns]
    if missing:
        msg = f"{kind} table {path.name} is missing columns: {', '.join(missing)}"
        logger.error(msg, extra={"path": str(path), "missing_columns": missing})
        raise DatasetSchemaError(msg)

    logger.debug("Table read", extra={"kind": kind, "path": str(path), "n_rows": len(df)})
    return df


def _numeric(df: pd.DataFrame, column: str) -> np.ndarray:
    return pd.to_numeric(df[column], errors="coerce").to_numpy(dtype=float)


def _condition_column(df: pd.DataFrame) -> Optional[str]:
    return next((c for c in CONDITION_ALIASES if c in df.columns), None)


def _conditions(df: pd.DataFrame) -> List[str]:
    column = _condition_column(df)
    if column is None:
        return [map_condition(None)] * len(df)
    return [map_condition(v) for v in df[column].tolist()]


# ---- Per-table loaders ----

def load_landmark_table(path: Path) -> Tuple[List[Specimen], List[LandmarkPoint]]:
    """
    Landmark table: one row per specimen with id, condition, sex, centroid
    size and the X1..X15 / Y1..Y15 landmark coordinates.

    Rows whose coordinates are not all finite lose their landmarks (the
    specimen itself is kept).
    """
    df = read_table(path, LANDMARK_ID_COLUMNS + LANDMARK_COORD_COLUMNS, "Landmark")

    ids = df["Id"].astype(str).str.strip().tolist()
    sizes = _numeric(df, "Centroid Size")
    log_sizes = _numeric(df, "Log Centroid Size")
    xs = np.column_stack([_numeric(df, f"X{i}") for i in range(1, N_LANDMARKS + 1)])
    ys = np.column_stack([_numeric(df, f"Y{i}") for i in range(1, N_LANDMARKS + 1)])

    specimens: List[Specimen] = []
    landmarks: List[LandmarkPoint] = []
    incomplete: List[str] = []

    for row, specimen_id in enumerate(ids):
        specimens.append(
            Specimen(
                specimen_id=specimen_id,
                condition=map_condition(df["Condition"].iat[row]),
                sex=map_sex(df["Sex"].iat[row]),
                centroid_size=float(sizes[row]),
                log_centroid_size=float(log_sizes[row]),
            )
        )
        if not (np.isfinite(xs[row]).all() and np.isfinite(ys[row]).all()):
            incomplete.append(specimen_id)
            continue
        landmarks.extend(specimen_landmarks(specimen_id, list(zip(xs[row], ys[row]))))

    if incomplete:
        logger.warning(
            "Skipping landmark rows with missing coordinates",
            extra={"path": str(path), "n_skipped": len(incomplete), "specimen_ids": incomplete},
        )
    return specimens, landmarks


def load_parameter_table(path: Path) -> pd.DataFrame:
    """
    Gradient-fit parameter table: disc id, condition, wing disc area and the
    A / B / C / D parameters of the fitted Gaussian.
    """
    df = read_table(path, PARAMETER_COLUMNS, "Parameter")
    return pd.DataFrame(
        {
            "specimen_id": df["disc"].astype(str).str.strip(),
            "condition": _conditions(df),
            "area": _numeric(df, "area"),
            "A": _numeric(df, "A"),
            "B": _numeric(df, "B"),
            "C": _numeric(df, "C"),
            "D": _numeric(df, "D"),
        }
    )


def load_profile_table(path: Path) -> List[GradientProfile]:
    """
    Raw gradient table in long format: one row per (disc, relative distance)
    sample. Each disc becomes one profile normalised by its own maximum.
    """
    df = read_table(path, PROFILE_COLUMNS, "Profile")
    df = df.assign(
        disc=df["disc"].astype(str).str.strip(),
        condition=_conditions(df),
        area=_numeric(df, "area"),
        relativedistance=_numeric(df, "relativedistance"),
        value=_numeric(df, "value"),
    )

    profiles: List[GradientProfile] = []
    dropped: List[str] = []
    for disc, rows in df.groupby("disc", sort=False):
        profile = GradientProfile.from_samples(
            specimen_id=disc,
            condition=rows["condition"].iloc[0],
            area=rows["area"].iloc[0],
            relative_distance=rows["relativedistance"].to_numpy(),
            value=rows["value"].to_numpy(),
        )
        if profile is None:
            dropped.append(disc)
            continue
        profiles.append(profile)

    if dropped:
        logger.warning(
            "Dropping gradient profiles without usable samples",
            extra={"path": str(path), "n_dropped": len(dropped), "specimen_ids": dropped},
        )
    return profiles


# ---- Merging ----

def merge_parameters(specimens: Dict[str, Specimen], params: pd.DataFrame) -> None:
    """
    Attach area and fit parameters to specimens by id (in place). Ids only
    present in the parameter table become specimens without a centroid size.
    """
    unmatched: List[str] = []
    for row in params.itertuples(index=False):
        values = dict(area=row.area, A=row.A, B=row.B, C=row.C, D=row.D)
        existing = specimens.get(row.specimen_id)
        if existing is None:
            unmatched.append(row.specimen_id)
            specimens[row.specimen_id] = Specimen(
                specimen_id=row.specimen_id, condition=row.condition, **values
            )
        else:
            specimens[row.specimen_id] = replace(existing, **values)

    if unmatched:
        logger.warning(
            "Parameter rows without a landmark record have no centroid size and are never visible",
            extra={"n_specimens": len(unmatched), "specimen_ids": unmatched},
        )


def load_records(files: DataFiles, name: str = "Wing discs") -> RecordStore:
    """
    Main entrypoint: read every configured table and build the RecordStore.

    :param files: which tables to read (any may be absent)
    :param name: display name of the record set
    :return: the populated RecordStore
    :raises FileNotFoundError, DatasetSchemaError: on unreadable tables
    """
    specimens: Dict[str, Specimen] = {}
    landmarks: List[LandmarkPoint] = []
    profiles: List[GradientProfile] = []

    if files.landmarks is not None:
        landmark_specimens, landmarks = load_landmark_table(files.landmarks)
        specimens.update((s.specimen_id, s) for s in landmark_specimens)

    for path in files.parameters:
        merge_parameters(specimens, load_parameter_table(path))

    for path in files.profiles:
        profiles.extend(load_profile_table(path))

    orphans = _orphan_ids(profiles, specimens)
    if orphans:
        logger.warning(
            "Gradient profiles without a matching specimen are ignored",
            extra={"n_orphans": len(orphans), "specimen_ids": orphans},
        )

    return RecordStore(specimens.values(), landmarks=landmarks, profiles=profiles, name=name)


def _orphan_ids(profiles: Iterable[GradientProfile], specimens: Dict[str, Specimen]) -> List[str]:
    return sorted({p.specimen_id for p in profiles if p.specimen_id not in specimens})
