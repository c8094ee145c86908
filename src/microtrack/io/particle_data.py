"""Particle data ingestion and table persistence.

Detection tables come from an external segmentation step (typically the
ImageJ "Analyze Particles" results export). This module normalizes them to
the column names the tracking core expects and round-trips linked and
summary tables through timestamped CSV files.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import pandas as pd

__all__ = [
    'COLUMN_RENAMES',
    'extract_frame_from_label',
    'normalize_particle_data',
    'load_particle_data',
    'settings_to_string',
    'save_table_with_timestamp',
    'load_table',
]

logger = logging.getLogger(__name__)

# ImageJ result columns -> core column names
COLUMN_RENAMES = {
    "X": "x",
    "Y": "y",
    "Major": "major",
    "Minor": "minor",
    "Angle": "angle",
    "Area": "area",
    "Label": "label",
    "Frame": "frame",
    "Slice": "slice",
}

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

_DIGITS = re.compile(r"\d+")


def extract_frame_from_label(label) -> int:
    """Frame number from an ImageJ label such as ``"video.avi:0042"``.

    The last run of digits in the label is the frame (slice) number.

    Raises
    ------
    ValueError
        If the label contains no digits.
    """
    runs = _DIGITS.findall(str(label))
    if not runs:
        raise ValueError(f"No frame number in label {label!r}")
    return int(runs[-1])


def normalize_particle_data(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw detection table.

    - drops blank columns (unnamed index columns, all-NaN columns)
    - renames ImageJ columns (``X``, ``Y``, ``Major``, ...) to lowercase
    - derives ``frame`` from ``label`` (or ``slice``) when no frame column
      is present
    - casts ``frame`` to int and sorts rows by frame (stable)

    Returns
    -------
    pd.DataFrame
        A new table with a fresh index.

    Raises
    ------
    ValueError
        If no frame column exists and none can be derived.
    """
    out = df.copy()

    blank = [
        col for col in out.columns
        if str(col).strip() == "" or str(col).startswith("Unnamed") or out[col].isna().all()
    ]
    if blank:
        logger.debug("Dropping blank columns: %s", blank)
        out = out.drop(columns=blank)

    out = out.rename(columns={k: v for k, v in COLUMN_RENAMES.items() if k in out.columns})

    if "frame" not in out.columns:
        if "label" in out.columns:
            out["frame"] = out["label"].map(extract_frame_from_label)
        elif "slice" in out.columns:
            out["frame"] = out["slice"]
        else:
            raise ValueError("Particle data has no frame, slice or label column")

    out["frame"] = out["frame"].astype("int64")
    out = out.sort_values("frame", kind="mergesort").reset_index(drop=True)
    return out


def load_particle_data(path: Union[str, Path]) -> pd.DataFrame:
    """Read a detection CSV and normalize it.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Particle data not found: {path}")

    df = normalize_particle_data(pd.read_csv(path))
    logger.info("Loaded %d detections from %s", len(df), path.name)
    return df


def settings_to_string(settings: Mapping[str, Any]) -> str:
    """Render settings for a file name, e.g. ``(MPP = 0.605, MEMORY = 0)``.

    Keys keep the given order.
    """
    return "(" + ", ".join(f"{key} = {value}" for key, value in settings.items()) + ")"


def save_table_with_timestamp(df: pd.DataFrame, directory: Union[str, Path], prefix: str,
                              settings: Optional[Mapping[str, Any]] = None) -> Path:
    """Write ``df`` to ``<directory>/<prefix>_<YYYYmmdd-HHMMSS>.csv``.

    When ``settings`` is given, the file is named
    ``<prefix>_<settings>_<YYYYmmdd-HHMMSS>.csv`` (see
    :func:`settings_to_string`) so saved tracks record how they were linked.

    Returns
    -------
    Path
        The written file.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime(TIMESTAMP_FORMAT)
    if settings:
        prefix = f"{prefix}_{settings_to_string(settings)}"
    path = directory / f"{prefix}_{stamp}.csv"
    df.to_csv(path, index=False)
    logger.info("Saved %d rows to %s", len(df), path)
    return path


def load_table(path: Union[str, Path]) -> pd.DataFrame:
    """Read a table written by :func:`save_table_with_timestamp`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")
    return pd.read_csv(path)
