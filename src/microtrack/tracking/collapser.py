"""Collapse trajectories to one summary row each.

Each clipped, augmented track becomes a row of scalar kinematic features:
path length, time-weighted mean speed, spectral rotation-rate estimate and
mean size. A track either collapses fully or is absent; no partial rows.
"""

import logging
from typing import Sequence, List

import numpy as np
import pandas as pd

from microtrack.contracts.failure import DegenerateInput
from microtrack.tracking.kinematics import estimate_omega, numerical_derivative

__all__ = [
    'SUMMARY_COLUMNS',
    'summary_columns',
    'total_displacement',
    'collapse_track',
    'collapse_data',
]

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = (
    "particle_id",
    "n_frames",
    "start_frame",
    "end_frame",
    "duration_s",
    "total_displacement_px",
    "mean_velocity_microns_per_s",
    "estimated_rotation_hz",
)


def summary_columns(size_columns: Sequence[str] = ("major", "minor")) -> List[str]:
    """Summary column names, including per-size means and mean position."""
    return list(SUMMARY_COLUMNS) + [f"{col}_microns" for col in size_columns] + ["x", "y"]


def total_displacement(x, y) -> float:
    """Path length: sum of Euclidean steps between consecutive points."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.size < 2:
        return 0.0
    return float(np.sum(np.hypot(np.diff(x), np.diff(y))))


def _time_weighted_mean(values: np.ndarray, times: np.ndarray) -> float:
    weights = numerical_derivative(times)
    if weights.sum() > 0:
        return float(np.average(values, weights=weights))
    return float(values.mean())


def collapse_track(track: pd.DataFrame, rotation_column: str = "major_microns",
                   time_column: str = "time",
                   size_columns: Sequence[str] = ("major", "minor")) -> dict:
    """Reduce one track to a summary row.

    Parameters
    ----------
    track : pd.DataFrame
        One augmented (and usually clipped) track, sorted by frame.
    rotation_column : str
        Observable fed to :func:`estimate_omega` (``angle``,
        ``major_microns``, ...).
    time_column : str
        Time axis in seconds.
    size_columns : sequence of str
        Size columns whose ``<col>_microns`` means are reported. Missing
        ones are reported as NaN.

    Returns
    -------
    dict
        One value per :func:`summary_columns` entry.

    Raises
    ------
    ValueError
        If the track is empty or lacks the velocity, time or rotation column.
    """
    if len(track) == 0:
        raise ValueError("collapse_track: empty track")
    for col in ("velocity", time_column, rotation_column):
        if col not in track.columns:
            raise ValueError(f"collapse_track: missing column '{col}'")

    times = track[time_column].to_numpy(dtype=float)
    x = track["x"].to_numpy(dtype=float)
    y = track["y"].to_numpy(dtype=float)
    frames = track["frame"].to_numpy()

    try:
        omega = estimate_omega(times, track[rotation_column].to_numpy(dtype=float))
    except DegenerateInput:
        omega = None

    row = {
        "particle_id": int(track["particle_id"].iloc[0]),
        "n_frames": len(track),
        "start_frame": int(frames[0]),
        "end_frame": int(frames[-1]),
        "duration_s": float(times[-1] - times[0]),
        "total_displacement_px": total_displacement(x, y),
        "mean_velocity_microns_per_s": _time_weighted_mean(
            track["velocity"].to_numpy(dtype=float), times
        ),
        "estimated_rotation_hz": np.nan if omega is None else omega,
    }

    for col in size_columns:
        micron_col = f"{col}_microns"
        row[micron_col] = float(track[micron_col].mean()) if micron_col in track.columns else np.nan

    row["x"] = float(x.mean())
    row["y"] = float(y.mean())
    return row


def collapse_data(linked: pd.DataFrame, rotation_column: str = "major_microns",
                  time_column: str = "time",
                  size_columns: Sequence[str] = ("major", "minor")) -> pd.DataFrame:
    """Collapse every track of a table, one row per ``particle_id``.

    Rows are ordered by particle_id. An empty table gives an empty summary
    with the full column set.
    """
    columns = summary_columns(size_columns)
    if len(linked) == 0:
        return pd.DataFrame(columns=columns)

    rows = [
        collapse_track(track, rotation_column, time_column, size_columns)
        for _, track in linked.groupby("particle_id", sort=True)
    ]
    summary = pd.DataFrame(rows, columns=columns)

    n_null = int(summary["estimated_rotation_hz"].isna().sum())
    if n_null:
        logger.debug("%d of %d tracks have no rotation estimate", n_null, len(summary))

    return summary
