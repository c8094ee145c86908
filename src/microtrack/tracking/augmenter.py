"""Kinematic augmentation of linked trajectories.

Adds per-step displacement, time, speed and size-in-microns columns to a
linked table. Rows are never added, removed or reordered.
"""

import logging
from typing import Sequence

import numpy as np
import pandas as pd

from microtrack.tracking.kinematics import numerical_derivative

__all__ = ['add_useful_columns', 'AUGMENTED_COLUMNS']

logger = logging.getLogger(__name__)

AUGMENTED_COLUMNS = ("dx", "dy", "dp", "time", "velocity")


def add_useful_columns(linked: pd.DataFrame, fps: float, microns_per_pixel: float,
                       size_columns: Sequence[str] = ("major", "minor")) -> pd.DataFrame:
    """Add derived kinematic columns to every track.

    Columns added
    -------------
    dx, dy : float
        Per-frame displacement in pixels, the numerical derivative of x and
        y within each track (central difference inside, one-sided at ends).
    dp : float
        Step length ``hypot(dx, dy)`` in pixels per frame.
    time : float
        ``frame / fps`` in seconds.
    velocity : float
        Instantaneous speed, ``dp * microns_per_pixel * fps`` in microns/s.
    <col>_microns : float
        Each size column present in the table, scaled to microns.

    Parameters
    ----------
    linked : pd.DataFrame
        Output of the linker, sorted by (particle_id, frame).
    fps : float
        Resolved frame rate.
    microns_per_pixel : float
        Objective scale.
    size_columns : sequence of str
        Length-like shape columns to convert. Missing columns are skipped.

    Returns
    -------
    pd.DataFrame
        A new table; the input is left untouched.
    """
    out = linked.copy()

    if len(out) == 0:
        for col in AUGMENTED_COLUMNS:
            out[col] = pd.Series(dtype=float)
    else:
        by_track = out.groupby("particle_id", sort=False)
        out["dx"] = by_track["x"].transform(lambda s: numerical_derivative(s.to_numpy()))
        out["dy"] = by_track["y"].transform(lambda s: numerical_derivative(s.to_numpy()))
        out["dp"] = np.hypot(out["dx"], out["dy"])
        out["time"] = out["frame"] / fps
        out["velocity"] = out["dp"] * microns_per_pixel * fps

    for col in size_columns:
        if col in out.columns:
            out[f"{col}_microns"] = out[col].astype(float) * microns_per_pixel
        else:
            logger.debug("Size column '%s' not present, skipping micron conversion", col)

    return out
