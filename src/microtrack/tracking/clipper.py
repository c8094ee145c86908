"""Edge-of-frame trajectory clipping.

A particle touching the video border is only partly visible, which biases
its shape and centroid. Each track is cut down to the longest contiguous
window, grown outward from the temporal center of the track, in which the
particle's circular footprint stays inside the frame.
"""

import logging
from typing import Optional, Tuple

import numpy as np
import pandas as pd

__all__ = [
    'inbounds',
    'particle_radius',
    'find_trajectory_bounds',
    'clip_trajectory_edges',
]

logger = logging.getLogger(__name__)


def inbounds(x, y, radius: float, resolution: Tuple[int, int]):
    """Whether a circle of ``radius`` at (x, y) lies fully inside the frame.

    Bounds are inclusive: a circle tangent to the border is in bounds.
    Accepts scalars or arrays.

    Parameters
    ----------
    x, y : float or array-like
        Centroid in pixels.
    radius : float
        Footprint radius in pixels.
    resolution : (int, int)
        Frame (width, height) in pixels.
    """
    width, height = resolution
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    return (
        (x >= radius) & (x <= width - radius)
        & (y >= radius) & (y <= height - radius)
    )


def particle_radius(track: pd.DataFrame, size_column: str = "major") -> float:
    """Half the mean of a diameter-like column; 0 when the column is absent."""
    if size_column not in track.columns or len(track) == 0:
        return 0.0
    radius = float(track[size_column].mean()) / 2.0
    return radius if np.isfinite(radius) else 0.0


def find_trajectory_bounds(track: pd.DataFrame, resolution: Tuple[int, int],
                           size_column: str = "major") -> Optional[Tuple[int, int]]:
    """Find the in-bounds window of one track.

    The scan starts at the row whose frame is closest to the middle of the
    track's frame span (the earlier row on a tie) and extends one row at a
    time toward each end, stopping in a direction at the first
    out-of-bounds row. Rows beyond that point are excluded even if they are
    back in bounds.

    Parameters
    ----------
    track : pd.DataFrame
        One track, sorted by frame.
    resolution : (int, int)
        Frame (width, height) in pixels.
    size_column : str
        Diameter-like column giving the footprint.

    Returns
    -------
    (low, high) or None
        Inclusive positional row bounds, or None when the center row itself
        is out of bounds and the track should be dropped.
    """
    if len(track) == 0:
        return None

    frames = track["frame"].to_numpy()
    radius = particle_radius(track, size_column)
    ok = inbounds(track["x"].to_numpy(), track["y"].to_numpy(), radius, resolution)

    midpoint = (frames[0] + frames[-1]) / 2.0
    center = int(np.argmin(np.abs(frames - midpoint)))
    if not ok[center]:
        return None

    low = center
    while low > 0 and ok[low - 1]:
        low -= 1

    high = center
    while high < len(ok) - 1 and ok[high + 1]:
        high += 1

    return low, high


def clip_trajectory_edges(linked: pd.DataFrame, resolution: Tuple[int, int],
                          size_column: str = "major") -> pd.DataFrame:
    """Truncate every track to its in-bounds window.

    Tracks whose center detection is out of bounds are dropped. Row labels of
    the surviving rows are kept, so each clipped track is a run of
    consecutive labels of the linked table.

    Parameters
    ----------
    linked : pd.DataFrame
        Linked (and usually augmented) table sorted by (particle_id, frame).
    resolution : (int, int)
        Frame (width, height) in pixels.
    size_column : str
        Diameter-like column giving the footprint radius.

    Returns
    -------
    pd.DataFrame
        Clipped rows in the input order.
    """
    if len(linked) == 0:
        return linked.iloc[0:0]

    windows = []
    n_dropped = 0
    for pid, track in linked.groupby("particle_id", sort=True):
        bounds = find_trajectory_bounds(track, resolution, size_column)
        if bounds is None:
            logger.debug("Particle %d: center detection out of bounds, dropped", pid)
            n_dropped += 1
            continue
        low, high = bounds
        windows.append(track.iloc[low:high + 1])

    logger.info("Edge clipping: kept %d tracks, dropped %d", len(windows), n_dropped)

    if not windows:
        return linked.iloc[0:0]
    return pd.concat(windows)
