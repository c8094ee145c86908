"""Trajectory-level filtering of summary tables."""

import logging
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from microtrack.schemas.settings import FilterSettings

__all__ = ['filter_trajectories']

logger = logging.getLogger(__name__)


def filter_trajectories(summary: pd.DataFrame, settings: "FilterSettings") -> pd.DataFrame:
    """Keep the summary rows that satisfy every configured bound.

    Bounds are inclusive. A NaN value never satisfies a bound, so a track
    without a rotation estimate is dropped by any rotation threshold. Rows
    are dropped, never modified.

    Parameters
    ----------
    summary : pd.DataFrame
        Combined summary table.
    settings : FilterSettings
        Thresholds; see :meth:`FilterSettings.bounds`.

    Returns
    -------
    pd.DataFrame
        The input object itself when no bound is configured or the table is
        empty, otherwise the surviving rows with a fresh index.

    Raises
    ------
    ValueError
        If a bound names a column a non-empty summary does not have.
    """
    bounds = settings.bounds()
    # Metadata columns only exist once some video contributed rows
    if not bounds or len(summary) == 0:
        return summary

    keep = np.ones(len(summary), dtype=bool)
    for column, (low, high) in bounds.items():
        if column not in summary.columns:
            raise ValueError(f"Filter on unknown summary column '{column}'")
        values = summary[column].to_numpy(dtype=float)
        if low is not None:
            keep &= values >= low
        if high is not None:
            keep &= values <= high

    filtered = summary[keep].reset_index(drop=True)
    logger.info("Filter: kept %d of %d trajectories", len(filtered), len(summary))
    return filtered
