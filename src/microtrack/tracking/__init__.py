"""Tracking core: linking, augmentation, clipping, collapse and filtering."""

from microtrack.tracking.kinematics import (
    MIN_SPECTRAL_SAMPLES,
    numerical_derivative,
    detrend,
    fit_line,
    fftclean,
    estimate_omega,
)
from microtrack.tracking.linker import TrajectoryLinker, LinkerState, resolve_fps
from microtrack.tracking.augmenter import add_useful_columns
from microtrack.tracking.clipper import (
    inbounds,
    particle_radius,
    find_trajectory_bounds,
    clip_trajectory_edges,
)
from microtrack.tracking.collapser import (
    SUMMARY_COLUMNS,
    summary_columns,
    total_displacement,
    collapse_track,
    collapse_data,
)
from microtrack.tracking.filtering import filter_trajectories

__all__ = [
    "MIN_SPECTRAL_SAMPLES",
    "numerical_derivative",
    "detrend",
    "fit_line",
    "fftclean",
    "estimate_omega",
    "TrajectoryLinker",
    "LinkerState",
    "resolve_fps",
    "add_useful_columns",
    "inbounds",
    "particle_radius",
    "find_trajectory_bounds",
    "clip_trajectory_edges",
    "SUMMARY_COLUMNS",
    "summary_columns",
    "total_displacement",
    "collapse_track",
    "collapse_data",
    "filter_trajectories",
]
