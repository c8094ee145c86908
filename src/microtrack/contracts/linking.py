"""Linking stage contract.

Enforces the guarantee that after linking, every detection carries exactly
one particle id and each track is strictly ordered by frame.
"""

import numpy as np
import pandas as pd

from microtrack.contracts.base import require


def assert_linked(linked: pd.DataFrame, n_detections: int) -> None:
    """Enforce linking stage contract.

    Called after ``TrajectoryLinker.assign_tracks()`` and before stubs are
    dropped, when the partition property must hold exactly.

    Parameters
    ----------
    linked : pd.DataFrame
        Output of the linker.

    n_detections : int
        Number of rows handed to the linker.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        "particle_id" in linked.columns,
        "Linking contract violated: missing 'particle_id' column"
    )
    require(
        len(linked) == n_detections,
        f"Linking contract violated: {len(linked)} linked rows from {n_detections} detections"
    )

    if len(linked) == 0:
        return

    require(
        bool(linked["particle_id"].notna().all()),
        "Linking contract violated: unassigned detections (NaN particle_id)"
    )

    # Frames strictly increasing inside every track
    pid = linked["particle_id"].to_numpy()
    frames = linked["frame"].to_numpy()
    same_track = pid[1:] == pid[:-1]
    require(
        bool(np.all(np.diff(frames)[same_track] > 0)),
        "Linking contract violated: a track holds two detections in one frame or is unsorted"
    )
