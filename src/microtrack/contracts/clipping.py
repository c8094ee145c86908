"""Edge clipping stage contract.

Enforces the guarantee that clipping only truncates tracks: each surviving
track is one contiguous run of its linked rows.
"""

import numpy as np
import pandas as pd

from microtrack.contracts.base import require


def assert_clipped(clipped: pd.DataFrame) -> None:
    """Enforce clipping stage contract.

    Relies on the clipper keeping the row labels of the linked table, which
    the processor numbers 0..N-1 in (particle_id, frame) order. A window is
    contiguous exactly when its row labels increase by one.

    Parameters
    ----------
    clipped : pd.DataFrame
        Output of ``clip_trajectory_edges()``

    Raises
    ------
    ContractViolation
        If a clipped track skips rows
    """
    if len(clipped) == 0:
        return

    pid = clipped["particle_id"].to_numpy()
    labels = clipped.index.to_numpy()
    same_track = pid[1:] == pid[:-1]
    require(
        bool(np.all(np.diff(labels)[same_track] == 1)),
        "Clipping contract violated: clipped window is not contiguous"
    )
