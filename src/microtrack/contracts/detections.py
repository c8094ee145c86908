"""Detection (ingestion) contract.

Enforces the guarantee that a per-video detection table has been
normalized before it reaches the linker: lowercase ``frame``, ``x``, ``y``
columns, integer non-negative frames, finite coordinates.
"""

import numpy as np
import pandas as pd

from microtrack.contracts.base import require


def assert_detections(df: pd.DataFrame) -> None:
    """Enforce detection contract.

    Called before linking. Verifies that the detection table has the
    columns the linker reads and that their values are usable.

    Parameters
    ----------
    df : pd.DataFrame
        Normalized detections for one video.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Detection contract violated: input is {type(df)}, expected DataFrame"
    )

    for col in ("frame", "x", "y"):
        require(
            col in df.columns,
            f"Detection contract violated: missing required column '{col}'"
        )

    if len(df) == 0:
        return

    require(
        df["frame"].dtype.kind in {"i", "u"},
        f"Detection contract violated: 'frame' dtype is {df['frame'].dtype}, expected integer"
    )
    require(
        (df["frame"] >= 0).all(),
        f"Detection contract violated: negative frame index (min={df['frame'].min()})"
    )

    coords = df[["x", "y"]].to_numpy(dtype=float)
    require(
        bool(np.isfinite(coords).all()),
        "Detection contract violated: x/y contain NaN or infinite values"
    )
