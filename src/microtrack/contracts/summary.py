"""Collapse stage contract.

Enforces the guarantee that after collapsing, the summary has one row per
particle with the required columns and sane values.
"""

import pandas as pd

from microtrack.contracts.base import require

REQUIRED_SUMMARY_COLUMNS = (
    "particle_id",
    "n_frames",
    "total_displacement_px",
    "mean_velocity_microns_per_s",
    "estimated_rotation_hz",
)


def assert_summary(df: pd.DataFrame) -> None:
    """Enforce collapse stage contract.

    We do NOT validate the scientific correctness of statistics, only the
    structural requirements.

    Raises
    ------
    ContractViolation
        If structural requirements are violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Summary contract violated: output is {type(df)}, expected DataFrame"
    )

    for col in REQUIRED_SUMMARY_COLUMNS:
        require(
            col in df.columns,
            f"Summary contract violated: missing required column '{col}'"
        )

    if len(df) == 0:
        return

    require(
        bool(df["particle_id"].is_unique),
        "Summary contract violated: particle_id is not unique"
    )
    require(
        bool((df["n_frames"] >= 1).all()),
        "Summary contract violated: n_frames must be >= 1 for all rows"
    )
    require(
        bool((df["total_displacement_px"] >= 0).all()),
        "Summary contract violated: negative total displacement"
    )
