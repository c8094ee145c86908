"""Core option structs shared by the tracking stages.

These are the only settings the numeric core accepts:

- LinkingSettings: linker search radius, scale, frame rate, memory, stubs
- FilterSettings: trajectory-level predicates over Summary columns
- VideoMetadata: per-video resolution and (optionally) frame rate

All three are frozen after construction so a single instance can be shared
read-only by every video of a batch. Field aliases accept the uppercase
names used in experiment notebooks (``MPP``, ``SEARCH_RANGE_MICRONS``, ...).
"""

from typing import Optional

from pydantic import Field, field_validator

from microtrack.schemas.base import MicrotrackBaseModel


class LinkingSettings(MicrotrackBaseModel):
    """Linking configuration.

    Attributes
    ----------
    search_range_microns : float
        Fastest a particle could be travelling, in microns per second.
    microns_per_pixel : float
        Scale of the objective.
    fps : float, optional
        Frames per second. Omit when the frame rate is supplied per video.
    stub_seconds : float
        Trajectories shorter than this (in seconds) are removed.
    memory_frames : int
        Number of frames a particle can disappear and still be linked.
    """

    search_range_microns: float = Field(..., gt=0, alias="SEARCH_RANGE_MICRONS")
    microns_per_pixel: float = Field(..., gt=0, alias="MPP")
    fps: Optional[float] = Field(None, gt=0, alias="FPS")
    stub_seconds: float = Field(0.0, ge=0, alias="STUBS_SECONDS")
    memory_frames: int = Field(0, ge=0, alias="MEMORY")

    model_config = MicrotrackBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True, "frozen": True})

    def max_displacement_px(self, fps: float) -> float:
        """Farthest a particle may travel in one frame interval, in pixels."""
        return self.search_range_microns / self.microns_per_pixel / fps


# Named filter thresholds -> (summary column, side)
NAMED_FILTERS = {
    "min_n_frames": ("n_frames", "min"),
    "min_displacement_px": ("total_displacement_px", "min"),
    "min_velocity": ("mean_velocity_microns_per_s", "min"),
    "max_velocity": ("mean_velocity_microns_per_s", "max"),
    "min_rotation_hz": ("estimated_rotation_hz", "min"),
    "max_rotation_hz": ("estimated_rotation_hz", "max"),
}


class FilterSettings(MicrotrackBaseModel):
    """Trajectory-level filter thresholds.

    Every configured threshold is an inclusive bound on one Summary column.
    Named thresholds cover the common columns; ``column_bounds`` accepts any
    other column produced by the collapser (or injected as metadata) as
    ``{column: (min, max)}`` where either side may be None.
    """

    min_n_frames: Optional[int] = Field(None, ge=1, alias="MIN_FRAMES")
    min_displacement_px: Optional[float] = Field(None, alias="MIN_DISPLACEMENT")
    min_velocity: Optional[float] = Field(None, alias="MIN_VELOCITY")
    max_velocity: Optional[float] = Field(None, alias="MAX_VELOCITY")
    min_rotation_hz: Optional[float] = Field(None, alias="MIN_ROTATION_HZ")
    max_rotation_hz: Optional[float] = Field(None, alias="MAX_ROTATION_HZ")
    column_bounds: dict[str, tuple[Optional[float], Optional[float]]] = Field(
        default_factory=dict, alias="COLUMN_BOUNDS"
    )

    model_config = MicrotrackBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True, "frozen": True})

    def bounds(self) -> dict[str, tuple[Optional[float], Optional[float]]]:
        """Merge named thresholds and ``column_bounds`` into one mapping.

        When a column is bounded twice on the same side, the tighter bound wins.
        """
        merged: dict[str, list] = {
            col: [lo, hi] for col, (lo, hi) in self.column_bounds.items()
        }
        for name, (column, side) in NAMED_FILTERS.items():
            value = getattr(self, name)
            if value is None:
                continue
            lo, hi = merged.setdefault(column, [None, None])
            if side == "min":
                merged[column][0] = value if lo is None else max(lo, value)
            else:
                merged[column][1] = value if hi is None else min(hi, value)

        return {
            col: (lo, hi)
            for col, (lo, hi) in merged.items()
            if lo is not None or hi is not None
        }


class VideoMetadata(MicrotrackBaseModel):
    """Per-video metadata shared read-only by the clipper and augmenter.

    ``resolution`` is ``(width, height)`` in pixels.
    """

    resolution: tuple[int, int]
    fps: Optional[float] = Field(None, gt=0)

    model_config = MicrotrackBaseModel.model_config.copy()
    model_config.update({"frozen": True})

    @field_validator("resolution")
    @classmethod
    def check_positive_resolution(cls, v):
        """Width and height must both be positive."""
        if v[0] <= 0 or v[1] <= 0:
            raise ValueError(f"resolution must be positive, got {v}")
        return v

    @property
    def width(self) -> int:
        return self.resolution[0]

    @property
    def height(self) -> int:
        return self.resolution[1]
