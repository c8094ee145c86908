"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for the uppercase names used in experiment notebooks (e.g., MPP →
microns_per_pixel, STUBS_SECONDS → stub_seconds).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys, integers where floats are expected, etc.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator

from microtrack.schemas.base import MicrotrackBaseModel


class UserLinkingConfig(MicrotrackBaseModel):
    """User-facing linking config."""
    search_range_microns: Optional[float] = None
    microns_per_pixel: Optional[float] = None
    fps: Optional[float] = None
    stub_seconds: Optional[float] = None
    memory_frames: Optional[int] = None


class UserFilterConfig(MicrotrackBaseModel):
    """User-facing filter config."""
    min_n_frames: Optional[int] = None
    min_displacement_px: Optional[float] = None
    min_velocity: Optional[float] = None
    max_velocity: Optional[float] = None
    min_rotation_hz: Optional[float] = None
    max_rotation_hz: Optional[float] = None
    column_bounds: Optional[dict[str, tuple[Optional[float], Optional[float]]]] = None


class UserBatchConfig(MicrotrackBaseModel):
    """User-facing batch config."""
    workers: Optional[int] = None
    executor: Optional[str] = None
    video_timeout_s: Optional[float] = None
    failure_policy: Optional[str] = None

    @field_validator("executor", "failure_policy", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Normalize option names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserConfig(MicrotrackBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            SEARCH_RANGE_MICRONS=1000,
            MPP=0.605,
            FPS=60,
            STUBS_SECONDS=0.5,
            MEMORY=0,
            RESOLUTION=(1280, 1024),
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Linking settings (flat aliases)
    search_range_microns: Optional[float] = Field(None, alias="SEARCH_RANGE_MICRONS")
    microns_per_pixel: Optional[float] = Field(None, alias="MPP")
    fps: Optional[float] = Field(None, alias="FPS")
    stub_seconds: Optional[float] = Field(None, alias="STUBS_SECONDS")
    memory_frames: Optional[int] = Field(None, alias="MEMORY")

    # Filter settings (flat aliases)
    min_n_frames: Optional[int] = Field(None, alias="MIN_FRAMES")
    min_displacement_px: Optional[float] = Field(None, alias="MIN_DISPLACEMENT")
    min_velocity: Optional[float] = Field(None, alias="MIN_VELOCITY")
    max_velocity: Optional[float] = Field(None, alias="MAX_VELOCITY")
    min_rotation_hz: Optional[float] = Field(None, alias="MIN_ROTATION_HZ")
    max_rotation_hz: Optional[float] = Field(None, alias="MAX_ROTATION_HZ")

    # Columns, clipping and collapse
    size_columns: Optional[list[str]] = Field(None, alias="SIZE_COLUMNS")
    size_column: Optional[str] = Field(None, alias="SIZE_COLUMN")
    clip_edges: Optional[bool] = Field(None, alias="CLIP_EDGES")
    rotation_column: Optional[str] = Field(None, alias="ROTATION_COLUMN")

    # Input / output
    particle_dir: Optional[str] = Field(None, alias="PARTICLE_DIR")
    resolution: Optional[tuple[int, int]] = Field(None, alias="RESOLUTION")
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")
    workers: Optional[int] = Field(None, alias="WORKERS")
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(None, alias="LOG_LEVEL")

    # Nested overrides (advanced users)
    linking: Optional[UserLinkingConfig] = None
    filtering: Optional[UserFilterConfig] = None
    batch: Optional[UserBatchConfig] = None

    model_config = MicrotrackBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator(
        "search_range_microns", "microns_per_pixel", "fps", "stub_seconds",
        mode="before",
    )
    @classmethod
    def coerce_numeric_fields(cls, v):
        """Accept int or float for numeric fields."""
        if v is not None:
            return float(v)
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        # Linking section
        linking = {}
        for name in ("search_range_microns", "microns_per_pixel", "fps",
                     "stub_seconds", "memory_frames"):
            value = getattr(self, name)
            if value is not None:
                linking[name] = value

        # Merge with explicit linking config
        if self.linking is not None:
            linking.update(self.linking.model_dump(exclude_none=True))

        if linking:
            overrides["linking"] = linking

        # Filtering section
        filtering = {}
        for name in ("min_n_frames", "min_displacement_px", "min_velocity",
                     "max_velocity", "min_rotation_hz", "max_rotation_hz"):
            value = getattr(self, name)
            if value is not None:
                filtering[name] = value

        if self.filtering is not None:
            filtering.update(self.filtering.model_dump(exclude_none=True))

        if filtering:
            overrides["filtering"] = filtering

        if self.size_columns is not None:
            overrides["columns"] = {"size_columns": self.size_columns}

        clipping = {}
        if self.size_column is not None:
            clipping["size_column"] = self.size_column
        if self.clip_edges is not None:
            clipping["enabled"] = self.clip_edges
        if clipping:
            overrides["clipping"] = clipping

        if self.rotation_column is not None:
            overrides["collapse"] = {"rotation_column": self.rotation_column}

        # Batch section
        batch = {}
        if self.workers is not None:
            batch["workers"] = self.workers
        if self.batch is not None:
            batch.update(self.batch.model_dump(exclude_none=True))
        if batch:
            overrides["batch"] = batch

        input_cfg = {}
        if self.particle_dir is not None:
            input_cfg["particle_dir"] = str(self.particle_dir)
        if self.resolution is not None:
            input_cfg["default_resolution"] = self.resolution
        if input_cfg:
            overrides["input"] = input_cfg

        if self.base_dir is not None:
            overrides["output"] = {"base_dir": str(self.base_dir)}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
