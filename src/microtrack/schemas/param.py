"""ParamConfig: Expert defaults for the microtrack pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator

from microtrack.contracts.failure import FailurePolicy
from microtrack.schemas.base import MicrotrackBaseModel
from microtrack.schemas.settings import LinkingSettings, FilterSettings


# =============================================================================
# Nested Configuration Models
# =============================================================================

def default_linking_settings() -> LinkingSettings:
    """Settings used for the bundled example experiments (40x objective)."""
    return LinkingSettings(
        search_range_microns=1000.0,
        microns_per_pixel=0.605,
        fps=None,
        stub_seconds=0.5,
        memory_frames=0,
    )


class ColumnsConfig(MicrotrackBaseModel):
    """Detection column roles."""
    size_columns: list[str] = Field(
        default_factory=lambda: ["major", "minor"],
        description="Length-like shape columns converted from pixels to microns",
    )


class ClippingConfig(MicrotrackBaseModel):
    """Edge-of-frame clipping configuration."""
    enabled: bool = True
    size_column: str = Field("major", description="Diameter-like column used for the particle radius")


class CollapseConfig(MicrotrackBaseModel):
    """Trajectory collapse configuration."""
    rotation_column: str = Field("major_microns", description="Observable used for rotation-rate estimation")
    time_column: str = "time"


class BatchConfig(MicrotrackBaseModel):
    """Batch orchestration configuration."""
    workers: int = Field(1, ge=1, description="Videos processed concurrently")
    executor: Literal["thread", "process"] = "thread"
    video_timeout_s: Optional[float] = Field(
        None, gt=0,
        description="Per-video wait limit in seconds; a hung worker is abandoned, not stopped",
    )
    failure_policy: FailurePolicy = FailurePolicy.SKIP_VIDEO


class InputConfig(MicrotrackBaseModel):
    """Particle data input configuration."""
    particle_dir: Optional[str] = None
    pattern: str = "*.csv"
    default_resolution: Optional[tuple[int, int]] = None

    @field_validator("default_resolution")
    @classmethod
    def check_positive_resolution(cls, v):
        """Width and height must both be positive."""
        if v is not None and (v[0] <= 0 or v[1] <= 0):
            raise ValueError(f"default_resolution must be positive, got {v}")
        return v


class OutputConfig(MicrotrackBaseModel):
    """Output file configuration."""
    base_dir: Optional[str] = None
    save_csv: bool = True
    save_linked: bool = True


class LoggingConfig(MicrotrackBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_to_file: bool = True


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(MicrotrackBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    linking: LinkingSettings = Field(default_factory=default_linking_settings)
    filtering: FilterSettings = Field(default_factory=FilterSettings)
    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    clipping: ClippingConfig = Field(default_factory=ClippingConfig)
    collapse: CollapseConfig = Field(default_factory=CollapseConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
