"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict, field_validator

from microtrack.contracts.failure import FailurePolicy
from microtrack.schemas.base import MicrotrackBaseModel
from microtrack.schemas.settings import LinkingSettings, FilterSettings


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalColumnsConfig(MicrotrackBaseModel):
    """Runtime column roles."""
    size_columns: list[str]


class InternalClippingConfig(MicrotrackBaseModel):
    """Runtime clipping configuration."""
    enabled: bool
    size_column: str


class InternalCollapseConfig(MicrotrackBaseModel):
    """Runtime collapse configuration."""
    rotation_column: str
    time_column: str


class InternalBatchConfig(MicrotrackBaseModel):
    """Runtime batch configuration."""
    workers: int = Field(ge=1)
    executor: Literal["thread", "process"]
    video_timeout_s: Optional[float]
    failure_policy: FailurePolicy


class InternalInputConfig(MicrotrackBaseModel):
    """Runtime input configuration.

    Note: particle_dir and default_resolution are only required by the
    command-line runner, which validates them before loading files.
    """
    particle_dir: Optional[str]
    pattern: str
    default_resolution: Optional[tuple[int, int]]

    @field_validator("default_resolution")
    @classmethod
    def check_positive_resolution(cls, v):
        if v is not None and (v[0] <= 0 or v[1] <= 0):
            raise ValueError(f"default_resolution must be positive, got {v}")
        return v


class InternalOutputConfig(MicrotrackBaseModel):
    """Runtime output configuration."""
    base_dir: Optional[str]
    save_csv: bool
    save_linked: bool


class InternalLoggingConfig(MicrotrackBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    log_to_file: bool


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(MicrotrackBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.linking = config.linking              # NOT .get()
            self.size_column = config.clipping.size_column

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    linking: LinkingSettings
    filtering: FilterSettings
    columns: InternalColumnsConfig
    clipping: InternalClippingConfig
    collapse: InternalCollapseConfig
    batch: InternalBatchConfig
    input: InternalInputConfig
    output: InternalOutputConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
