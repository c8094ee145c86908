"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: input and output directories, worker count, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import Field

from microtrack.schemas.base import MicrotrackBaseModel


class CLIConfig(MicrotrackBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            particle_dir="experiments/particle_data",
            base_dir="/scratch/microtrack_output",
            workers=4,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    particle_dir: Optional[str] = None
    base_dir: Optional[str] = None
    workers: Optional[int] = Field(None, ge=1)
    video_timeout_s: Optional[float] = Field(None, gt=0)
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.particle_dir is not None:
            overrides["input"] = {"particle_dir": str(self.particle_dir)}

        if self.base_dir is not None:
            overrides["output"] = {"base_dir": str(self.base_dir)}

        batch_overrides = {}
        if self.workers is not None:
            batch_overrides["workers"] = self.workers
        if self.video_timeout_s is not None:
            batch_overrides["video_timeout_s"] = self.video_timeout_s

        if batch_overrides:
            overrides["batch"] = batch_overrides

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
