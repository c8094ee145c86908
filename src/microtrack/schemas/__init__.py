"""Pydantic configuration schemas for the microtrack pipeline.

All configuration validation, coercion, and normalization happens at schema
validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
LinkingSettings, FilterSettings, VideoMetadata : class
    Option structs accepted by the tracking core
"""

from microtrack.schemas.settings import LinkingSettings, FilterSettings, VideoMetadata
from microtrack.schemas.resolve import resolve_config, deep_merge
from microtrack.schemas.internal import InternalConfig
from microtrack.schemas.param import ParamConfig
from microtrack.schemas.user import UserConfig
from microtrack.schemas.cli import CLIConfig

__all__ = [
    'LinkingSettings',
    'FilterSettings',
    'VideoMetadata',
    'resolve_config',
    'deep_merge',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
