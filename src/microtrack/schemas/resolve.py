"""Turn the three config layers into one InternalConfig.

Expert defaults (ParamConfig) are overridden by the user's config file
(UserConfig), which is overridden by command-line flags (CLIConfig).
"""

from typing import Optional, Type, TypeVar, Union

from pydantic import BaseModel

from microtrack.schemas.param import ParamConfig
from microtrack.schemas.user import UserConfig
from microtrack.schemas.cli import CLIConfig
from microtrack.schemas.internal import InternalConfig

ModelT = TypeVar("ModelT", bound=BaseModel)


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Merge ``overrides`` into a copy of ``base``, left to right.

    Sections present on both sides as dicts are merged key by key; any
    other value replaces what was there. ``base`` is not modified.

    Examples
    --------
    >>> deep_merge({"linking": {"fps": None, "memory_frames": 0}},
    ...            {"linking": {"fps": 60.0}})
    {'linking': {'fps': 60.0, 'memory_frames': 0}}
    """
    merged = dict(base)
    for override in overrides:
        for key, value in override.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = deep_merge(current, value)
            else:
                merged[key] = value
    return merged


def _as_model(value, model_cls: Type[ModelT]) -> ModelT:
    """Accept a model instance, a dict, or None (empty model)."""
    if value is None:
        return model_cls()
    if isinstance(value, model_cls):
        return value
    return model_cls.model_validate(value)


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Build the runtime configuration.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert defaults; every field must be present.
    user_cfg : dict or UserConfig, optional
        Values from the user's config file (notebook aliases allowed).
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides.

    Returns
    -------
    InternalConfig
        Frozen configuration handed to the processor and orchestrator.

    Raises
    ------
    ValidationError
        If any layer, or the merged result, is invalid.

    Examples
    --------
    >>> config = resolve_config(ParamConfig(), UserConfig(MPP=0.3, FPS=30))
    >>> config.linking.microns_per_pixel, config.linking.fps
    (0.3, 30.0)
    """
    param = _as_model(param_cfg, ParamConfig)
    user = _as_model(user_cfg, UserConfig)
    cli = _as_model(cli_cfg, CLIConfig)

    # Field names throughout; InternalConfig sections accept them
    merged = deep_merge(
        param.model_dump(),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )
    return InternalConfig.model_validate(merged)
