"""Batch runner behind ``scripts/run_batch.py``.

Argument parsing stays in the script; everything from reading the user's
config file to writing result tables happens here so it can be called from
notebooks and tests as well.
"""

import importlib.util
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from microtrack.pipeline.orchestrator import BatchOrchestrator, BatchResult
from microtrack.pipeline.processor import VideoInput
from microtrack.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig, VideoMetadata

__all__ = ['load_user_config_dict', 'discover_videos', 'run_batch_pipeline']

logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Execute a Python config file and return its ``CONFIG`` dictionary.

    The dictionary is returned as written (notebook aliases such as ``MPP``
    intact); validation happens in :class:`UserConfig`.

    Raises
    ------
    FileNotFoundError
        If ``config_path`` does not exist.
    ValueError
        If the file defines no ``CONFIG`` dictionary.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    module_spec = importlib.util.spec_from_file_location("microtrack_user_config", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)

    config = getattr(module, "CONFIG", None)
    if not isinstance(config, dict):
        raise ValueError(f"No CONFIG dict found in {path}")
    return config


def discover_videos(config) -> Dict[str, VideoInput]:
    """Build one VideoInput per particle-data file in ``input.particle_dir``.

    The video identifier is the file stem. Every video gets the configured
    ``default_resolution`` and no per-video fps or metadata columns.

    Raises
    ------
    ValueError
        If particle_dir or default_resolution is not configured.
    FileNotFoundError
        If particle_dir does not exist.
    """
    if config.input.particle_dir is None:
        raise ValueError("input.particle_dir is not set (PARTICLE_DIR or --particle-dir)")
    if config.input.default_resolution is None:
        raise ValueError("input.default_resolution is not set (RESOLUTION)")

    particle_dir = Path(config.input.particle_dir)
    if not particle_dir.is_dir():
        raise FileNotFoundError(f"Particle directory not found: {particle_dir}")

    metadata = VideoMetadata(resolution=config.input.default_resolution)
    videos = {
        path.stem: VideoInput(detections=path, metadata=metadata)
        for path in sorted(particle_dir.glob(config.input.pattern))
    }
    logger.info("Found %d particle files in %s", len(videos), particle_dir)
    return videos


def _cli_config(cli_args: Optional[Dict[str, Any]], verbose: bool) -> CLIConfig:
    """CLIConfig from parsed arguments; flags left unset (None) are dropped."""
    values = {k: v for k, v in (cli_args or {}).items() if v is not None}
    if verbose:
        values.setdefault("log_level", "DEBUG")
    return CLIConfig.model_validate(values)


def _print_run_header(config, config_path: str, verbose: bool) -> None:
    rule = "=" * 60
    print(f"\n{rule}")
    print("microtrack batch pipeline")
    print(rule)
    print(f"Config:    {config_path}")
    print(f"Particles: {config.input.particle_dir}")
    print(f"Output:    {config.output.base_dir}")
    print(f"Workers:   {config.batch.workers} ({config.batch.executor})")
    print(rule)
    if verbose:
        print(json.dumps(config.model_dump(mode="json"), indent=2))
        print(rule)


def run_batch_pipeline(
    user_config_path: str,
    cli_args: Optional[Dict[str, Any]] = None,
    verbose: bool = False,
) -> BatchResult:
    """Track every particle file of an experiment and write the results.

    Resolves the configuration (defaults < config file < ``cli_args``),
    sets up logging, runs the batch orchestrator over every file matching
    ``input.pattern`` in ``input.particle_dir`` and, when ``output.base_dir``
    is set, saves the summary, linked and failure tables there.

    Parameters
    ----------
    user_config_path : str
        Python file defining ``CONFIG``.
    cli_args : dict, optional
        Any of particle_dir, base_dir, workers, video_timeout_s, log_level.
        None values are ignored.
    verbose : bool
        DEBUG logging and a dump of the resolved configuration.

    Returns
    -------
    BatchResult

    Examples
    --------
    ::

        result = run_batch_pipeline(
            "scripts/user_config.py",
            cli_args={"particle_dir": "data/run2", "workers": 4},
        )
        result.summary.groupby("video").size()
    """
    user_cfg = UserConfig.model_validate(load_user_config_dict(user_config_path))
    config = resolve_config(ParamConfig(), user_cfg, _cli_config(cli_args, verbose))

    _print_run_header(config, user_config_path, verbose)

    orchestrator = BatchOrchestrator(config)
    orchestrator.setup_logging()

    result = orchestrator.run(discover_videos(config))

    if config.output.base_dir is None:
        logger.warning("output.base_dir not set; results not written")
        return result

    for name, path in orchestrator.save_results(result).items():
        print(f"{name}: {path}")
    return result
