"""Command-line entry points."""

from microtrack.cli.run_batch import run_batch_pipeline, load_user_config_dict

__all__ = ["run_batch_pipeline", "load_user_config_dict"]
