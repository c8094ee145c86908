"""Root-level pytest fixtures for the microtrack test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture, plus small synthetic detection tables.
"""

import logging
import shutil
import tempfile
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from microtrack.schemas import (
    ParamConfig,
    UserConfig,
    LinkingSettings,
    VideoMetadata,
    resolve_config,
)


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs
    (uppercase aliases or field names).

    Examples
    --------
    >>> def test_custom_fps(make_config):
    ...     config = make_config(FPS=30)
    ...     assert config.linking.fps == 30.0
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


@pytest.fixture
def tracking_config(make_config):
    """Unit-scale config: 1 um/px, 1 fps, 5 px search radius, no stubs."""
    return make_config(
        SEARCH_RANGE_MICRONS=5,
        MPP=1,
        FPS=1,
        STUBS_SECONDS=0,
        MEMORY=0,
    )


@pytest.fixture
def unit_linking():
    """Linking settings with a 5 px radius and no memory or stub filtering."""
    return LinkingSettings(
        search_range_microns=5.0,
        microns_per_pixel=1.0,
        fps=1.0,
        stub_seconds=0.0,
        memory_frames=0,
    )


@pytest.fixture
def frame_100():
    """Metadata of a 100 x 100 px video without its own frame rate."""
    return VideoMetadata(resolution=(100, 100))


# =============================================================================
# Detection Fixtures
# =============================================================================

def _detections_from_rows(rows, **extra_columns) -> pd.DataFrame:
    """Build a detection table from (frame, x, y) tuples."""
    df = pd.DataFrame(rows, columns=["frame", "x", "y"])
    df["frame"] = df["frame"].astype("int64")
    df["x"] = df["x"].astype(float)
    df["y"] = df["y"].astype(float)
    for name, values in extra_columns.items():
        df[name] = values
    return df


@pytest.fixture
def make_detections():
    """Factory: detection table from (frame, x, y) tuples plus extra columns."""
    return _detections_from_rows


@pytest.fixture
def two_particle_detections():
    """Two well-separated particles over 10 frames, fully inside 100 x 100."""
    rows = []
    for t in range(10):
        rows.append((t, 20.0 + t, 20.0))
        rows.append((t, 70.0, 70.0 + t))
    df = _detections_from_rows(rows)
    df["major"] = 4.0
    df["minor"] = 2.0
    df["angle"] = np.tile([10.0, 80.0], 10)
    return df


# =============================================================================
# Directory / Logging Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def restore_root_logger():
    """Undo root logger changes made by BatchOrchestrator.setup_logging()."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
