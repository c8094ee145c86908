"""microtrack User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Expert defaults live in src/microtrack/schemas/param.py

Usage:
    python scripts/run_batch.py scripts/user_config.py
    python scripts/run_batch.py scripts/user_config.py --particle-dir data/run2
    python scripts/run_batch.py scripts/user_config.py --workers 4
"""

CONFIG = {
    # ========================================================================
    # INPUT & OUTPUT
    # ========================================================================
    "PARTICLE_DIR": "particle_data",   # ImageJ particle CSVs, one per video
    "RESOLUTION": (1280, 1024),        # (width, height) in pixels
    "BASE_DIR": "microtrack_output",   # All outputs go here

    # ========================================================================
    # LINKING SETTINGS
    # ========================================================================
    "SEARCH_RANGE_MICRONS": 1000,  # Fastest a microbot could move (um/s)
    "MPP": 0.605,                  # Microns per pixel (40x objective)
    "FPS": 60,                     # Frames per second (omit if per-video)
    "STUBS_SECONDS": 0.5,          # Drop trajectories shorter than this
    "MEMORY": 0,                   # Frames a particle may vanish for

    # ========================================================================
    # FILTER SETTINGS
    # ========================================================================
    "MIN_DISPLACEMENT": 10,        # Path length in pixels
    "MIN_VELOCITY": None,          # um/s
    "MAX_ROTATION_HZ": None,

    # ========================================================================
    # COLLAPSE SETTINGS
    # ========================================================================
    "ROTATION_COLUMN": "major_microns",  # or "angle"
    "WORKERS": 1,
}
