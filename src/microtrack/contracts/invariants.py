"""Formal pipeline invariants.

This file documents what each stage MUST produce.
Use this file as a reviewer anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "detections": [
        "Columns frame, x, y exist (lowercase, normalized at ingestion)",
        "frame is an integer >= 0",
        "x and y are finite pixel coordinates",
    ],

    "linking": [
        "Every detection belongs to exactly one particle_id",
        "Frames strictly increase inside a track (gaps <= memory_frames)",
        "Rows sorted by (particle_id, frame); no interpolated rows",
        "Tracks shorter than stub_seconds removed after linking",
    ],

    "augmentation": [
        "Row count and row order unchanged",
        "dx, dy, dp, time, velocity added; <size>_microns added per size column",
    ],

    "clipping": [
        "Each surviving track is a contiguous window of its linked rows",
        "Tracks whose center detection is off-screen are dropped",
    ],

    "collapse": [
        "One row per particle_id, ordered by particle_id",
        "total_displacement_px >= 0 (path length)",
        "estimated_rotation_hz is NaN when spectral estimation is inconclusive",
    ],

    "batch": [
        "Rows ordered by (video, particle_id)",
        "Each row satisfies every configured filter predicate",
        "A failing video contributes no rows and one failure record",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "detections": "REQUIRED",
    "linking": "REQUIRED",
    "augmentation": "REQUIRED",
    "clipping": "OPTIONAL",     # clipping.enabled
    "collapse": "REQUIRED",
    "batch": "REQUIRED",
}
