"""Particle data ingestion and table persistence."""

from microtrack.io.particle_data import (
    extract_frame_from_label,
    normalize_particle_data,
    load_particle_data,
    settings_to_string,
    save_table_with_timestamp,
    load_table,
)

__all__ = [
    "extract_frame_from_label",
    "normalize_particle_data",
    "load_particle_data",
    "settings_to_string",
    "save_table_with_timestamp",
    "load_table",
]
