"""`microtrack` - Linking and kinematic summaries of microscopy particle tracks.

Subpackages:
- tracking: Linking, kinematic augmentation, edge clipping, collapse, filtering
- pipeline: Per-video processor and batch orchestrator
- schemas: Pydantic configuration
- contracts: Stage invariants and error taxonomy
- io: Particle data ingestion and table persistence
"""

__version__ = "0.1.0"
