"""Pipeline modules.

- processor: Per-video tracking pipeline
- orchestrator: Batch runner, aggregation and filtering
"""

from microtrack.pipeline.processor import VideoInput, VideoResult, VideoProcessor
from microtrack.pipeline.orchestrator import BatchOrchestrator, BatchResult

__all__ = [
    "VideoInput",
    "VideoResult",
    "VideoProcessor",
    "BatchOrchestrator",
    "BatchResult",
]
