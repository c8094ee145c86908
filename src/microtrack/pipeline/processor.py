"""Per-video processing pipeline.

Runs one video's detections through linking, augmentation, edge clipping and
collapse, checking stage contracts in between. Failures are isolated to the
video and returned as a PerVideoFailure record.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union, TYPE_CHECKING

import pandas as pd

from microtrack.contracts import (
    ContractViolation,
    FailurePolicy,
    PerVideoFailure,
    assert_detections,
    assert_linked,
    assert_clipped,
    assert_summary,
)
from microtrack.io.particle_data import load_particle_data
from microtrack.schemas.settings import VideoMetadata
from microtrack.tracking.augmenter import add_useful_columns
from microtrack.tracking.clipper import clip_trajectory_edges
from microtrack.tracking.collapser import collapse_data
from microtrack.tracking.linker import TrajectoryLinker, resolve_fps

if TYPE_CHECKING:
    from microtrack.schemas import InternalConfig

__all__ = ['VideoInput', 'VideoResult', 'VideoProcessor', 'process_video']

logger = logging.getLogger(__name__)


@dataclass
class VideoInput:
    """Everything needed to process one video.

    Attributes
    ----------
    detections : pd.DataFrame or path
        Normalized detection table, or a CSV path loaded on demand.
    metadata : VideoMetadata
        Resolution and optional fps of the video.
    info : dict
        Externally parsed metadata (experiment conditions, ...) attached
        verbatim as columns of the video's summary rows.
    """
    detections: Union[pd.DataFrame, str, Path]
    metadata: VideoMetadata
    info: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VideoResult:
    """Outcome of processing one video."""
    video_id: str
    summary: pd.DataFrame
    linked: pd.DataFrame
    failure: Optional[PerVideoFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class VideoProcessor:
    """Processes a single video through the tracking pipeline.

    **Processing Pipeline:**

    1. **Load**: Read the detection CSV if a path was given.
    2. **Resolve fps**: From the video metadata or the linking settings,
       never both.
    3. **Link**: Greedy nearest-first linking, then stub removal.
    4. **Augment**: dx, dy, dp, time, velocity and micron size columns.
    5. **Clip**: Truncate tracks to their in-bounds window (optional).
    6. **Collapse**: One summary row per track.
    7. **Tag**: Add the ``video`` column and the video's metadata columns.

    The processor holds no per-video state; one instance can process videos
    from several threads at once.

    Example usage (typically called by the orchestrator)::

        processor = VideoProcessor(config)
        result = processor.process("run01", VideoInput(df, VideoMetadata(resolution=(1280, 1024))))
        if result.ok:
            print(result.summary)
    """

    def __init__(self, config: "InternalConfig"):
        """Initialize processor with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        """
        self.config = config
        self.linker = TrajectoryLinker(config.linking)
        self.size_columns = list(config.columns.size_columns)
        self.clip_enabled = config.clipping.enabled
        self.clip_size_column = config.clipping.size_column
        self.rotation_column = config.collapse.rotation_column
        self.time_column = config.collapse.time_column
        self.fail_fast = config.batch.failure_policy == FailurePolicy.FAIL_FAST

    def process(self, video_id: str, video: VideoInput) -> VideoResult:
        """Process one video: load → link → augment → clip → collapse → tag.

        Returns
        -------
        VideoResult
            Summary and clipped linked rows, or empty tables and a failure
            record when any stage raised.

        Raises
        ------
        Exception
            Only under ``FailurePolicy.FAIL_FAST``; the original error is re-raised.
        """
        video_id = str(video_id)
        stage = "load"
        try:
            logger.info("Processing: %s", video_id)

            detections = self._load(video.detections)

            stage = "resolve_fps"
            fps = resolve_fps(self.config.linking, video.metadata)

            stage = "validate"
            assert_detections(detections)

            # Step 1: Link
            stage = "link"
            linked = self.linker.assign_tracks(detections, fps)
            assert_linked(linked, len(detections))
            linked = self.linker.filter_stubs(linked, fps)
            logger.info("Linked: %d tracks from %d detections",
                        linked["particle_id"].nunique(), len(detections))

            # Step 2: Augment
            stage = "augment"
            linked = add_useful_columns(
                linked, fps, self.config.linking.microns_per_pixel, self.size_columns
            )

            # Step 3: Clip (optional)
            if self.clip_enabled:
                stage = "clip"
                linked = clip_trajectory_edges(
                    linked, video.metadata.resolution, self.clip_size_column
                )
                assert_clipped(linked)

            # Step 4: Collapse
            stage = "collapse"
            summary = collapse_data(
                linked, self.rotation_column, self.time_column, self.size_columns
            )
            assert_summary(summary)

            # Step 5: Tag with video metadata
            stage = "tag"
            summary = self._tag(summary, video_id, video.info)
            linked = linked.reset_index(drop=True)
            linked.insert(0, "video", video_id)

            logger.info("Collapsed: %d trajectories for %s", len(summary), video_id)
            return VideoResult(video_id=video_id, summary=summary, linked=linked)

        except ContractViolation as e:
            if stage == "validate":
                # Detections come from outside the pipeline: bad input, not a bug
                logger.error("Invalid detections for %s: %s", video_id, e)
            else:
                logger.critical("CRITICAL: Pipeline contract violated in %s at stage '%s': %s",
                                video_id, stage, e)
                logger.critical("This indicates a bug in pipeline logic.")
            if self.fail_fast:
                raise
            return self._failed(video_id, stage, e)

        except Exception as e:
            logger.exception("Error processing %s at stage '%s'", video_id, stage)
            if self.fail_fast:
                raise
            return self._failed(video_id, stage, e)

    @staticmethod
    def _load(detections: Union[pd.DataFrame, str, Path]) -> pd.DataFrame:
        if isinstance(detections, pd.DataFrame):
            return detections
        return load_particle_data(detections)

    @staticmethod
    def _tag(summary: pd.DataFrame, video_id: str, info: Dict[str, Any]) -> pd.DataFrame:
        """Attach the video id and its metadata columns to every summary row."""
        tagged = summary.copy()
        tagged.insert(0, "video", video_id)
        for key, value in info.items():
            if key in tagged.columns:
                raise ValueError(f"Metadata column '{key}' collides with a summary column")
            tagged[key] = value
        return tagged

    @staticmethod
    def _failed(video_id: str, stage: str, exc: Exception) -> VideoResult:
        return VideoResult(
            video_id=video_id,
            summary=pd.DataFrame(),
            linked=pd.DataFrame(),
            failure=PerVideoFailure.from_exception(video_id, stage, exc),
        )


def process_video(config: "InternalConfig", video_id: str, video: VideoInput) -> VideoResult:
    """Module-level entry point so process pools can pickle the work item."""
    return VideoProcessor(config).process(video_id, video)
