"""Frame-to-frame particle linking.

Turns a per-frame detection table into identity-stable trajectories with a
bounded-radius, greedy nearest-first assignment. Particles may vanish for up
to ``memory_frames`` frames and still be linked; trajectories shorter than
``stub_seconds`` are dropped after linking.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, TYPE_CHECKING

import numpy as np
import pandas as pd
from scipy.spatial import cKDTree

from microtrack.contracts.failure import ConfigurationConflict

if TYPE_CHECKING:
    from microtrack.schemas.settings import LinkingSettings, VideoMetadata

__all__ = ['TrajectoryLinker', 'LinkerState', 'resolve_fps']

logger = logging.getLogger(__name__)


def resolve_fps(settings: "LinkingSettings", metadata: Optional["VideoMetadata"] = None) -> float:
    """Resolve the frame rate for one video.

    The frame rate must come from exactly one place: the video's metadata or
    the linking settings.

    Raises
    ------
    ConfigurationConflict
        If both sources define fps, or neither does.
    """
    metadata_fps = metadata.fps if metadata is not None else None

    if metadata_fps is not None and settings.fps is not None:
        raise ConfigurationConflict(
            f"fps given in both video metadata ({metadata_fps}) and linking settings "
            f"({settings.fps}); remove one"
        )
    if metadata_fps is None and settings.fps is None:
        raise ConfigurationConflict("fps missing: set it in the video metadata or the linking settings")

    return float(metadata_fps if metadata_fps is not None else settings.fps)


@dataclass
class LinkerState:
    """Mutable linking state for a single video.

    Created fresh by every :meth:`TrajectoryLinker.assign_tracks` call and
    never shared, so videos can be linked concurrently.

    Attributes
    ----------
    open_tracks : dict
        particle_id -> (x, y, last_frame) for tracks that may still be extended.
    next_id : int
        Id handed to the next new track.
    n_closed : int
        Tracks finalized so far.
    """
    open_tracks: Dict[int, Tuple[float, float, int]] = field(default_factory=dict)
    next_id: int = 0
    n_closed: int = 0

    def new_track(self, x: float, y: float, frame: int) -> int:
        pid = self.next_id
        self.next_id += 1
        self.open_tracks[pid] = (x, y, frame)
        return pid

    def extend(self, pid: int, x: float, y: float, frame: int) -> None:
        last_frame = self.open_tracks[pid][2]
        if frame - last_frame > 1:
            logger.debug(
                "Particle %d reappears at frame %d; frames %d-%d absent (not interpolated)",
                pid, frame, last_frame + 1, frame - 1
            )
        self.open_tracks[pid] = (x, y, frame)

    def close_stale(self, frame: int, memory_frames: int) -> None:
        """Close tracks that have been missing for more than ``memory_frames`` frames."""
        stale = [
            pid for pid, (_, _, last_frame) in self.open_tracks.items()
            if frame - last_frame - 1 > memory_frames
        ]
        for pid in stale:
            del self.open_tracks[pid]
        self.n_closed += len(stale)

    def close_all(self) -> None:
        self.n_closed += len(self.open_tracks)
        self.open_tracks.clear()


class TrajectoryLinker:
    """Link per-frame detections into trajectories.

    Frames are processed in increasing order. For each frame, every open
    track's last position is paired with every detection of the frame that
    lies within ``max_displacement_px``. Pairs are committed greedily,
    nearest first; ties go to the lower particle id, then the earlier
    detection row. Detections left over start new tracks.

    A track that is not extended stays open while the number of frames it
    has been missing is at most ``memory_frames``; a track in frames 0, 1
    and 3 links with ``memory_frames=1`` and splits with ``memory_frames=0``.

    Greedy assignment is not a globally optimal matching; it is kept for its
    deterministic, reproducible output.

    Examples
    --------
    >>> settings = LinkingSettings(SEARCH_RANGE_MICRONS=1000, MPP=0.605, FPS=60)
    >>> linker = TrajectoryLinker(settings)
    >>> linked = linker.link(detections, fps=60.0)
    >>> linked.groupby("particle_id").size()
    """

    def __init__(self, settings: "LinkingSettings"):
        """Initialize linker with validated settings.

        Parameters
        ----------
        settings : LinkingSettings
            Frozen linking settings, shared read-only across videos.
        """
        self.settings = settings

    def assign_tracks(self, detections: pd.DataFrame, fps: float) -> pd.DataFrame:
        """Assign a ``particle_id`` to every detection.

        Parameters
        ----------
        detections : pd.DataFrame
            Normalized detections with ``frame``, ``x`` and ``y`` columns.
        fps : float
            Resolved frame rate of the video.

        Returns
        -------
        pd.DataFrame
            All input rows plus an integer ``particle_id`` column, sorted by
            (particle_id, frame) with a fresh 0..N-1 index.
        """
        max_disp = self.settings.max_displacement_px(fps)
        max_disp_sq = max_disp ** 2
        memory = self.settings.memory_frames

        n = len(detections)
        if n == 0:
            linked = detections.copy()
            linked["particle_id"] = pd.Series(dtype="int64")
            return linked

        frames = detections["frame"].to_numpy()
        coords = detections[["x", "y"]].to_numpy(dtype=float)
        particle_ids = np.empty(n, dtype=np.int64)

        # Row positions grouped by frame, input order kept within a frame
        order = np.argsort(frames, kind="stable")
        unique_frames, starts = np.unique(frames[order], return_index=True)
        frame_rows = np.split(order, starts[1:])

        state = LinkerState()
        for frame, rows in zip(unique_frames, frame_rows):
            frame = int(frame)
            state.close_stale(frame, memory)

            claimed = self._match_frame(state, coords[rows], max_disp, max_disp_sq)

            for local, row in enumerate(rows):
                x, y = coords[row]
                pid = claimed.get(local)
                if pid is None:
                    pid = state.new_track(x, y, frame)
                else:
                    state.extend(pid, x, y, frame)
                particle_ids[row] = pid

        state.close_all()
        logger.debug("Linked %d detections over %d frames into %d tracks",
                     n, len(unique_frames), state.next_id)

        linked = detections.copy()
        linked["particle_id"] = particle_ids
        linked = linked.sort_values(["particle_id", "frame"], kind="mergesort")
        return linked.reset_index(drop=True)

    @staticmethod
    def _match_frame(state: LinkerState, positions: np.ndarray,
                     max_disp: float, max_disp_sq: float) -> Dict[int, int]:
        """Greedy nearest-first matching of open tracks to one frame's detections.

        Returns
        -------
        dict
            Local detection index -> particle_id for every committed pair.
        """
        if not state.open_tracks or len(positions) == 0:
            return {}

        open_ids = np.array(sorted(state.open_tracks), dtype=np.int64)
        last_positions = np.array([state.open_tracks[pid][:2] for pid in open_ids], dtype=float)

        # KD-tree prunes far pairs; the exact squared distance decides membership
        neighbours = cKDTree(positions).query_ball_point(last_positions, r=max_disp * (1 + 1e-9))
        track_idx = np.array(
            [t for t, dets in enumerate(neighbours) for _ in dets], dtype=np.int64
        )
        det_idx = np.array(
            [d for dets in neighbours for d in dets], dtype=np.int64
        )
        if track_idx.size == 0:
            return {}

        dist_sq = np.sum((last_positions[track_idx] - positions[det_idx]) ** 2, axis=1)

        keep = dist_sq <= max_disp_sq
        track_idx, det_idx, dist_sq = track_idx[keep], det_idx[keep], dist_sq[keep]

        # Primary key last: distance, then particle id, then detection row
        candidate_order = np.lexsort((det_idx, open_ids[track_idx], dist_sq))

        claimed: Dict[int, int] = {}
        used_tracks = set()
        for k in candidate_order:
            t, d = int(track_idx[k]), int(det_idx[k])
            if t in used_tracks or d in claimed:
                continue
            used_tracks.add(t)
            claimed[d] = int(open_ids[t])
        return claimed

    def filter_stubs(self, linked: pd.DataFrame, fps: float) -> pd.DataFrame:
        """Drop tracks that last less than ``stub_seconds``.

        A track's duration is its frame span ``(max_frame - min_frame + 1)``
        divided by ``fps``. A track lasting exactly ``stub_seconds`` is kept.
        """
        stub_seconds = self.settings.stub_seconds
        if len(linked) == 0 or stub_seconds <= 0:
            return linked

        frames = linked.groupby("particle_id")["frame"]
        duration = (frames.max() - frames.min() + 1) / fps
        keep = (duration.to_numpy() >= stub_seconds) | np.isclose(duration.to_numpy(), stub_seconds)
        keep_ids = duration.index[keep]

        n_tracks = len(duration)
        logger.info("Stub filter: kept %d of %d tracks (min %.3f s)",
                    len(keep_ids), n_tracks, stub_seconds)

        return linked[linked["particle_id"].isin(keep_ids)].reset_index(drop=True)

    def link(self, detections: pd.DataFrame, fps: float) -> pd.DataFrame:
        """Assign tracks, then drop stubs."""
        linked = self.assign_tracks(detections, fps)
        return self.filter_stubs(linked, fps)
