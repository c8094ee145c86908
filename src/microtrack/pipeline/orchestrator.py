"""Batch orchestration across many videos.

Runs every video independently (sequentially or on a worker pool), then
concatenates the per-video summaries in a deterministic order and applies
the trajectory filter. Manages logging, per-video timeouts and failure
isolation.
"""

import logging
import time
from concurrent.futures import (
    Executor,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    TimeoutError as FutureTimeoutError,
)
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union, TYPE_CHECKING

import pandas as pd

from microtrack.contracts import FailurePolicy, PerVideoFailure
from microtrack.io.particle_data import save_table_with_timestamp
from microtrack.pipeline.processor import VideoInput, VideoProcessor, VideoResult, process_video
from microtrack.tracking.collapser import summary_columns
from microtrack.tracking.filtering import filter_trajectories

if TYPE_CHECKING:
    from microtrack.schemas import InternalConfig

__all__ = ['BatchOrchestrator', 'BatchResult']

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Combined output of a batch run.

    Attributes
    ----------
    summary : pd.DataFrame
        Filtered summary rows of every successful video, ordered by
        (video, particle_id).
    linked : pd.DataFrame
        Clipped, augmented track rows of every successful video.
    failures : list of PerVideoFailure
        One record per failed video, in video order.
    """
    summary: pd.DataFrame
    linked: pd.DataFrame
    failures: List[PerVideoFailure] = field(default_factory=list)

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    def failures_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [vars(f) for f in self.failures],
            columns=["video_id", "stage", "error_type", "message"],
        )


class BatchOrchestrator:
    """Runs the tracking pipeline over a batch of videos.

    **Execution:**

    Per-video work shares no mutable state, so videos may run on a
    ``concurrent.futures`` pool (``batch.workers > 1``, thread or process
    executor). With one worker and no timeout the videos run in the
    calling thread.

    **Timeouts:**

    ``batch.video_timeout_s`` bounds how long the orchestrator waits for each
    video's result, counted from when it starts waiting for that video. A
    video that times out is reported as a failure at stage ``"timeout"``.
    The batch result is returned without waiting for it, but
    ``concurrent.futures`` cannot interrupt a running work item: the hung
    worker (thread or process) keeps running and the interpreter still
    waits for it at exit. A command-line run therefore only ends once the
    hung video finishes; bound the wall time from outside (a job scheduler
    limit or ``timeout`` wrapper) when that matters.

    **Aggregation:**

    After every video has finished (a barrier), summaries are concatenated in
    lexical video order then by particle_id, and the trajectory filter is
    applied once to the combined table.

    **Failures:**

    Under ``FailurePolicy.SKIP_VIDEO`` a failing video contributes no rows
    and one failure record. Under ``FAIL_FAST`` the first error aborts the run.

    Example usage::

        from microtrack.pipeline import BatchOrchestrator, VideoInput
        from microtrack.schemas import resolve_config, ParamConfig

        config = resolve_config(ParamConfig(), {"FPS": 60})
        orch = BatchOrchestrator(config)
        orch.setup_logging()
        result = orch.run({"run01": VideoInput(df, VideoMetadata(resolution=(1280, 1024)))})
        result.summary
    """

    def __init__(self, config: "InternalConfig"):
        """Initialize orchestrator with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        """
        self.config = config
        self.workers = config.batch.workers
        self.executor_kind = config.batch.executor
        self.video_timeout_s = config.batch.video_timeout_s
        self.fail_fast = config.batch.failure_policy == FailurePolicy.FAIL_FAST
        self.processor = VideoProcessor(config)

    def setup_logging(self, log_dir: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """Configure the root logger with console and (optional) file handlers.

        The log file is ``<log_dir>/microtrack_batch.log``; ``log_dir``
        defaults to ``<output.base_dir>/logs``. No file is written when
        ``logging.log_to_file`` is off or no directory is known.

        Returns
        -------
        Path or None
            The log file path, if one was configured.
        """
        log_level = getattr(logging, self.config.logging.level, logging.INFO)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        log_path = None
        if log_dir is None and self.config.output.base_dir is not None:
            log_dir = Path(self.config.output.base_dir) / "logs"

        if self.config.logging.log_to_file and log_dir is not None:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / "microtrack_batch.log"

            fh = logging.FileHandler(log_path)
            fh.setLevel(log_level)
            fh.setFormatter(formatter)
            root.addHandler(fh)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)
        return log_path

    def run(self, videos: Mapping[str, VideoInput]) -> BatchResult:
        """Process every video and aggregate the results.

        Parameters
        ----------
        videos : mapping
            video identifier -> VideoInput.

        Returns
        -------
        BatchResult
        """
        logger.info("=" * 60)
        logger.info("Starting batch: %d videos, %d worker(s)", len(videos), self.workers)
        logger.info("=" * 60)
        start = time.time()

        video_ids = sorted(str(v) for v in videos)
        by_id = {str(k): v for k, v in videos.items()}

        if self.workers > 1 or self.video_timeout_s is not None:
            results = self._run_pool(video_ids, by_id)
        else:
            results = {vid: self.processor.process(vid, by_id[vid]) for vid in video_ids}

        batch = self._aggregate(video_ids, results)

        logger.info("=" * 60)
        logger.info("Batch complete in %.1f seconds: %d trajectories, %d failed videos",
                    time.time() - start, len(batch.summary), batch.n_failed)
        for failure in batch.failures:
            logger.warning("Failed: %s at %s (%s: %s)",
                           failure.video_id, failure.stage, failure.error_type, failure.message)
        logger.info("=" * 60)
        return batch

    def _make_executor(self) -> Executor:
        if self.executor_kind == "process":
            return ProcessPoolExecutor(max_workers=self.workers)
        return ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="VideoWorker")

    def _run_pool(self, video_ids: List[str], by_id: Dict[str, VideoInput]) -> Dict[str, VideoResult]:
        """Submit every video to a worker pool and collect results in video order."""
        executor = self._make_executor()
        timed_out = False
        results: Dict[str, VideoResult] = {}
        try:
            futures = {
                vid: executor.submit(process_video, self.config, vid, by_id[vid])
                for vid in video_ids
            }
            for vid in video_ids:
                future = futures[vid]
                try:
                    results[vid] = future.result(timeout=self.video_timeout_s)
                except FutureTimeoutError as e:
                    timed_out = True
                    future.cancel()
                    logger.error("Video %s exceeded %.1f s timeout", vid, self.video_timeout_s)
                    timeout_error = TimeoutError(
                        f"no result after {self.video_timeout_s} s"
                    )
                    if self.fail_fast:
                        raise timeout_error from e
                    results[vid] = VideoResult(
                        video_id=vid,
                        summary=pd.DataFrame(),
                        linked=pd.DataFrame(),
                        failure=PerVideoFailure.from_exception(vid, "timeout", timeout_error),
                    )
                except Exception as e:
                    # Processor errors are already caught; this is the pool itself failing
                    if self.fail_fast:
                        raise
                    logger.exception("Worker failed for %s", vid)
                    results[vid] = VideoResult(
                        video_id=vid,
                        summary=pd.DataFrame(),
                        linked=pd.DataFrame(),
                        failure=PerVideoFailure.from_exception(vid, "worker", e),
                    )
        finally:
            # A hung worker must not block shutdown
            executor.shutdown(wait=not timed_out, cancel_futures=True)
        return results

    def _aggregate(self, video_ids: List[str], results: Dict[str, VideoResult]) -> BatchResult:
        """Barrier step: concatenate in (video, particle_id) order, then filter."""
        summaries = []
        linked = []
        failures = []
        for vid in video_ids:
            result = results[vid]
            if result.failure is not None:
                failures.append(result.failure)
                continue
            if len(result.summary):
                summaries.append(result.summary)
            if len(result.linked):
                linked.append(result.linked)

        if summaries:
            combined = pd.concat(summaries, ignore_index=True, sort=False)
            combined = combined.sort_values(["video", "particle_id"], kind="mergesort")
            combined = combined.reset_index(drop=True)
        else:
            combined = pd.DataFrame(
                columns=["video"] + summary_columns(self.config.columns.size_columns)
            )

        combined_linked = pd.concat(linked, ignore_index=True, sort=False) if linked else pd.DataFrame()

        filtered = filter_trajectories(combined, self.config.filtering)
        return BatchResult(summary=filtered, linked=combined_linked, failures=failures)

    def save_results(self, result: BatchResult,
                     output_dir: Optional[Union[str, Path]] = None) -> Dict[str, Path]:
        """Write summary, linked and failure tables as timestamped CSVs.

        Parameters
        ----------
        result : BatchResult
            Output of :meth:`run`.
        output_dir : str or Path, optional
            Defaults to ``output.base_dir``.

        Returns
        -------
        dict
            Table name -> written path.

        Raises
        ------
        ValueError
            If no output directory is configured.
        """
        output_dir = output_dir if output_dir is not None else self.config.output.base_dir
        if output_dir is None:
            raise ValueError("No output directory: pass output_dir or set output.base_dir")

        written = {}
        if self.config.output.save_csv:
            written["summary"] = save_table_with_timestamp(result.summary, output_dir, "summary")
        if self.config.output.save_linked:
            written["linked"] = save_table_with_timestamp(
                result.linked, output_dir, "linked", self._linking_tag()
            )
        if result.failures:
            written["failures"] = save_table_with_timestamp(
                result.failures_frame(), output_dir, "failures"
            )
        return written

    def _linking_tag(self) -> Dict[str, object]:
        """Linking settings in notebook notation, for the linked-data file name."""
        linking = self.config.linking
        return {
            "MPP": linking.microns_per_pixel,
            "SEARCH_RANGE_MICRONS": linking.search_range_microns,
            "MEMORY": linking.memory_frames,
            "STUBS_SECONDS": linking.stub_seconds,
        }
