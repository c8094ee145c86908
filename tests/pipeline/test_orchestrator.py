"""Tests for batch orchestration, aggregation and failure isolation."""

import time

import pandas as pd
import pytest

import microtrack.pipeline.orchestrator as orchestrator_module
from microtrack.contracts import ConfigurationConflict
from microtrack.pipeline import BatchOrchestrator, VideoInput
from microtrack.schemas import VideoMetadata
from microtrack.tracking.collapser import summary_columns

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]

UNIT_TRACKING = dict(SEARCH_RANGE_MICRONS=5, MPP=1, FPS=1, STUBS_SECONDS=0, MEMORY=0)


@pytest.fixture
def conflicting_metadata():
    """Metadata whose fps conflicts with FPS in the settings."""
    return VideoMetadata(resolution=(100, 100), fps=30.0)


@pytest.fixture
def videos(two_particle_detections, frame_100, conflicting_metadata):
    """Three videos given out of order; 'b_fails' cannot be processed."""
    return {
        "c": VideoInput(two_particle_detections, frame_100, info={"condition": "C"}),
        "b_fails": VideoInput(two_particle_detections, conflicting_metadata),
        "a": VideoInput(two_particle_detections, frame_100, info={"condition": "A"}),
    }


def test_orchestrator_initialization(tracking_config):
    """Orchestrator reads batch settings from config."""
    orch = BatchOrchestrator(tracking_config)

    assert orch.workers == 1
    assert orch.executor_kind == "thread"
    assert orch.video_timeout_s is None
    assert orch.fail_fast is False


def test_batch_orders_rows_by_video_then_particle(tracking_config, videos):
    """Rows are concatenated in lexical video order, then by particle id."""
    result = BatchOrchestrator(tracking_config).run(videos)

    assert result.summary["video"].tolist() == ["a", "a", "c", "c"]
    assert result.summary["particle_id"].tolist() == [0, 1, 0, 1]
    assert result.summary["condition"].tolist() == ["A", "A", "C", "C"]
    assert list(result.summary.index) == [0, 1, 2, 3]


def test_failing_video_is_isolated(tracking_config, videos):
    """A failing video contributes no rows and exactly one failure record."""
    result = BatchOrchestrator(tracking_config).run(videos)

    assert result.n_failed == 1
    failure = result.failures[0]
    assert failure.video_id == "b_fails"
    assert failure.stage == "resolve_fps"
    assert "b_fails" not in set(result.summary["video"])
    assert "b_fails" not in set(result.linked["video"])


def test_linked_rows_tagged_with_video(tracking_config, videos):
    """Combined linked rows keep their video id."""
    result = BatchOrchestrator(tracking_config).run(videos)

    assert sorted(result.linked["video"].unique()) == ["a", "c"]
    assert len(result.linked) == 40


def test_batch_filter_applied_after_concatenation(make_config, make_detections, frame_100,
                                                  two_particle_detections):
    """Trajectory filter runs once on the combined table."""
    short = make_detections([(t, 50.0 + t, 50.0) for t in range(3)], major=4.0)
    config = make_config(MIN_FRAMES=5, **UNIT_TRACKING)

    result = BatchOrchestrator(config).run({
        "long": VideoInput(two_particle_detections, frame_100),
        "short": VideoInput(short, frame_100),
    })

    assert result.summary["video"].tolist() == ["long", "long"]
    assert (result.summary["n_frames"] >= 5).all()
    assert result.n_failed == 0


def test_parallel_matches_sequential(make_config, videos):
    """A thread pool gives the same combined table as a sequential run."""
    sequential = BatchOrchestrator(make_config(**UNIT_TRACKING)).run(videos)
    parallel = BatchOrchestrator(make_config(WORKERS=2, **UNIT_TRACKING)).run(videos)

    pd.testing.assert_frame_equal(sequential.summary, parallel.summary)
    pd.testing.assert_frame_equal(sequential.linked, parallel.linked)
    assert sequential.failures == parallel.failures


def test_video_timeout_recorded_as_failure(make_config, monkeypatch, two_particle_detections,
                                           frame_100):
    """A video that does not finish in time fails at stage 'timeout'."""
    real_process_video = orchestrator_module.process_video

    def slow_process_video(config, video_id, video):
        if video_id == "slow":
            time.sleep(2.0)
        return real_process_video(config, video_id, video)

    monkeypatch.setattr(orchestrator_module, "process_video", slow_process_video)
    config = make_config(WORKERS=2, batch={"video_timeout_s": 0.2}, **UNIT_TRACKING)

    start = time.monotonic()
    result = BatchOrchestrator(config).run({
        "fast": VideoInput(two_particle_detections, frame_100),
        "slow": VideoInput(two_particle_detections, frame_100),
    })

    # The hung worker is abandoned, not joined
    assert time.monotonic() - start < 1.5

    assert result.summary["video"].unique().tolist() == ["fast"]
    assert result.n_failed == 1
    assert result.failures[0].video_id == "slow"
    assert result.failures[0].stage == "timeout"
    assert result.failures[0].error_type == "TimeoutError"


def test_fail_fast_aborts_batch(make_config, videos):
    """Under FAIL_FAST the first failing video raises."""
    config = make_config(batch={"failure_policy": "fail_fast"}, **UNIT_TRACKING)

    with pytest.raises(ConfigurationConflict):
        BatchOrchestrator(config).run(videos)


def test_empty_batch_keeps_summary_columns(tracking_config):
    """No videos still yields a summary with the expected columns."""
    result = BatchOrchestrator(tracking_config).run({})

    assert len(result.summary) == 0
    assert list(result.summary.columns) == ["video"] + summary_columns(["major", "minor"])
    assert result.failures == []


def test_all_videos_failing(tracking_config, two_particle_detections, conflicting_metadata):
    """Every failure is recorded and the summary is empty."""
    result = BatchOrchestrator(tracking_config).run({
        "x": VideoInput(two_particle_detections, conflicting_metadata),
        "y": VideoInput(two_particle_detections, conflicting_metadata),
    })

    assert len(result.summary) == 0
    assert [f.video_id for f in result.failures] == ["x", "y"]
    assert list(result.failures_frame().columns) == ["video_id", "stage", "error_type", "message"]


def test_metadata_filter_with_all_videos_failing(make_config, two_particle_detections,
                                                 conflicting_metadata):
    """A bound on a metadata column does not abort a batch with no rows."""
    config = make_config(filtering={"column_bounds": {"B_mT": (5.0, None)}}, **UNIT_TRACKING)

    result = BatchOrchestrator(config).run({
        "x": VideoInput(two_particle_detections, conflicting_metadata, info={"B_mT": 8.0}),
    })

    assert result.n_failed == 1
    assert result.failures[0].stage == "resolve_fps"
    assert len(result.summary) == 0


def test_metadata_filter_on_surviving_rows(make_config, two_particle_detections, frame_100):
    """The same bound filters normally once rows exist."""
    config = make_config(filtering={"column_bounds": {"B_mT": (5.0, None)}}, **UNIT_TRACKING)

    result = BatchOrchestrator(config).run({
        "weak": VideoInput(two_particle_detections, frame_100, info={"B_mT": 2.0}),
        "strong": VideoInput(two_particle_detections, frame_100, info={"B_mT": 8.0}),
    })

    assert result.summary["video"].tolist() == ["strong", "strong"]


def test_setup_logging_creates_log_file(make_config, temp_dir, restore_root_logger):
    """Log file is written under <base_dir>/logs."""
    config = make_config(BASE_DIR=str(temp_dir), **UNIT_TRACKING)

    log_path = BatchOrchestrator(config).setup_logging()

    assert log_path == temp_dir / "logs" / "microtrack_batch.log"
    assert log_path.exists()


def test_setup_logging_without_directory(tracking_config, restore_root_logger):
    """Without a directory only the console handler is installed."""
    assert BatchOrchestrator(tracking_config).setup_logging() is None
    assert len(restore_root_logger.handlers) == 1


def test_save_results(make_config, videos, temp_dir):
    """Summary, linked and failure tables are written as timestamped CSVs."""
    config = make_config(BASE_DIR=str(temp_dir), **UNIT_TRACKING)
    orch = BatchOrchestrator(config)
    result = orch.run(videos)

    written = orch.save_results(result)

    assert set(written) == {"summary", "linked", "failures"}
    for name, path in written.items():
        assert path.parent == temp_dir
        assert path.name.startswith(f"{name}_")
    saved = pd.read_csv(written["summary"])
    assert saved["video"].tolist() == ["a", "a", "c", "c"]
    assert written["linked"].name.startswith(
        "linked_(MPP = 1.0, SEARCH_RANGE_MICRONS = 5.0, MEMORY = 0, STUBS_SECONDS = 0.0)_"
    )


def test_save_results_requires_directory(tracking_config, videos):
    """Saving without an output directory is a configuration error."""
    orch = BatchOrchestrator(tracking_config)
    result = orch.run(videos)

    with pytest.raises(ValueError, match="No output directory"):
        orch.save_results(result)
