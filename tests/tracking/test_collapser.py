"""Tests for collapsing tracks into summary rows."""

import numpy as np
import pandas as pd
import pytest

from microtrack.contracts import assert_summary
from microtrack.schemas import LinkingSettings
from microtrack.tracking.augmenter import add_useful_columns
from microtrack.tracking.collapser import (
    total_displacement,
    collapse_track,
    collapse_data,
    summary_columns,
)
from microtrack.tracking.linker import TrajectoryLinker

pytestmark = pytest.mark.unit


def _augmented(rows, fps=1.0, mpp=1.0, **extra):
    df = pd.DataFrame(rows, columns=["frame", "x", "y"])
    for name, values in extra.items():
        df[name] = values
    if "particle_id" not in df.columns:
        df["particle_id"] = 0
    return add_useful_columns(df, fps, mpp, size_columns=["major"])


class TestTotalDisplacement:
    """Path length, not net distance."""

    def test_path_length(self):
        assert total_displacement([0, 3, 3], [0, 4, 0]) == pytest.approx(9.0)

    def test_return_to_start_is_not_zero(self):
        assert total_displacement([0, 1, 0], [0, 0, 0]) == pytest.approx(2.0)

    def test_single_point(self):
        assert total_displacement([4.0], [2.0]) == 0.0


class TestCollapseTrack:
    """One summary row per track."""

    def test_single_detection_track(self):
        track = _augmented([(7, 10.0, 10.0)], major=[4.0])
        row = collapse_track(track)

        assert row["n_frames"] == 1
        assert row["total_displacement_px"] == 0.0
        assert row["mean_velocity_microns_per_s"] == 0.0
        assert np.isnan(row["estimated_rotation_hz"])
        assert row["start_frame"] == row["end_frame"] == 7

    def test_two_detection_scenario(self, make_detections):
        """(0,0) -> (1,0) with 1 um/px and 1 fps: one track, displacement 1."""
        det = make_detections([(0, 0.0, 0.0), (1, 1.0, 0.0)], major=[2.0, 2.0])
        linker = TrajectoryLinker(LinkingSettings(MPP=1, SEARCH_RANGE_MICRONS=5, FPS=1))
        linked = add_useful_columns(linker.link(det, fps=1.0), 1.0, 1.0)

        summary = collapse_data(linked)

        assert len(summary) == 1
        assert summary.loc[0, "total_displacement_px"] == pytest.approx(1.0)
        assert summary.loc[0, "mean_velocity_microns_per_s"] == pytest.approx(1.0)

    def test_rotation_estimate_from_observable(self):
        n = 100
        frames = np.arange(n)
        major = 10.0 + 2.0 * np.sin(2 * np.pi * 4.0 * frames / 100.0)
        track = _augmented(
            list(zip(frames, np.full(n, 50.0), np.full(n, 50.0))),
            fps=100.0, major=major,
        )

        row = collapse_track(track, rotation_column="major_microns")

        assert row["estimated_rotation_hz"] == pytest.approx(2.0)
        assert row["duration_s"] == pytest.approx(0.99)

    def test_time_weighted_mean_velocity(self):
        track = pd.DataFrame({
            "particle_id": [0, 0, 0],
            "frame": [0, 1, 3],
            "x": [0.0, 1.0, 2.0],
            "y": [0.0, 0.0, 0.0],
            "time": [0.0, 1.0, 3.0],
            "velocity": [1.0, 1.0, 4.0],
            "angle": [0.0, 0.0, 0.0],
        })
        # weights are the time spacing: [1, 1.5, 2]
        row = collapse_track(track, rotation_column="angle")
        assert row["mean_velocity_microns_per_s"] == pytest.approx(10.5 / 4.5)

    def test_size_and_position_means(self):
        track = _augmented([(0, 10.0, 20.0), (1, 12.0, 22.0)], mpp=0.5, major=[4.0, 8.0])
        row = collapse_track(track, size_columns=["major", "minor"])

        assert row["major_microns"] == pytest.approx(3.0)
        assert np.isnan(row["minor_microns"])
        assert row["x"] == pytest.approx(11.0)
        assert row["y"] == pytest.approx(21.0)

    def test_missing_rotation_column(self):
        track = _augmented([(0, 1.0, 1.0), (1, 2.0, 1.0)])
        with pytest.raises(ValueError, match="major_microns"):
            collapse_track(track)

    def test_missing_velocity_column(self):
        track = pd.DataFrame({"particle_id": [0], "frame": [0], "x": [0.0], "y": [0.0],
                              "time": [0.0], "major_microns": [1.0]})
        with pytest.raises(ValueError, match="velocity"):
            collapse_track(track)


class TestCollapseData:
    """Whole-table collapse."""

    def test_one_row_per_particle_ordered(self):
        linked = pd.concat([
            _augmented([(0, 0.0, 0.0), (1, 1.0, 0.0)], major=[2.0, 2.0], particle_id=[5, 5]),
            _augmented([(0, 9.0, 9.0)], major=[2.0], particle_id=[2]),
        ], ignore_index=True)

        summary = collapse_data(linked)

        assert summary["particle_id"].tolist() == [2, 5]
        assert summary["n_frames"].tolist() == [1, 2]
        assert list(summary.columns) == summary_columns()
        assert_summary(summary)

    def test_empty_table_keeps_schema(self):
        summary = collapse_data(pd.DataFrame())

        assert len(summary) == 0
        assert list(summary.columns) == summary_columns(("major", "minor"))
        assert_summary(summary)
