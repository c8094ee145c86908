"""Tests for kinematic column augmentation."""

import numpy as np
import pandas as pd
import pytest

from microtrack.tracking.augmenter import add_useful_columns

pytestmark = pytest.mark.unit


@pytest.fixture
def linked_two_tracks():
    """Two tracks already sorted by (particle_id, frame)."""
    return pd.DataFrame({
        "frame": [0, 1, 2, 0, 1],
        "x": [0.0, 1.0, 3.0, 10.0, 10.0],
        "y": [0.0, 0.0, 0.0, 5.0, 9.0],
        "major": [4.0, 4.0, 6.0, 2.0, 2.0],
        "particle_id": [0, 0, 0, 1, 1],
    })


class TestAddUsefulColumns:
    """Derived dx, dy, dp, time, velocity and micron columns."""

    def test_displacement_per_track(self, linked_two_tracks):
        out = add_useful_columns(linked_two_tracks, fps=2.0, microns_per_pixel=0.5)

        np.testing.assert_allclose(out["dx"], [1.0, 1.5, 2.0, 0.0, 0.0])
        np.testing.assert_allclose(out["dy"], [0.0, 0.0, 0.0, 4.0, 4.0])
        np.testing.assert_allclose(out["dp"], [1.0, 1.5, 2.0, 4.0, 4.0])

    def test_time_and_velocity_units(self, linked_two_tracks):
        out = add_useful_columns(linked_two_tracks, fps=2.0, microns_per_pixel=0.5)

        np.testing.assert_allclose(out["time"], [0.0, 0.5, 1.0, 0.0, 0.5])
        # dp px/frame * 0.5 um/px * 2 frame/s
        np.testing.assert_allclose(out["velocity"], out["dp"] * 0.5 * 2.0)

    def test_size_columns_in_microns(self, linked_two_tracks):
        out = add_useful_columns(linked_two_tracks, fps=1.0, microns_per_pixel=0.5,
                                 size_columns=["major", "minor"])

        np.testing.assert_allclose(out["major_microns"], [2.0, 2.0, 3.0, 1.0, 1.0])
        assert "minor_microns" not in out.columns

    def test_rows_and_order_preserved(self, linked_two_tracks):
        out = add_useful_columns(linked_two_tracks, fps=1.0, microns_per_pixel=1.0)

        assert len(out) == len(linked_two_tracks)
        pd.testing.assert_index_equal(out.index, linked_two_tracks.index)
        pd.testing.assert_frame_equal(out[linked_two_tracks.columns], linked_two_tracks)

    def test_input_not_mutated(self, linked_two_tracks):
        before = linked_two_tracks.copy()
        add_useful_columns(linked_two_tracks, fps=1.0, microns_per_pixel=1.0)
        pd.testing.assert_frame_equal(linked_two_tracks, before)

    def test_single_detection_track_has_zero_step(self):
        linked = pd.DataFrame({"frame": [3], "x": [1.0], "y": [2.0], "particle_id": [0]})
        out = add_useful_columns(linked, fps=10.0, microns_per_pixel=1.0)

        assert out["dp"].tolist() == [0.0]
        assert out["velocity"].tolist() == [0.0]
        assert out["time"].tolist() == [pytest.approx(0.3)]

    def test_empty_table_gets_columns(self):
        linked = pd.DataFrame({"frame": [], "x": [], "y": [], "particle_id": []})
        out = add_useful_columns(linked, fps=1.0, microns_per_pixel=1.0)

        for col in ("dx", "dy", "dp", "time", "velocity"):
            assert col in out.columns
        assert len(out) == 0
