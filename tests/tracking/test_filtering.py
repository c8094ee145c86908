"""Tests for trajectory-level filtering."""

import numpy as np
import pandas as pd
import pytest

from microtrack.schemas import FilterSettings
from microtrack.tracking.filtering import filter_trajectories

pytestmark = pytest.mark.unit


@pytest.fixture
def summary():
    return pd.DataFrame({
        "video": ["a", "a", "b", "b"],
        "particle_id": [0, 1, 0, 3],
        "n_frames": [10, 2, 30, 8],
        "total_displacement_px": [5.0, 0.5, 40.0, 12.0],
        "mean_velocity_microns_per_s": [1.0, 2.0, 3.0, 4.0],
        "estimated_rotation_hz": [0.5, np.nan, 1.5, 2.5],
        "field_strength_mT": [1.0, 1.0, 2.0, 2.0],
    })


class TestFilterTrajectories:
    """Rows kept iff every configured bound holds."""

    def test_no_predicates_is_identity(self, summary):
        assert filter_trajectories(summary, FilterSettings()) is summary

    def test_min_bound_is_inclusive(self, summary):
        out = filter_trajectories(summary, FilterSettings(MIN_VELOCITY=2.0))
        assert out["mean_velocity_microns_per_s"].tolist() == [2.0, 3.0, 4.0]

    def test_max_bound_is_inclusive(self, summary):
        out = filter_trajectories(summary, FilterSettings(max_velocity=2.0))
        assert out["mean_velocity_microns_per_s"].tolist() == [1.0, 2.0]

    def test_all_predicates_must_hold(self, summary):
        settings = FilterSettings(MIN_FRAMES=5, MIN_DISPLACEMENT=10.0)
        out = filter_trajectories(summary, settings)
        assert out["particle_id"].tolist() == [0, 3]
        assert out["video"].tolist() == ["b", "b"]

    def test_nan_never_satisfies_a_bound(self, summary):
        out = filter_trajectories(summary, FilterSettings(min_rotation_hz=0.0))
        assert len(out) == 3
        assert not out["estimated_rotation_hz"].isna().any()

    def test_generic_column_bounds(self, summary):
        settings = FilterSettings(column_bounds={"field_strength_mT": (None, 1.0)})
        out = filter_trajectories(summary, settings)
        assert out["video"].tolist() == ["a", "a"]

    def test_rows_not_mutated_and_reindexed(self, summary):
        out = filter_trajectories(summary, FilterSettings(MIN_VELOCITY=3.0))
        expected = summary.iloc[2:].reset_index(drop=True)
        pd.testing.assert_frame_equal(out, expected)

    def test_empty_table_returned_unchanged(self, summary):
        empty = summary.iloc[0:0].drop(columns="field_strength_mT")
        settings = FilterSettings(column_bounds={"field_strength_mT": (1.0, None)})
        assert filter_trajectories(empty, settings) is empty

    def test_unknown_column(self, summary):
        settings = FilterSettings(column_bounds={"not_a_column": (0.0, None)})
        with pytest.raises(ValueError, match="not_a_column"):
            filter_trajectories(summary, settings)


class TestFilterSettingsBounds:
    """Named thresholds and column_bounds merge into one mapping."""

    def test_empty(self):
        assert FilterSettings().bounds() == {}

    def test_named_thresholds_map_to_columns(self):
        bounds = FilterSettings(MIN_VELOCITY=1.0, MAX_VELOCITY=5.0).bounds()
        assert bounds == {"mean_velocity_microns_per_s": (1.0, 5.0)}

    def test_tighter_bound_wins(self):
        settings = FilterSettings(
            min_velocity=2.0,
            column_bounds={"mean_velocity_microns_per_s": (3.0, 10.0)},
        )
        assert settings.bounds() == {"mean_velocity_microns_per_s": (3.0, 10.0)}

    def test_frozen(self):
        settings = FilterSettings()
        with pytest.raises(Exception):
            settings.min_velocity = 1.0
