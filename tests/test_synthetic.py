"""
Unit tests for synthetic TDOA sample generation, plus an end-to-end
replay through the filter.
"""

import math

import numpy as np
import pytest

from tdoa_core.localization import TdoaEKF
from tdoa_core.sim import (
    SyntheticTdoaSource,
    true_range_difference,
    all_anchor_pairs,
    stationary_trajectory,
    circle_trajectory,
)
from tests.conftest import calculate_range_difference, calculate_distance_2d


class TestHelpers:
    """Tests for trajectory and pair helpers."""

    def test_all_pairs(self, default_registry, all_pairs):
        assert all_anchor_pairs(default_registry) == all_pairs

    def test_true_range_difference(self, default_registry, default_anchor_positions, true_position):
        expected = calculate_range_difference(
            true_position, default_anchor_positions[0], default_anchor_positions[2]
        )
        assert true_range_difference(true_position, default_registry, 0, 2) == pytest.approx(expected)

    def test_true_range_difference_unconfigured(self, default_registry, true_position):
        with pytest.raises(KeyError):
            true_range_difference(true_position, default_registry, 0, 6)

    def test_stationary(self):
        trajectory = stationary_trajectory((1, 2, 3))
        assert trajectory(0.0) == trajectory(100.0) == (1.0, 2.0, 3.0)

    def test_circle(self):
        trajectory = circle_trajectory((2.0, 2.5, 1.3), radius_m=1.0, period_s=20.0)

        start = trajectory(0.0)
        quarter = trajectory(5.0)
        assert start == pytest.approx((3.0, 2.5, 1.3))
        assert quarter == pytest.approx((2.0, 3.5, 1.3))
        assert math.hypot(quarter[0] - 2.0, quarter[1] - 2.5) == pytest.approx(1.0)


class TestSyntheticTdoaSource:
    """Tests for SyntheticTdoaSource."""

    def test_round_robin_pairs(self, default_registry, true_position, all_pairs):
        source = SyntheticTdoaSource(default_registry, stationary_trajectory(true_position))

        samples = list(source.samples(duration_s=0.12, rate_hz=100.0))

        assert len(samples) == 12
        assert [s.anchor_pair for s in samples] == all_pairs * 2
        assert samples[1].t_measurement == pytest.approx(0.01)

    def test_noise_free_values(self, default_registry, true_position):
        source = SyntheticTdoaSource(default_registry, stationary_trajectory(true_position), pairs=[(1, 3)])

        sample = source.sample_at(0.0)

        assert sample.distance_diff_m == pytest.approx(
            true_range_difference(true_position, default_registry, 1, 3)
        )

    def test_noise_is_seeded(self, default_registry, true_position):
        def values(seed):
            source = SyntheticTdoaSource(
                default_registry, stationary_trajectory(true_position), noise_std_m=0.1, seed=seed
            )
            return [s.distance_diff_m for s in source.samples(1.0, 50.0)]

        assert values(7) == values(7)
        assert values(7) != values(8)

    def test_noise_statistics(self, default_registry, true_position):
        source = SyntheticTdoaSource(
            default_registry, stationary_trajectory(true_position), pairs=[(0, 1)], noise_std_m=0.05
        )
        truth = true_range_difference(true_position, default_registry, 0, 1)

        errors = np.array([s.distance_diff_m - truth for s in source.samples(20.0, 100.0)])

        assert abs(errors.mean()) < 0.01
        assert errors.std() == pytest.approx(0.05, rel=0.1)

    def test_no_pairs_raises(self, empty_registry, true_position):
        with pytest.raises(ValueError):
            SyntheticTdoaSource(empty_registry, stationary_trajectory(true_position))


class TestReplay:
    """End-to-end replay of synthetic samples through the filter."""

    def test_stationary_replay_with_noise(self, default_registry):
        """Test noisy samples from a fixed point converge near it."""
        truth = (2.5, 2.2, 0.0)
        ekf = TdoaEKF(anchors=default_registry)
        source = SyntheticTdoaSource(default_registry, stationary_trajectory(truth), noise_std_m=0.02)

        for sample in source.samples(duration_s=3.0, rate_hz=100.0):
            ekf.predict()
            assert ekf.apply_sample(sample).applied

        assert calculate_distance_2d(ekf.get_location(), truth) < 0.15
