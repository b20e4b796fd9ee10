"""Tests for moving-average smoothing and the velocity gate."""

import pytest

from spellcast.smoothing import PointSmoother, Sample, is_valid_movement


class TestPointSmoother:
    def test_window_one_is_passthrough(self):
        smoother = PointSmoother(window=1)
        for i, (x, y) in enumerate([(0, 0), (10, 5), (-3, 7.5), (400, 300)]):
            assert smoother.smooth(Sample(x, y, i * 0.03)) == (x, y)

    def test_moving_average(self):
        smoother = PointSmoother(window=3)
        smoother.smooth(Sample(0, 0, 0.0))
        smoother.smooth(Sample(3, 6, 0.1))
        x, y = smoother.smooth(Sample(6, 12, 0.2))
        assert x == pytest.approx(3.0)
        assert y == pytest.approx(6.0)

    def test_oldest_sample_evicted(self):
        smoother = PointSmoother(window=2)
        smoother.smooth(Sample(100, 100, 0.0))
        smoother.smooth(Sample(0, 0, 0.1))
        x, y = smoother.smooth(Sample(2, 4, 0.2))
        assert (x, y) == pytest.approx((1.0, 2.0))
        assert len(smoother) == 2

    def test_first_sample_returned_as_is(self):
        smoother = PointSmoother(window=5)
        assert smoother.smooth(Sample(7, 9, 0.0)) == (7, 9)

    def test_reset(self):
        smoother = PointSmoother(window=3)
        smoother.smooth(Sample(100, 100, 0.0))
        smoother.reset()
        assert len(smoother) == 0
        assert smoother.smooth(Sample(1, 1, 0.1)) == (1, 1)

    @pytest.mark.parametrize("window", [0, 11, -1])
    def test_invalid_window(self, window):
        with pytest.raises(ValueError):
            PointSmoother(window=window)


class TestVelocityGate:
    def test_no_previous_point(self):
        assert is_valid_movement((1000.0, 1000.0), None, 10.0)

    def test_small_move_valid(self):
        assert is_valid_movement((30.0, 40.0), (0.0, 0.0), 250.0)

    def test_exact_threshold_valid(self):
        assert is_valid_movement((150.0, 200.0), (0.0, 0.0), 250.0)

    def test_jump_rejected(self):
        assert not is_valid_movement((300.0, 0.0), (0.0, 0.0), 250.0)
