"""Tests for tip selection with confidence fallback."""

import numpy as np
import pytest

from spellcast.tip import DEFAULT_TIP_PRIORITY, INDEX_TIP, Landmark, TipSelector


def _hand(index_conf=0.9, middle_conf=0.9, x=100.0, y=100.0):
    return [
        Landmark(INDEX_TIP, x, y, index_conf),
        Landmark(12, x + 20, y, middle_conf),
    ]


class TestLandmark:
    def test_scaled(self):
        lm = Landmark(8, 0.5, 0.25, 0.8).scaled(1280, 720)
        assert lm.x == pytest.approx(640.0)
        assert lm.y == pytest.approx(180.0)
        assert lm.confidence == 0.8

    def test_from_array(self):
        arr = np.zeros((21, 3), dtype=np.float32)
        arr[8] = [0.4, 0.6, 0.0]
        vis = np.linspace(0.0, 1.0, 21)
        lms = Landmark.from_array(arr, vis)
        assert len(lms) == 21
        assert lms[8].x == pytest.approx(0.4)
        assert lms[8].y == pytest.approx(0.6)
        assert lms[8].confidence == pytest.approx(vis[8])

    def test_from_array_default_visibility(self):
        lms = Landmark.from_array(np.zeros((21, 2)))
        assert all(lm.confidence == 1.0 for lm in lms)

    def test_dict_round_trip(self):
        lm = Landmark(4, 0.1, 0.2, 0.3)
        assert Landmark.from_dict(lm.to_dict()) == lm


class TestTipSelector:
    def test_default_priority_starts_with_index(self):
        assert DEFAULT_TIP_PRIORITY[0] == INDEX_TIP

    def test_primary_selected(self):
        selector = TipSelector()
        reading = selector.select(_hand(), 0.5)
        assert reading.visible
        assert reading.point == (100.0, 100.0)
        assert reading.landmark == INDEX_TIP
        assert reading.confidence == pytest.approx(0.9)

    def test_fallback_to_secondary(self):
        selector = TipSelector()
        reading = selector.select(_hand(index_conf=0.2), 0.5)
        assert reading.landmark == 12
        assert reading.point == (120.0, 100.0)

    def test_threshold_must_be_exceeded(self):
        selector = TipSelector()
        reading = selector.select(_hand(index_conf=0.5, middle_conf=0.5), 0.5)
        assert not reading.visible
        assert reading.confidence == 0.0

    def test_no_candidates(self):
        reading = TipSelector().select([], 0.5)
        assert reading.point is None
        assert reading.confidence == 0.0

    def test_velocity_gate_keeps_previous_point(self):
        selector = TipSelector(max_velocity=250.0)
        selector.select(_hand(x=0.0, y=0.0), 0.5)
        reading = selector.select(_hand(x=300.0, y=0.0), 0.5)
        assert reading.gated
        assert reading.point == (0.0, 0.0)
        assert reading.confidence == pytest.approx(0.9 * 0.7)
        assert selector.last_point == (0.0, 0.0)

    def test_accepted_point_updates_anchor(self):
        selector = TipSelector()
        selector.select(_hand(x=0.0, y=0.0), 0.5)
        selector.select(_hand(x=50.0, y=0.0), 0.5)
        assert selector.last_point == (50.0, 0.0)

    def test_reset_clears_anchor(self):
        selector = TipSelector(max_velocity=250.0)
        selector.select(_hand(x=0.0, y=0.0), 0.5)
        selector.reset()
        assert selector.last_point is None
        reading = selector.select(_hand(x=900.0, y=0.0), 0.5)
        assert not reading.gated
        assert reading.point == (900.0, 0.0)

    def test_reanchors_after_repeated_rejections(self):
        selector = TipSelector(max_velocity=100.0, max_rejections=2)
        selector.select(_hand(x=0.0, y=0.0), 0.5)
        assert selector.select(_hand(x=500.0, y=0.0), 0.5).gated
        assert selector.select(_hand(x=500.0, y=0.0), 0.5).gated
        reading = selector.select(_hand(x=500.0, y=0.0), 0.5)
        assert not reading.gated
        assert selector.last_point == (500.0, 0.0)

    def test_custom_priority(self):
        selector = TipSelector(priority=(12, 8))
        reading = selector.select(_hand(), 0.5)
        assert reading.landmark == 12
