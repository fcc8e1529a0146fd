"""Unit tests for the centroid tracker."""
from __future__ import annotations

import math

import numpy as np
import pytest

from object_tracking.centroid_tracker import CentroidTracker, centroid


def _point(x, y) -> list:
    """Zero-size rectangle whose centroid is exactly (x, y)."""
    return [x, y, x, y]


@pytest.fixture()
def tracker() -> CentroidTracker:
    return CentroidTracker(max_disappeared=2, dist_thresh=10.0)


# ── Centroids ─────────────────────────────────────────────────────────────────

def test_centroid_integer_rect_floors():
    assert centroid((0, 0, 3, 1)) == (1, 0)
    assert centroid((10, 20, 30, 40)) == (20, 30)


def test_centroid_negative_integer_rect_floors_down():
    # floor(-1.5) == -2, not truncation toward zero
    assert centroid((-3, -3, 0, 0)) == (-2, -2)


def test_centroid_real_rect_is_exact_midpoint():
    assert centroid((0.0, 0.0, 3.0, 1.0)) == (1.5, 0.5)


def test_centroid_mixed_rect_uses_real_arithmetic():
    assert centroid((0, 0, 3.0, 1)) == (1.5, 0.5)


def test_centroid_accepts_numpy_integers():
    assert centroid(np.array([0, 0, 3, 1])) == (1, 0)


# ── Construction ──────────────────────────────────────────────────────────────

def test_defaults():
    t = CentroidTracker()
    assert t.max_disappeared == 50
    assert t.dist_thresh == 50.0
    assert t.next_object_id == 0
    assert len(t) == 0


@pytest.mark.parametrize("kwargs", [{"max_disappeared": -1}, {"dist_thresh": -0.5}])
def test_negative_parameters_rejected(kwargs):
    with pytest.raises(ValueError):
        CentroidTracker(**kwargs)


# ── Cold start ────────────────────────────────────────────────────────────────

def test_cold_start_registers_in_input_order():
    t = CentroidTracker()
    objects = t.update([[0, 0, 10, 10], [100, 100, 120, 140]])
    assert objects == {0: (5.0, 5.0), 1: (110.0, 120.0)}
    assert list(objects) == [0, 1]
    assert t.disappeared == {0: 0, 1: 0}


def test_empty_update_on_fresh_tracker():
    t = CentroidTracker()
    assert t.update([]) == {}
    assert t.next_object_id == 0


def test_cold_start_after_all_objects_removed_keeps_counting_ids():
    t = CentroidTracker(max_disappeared=0, dist_thresh=10.0)
    assert t.update([_point(0, 0)]) == {0: (0.0, 0.0)}
    assert t.update([]) == {}
    assert t.update([_point(5, 5)]) == {1: (5.0, 5.0)}


# ── Empty detections ──────────────────────────────────────────────────────────

def test_empty_updates_remove_on_max_disappeared_plus_one(tracker):
    tracker.update([_point(3, 4)])

    for call in range(1, tracker.max_disappeared + 1):
        assert tracker.update([]) == {0: (3.0, 4.0)}
        assert tracker.disappeared == {0: call}

    assert tracker.update([]) == {}
    assert tracker.update([]) == {}
    assert tracker.disappeared == {}


def test_empty_updates_never_create_objects(tracker):
    tracker.update([_point(0, 0), _point(50, 50)])
    tracker.update([])
    assert tracker.next_object_id == 2
    assert set(tracker.objects) == {0, 1}


def test_max_disappeared_zero_drops_on_first_miss():
    t = CentroidTracker(max_disappeared=0)
    t.update([_point(1, 1)])
    assert t.update([]) == {}


# ── Matching ──────────────────────────────────────────────────────────────────

def test_far_detection_does_not_match(tracker):
    tracker.update([_point(0, 0)])
    objects = tracker.update([[100, 100, 100, 100]])

    assert math.hypot(100, 100) > tracker.dist_thresh
    assert objects == {0: (0.0, 0.0), 1: (100.0, 100.0)}
    assert tracker.disappeared == {0: 1, 1: 0}


def test_near_detection_rematches(tracker):
    tracker.update([_point(10, 10)])
    tracker.update([])
    assert tracker.disappeared == {0: 1}

    objects = tracker.update([[11, 11, 11, 11]])

    assert objects == {0: (11.0, 11.0)}
    assert tracker.disappeared == {0: 0}
    assert tracker.next_object_id == 1


def test_distance_equal_to_threshold_matches(tracker):
    tracker.update([_point(0, 0)])
    assert tracker.update([_point(10, 0)]) == {0: (10.0, 0.0)}


def test_zero_threshold_only_matches_identical_position():
    t = CentroidTracker(dist_thresh=0.0)
    t.update([_point(5, 5)])
    assert t.update([_point(5, 5)]) == {0: (5.0, 5.0)}
    assert t.update([_point(6, 5)]) == {0: (5.0, 5.0), 1: (6.0, 5.0)}


def test_unmatched_object_removed_in_general_case():
    t = CentroidTracker(max_disappeared=0, dist_thresh=10.0)
    t.update([_point(0, 0)])
    assert t.update([_point(100, 100)]) == {1: (100.0, 100.0)}


def test_unmatched_detections_registered_in_detection_order(tracker):
    tracker.update([_point(0, 0)])
    objects = tracker.update([_point(500, 0), _point(1, 0), _point(300, 0)])
    assert objects == {0: (1.0, 0.0), 1: (500.0, 0.0), 2: (300.0, 0.0)}


def test_objects_moving_together_keep_their_ids():
    t = CentroidTracker(dist_thresh=20.0)
    t.update([_point(0, 0), _point(100, 0)])
    for step in range(1, 6):
        objects = t.update([_point(100 + 5 * step, 0), _point(5 * step, 0)])
    assert objects == {0: (25.0, 0.0), 1: (125.0, 0.0)}
    assert t.next_object_id == 2


# ── Greedy, non-exclusive assignment ──────────────────────────────────────────

def test_tie_goes_to_first_detection(tracker):
    tracker.update([_point(0, 0)])
    # both detections are exactly 10 away
    objects = tracker.update([_point(10, 0), _point(0, 10)])
    assert objects == {0: (10.0, 0.0), 1: (0.0, 10.0)}


def test_two_objects_may_snap_to_the_same_detection():
    t = CentroidTracker(dist_thresh=50.0)
    t.update([_point(0, 0), _point(30, 0)])

    objects = t.update([_point(10, 0)])

    # Each object independently picks its nearest detection; the shared one
    # is not registered as a new object.
    assert objects == {0: (10.0, 0.0), 1: (10.0, 0.0)}
    assert t.disappeared == {0: 0, 1: 0}
    assert t.next_object_id == 2


def test_used_detection_blocks_registration_but_others_register():
    t = CentroidTracker(dist_thresh=50.0)
    t.update([_point(0, 0), _point(30, 0)])

    objects = t.update([_point(10, 0), _point(1000, 0)])

    assert objects == {0: (10.0, 0.0), 1: (10.0, 0.0), 2: (1000.0, 0.0)}


# ── Id invariants ─────────────────────────────────────────────────────────────

def test_ids_are_unique_and_monotonic_over_a_random_run():
    rng = np.random.default_rng(7)
    t = CentroidTracker(max_disappeared=1, dist_thresh=15.0)
    ever_seen: set[int] = set()
    last_next_id = 0

    for _ in range(200):
        n = int(rng.integers(0, 5))
        rects = []
        for _ in range(n):
            x, y = (int(v) for v in rng.integers(0, 200, size=2))
            rects.append([x, y, x + 10, y + 10])
        objects = t.update(rects)

        new_ids = set(range(last_next_id, t.next_object_id))
        assert not (new_ids & ever_seen)
        assert t.next_object_id >= last_next_id
        ever_seen |= new_ids
        last_next_id = t.next_object_id

        assert set(objects) <= ever_seen
        assert set(objects) == set(t.disappeared)
        assert all(0 <= c <= t.max_disappeared for c in t.disappeared.values())


def test_no_movement_is_idempotent():
    t = CentroidTracker()
    rects = [[0, 0, 10, 10], [40, 40, 60, 60], [200, 0, 220, 30]]
    first = t.update(rects)
    for _ in range(10):
        assert t.update(rects) == first
        assert set(t.disappeared.values()) == {0}
    assert t.next_object_id == 3


# ── Ownership ─────────────────────────────────────────────────────────────────

def test_returned_mapping_is_a_snapshot(tracker):
    objects = tracker.update([_point(1, 2)])
    objects[0] = (99.0, 99.0)
    objects[42] = (0.0, 0.0)
    assert tracker.objects == {0: (1.0, 2.0)}


def test_instances_do_not_share_state():
    a = CentroidTracker()
    b = CentroidTracker()
    a.update([_point(0, 0), _point(100, 100)])
    assert b.update([_point(5, 5)]) == {0: (5.0, 5.0)}
    assert a.next_object_id == 2
    assert b.next_object_id == 1
