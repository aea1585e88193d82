import pytest

from landgrab.errors import SelfCollision
from landgrab.services.territory.geometry import Coordinate as C
from landgrab.services.territory.path_tracker import PathTracker


def walk(tracker, points):
    path = ()
    for p in points:
        path = tracker.append(path, p)
    return path


def test_short_paths_are_never_checked():
    tracker = PathTracker()
    path = walk(tracker, [C(0, 0), C(0, 0.001)])
    assert path == (C(0, 0), C(0, 0.001))


def test_open_square_is_fine():
    tracker = PathTracker()
    corners = [C(0, 0), C(0, 0.001), C(0.001, 0.001), C(0.001, 0)]
    assert walk(tracker, corners) == tuple(corners)


def test_repeated_sample_is_dropped():
    tracker = PathTracker()
    path = walk(tracker, [C(0, 0), C(0, 0.001)])
    assert tracker.append(path, C(0, 0.001)) == path


def test_revisiting_a_point_four_steps_later_collides():
    tracker = PathTracker()
    path = walk(tracker, [C(0, 0), C(0, 0.001), C(0.001, 0.001), C(0.001, 0)])
    with pytest.raises(SelfCollision) as info:
        tracker.append(path, C(0, 0))
    assert info.value.segment_index == 0
    assert info.value.path[-1] == C(0, 0)


def test_crossing_an_earlier_segment_collides():
    tracker = PathTracker()
    path = walk(tracker, [C(0, 0), C(0, 0.002), C(0.001, 0.002), C(0.001, 0.001)])
    with pytest.raises(SelfCollision):
        tracker.append(path, C(-0.001, 0.001))


def test_turning_back_along_the_previous_segment_is_allowed():
    tracker = PathTracker()
    path = walk(tracker, [C(0, 0), C(0, 0.001)])
    path = tracker.append(path, C(0, 0.0005))
    assert len(path) == 3
