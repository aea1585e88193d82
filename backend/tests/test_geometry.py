import pytest

from landgrab.errors import GeometryError, InvalidCoordinate
from landgrab.services.territory.geometry import (
    Coordinate,
    TerritoryPolygon,
    close_ring,
    planar,
    segments_intersect,
)
from landgrab.services.territory.scoring import score_territory
from landgrab.services.territory.state import polygon_from_json, polygon_to_json


def C(lat, lng):
    return Coordinate(lat, lng)


def square(lat, lng, size):
    return TerritoryPolygon((C(lat, lng), C(lat, lng + size), C(lat + size, lng + size), C(lat + size, lng)))


def test_coordinate_parse_accepts_pairs_and_mappings():
    assert Coordinate.parse([1.5, 2.5]) == C(1.5, 2.5)
    assert Coordinate.parse((1, 2)) == C(1.0, 2.0)
    assert Coordinate.parse({'lat': '1.5', 'lng': 2, 'timestamp': 7}) == C(1.5, 2.0)


@pytest.mark.parametrize('raw', [None, 'ab', [1], {'lat': 1}, [91, 0], [0, 181], [float('nan'), 0]])
def test_coordinate_parse_rejects_garbage(raw):
    with pytest.raises(InvalidCoordinate):
        Coordinate.parse(raw)


def test_close_ring_appends_first_point_once():
    ring = close_ring([C(0, 0), C(0, 1), C(1, 1)])
    assert ring[0] == ring[-1]
    assert len(ring) == 4
    assert close_ring(ring) == ring


def test_segments_crossing_and_touching():
    assert segments_intersect(C(0, 0), C(2, 2), C(0, 2), C(2, 0))
    # shared endpoint
    assert segments_intersect(C(0, 0), C(1, 1), C(1, 1), C(2, 0))
    # endpoint resting on the other segment
    assert segments_intersect(C(0, 0), C(0, 2), C(0, 1), C(3, 3))
    # collinear overlap
    assert segments_intersect(C(0, 0), C(0, 2), C(0, 1), C(0, 3))


def test_segments_apart():
    assert not segments_intersect(C(0, 0), C(0, 1), C(1, 0), C(1, 1))
    # collinear but disjoint
    assert not segments_intersect(C(0, 0), C(0, 1), C(0, 2), C(0, 3))
    assert not segments_intersect(C(0, 0), C(1, 0), C(2, 0), C(2, 1))


def test_point_in_polygon_counts_holes_as_outside():
    outer = square(0, 0, 0.003)
    hole = square(0.001, 0.001, 0.001).shell
    donut = TerritoryPolygon(outer.shell, (hole,))
    assert planar.point_in_polygon(C(0.0005, 0.0005), donut)
    assert not planar.point_in_polygon(C(0.0015, 0.0015), donut)
    assert not planar.point_in_polygon(C(0.004, 0.0015), donut)


def test_degenerate_polygon_is_ignored():
    line = TerritoryPolygon((C(0, 0), C(0, 0.001), C(0, 0)))
    assert not planar.is_usable(line)
    assert not planar.point_in_polygon(C(0, 0.0005), line)
    assert not planar.path_crosses_polygon((C(-1, 0.0005), C(1, 0.0005)), line)
    assert planar.polygon_area(line) == 0.0


def test_square_area_matches_reference():
    area = planar.polygon_area(square(0, 0, 0.001))
    assert area == pytest.approx(12321, abs=1)
    assert score_territory([square(0, 0, 0.001)]) == 12


def test_hole_area_is_subtracted():
    outer = square(0, 0, 0.003)
    hole = square(0.001, 0.001, 0.001).shell
    donut = TerritoryPolygon(outer.shell, (hole,))
    assert planar.polygon_area(donut) == pytest.approx(12321 * 8, rel=1e-6)


def test_is_simple_ring():
    assert planar.is_simple_ring(square(0, 0, 0.001).shell)
    bowtie = (C(0, 0), C(0.001, 0.001), C(0, 0.001), C(0.001, 0))
    assert not planar.is_simple_ring(bowtie)
    assert not planar.is_simple_ring((C(0, 0), C(0, 0.001), C(0, 0.002)))


def test_union_merges_overlapping_and_keeps_disjoint_parts():
    merged = planar.union([square(0, 0, 0.002), square(0.001, 0.001, 0.002)])
    assert len(merged) == 1
    apart = planar.union([square(0, 0, 0.001), square(0.005, 0.005, 0.001)])
    assert len(apart) == 2


def test_difference_can_split_and_punch_holes():
    strip = planar.to_shape(TerritoryPolygon((C(-0.001, 0.001), C(-0.001, 0.002), C(0.002, 0.002), C(0.002, 0.001))))
    rectangle = TerritoryPolygon((C(0, 0), C(0, 0.003), C(0.001, 0.003), C(0.001, 0)))
    assert len(planar.difference(rectangle, strip)) == 2

    inner = planar.to_shape(square(0.001, 0.001, 0.001))
    donut = planar.difference(square(0, 0, 0.003), inner)
    assert len(donut) == 1
    assert len(donut[0].holes) == 1

    swallowed = planar.difference(square(0.001, 0.001, 0.001), planar.to_shape(square(0, 0, 0.003)))
    assert swallowed == ()


def test_overlaps_ignores_shared_edges():
    left = square(0, 0, 0.001)
    right = planar.to_shape(square(0, 0.001, 0.001))
    assert not planar.overlaps(left, right)
    assert planar.overlaps(left, planar.to_shape(square(0.0005, 0.0005, 0.001)))


def test_to_shape_tolerates_repeated_vertices_and_self_touching():
    repeated = TerritoryPolygon((C(0, 0), C(0, 0), C(0, 0.001), C(0.001, 0.001), C(0.001, 0.001), C(0.001, 0)))
    assert planar.to_shape(repeated).area > 0
    # figure eight touching itself at one vertex
    eight = TerritoryPolygon((C(0, 0), C(0, 0.001), C(0.001, 0.001), C(0.002, 0.002), C(0.002, 0.001), C(0.001, 0.001), C(0.001, 0)))
    assert planar.to_shape(eight).area > 0


def test_to_shape_rejects_tiny_ring():
    with pytest.raises(GeometryError):
        planar.to_shape(TerritoryPolygon((C(0, 0), C(0, 1))))


def test_polygon_json_keeps_holes():
    donut = TerritoryPolygon(square(0, 0, 0.003).shell, (square(0.001, 0.001, 0.001).shell,))
    raw = polygon_to_json(donut)
    assert set(raw) == {'shell', 'holes'}
    assert polygon_from_json(raw) == donut
    plain = polygon_to_json(square(0, 0, 0.001))
    assert plain[0] == [0.0, 0.0]
    with pytest.raises(GeometryError):
        polygon_from_json({'lat': 1})
