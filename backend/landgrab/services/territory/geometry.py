"""Planar geometry for trails and territory.

Coordinates are (lat, lng) pairs treated as Cartesian points, which holds
up at the few-hundred-meter scale of a game area. Callers never touch the
math directly: they are handed a ``PlanarGeometry`` and a geodesic model
can be dropped in by providing an object with the same methods.

Polygon set algebra (union, difference, overlap) goes through Shapely.
Everything else is plain arithmetic on tuples.
"""

import math
from typing import Any, Iterable, List, NamedTuple, Sequence, Tuple

from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.ops import unary_union
from shapely.validation import make_valid

from landgrab.errors import GeometryError, InvalidCoordinate


METERS_PER_DEGREE = 111_000.0

# Cross products below this are treated as collinear. Trail coordinates
# differ by ~1e-5 degrees, so their products sit around 1e-10.
COLLINEAR_EPSILON = 1e-18


class Coordinate(NamedTuple):
    lat: float
    lng: float

    @classmethod
    def parse(cls, value: Any) -> 'Coordinate':
        """Normalize a ``[lat, lng]`` pair or a ``{'lat', 'lng'}`` mapping."""
        if isinstance(value, Coordinate):
            return value
        try:
            if isinstance(value, dict):
                lat, lng = value['lat'], value['lng']
            else:
                lat, lng = value
            lat, lng = float(lat), float(lng)
        except (KeyError, TypeError, ValueError):
            raise InvalidCoordinate(f"Not a coordinate: {value!r}")
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise InvalidCoordinate(f"Coordinate is not finite: {value!r}")
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            raise InvalidCoordinate(f"Coordinate out of range: {value!r}")
        return cls(lat, lng)

    def to_list(self) -> List[float]:
        return [self.lat, self.lng]


Path = Tuple[Coordinate, ...]
Ring = Tuple[Coordinate, ...]


class TerritoryPolygon(NamedTuple):
    """One owned area: an exterior ring and optional holes."""
    shell: Ring
    holes: Tuple[Ring, ...] = ()

    @property
    def rings(self) -> Tuple[Ring, ...]:
        return (self.shell,) + tuple(self.holes)


Territory = Tuple[TerritoryPolygon, ...]


def close_ring(points: Iterable[Coordinate]) -> Ring:
    pts = tuple(points)
    if pts and pts[0] != pts[-1]:
        pts = pts + (pts[0],)
    return pts


def distinct_vertices(ring: Sequence[Coordinate]) -> int:
    return len(set(ring))


def _orientation(a: Coordinate, b: Coordinate, c: Coordinate) -> int:
    cross = (b.lat - a.lat) * (c.lng - a.lng) - (b.lng - a.lng) * (c.lat - a.lat)
    if abs(cross) <= COLLINEAR_EPSILON:
        return 0
    return 1 if cross > 0 else -1


def _within_box(a: Coordinate, b: Coordinate, p: Coordinate) -> bool:
    return (min(a.lat, b.lat) <= p.lat <= max(a.lat, b.lat)
            and min(a.lng, b.lng) <= p.lng <= max(a.lng, b.lng))


def segments_intersect(p1: Coordinate, p2: Coordinate, q1: Coordinate, q2: Coordinate) -> bool:
    """True when segment p1-p2 and segment q1-q2 share at least one point.

    Touching endpoints and collinear overlap both count.
    """
    o1 = _orientation(p1, p2, q1)
    o2 = _orientation(p1, p2, q2)
    o3 = _orientation(q1, q2, p1)
    o4 = _orientation(q1, q2, p2)

    if o1 != o2 and o3 != o4:
        return True
    if o1 == 0 and _within_box(p1, p2, q1):
        return True
    if o2 == 0 and _within_box(p1, p2, q2):
        return True
    if o3 == 0 and _within_box(q1, q2, p1):
        return True
    if o4 == 0 and _within_box(q1, q2, p2):
        return True
    return False


def _segments(points: Sequence[Coordinate]):
    return zip(points, points[1:])


def _bbox(points: Sequence[Coordinate]) -> Tuple[float, float, float, float]:
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return min(lats), min(lngs), max(lats), max(lngs)


def _boxes_overlap(a: Sequence[Coordinate], b: Sequence[Coordinate]) -> bool:
    a0, a1, a2, a3 = _bbox(a)
    b0, b1, b2, b3 = _bbox(b)
    return a0 <= b2 and b0 <= a2 and a1 <= b3 and b1 <= a3


def polylines_intersect(a: Sequence[Coordinate], b: Sequence[Coordinate]) -> bool:
    if len(a) < 2 or len(b) < 2 or not _boxes_overlap(a, b):
        return False
    for p1, p2 in _segments(a):
        for q1, q2 in _segments(b):
            if segments_intersect(p1, p2, q1, q2):
                return True
    return False


def point_in_rings(point: Coordinate, rings: Iterable[Sequence[Coordinate]]) -> bool:
    """Odd-even ray casting over every ring, so holes count as outside."""
    px, py = point.lat, point.lng
    inside = False
    for ring in rings:
        n = len(ring)
        j = n - 1
        for i in range(n):
            xi, yi = ring[i]
            xj, yj = ring[j]
            if (yi > py) != (yj > py) and px < (xj - xi) * (py - yi) / (yj - yi) + xi:
                inside = not inside
            j = i
    return inside


def ring_area_m2(ring: Sequence[Coordinate], ref_lat: float,
                 meters_per_degree: float = METERS_PER_DEGREE) -> float:
    """Shoelace area of an equirectangular projection around ``ref_lat``."""
    pts = close_ring(ring)
    if len(pts) < 4:
        return 0.0
    kx = meters_per_degree * math.cos(math.radians(ref_lat))
    ky = meters_per_degree
    origin = pts[0]
    acc = 0.0
    for a, b in _segments(pts):
        ax, ay = (a.lng - origin.lng) * kx, (a.lat - origin.lat) * ky
        bx, by = (b.lng - origin.lng) * kx, (b.lat - origin.lat) * ky
        acc += ax * by - bx * ay
    return abs(acc) / 2.0


def _mean_lat(ring: Sequence[Coordinate]) -> float:
    pts = ring[:-1] if len(ring) > 1 and ring[0] == ring[-1] else ring
    return sum(p.lat for p in pts) / len(pts)


class PlanarGeometry:
    """Geometry model used by the engine components."""

    def __init__(self, meters_per_degree: float = METERS_PER_DEGREE):
        self.meters_per_degree = meters_per_degree

    # ---- primitives ----

    def segments_intersect(self, p1, p2, q1, q2) -> bool:
        return segments_intersect(p1, p2, q1, q2)

    def paths_intersect(self, a: Path, b: Path) -> bool:
        return polylines_intersect(a, b)

    def is_usable(self, polygon: TerritoryPolygon) -> bool:
        """Polygons with fewer than 3 distinct vertices take no part in tests."""
        return distinct_vertices(polygon.shell) >= 3

    def path_crosses_polygon(self, path: Path, polygon: TerritoryPolygon) -> bool:
        if len(path) < 2 or not self.is_usable(polygon):
            return False
        return any(polylines_intersect(path, close_ring(ring)) for ring in polygon.rings)

    def point_in_polygon(self, point: Coordinate, polygon: TerritoryPolygon) -> bool:
        if not self.is_usable(polygon):
            return False
        return point_in_rings(point, [close_ring(r) for r in polygon.rings])

    # ---- areas ----

    def ring_area(self, ring: Sequence[Coordinate]) -> float:
        if distinct_vertices(ring) < 3:
            return 0.0
        return ring_area_m2(ring, _mean_lat(ring), self.meters_per_degree)

    def polygon_area(self, polygon: TerritoryPolygon) -> float:
        if not self.is_usable(polygon):
            return 0.0
        ref_lat = _mean_lat(polygon.shell)
        area = ring_area_m2(polygon.shell, ref_lat, self.meters_per_degree)
        for hole in polygon.holes:
            area -= ring_area_m2(hole, ref_lat, self.meters_per_degree)
        return max(area, 0.0)

    def territory_area(self, territory: Iterable[TerritoryPolygon]) -> float:
        return sum(self.polygon_area(p) for p in territory)

    # ---- set algebra ----

    def is_simple_ring(self, ring: Sequence[Coordinate]) -> bool:
        """Closed, non-degenerate and free of self-intersections."""
        pts = close_ring(ring)
        if len(pts) < 4 or distinct_vertices(pts) < 3:
            return False
        try:
            shape = Polygon([tuple(c) for c in pts])
            return shape.is_valid and shape.area > 0
        except (GEOSException, ValueError):
            return False

    def to_shape(self, polygon: TerritoryPolygon):
        shell = close_ring(polygon.shell)
        if len(shell) < 4:
            raise GeometryError("Ring needs at least 4 coordinates", context={"size": len(shell)})
        try:
            shape = Polygon(
                [tuple(c) for c in shell],
                [[tuple(c) for c in close_ring(h)] for h in polygon.holes if len(close_ring(h)) >= 4],
            )
            if not shape.is_valid:
                shape = make_valid(shape)
        except (GEOSException, ValueError) as exc:
            raise GeometryError(f"Malformed ring: {exc}")
        return shape

    def from_shape(self, shape) -> Territory:
        parts: List[TerritoryPolygon] = []
        for part in _polygon_parts(shape):
            shell = tuple(Coordinate(x, y) for x, y in part.exterior.coords)
            holes = tuple(
                tuple(Coordinate(x, y) for x, y in interior.coords)
                for interior in part.interiors
            )
            parts.append(TerritoryPolygon(shell, holes))
        return tuple(parts)

    def overlaps(self, polygon: TerritoryPolygon, other) -> bool:
        """Interiors overlap; sharing only an edge or a vertex does not count."""
        shape = self.to_shape(polygon)
        try:
            return shape.intersects(other) and not shape.touches(other)
        except GEOSException as exc:
            raise GeometryError(f"Overlap test failed: {exc}")

    def difference(self, polygon: TerritoryPolygon, other) -> Territory:
        shape = self.to_shape(polygon)
        try:
            return self.from_shape(shape.difference(other))
        except GEOSException as exc:
            raise GeometryError(f"Difference failed: {exc}")

    def union(self, polygons: Iterable[TerritoryPolygon]) -> Territory:
        shapes = [self.to_shape(p) for p in polygons if self.is_usable(p)]
        if not shapes:
            return ()
        try:
            return self.from_shape(unary_union(shapes))
        except GEOSException as exc:
            raise GeometryError(f"Union failed: {exc}")


def _polygon_parts(shape) -> List[Polygon]:
    if shape is None or shape.is_empty:
        return []
    if isinstance(shape, Polygon):
        return [shape] if shape.area > 0 else []
    if isinstance(shape, (MultiPolygon, GeometryCollection)):
        parts: List[Polygon] = []
        for geom in shape.geoms:
            parts.extend(_polygon_parts(geom))
        return parts
    # Lines and points left behind by make_valid carry no area
    return []


planar = PlanarGeometry()
