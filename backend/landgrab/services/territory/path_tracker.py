from typing import Iterable

from landgrab.errors import SelfCollision
from .geometry import Coordinate, Path, PlanarGeometry, planar


class PathTracker:
    """Grows a player's trail one sample at a time."""

    def __init__(self, geometry: PlanarGeometry = planar):
        self.geometry = geometry

    def append(self, path: Iterable[Coordinate], point: Coordinate) -> Path:
        """Return the trail with ``point`` added.

        Raises SelfCollision when the newest segment meets any earlier
        segment other than the one right before it, which always shares
        its start point. A sample identical to the last point is dropped.
        """
        path = tuple(path)
        if path and path[-1] == point:
            return path
        updated = path + (point,)
        if len(updated) < 3:
            return updated

        start, end = updated[-2], updated[-1]
        for index, (a, b) in enumerate(zip(updated[:-3], updated[1:-2])):
            if self.geometry.segments_intersect(start, end, a, b):
                raise SelfCollision(updated, index)
        return updated
