import math
from typing import Iterable

from .geometry import PlanarGeometry, TerritoryPolygon, planar

SCORE_AREA_DIVISOR = 1000


def score_territory(territory: Iterable[TerritoryPolygon],
                    geometry: PlanarGeometry = planar,
                    divisor: float = SCORE_AREA_DIVISOR) -> int:
    """Score for a territory: total area in square meters over ``divisor``.

    Rounds half up so that 12,500 m2 scores 13, matching the scores clients
    already display. Degenerate polygons add nothing.
    """
    total = geometry.territory_area(territory)
    return int(math.floor(total / divisor + 0.5))
