from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from landgrab.errors import SelfCollision
from .geometry import Coordinate, Path, PlanarGeometry, planar
from .path_tracker import PathTracker
from .state import PlayerState

CROSSED_OWN_PATH = 'crossed own path'
CROSSED_OWN_TERRITORY = 'crossed own territory'


@dataclass(frozen=True)
class CollisionReport:
    """Outcome of one position sample.

    ``path`` is the mover's trail after the sample; it is empty when the
    mover died. ``killed`` lists the ids of enemies whose trail the mover
    crossed, whatever happened to the mover.
    """
    path: Path
    death_reason: Optional[str] = None
    killed: Tuple[int, ...] = ()

    @property
    def died(self) -> bool:
        return self.death_reason is not None


class CollisionDetector:
    def __init__(self, geometry: PlanarGeometry = planar, tracker: Optional[PathTracker] = None):
        self.geometry = geometry
        self.tracker = tracker or PathTracker(geometry)

    def evaluate(self, mover: PlayerState, point: Coordinate,
                 others: Iterable[PlayerState]) -> CollisionReport:
        """Run the checks for ``mover`` stepping onto ``point``.

        Death checks run in priority order and stop at the first hit:
        own trail, own territory boundary, standing in enemy territory,
        crossing an enemy boundary. Trail kills are evaluated afterwards
        and independently.
        """
        enemies = sorted((p for p in others if p.id != mover.id and p.alive), key=lambda p: p.id)

        reason = None
        try:
            path = self.tracker.append(mover.active_path, point)
        except SelfCollision as exc:
            path = exc.path
            reason = CROSSED_OWN_PATH

        if reason is None:
            reason = self._territory_verdict(mover, path, point, enemies)

        killed = self._trail_kills(path, enemies)
        return CollisionReport(path=() if reason else path, death_reason=reason, killed=killed)

    def _territory_verdict(self, mover: PlayerState, path: Path, point: Coordinate,
                           enemies: List[PlayerState]) -> Optional[str]:
        geometry = self.geometry
        if any(geometry.path_crosses_polygon(path, poly) for poly in mover.territory):
            return CROSSED_OWN_TERRITORY

        for enemy in enemies:
            if any(geometry.point_in_polygon(point, poly) for poly in enemy.territory):
                return f'killed by {enemy.username} territory'

        for enemy in enemies:
            if any(geometry.path_crosses_polygon(path, poly) for poly in enemy.territory):
                return f'crossed {enemy.username} territory'
        return None

    def _trail_kills(self, path: Path, enemies: List[PlayerState]) -> Tuple[int, ...]:
        if len(path) < 2:
            return ()
        return tuple(
            enemy.id for enemy in enemies
            if len(enemy.active_path) >= 2 and self.geometry.paths_intersect(path, enemy.active_path)
        )
