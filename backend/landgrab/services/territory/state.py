"""Player snapshots and their JSON shape.

Engine components only ever see ``PlayerState`` values. The territory
column stores one entry per polygon: a plain list of ``[lat, lng]`` pairs,
or ``{"shell": [...], "holes": [[...], ...]}`` once a union or capture has
punched a hole into it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from landgrab.errors import GeometryError
from .geometry import Coordinate, Path, Territory, TerritoryPolygon


@dataclass(frozen=True)
class PlayerState:
    id: int
    username: str
    alive: bool = True
    score: int = 0
    territory: Territory = ()
    active_path: Path = ()
    last_killed_at: Optional[datetime] = None
    position: Optional[Coordinate] = None
    version: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'current_lat': self.position.lat if self.position else None,
            'current_lng': self.position.lng if self.position else None,
            'territory': territory_to_json(self.territory),
            'is_alive': self.alive,
            'last_killed_at': self.last_killed_at.isoformat() if self.last_killed_at else None,
            'score': self.score,
            'current_path': path_to_json(self.active_path),
            'version': self.version,
        }


@dataclass(frozen=True)
class CaptureEvent:
    attacker_id: int
    victim_id: int
    remaining_territory: Territory = field(default_factory=tuple)
    victim_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'attacker_id': self.attacker_id,
            'victim_id': self.victim_id,
            'remaining_territory': territory_to_json(self.remaining_territory),
            'victim_score': self.victim_score,
        }


def path_to_json(path: Path) -> List[List[float]]:
    return [c.to_list() for c in path]


def path_from_json(raw) -> Path:
    return tuple(Coordinate.parse(c) for c in (raw or []))


def polygon_to_json(polygon: TerritoryPolygon):
    shell = path_to_json(polygon.shell)
    if not polygon.holes:
        return shell
    return {'shell': shell, 'holes': [path_to_json(h) for h in polygon.holes]}


def polygon_from_json(raw) -> TerritoryPolygon:
    if isinstance(raw, dict):
        if 'shell' not in raw:
            raise GeometryError("Polygon mapping without a shell", context={"keys": sorted(raw)})
        return TerritoryPolygon(
            path_from_json(raw['shell']),
            tuple(path_from_json(h) for h in raw.get('holes') or []),
        )
    return TerritoryPolygon(path_from_json(raw))


def territory_to_json(territory: Territory) -> list:
    return [polygon_to_json(p) for p in territory]


def territory_from_json(raw) -> Territory:
    return tuple(polygon_from_json(p) for p in (raw or []))
