import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from landgrab.errors import ClaimError, GeometryError
from .geometry import Path, PlanarGeometry, TerritoryPolygon, close_ring, planar
from .scoring import SCORE_AREA_DIVISOR, score_territory
from .state import CaptureEvent, PlayerState, territory_to_json

logger = logging.getLogger(__name__)

MIN_CLAIM_AREA_SQ_METERS = 100.0


@dataclass(frozen=True)
class ClaimOutcome:
    """New states produced by one claim. Nothing is persisted yet."""
    claimant: PlayerState
    victims: Tuple[PlayerState, ...]
    captures: Tuple[CaptureEvent, ...]
    claimed_area: float
    previous_score: int
    notified: bool = True

    def summary(self) -> Dict[str, Any]:
        return {
            'player_id': self.claimant.id,
            'claimed_area': round(self.claimed_area, 2),
            'score': self.claimant.score,
            'score_delta': self.claimant.score - self.previous_score,
            'territory': territory_to_json(self.claimant.territory),
            'captures': [c.to_dict() for c in self.captures],
            'notified': self.notified,
        }


class CaptureResolver:
    def __init__(self, geometry: PlanarGeometry = planar,
                 min_area: float = MIN_CLAIM_AREA_SQ_METERS,
                 score_divisor: float = SCORE_AREA_DIVISOR):
        self.geometry = geometry
        self.min_area = min_area
        self.score_divisor = score_divisor

    def score(self, territory) -> int:
        return score_territory(territory, self.geometry, self.score_divisor)

    def claim_polygon(self, path: Path) -> Tuple[TerritoryPolygon, float]:
        """Validate a trail and close it into a polygon; returns it with its area."""
        if len(path) < 3:
            raise ClaimError(
                "Path is too short to claim territory",
                code=ClaimError.TOO_SHORT,
                context={"length": len(path)},
            )
        ring = close_ring(path)
        if not self.geometry.is_simple_ring(ring):
            raise ClaimError("Path does not form a valid polygon", code=ClaimError.INVALID_POLYGON)
        area = self.geometry.ring_area(ring)
        if area < self.min_area:
            raise ClaimError(
                f"Claimed area is too small. Minimum required area is {self.min_area:g} sq meters",
                code=ClaimError.AREA_TOO_SMALL,
                context={"area": round(area, 2), "minimum": self.min_area},
            )
        return TerritoryPolygon(ring), area

    def claim(self, claimant: PlayerState, opponents: Iterable[PlayerState],
              path: Optional[Path] = None) -> ClaimOutcome:
        """Turn the claimant's trail into territory, capturing from living opponents.

        A difference that fails leaves that one enemy polygon as it was. A
        failed union raises GeometryError before anything is returned, so
        the caller has nothing to apply.
        """
        polygon, area = self.claim_polygon(claimant.active_path if path is None else tuple(path))
        claim_shape = self.geometry.to_shape(polygon)

        victims: List[PlayerState] = []
        captures: List[CaptureEvent] = []
        for opponent in sorted(opponents, key=lambda p: p.id):
            if opponent.id == claimant.id or not opponent.alive or not opponent.territory:
                continue
            remaining, changed = self._subtract(opponent, claim_shape)
            if not changed:
                continue
            score = self.score(remaining)
            victims.append(replace(opponent, territory=remaining, score=score))
            captures.append(CaptureEvent(claimant.id, opponent.id, remaining, score))

        try:
            merged = self.geometry.union((polygon,) + tuple(claimant.territory))
        except GeometryError as exc:
            logger.error(f"[claim-abort] player={claimant.id} union failed: {exc}")
            raise

        updated = replace(
            claimant,
            territory=merged,
            score=self.score(merged),
            active_path=(),
        )
        return ClaimOutcome(
            claimant=updated,
            victims=tuple(victims),
            captures=tuple(captures),
            claimed_area=area,
            previous_score=claimant.score,
        )

    def _subtract(self, opponent: PlayerState, claim_shape) -> Tuple[Tuple[TerritoryPolygon, ...], bool]:
        remaining: List[TerritoryPolygon] = []
        changed = False
        for existing in opponent.territory:
            if not self.geometry.is_usable(existing):
                remaining.append(existing)
                continue
            try:
                if not self.geometry.overlaps(existing, claim_shape):
                    remaining.append(existing)
                    continue
                fragments = self.geometry.difference(existing, claim_shape)
            except GeometryError as exc:
                logger.warning(f"[capture-skip] victim={opponent.id} polygon kept: {exc}")
                remaining.append(existing)
                continue
            changed = True
            remaining.extend(fragments)
        return tuple(remaining), changed
