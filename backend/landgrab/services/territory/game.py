import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from landgrab.errors import ConcurrencyConflict, PlayerNotAlive, ValidationError
from .capture import MIN_CLAIM_AREA_SQ_METERS, CaptureResolver, ClaimOutcome
from .collision import CollisionDetector
from .feed import DELETE, INSERT, UPDATE, OpponentView, PlayerChange, RealtimeFeed
from .geometry import METERS_PER_DEGREE, Coordinate, PlanarGeometry
from .lifecycle import RESPAWN_DELAY_SECONDS, LifeState, PlayerLifecycle
from .path_tracker import PathTracker
from .repository import PlayerRepository
from .scoring import SCORE_AREA_DIVISOR
from .state import PlayerState, path_to_json


OPPONENT_VIEW_MAX_AGE_SECONDS = 2.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PositionResult:
    player: PlayerState
    death_reason: Optional[str] = None
    enemies_killed: Tuple[int, ...] = ()
    notified: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path_updated': self.death_reason is None,
            'path': path_to_json(self.player.active_path),
            'death': self.death_reason,
            'enemies_killed': list(self.enemies_killed),
            'notified': self.notified,
        }


class GameService:
    """Entry point for the game operations.

    Reads the mover fresh from the repository and opponents from the
    ``OpponentView``. Every write of an operation goes out in one
    compare-and-set transaction; on a conflict the operation runs once more
    against a fresh read of everyone before the conflict is surfaced.
    """

    def __init__(self, repository: PlayerRepository, feed: RealtimeFeed,
                 geometry: Optional[PlanarGeometry] = None,
                 min_claim_area: float = MIN_CLAIM_AREA_SQ_METERS,
                 respawn_delay_seconds: int = RESPAWN_DELAY_SECONDS,
                 score_divisor: float = SCORE_AREA_DIVISOR,
                 view_max_age: float = OPPONENT_VIEW_MAX_AGE_SECONDS,
                 clock: Callable[[], datetime] = utc_now,
                 logger: Optional[logging.Logger] = None):
        self.repository = repository
        self.feed = feed
        self.geometry = geometry or PlanarGeometry()
        self.tracker = PathTracker(self.geometry)
        self.detector = CollisionDetector(self.geometry, self.tracker)
        self.resolver = CaptureResolver(self.geometry, min_claim_area, score_divisor)
        self.lifecycle = PlayerLifecycle(respawn_delay_seconds)
        self.view_max_age = view_max_age
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.view = OpponentView()
        feed.subscribe(self.view.apply)

    @classmethod
    def from_config(cls, config, repository: PlayerRepository, feed: RealtimeFeed, **kwargs) -> 'GameService':
        return cls(
            repository,
            feed,
            geometry=PlanarGeometry(float(config.get('METERS_PER_DEGREE', METERS_PER_DEGREE))),
            min_claim_area=float(config.get('MIN_CLAIM_AREA_SQ_METERS', MIN_CLAIM_AREA_SQ_METERS)),
            respawn_delay_seconds=int(config.get('RESPAWN_DELAY_SECONDS', RESPAWN_DELAY_SECONDS)),
            score_divisor=float(config.get('SCORE_AREA_DIVISOR', SCORE_AREA_DIVISOR)),
            view_max_age=float(config.get('OPPONENT_VIEW_MAX_AGE_SECONDS', OPPONENT_VIEW_MAX_AGE_SECONDS)),
            **kwargs,
        )

    # ---- player records ----

    def register(self, username: str) -> PlayerState:
        username = self._clean_username(username)
        state = self.repository.add(username)
        self.repository.commit()
        self.logger.info(f"[register] player={state.id} username={username}")
        self._publish([PlayerChange(INSERT, state)])
        return state

    def rename(self, player_id: int, username: str) -> PlayerState:
        username = self._clean_username(username)

        def attempt(fresh: bool) -> PlayerState:
            player = self.repository.get(player_id)
            committed, _ = self._commit([(player, replace(player, username=username))])
            return committed[0]

        return self._retrying('rename', player_id, attempt)

    def remove(self, player_id: int) -> PlayerState:
        state = self.repository.delete(player_id)
        self.repository.commit()
        self.logger.info(f"[remove] player={player_id}")
        self._publish([PlayerChange(DELETE, state)])
        return state

    def get(self, player_id: int) -> PlayerState:
        return self.repository.get(player_id)

    def leaderboard(self) -> List[PlayerState]:
        return self.repository.leaderboard()

    # ---- game operations ----

    def append_position(self, player_id: int, coord: Any) -> PositionResult:
        point = Coordinate.parse(coord)

        def attempt(fresh: bool) -> PositionResult:
            mover = self.repository.get(player_id)
            if not mover.alive:
                raise PlayerNotAlive("Dead players cannot move", context={"player_id": player_id})
            others = self._opponents(player_id, fresh)
            report = self.detector.evaluate(mover, point, others)
            now = self.clock()

            if report.died:
                moved = self.lifecycle.kill(mover, now)
            else:
                moved = replace(mover, active_path=report.path, position=point)
            writes = [(mover, moved)]
            by_id = {p.id: p for p in others}
            for victim_id in report.killed:
                victim = by_id[victim_id]
                writes.append((victim, self.lifecycle.kill(victim, now)))

            committed, notified = self._commit(writes)
            if report.died:
                self.logger.info(f"[death] player={player_id} reason={report.death_reason}")
            for victim_id in report.killed:
                self.logger.info(f"[kill] attacker={player_id} victim={victim_id} crossed trail")
            return PositionResult(committed[0], report.death_reason, report.killed, notified)

        return self._retrying('position', player_id, attempt)

    def claim_territory(self, player_id: int) -> ClaimOutcome:
        def attempt(fresh: bool) -> ClaimOutcome:
            claimant = self.repository.get(player_id)
            if not claimant.alive:
                raise PlayerNotAlive("You cannot claim territory while not alive", context={"player_id": player_id})
            others = self._opponents(player_id, fresh)
            outcome = self.resolver.claim(claimant, others)

            by_id = {p.id: p for p in others}
            writes = [(by_id[v.id], v) for v in outcome.victims]
            writes.append((claimant, outcome.claimant))
            committed, notified = self._commit(writes)

            for event in outcome.captures:
                self.logger.info(
                    f"[capture] attacker={player_id} victim={event.victim_id} "
                    f"polygons_left={len(event.remaining_territory)} victim_score={event.victim_score}"
                )
            self.logger.info(
                f"[claim] player={player_id} area={outcome.claimed_area:.1f} score={outcome.claimant.score}"
            )
            return replace(
                outcome,
                claimant=committed[-1],
                victims=tuple(committed[:-1]),
                notified=notified,
            )

        return self._retrying('claim', player_id, attempt)

    def respawn(self, player_id: int) -> PlayerState:
        def attempt(fresh: bool) -> PlayerState:
            player = self.repository.get(player_id)
            revived = self.lifecycle.respawn(player, self.clock())
            committed, _ = self._commit([(player, revived)])
            self.logger.info(f"[respawn] player={player_id}")
            return committed[0]

        return self._retrying('respawn', player_id, attempt)

    def respawn_status(self, player_id: int) -> Dict[str, Any]:
        player = self.repository.get(player_id)
        timer = self.lifecycle.respawn_timer(player, self.clock())
        state = self.lifecycle.state_of(player)
        return {
            'player_id': player.id,
            'state': state.value,
            'alive': state is LifeState.ALIVE,
            'respawn_timer': timer,
            'can_respawn': state is LifeState.DEAD and timer == 0,
        }

    # ---- internals ----

    def _clean_username(self, username) -> str:
        if not isinstance(username, str) or not username.strip():
            raise ValidationError("Username cannot be empty", code="username_required")
        username = username.strip()
        if len(username) > 64:
            raise ValidationError("Username is too long", code="username_too_long")
        return username

    def _opponents(self, player_id: int, fresh: bool) -> List[PlayerState]:
        if fresh or self.view.age() >= self.view_max_age:
            self.view.prime(self.repository.get_all())
        return self.view.snapshot(excluding=player_id)

    def _commit(self, writes: Sequence[Tuple[PlayerState, PlayerState]]) -> Tuple[List[PlayerState], bool]:
        committed = [self.repository.save(after, before.version) for before, after in writes]
        self.repository.commit()
        notified = self._publish([PlayerChange(UPDATE, s) for s in committed])
        return committed, notified

    def _publish(self, changes: List[PlayerChange]) -> bool:
        return self.feed.publish(changes)

    def _retrying(self, label: str, player_id: int, attempt: Callable[[bool], Any]):
        try:
            return attempt(False)
        except ConcurrencyConflict as exc:
            self.logger.warning(f"[conflict] op={label} player={player_id} retrying: {exc}")
        try:
            return attempt(True)
        except ConcurrencyConflict as exc:
            self.logger.error(f"[conflict] op={label} player={player_id} gave up: {exc}")
            raise
