from dataclasses import replace
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from landgrab import db
from landgrab.errors import ConcurrencyConflict, PlayerNotFound, RepositoryError, ValidationError
from landgrab.models import Player, utcnow
from .state import PlayerState


class PlayerRepository:
    """Player records behind the Flask-SQLAlchemy session.

    Writes are staged with compare-and-set on ``version`` and only become
    visible on ``commit()``. Any failure rolls the whole transaction back.
    """

    def get(self, player_id: int) -> PlayerState:
        player = self._row(player_id)
        return player.to_state()

    def get_all(self, excluding: Optional[int] = None) -> List[PlayerState]:
        try:
            query = Player.query
            if excluding is not None:
                query = query.filter(Player.id != excluding)
            return [p.to_state() for p in query.order_by(Player.id).all()]
        except SQLAlchemyError as exc:
            self._fail('get_all', exc)

    def leaderboard(self) -> List[PlayerState]:
        try:
            rows = Player.query.order_by(Player.score.desc(), Player.id).all()
        except SQLAlchemyError as exc:
            self._fail('leaderboard', exc)
        return [p.to_state() for p in rows]

    def add(self, username: str) -> PlayerState:
        player = Player(username=username, territory=[], current_path=[], version=1)
        try:
            db.session.add(player)
            db.session.flush()
        except IntegrityError:
            self.rollback()
            raise ValidationError(
                "Username already exists",
                code="username_taken",
                context={"username": username},
            )
        except SQLAlchemyError as exc:
            self._fail('add', exc)
        return player.to_state()

    def update(self, player_id: int, fields: Dict[str, Any], expected_version: int) -> int:
        """Stage a write of ``fields``; returns the record's new version."""
        values = dict(fields, version=expected_version + 1, updated_at=utcnow())
        try:
            count = (
                Player.query
                .filter_by(id=player_id, version=expected_version)
                .update(values, synchronize_session=False)
            )
        except IntegrityError:
            self.rollback()
            raise ValidationError(
                "Username already exists",
                code="username_taken",
                context={"username": fields.get('username')},
            )
        except SQLAlchemyError as exc:
            self._fail('update', exc)
        if count == 0:
            self.rollback()
            raise ConcurrencyConflict(
                "Player changed since it was read",
                context={"player_id": player_id, "expected_version": expected_version},
            )
        return expected_version + 1

    def save(self, state: PlayerState, expected_version: int) -> PlayerState:
        version = self.update(state.id, Player.fields_from_state(state), expected_version)
        return replace(state, version=version)

    def delete(self, player_id: int) -> PlayerState:
        player = self._row(player_id)
        state = player.to_state()
        try:
            db.session.delete(player)
            db.session.flush()
        except SQLAlchemyError as exc:
            self._fail('delete', exc)
        return state

    def commit(self) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            self._fail('commit', exc)

    def rollback(self) -> None:
        db.session.rollback()

    def _row(self, player_id: int) -> Player:
        try:
            player = Player.query.filter_by(id=player_id).first()
        except SQLAlchemyError as exc:
            self._fail('get', exc)
        if player is None:
            raise PlayerNotFound(player_id)
        return player

    def _fail(self, action: str, exc: Exception):
        self.rollback()
        raise RepositoryError(
            "Storage failed, retry the operation",
            context={"action": action, "detail": exc.__class__.__name__},
        )
