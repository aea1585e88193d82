from datetime import datetime, timezone

from landgrab import db
from landgrab.services.territory.geometry import Coordinate
from landgrab.services.territory.state import (
    PlayerState,
    path_from_json,
    path_to_json,
    territory_from_json,
    territory_to_json,
)


def utcnow():
    return datetime.now(timezone.utc)


def _aware(value):
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    current_lat = db.Column(db.Float, nullable=True)
    current_lng = db.Column(db.Float, nullable=True)
    territory = db.Column(db.JSON, nullable=False, default=list)
    is_alive = db.Column(db.Boolean, default=True, nullable=False)
    last_killed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    score = db.Column(db.Integer, default=0, nullable=False)
    current_path = db.Column(db.JSON, nullable=False, default=list)
    # Bumped on every write; updates are compare-and-set against it
    version = db.Column(db.Integer, default=1, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_state(self) -> PlayerState:
        position = None
        if self.current_lat is not None and self.current_lng is not None:
            position = Coordinate(self.current_lat, self.current_lng)
        return PlayerState(
            id=self.id,
            username=self.username,
            alive=bool(self.is_alive),
            score=int(self.score or 0),
            territory=territory_from_json(self.territory),
            active_path=path_from_json(self.current_path),
            last_killed_at=_aware(self.last_killed_at),
            position=position,
            version=int(self.version or 1),
        )

    @staticmethod
    def fields_from_state(state: PlayerState) -> dict:
        """Column values for every field the engine may change."""
        return {
            'username': state.username,
            'current_lat': state.position.lat if state.position else None,
            'current_lng': state.position.lng if state.position else None,
            'territory': territory_to_json(state.territory),
            'is_alive': state.alive,
            'last_killed_at': state.last_killed_at,
            'score': state.score,
            'current_path': path_to_json(state.active_path),
        }
