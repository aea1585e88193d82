"""Player-record change stream.

Every committed write is published as a ``PlayerChange``. In-process
subscribers (the engine's ``OpponentView``) reconcile their snapshot from
it, and the same payload is broadcast to Socket.IO clients in the
``world`` room.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from .state import PlayerState

logger = logging.getLogger(__name__)

INSERT = 'insert'
UPDATE = 'update'
DELETE = 'delete'

WORLD_ROOM = 'world'
NAMESPACE = '/ws'


@dataclass(frozen=True)
class PlayerChange:
    kind: str
    player: PlayerState

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'player': self.player.to_dict()}


class OpponentView:
    """Last known state of every player, kept current from change events.

    Events only cover writes made through this process, so the owner
    re-primes the view from storage once it is older than it can tolerate.
    """

    def __init__(self):
        self._players: Dict[int, PlayerState] = {}
        self._lock = threading.RLock()
        self._primed_at: Optional[float] = None

    def age(self) -> float:
        if self._primed_at is None:
            return float('inf')
        return time.monotonic() - self._primed_at

    def prime(self, states: Iterable[PlayerState]) -> None:
        with self._lock:
            self._players = {s.id: s for s in states}
            self._primed_at = time.monotonic()

    def apply(self, change: PlayerChange) -> bool:
        """Merge one change; returns False when it was older than what we hold."""
        player = change.player
        with self._lock:
            if change.kind == DELETE:
                return self._players.pop(player.id, None) is not None
            known = self._players.get(player.id)
            if known is not None and known.version > player.version:
                return False
            self._players[player.id] = player
            return True

    def snapshot(self, excluding: Optional[int] = None) -> List[PlayerState]:
        with self._lock:
            return [p for pid, p in sorted(self._players.items()) if pid != excluding]

    def get(self, player_id: int) -> Optional[PlayerState]:
        with self._lock:
            return self._players.get(player_id)


class RealtimeFeed:
    def __init__(self, socketio=None, room: str = WORLD_ROOM, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.room = room
        self.namespace = namespace
        self._subscribers: List[Callable[[PlayerChange], Any]] = []

    def subscribe(self, callback: Callable[[PlayerChange], Any]) -> None:
        self._subscribers.append(callback)

    def publish(self, changes: Iterable[PlayerChange]) -> bool:
        """Deliver changes to subscribers and broadcast them.

        Returns False if the broadcast failed. Subscribers still see every
        change, since the writes behind them are already committed.
        """
        delivered = True
        for change in changes:
            for callback in self._subscribers:
                callback(change)
            if self.socketio is None:
                continue
            try:
                self.socketio.emit('player_changed', change.to_dict(), to=self.room, namespace=self.namespace)
            except Exception as exc:
                logger.warning(f"[feed-error] kind={change.kind} player={change.player.id} emit failed: {exc}")
                delivered = False
        return delivered
