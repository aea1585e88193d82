import math
from dataclasses import replace
from datetime import datetime
from enum import Enum

from landgrab.errors import RespawnError
from .state import PlayerState

RESPAWN_DELAY_SECONDS = 10


class LifeState(str, Enum):
    ALIVE = 'alive'
    DEAD = 'dead'


class PlayerLifecycle:
    """Alive/Dead transitions and the respawn countdown.

    The countdown is derived from ``last_killed_at`` rather than ticked by a
    worker: it drops by one for every elapsed second, survives restarts and
    disappears as soon as the player respawns.
    """

    def __init__(self, respawn_delay_seconds: int = RESPAWN_DELAY_SECONDS):
        self.respawn_delay_seconds = respawn_delay_seconds

    def state_of(self, player: PlayerState) -> LifeState:
        return LifeState.ALIVE if player.alive else LifeState.DEAD

    def kill(self, player: PlayerState, now: datetime) -> PlayerState:
        if not player.alive:
            return player
        return replace(
            player,
            alive=False,
            active_path=(),
            territory=(),
            score=0,
            position=None,
            last_killed_at=now,
        )

    def respawn_timer(self, player: PlayerState, now: datetime) -> int:
        if player.alive or player.last_killed_at is None:
            return 0
        elapsed = (now - player.last_killed_at).total_seconds()
        return max(0, math.ceil(self.respawn_delay_seconds - elapsed))

    def respawn(self, player: PlayerState, now: datetime) -> PlayerState:
        if player.alive:
            raise RespawnError(
                "Player is alive",
                code=RespawnError.NOT_DEAD,
                context={"player_id": player.id},
            )
        remaining = self.respawn_timer(player, now)
        if remaining > 0:
            raise RespawnError(
                f"Cannot respawn yet. Please wait {remaining} seconds",
                code=RespawnError.TOO_SOON,
                context={"player_id": player.id, "respawn_timer": remaining},
            )
        return replace(
            player,
            alive=True,
            active_path=(),
            territory=(),
            score=0,
            position=None,
            last_killed_at=None,
        )
