"""
Landgrab error hierarchy.

Every error raised by the engine derives from LandgrabError, carries a
machine-readable ``code`` and serializes with ``to_dict()`` so the HTTP and
Socket.IO layers can return it unchanged.

Usage:
    from landgrab.errors import ClaimError

    try:
        service.claim_territory(player_id)
    except ClaimError as e:
        logger.info(f"claim rejected: {e.code}")
"""

from typing import Any, Dict, Optional

__all__ = [
    "ClaimError",
    "ConcurrencyConflict",
    "GeometryError",
    "InvalidCoordinate",
    "LandgrabError",
    "PlayerNotAlive",
    "PlayerNotFound",
    "RepositoryError",
    "RespawnError",
    "SelfCollision",
    "ValidationError",
]


class LandgrabError(Exception):
    """Base exception for all engine errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable description
        context: Extra detail for logs and clients
        http_status: Status code used when the error reaches the HTTP layer
    """
    code: str = "landgrab_error"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Validation errors: surfaced to the caller, nothing mutated
# =============================================================================


class ValidationError(LandgrabError):
    code: str = "validation_error"
    http_status: int = 400


class InvalidCoordinate(ValidationError):
    code: str = "invalid_coordinate"


class PlayerNotFound(ValidationError):
    code: str = "player_not_found"
    http_status: int = 404

    def __init__(self, player_id: Any):
        super().__init__(f"No player with id {player_id}", context={"player_id": player_id})


class PlayerNotAlive(ValidationError):
    code: str = "player_not_alive"
    http_status: int = 409


class ClaimError(ValidationError):
    """A trail could not be turned into territory."""
    TOO_SHORT = "too_short"
    INVALID_POLYGON = "invalid_polygon"
    AREA_TOO_SMALL = "area_too_small"

    code: str = "claim_error"


class RespawnError(ValidationError):
    TOO_SOON = "too_soon"
    NOT_DEAD = "not_dead"

    code: str = "respawn_error"
    http_status: int = 409


# =============================================================================
# Engine verdicts and faults
# =============================================================================


class SelfCollision(LandgrabError):
    """The newest trail segment crossed an earlier one.

    Raised by the path tracker in place of returning the updated path; the
    offending path is kept on ``path`` so callers can still inspect it.
    """
    code: str = "self_collision"

    def __init__(self, path, segment_index: int):
        super().__init__(
            "Trail crossed itself",
            context={"segment": segment_index, "length": len(path)},
        )
        self.path = path
        self.segment_index = segment_index


class GeometryError(LandgrabError):
    """Malformed ring or a numerical failure inside a polygon operation."""
    code: str = "geometry_error"
    http_status: int = 422


# =============================================================================
# Persistence errors
# =============================================================================


class ConcurrencyConflict(LandgrabError):
    """A record changed between read and compare-and-set write."""
    code: str = "concurrency_conflict"
    http_status: int = 409


class RepositoryError(LandgrabError):
    """The storage layer failed; nothing from the operation was committed."""
    code: str = "repository_error"
    http_status: int = 503
