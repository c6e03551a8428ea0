"""Models for layer transforms and saved scenes."""

import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from models.character import SoundEffect


@dataclass(frozen=True)
class Position:
    """Top-left offset of a layer on the composition stage."""

    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON persistence."""
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict) -> "Position":
        """Create a position from a ``{x, y}`` record."""
        if not isinstance(data, dict):
            raise ValueError(f"Position must be an object, got {type(data).__name__}")
        return cls(x=_finite(data.get("x", 0.0)), y=_finite(data.get("y", 0.0)))


@dataclass(frozen=True)
class Transform:
    """Placement of one character within a scene's editing context.

    Rotation is stored as given (it may exceed +/-360); normalization only
    happens for display and snapping.
    """

    position: Position = field(default_factory=Position)
    rotation_degrees: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "position": self.position.to_dict(),
            "rotationDegrees": self.rotation_degrees,
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


def _finite(value) -> float:
    """Convert a persisted number, rejecting NaN and infinities."""
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Expected a finite number, got {value!r}")
    return number


def rotations_from_dict(data: Optional[dict]) -> dict[str, float]:
    """Read a persisted ``id -> degrees`` map.

    Raises:
        ValueError: If the map or one of its values is malformed
    """
    if not data:
        return {}
    if not isinstance(data, dict):
        raise ValueError("rotations must be an object")
    try:
        return {str(cid): _finite(deg) for cid, deg in data.items()}
    except TypeError as e:
        raise ValueError(f"Invalid rotation: {e}") from e


def positions_from_dict(data: Optional[dict]) -> dict[str, Position]:
    """Read a persisted ``id -> {x, y}`` map.

    Raises:
        ValueError: If the map or one of its positions is malformed
    """
    if not data:
        return {}
    if not isinstance(data, dict):
        raise ValueError("positions must be an object")
    try:
        return {str(cid): Position.from_dict(pos) for cid, pos in data.items()}
    except TypeError as e:
        raise ValueError(f"Invalid position: {e}") from e


@dataclass
class Scene:
    """A named, persisted snapshot of the editing state.

    ``character_ids`` is the layer order at save time, back to front.
    """

    name: str
    character_ids: list[str]
    prompt: str
    rotations: dict[str, float] = field(default_factory=dict)
    positions: dict[str, Position] = field(default_factory=dict)
    sound_effect: Optional[SoundEffect] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict:
        """Convert to the persisted/exported JSON shape."""
        result = {
            "id": self.id,
            "name": self.name,
            "characterIds": list(self.character_ids),
            "prompt": self.prompt,
            "createdAt": self.created_at,
            "rotations": dict(self.rotations),
            "positions": {cid: pos.to_dict() for cid, pos in self.positions.items()},
        }
        if self.sound_effect:
            result["soundEffect"] = self.sound_effect.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "Scene":
        """Create a scene from a persisted record.

        ``rotations``, ``positions`` and ``soundEffect`` are optional; older
        records only carry the layer order and prompt.

        Raises:
            ValueError: If a field is present but has the wrong shape
        """
        prompt = data.get("prompt") or ""
        if not isinstance(prompt, str):
            raise ValueError("prompt must be a string")
        created_at = data.get("createdAt") or _now_ms()
        if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
            raise ValueError("createdAt must be a millisecond timestamp")
        created_at = _finite(created_at)

        sound = data.get("soundEffect")
        if sound and not SoundEffect.is_valid_record(sound):
            raise ValueError("soundEffect must have an id, a name and a url")

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            character_ids=[str(cid) for cid in data.get("characterIds", [])],
            prompt=prompt,
            created_at=int(created_at),
            sound_effect=SoundEffect.from_dict(sound) if sound else None,
            rotations=rotations_from_dict(data.get("rotations")),
            positions=positions_from_dict(data.get("positions")),
        )

    @staticmethod
    def is_valid_record(data: object) -> bool:
        """Check whether a decoded JSON value looks like a scene record."""
        return (
            isinstance(data, dict)
            and bool(data.get("id"))
            and bool(data.get("name"))
            and isinstance(data.get("characterIds"), list)
        )
