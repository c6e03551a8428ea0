"""Transform store - per-character position and rotation for the active scene."""

import math
from dataclasses import replace
from typing import Iterable, Mapping

from models.scene import Position, Transform

# Nominal on-stage layer size used to center freshly placed characters
DEFAULT_LAYER_SIZE = 200.0

# Shift-drag rotation snaps to multiples of this angle
SNAP_DEGREES = 45.0


def display_rotation(degrees: float) -> float:
    """Normalize a stored rotation to [0, 360) for display."""
    normalized = math.fmod(degrees, 360.0)
    if normalized < 0:
        normalized += 360.0
    # fmod of values just below a multiple of 360 can round up to 360.0
    return 0.0 if normalized >= 360.0 else normalized


def snap_rotation(degrees: float, step: float = SNAP_DEGREES) -> float:
    """Round a rotation to the nearest multiple of ``step``.

    The stored value stays unbounded; only the step alignment changes.
    """
    return round(degrees / step) * step


class TransformStore:
    """Position and rotation for each character in the editing context.

    Transforms are created lazily: reading an unknown id stores and returns a
    default transform (centered in the viewport, no rotation). There are no
    validation errors at this level.
    """

    def __init__(
        self,
        viewport_width: float = 1280.0,
        viewport_height: float = 720.0,
        layer_size: float = DEFAULT_LAYER_SIZE,
    ):
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.layer_size = layer_size
        self._transforms: dict[str, Transform] = {}

    def __contains__(self, character_id: object) -> bool:
        return character_id in self._transforms

    def __len__(self) -> int:
        return len(self._transforms)

    def default_transform(self) -> Transform:
        """Transform for a freshly placed character."""
        half = self.layer_size / 2
        return Transform(
            position=Position(
                x=self.viewport_width / 2 - half,
                y=self.viewport_height / 2 - half,
            ),
            rotation_degrees=0.0,
        )

    def get(self, character_id: str) -> Transform:
        """Get a character's transform, creating the default on first access."""
        transform = self._transforms.get(character_id)
        if transform is None:
            transform = self.default_transform()
            self._transforms[character_id] = transform
        return transform

    def set_position(self, character_id: str, x: float, y: float) -> Transform:
        transform = replace(self.get(character_id), position=Position(x=x, y=y))
        self._transforms[character_id] = transform
        return transform

    def set_rotation(self, character_id: str, degrees: float) -> Transform:
        transform = replace(self.get(character_id), rotation_degrees=degrees)
        self._transforms[character_id] = transform
        return transform

    def remove(self, character_id: str) -> bool:
        return self._transforms.pop(character_id, None) is not None

    def load(
        self,
        character_ids: Iterable[str],
        rotations: Mapping[str, float],
        positions: Mapping[str, Position],
    ) -> None:
        """Replace all transforms from saved rotation/position maps.

        Ids missing from either map fall back to the default for that field.
        """
        self._transforms.clear()
        for character_id in character_ids:
            default = self.default_transform()
            self._transforms[character_id] = Transform(
                position=positions.get(character_id, default.position),
                rotation_degrees=float(rotations.get(character_id, 0.0)),
            )
