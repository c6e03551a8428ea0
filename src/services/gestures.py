"""Pointer gesture state machine for moving and rotating layers.

A gesture starts on pointer-down (on the layer body to drag, on the rotation
handle to rotate), updates the editor on every pointer-move and ends on
pointer-up. Each state derives its own quantity: dragging keeps the grab
offset, rotating keeps the angular offset from a center cached when the
gesture started, so the element's own changing transform cannot feed back
into the computation.

All reads and writes go through the SceneEditor, so a gesture can only touch
ids that are currently layers.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.scene import Position, Transform
from services.scene_editor import SceneEditor
from services.transform_store import snap_rotation

logger = logging.getLogger(__name__)


class GestureError(Exception):
    """A gesture was started on an id that is not a layer."""

    pass


class GestureState(str, Enum):
    """States of the layer interaction state machine."""

    IDLE = "idle"
    DRAGGING = "dragging"
    ROTATING = "rotating"


@dataclass(frozen=True)
class Point:
    """A pointer location in stage coordinates."""

    x: float
    y: float


def pointer_angle(center: Point, pointer: Point) -> float:
    """Angle in degrees of ``pointer`` around ``center`` (y axis pointing down)."""
    return math.degrees(math.atan2(pointer.y - center.y, pointer.x - center.x))


class TransformGesture:
    """Idle / Dragging / Rotating state machine bound to a scene editor."""

    def __init__(self, editor: SceneEditor):
        self.editor = editor
        self.state = GestureState.IDLE
        self.character_id: Optional[str] = None
        self._grab_offset = Point(0.0, 0.0)
        self._center = Point(0.0, 0.0)
        self._angle_offset = 0.0

    @property
    def is_active(self) -> bool:
        return self.state is not GestureState.IDLE

    def _start(self, character_id: str) -> Transform:
        if character_id not in self.editor.layers:
            raise GestureError(f"{character_id} is not in the scene")
        self.character_id = character_id
        return self.editor.transform_for(character_id)

    def begin_drag(self, character_id: str, pointer: Point) -> None:
        """Pointer-down on a layer body.

        Raises:
            GestureError: If ``character_id`` is not a layer
        """
        transform = self._start(character_id)
        self.state = GestureState.DRAGGING
        self._grab_offset = Point(
            pointer.x - transform.position.x,
            pointer.y - transform.position.y,
        )

    def begin_rotate(self, character_id: str, pointer: Point, center: Point) -> None:
        """Pointer-down on a layer's rotation handle.

        Args:
            character_id: The layer being rotated
            pointer: Pointer location
            center: Center of the layer's on-screen bounds at gesture start

        Raises:
            GestureError: If ``character_id`` is not a layer
        """
        transform = self._start(character_id)
        self.state = GestureState.ROTATING
        self._center = center
        self._angle_offset = pointer_angle(center, pointer) - transform.rotation_degrees

    def move(self, pointer: Point, snap: bool = False) -> Optional[Transform]:
        """Pointer-move; ``snap`` corresponds to holding Shift while rotating.

        A move that arrives after the layer left the scene ends the gesture.

        Returns:
            The updated transform, or None when no gesture is active
        """
        if not self.is_active:
            return None
        if self.character_id not in self.editor.layers:
            logger.debug(f"Layer {self.character_id} left the scene mid-gesture")
            self.end()
            return None

        if self.state is GestureState.DRAGGING:
            return self.editor.set_position(
                self.character_id,
                pointer.x - self._grab_offset.x,
                pointer.y - self._grab_offset.y,
            )
        rotation = pointer_angle(self._center, pointer) - self._angle_offset
        if snap:
            rotation = snap_rotation(rotation)
        return self.editor.set_rotation(self.character_id, rotation)

    def end(self) -> None:
        """Pointer-up; returns to idle."""
        self.state = GestureState.IDLE
        self.character_id = None


def layer_center(position: Position, width: float, height: float) -> Point:
    """Center of an unrotated layer placed at ``position``."""
    return Point(position.x + width / 2, position.y + height / 2)
