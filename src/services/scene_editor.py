"""Scene editor - the live editing state of the scene builder.

Owns the layer order and the transform store and keeps their domains in
step: a character has a transform exactly when it is in the layer order.
Composition reads a frozen ``SceneSnapshot`` instead of the live objects.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from models.character import Character, SoundEffect
from models.scene import Scene, Transform, positions_from_dict, rotations_from_dict
from services.layer_order import LayerOrder
from services.transform_store import TransformStore

logger = logging.getLogger(__name__)

DEFAULT_SCENE_PROMPT = "Two characters having a picnic in a sunny park."


class SceneEditorError(Exception):
    """A user action on the editor cannot be carried out."""

    pass


class LayerStateError(Exception):
    """Layer order and transforms disagree (a programming error)."""

    pass


@dataclass(frozen=True)
class SceneSnapshot:
    """Immutable view of the editor at one point in time."""

    character_ids: tuple[str, ...]
    transforms: Mapping[str, Transform]
    prompt: str
    sound_effect: Optional[SoundEffect] = None
    taken_at: float = field(default_factory=time.time)

    def to_autosave(self) -> dict:
        """Autosave payload, in the same field names as a scene record."""
        return {
            "prompt": self.prompt,
            "characterIds": list(self.character_ids),
            "rotations": {cid: t.rotation_degrees for cid, t in self.transforms.items()},
            "positions": {cid: t.position.to_dict() for cid, t in self.transforms.items()},
            "timestamp": int(self.taken_at * 1000),
        }


class SceneEditor:
    """Layer order + transforms + prompt for the scene being built."""

    def __init__(
        self,
        transforms: Optional[TransformStore] = None,
        prompt: str = DEFAULT_SCENE_PROMPT,
        strict: bool = False,
    ):
        """Initialize the editor.

        Args:
            transforms: Transform store (a default-viewport store if omitted)
            prompt: Initial scene prompt
            strict: Raise LayerStateError on layer/transform mismatches
                instead of logging and falling back to a default transform
        """
        self.layers = LayerOrder()
        self.transforms = transforms or TransformStore()
        self.prompt = prompt
        self.sound_effect: Optional[SoundEffect] = None
        self.strict = strict
        self.latest_job_id: Optional[str] = None

    # -------------------------------------------------------------------------
    # Selection and ordering
    # -------------------------------------------------------------------------

    def add_character(self, character_id: str) -> bool:
        """Place a character as the new front layer."""
        added = self.layers.append(character_id)
        if added:
            self.transforms.get(character_id)
        return added

    def remove_character(self, character_id: str) -> bool:
        """Take a character out of the scene, dropping its transform."""
        removed = self.layers.remove(character_id)
        self.transforms.remove(character_id)
        return removed

    def toggle_character(self, character_id: str) -> bool:
        """Library click: select or deselect a character.

        Returns:
            True if the character is in the scene afterwards
        """
        if character_id in self.layers:
            self.remove_character(character_id)
            return False
        self.add_character(character_id)
        return True

    def move_layer(self, character_id: str, target_id: str, placement: str = "at") -> bool:
        return self.layers.move_to(character_id, target_id, placement)

    def reorder(self, character_ids: Iterable[str]) -> None:
        self.layers.reorder(character_ids)

    def prune(self, known_ids: Iterable[str]) -> list[str]:
        """Drop layers whose characters no longer exist in the library.

        Returns:
            The removed ids
        """
        known = set(known_ids)
        missing = [cid for cid in self.layers if cid not in known]
        for character_id in missing:
            self.remove_character(character_id)
        return missing

    def selected_characters(self, library: Mapping[str, Character]) -> list[Character]:
        """Characters in layer order, skipping ids missing from the library."""
        return [library[cid] for cid in self.layers if cid in library]

    # -------------------------------------------------------------------------
    # Transforms
    # -------------------------------------------------------------------------

    def _check_layer(self, character_id: str) -> bool:
        if character_id in self.layers:
            return True
        message = f"Transform requested for {character_id}, which is not a layer"
        if self.strict:
            raise LayerStateError(message)
        logger.warning(message)
        return False

    def transform_for(self, character_id: str) -> Transform:
        """Transform of a layer; a default transform for unknown ids."""
        if not self._check_layer(character_id):
            return self.transforms.default_transform()
        return self.transforms.get(character_id)

    def set_position(self, character_id: str, x: float, y: float) -> Transform:
        if not self._check_layer(character_id):
            return self.transforms.default_transform()
        return self.transforms.set_position(character_id, x, y)

    def set_rotation(self, character_id: str, degrees: float) -> Transform:
        if not self._check_layer(character_id):
            return self.transforms.default_transform()
        return self.transforms.set_rotation(character_id, degrees)

    # -------------------------------------------------------------------------
    # Snapshots, scenes and autosave
    # -------------------------------------------------------------------------

    def snapshot(self) -> SceneSnapshot:
        """Freeze the current state for composition or persistence."""
        ids = self.layers.ids
        return SceneSnapshot(
            character_ids=ids,
            transforms={cid: self.transform_for(cid) for cid in ids},
            prompt=self.prompt,
            sound_effect=self.sound_effect,
        )

    def save_scene(self, name: str, scene_id: Optional[str] = None) -> Scene:
        """Build a scene record from the current state.

        Args:
            name: Display name for the scene
            scene_id: Existing scene id to re-save under (new id if omitted)

        Raises:
            SceneEditorError: If the scene is empty or the name is blank
        """
        if not len(self.layers):
            raise SceneEditorError("Add characters to save a scene.")
        if not name or not name.strip():
            raise SceneEditorError("Scene name is required.")

        snapshot = self.snapshot()
        scene = Scene(
            name=name.strip(),
            character_ids=list(snapshot.character_ids),
            prompt=snapshot.prompt,
            rotations={cid: t.rotation_degrees for cid, t in snapshot.transforms.items()},
            positions={cid: t.position for cid, t in snapshot.transforms.items()},
            sound_effect=snapshot.sound_effect,
        )
        if scene_id:
            scene.id = scene_id
        return scene

    def load_scene(self, scene: Scene) -> None:
        """Replace the editing state with a saved scene."""
        self.layers = LayerOrder(scene.character_ids)
        self.transforms.load(self.layers.ids, scene.rotations, scene.positions)
        self.prompt = scene.prompt
        self.sound_effect = scene.sound_effect
        logger.info(f"Loaded scene '{scene.name}' with {len(self.layers)} layer(s)")

    def restore_autosave(self, data: Mapping) -> None:
        """Restore from an autosave payload; absent fields are left alone.

        The payload is checked in full before anything changes, so a
        malformed one leaves the editor as it was.

        Raises:
            ValueError: If a field has the wrong shape
        """
        prompt = data.get("prompt") or self.prompt
        if not isinstance(prompt, str):
            raise ValueError("prompt must be a string")
        character_ids = data.get("characterIds")
        if character_ids and not isinstance(character_ids, list):
            raise ValueError("characterIds must be a list")
        rotations = rotations_from_dict(data.get("rotations"))
        positions = positions_from_dict(data.get("positions"))

        self.prompt = prompt
        if character_ids:
            self.layers = LayerOrder(str(cid) for cid in character_ids)
        self.transforms.load(self.layers.ids, rotations, positions)

    def to_dict(self) -> dict:
        """Editor state for API responses."""
        snapshot = self.snapshot()
        return {
            "characterIds": list(snapshot.character_ids),
            "frontToBack": list(self.layers.front_to_back()),
            "transforms": {cid: t.to_dict() for cid, t in snapshot.transforms.items()},
            "prompt": snapshot.prompt,
            "soundEffect": snapshot.sound_effect.to_dict() if snapshot.sound_effect else None,
            "latestJobId": self.latest_job_id,
        }
