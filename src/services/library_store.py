"""Library persistence - characters, scenes, sound effects and autosave.

Everything is stored as JSON documents in a local directory
(~/.character_studio by default), one file per key. Writes go through a
temporary file and an atomic rename so a crash never leaves a half-written
library behind.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from models.character import Character, SoundEffect
from models.scene import Scene
from services.scene_editor import SceneEditor
from utils.data_urls import encode_data_url

logger = logging.getLogger(__name__)

STORAGE_DIR = Path.home() / ".character_studio"

CHARACTERS_KEY = "characters"
SCENES_KEY = "scenes"
SOUND_LIBRARY_KEY = "sound_library"
AUTOSAVE_KEY = "autosave"

DEFAULT_AUTOSAVE_INTERVAL = 60.0


class LibraryImportError(Exception):
    """An imported file is not a valid character or scene record."""

    pass


class JsonStore:
    """Key-value store of JSON documents in a directory."""

    def __init__(self, storage_dir: str | Path | None = None):
        self.storage_dir = Path(storage_dir) if storage_dir else STORAGE_DIR
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.storage_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Load a document, returning ``default`` if missing or unreadable."""
        path = self._path(key)
        try:
            if path.exists():
                return json.loads(path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load {path.name}: {e}")
        return default

    def set(self, key: str, value: Any) -> None:
        """Write a document atomically."""
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.storage_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(value, f, indent=2)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error(f"Failed to save {path.name}: {e}")
            Path(tmp_name).unlink(missing_ok=True)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class CharacterLibrary:
    """The user's character collection."""

    def __init__(self, store: JsonStore):
        self.store = store

    def _load(self) -> list[dict]:
        return self.store.get(CHARACTERS_KEY, [])

    def _save(self, records: list[dict]) -> None:
        self.store.set(CHARACTERS_KEY, records)

    def list_characters(self) -> list[Character]:
        return [Character.from_dict(r) for r in self._load() if Character.is_valid_record(r)]

    def as_mapping(self) -> dict[str, Character]:
        return {c.id: c for c in self.list_characters()}

    def get(self, character_id: str) -> Optional[Character]:
        return self.as_mapping().get(character_id)

    def add(self, character: Character) -> Character:
        """Store a new (or replace an existing) character."""
        self._upsert([character])
        logger.info(f"Saved character '{character.name}' (id={character.id})")
        return character

    def delete(self, character_id: str) -> bool:
        records = self._load()
        remaining = [r for r in records if r.get("id") != character_id]
        if len(remaining) == len(records):
            return False
        self._save(remaining)
        return True

    def import_character(self, data: Any) -> Character:
        """Import a single exported character, updating it in place by id.

        Raises:
            LibraryImportError: If ``data`` is not a character record
        """
        if not Character.is_valid_record(data):
            raise LibraryImportError("Invalid character file.")
        character = Character.from_dict(data)
        self._upsert([character])
        return character

    def import_library(self, data: Any) -> list[Character]:
        """Import an exported library array; invalid entries are skipped.

        Raises:
            LibraryImportError: If ``data`` is not a list
        """
        if not isinstance(data, list):
            raise LibraryImportError("Invalid character library file.")
        characters = []
        for record in data:
            if Character.is_valid_record(record):
                characters.append(Character.from_dict(record))
            else:
                logger.warning("Skipping invalid record in imported character library")
        self._upsert(characters)
        logger.info(f"Imported {len(characters)} character(s)")
        return characters

    def export(self) -> list[dict]:
        return [c.to_dict() for c in self.list_characters()]

    def _upsert(self, characters: list[Character]) -> None:
        records = self._load()
        index_by_id = {r.get("id"): i for i, r in enumerate(records)}
        for character in characters:
            if character.id in index_by_id:
                records[index_by_id[character.id]] = character.to_dict()
            else:
                index_by_id[character.id] = len(records)
                records.append(character.to_dict())
        self._save(records)


class SceneLibrary:
    """Saved scenes, newest first."""

    def __init__(self, store: JsonStore):
        self.store = store

    def list_scenes(self) -> list[Scene]:
        scenes = []
        for record in self.store.get(SCENES_KEY, []):
            if not Scene.is_valid_record(record):
                continue
            try:
                scenes.append(Scene.from_dict(record))
            except ValueError as e:
                logger.warning(f"Skipping unreadable saved scene {record.get('id')}: {e}")
        return scenes

    def get(self, scene_id: str) -> Optional[Scene]:
        for scene in self.list_scenes():
            if scene.id == scene_id:
                return scene
        return None

    def save(self, scene: Scene) -> Scene:
        """Save a scene; re-saving an existing id replaces it in place."""
        records = self.store.get(SCENES_KEY, [])
        for i, record in enumerate(records):
            if record.get("id") == scene.id:
                records[i] = scene.to_dict()
                break
        else:
            records.insert(0, scene.to_dict())
        self.store.set(SCENES_KEY, records)
        logger.info(f"Saved scene '{scene.name}' (id={scene.id})")
        return scene

    def delete(self, scene_id: str) -> bool:
        records = self.store.get(SCENES_KEY, [])
        remaining = [r for r in records if r.get("id") != scene_id]
        if len(remaining) == len(records):
            return False
        self.store.set(SCENES_KEY, remaining)
        return True

    def import_scene(self, data: Any) -> Scene:
        """Import an exported scene record.

        Raises:
            LibraryImportError: If ``data`` is not a scene record
        """
        if not Scene.is_valid_record(data):
            raise LibraryImportError("Invalid scene file.")
        try:
            scene = Scene.from_dict(data)
        except ValueError as e:
            raise LibraryImportError(f"Invalid scene file: {e}") from e
        return self.save(scene)

    def export(self, scene_id: str) -> Optional[dict]:
        scene = self.get(scene_id)
        return scene.to_dict() if scene else None


class SoundLibrary:
    """Uploaded sound effects available to scenes."""

    def __init__(self, store: JsonStore):
        self.store = store

    def list_sounds(self) -> list[SoundEffect]:
        return [SoundEffect.from_dict(r) for r in self.store.get(SOUND_LIBRARY_KEY, [])]

    def get(self, sound_id: str) -> Optional[SoundEffect]:
        for sound in self.list_sounds():
            if sound.id == sound_id:
                return sound
        return None

    def add(self, filename: str, data: bytes, mime_type: str = "audio/mpeg") -> SoundEffect:
        """Store an uploaded sound; its name is the filename without extension."""
        sound = SoundEffect(name=Path(filename).stem or filename, url=encode_data_url(mime_type, data))
        records = self.store.get(SOUND_LIBRARY_KEY, [])
        records.append(sound.to_dict())
        self.store.set(SOUND_LIBRARY_KEY, records)
        logger.info(f"Saved sound effect '{sound.name}' ({len(data)} bytes)")
        return sound

    def delete(self, sound_id: str) -> bool:
        records = self.store.get(SOUND_LIBRARY_KEY, [])
        remaining = [r for r in records if r.get("id") != sound_id]
        if len(remaining) == len(records):
            return False
        self.store.set(SOUND_LIBRARY_KEY, remaining)
        return True


class AutosaveWorker:
    """Periodically writes the editor's state so a restart can resume it."""

    def __init__(
        self,
        editor: SceneEditor,
        store: JsonStore,
        interval_seconds: float = DEFAULT_AUTOSAVE_INTERVAL,
    ):
        self.editor = editor
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    def save_now(self) -> dict:
        payload = self.editor.snapshot().to_autosave()
        self.store.set(AUTOSAVE_KEY, payload)
        logger.debug(f"Autosaved {len(payload['characterIds'])} layer(s)")
        return payload

    def restore(self) -> bool:
        """Load the last autosave into the editor, if there is one."""
        data = self.store.get(AUTOSAVE_KEY)
        if not isinstance(data, dict):
            return False
        try:
            self.editor.restore_autosave(data)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable autosave: {e}")
            return False
        logger.info("Restored autosaved scene")
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.save_now()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the loop and write one final autosave."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.save_now()
