"""Service singletons and dependency injection for the Character Studio API."""

from services.composition_controller import CompositionController
from services.gestures import TransformGesture
from services.image_preprocessor import ImagePreprocessor
from services.library_store import (
    AutosaveWorker,
    CharacterLibrary,
    JsonStore,
    SceneLibrary,
    SoundLibrary,
)
from services.scene_editor import SceneEditor
from services.scene_generation_service import GeminiSceneGenerator
from services.transform_store import TransformStore
from utils.config import load_config

# Service singletons
_config: dict | None = None
_store: JsonStore | None = None
_character_library: CharacterLibrary | None = None
_scene_library: SceneLibrary | None = None
_sound_library: SoundLibrary | None = None
_editor: SceneEditor | None = None
_generator: GeminiSceneGenerator | None = None
_controller: CompositionController | None = None
_autosave_worker: AutosaveWorker | None = None
_gesture: TransformGesture | None = None


def get_config() -> dict:
    """Get the loaded configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_store() -> JsonStore:
    """Get or create the JSON document store."""
    global _store
    if _store is None:
        _store = JsonStore(get_config().get("storage_dir"))
    return _store


def get_character_library() -> CharacterLibrary:
    """Get or create the character library instance."""
    global _character_library
    if _character_library is None:
        _character_library = CharacterLibrary(get_store())
    return _character_library


def get_scene_library() -> SceneLibrary:
    """Get or create the saved-scene library instance."""
    global _scene_library
    if _scene_library is None:
        _scene_library = SceneLibrary(get_store())
    return _scene_library


def get_sound_library() -> SoundLibrary:
    """Get or create the sound effect library instance."""
    global _sound_library
    if _sound_library is None:
        _sound_library = SoundLibrary(get_store())
    return _sound_library


def get_editor() -> SceneEditor:
    """Get or create the live scene editor."""
    global _editor
    if _editor is None:
        config = get_config()
        transforms = TransformStore(
            viewport_width=config.get("viewport_width", 1280),
            viewport_height=config.get("viewport_height", 720),
        )
        _editor = SceneEditor(
            transforms=transforms,
            strict=config.get("strict_layer_state", False),
        )
    return _editor


def get_gesture() -> TransformGesture:
    """Get or create the pointer gesture bound to the live editor."""
    global _gesture
    if _gesture is None:
        _gesture = TransformGesture(get_editor())
    return _gesture


def get_generator() -> GeminiSceneGenerator:
    """Get or create the Gemini scene generator."""
    global _generator
    if _generator is None:
        config = get_config()
        _generator = GeminiSceneGenerator(
            api_key=config.get("gemini_api_key", ""),
            image_model=config.get("gemini_image_model", "gemini-2.5-flash-image"),
            text_model=config.get("gemini_text_model", "gemini-2.5-flash"),
            imagen_model=config.get("imagen_model", "imagen-4.0-generate-001"),
        )
    return _generator


def get_controller() -> CompositionController:
    """Get or create the composition controller."""
    global _controller
    if _controller is None:
        max_edge = get_config().get("max_edge", 512)
        _controller = CompositionController(
            preprocessor=ImagePreprocessor(max_edge),
            generator=get_generator(),
            max_edge=max_edge,
        )
    return _controller


def get_autosave_worker() -> AutosaveWorker:
    """Get or create the autosave worker for the live editor."""
    global _autosave_worker
    if _autosave_worker is None:
        _autosave_worker = AutosaveWorker(
            editor=get_editor(),
            store=get_store(),
            interval_seconds=get_config().get("autosave_interval_seconds", 60),
        )
    return _autosave_worker


def reset_services(
    config: dict | None = None,
    generator: GeminiSceneGenerator | None = None,
) -> None:
    """Drop all singletons so the next access rebuilds them.

    Args:
        config: Configuration to use instead of the environment
        generator: Generator to use instead of building one from config
    """
    global _config, _store, _character_library, _scene_library, _sound_library
    global _editor, _generator, _controller, _autosave_worker, _gesture
    _config = config
    _store = None
    _character_library = None
    _scene_library = None
    _sound_library = None
    _editor = None
    _generator = generator
    _controller = None
    _autosave_worker = None
    _gesture = None
