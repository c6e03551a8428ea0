"""Scene editor routes: layer selection, ordering, transforms and prompt."""

import logging

from api.dependencies import (
    get_character_library,
    get_controller,
    get_editor,
    get_gesture,
    get_sound_library,
)
from api.schemas import (
    ComposePreviewResponse,
    EditorCharacterRequest,
    EditorMoveLayerRequest,
    EditorPositionRequest,
    EditorPromptRequest,
    EditorReorderRequest,
    EditorRotationRequest,
    GestureBeginRequest,
    GestureMoveRequest,
    SoundEffectRequest,
)
from fastapi import APIRouter, HTTPException
from services.composition_controller import CompositionError
from services.gestures import GestureError, Point, layer_center
from services.transform_store import snap_rotation

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Editor"])


def _require_layer(character_id: str) -> None:
    if character_id not in get_editor().layers:
        raise HTTPException(status_code=404, detail="Character is not in the scene")


@router.get("/api/editor", summary="Editor state", description="Layer order, transforms, prompt and sound effect of the scene being built.")
async def get_editor_state() -> dict:
    """Current editor state."""
    return get_editor().to_dict()


@router.post(
    "/api/editor/characters/toggle",
    summary="Toggle character",
    description="Select a library character as the new front layer, or deselect it.",
    responses={404: {"description": "Character not found"}},
)
async def toggle_character(request: EditorCharacterRequest) -> dict:
    """Library click: select or deselect."""
    editor = get_editor()
    if request.character_id not in editor.layers and get_character_library().get(request.character_id) is None:
        raise HTTPException(status_code=404, detail="Character not found")
    selected = editor.toggle_character(request.character_id)
    return {"selected": selected, **editor.to_dict()}


@router.post(
    "/api/editor/characters",
    summary="Add character",
    responses={404: {"description": "Character not found"}},
)
async def add_character(request: EditorCharacterRequest) -> dict:
    """Add a character as the new front layer."""
    if get_character_library().get(request.character_id) is None:
        raise HTTPException(status_code=404, detail="Character not found")
    editor = get_editor()
    editor.add_character(request.character_id)
    return editor.to_dict()


@router.delete(
    "/api/editor/characters/{character_id}",
    summary="Remove character",
    responses={404: {"description": "Character is not in the scene"}},
)
async def remove_character(character_id: str) -> dict:
    """Remove a layer from the scene."""
    _require_layer(character_id)
    editor = get_editor()
    editor.remove_character(character_id)
    return editor.to_dict()


@router.put(
    "/api/editor/layers",
    summary="Reorder layers",
    description="Replace the layer order (back to front) with a permutation of it.",
    responses={400: {"description": "Not a permutation of the current layers"}},
)
async def reorder_layers(request: EditorReorderRequest) -> dict:
    """Set the full layer order."""
    editor = get_editor()
    try:
        editor.reorder(request.character_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return editor.to_dict()


@router.post(
    "/api/editor/layers/move",
    summary="Move layer",
    description="Drag-and-drop reorder: move one layer onto, before or after another.",
    responses={400: {"description": "Invalid placement"}},
)
async def move_layer(request: EditorMoveLayerRequest) -> dict:
    """Move a layer relative to a target layer."""
    editor = get_editor()
    try:
        moved = editor.move_layer(request.character_id, request.target_id, request.placement)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"moved": moved, **editor.to_dict()}


@router.put(
    "/api/editor/characters/{character_id}/position",
    summary="Set position",
    responses={404: {"description": "Character is not in the scene"}},
)
async def set_position(character_id: str, request: EditorPositionRequest) -> dict:
    """Set a layer's position."""
    _require_layer(character_id)
    return get_editor().set_position(character_id, request.x, request.y).to_dict()


@router.put(
    "/api/editor/characters/{character_id}/rotation",
    summary="Set rotation",
    responses={404: {"description": "Character is not in the scene"}},
)
async def set_rotation(character_id: str, request: EditorRotationRequest) -> dict:
    """Set a layer's rotation, optionally snapped to 45 degrees."""
    _require_layer(character_id)
    degrees = snap_rotation(request.degrees) if request.snap else request.degrees
    return get_editor().set_rotation(character_id, degrees).to_dict()



def _gesture_state() -> dict:
    gesture = get_gesture()
    return {"state": gesture.state.value, "characterId": gesture.character_id}


@router.post(
    "/api/editor/gesture/begin",
    summary="Begin gesture",
    description="Pointer-down on a layer: start dragging it or rotating it around a pivot.",
    responses={404: {"description": "Character is not in the scene"}},
)
async def begin_gesture(request: GestureBeginRequest) -> dict:
    """Start a drag or rotate gesture."""
    gesture = get_gesture()
    pointer = Point(request.x, request.y)
    try:
        if request.mode == "drag":
            gesture.begin_drag(request.character_id, pointer)
        else:
            if request.center_x is not None and request.center_y is not None:
                center = Point(request.center_x, request.center_y)
            else:
                editor = get_editor()
                _require_layer(request.character_id)
                size = editor.transforms.layer_size
                center = layer_center(editor.transform_for(request.character_id).position, size, size)
            gesture.begin_rotate(request.character_id, pointer, center)
    except GestureError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _gesture_state()


@router.post(
    "/api/editor/gesture/move",
    summary="Move gesture",
    description="Pointer-move: update the active layer's position or rotation.",
)
async def move_gesture(request: GestureMoveRequest) -> dict:
    """Apply a pointer move to the active gesture."""
    transform = get_gesture().move(Point(request.x, request.y), snap=request.snap)
    return {**_gesture_state(), "transform": transform.to_dict() if transform else None}


@router.post("/api/editor/gesture/end", summary="End gesture")
async def end_gesture() -> dict:
    """Pointer-up: return to idle."""
    get_gesture().end()
    return _gesture_state()


@router.put("/api/editor/prompt", summary="Set prompt")
async def set_prompt(request: EditorPromptRequest) -> dict:
    """Set the scene prompt."""
    editor = get_editor()
    editor.prompt = request.prompt
    return editor.to_dict()


@router.put(
    "/api/editor/sound",
    summary="Set sound effect",
    description="Attach a library sound effect to the scene, or clear it with a null id.",
    responses={404: {"description": "Sound not found"}},
)
async def set_sound_effect(request: SoundEffectRequest) -> dict:
    """Attach or clear the scene's sound effect."""
    editor = get_editor()
    if request.sound_id is None:
        editor.sound_effect = None
    else:
        sound = get_sound_library().get(request.sound_id)
        if sound is None:
            raise HTTPException(status_code=404, detail="Sound not found")
        editor.sound_effect = sound
    return editor.to_dict()


@router.post(
    "/api/editor/preview",
    response_model=ComposePreviewResponse,
    summary="Preview composition",
    description="Assemble the generation request (parts and prompt) without calling the backend.",
    responses={400: {"description": "No characters selected"}},
)
async def preview_composition() -> dict:
    """Compose the scene without generating it."""
    editor = get_editor()
    snapshot = editor.snapshot()
    characters = editor.selected_characters(get_character_library().as_mapping())
    try:
        request = await get_controller().compose_scene(
            characters, snapshot.transforms, snapshot.prompt
        )
    except CompositionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return request.to_dict()
