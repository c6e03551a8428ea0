"""Saved scene and sound effect routes for the Character Studio API."""

import logging
from typing import Any

from api.dependencies import get_editor, get_scene_library, get_sound_library
from api.schemas import SceneSaveRequest
from fastapi import APIRouter, Body, File, HTTPException, UploadFile
from services.library_store import LibraryImportError
from services.scene_editor import SceneEditorError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scenes"])

# Largest sound effect accepted for upload
MAX_SOUND_BYTES = 10 * 1024 * 1024


# =============================================================================
# Scenes
# =============================================================================


@router.get("/api/scenes", summary="List scenes", description="List saved scenes, newest first.")
async def list_scenes() -> list[dict]:
    """List saved scenes."""
    return [s.to_dict() for s in get_scene_library().list_scenes()]


@router.post(
    "/api/scenes",
    summary="Save scene",
    description="Save the editor state as a scene. Passing scene_id re-saves over that scene.",
    status_code=201,
    responses={400: {"description": "Empty scene or missing name"}},
)
async def save_scene(request: SceneSaveRequest) -> dict:
    """Save the current editor state."""
    try:
        scene = get_editor().save_scene(request.name, request.scene_id)
    except SceneEditorError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return get_scene_library().save(scene).to_dict()


@router.post(
    "/api/scenes/import",
    summary="Import scene",
    description="Import an exported scene file.",
    responses={400: {"description": "Invalid scene file"}},
)
async def import_scene(data: Any = Body(...)) -> dict:
    """Import one exported scene."""
    try:
        scene = get_scene_library().import_scene(data)
    except LibraryImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return scene.to_dict()


@router.get(
    "/api/scenes/{scene_id}/export",
    summary="Export scene",
    responses={404: {"description": "Scene not found"}},
)
async def export_scene(scene_id: str) -> dict:
    """Export one scene as JSON."""
    data = get_scene_library().export(scene_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Scene not found")
    return data


@router.post(
    "/api/scenes/{scene_id}/load",
    summary="Load scene",
    description="Replace the editor state with a saved scene.",
    responses={404: {"description": "Scene not found"}},
)
async def load_scene(scene_id: str) -> dict:
    """Load a saved scene into the editor."""
    scene = get_scene_library().get(scene_id)
    if scene is None:
        raise HTTPException(status_code=404, detail="Scene not found")
    editor = get_editor()
    editor.load_scene(scene)
    return editor.to_dict()


@router.delete(
    "/api/scenes/{scene_id}",
    summary="Delete scene",
    responses={404: {"description": "Scene not found"}},
)
async def delete_scene(scene_id: str) -> dict:
    """Delete a saved scene."""
    if not get_scene_library().delete(scene_id):
        raise HTTPException(status_code=404, detail="Scene not found")
    return {"message": "Scene deleted", "scene_id": scene_id}


# =============================================================================
# Sound Effects
# =============================================================================


@router.get("/api/sounds", summary="List sound effects")
async def list_sounds() -> list[dict]:
    """List uploaded sound effects."""
    return [s.to_dict() for s in get_sound_library().list_sounds()]


@router.post(
    "/api/sounds",
    summary="Upload sound effect",
    description="Upload an audio file to the sound library.",
    status_code=201,
    responses={400: {"description": "Not an audio file or too large"}},
)
async def upload_sound(file: UploadFile = File(...)) -> dict:
    """Store an uploaded sound effect."""
    content_type = file.content_type or ""
    if not content_type.startswith("audio/"):
        raise HTTPException(status_code=400, detail="File must be an audio file")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(data) > MAX_SOUND_BYTES:
        raise HTTPException(status_code=400, detail="File is too large")

    sound = get_sound_library().add(file.filename or "sound", data, content_type)
    return sound.to_dict()


@router.delete(
    "/api/sounds/{sound_id}",
    summary="Delete sound effect",
    responses={404: {"description": "Sound not found"}},
)
async def delete_sound(sound_id: str) -> dict:
    """Delete a sound effect."""
    if not get_sound_library().delete(sound_id):
        raise HTTPException(status_code=404, detail="Sound not found")
    return {"message": "Sound deleted", "sound_id": sound_id}
