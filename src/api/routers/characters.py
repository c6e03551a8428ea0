"""Character library routes for the Character Studio API."""

import logging
import uuid
from typing import Any

from api.dependencies import get_character_library, get_editor, get_generator
from api.schemas import (
    CharacterCreateRequest,
    CharacterDescribeRequest,
    CharacterEditRequest,
    CharacterGenerateRequest,
)
from fastapi import APIRouter, Body, HTTPException
from models.character import Character
from services.library_store import LibraryImportError
from services.scene_generation_service import SceneGenerationError
from utils.data_urls import is_data_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Characters"])


def _require_data_url(image_url: str) -> str:
    image_url = image_url.strip()
    if not is_data_url(image_url):
        raise HTTPException(status_code=400, detail="Image must be a base64 data URL")
    return image_url


@router.get("/api/characters", summary="List characters", description="List all characters in the library.")
async def list_characters() -> list[dict]:
    """List library characters."""
    return [c.to_dict() for c in get_character_library().list_characters()]


@router.post(
    "/api/characters",
    summary="Create character",
    description="Add a character from an uploaded or generated image.",
    status_code=201,
    responses={400: {"description": "Invalid image"}},
)
async def create_character(request: CharacterCreateRequest) -> dict:
    """Add a character to the library."""
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")

    character = Character(
        id=str(uuid.uuid4()),
        name=name,
        image_url=_require_data_url(request.image_url),
        prompt=request.prompt.strip(),
    )
    return get_character_library().add(character).to_dict()


@router.post(
    "/api/characters/import",
    summary="Import characters",
    description="Import an exported character file, or an exported library array.",
    responses={400: {"description": "Invalid character file"}},
)
async def import_characters(data: Any = Body(...)) -> list[dict]:
    """Import one character or a whole exported library."""
    library = get_character_library()
    try:
        if isinstance(data, list):
            imported = library.import_library(data)
        else:
            imported = [library.import_character(data)]
    except LibraryImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [c.to_dict() for c in imported]


@router.get("/api/characters/export", summary="Export library", description="Export every character as a JSON array.")
async def export_characters() -> list[dict]:
    """Export the whole library."""
    return get_character_library().export()


@router.post(
    "/api/characters/describe",
    summary="Describe character image",
    description="Write a character description for an uploaded image.",
    responses={400: {"description": "Invalid image"}, 502: {"description": "Backend error"}},
)
async def describe_character(request: CharacterDescribeRequest) -> dict:
    """Describe an uploaded character image."""
    image_url = _require_data_url(request.image_url)
    try:
        description = await get_generator().describe_character(image_url)
    except SceneGenerationError as e:
        logger.error(f"Character description failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    return {"description": description}


@router.post(
    "/api/characters/generate",
    summary="Generate character",
    description="Generate a character portrait from text; saved to the library when a name is given.",
    responses={502: {"description": "Backend error"}},
)
async def generate_character(request: CharacterGenerateRequest) -> dict:
    """Generate a character portrait."""
    prompt = request.prompt.strip()
    if not prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")

    try:
        image_url = await get_generator().generate_character_image(prompt)
    except SceneGenerationError as e:
        logger.error(f"Character generation failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    result: dict = {"image_url": image_url, "character": None}
    if request.name and request.name.strip():
        character = Character(
            id=str(uuid.uuid4()),
            name=request.name.strip(),
            image_url=image_url,
            prompt=prompt,
        )
        result["character"] = get_character_library().add(character).to_dict()
    return result


@router.get(
    "/api/characters/{character_id}",
    summary="Get character",
    responses={404: {"description": "Character not found"}},
)
async def get_character(character_id: str) -> dict:
    """Get one character."""
    character = get_character_library().get(character_id)
    if character is None:
        raise HTTPException(status_code=404, detail="Character not found")
    return character.to_dict()


@router.post(
    "/api/characters/{character_id}/edit",
    summary="Edit character image",
    description="Apply a text instruction to a character's image and store the result.",
    responses={404: {"description": "Character not found"}, 502: {"description": "Backend error"}},
)
async def edit_character(character_id: str, request: CharacterEditRequest) -> dict:
    """Edit a character's image in place."""
    library = get_character_library()
    character = library.get(character_id)
    if character is None:
        raise HTTPException(status_code=404, detail="Character not found")

    try:
        edited = await get_generator().edit_image(character.image_url, request.prompt.strip())
    except SceneGenerationError as e:
        logger.error(f"Editing {character.name} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    character.image_url = edited.data_url
    return library.add(character).to_dict()


@router.delete(
    "/api/characters/{character_id}",
    summary="Delete character",
    description="Remove a character from the library and from the scene being edited.",
    responses={404: {"description": "Character not found"}},
)
async def delete_character(character_id: str) -> dict:
    """Delete a character."""
    if not get_character_library().delete(character_id):
        raise HTTPException(status_code=404, detail="Character not found")
    get_editor().remove_character(character_id)
    return {"message": "Character deleted", "character_id": character_id}
