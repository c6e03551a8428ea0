"""Pydantic request/response models for the Character Studio API."""

from typing import Any, Literal

from pydantic import BaseModel, Field

# =============================================================================
# Response Models
# =============================================================================


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Character Studio API", "version": "1.0.0"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    generator: dict
    characters: int = 0
    layers: int = 0

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "healthy",
                    "generator": {"configured": True, "available": True, "image_model": "gemini-2.5-flash-image"},
                    "characters": 3,
                    "layers": 2,
                }
            ]
        }
    }


class JobCreatedResponse(BaseModel):
    """Response when a scene generation job is accepted."""

    job_id: str
    status: str

    model_config = {"json_schema_extra": {"examples": [{"job_id": "3f2a9c1b7d4e", "status": "pending"}]}}


# =============================================================================
# Character Library
# =============================================================================


class CharacterCreateRequest(BaseModel):
    """Request to add a character to the library."""

    name: str = Field(..., min_length=1, description="Display name used in the layering narration")
    image_url: str = Field(..., description="Base64 data URL of the character image")
    prompt: str = Field(default="", description="Description or generation prompt")


class CharacterDescribeRequest(BaseModel):
    """Request to describe an uploaded character image."""

    image_url: str = Field(..., description="Base64 data URL of the character image")


class CharacterGenerateRequest(BaseModel):
    """Request to generate a character portrait from text."""

    prompt: str = Field(..., min_length=1, description="Character description")
    name: str | None = Field(default=None, description="Save under this name when given")


class CharacterEditRequest(BaseModel):
    """Request to edit a library character's image with an instruction."""

    prompt: str = Field(..., min_length=1, description="Edit instruction")


# =============================================================================
# Scenes and Sounds
# =============================================================================


class SceneSaveRequest(BaseModel):
    """Save the editor state as a named scene."""

    name: str = Field(..., description="Scene name")
    scene_id: str | None = Field(default=None, description="Re-save over this scene id")


class SoundEffectRequest(BaseModel):
    """Attach (or with ``sound_id`` null, detach) a library sound."""

    sound_id: str | None = None


# =============================================================================
# Editor
# =============================================================================


class EditorCharacterRequest(BaseModel):
    """Select or deselect a character."""

    character_id: str


class EditorReorderRequest(BaseModel):
    """Replace the layer order with a permutation of it (back to front)."""

    character_ids: list[str]


class EditorMoveLayerRequest(BaseModel):
    """Move one layer relative to another."""

    character_id: str
    target_id: str
    placement: str = Field(default="at", description="One of: at, before, after")


class EditorPositionRequest(BaseModel):
    """Set a layer's top-left position on the stage."""

    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)


class EditorRotationRequest(BaseModel):
    """Set a layer's rotation in degrees (clockwise, unbounded)."""

    degrees: float = Field(allow_inf_nan=False)
    snap: bool = Field(default=False, description="Snap to the nearest 45 degrees")


class GestureBeginRequest(BaseModel):
    """Pointer-down on a layer: its body to drag, its handle to rotate.

    For rotation the pivot defaults to the center of the layer's nominal
    on-stage box when ``center_x``/``center_y`` are omitted.
    """

    character_id: str
    mode: Literal["drag", "rotate"]
    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)
    center_x: float | None = Field(default=None, allow_inf_nan=False)
    center_y: float | None = Field(default=None, allow_inf_nan=False)


class GestureMoveRequest(BaseModel):
    """Pointer-move during a gesture."""

    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)
    snap: bool = Field(default=False, description="Shift held: snap rotation to 45 degrees")


class EditorPromptRequest(BaseModel):
    """Set the scene prompt (plain text or a JSON directive)."""

    prompt: str


# =============================================================================
# Generation
# =============================================================================


class GenerateSceneRequest(BaseModel):
    """Start a scene generation from the editor state.

    ``prompt`` overrides the editor prompt for this run only.
    """

    prompt: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"prompt": "Two characters having a picnic in a sunny park."},
                {"prompt": '{"prompt": "A duel at dawn", "transparentBackground": true}'},
            ]
        }
    }


class ComposePreviewResponse(BaseModel):
    """Assembled request without calling the backend."""

    parts: list[dict[str, Any]]
    promptText: str
    directive: dict[str, Any]
    characterNames: list[str]
    responseMimeType: str | None = None
