"""Core routes for the Character Studio API (root and health check)."""

from api.dependencies import get_character_library, get_editor, get_generator
from api.schemas import HealthResponse, RootResponse
from fastapi import APIRouter

router = APIRouter(tags=["Core"])


@router.get(
    "/",
    response_model=RootResponse,
    summary="API root",
    description="Returns API name and version.",
)
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Character Studio API", "version": "1.0.0"}


@router.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns server health, generation backend configuration and library counts.",
)
async def health() -> dict:
    """Health check endpoint."""
    generator = await get_generator().check_health()
    return {
        "status": "healthy",
        "generator": generator,
        "characters": len(get_character_library().list_characters()),
        "layers": len(get_editor().layers),
    }
