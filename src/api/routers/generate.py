"""Scene generation routes: background composition jobs with WebSocket progress."""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Mapping, Optional

from api.dependencies import get_character_library, get_controller, get_editor
from api.schemas import GenerateSceneRequest, JobCreatedResponse
from api.websocket_manager import WebSocketManager
from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import Response
from models.character import Character, SoundEffect
from models.composition import CompositionJob, CompositionStatus
from models.scene import Transform
from services.composition_controller import NO_CHARACTERS_MESSAGE, CompositionError
from services.scene_generation_service import SceneGenerationError
from utils.data_urls import decode_data_url
from utils.logging import job_log_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scene Generation"])

# Generation job storage (in-memory)
generation_jobs: dict[str, CompositionJob] = {}

# WebSocket manager for generation progress
ws_manager = WebSocketManager()

# Keep references to background tasks to prevent garbage collection
_background_tasks: set = set()


def _is_latest(job_id: str) -> bool:
    return get_editor().latest_job_id == job_id


async def _notify_clients(job_id: str, message: dict) -> None:
    """Send a WebSocket message to all clients watching a job."""
    await ws_manager.broadcast(job_id, {"job_id": job_id, **message})


async def _run_generation(
    job_id: str,
    characters: list[Character],
    transforms: Mapping[str, Transform],
    prompt: str,
    sound_effect: Optional[SoundEffect],
) -> None:
    """Compose and generate a scene in the background."""
    job = generation_jobs.get(job_id)
    if job is None:
        logger.error(f"Generation job {job_id} not found")
        return

    async def on_progress(event: dict) -> None:
        if event["type"] == "caption":
            job.caption = event["caption"]
        elif event["type"] == "generating":
            job.status = CompositionStatus.GENERATING
        await _notify_clients(job_id, {"status": job.status.value, **event})

    try:
        job.status = CompositionStatus.PREPROCESSING
        with job_log_context(job_id, layers=len(characters)):
            image = await get_controller().generate_scene(
                characters, transforms, prompt, on_progress
            )

        job.status = CompositionStatus.COMPLETED
        job.image_url = image.data_url
        job.sound_effect_url = sound_effect.url if sound_effect else None
        job.completed_at = datetime.now()
        logger.info(f"Scene generation {job_id} completed ({image.mime_type}, {len(image.data)} bytes)")

        await _notify_clients(job_id, {
            "type": "complete",
            "status": job.status.value,
            "image_url": job.image_url,
            "sound_effect_url": job.sound_effect_url,
            "is_latest": _is_latest(job_id),
        })

    except (CompositionError, SceneGenerationError) as e:
        logger.error(f"Scene generation {job_id} failed: {e}")
        await _fail_job(job, str(e))
    except Exception as e:
        logger.exception(f"Unexpected error in scene generation {job_id}: {e}")
        await _fail_job(job, f"Scene generation failed: {e}")


async def _fail_job(job: CompositionJob, error: str) -> None:
    job.status = CompositionStatus.FAILED
    job.error = error
    job.completed_at = datetime.now()
    await _notify_clients(job.id, {
        "type": "error",
        "status": job.status.value,
        "error": error,
        "is_latest": _is_latest(job.id),
    })


@router.post(
    "/api/generate",
    response_model=JobCreatedResponse,
    summary="Generate scene",
    description="Compose the editor's layers and generate a scene image. Returns 202 with a job_id.",
    responses={202: {"description": "Job accepted"}, 400: {"description": "No characters selected"}},
    status_code=202,
)
async def generate_scene(request: GenerateSceneRequest) -> dict:
    """Start a scene generation job from a snapshot of the editor."""
    editor = get_editor()
    snapshot = editor.snapshot()
    library = get_character_library().as_mapping()
    characters = [library[cid] for cid in snapshot.character_ids if cid in library]
    if not characters:
        raise HTTPException(status_code=400, detail=NO_CHARACTERS_MESSAGE)

    prompt = request.prompt if request.prompt is not None else snapshot.prompt

    job_id = uuid.uuid4().hex[:12]
    generation_jobs[job_id] = CompositionJob(
        id=job_id,
        character_ids=[c.id for c in characters],
        prompt=prompt,
    )
    # Only the most recently started job's result is shown
    editor.latest_job_id = job_id

    # Ensure WS key exists before task starts
    ws_manager.ensure_key(job_id)

    task = asyncio.create_task(
        _run_generation(job_id, characters, snapshot.transforms, prompt, snapshot.sound_effect)
    )
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    logger.info(f"Started scene generation job {job_id} with {len(characters)} layer(s)")
    return {"job_id": job_id, "status": CompositionStatus.PENDING.value}


@router.get("/api/generate/jobs", summary="List generation jobs")
async def list_jobs() -> list[dict]:
    """List all generation jobs, newest first."""
    jobs = sorted(generation_jobs.values(), key=lambda j: j.created_at, reverse=True)
    return [job.to_dict() for job in jobs]


@router.get(
    "/api/generate/latest",
    summary="Latest generation",
    description="The job whose result the scene view shows (the most recently started).",
    responses={404: {"description": "No generation started"}},
)
async def get_latest_job() -> dict:
    """Get the most recently started job."""
    job_id = get_editor().latest_job_id
    if job_id is None or job_id not in generation_jobs:
        raise HTTPException(status_code=404, detail="No generation started")
    return generation_jobs[job_id].to_dict()


@router.get(
    "/api/generate/jobs/{job_id}",
    summary="Get generation job",
    responses={404: {"description": "Job not found"}},
)
async def get_job(job_id: str) -> dict:
    """Get job status and result."""
    if job_id not in generation_jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    return {**generation_jobs[job_id].to_dict(), "is_latest": _is_latest(job_id)}


@router.get(
    "/api/generate/jobs/{job_id}/image",
    summary="Download scene image",
    responses={404: {"description": "Job not found or not completed"}},
)
async def download_job_image(job_id: str) -> Response:
    """Download the generated image of a completed job."""
    job = generation_jobs.get(job_id)
    if job is None or job.image_url is None:
        raise HTTPException(status_code=404, detail="Job not found or not completed")
    mime_type, data = decode_data_url(job.image_url)
    return Response(content=data, media_type=mime_type)


@router.delete(
    "/api/generate/jobs/{job_id}",
    summary="Delete generation job",
    responses={404: {"description": "Job not found"}},
)
async def delete_job(job_id: str) -> dict:
    """Delete a generation job."""
    if job_id not in generation_jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    del generation_jobs[job_id]
    ws_manager.cleanup(job_id)
    return {"message": "Job deleted", "job_id": job_id}


@router.websocket("/ws/generate/{job_id}")
async def websocket_generation(websocket: WebSocket, job_id: str) -> None:
    """WebSocket endpoint for real-time generation progress."""
    if job_id not in generation_jobs:
        await websocket.accept()
        await websocket.send_json({"type": "error", "message": "Job not found"})
        await websocket.close()
        return

    await ws_manager.connect(job_id, websocket)

    try:
        job = generation_jobs[job_id]

        # Send current status immediately
        await websocket.send_json({"type": "status", "job_id": job_id, **job.to_dict()})

        if job.is_finished:
            msg_type = "complete" if job.status == CompositionStatus.COMPLETED else "error"
            await websocket.send_json({
                "type": msg_type,
                "job_id": job_id,
                "status": job.status.value,
                "image_url": job.image_url,
                "sound_effect_url": job.sound_effect_url,
                "error": job.error,
                "is_latest": _is_latest(job_id),
            })

        # Keep connection alive
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(job_id, websocket)
