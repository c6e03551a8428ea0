#!/usr/bin/env python
"""FastAPI server for the Character Studio web interface."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_autosave_worker, get_config
from api.routers import characters, core, editor, generate, scenes
from utils.config import validate_config
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Restore the autosaved scene on startup and keep autosaving until shutdown."""
    config = get_config()
    setup_logging(config.get("log_level", "INFO"), json_output=config.get("log_json", False))

    for error in validate_config(config):
        logger.warning(f"Configuration: {error}")

    autosave = get_autosave_worker()
    autosave.restore()
    autosave.start()
    logger.info(f"Character Studio API started (library: {config.get('storage_dir')})")
    try:
        yield
    finally:
        await autosave.stop()
        logger.info("Character Studio API stopped")


app = FastAPI(title="Character Studio API", version="1.0.0", lifespan=lifespan)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # Vite default port
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(core.router)
app.include_router(characters.router)
app.include_router(scenes.router)
app.include_router(editor.router)
app.include_router(generate.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
