"""Configuration loading and validation for Character Studio."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")


def load_config() -> dict:
    """Load configuration from environment variables."""

    def resolve_path(path: str | None, default: Path) -> str:
        if not path:
            return str(default)
        if Path(path).expanduser().is_absolute():
            return str(Path(path).expanduser())
        return str(PROJECT_ROOT / path)

    config = {
        # Required API key
        "gemini_api_key": os.getenv("GEMINI_API_KEY", ""),
        # Model configurations
        "gemini_image_model": os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
        "gemini_text_model": os.getenv("GEMINI_TEXT_MODEL", "gemini-2.5-flash"),
        "imagen_model": os.getenv("IMAGEN_MODEL", "imagen-4.0-generate-001"),
        # Library storage
        "storage_dir": resolve_path(
            os.getenv("STORAGE_DIR"), Path.home() / ".character_studio"
        ),
        # Layer preprocessing: bound on each layer's longest side
        "max_edge": int(os.getenv("MAX_EDGE", "512")),
        # Autosave of the live scene
        "autosave_interval_seconds": float(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "60")),
        # Raise on layer/transform mismatches instead of degrading (debug)
        "strict_layer_state": os.getenv("STRICT_LAYER_STATE", "false").lower() == "true",
        # Composition stage size used to center new layers
        "viewport_width": float(os.getenv("VIEWPORT_WIDTH", "1280")),
        "viewport_height": float(os.getenv("VIEWPORT_HEIGHT", "720")),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if not config.get("gemini_api_key"):
        errors.append("GEMINI_API_KEY is required")

    if config.get("max_edge", 0) < 16:
        errors.append("MAX_EDGE must be at least 16")

    if config.get("autosave_interval_seconds", 0) <= 0:
        errors.append("AUTOSAVE_INTERVAL_SECONDS must be positive")

    if config.get("viewport_width", 0) <= 0 or config.get("viewport_height", 0) <= 0:
        errors.append("VIEWPORT_WIDTH and VIEWPORT_HEIGHT must be positive")

    storage_dir = config.get("storage_dir")
    if storage_dir:
        try:
            Path(storage_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create storage folder: {e}")

    return errors


def setup_logging(log_level: str = "INFO") -> None:
    """Set up console logging with Rich for the command line tools."""
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,  # Disable markup to avoid conflicts
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[rich_handler],
        format="%(message)s",
    )

    # Suppress noisy third-party loggers
    for logger_name in ("httpx", "httpcore", "google_genai", "google_genai.models", "PIL"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)
