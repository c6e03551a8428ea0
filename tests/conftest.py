"""Shared pytest fixtures for Character Studio tests."""

import io
import sys
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from models.character import Character
from models.composition import GeneratedSceneImage
from utils.data_urls import encode_data_url


def make_image_bytes(
    width: int,
    height: int,
    color: tuple = (255, 0, 0, 255),
    fmt: str = "PNG",
) -> bytes:
    """Create a solid-color image payload."""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    fill = color if mode == "RGBA" else color[:3]
    buffer = io.BytesIO()
    Image.new(mode, (width, height), fill).save(buffer, format=fmt)
    return buffer.getvalue()


def make_data_url(width: int, height: int, color: tuple = (255, 0, 0, 255)) -> str:
    """Create a solid-color PNG data URL."""
    return encode_data_url("image/png", make_image_bytes(width, height, color))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def image_data_url() -> Callable[..., str]:
    """Factory for solid-color PNG data URLs."""
    return make_data_url


@pytest.fixture
def sample_config(temp_dir: Path) -> Dict:
    """Sample configuration for testing."""
    return {
        "gemini_api_key": "test_gemini_key",
        "gemini_image_model": "gemini-2.5-flash-image",
        "gemini_text_model": "gemini-2.5-flash",
        "imagen_model": "imagen-4.0-generate-001",
        "storage_dir": str(temp_dir / "library"),
        "max_edge": 512,
        "autosave_interval_seconds": 60.0,
        "strict_layer_state": False,
        "viewport_width": 1280.0,
        "viewport_height": 720.0,
        "log_level": "INFO",
        "log_json": False,
    }


@pytest.fixture
def sample_characters() -> list[Character]:
    """Three library characters with distinct image sizes."""
    return [
        Character(id="char-a", name="Alice", image_url=make_data_url(100, 60, (255, 0, 0, 255))),
        Character(id="char-b", name="Bob", image_url=make_data_url(40, 80, (0, 0, 255, 255))),
        Character(id="char-c", name="Carol", image_url=make_data_url(64, 64, (0, 255, 0, 255))),
    ]


@pytest.fixture
def generated_image() -> GeneratedSceneImage:
    """A backend result image."""
    return GeneratedSceneImage(mime_type="image/png", data=make_image_bytes(32, 32))


@pytest.fixture
def mock_generator(generated_image: GeneratedSceneImage) -> MagicMock:
    """Mock scene generator whose generate() returns a PNG."""
    mock = MagicMock()
    mock.generate = AsyncMock(return_value=generated_image)
    mock.describe_character = AsyncMock(return_value="A cheerful knight in red armor.")
    mock.generate_character_image = AsyncMock(
        return_value=encode_data_url("image/jpeg", make_image_bytes(16, 16, fmt="JPEG"))
    )
    mock.edit_image = AsyncMock(return_value=generated_image)
    mock.check_health = AsyncMock(
        return_value={"configured": True, "available": True, "image_model": "gemini-2.5-flash-image"}
    )
    return mock
