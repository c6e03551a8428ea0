"""Unit tests for the Gemini scene generator with a mocked client."""

import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import errors
from PIL import Image

from models.composition import GeneratedSceneImage, ImagePart
from services.scene_generation_service import (
    GeminiSceneGenerator,
    SceneGenerationError,
    convert_image,
)


def _image_bytes(fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), (200, 100, 50)).save(buffer, format=fmt)
    return buffer.getvalue()


def _response(*parts) -> SimpleNamespace:
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))],
        text=None,
    )


def _inline(mime_type: str, data: bytes) -> SimpleNamespace:
    return SimpleNamespace(inline_data=SimpleNamespace(mime_type=mime_type, data=data))


def _text_part(text: str) -> SimpleNamespace:
    return SimpleNamespace(inline_data=None, text=text)


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    client.aio.models.generate_images = AsyncMock()
    return client


@pytest.fixture
def generator(mock_client) -> GeminiSceneGenerator:
    return GeminiSceneGenerator(api_key="test-key", client=mock_client)


@pytest.mark.unit
class TestGenerate:
    """Tests for multi-image scene generation."""

    @pytest.mark.asyncio
    async def test_returns_first_image(self, generator, mock_client):
        png = _image_bytes()
        mock_client.aio.models.generate_content.return_value = _response(
            _text_part("Here you go"), _inline("image/png", png), _inline("image/png", b"second")
        )

        image = await generator.generate([ImagePart(b"a"), ImagePart(b"b")], "Create a new scene")

        assert image.mime_type == "image/png"
        assert image.data == png

    @pytest.mark.asyncio
    async def test_images_precede_text(self, generator, mock_client):
        """Contents are the image parts in order, then the instruction."""
        mock_client.aio.models.generate_content.return_value = _response(
            _inline("image/png", _image_bytes())
        )

        await generator.generate(
            [ImagePart(b"back", "image/png"), ImagePart(b"front", "image/png")], "the text"
        )

        kwargs = mock_client.aio.models.generate_content.await_args.kwargs
        contents = kwargs["contents"]
        assert kwargs["model"] == "gemini-2.5-flash-image"
        assert [c.inline_data.data for c in contents[:2]] == [b"back", b"front"]
        assert contents[2].text == "the text"
        assert kwargs["config"].response_modalities == ["IMAGE"]

    @pytest.mark.asyncio
    async def test_no_image_raises(self, generator, mock_client):
        mock_client.aio.models.generate_content.return_value = _response(_text_part("Sorry"))
        with pytest.raises(SceneGenerationError, match="failed to produce an image"):
            await generator.generate([ImagePart(b"a")], "x")

    @pytest.mark.asyncio
    async def test_empty_candidates_raise(self, generator, mock_client):
        mock_client.aio.models.generate_content.return_value = SimpleNamespace(candidates=None)
        with pytest.raises(SceneGenerationError):
            await generator.generate([ImagePart(b"a")], "x")

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self, generator, mock_client):
        mock_client.aio.models.generate_content.side_effect = errors.APIError(
            500, {"error": {"message": "backend exploded", "status": "INTERNAL"}}
        )
        with pytest.raises(SceneGenerationError, match="Gemini API error"):
            await generator.generate([ImagePart(b"a")], "x")

    @pytest.mark.asyncio
    async def test_unconvertible_result_raises(self, generator, mock_client):
        mock_client.aio.models.generate_content.return_value = _response(
            _inline("image/jpeg", b"truncated")
        )
        with pytest.raises(SceneGenerationError):
            await generator.generate([ImagePart(b"a")], "x", response_mime_type="image/png")

    @pytest.mark.asyncio
    async def test_converts_to_requested_format(self, generator, mock_client):
        """A JPEG answer to a transparency request is re-encoded as PNG."""
        mock_client.aio.models.generate_content.return_value = _response(
            _inline("image/jpeg", _image_bytes("JPEG"))
        )

        image = await generator.generate([ImagePart(b"a")], "x", response_mime_type="image/png")

        assert image.mime_type == "image/png"
        assert image.data.startswith(b"\x89PNG")


@pytest.mark.unit
class TestCharacterCreation:
    """Tests for describe/generate/edit helpers."""

    @pytest.mark.asyncio
    async def test_describe_character(self, generator, mock_client):
        mock_client.aio.models.generate_content.return_value = SimpleNamespace(text="A brave knight")
        description = await generator.describe_character("data:image/png;base64,aGVsbG8=")

        assert description == "A brave knight"
        assert mock_client.aio.models.generate_content.await_args.kwargs["model"] == "gemini-2.5-flash"

    @pytest.mark.asyncio
    async def test_describe_rejects_non_data_url(self, generator):
        with pytest.raises(SceneGenerationError, match="Cannot read character image"):
            await generator.describe_character("https://example.com/a.png")

    @pytest.mark.asyncio
    async def test_generate_character_image(self, generator, mock_client):
        mock_client.aio.models.generate_images.return_value = SimpleNamespace(
            generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=b"jpegdata"))]
        )

        url = await generator.generate_character_image("A brave knight")

        assert url == "data:image/jpeg;base64,anBlZ2RhdGE="
        config = mock_client.aio.models.generate_images.await_args.kwargs["config"]
        assert config.number_of_images == 1
        assert config.aspect_ratio == "1:1"

    @pytest.mark.asyncio
    async def test_generate_character_image_without_result(self, generator, mock_client):
        mock_client.aio.models.generate_images.return_value = SimpleNamespace(generated_images=[])
        with pytest.raises(SceneGenerationError, match="Image generation failed."):
            await generator.generate_character_image("A brave knight")

    @pytest.mark.asyncio
    async def test_edit_image(self, generator, mock_client):
        png = _image_bytes()
        mock_client.aio.models.generate_content.return_value = _response(_inline("image/png", png))

        image = await generator.edit_image("data:image/png;base64,aGVsbG8=", "Add a hat")

        assert image.data == png
        contents = mock_client.aio.models.generate_content.await_args.kwargs["contents"]
        assert contents[0].inline_data.data == b"hello"
        assert contents[1].text == "Add a hat"


@pytest.mark.unit
class TestConfiguration:
    """Tests for key handling and health."""

    def test_missing_key_raises_on_use(self):
        generator = GeminiSceneGenerator(api_key="")
        with pytest.raises(SceneGenerationError, match="GEMINI_API_KEY"):
            generator.client

    @pytest.mark.asyncio
    async def test_health(self, generator):
        assert (await generator.check_health())["configured"] is True
        assert (await GeminiSceneGenerator(api_key="").check_health())["configured"] is False

    def test_convert_image(self):
        image = convert_image(GeneratedSceneImage("image/png", _image_bytes()), "image/jpeg")
        assert image.mime_type == "image/jpeg"
        assert image.data.startswith(b"\xff\xd8\xff")

    def test_convert_unreadable_image_raises(self):
        with pytest.raises(SceneGenerationError, match="Cannot convert generated image/jpeg image"):
            convert_image(GeneratedSceneImage("image/jpeg", b"not really a jpeg"), "image/png")
