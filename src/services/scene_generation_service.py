"""Scene generation via Google GenAI (Gemini image editing + Imagen).

This is the concrete backend behind the composition controller's
``generate(image_parts, text)`` operation, plus the character-creation calls
(describe an uploaded image, generate a character portrait).
"""

import io
import logging
import time
from typing import Optional, Sequence

from google.genai import Client, errors, types
from PIL import Image

from models.composition import GeneratedSceneImage, ImagePart
from utils.data_urls import decode_data_url, encode_data_url

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGEN_MODEL = "imagen-4.0-generate-001"

DESCRIBE_CHARACTER_PROMPT = (
    "Describe the character in this image in detail for a character design sheet. "
    "Focus on visual traits like hair, eyes, clothing, style, and key features. "
    "The description will be used to generate new images of this character."
)


class SceneGenerationError(Exception):
    """Generation backend failed or returned no usable image."""

    pass


def convert_image(image: GeneratedSceneImage, mime_type: str) -> GeneratedSceneImage:
    """Re-encode a generated image into the requested format.

    Used when the caller asked for a transparency-capable format and the
    backend answered in a different one.
    """
    if image.mime_type == mime_type:
        return image

    pil_format = {"image/png": "PNG", "image/webp": "WEBP", "image/jpeg": "JPEG"}.get(mime_type)
    if pil_format is None:
        raise SceneGenerationError(f"Unsupported output format: {mime_type}")

    try:
        with Image.open(io.BytesIO(image.data)) as decoded:
            converted = decoded.convert("RGB" if pil_format == "JPEG" else "RGBA")
            buffer = io.BytesIO()
            converted.save(buffer, format=pil_format)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise SceneGenerationError(f"Cannot convert generated {image.mime_type} image: {e}") from e
    return GeneratedSceneImage(mime_type=mime_type, data=buffer.getvalue())


class GeminiSceneGenerator:
    """Generation backend using the Gemini image model."""

    def __init__(
        self,
        api_key: str,
        image_model: str = DEFAULT_IMAGE_MODEL,
        text_model: str = DEFAULT_TEXT_MODEL,
        imagen_model: str = DEFAULT_IMAGEN_MODEL,
        client: Optional[Client] = None,
    ):
        """Initialize the generator.

        Args:
            api_key: Gemini API key
            image_model: Model used for multi-image scene generation and edits
            text_model: Model used to describe uploaded characters
            imagen_model: Model used for text-to-image character portraits
            client: Pre-built client (tests inject a mock here)
        """
        self.api_key = api_key
        self.image_model = image_model
        self.text_model = text_model
        self.imagen_model = imagen_model
        self._client = client

        logger.info(f"Initialized scene generator with model: {image_model}")

    @property
    def client(self) -> Client:
        if self._client is None:
            if not self.api_key:
                raise SceneGenerationError(
                    "GEMINI_API_KEY not configured. Set it in your .env file."
                )
            self._client = Client(api_key=self.api_key)
        return self._client

    def is_configured(self) -> bool:
        """Check if a Gemini API key (or injected client) is available."""
        return bool(self.api_key) or self._client is not None

    async def check_health(self) -> dict:
        """Report configuration status for the status endpoint."""
        if not self.is_configured():
            return {
                "configured": False,
                "available": False,
                "error": "GEMINI_API_KEY not configured",
            }
        return {
            "configured": True,
            "available": True,
            "image_model": self.image_model,
        }

    async def generate(
        self,
        image_parts: Sequence[ImagePart],
        text: str,
        response_mime_type: Optional[str] = None,
    ) -> GeneratedSceneImage:
        """Generate one image from ordered image parts and an instruction.

        Args:
            image_parts: Layer images, in the order the prompt refers to them
            text: Instruction text, sent after the images
            response_mime_type: Format the result must be delivered in

        Returns:
            The first image in the response

        Raises:
            SceneGenerationError: On API errors or when no image comes back
        """
        contents = [
            types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
            for part in image_parts
        ]
        contents.append(types.Part.from_text(text=text))

        logger.info(
            f"Generating scene with {self.image_model} from {len(image_parts)} image part(s)"
        )
        start_time = time.time()

        try:
            response = await self.client.aio.models.generate_content(
                model=self.image_model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE"],
                ),
            )
        except errors.APIError as e:
            raise SceneGenerationError(f"Gemini API error: {e.message or e}") from e

        image = self._first_inline_image(response)
        if image is None:
            raise SceneGenerationError("Scene generation failed to produce an image.")

        generation_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Gemini returned {image.mime_type} in {generation_time_ms}ms")

        if response_mime_type and image.mime_type != response_mime_type:
            image = convert_image(image, response_mime_type)
        return image

    async def edit_image(self, image_url: str, prompt: str) -> GeneratedSceneImage:
        """Edit a single image with a text instruction."""
        try:
            part = ImagePart.from_source(image_url)
        except ValueError as e:
            raise SceneGenerationError(f"Cannot read image to edit: {e}") from e
        return await self.generate([part], prompt)

    async def describe_character(self, image_url: str) -> str:
        """Write a character-sheet description of an uploaded image."""
        try:
            mime_type, data = decode_data_url(image_url)
        except ValueError as e:
            raise SceneGenerationError(f"Cannot read character image: {e}") from e
        try:
            response = await self.client.aio.models.generate_content(
                model=self.text_model,
                contents=[
                    types.Part.from_bytes(data=data, mime_type=mime_type),
                    types.Part.from_text(text=DESCRIBE_CHARACTER_PROMPT),
                ],
            )
        except errors.APIError as e:
            raise SceneGenerationError(f"Gemini API error: {e.message or e}") from e
        return response.text or ""

    async def generate_character_image(self, prompt: str) -> str:
        """Generate a square character portrait as a JPEG data URL."""
        try:
            response = await self.client.aio.models.generate_images(
                model=self.imagen_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    output_mime_type="image/jpeg",
                    aspect_ratio="1:1",
                ),
            )
        except errors.APIError as e:
            raise SceneGenerationError(f"Imagen API error: {e.message or e}") from e

        if response.generated_images:
            image = response.generated_images[0].image
            if image is not None and image.image_bytes:
                return encode_data_url("image/jpeg", image.image_bytes)
        raise SceneGenerationError("Image generation failed.")

    @staticmethod
    def _first_inline_image(response) -> Optional[GeneratedSceneImage]:
        for candidate in response.candidates or []:
            content = candidate.content
            if content is None:
                continue
            for part in content.parts or []:
                inline = part.inline_data
                if inline is not None and inline.data:
                    return GeneratedSceneImage(
                        mime_type=inline.mime_type or "image/png",
                        data=inline.data,
                    )
        return None
