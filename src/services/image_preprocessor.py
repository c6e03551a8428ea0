"""Layer rasterization - resize and rotate character images before generation.

Every layer is bounded to a fixed max edge so that a request carrying many
characters stays under the generation backend's payload ceiling. Rotation is
baked into the raster on a canvas sized to the rotated bounding box, so no
corner is clipped at non-right angles.
"""

import asyncio
import io
import logging
import math
from typing import Optional, Union

from PIL import Image

from utils.data_urls import decode_data_url, encode_data_url, is_data_url

logger = logging.getLogger(__name__)

DEFAULT_MAX_EDGE = 512

# Trig values this close to 0 or 1 are treated as exact (quadrant angles)
_TRIG_EPSILON = 1e-12

ImageSource = Union[str, bytes]


def _clean_trig(value: float) -> float:
    value = abs(value)
    if value < _TRIG_EPSILON:
        return 0.0
    if abs(1.0 - value) < _TRIG_EPSILON:
        return 1.0
    return value


def rotated_bounds(width: float, height: float, rotation_degrees: float) -> tuple[float, float]:
    """Bounding box of a ``width`` x ``height`` rectangle rotated about its center.

    Returns:
        (box_width, box_height) where
        box_width = w*|cos t| + h*|sin t| and box_height = w*|sin t| + h*|cos t|
    """
    theta = math.radians(rotation_degrees)
    cos_t = _clean_trig(math.cos(theta))
    sin_t = _clean_trig(math.sin(theta))
    return (
        width * cos_t + height * sin_t,
        width * sin_t + height * cos_t,
    )


def scaled_size(width: int, height: int, max_edge: int) -> tuple[int, int]:
    """Downscale dimensions so neither exceeds ``max_edge``.

    Images already within the bound are returned unchanged (never upscaled).
    Aspect ratio is preserved up to integer rounding.
    """
    if width <= max_edge and height <= max_edge:
        return width, height
    scale = min(max_edge / width, max_edge / height)
    return (
        min(max_edge, max(1, round(width * scale))),
        min(max_edge, max(1, round(height * scale))),
    )


def rotate_onto_canvas(layer: Image.Image, rotation_degrees: float) -> Image.Image:
    """Draw ``layer`` rotated about its center onto a transparent canvas.

    Positive angles rotate clockwise on screen (y axis pointing down). The
    canvas is the rotated bounding box rounded to whole pixels.
    """
    width, height = layer.size
    box_width, box_height = rotated_bounds(width, height, rotation_degrees)
    canvas_size = (max(1, round(box_width)), max(1, round(box_height)))

    theta = math.radians(rotation_degrees)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    center_x, center_y = canvas_size[0] / 2, canvas_size[1] / 2
    source_x, source_y = width / 2, height / 2

    # Inverse mapping: canvas pixel -> source pixel
    coefficients = (
        cos_t,
        sin_t,
        source_x - cos_t * center_x - sin_t * center_y,
        -sin_t,
        cos_t,
        source_y + sin_t * center_x - cos_t * center_y,
    )
    return layer.transform(
        canvas_size,
        Image.Transform.AFFINE,
        coefficients,
        resample=Image.Resampling.BICUBIC,
    )


class ImagePreprocessor:
    """Rasterizes character images into bounded, rotation-baked PNG layers."""

    def __init__(self, max_edge: int = DEFAULT_MAX_EDGE):
        """Initialize the preprocessor.

        Args:
            max_edge: Default bound on the resized layer's longest side
        """
        self.max_edge = max_edge

    async def process(
        self,
        image: ImageSource,
        rotation_degrees: float = 0.0,
        max_edge: Optional[int] = None,
    ) -> ImageSource:
        """Resize and rotate one layer without blocking the event loop.

        Args:
            image: A base64 data URL or raw image bytes
            rotation_degrees: Layer rotation, clockwise, unbounded
            max_edge: Override for the max edge bound

        Returns:
            A PNG in the same form as the input (data URL or bytes), or the
            input unchanged when it cannot be decoded or rasterized
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self.process_sync, image, rotation_degrees, max_edge
        )

    def process_sync(
        self,
        image: ImageSource,
        rotation_degrees: float = 0.0,
        max_edge: Optional[int] = None,
    ) -> ImageSource:
        """Blocking version of ``process``."""
        bound = max_edge or self.max_edge

        try:
            decoded = self._decode(image)
        except (ValueError, OSError, Image.DecompressionBombError) as e:
            logger.debug(f"Layer image could not be decoded, using original: {e}")
            return image

        try:
            rendered = self.render(decoded, rotation_degrees, bound)
            buffer = io.BytesIO()
            rendered.save(buffer, format="PNG")
        except (ValueError, OSError, MemoryError) as e:
            logger.warning(f"Layer rasterization failed, using original: {e}")
            return image
        finally:
            decoded.close()

        png = buffer.getvalue()
        if isinstance(image, str):
            return encode_data_url("image/png", png)
        return png

    def render(self, image: Image.Image, rotation_degrees: float, max_edge: int) -> Image.Image:
        """Resize to the max edge and rotate onto a bounding-box canvas."""
        layer = image.convert("RGBA")

        new_size = scaled_size(layer.width, layer.height, max_edge)
        if new_size != layer.size:
            logger.debug(f"Resizing layer from {layer.width}x{layer.height} to {new_size[0]}x{new_size[1]}")
            layer = layer.resize(new_size, Image.Resampling.LANCZOS)

        if rotation_degrees % 360 == 0:
            return layer
        return rotate_onto_canvas(layer, rotation_degrees)

    @staticmethod
    def _decode(image: ImageSource) -> Image.Image:
        if is_data_url(image):
            _, data = decode_data_url(image)
        elif isinstance(image, bytes):
            data = image
        else:
            raise ValueError("Unsupported image reference")

        decoded = Image.open(io.BytesIO(data))
        decoded.load()
        return decoded
