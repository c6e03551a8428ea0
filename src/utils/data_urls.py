"""Helpers for base64 data URLs, the raster reference format used throughout."""

import base64
import binascii

# Magic numbers for the raster formats we expect to see in a library
_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def is_data_url(value: object) -> bool:
    """Check whether a value is a ``data:`` URL string."""
    return isinstance(value, str) and value.startswith("data:")


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into its MIME type and raw bytes.

    Args:
        url: A ``data:<mime>;base64,<payload>`` string

    Returns:
        (mime_type, data) tuple

    Raises:
        ValueError: If the URL is not a base64 data URL or the payload is corrupt
    """
    if not is_data_url(url):
        raise ValueError("Not a data URL")

    header, sep, payload = url.partition(",")
    if not sep or not header.endswith(";base64"):
        raise ValueError("Only base64 data URLs are supported")

    mime_type = header[len("data:"):-len(";base64")] or "application/octet-stream"
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Corrupt base64 payload: {e}") from e
    return mime_type, data


def encode_data_url(mime_type: str, data: bytes) -> str:
    """Build a base64 data URL from raw bytes."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def sniff_mime_type(data: bytes) -> str:
    """Guess an image MIME type from its leading bytes."""
    for signature, mime_type in _SIGNATURES:
        if data.startswith(signature):
            return mime_type
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"
