"""Models for scene composition requests, results and generation jobs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from models.directive import SceneDirective
from utils.data_urls import decode_data_url, encode_data_url, is_data_url, sniff_mime_type


@dataclass(frozen=True)
class ImagePart:
    """One raster sent to the generation backend."""

    data: bytes
    mime_type: str = "image/png"

    @classmethod
    def from_source(cls, source: Union[str, bytes]) -> "ImagePart":
        """Build a part from a data URL or raw image bytes.

        Raises:
            ValueError: If the source is a string that is not a base64 data URL
        """
        if isinstance(source, bytes):
            return cls(data=source, mime_type=sniff_mime_type(source))
        if not is_data_url(source):
            raise ValueError("Image reference is not a data URL")
        mime_type, data = decode_data_url(source)
        return cls(data=data, mime_type=mime_type)

    def to_dict(self) -> dict:
        """Summarize for API responses (payload size only, not the bytes)."""
        return {"mimeType": self.mime_type, "size": len(self.data)}


@dataclass(frozen=True)
class TextPart:
    """The instruction text sent after the image parts."""

    text: str

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {"text": self.text}


@dataclass
class CompositionRequest:
    """Everything needed for one call to the generation backend.

    ``image_parts`` follow the layer order, back to front, so the parts line
    up with the layering narration in ``prompt_text``.
    """

    image_parts: list[ImagePart]
    prompt_text: str
    directive: SceneDirective
    character_names: list[str] = field(default_factory=list)
    response_mime_type: Optional[str] = None

    @property
    def parts(self) -> list[Union[ImagePart, TextPart]]:
        """Image parts followed by the single text part."""
        return [*self.image_parts, TextPart(self.prompt_text)]

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "parts": [part.to_dict() for part in self.parts],
            "promptText": self.prompt_text,
            "directive": self.directive.to_dict(),
            "characterNames": list(self.character_names),
            "responseMimeType": self.response_mime_type,
        }


@dataclass(frozen=True)
class GeneratedSceneImage:
    """Image returned by the generation backend."""

    mime_type: str
    data: bytes

    @property
    def data_url(self) -> str:
        return encode_data_url(self.mime_type, self.data)

    @property
    def extension(self) -> str:
        """File extension matching the MIME type."""
        return {"image/jpeg": "jpg", "image/webp": "webp"}.get(self.mime_type, "png")


class CompositionStatus(str, Enum):
    """Status of a scene generation job."""

    PENDING = "pending"
    PREPROCESSING = "preprocessing"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class CompositionJob:
    """Job for tracking a scene generation request."""

    id: str
    character_ids: list[str]
    prompt: str
    status: CompositionStatus = CompositionStatus.PENDING
    caption: Optional[str] = None
    image_url: Optional[str] = None
    sound_effect_url: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.status in (CompositionStatus.COMPLETED, CompositionStatus.FAILED)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "character_ids": list(self.character_ids),
            "prompt": self.prompt,
            "status": self.status.value,
            "caption": self.caption,
            "image_url": self.image_url,
            "sound_effect_url": self.sound_effect_url,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
