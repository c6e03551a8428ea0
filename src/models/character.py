"""Models for the character library and scene sound effects."""

import uuid
from dataclasses import dataclass, field


@dataclass
class Character:
    """A character in the library.

    The image is kept as an opaque raster reference, normally a
    ``data:<mime>;base64,...`` URL produced by upload or generation.
    """

    id: str
    name: str
    image_url: str
    prompt: str = ""

    def to_dict(self) -> dict:
        """Convert to the persisted/exported JSON shape."""
        return {
            "id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "prompt": self.prompt,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Character":
        """Create a character from a persisted record.

        Accepts both ``imageUrl`` and ``image_url`` keys.
        """
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            image_url=data.get("imageUrl") or data.get("image_url") or "",
            prompt=data.get("prompt") or "",
        )

    @staticmethod
    def is_valid_record(data: object) -> bool:
        """Check whether a decoded JSON value looks like a character record."""
        if not isinstance(data, dict):
            return False
        image_url = data.get("imageUrl") or data.get("image_url")
        return bool(data.get("id")) and bool(data.get("name")) and isinstance(image_url, str)


@dataclass
class SoundEffect:
    """A sound effect that can be attached to a saved scene."""

    name: str
    url: str  # base64 data URL
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON persistence."""
        return {"id": self.id, "name": self.name, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict) -> "SoundEffect":
        """Create a sound effect from a persisted record."""
        return cls(id=str(data["id"]), name=str(data["name"]), url=data.get("url", ""))

    @staticmethod
    def is_valid_record(data: object) -> bool:
        """Check whether a decoded JSON value looks like a sound effect record."""
        return (
            isinstance(data, dict)
            and bool(data.get("id"))
            and bool(data.get("name"))
            and isinstance(data.get("url"), str)
        )
