"""Scene directive models - the parsed form of a raw scene prompt."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class PlainText:
    """A prompt that is used verbatim."""

    text: str

    @property
    def transparent_background(self) -> bool:
        return False

    @property
    def progress_caption(self) -> Optional[str]:
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {"kind": "plain_text", "text": self.text, "transparentBackground": False}


@dataclass(frozen=True)
class StructuredDirective:
    """A prompt that arrived as a JSON object with generation-control flags."""

    text: str
    transparent_background: bool = False
    progress_caption: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        result = {
            "kind": "structured",
            "text": self.text,
            "transparentBackground": self.transparent_background,
        }
        if self.progress_caption:
            result["progressCaption"] = self.progress_caption
        return result


SceneDirective = Union[PlainText, StructuredDirective]
