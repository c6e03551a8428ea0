"""Scene directive parsing.

A scene prompt is usually plain text, but it may also be a JSON object that
carries generation-control flags alongside the text:

    {"prompt": "...", "transparent_background": true, "progress_caption": "..."}

``parse_directive`` is total: anything that is not such an object is plain
text, and nothing raises.
"""

import json
import logging
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from models.directive import PlainText, SceneDirective, StructuredDirective

logger = logging.getLogger(__name__)

# Alternate key spellings seen in hand-written prompts
KEY_ALIASES = {
    "transparentBackground": "transparent_background",
    "progressCaption": "progress_caption",
    "caption": "progress_caption",
}


class DirectivePayload(BaseModel):
    """Accepted shape of a structured scene prompt."""

    model_config = ConfigDict(extra="ignore")

    prompt: str
    transparent_background: bool = False
    progress_caption: Optional[str] = None


def _decode_object(raw: str) -> Optional[dict]:
    """Decode a JSON object and fold alias keys onto their canonical names."""
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None
    for alias, canonical in KEY_ALIASES.items():
        if alias in data and canonical not in data:
            data[canonical] = data.pop(alias)
    return data


def parse_directive(
    raw: str,
    on_caption: Optional[Callable[[str], None]] = None,
) -> SceneDirective:
    """Parse a raw scene prompt.

    Args:
        raw: The prompt as typed or saved
        on_caption: Receives the progress caption, when one is present

    Returns:
        StructuredDirective for a JSON object with a string ``prompt`` field,
        otherwise PlainText holding ``raw`` unchanged
    """
    if not isinstance(raw, str):
        return PlainText(text="")
    if not raw.lstrip().startswith("{"):
        return PlainText(text=raw)

    data = _decode_object(raw)
    if data is None:
        return PlainText(text=raw)

    try:
        payload = DirectivePayload.model_validate(data)
    except ValidationError:
        logger.debug("Scene prompt is JSON but not a directive, using it as plain text")
        return PlainText(text=raw)

    caption = payload.progress_caption or None
    if caption and on_caption:
        on_caption(caption)

    return StructuredDirective(
        text=payload.prompt,
        transparent_background=payload.transparent_background,
        progress_caption=caption,
    )
