"""Scene composition - turns the layer stack into a generation request.

The controller reads a snapshot of the layer order and transforms, rasterizes
each layer in order (one decoded image at a time), narrates the layering and
assembles the prompt. Image parts and narration are produced from the same
back-to-front sequence, so the backend sees the images in the order the
prompt describes them.
"""

import logging
from typing import Awaitable, Callable, Mapping, Optional, Protocol, Sequence

from models.character import Character
from models.composition import CompositionRequest, GeneratedSceneImage, ImagePart
from models.directive import SceneDirective
from models.scene import Transform
from services.directive_parser import parse_directive
from services.image_preprocessor import DEFAULT_MAX_EDGE, ImagePreprocessor
from services.layering_narrator import narrate
from services.scene_generation_service import SceneGenerationError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict], Awaitable[None]]

NO_CHARACTERS_MESSAGE = "Please select at least one character from the library."

TRANSPARENCY_INSTRUCTION = (
    "Render the characters on a fully transparent background with no scenery "
    "behind them."
)
PRESERVE_APPEARANCE_INSTRUCTION = (
    "Maintain the characters' appearance and style as closely as possible."
)

# Output format able to carry an alpha channel
TRANSPARENT_MIME_TYPE = "image/png"


class CompositionError(Exception):
    """The scene cannot be composed (user-facing validation failure)."""

    pass


class SceneGenerator(Protocol):
    """The generation backend as seen by the controller."""

    async def generate(
        self,
        image_parts: Sequence[ImagePart],
        text: str,
        response_mime_type: Optional[str] = None,
    ) -> GeneratedSceneImage:
        ...


def build_prompt(names: Sequence[str], directive: SceneDirective) -> str:
    """Assemble the instruction text sent after the layer images.

    Args:
        names: Character names, back to front
        directive: Parsed scene prompt

    Returns:
        Character count, layering narration, scene details, optional
        transparency instruction and the appearance instruction, in that order
    """
    count = len(names)
    if count == 1:
        subject = "the character from the provided image"
    else:
        subject = f"the {count} characters from the provided images"
    sections = [f"Create a new scene featuring {subject}."]

    narration = narrate(names)
    if narration:
        sections.append(f"Pay close attention to the layering: {narration}")

    details = directive.text.strip().rstrip(".")
    if details:
        sections.append(f"Scene details: {details}.")

    if directive.transparent_background:
        sections.append(TRANSPARENCY_INSTRUCTION)

    sections.append(PRESERVE_APPEARANCE_INSTRUCTION)
    return " ".join(sections)


class CompositionController:
    """Orchestrates preprocessing, prompt assembly and the generation call."""

    def __init__(
        self,
        preprocessor: ImagePreprocessor,
        generator: SceneGenerator,
        max_edge: int = DEFAULT_MAX_EDGE,
    ):
        """Initialize the controller.

        Args:
            preprocessor: Layer rasterizer
            generator: Backend implementing ``generate(image_parts, text)``
            max_edge: Bound on each layer's longest side before rotation
        """
        self.preprocessor = preprocessor
        self.generator = generator
        self.max_edge = max_edge

    async def compose_scene(
        self,
        characters: Sequence[Character],
        transforms: Mapping[str, Transform],
        raw_prompt: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CompositionRequest:
        """Build the generation request for an ordered layer stack.

        Args:
            characters: Characters in layer order, back to front
            transforms: Transform per character id
            raw_prompt: Scene prompt, plain text or a JSON directive
            on_progress: Async callback for caption and per-layer updates

        Returns:
            CompositionRequest with one image part per character, in order

        Raises:
            CompositionError: If there are no characters or a layer image
                cannot be read at all
        """
        # Snapshot: later edits to the caller's state do not affect this run
        layers = list(characters)
        layer_transforms = dict(transforms)

        if not layers:
            raise CompositionError(NO_CHARACTERS_MESSAGE)

        captions: list[str] = []
        directive = parse_directive(raw_prompt, on_caption=captions.append)
        if captions and on_progress:
            await on_progress({"type": "caption", "caption": captions[0]})

        image_parts = []
        total = len(layers)
        for step, character in enumerate(layers, start=1):
            transform = layer_transforms.get(character.id)
            if transform is None:
                logger.warning(f"No transform for {character.id}, using no rotation")
                rotation = 0.0
            else:
                rotation = transform.rotation_degrees

            processed = await self.preprocessor.process(
                character.image_url, rotation, self.max_edge
            )
            try:
                image_parts.append(ImagePart.from_source(processed))
            except ValueError as e:
                raise CompositionError(
                    f"Could not read the image for {character.name}."
                ) from e

            if on_progress:
                await on_progress({
                    "type": "layer_processed",
                    "character": character.name,
                    "step": step,
                    "total_steps": total,
                })

        names = [character.name for character in layers]
        prompt_text = build_prompt(names, directive)

        logger.info(f"Composed scene with {total} layer(s): {', '.join(names)}")
        return CompositionRequest(
            image_parts=image_parts,
            prompt_text=prompt_text,
            directive=directive,
            character_names=names,
            response_mime_type=TRANSPARENT_MIME_TYPE if directive.transparent_background else None,
        )

    async def generate_scene(
        self,
        characters: Sequence[Character],
        transforms: Mapping[str, Transform],
        raw_prompt: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GeneratedSceneImage:
        """Compose the scene and submit it to the generation backend.

        Failures are terminal for this call; nothing is retried.

        Raises:
            CompositionError: If the scene cannot be composed
            SceneGenerationError: If the backend fails or returns no image
        """
        request = await self.compose_scene(characters, transforms, raw_prompt, on_progress)

        if on_progress:
            await on_progress({"type": "generating", "total_steps": len(request.image_parts)})

        image = await self.generator.generate(
            request.image_parts,
            request.prompt_text,
            request.response_mime_type,
        )
        if image is None or not image.data:
            raise SceneGenerationError("Scene generation failed to produce an image.")
        return image
