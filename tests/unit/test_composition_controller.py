"""Unit tests for scene composition and prompt assembly."""

import io

import pytest
from PIL import Image

from models.composition import GeneratedSceneImage
from models.directive import PlainText, StructuredDirective
from models.scene import Position, Transform
from services.composition_controller import (
    NO_CHARACTERS_MESSAGE,
    PRESERVE_APPEARANCE_INSTRUCTION,
    TRANSPARENCY_INSTRUCTION,
    CompositionController,
    CompositionError,
    build_prompt,
)
from services.image_preprocessor import ImagePreprocessor
from services.scene_generation_service import SceneGenerationError


def _transforms(rotations: dict) -> dict:
    return {cid: Transform(Position(0, 0), deg) for cid, deg in rotations.items()}


@pytest.fixture
def controller(mock_generator) -> CompositionController:
    return CompositionController(ImagePreprocessor(max_edge=512), mock_generator, max_edge=512)


@pytest.mark.unit
class TestBuildPrompt:
    """Tests for instruction text assembly."""

    def test_single_character(self):
        prompt = build_prompt(["Alice"], PlainText("A picnic in a sunny park."))
        assert prompt == (
            "Create a new scene featuring the character from the provided image. "
            "Scene details: A picnic in a sunny park. "
            + PRESERVE_APPEARANCE_INSTRUCTION
        )

    def test_layering_appears_before_details(self):
        prompt = build_prompt(["Alice", "Bob"], PlainText("A duel"))
        assert prompt.startswith(
            "Create a new scene featuring the 2 characters from the provided images. "
            "Pay close attention to the layering: "
            "Alice is in the background. Bob is in the foreground."
        )
        assert prompt.index("layering") < prompt.index("Scene details: A duel.")

    def test_transparency_instruction_only_when_requested(self):
        with_flag = build_prompt(["A", "B"], StructuredDirective("x", transparent_background=True))
        without_flag = build_prompt(["A", "B"], StructuredDirective("x"))
        assert TRANSPARENCY_INSTRUCTION in with_flag
        assert TRANSPARENCY_INSTRUCTION not in without_flag

    def test_empty_details_are_omitted(self):
        assert "Scene details" not in build_prompt(["A"], PlainText("   "))


@pytest.mark.unit
class TestComposeScene:
    """Tests for request assembly from the layer stack."""

    @pytest.mark.asyncio
    async def test_parts_follow_layer_order(self, controller, sample_characters):
        """One image part per layer, back to front, then the text."""
        request = await controller.compose_scene(
            sample_characters, _transforms({"char-a": 0, "char-b": 90, "char-c": 0}), "A picnic"
        )

        assert request.character_names == ["Alice", "Bob", "Carol"]
        assert len(request.image_parts) == 3
        assert len(request.parts) == 4
        assert request.parts[-1].text == request.prompt_text
        assert (
            "Alice is in the background. Bob is behind Carol and in front of Alice. "
            "Carol is in the foreground."
        ) in request.parts[-1].text

        sizes = [Image.open(io.BytesIO(p.data)).size for p in request.image_parts]
        assert sizes == [(100, 60), (80, 40), (64, 64)]
        assert all(p.mime_type == "image/png" for p in request.image_parts)

    @pytest.mark.asyncio
    async def test_no_characters_raises(self, controller):
        with pytest.raises(CompositionError, match=NO_CHARACTERS_MESSAGE):
            await controller.compose_scene([], {}, "anything")

    @pytest.mark.asyncio
    async def test_missing_transform_means_no_rotation(self, controller, sample_characters):
        request = await controller.compose_scene(sample_characters[1:2], {}, "solo")
        assert Image.open(io.BytesIO(request.image_parts[0].data)).size == (40, 80)

    @pytest.mark.asyncio
    async def test_transparency_requests_png(self, controller, sample_characters):
        request = await controller.compose_scene(
            sample_characters, {}, '{"prompt": "Poster art", "transparentBackground": true}'
        )
        assert request.response_mime_type == "image/png"
        assert TRANSPARENCY_INSTRUCTION in request.prompt_text

    @pytest.mark.asyncio
    async def test_plain_prompt_has_no_response_format(self, controller, sample_characters):
        request = await controller.compose_scene(sample_characters, {}, "Poster art")
        assert request.response_mime_type is None

    @pytest.mark.asyncio
    async def test_progress_events(self, controller, sample_characters):
        """Caption first, then one event per layer in order."""
        events = []

        async def on_progress(event):
            events.append(event)

        await controller.compose_scene(
            sample_characters, {}, '{"prompt": "x", "caption": "Gathering the party"}', on_progress
        )

        assert events[0] == {"type": "caption", "caption": "Gathering the party"}
        steps = [(e["character"], e["step"], e["total_steps"]) for e in events[1:]]
        assert steps == [("Alice", 1, 3), ("Bob", 2, 3), ("Carol", 3, 3)]

    @pytest.mark.asyncio
    async def test_inputs_are_snapshotted(self, controller, sample_characters):
        """Mutating the caller's collections mid-run does not change the request."""
        characters = list(sample_characters)
        transforms = _transforms({"char-a": 0})

        async def on_progress(event):
            if event.get("step") == 1:
                characters.clear()
                transforms["char-b"] = Transform(Position(), 90)

        request = await controller.compose_scene(characters, transforms, "x", on_progress)
        assert request.character_names == ["Alice", "Bob", "Carol"]
        assert Image.open(io.BytesIO(request.image_parts[1].data)).size == (40, 80)

    @pytest.mark.asyncio
    async def test_unreadable_non_data_url_raises(self, controller, sample_characters):
        broken = sample_characters[0]
        broken.image_url = "https://example.com/alice.png"
        with pytest.raises(CompositionError, match="Alice"):
            await controller.compose_scene([broken], {}, "x")

    @pytest.mark.asyncio
    async def test_undecodable_data_url_is_sent_as_is(self, controller, sample_characters):
        """A data URL PIL cannot read is forwarded unchanged."""
        character = sample_characters[0]
        character.image_url = "data:image/png;base64,bm90IGFuIGltYWdl"
        request = await controller.compose_scene([character], {}, "x")
        assert request.image_parts[0].data == b"not an image"


@pytest.mark.unit
class TestGenerateScene:
    """Tests for the backend call."""

    @pytest.mark.asyncio
    async def test_generate_passes_parts_and_text(self, controller, mock_generator, sample_characters, generated_image):
        result = await controller.generate_scene(sample_characters, {}, "A picnic")

        assert result == generated_image
        mock_generator.generate.assert_awaited_once()
        parts, text, mime_type = mock_generator.generate.await_args.args
        assert len(parts) == 3
        assert text.startswith("Create a new scene featuring the 3 characters")
        assert mime_type is None

    @pytest.mark.asyncio
    async def test_generating_event_after_layers(self, controller, sample_characters):
        events = []

        async def on_progress(event):
            events.append(event["type"])

        await controller.generate_scene(sample_characters, {}, "x", on_progress)
        assert events == ["layer_processed"] * 3 + ["generating"]

    @pytest.mark.asyncio
    async def test_empty_result_raises(self, controller, mock_generator, sample_characters):
        mock_generator.generate.return_value = GeneratedSceneImage(mime_type="image/png", data=b"")
        with pytest.raises(SceneGenerationError, match="failed to produce an image"):
            await controller.generate_scene(sample_characters, {}, "x")

    @pytest.mark.asyncio
    async def test_backend_errors_propagate(self, controller, mock_generator, sample_characters):
        mock_generator.generate.side_effect = SceneGenerationError("Gemini API error: quota")
        with pytest.raises(SceneGenerationError, match="quota"):
            await controller.generate_scene(sample_characters, {}, "x")

    @pytest.mark.asyncio
    async def test_no_backend_call_without_characters(self, controller, mock_generator):
        with pytest.raises(CompositionError):
            await controller.generate_scene([], {}, "x")
        mock_generator.generate.assert_not_awaited()
