"""Unit tests for data models and data URL helpers."""

import pytest

from models.character import Character, SoundEffect
from models.composition import (
    CompositionJob,
    CompositionRequest,
    CompositionStatus,
    GeneratedSceneImage,
    ImagePart,
)
from models.directive import PlainText, StructuredDirective
from models.scene import Position, Scene, Transform
from utils.data_urls import decode_data_url, encode_data_url, is_data_url, sniff_mime_type


@pytest.mark.unit
class TestDataUrls:
    """Tests for the data URL helpers."""

    def test_decode(self):
        assert decode_data_url("data:image/png;base64,aGVsbG8=") == ("image/png", b"hello")

    def test_encode(self):
        assert encode_data_url("image/jpeg", b"hello") == "data:image/jpeg;base64,aGVsbG8="

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/a.png",
            "data:image/png,rawpayload",
            "data:image/png;base64,@@@@",
        ],
    )
    def test_decode_rejects_bad_urls(self, url):
        with pytest.raises(ValueError):
            decode_data_url(url)

    def test_is_data_url(self):
        assert is_data_url("data:image/png;base64,AA==")
        assert not is_data_url(b"data:")
        assert not is_data_url(None)

    @pytest.mark.parametrize(
        "data,expected",
        [
            (b"\x89PNG\r\n\x1a\n....", "image/png"),
            (b"\xff\xd8\xff\xe0....", "image/jpeg"),
            (b"GIF89a....", "image/gif"),
            (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"plain bytes", "application/octet-stream"),
        ],
    )
    def test_sniff_mime_type(self, data, expected):
        assert sniff_mime_type(data) == expected


@pytest.mark.unit
class TestCharacter:
    """Tests for character records."""

    def test_to_dict_uses_camel_case(self):
        character = Character(id="a", name="Alice", image_url="data:x;base64,AA==")
        assert character.to_dict() == {
            "id": "a",
            "name": "Alice",
            "imageUrl": "data:x;base64,AA==",
            "prompt": "",
        }

    def test_from_dict_accepts_snake_case(self):
        character = Character.from_dict({"id": "a", "name": "Alice", "image_url": "u"})
        assert character.image_url == "u"

    def test_sound_effect_gets_id(self):
        first = SoundEffect(name="a", url="u")
        second = SoundEffect(name="a", url="u")
        assert first.id != second.id


@pytest.mark.unit
class TestScene:
    """Tests for scene records."""

    def test_to_dict_shape(self):
        scene = Scene(
            name="Picnic",
            character_ids=["a", "b"],
            prompt="p",
            rotations={"a": 90.0},
            positions={"b": Position(1, 2)},
            id="s1",
            created_at=123,
        )
        assert scene.to_dict() == {
            "id": "s1",
            "name": "Picnic",
            "characterIds": ["a", "b"],
            "prompt": "p",
            "createdAt": 123,
            "rotations": {"a": 90.0},
            "positions": {"b": {"x": 1, "y": 2}},
        }

    def test_from_dict_restores_sound_effect(self):
        scene = Scene.from_dict({
            "id": "s1",
            "name": "Picnic",
            "characterIds": ["a"],
            "prompt": "p",
            "soundEffect": {"id": "snd", "name": "birds", "url": "u"},
        })
        assert scene.sound_effect == SoundEffect(id="snd", name="birds", url="u")
        assert scene.rotations == {}

    @pytest.mark.parametrize(
        "record,valid",
        [
            ({"id": "s", "name": "n", "characterIds": []}, True),
            ({"id": "s", "name": "n"}, False),
            ({"id": "s", "characterIds": []}, False),
            ({"name": "n", "characterIds": []}, False),
            ("scene", False),
        ],
    )
    def test_is_valid_record(self, record, valid):
        assert Scene.is_valid_record(record) is valid

    def test_transform_to_dict(self):
        transform = Transform(Position(3, 4), 720)
        assert transform.to_dict() == {"position": {"x": 3, "y": 4}, "rotationDegrees": 720}


@pytest.mark.unit
class TestComposition:
    """Tests for composition models."""

    def test_image_part_from_data_url(self):
        part = ImagePart.from_source("data:image/jpeg;base64,aGVsbG8=")
        assert part == ImagePart(data=b"hello", mime_type="image/jpeg")

    def test_image_part_from_bytes_sniffs_type(self):
        assert ImagePart.from_source(b"\x89PNG\r\n\x1a\nxxxx").mime_type == "image/png"

    def test_image_part_rejects_remote_url(self):
        with pytest.raises(ValueError):
            ImagePart.from_source("https://example.com/a.png")

    def test_request_parts_end_with_text(self):
        request = CompositionRequest(
            image_parts=[ImagePart(b"1"), ImagePart(b"2")],
            prompt_text="Create a new scene",
            directive=PlainText("x"),
        )
        kinds = [type(p).__name__ for p in request.parts]
        assert kinds == ["ImagePart", "ImagePart", "TextPart"]
        assert request.to_dict()["parts"][-1] == {"text": "Create a new scene"}

    def test_generated_image_extension(self):
        assert GeneratedSceneImage("image/jpeg", b"x").extension == "jpg"
        assert GeneratedSceneImage("image/png", b"x").extension == "png"
        assert GeneratedSceneImage("image/png", b"x").data_url == "data:image/png;base64,eA=="

    def test_directive_to_dict(self):
        assert PlainText("x").to_dict()["kind"] == "plain_text"
        data = StructuredDirective("x", True, "Working").to_dict()
        assert data == {
            "kind": "structured",
            "text": "x",
            "transparentBackground": True,
            "progressCaption": "Working",
        }

    def test_job_lifecycle(self):
        job = CompositionJob(id="j1", character_ids=["a"], prompt="p")
        assert job.status is CompositionStatus.PENDING
        assert not job.is_finished

        job.status = CompositionStatus.FAILED
        assert job.is_finished
        assert job.to_dict()["status"] == "failed"
