# Data models for Character Studio
from .character import Character, SoundEffect
from .scene import Position, Transform, Scene
from .directive import PlainText, StructuredDirective, SceneDirective
from .composition import (
    ImagePart,
    TextPart,
    CompositionRequest,
    GeneratedSceneImage,
    CompositionStatus,
    CompositionJob,
)

__all__ = [
    # Library
    "Character",
    "SoundEffect",
    # Scenes
    "Position",
    "Transform",
    "Scene",
    # Prompt directives
    "PlainText",
    "StructuredDirective",
    "SceneDirective",
    # Composition
    "ImagePart",
    "TextPart",
    "CompositionRequest",
    "GeneratedSceneImage",
    "CompositionStatus",
    "CompositionJob",
]
