from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from PIL import Image

from .allergies import AllergyList

ALLERGY_CONFLICT = "ALLERGY_CONFLICT"


class RecipePipelineError(RuntimeError): ...

class ClientInputError(RecipePipelineError): ...

class CollaboratorError(RecipePipelineError): ...

class ImageDecodeError(CollaboratorError): ...


class SizeLimitExceeded(RecipePipelineError):
    def __init__(self, attempts: int, last_size: int, budget: int):
        self.attempts = attempts
        self.last_size = last_size
        self.budget = budget
        super().__init__(
            f"Could not shrink image under size limit after {attempts} attempts "
            f"(last {last_size} bytes, budget {budget} bytes)"
        )


class RecipeMode(Enum):
    STRICT = "strict"
    FLEXIBLE = "flexible"

    @classmethod
    def from_allow_extra(cls, allow_extra: Optional[bool]) -> "RecipeMode":
        return cls.FLEXIBLE if allow_extra else cls.STRICT


class ChunkKind(Enum):
    TEXT = "text"
    MATH = "math"


# Input types
@dataclass(frozen=True)
class ImageAsset:
    source: Union[str, Path, bytes, Image.Image]
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class EncodedImage:
    data_uri: str
    width: int
    height: int
    encoded_byte_length: int


@dataclass
class PromptRequest:
    user_text: Optional[str] = None
    image: Optional[ImageAsset] = None
    allergies: AllergyList = field(default_factory=AllergyList)
    mode: RecipeMode = RecipeMode.STRICT
    extra_system: Optional[str] = None  # appended after the fixed preamble

    @property
    def has_text(self) -> bool:
        return bool(self.user_text and self.user_text.strip())

    def validate(self) -> None:
        if not self.has_text and self.image is None:
            raise ClientInputError("Provide 'prompt' text, an 'image' URL, or both.")


@dataclass(frozen=True)
class BuiltPrompt:
    messages: List[Dict[str, Any]]
    prompt_ref: str
    user_prompt: str


# Output types
@dataclass(frozen=True)
class Chunk:
    kind: ChunkKind
    value: str
    display: bool = False
    source: str = ""  # exact span of the input this chunk covers

    @classmethod
    def text(cls, value: str) -> "Chunk":
        return cls(ChunkKind.TEXT, value, False, value)

    @classmethod
    def math(cls, value: str, display: bool, source: str) -> "Chunk":
        return cls(ChunkKind.MATH, value, display, source)

    @property
    def is_math(self) -> bool:
        return self.kind is ChunkKind.MATH


@dataclass
class RecipeOutput:
    text: str
    chunks: List[Chunk]
    allergy_conflict: bool
    processing_metadata: Dict[str, Any] = field(default_factory=dict)
