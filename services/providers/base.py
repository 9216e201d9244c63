"""
Provider Interfaces

Capability interfaces for the external enrichment clients. Every capability
has a live implementation and an offline one; which one is used is decided
once, when the providers are built from settings.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class OcrCandidate:
    """A word read from an image. Confidence is informational only."""
    lemma: str
    confidence: float


@dataclass(frozen=True)
class Gloss:
    """
    A definition and an example sentence in one language.

    ``offline`` marks placeholder output, which is never cached.
    """
    definition: str
    example: str
    offline: bool = False

    def to_dict(self) -> dict:
        return {"definition": self.definition, "example": self.example}

    @classmethod
    def from_dict(cls, data: dict) -> "Gloss":
        return cls(definition=data["definition"], example=data["example"])


@dataclass(frozen=True)
class SynthesizedAudio:
    data: bytes
    extension: str = ".wav"
    offline: bool = False


class OcrExtractor(ABC):
    name: str = "ocr"

    @abstractmethod
    async def extract(self, image: bytes, mime_type: str) -> List[OcrCandidate]:
        """Read candidate words from an image, in reading order."""


class DefinitionProvider(ABC):
    name: str = "definitions"

    @abstractmethod
    async def define(self, lemma: str) -> Gloss:
        """English definition and example sentence for a lemma."""


class TranslationProvider(ABC):
    name: str = "translations"

    @abstractmethod
    async def translate(self, lemma: str, english: Gloss) -> Gloss:
        """Chinese definition and example, using the English gloss as context."""


class SpeechSynthesizer(ABC):
    name: str = "speech"

    @abstractmethod
    async def synthesize(self, text: str, voice: str) -> SynthesizedAudio:
        """Render text to audio bytes."""


@dataclass
class ProviderSet:
    """The providers the enrichment pipeline runs against."""
    ocr: OcrExtractor
    definitions: DefinitionProvider
    translations: TranslationProvider
    speech: SpeechSynthesizer
    voice: str

    @property
    def mode(self) -> dict:
        return {
            "ocr": self.ocr.name,
            "definitions": self.definitions.name,
            "translations": self.translations.name,
            "speech": self.speech.name,
        }
