"""
Offline Providers

Deterministic stand-ins used when no credential is configured, and as the
fallback whenever a live provider call fails.
"""

import io
import wave
from typing import List

from config.constants import (
    OFFLINE_OCR_CONFIDENCE,
    SILENT_CLIP_DURATION_MS,
    SILENT_CLIP_SAMPLE_RATE,
)
from services.providers.base import (
    DefinitionProvider,
    Gloss,
    OcrCandidate,
    OcrExtractor,
    SpeechSynthesizer,
    SynthesizedAudio,
    TranslationProvider,
)


def silent_wav(
    duration_ms: int = SILENT_CLIP_DURATION_MS,
    sample_rate: int = SILENT_CLIP_SAMPLE_RATE,
) -> bytes:
    """Build a silent 16-bit mono PCM WAV clip."""
    frame_count = sample_rate * duration_ms // 1000
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as clip:
        clip.setnchannels(1)
        clip.setsampwidth(2)
        clip.setframerate(sample_rate)
        clip.writeframes(b"\x00\x00" * frame_count)
    return buffer.getvalue()


def placeholder_english(lemma: str) -> Gloss:
    return Gloss(
        definition=f"{lemma} is a placeholder definition generated for development.",
        example=f"This is an example sentence using the word {lemma}.",
        offline=True,
    )


def placeholder_chinese(lemma: str) -> Gloss:
    return Gloss(
        definition=f"{lemma} 的占位中文释义，用于开发阶段。",
        example=f"这里是包含 {lemma} 的中文示例句。",
        offline=True,
    )


class OfflineLexicon(OcrExtractor, DefinitionProvider, TranslationProvider):
    """OCR, definitions and translations without any network access."""

    name = "offline"

    async def extract(self, image: bytes, mime_type: str) -> List[OcrCandidate]:
        return [OcrCandidate(lemma="example", confidence=OFFLINE_OCR_CONFIDENCE)]

    async def define(self, lemma: str) -> Gloss:
        return placeholder_english(lemma)

    async def translate(self, lemma: str, english: Gloss) -> Gloss:
        return placeholder_chinese(lemma)


class SilentSpeech(SpeechSynthesizer):
    """Returns the same silent clip for every text."""

    name = "offline"

    def __init__(self):
        self._clip = silent_wav()

    async def synthesize(self, text: str, voice: str) -> SynthesizedAudio:
        return SynthesizedAudio(data=self._clip, extension=".wav", offline=True)
