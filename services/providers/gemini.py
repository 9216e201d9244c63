"""
Gemini Lexicon Provider

OCR, English definitions and Chinese translations through Google Gemini.

Uses:
    - google-genai SDK (async client) for the model calls
    - LangChain JsonOutputParser to pull JSON out of possibly fenced replies
    - Pydantic models to validate the parsed payloads

Any failure (timeout, API error, unparseable reply) degrades to the
offline placeholders, so callers always get an answer.

Usage:
    from services.providers.gemini import GeminiLexicon

    lexicon = GeminiLexicon(api_key="...")
    gloss = await lexicon.define("apple")
"""

import time
from typing import Any, List, Optional

from google import genai
from google.genai import types
from langchain_core.output_parsers import JsonOutputParser
from pydantic import BaseModel, Field

from services.providers.base import (
    DefinitionProvider,
    Gloss,
    OcrCandidate,
    OcrExtractor,
    TranslationProvider,
)
from services.providers.offline import OfflineLexicon
from utils.circuit_breaker import resilient_call, with_fallback
from utils.exceptions import ProviderError
from utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


# --- Pydantic Models for Structured Output ---

class OcrWord(BaseModel):
    """A single word read from the image."""
    lemma: str = Field(description="The word in lowercase dictionary form")
    confidence: float = Field(description="Confidence score between 0 and 1")


class OcrResult(BaseModel):
    words: List[OcrWord] = Field(description="Distinct English words found in the image")


class DictionaryEntry(BaseModel):
    """Definition and example sentence in one language."""
    definition: str = Field(description="A concise learner-friendly definition")
    example: str = Field(description="A natural example sentence using the word")


OCR_PROMPT = """You are reading a photo of printed or handwritten text for a vocabulary learner.
Extract the distinct English words a learner would want to study. Skip numbers,
punctuation and single letters. Return lowercase dictionary forms.

{format_instructions}"""

DEFINE_PROMPT = """Give a concise English dictionary definition of the word "{lemma}"
for an intermediate learner, and one natural example sentence that uses it.

{format_instructions}"""

TRANSLATE_PROMPT = """Translate this English vocabulary entry for a Chinese-speaking learner.
Word: {lemma}
Definition: {definition}
Example: {example}

Give the Chinese definition (简体中文) and a Chinese translation of the example sentence.

{format_instructions}"""


# --- Payload Normalization ---

def _clamp_confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return max(0.0, min(1.0, number))


def parse_ocr_payload(payload: Any) -> List[OcrCandidate]:
    """
    Normalize whatever JSON shape the model returned into candidates.

    Accepts a bare array, an object with a ``words`` array, or a single
    ``{"lemma": ...}`` object. Items may be strings or objects; entries
    without a usable lemma are dropped.
    """
    if isinstance(payload, dict):
        items = payload.get("words", [payload] if "lemma" in payload else [])
    elif isinstance(payload, list):
        items = payload
    else:
        raise ProviderError("Unexpected OCR payload", service="gemini")

    candidates = []
    for item in items:
        if isinstance(item, str):
            lemma, confidence = item, 1.0
        elif isinstance(item, dict):
            lemma = item.get("lemma") or item.get("word") or ""
            confidence = item.get("confidence", 0.0)
        else:
            continue

        lemma = str(lemma).strip().lower()
        if lemma:
            candidates.append(OcrCandidate(lemma=lemma, confidence=_clamp_confidence(confidence)))
    return candidates


class GeminiLexicon(OcrExtractor, DefinitionProvider, TranslationProvider):
    """
    Gemini-backed OCR, definitions and translations.

    Attributes:
        client: google-genai client
        model: Model name (default: gemini-2.5-flash)
        offline: Fallback used when a live call fails
    """

    CIRCUIT_NAME = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.5-flash",
        timeout: float = 30.0,
        max_retries: int = 1,
        client: Optional[Any] = None,
    ):
        if client is None and not api_key:
            raise ValueError("Google API key not found. Set GOOGLE_API_KEY env variable.")

        self.client = client or genai.Client(api_key=api_key)
        self.model = model
        self.name = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.offline = OfflineLexicon()
        self._generation_config = types.GenerateContentConfig(
            temperature=0.2,
            top_p=0.8,
            response_mime_type="application/json",
        )

        logger.info(f"GeminiLexicon initialized, model: {self.model}")

    # =========================================================================
    # Capabilities
    # =========================================================================

    async def extract(self, image: bytes, mime_type: str) -> List[OcrCandidate]:
        return await with_fallback([self._extract_live, self.offline.extract], image, mime_type)

    async def define(self, lemma: str) -> Gloss:
        return await with_fallback([self._define_live, self.offline.define], lemma)

    async def translate(self, lemma: str, english: Gloss) -> Gloss:
        return await with_fallback([self._translate_live, self.offline.translate], lemma, english)

    # =========================================================================
    # Live calls
    # =========================================================================

    async def _extract_live(self, image: bytes, mime_type: str) -> List[OcrCandidate]:
        parser = JsonOutputParser(pydantic_object=OcrResult)
        prompt = OCR_PROMPT.format(format_instructions=parser.get_format_instructions())
        contents = [types.Part.from_bytes(data=image, mime_type=mime_type), prompt]

        payload = parser.parse(await self._generate(contents, "ocr"))
        candidates = parse_ocr_payload(payload)
        logger.info(f"Gemini OCR found {len(candidates)} candidates")
        return candidates

    async def _define_live(self, lemma: str) -> Gloss:
        parser = JsonOutputParser(pydantic_object=DictionaryEntry)
        prompt = DEFINE_PROMPT.format(
            lemma=lemma,
            format_instructions=parser.get_format_instructions(),
        )
        entry = DictionaryEntry.model_validate(parser.parse(await self._generate(prompt, "define")))
        return self._to_gloss(entry)

    async def _translate_live(self, lemma: str, english: Gloss) -> Gloss:
        parser = JsonOutputParser(pydantic_object=DictionaryEntry)
        prompt = TRANSLATE_PROMPT.format(
            lemma=lemma,
            definition=english.definition,
            example=english.example,
            format_instructions=parser.get_format_instructions(),
        )
        entry = DictionaryEntry.model_validate(parser.parse(await self._generate(prompt, "translate")))
        return self._to_gloss(entry)

    @staticmethod
    def _to_gloss(entry: DictionaryEntry) -> Gloss:
        definition, example = entry.definition.strip(), entry.example.strip()
        if not definition or not example:
            raise ProviderError("Gemini returned an incomplete entry", service="gemini")
        return Gloss(definition=definition, example=example)

    async def _generate(self, contents: Any, operation: str) -> str:
        """Call the model with timeout, retry and circuit breaker; return reply text."""
        start = time.perf_counter()
        try:
            response = await resilient_call(
                self.client.aio.models.generate_content,
                model=self.model,
                contents=contents,
                config=self._generation_config,
                max_retries=self.max_retries,
                initial_delay=0.5,
                circuit_name=self.CIRCUIT_NAME,
                timeout=self.timeout,
            )
        except Exception as e:
            duration = (time.perf_counter() - start) * 1000
            log_api_call("Gemini", operation, success=False, duration_ms=duration, error=str(e))
            raise

        duration = (time.perf_counter() - start) * 1000
        text = getattr(response, "text", None)
        if not text:
            log_api_call("Gemini", operation, success=False, duration_ms=duration, error="empty reply")
            raise ProviderError("Gemini returned an empty reply", service="gemini")

        log_api_call("Gemini", operation, success=True, duration_ms=duration)
        return text
