"""
External Enrichment Providers

Live adapters (Gemini, Azure Speech) and their offline counterparts.
``build_providers`` picks one implementation per capability from settings;
the choice does not change afterwards.
"""

from typing import Optional

from config.settings import Settings, settings as default_settings
from services.providers.base import (
    DefinitionProvider,
    Gloss,
    OcrCandidate,
    OcrExtractor,
    ProviderSet,
    SpeechSynthesizer,
    SynthesizedAudio,
    TranslationProvider,
)
from services.providers.offline import OfflineLexicon, SilentSpeech, silent_wav
from utils.logging import get_logger

logger = get_logger(__name__)


def build_providers(config: Optional[Settings] = None) -> ProviderSet:
    """Construct the provider set for the given settings."""
    config = config or default_settings

    if config.GOOGLE_API_KEY and not config.GEMINI_FORCE_MOCK:
        from services.providers.gemini import GeminiLexicon

        lexicon = GeminiLexicon(
            api_key=config.GOOGLE_API_KEY,
            model=config.GEMINI_MODEL,
            timeout=config.PROVIDER_TIMEOUT_SECONDS,
            max_retries=config.PROVIDER_MAX_RETRIES,
        )
    else:
        logger.warning("GOOGLE_API_KEY not configured - using offline OCR and dictionary")
        lexicon = OfflineLexicon()

    if config.AZURE_SPEECH_API_KEY and not config.AZURE_SPEECH_FORCE_MOCK:
        from services.providers.azure_speech import AzureSpeechSynthesizer

        speech = AzureSpeechSynthesizer(
            api_key=config.AZURE_SPEECH_API_KEY,
            region=config.AZURE_SPEECH_REGION,
            timeout=config.PROVIDER_TIMEOUT_SECONDS,
            max_retries=config.PROVIDER_MAX_RETRIES,
        )
    else:
        logger.warning("AZURE_SPEECH_API_KEY not configured - using silent audio clips")
        speech = SilentSpeech()

    return ProviderSet(
        ocr=lexicon,
        definitions=lexicon,
        translations=lexicon,
        speech=speech,
        voice=config.AZURE_SPEECH_VOICE,
    )


__all__ = [
    "build_providers",
    "ProviderSet",
    "OcrCandidate",
    "Gloss",
    "SynthesizedAudio",
    "OcrExtractor",
    "DefinitionProvider",
    "TranslationProvider",
    "SpeechSynthesizer",
    "OfflineLexicon",
    "SilentSpeech",
    "silent_wav",
]
