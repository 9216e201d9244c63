"""
Enrichment Service

Attaches definitions, translations and synthesized audio to words.

Every ``ensure_*`` operation is idempotent unless ``force`` is set: if the
artifact already exists it is returned untouched. Provider results go
through the content cache so the same input never costs two provider calls.
Placeholder output from the offline providers is stored on the word but
never cached, so a later live call can replace it.

Usage:
    from services.words.enrichment import EnrichmentService

    enrichment = EnrichmentService(store, cache, providers, media)
    await enrichment.enrich(word)
"""

from typing import Optional

from core.models import Word, WordMetadata
from services.providers.base import Gloss, ProviderSet
from services.words.media import MediaStore
from services.words.store import WordStore
from utils.cache import ContentCache
from utils.exceptions import MetadataMissingError, ValidationError
from utils.logging import get_logger

logger = get_logger(__name__)

AUDIO_EXTENSION = ".wav"


class EnrichmentService:
    """
    Produces and persists per-word enrichment.

    Attributes:
        store: Word persistence for the current request
        cache: Content-addressed artifact cache
        providers: OCR/definition/translation/speech providers
        media: Uploads directory helper (public URLs)
    """

    def __init__(
        self,
        store: WordStore,
        cache: ContentCache,
        providers: ProviderSet,
        media: MediaStore,
    ):
        self.store = store
        self.cache = cache
        self.providers = providers
        self.media = media

    @staticmethod
    def _require_lemma(word: Word) -> str:
        lemma = (word.lemma or "").strip()
        if not lemma:
            raise ValidationError("Word lemma is empty", field="lemma", details={"word_id": word.id})
        return lemma

    # =========================================================================
    # Composite
    # =========================================================================

    async def enrich(
        self,
        word: Word,
        *,
        force_metadata: bool = False,
        force_translation: bool = False,
        force_audio: bool = False,
        skip_audio: bool = False,
    ) -> WordMetadata:
        """English metadata, then the Chinese supplement, then pronunciation audio."""
        await self.ensure_english_metadata(word, force=force_metadata, skip_audio=skip_audio)
        metadata = await self.ensure_chinese_supplement(word, force=force_translation)
        if not skip_audio:
            await self.ensure_pronunciation_audio(word, force=force_audio)
        return metadata

    # =========================================================================
    # Text
    # =========================================================================

    async def ensure_english_metadata(
        self,
        word: Word,
        *,
        force: bool = False,
        skip_audio: bool = False,
    ) -> WordMetadata:
        """
        Make sure the word has an English definition and example.

        Args:
            word: Word to enrich
            force: Fetch a fresh gloss even if one is stored (bypasses the cache read)
            skip_audio: Do not synthesize definition/example audio

        Returns:
            WordMetadata: The stored metadata row
        """
        lemma = self._require_lemma(word)

        metadata = await self.store.get_metadata(word.id)
        if metadata is not None and metadata.en_definition and not force:
            return metadata

        gloss = await self._english_gloss(lemma, force=force)

        async with self.store.transaction():
            metadata = await self.store.get_or_create_metadata(word.id)
            if metadata.en_definition != gloss.definition:
                metadata.en_definition_audio_url = None
            if metadata.en_example != gloss.example:
                metadata.en_example_audio_url = None
            metadata.en_definition = gloss.definition
            metadata.en_example = gloss.example
            metadata.provider = "offline" if gloss.offline else self.providers.definitions.name

        logger.info(f"English metadata stored for '{lemma}' (word {word.id})")

        if not skip_audio:
            # Clips are cleared above when their text changed
            await self.ensure_definition_audio(word)
            await self.ensure_example_audio(word)

        return metadata

    async def ensure_chinese_supplement(self, word: Word, *, force: bool = False) -> WordMetadata:
        """
        Make sure the word has a Chinese definition and example.

        Raises:
            MetadataMissingError: If the English gloss does not exist yet
        """
        lemma = self._require_lemma(word)

        metadata = await self.store.get_metadata(word.id)
        if metadata is None or not metadata.en_definition:
            raise MetadataMissingError(word_id=word.id)

        if metadata.has_chinese and not force:
            return metadata

        english = Gloss(definition=metadata.en_definition, example=metadata.en_example or "")
        key = ContentCache.key("zh-meta", lemma, english.definition, english.example)

        translation = await self._cached_gloss(key, force=force)
        if translation is None:
            translation = await self.providers.translations.translate(lemma, english)
            if not translation.offline:
                await self.cache.put(key, translation.to_dict())

        async with self.store.transaction():
            metadata.zh_definition = translation.definition
            metadata.zh_example = translation.example

        logger.info(f"Chinese supplement stored for '{lemma}' (word {word.id})")
        return metadata

    async def _english_gloss(self, lemma: str, force: bool) -> Gloss:
        key = ContentCache.key("en-meta", lemma)
        gloss = await self._cached_gloss(key, force=force)
        if gloss is not None:
            return gloss

        gloss = await self.providers.definitions.define(lemma)
        if not gloss.offline:
            await self.cache.put(key, gloss.to_dict())
        return gloss

    async def _cached_gloss(self, key: str, force: bool) -> Optional[Gloss]:
        if force:
            return None
        cached = await self.cache.get(key)
        if not cached:
            return None
        try:
            return Gloss.from_dict(cached)
        except (KeyError, TypeError):
            logger.warning(f"Ignoring malformed cache entry {key}")
            return None

    # =========================================================================
    # Audio
    # =========================================================================

    async def ensure_pronunciation_audio(self, word: Word, *, force: bool = False) -> str:
        """Audio of the lemma itself; returns its public URL."""
        lemma = self._require_lemma(word)

        if not force and self.media.resolve(word.audio_url):
            return word.audio_url

        url = await self._synthesize("word", lemma, lemma, force=force)
        async with self.store.transaction():
            word.audio_url = url
        return url

    async def ensure_definition_audio(self, word: Word, *, force: bool = False) -> Optional[str]:
        """Audio of the English definition; None when there is no definition yet."""
        lemma = self._require_lemma(word)

        metadata = await self.store.get_metadata(word.id)
        if metadata is None or not metadata.en_definition:
            return None

        if not force and self.media.resolve(metadata.en_definition_audio_url):
            return metadata.en_definition_audio_url

        url = await self._synthesize("definition", lemma, metadata.en_definition, force=force)
        async with self.store.transaction():
            metadata.en_definition_audio_url = url
        return url

    async def ensure_example_audio(self, word: Word, *, force: bool = False) -> Optional[str]:
        """Audio of the English example sentence; None when there is no example yet."""
        lemma = self._require_lemma(word)

        metadata = await self.store.get_metadata(word.id)
        if metadata is None or not metadata.en_example:
            return None

        if not force and self.media.resolve(metadata.en_example_audio_url):
            return metadata.en_example_audio_url

        url = await self._synthesize("example", lemma, metadata.en_example, force=force)
        async with self.store.transaction():
            metadata.en_example_audio_url = url
        return url

    async def _synthesize(self, kind: str, lemma: str, text: str, force: bool) -> str:
        """Synthesize ``text`` into a content-addressed clip and return its URL."""
        voice = self.providers.voice
        key = ContentCache.key(f"tts-{kind}", lemma, voice, text)

        if not force:
            existing = self.cache.get_blob(key, AUDIO_EXTENSION)
            if existing is not None:
                logger.debug(f"Reusing cached {kind} audio for '{lemma}'")
                return self.media.public_url(existing)

        audio = await self.providers.speech.synthesize(text, voice)
        if audio.offline:
            # One shared silent clip; live audio must not be shadowed by it
            key = ContentCache.key("tts-offline", "silent")
        path = await self.cache.put_blob(key, audio.data, audio.extension)
        return self.media.public_url(path)
