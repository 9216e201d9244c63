"""
Tests for the enrichment service: idempotency, forced refresh, caching
and offline placeholders.
"""

import pytest

from services.providers.base import ProviderSet
from services.providers.offline import OfflineLexicon, SilentSpeech
from services.words.enrichment import EnrichmentService
from utils.cache import ContentCache
from utils.exceptions import MetadataMissingError, ValidationError


class TestEnglishMetadata:

    @pytest.mark.asyncio
    async def test_generated_once(self, enrichment, lexicon, make_word):
        word = await make_word("apple")

        first = await enrichment.ensure_english_metadata(word)
        second = await enrichment.ensure_english_metadata(word)

        assert first.en_definition == "apple definition v1"
        assert second.en_definition == first.en_definition
        assert lexicon.define_calls == ["apple"]
        assert first.provider == "fake-lexicon"

    @pytest.mark.asyncio
    async def test_definition_and_example_audio(self, enrichment, speech, make_word):
        word = await make_word("apple")

        metadata = await enrichment.ensure_english_metadata(word)

        assert metadata.en_definition_audio_url.startswith("/uploads/audio/")
        assert metadata.en_example_audio_url.startswith("/uploads/audio/")
        assert speech.calls == ["apple definition v1", "An example with apple v1."]

    @pytest.mark.asyncio
    async def test_skip_audio(self, enrichment, speech, make_word):
        word = await make_word("apple")

        metadata = await enrichment.ensure_english_metadata(word, skip_audio=True)

        assert metadata.en_definition_audio_url is None
        assert speech.calls == []

    @pytest.mark.asyncio
    async def test_force_replaces_gloss_and_stale_audio(self, enrichment, lexicon, make_word):
        word = await make_word("apple")
        await enrichment.ensure_english_metadata(word)
        lexicon.version = 2

        metadata = await enrichment.ensure_english_metadata(word, force=True, skip_audio=True)

        assert metadata.en_definition == "apple definition v2"
        assert metadata.en_definition_audio_url is None
        assert metadata.en_example_audio_url is None

    @pytest.mark.asyncio
    async def test_force_with_same_text_keeps_audio(self, enrichment, speech, make_word):
        word = await make_word("apple")
        first = await enrichment.ensure_english_metadata(word)
        urls = (first.en_definition_audio_url, first.en_example_audio_url)

        metadata = await enrichment.ensure_english_metadata(word, force=True)

        assert (metadata.en_definition_audio_url, metadata.en_example_audio_url) == urls
        assert speech.calls == ["apple definition v1", "An example with apple v1."]

    @pytest.mark.asyncio
    async def test_force_with_new_text_resynthesizes(self, enrichment, lexicon, speech, make_word):
        word = await make_word("apple")
        await enrichment.ensure_english_metadata(word)
        lexicon.version = 2

        await enrichment.ensure_english_metadata(word, force=True)

        assert speech.calls[2:] == ["apple definition v2", "An example with apple v2."]

    @pytest.mark.asyncio
    async def test_cache_shared_between_owners(self, enrichment, lexicon, make_word):
        await enrichment.ensure_english_metadata(await make_word("apple", owner_id=1))
        metadata = await enrichment.ensure_english_metadata(await make_word("apple", owner_id=2))

        assert metadata.en_definition == "apple definition v1"
        assert lexicon.define_calls == ["apple"]

    @pytest.mark.asyncio
    async def test_empty_lemma(self, enrichment, make_word):
        word = await make_word("apple")
        word.lemma = "   "

        with pytest.raises(ValidationError):
            await enrichment.ensure_english_metadata(word)


class TestChineseSupplement:

    @pytest.mark.asyncio
    async def test_requires_english(self, enrichment, make_word):
        word = await make_word("apple")

        with pytest.raises(MetadataMissingError):
            await enrichment.ensure_chinese_supplement(word)

    @pytest.mark.asyncio
    async def test_generated_once(self, enrichment, lexicon, make_word):
        word = await make_word("apple")
        await enrichment.ensure_english_metadata(word, skip_audio=True)

        first = await enrichment.ensure_chinese_supplement(word)
        await enrichment.ensure_chinese_supplement(word)

        assert first.zh_definition == "apple 释义 v1"
        assert first.zh_example == "apple 例句 v1"
        assert lexicon.translate_calls == ["apple"]

    @pytest.mark.asyncio
    async def test_force_refreshes(self, enrichment, lexicon, make_word):
        word = await make_word("apple")
        await enrichment.ensure_english_metadata(word, skip_audio=True)
        await enrichment.ensure_chinese_supplement(word)
        lexicon.version = 2

        metadata = await enrichment.ensure_chinese_supplement(word, force=True)

        assert metadata.zh_definition == "apple 释义 v2"


class TestAudio:

    @pytest.mark.asyncio
    async def test_pronunciation_idempotent(self, enrichment, speech, media, make_word):
        word = await make_word("apple")

        url = await enrichment.ensure_pronunciation_audio(word)
        again = await enrichment.ensure_pronunciation_audio(word)

        assert url == again == word.audio_url
        assert media.resolve(url).read_bytes() == b"RIFFapple"
        assert speech.calls == ["apple"]

    @pytest.mark.asyncio
    async def test_missing_file_is_resynthesized(self, enrichment, speech, media, make_word):
        word = await make_word("apple")
        url = await enrichment.ensure_pronunciation_audio(word)
        media.resolve(url).unlink()

        await enrichment.ensure_pronunciation_audio(word)

        assert speech.calls == ["apple", "apple"]
        assert media.resolve(word.audio_url) is not None

    @pytest.mark.asyncio
    async def test_clip_reused_across_owners(self, enrichment, speech, make_word):
        mine = await make_word("apple", owner_id=1)
        theirs = await make_word("apple", owner_id=2)

        await enrichment.ensure_pronunciation_audio(mine)
        await enrichment.ensure_pronunciation_audio(theirs)

        assert mine.audio_url == theirs.audio_url
        assert speech.calls == ["apple"]

    @pytest.mark.asyncio
    async def test_definition_audio_without_metadata(self, enrichment, make_word):
        word = await make_word("apple")

        assert await enrichment.ensure_definition_audio(word) is None
        assert await enrichment.ensure_example_audio(word) is None


class TestOfflineProviders:

    @pytest.fixture
    def offline_enrichment(self, store, cache, media):
        lexicon = OfflineLexicon()
        providers = ProviderSet(
            ocr=lexicon,
            definitions=lexicon,
            translations=lexicon,
            speech=SilentSpeech(),
            voice="en-US-AriaNeural",
        )
        return EnrichmentService(store, cache, providers, media)

    @pytest.mark.asyncio
    async def test_placeholders_are_stored_but_not_cached(self, offline_enrichment, cache, make_word):
        word = await make_word("apple")

        metadata = await offline_enrichment.enrich(word)

        assert metadata.provider == "offline"
        assert "apple" in metadata.en_definition
        assert metadata.zh_definition
        assert await cache.get(ContentCache.key("en-meta", "apple")) is None

    @pytest.mark.asyncio
    async def test_silent_clip_shared(self, offline_enrichment, make_word):
        apple = await make_word("apple")
        pear = await make_word("pear")

        await offline_enrichment.ensure_pronunciation_audio(apple)
        await offline_enrichment.ensure_pronunciation_audio(pear)

        assert apple.audio_url == pear.audio_url
