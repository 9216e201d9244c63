"""
Tests for the content-addressed artifact cache (file backend).
"""

import pytest

from utils.cache import ContentCache


@pytest.fixture
def file_cache(tmp_path):
    return ContentCache(root=tmp_path / "cache", blob_root=tmp_path / "blobs", use_redis=False)


class TestCacheKey:

    def test_normalizes_parts(self):
        assert ContentCache.key("en-meta", "  Apple ") == ContentCache.key("en-meta", "apple")
        assert ContentCache.key("tts-word", "a  b") == ContentCache.key("tts-word", "A b")

    def test_provider_is_part_of_key(self):
        assert ContentCache.key("en-meta", "apple") != ContentCache.key("zh-meta", "apple")
        assert ContentCache.key("en-meta", "apple").startswith("en-meta:")

    def test_parts_are_not_concatenated(self):
        assert ContentCache.key("x", "ab", "c") != ContentCache.key("x", "a", "bc")

    def test_none_part(self):
        assert ContentCache.key("x", None) == ContentCache.key("x", "")


class TestFileBackend:

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, file_cache):
        key = ContentCache.key("en-meta", "apple")
        assert await file_cache.get(key) is None

        await file_cache.put(key, {"definition": "a fruit", "example": "I ate an apple."})

        assert await file_cache.get(key) == {"definition": "a fruit", "example": "I ate an apple."}

    @pytest.mark.asyncio
    async def test_put_replaces(self, file_cache):
        key = ContentCache.key("zh-meta", "apple")
        await file_cache.put(key, {"definition": "苹果"})
        await file_cache.put(key, {"definition": "苹果树"})

        assert (await file_cache.get(key))["definition"] == "苹果树"

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, file_cache):
        key = ContentCache.key("en-meta", "apple")
        file_cache.root.mkdir(parents=True)
        file_cache._file_for(key).write_text("{not json", encoding="utf-8")

        assert await file_cache.get(key) is None

    @pytest.mark.asyncio
    async def test_blobs(self, file_cache):
        key = ContentCache.key("tts-word", "apple", "en-US-AriaNeural", "apple")
        assert file_cache.get_blob(key, ".wav") is None

        path = await file_cache.put_blob(key, b"RIFF", "wav")

        assert path.suffix == ".wav"
        assert file_cache.get_blob(key, ".wav") == path
        assert path.read_bytes() == b"RIFF"

    @pytest.mark.asyncio
    async def test_clear_by_provider(self, file_cache):
        await file_cache.put(ContentCache.key("en-meta", "a"), {"definition": "x"})
        await file_cache.put(ContentCache.key("zh-meta", "a"), {"definition": "y"})
        blob = await file_cache.put_blob(ContentCache.key("tts-word", "a"), b"RIFF", ".wav")

        removed = await file_cache.clear(provider="en-meta")

        assert removed == 1
        assert await file_cache.get(ContentCache.key("en-meta", "a")) is None
        assert await file_cache.get(ContentCache.key("zh-meta", "a")) == {"definition": "y"}
        assert blob.exists()

    @pytest.mark.asyncio
    async def test_clear_everything(self, file_cache):
        await file_cache.put(ContentCache.key("en-meta", "a"), {"definition": "x"})
        blob = await file_cache.put_blob(ContentCache.key("tts-word", "a"), b"RIFF", ".wav")

        assert await file_cache.clear(include_blobs=True) == 2
        assert not blob.exists()
