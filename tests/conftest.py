"""
Test Configuration

Pytest configuration and shared fixtures for all tests.

Every test gets a fresh in-memory SQLite database, a temporary uploads
directory and fake providers that record their calls.
"""

from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base
import core.models  # noqa: F401  registers tables on Base.metadata
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
from services.review.scheduler import SchedulingEngine
from services.review.stats import StatsAggregator
from services.words.enrichment import EnrichmentService
from services.words.ingestion import IngestionCoordinator
from services.words.media import MediaStore
from services.words.sessions import InMemoryPreviewSessionStore
from services.words.store import WordStore
from utils.cache import ContentCache

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

FAKE_IMAGE = b"\xff\xd8\xff\xe0fake-jpeg-bytes"


# =============================================================================
# Fake providers
# =============================================================================

class FakeLexicon(OcrExtractor, DefinitionProvider, TranslationProvider):
    """Deterministic lexicon; bump ``version`` to make the next answers differ."""

    name = "fake-lexicon"

    def __init__(self, ocr_words: Optional[List[str]] = None):
        self.ocr_words = ocr_words if ocr_words is not None else ["cat", "dog"]
        self.version = 1
        self.extract_calls: List[str] = []
        self.define_calls: List[str] = []
        self.translate_calls: List[str] = []

    async def extract(self, image: bytes, mime_type: str) -> List[OcrCandidate]:
        self.extract_calls.append(mime_type)
        return [OcrCandidate(lemma=word, confidence=0.9) for word in self.ocr_words]

    async def define(self, lemma: str) -> Gloss:
        self.define_calls.append(lemma)
        return Gloss(
            definition=f"{lemma} definition v{self.version}",
            example=f"An example with {lemma} v{self.version}.",
        )

    async def translate(self, lemma: str, english: Gloss) -> Gloss:
        self.translate_calls.append(lemma)
        return Gloss(
            definition=f"{lemma} 释义 v{self.version}",
            example=f"{lemma} 例句 v{self.version}",
        )


class FakeSpeech(SpeechSynthesizer):
    name = "fake-speech"

    def __init__(self):
        self.calls: List[str] = []

    async def synthesize(self, text: str, voice: str) -> SynthesizedAudio:
        self.calls.append(text)
        return SynthesizedAudio(data=b"RIFF" + text.encode("utf-8"), extension=".wav")


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    SessionLocal = sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)
    async with SessionLocal() as session:
        yield session


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def lexicon():
    return FakeLexicon()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def providers(lexicon, speech):
    return ProviderSet(
        ocr=lexicon,
        definitions=lexicon,
        translations=lexicon,
        speech=speech,
        voice="en-US-AriaNeural",
    )


@pytest.fixture
def media(tmp_path):
    store = MediaStore(tmp_path / "uploads", "/uploads")
    store.ensure_dirs()
    return store


@pytest.fixture
def cache(media):
    return ContentCache(root=media.root / ".cache", blob_root=media.audio_dir, use_redis=False)


@pytest.fixture
def preview_sessions():
    return InMemoryPreviewSessionStore(ttl_minutes=10)


@pytest.fixture
def store(test_db):
    return WordStore(test_db)


@pytest.fixture
def enrichment(store, cache, providers, media):
    return EnrichmentService(store, cache, providers, media)


@pytest.fixture
def scheduler(store, enrichment):
    return SchedulingEngine(store, enrichment)


@pytest.fixture
def stats(store):
    return StatsAggregator(store)


@pytest.fixture
def coordinator(store, enrichment, scheduler, preview_sessions, media, lexicon):
    return IngestionCoordinator(
        store,
        enrichment,
        scheduler,
        preview_sessions,
        media,
        lexicon,
        max_image_bytes=1024,
    )


@pytest_asyncio.fixture
async def make_word(store):
    """Create a bare word (no metadata, no review) for an owner."""
    async def _make(lemma: str, owner_id: int = 1):
        async with store.transaction():
            word, _ = await store.upsert_word(owner_id, lemma)
        return word
    return _make


# =============================================================================
# API
# =============================================================================

@pytest_asyncio.fixture
async def client(test_engine, providers, media, cache, preview_sessions) -> AsyncGenerator[AsyncClient, None]:
    """Async test client wired to the test database and fake providers."""
    from main import app
    from core import dependencies
    from core.database import get_db
    from utils.rate_limit import limiter

    SessionLocal = sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with SessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_providers] = lambda: providers
    app.dependency_overrides[dependencies.get_media_store] = lambda: media
    app.dependency_overrides[dependencies.get_content_cache] = lambda: cache
    app.dependency_overrides[dependencies.get_preview_sessions] = lambda: preview_sessions
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    limiter.enabled = True
