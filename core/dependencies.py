"""
FastAPI Dependencies Module

Provides dependency injection for services and shared state.

Process-wide singletons (providers, content cache, media store, preview
sessions) are created lazily on first use. Services that need a database
session are built per request on top of them.

Usage:
    from core.dependencies import get_ingestion_coordinator, get_owner_id

    @router.post("/words")
    async def add_words(
        owner_id: int = Depends(get_owner_id),
        coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
    ):
        ...
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from core.database import get_db
from services.providers import ProviderSet, build_providers
from services.review.scheduler import SchedulingEngine
from services.review.stats import StatsAggregator
from services.words.enrichment import EnrichmentService
from services.words.ingestion import IngestionCoordinator
from services.words.media import MediaStore
from services.words.sessions import InMemoryPreviewSessionStore, PreviewSessionStore
from services.words.store import WordStore
from utils.cache import ContentCache
from utils.logging import get_logger

logger = get_logger(__name__)

_providers: Optional[ProviderSet] = None
_content_cache: Optional[ContentCache] = None
_media_store: Optional[MediaStore] = None
_preview_sessions: Optional[PreviewSessionStore] = None


# =============================================================================
# Process-wide singletons
# =============================================================================

def get_providers() -> ProviderSet:
    """
    Get the provider set (live or offline, decided once from settings).

    Returns:
        ProviderSet: OCR, dictionary, translation and speech providers
    """
    global _providers
    if _providers is None:
        _providers = build_providers(settings)
        logger.info(f"Providers initialized: {_providers.mode}")
    return _providers


def get_media_store() -> MediaStore:
    global _media_store
    if _media_store is None:
        _media_store = MediaStore(settings.uploads_path, settings.UPLOADS_URL_PREFIX)
        _media_store.ensure_dirs()
    return _media_store


def get_content_cache() -> ContentCache:
    global _content_cache
    if _content_cache is None:
        media = get_media_store()
        _content_cache = ContentCache(root=media.root / ".cache", blob_root=media.audio_dir)
    return _content_cache


def get_preview_sessions() -> PreviewSessionStore:
    """Get the process-wide preview session store."""
    global _preview_sessions
    if _preview_sessions is None:
        _preview_sessions = InMemoryPreviewSessionStore(ttl_minutes=settings.PREVIEW_TTL_MINUTES)
    return _preview_sessions


def get_initialized_services() -> Dict[str, Any]:
    """Which singletons exist, and the provider mode if known."""
    return {
        "providers": _providers.mode if _providers else None,
        "content_cache": _content_cache is not None,
        "preview_sessions": len(_preview_sessions) if isinstance(_preview_sessions, InMemoryPreviewSessionStore) else None,
    }


# =============================================================================
# Request-scoped dependencies
# =============================================================================

async def get_owner_id(x_user_id: int = Header(..., alias="X-User-Id", gt=0)) -> int:
    """Owner identity, resolved by the upstream gateway."""
    return x_user_id


def get_word_store(db: AsyncSession = Depends(get_db)) -> WordStore:
    return WordStore(db)


def get_enrichment_service(
    store: WordStore = Depends(get_word_store),
    cache: ContentCache = Depends(get_content_cache),
    providers: ProviderSet = Depends(get_providers),
    media: MediaStore = Depends(get_media_store),
) -> EnrichmentService:
    return EnrichmentService(store, cache, providers, media)


def get_scheduling_engine(
    store: WordStore = Depends(get_word_store),
    enrichment: EnrichmentService = Depends(get_enrichment_service),
) -> SchedulingEngine:
    return SchedulingEngine(store, enrichment)


def get_ingestion_coordinator(
    store: WordStore = Depends(get_word_store),
    enrichment: EnrichmentService = Depends(get_enrichment_service),
    scheduler: SchedulingEngine = Depends(get_scheduling_engine),
    sessions: PreviewSessionStore = Depends(get_preview_sessions),
    media: MediaStore = Depends(get_media_store),
    providers: ProviderSet = Depends(get_providers),
) -> IngestionCoordinator:
    return IngestionCoordinator(
        store,
        enrichment,
        scheduler,
        sessions,
        media,
        providers.ocr,
        max_image_bytes=settings.MAX_IMAGE_BYTES,
    )


def get_stats_aggregator(store: WordStore = Depends(get_word_store)) -> StatsAggregator:
    return StatsAggregator(store)
