"""
Words Router

Deck endpoints: typed and photographed word ingestion, the image preview
protocol, and per-word metadata, audio and regeneration.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status

from config.settings import settings
from core.dependencies import get_ingestion_coordinator, get_owner_id
from core.schemas import (
    CancelImportRequest,
    CancelImportResponse,
    ConfirmImportRequest,
    ImportPreview,
    ManualWordsRequest,
    WordAudioView,
    WordMetadataView,
    WordView,
)
from services.words.ingestion import IngestionCoordinator
from utils.exceptions import NotFoundError
from utils.logging import get_logger
from utils.rate_limit import limit_ingest

logger = get_logger(__name__)

router = APIRouter(prefix="/api/words", tags=["Words"])


@router.get("", response_model=List[WordView])
async def list_words(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """List the caller's words, newest first."""
    return await coordinator.list_words(owner_id, limit or settings.WORD_LIST_LIMIT)


@router.post("", response_model=List[WordView], status_code=status.HTTP_201_CREATED)
@limit_ingest
async def add_words(
    request: Request,
    payload: ManualWordsRequest,
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """Add typed words (whitespace or comma separated)."""
    return await coordinator.ingest_text(owner_id, payload.raw_inputs())


# =============================================================================
# Image import
# =============================================================================

@router.post("/image", response_model=List[WordView], status_code=status.HTTP_201_CREATED)
@limit_ingest
async def import_image(
    request: Request,
    image: UploadFile = File(...),
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """Import every word found in a photo in one step."""
    data = await image.read()
    return await coordinator.ingest_image(owner_id, data, image.filename, image.content_type)


@router.post("/image/preview", response_model=ImportPreview)
@limit_ingest
async def preview_image(
    request: Request,
    image: UploadFile = File(...),
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """Read candidate words from a photo without adding them yet."""
    data = await image.read()
    return await coordinator.create_preview(owner_id, data, image.filename, image.content_type)


@router.post("/image/confirm", response_model=List[WordView], status_code=status.HTTP_201_CREATED)
@limit_ingest
async def confirm_image(
    request: Request,
    payload: ConfirmImportRequest,
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """Add the selected preview candidates to the deck."""
    return await coordinator.confirm_import(
        payload.upload_id,
        owner_id,
        payload.words,
        finalize=payload.finalize,
    )


@router.post("/image/cancel", response_model=CancelImportResponse)
async def cancel_image(
    payload: CancelImportRequest,
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """Discard a preview and its image."""
    cancelled = await coordinator.cancel_preview(payload.upload_id, owner_id)
    return CancelImportResponse(cancelled=cancelled)


# =============================================================================
# Single word
# =============================================================================

@router.get("/{word_id}", response_model=WordView)
async def get_word(
    word_id: int,
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    return await coordinator.get_word(owner_id, word_id)


@router.get("/{word_id}/metadata", response_model=WordMetadataView)
async def get_word_metadata(
    word_id: int,
    lang: str = Query("en", pattern="^(en|zh)$"),
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """English metadata, or the Chinese supplement with ``lang=zh``."""
    return await coordinator.word_metadata(owner_id, word_id, lang)


@router.get("/{word_id}/audio", response_model=WordAudioView)
async def get_word_audio(
    word_id: int,
    target: str = Query("word", description="word, enDefinition or enExample"),
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """URL of the pronunciation, definition or example clip."""
    url = await coordinator.word_audio(owner_id, word_id, target)
    if not url:
        raise NotFoundError("Audio not available", resource="audio", details={"target": target})
    return WordAudioView(word_id=word_id, target=target, url=url)


@router.post("/{word_id}/regenerate", response_model=WordView)
@limit_ingest
async def regenerate_word(
    request: Request,
    word_id: int,
    owner_id: int = Depends(get_owner_id),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
):
    """Fetch a fresh definition and translation for a word."""
    return await coordinator.regenerate(owner_id, word_id)
