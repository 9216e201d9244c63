"""
Ingestion Coordinator

Turns typed text or photos into enriched, scheduled words.

Typed words are stored right away. Photos go through a two-step protocol:
``create_preview`` runs OCR and parks the candidates in a short-lived
session, then ``confirm_import`` turns the chosen candidates into words (or
``cancel_preview`` drops the session and its image).

Usage:
    from services.words.ingestion import IngestionCoordinator

    coordinator = IngestionCoordinator(store, enrichment, scheduler, sessions, media, ocr)
    preview = await coordinator.create_preview(owner_id, image_bytes, "page.jpg")
    words = await coordinator.confirm_import(preview.upload_id, owner_id, ["cat"])
"""

import inspect
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from config.constants import AUDIO_TARGET_DEFINITION, AUDIO_TARGET_EXAMPLE, AUDIO_TARGET_WORD
from core.models import Word
from core.schemas import CandidateView, ImportPreview, WordMetadataView, WordView
from services.providers.base import OcrCandidate, OcrExtractor
from services.review.scheduler import SchedulingEngine
from services.words.enrichment import EnrichmentService
from services.words.lemmas import dedupe_lemmas, normalize_lemma, split_lemmas
from services.words.media import MediaStore, guess_mime_type
from services.words.sessions import PendingImport, PreviewSessionStore
from services.words.store import WordStore
from utils.exceptions import ExtractionEmptyError, NotFoundError, ValidationError
from utils.logging import get_logger, log_word_action

logger = get_logger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], Any]

DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024


class IngestionCoordinator:
    """
    Orchestrates word creation for one request.

    Attributes:
        store: Word persistence for the current request
        enrichment: Metadata/translation/audio producer
        scheduler: Creates the first review of new words
        sessions: Process-wide preview session store
        media: Uploaded image storage
        ocr: Word extractor for images
    """

    def __init__(
        self,
        store: WordStore,
        enrichment: EnrichmentService,
        scheduler: SchedulingEngine,
        sessions: PreviewSessionStore,
        media: MediaStore,
        ocr: OcrExtractor,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    ):
        self.store = store
        self.enrichment = enrichment
        self.scheduler = scheduler
        self.sessions = sessions
        self.media = media
        self.ocr = ocr
        self.max_image_bytes = max_image_bytes

    # =========================================================================
    # Manual text flow
    # =========================================================================

    async def ingest_text(self, owner_id: int, inputs: Sequence[str]) -> List[WordView]:
        """
        Add typed words to the owner's deck.

        Input is split on whitespace and commas, lowercased and deduplicated.
        Words already in the deck are returned as they are.

        Raises:
            ValidationError: If no word remains after normalization
        """
        lemmas = split_lemmas(inputs)
        if not lemmas:
            raise ValidationError("No words provided", field="words")

        results = []
        for lemma in lemmas:
            word, created = await self._upsert(owner_id, lemma)
            metadata = await self.enrichment.enrich(word)
            await self.scheduler.schedule_initial(word)

            log_word_action("ingest", owner_id, lemma, True, "created" if created else "existing")
            results.append(WordView.from_records(word, metadata))
        return results

    # =========================================================================
    # Image flow
    # =========================================================================

    async def create_preview(
        self,
        owner_id: int,
        image: bytes,
        filename: Optional[str] = None,
        mime_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ImportPreview:
        """
        Store an image, read its words and open a preview session.

        Nothing is written to the deck until the preview is confirmed.

        Raises:
            ValidationError: If the image is empty or too large
            ExtractionEmptyError: If OCR finds no usable word
        """
        await self._sweep(now)

        if not image:
            raise ValidationError("Image is empty", field="image")
        if len(image) > self.max_image_bytes:
            raise ValidationError(
                f"Image exceeds {self.max_image_bytes} bytes",
                field="image",
                details={"size": len(image), "limit": self.max_image_bytes},
            )

        image_path = await self.media.save_image(image, filename)
        try:
            found = await self.ocr.extract(image, mime_type or guess_mime_type(filename))
        except Exception:
            await self.media.remove(image_path)
            raise

        candidates = self._unique_candidates(found)
        if not candidates:
            await self.media.remove(image_path)
            raise ExtractionEmptyError()

        session = PendingImport.create(owner_id, image_path, candidates, now=now)
        await self.sessions.put(session)

        logger.info(
            f"Preview {session.upload_id} for user {owner_id}: "
            f"{', '.join(c.lemma for c in candidates)}"
        )
        return ImportPreview(
            upload_id=session.upload_id,
            image_path=image_path,
            candidates=[CandidateView(lemma=c.lemma, confidence=c.confidence) for c in candidates],
        )

    async def confirm_import(
        self,
        upload_id: str,
        owner_id: int,
        lemmas: Sequence[str],
        *,
        finalize: bool = True,
        on_progress: Optional[ProgressCallback] = None,
        now: Optional[datetime] = None,
    ) -> List[WordView]:
        """
        Turn selected preview candidates into words.

        Lemmas that are not pending in the session are ignored. Confirmed
        lemmas leave the session; the session itself is closed when
        ``finalize`` is set or nothing is left to confirm.

        Args:
            upload_id: Session id from ``create_preview``
            owner_id: Caller; must own the session
            lemmas: Candidates to keep
            finalize: Close the session after this batch
            on_progress: Called with ``processing``/``completed`` events per lemma

        Raises:
            NotFoundError: If the session is missing, expired or not the caller's
            ValidationError: If none of ``lemmas`` is pending in the session
        """
        await self._sweep(now)
        session = await self._owned_session(upload_id, owner_id, now)

        async with session.lock:
            # A confirm that held the lock before us may have closed the session
            session = await self._owned_session(upload_id, owner_id, now)

            selected = [lemma for lemma in dedupe_lemmas(lemmas) if lemma in session.candidates]
            if not selected:
                raise ValidationError("No valid words selected", field="words")

            results = []
            total = len(selected)
            # Sweeps do not take the lock; keep them off the image until the batch ends
            session.in_flight = True
            try:
                for index, lemma in enumerate(selected, start=1):
                    await self._emit(on_progress, {"type": "processing", "lemma": lemma, "index": index, "total": total})

                    word, created = await self._upsert(owner_id, lemma, session.image_path)
                    session.image_attached = True
                    metadata = await self.enrichment.enrich(word, force_metadata=True, force_translation=True)
                    await self.scheduler.schedule_initial(word)

                    confidence = session.candidates.pop(lemma)
                    session.confirmed.append(lemma)
                    view = WordView.from_records(word, metadata, confidence=confidence)
                    results.append(view)

                    log_word_action("confirm", owner_id, lemma, True, "created" if created else "existing")
                    await self._emit(on_progress, {
                        "type": "completed", "lemma": lemma, "index": index, "total": total, "word": view,
                    })
            finally:
                session.in_flight = False
                # Swept mid-batch before any word kept the image
                if not session.image_attached and await self.sessions.get(upload_id, now) is None:
                    await self.media.remove(session.image_path)

            if finalize or not session.candidates:
                await self.sessions.delete(upload_id)
                logger.info(f"Preview {upload_id} closed after confirming {len(session.confirmed)} words")

        return results

    async def cancel_preview(self, upload_id: str, owner_id: int, now: Optional[datetime] = None) -> bool:
        """
        Drop a preview session and its image.

        Returns:
            bool: False if there was no such session for this owner
        """
        await self._sweep(now)
        session = await self.sessions.get(upload_id, now)
        if session is None or session.owner_id != owner_id:
            return False

        async with session.lock:
            if await self.sessions.get(upload_id, now) is not session:
                return False
            await self.sessions.delete(upload_id)

        if not session.image_in_use:
            await self.media.remove(session.image_path)
        logger.info(f"Preview {upload_id} cancelled by user {owner_id}")
        return True

    async def ingest_image(
        self,
        owner_id: int,
        image: bytes,
        filename: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> List[WordView]:
        """One-shot import: preview, then confirm every candidate."""
        preview = await self.create_preview(owner_id, image, filename, mime_type)
        return await self.confirm_import(
            preview.upload_id,
            owner_id,
            [candidate.lemma for candidate in preview.candidates],
            finalize=True,
        )

    # =========================================================================
    # Existing words
    # =========================================================================

    async def regenerate(self, owner_id: int, word_id: int) -> WordView:
        """Refresh a word's definition and translation. Audio is left alone."""
        word = await self._owned_word(owner_id, word_id)
        metadata = await self.enrichment.enrich(
            word,
            force_metadata=True,
            force_translation=True,
            skip_audio=True,
        )
        log_word_action("regenerate", owner_id, word.lemma, True)
        return WordView.from_records(word, metadata)

    async def list_words(self, owner_id: int, limit: int = 500) -> List[WordView]:
        rows = await self.store.list_words(owner_id, limit)
        return [WordView.from_records(word, metadata) for word, metadata in rows]

    async def get_word(self, owner_id: int, word_id: int) -> WordView:
        word = await self._owned_word(owner_id, word_id)
        return WordView.from_records(word, await self.store.get_metadata(word.id))

    async def word_metadata(self, owner_id: int, word_id: int, lang: str = "en") -> WordMetadataView:
        """English or Chinese metadata for a word, generated on first request."""
        lang = (lang or "en").lower()
        if lang not in ("en", "zh"):
            raise ValidationError(f"Unsupported language: {lang}", field="lang")

        word = await self._owned_word(owner_id, word_id)
        metadata = await self.enrichment.ensure_english_metadata(word)

        if lang == "zh":
            metadata = await self.enrichment.ensure_chinese_supplement(word)
            return WordMetadataView(
                word_id=word.id,
                lang="zh",
                definition=metadata.zh_definition,
                example=metadata.zh_example,
            )

        return WordMetadataView(
            word_id=word.id,
            lang="en",
            definition=metadata.en_definition,
            example=metadata.en_example,
            definition_audio_url=metadata.en_definition_audio_url,
            example_audio_url=metadata.en_example_audio_url,
        )

    async def word_audio(self, owner_id: int, word_id: int, target: str = AUDIO_TARGET_WORD) -> Optional[str]:
        """Public URL of the requested clip, synthesizing it if needed."""
        ensure = {
            AUDIO_TARGET_WORD: self.enrichment.ensure_pronunciation_audio,
            AUDIO_TARGET_DEFINITION: self.enrichment.ensure_definition_audio,
            AUDIO_TARGET_EXAMPLE: self.enrichment.ensure_example_audio,
        }.get(target)
        if ensure is None:
            raise ValidationError(f"Unsupported audio target: {target}", field="target")

        word = await self._owned_word(owner_id, word_id)
        return await ensure(word)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _upsert(self, owner_id: int, lemma: str, image_path: Optional[str] = None) -> Tuple[Word, bool]:
        async with self.store.transaction():
            return await self.store.upsert_word(owner_id, lemma, image_path)

    async def _owned_word(self, owner_id: int, word_id: int) -> Word:
        word = await self.store.get_word(word_id, owner_id=owner_id)
        if word is None:
            raise NotFoundError("Word not found", resource="word", details={"word_id": word_id})
        return word

    async def _owned_session(self, upload_id: str, owner_id: int, now: Optional[datetime]) -> PendingImport:
        session = await self.sessions.get(upload_id, now)
        if session is None or session.owner_id != owner_id:
            raise NotFoundError("Upload session not found or expired", resource="upload")
        return session

    async def _sweep(self, now: Optional[datetime]) -> None:
        for session in await self.sessions.sweep(now):
            if not session.image_in_use:
                await self.media.remove(session.image_path)

    @staticmethod
    def _unique_candidates(found: Sequence[OcrCandidate]) -> List[OcrCandidate]:
        seen = set()
        unique = []
        for candidate in found:
            lemma = normalize_lemma(candidate.lemma)
            if lemma and lemma not in seen:
                seen.add(lemma)
                unique.append(OcrCandidate(lemma=lemma, confidence=candidate.confidence))
        return unique

    @staticmethod
    async def _emit(callback: Optional[ProgressCallback], event: Dict[str, Any]) -> None:
        if callback is None:
            return
        result = callback(event)
        if inspect.isawaitable(result):
            await result
