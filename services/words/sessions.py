"""
Preview Session Store

Holds image-import previews between the preview and confirm calls.

Sessions are process-wide, in memory and short lived. Expiry is lazy:
an expired session is invisible to ``get`` and is physically removed by
``sweep``, which the ingestion coordinator runs at the start of every
preview, confirm and cancel call.

Usage:
    from services.words.sessions import InMemoryPreviewSessionStore, PendingImport

    store = InMemoryPreviewSessionStore(ttl_minutes=10)
    await store.put(PendingImport.create(owner_id=1, image_path=url, candidates=found))
    session = await store.get(upload_id)
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from core.models import utcnow
from services.providers.base import OcrCandidate
from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PendingImport:
    """
    An unconfirmed image import.

    Attributes:
        upload_id: Opaque session id handed to the client
        owner_id: User who created the preview
        image_path: Public URL of the stored image
        candidates: Remaining lemma -> OCR confidence, in OCR order
        created_at: Creation time (naive UTC)
        confirmed: Lemmas already turned into words
        image_attached: A stored word references the image
        in_flight: A confirm batch is running
        lock: Serializes confirm and cancel calls on this session
    """
    upload_id: str
    owner_id: int
    image_path: Optional[str]
    candidates: "OrderedDict[str, float]"
    created_at: datetime
    confirmed: List[str] = field(default_factory=list)
    image_attached: bool = False
    in_flight: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def image_in_use(self) -> bool:
        return self.image_attached or self.in_flight

    @classmethod
    def create(
        cls,
        owner_id: int,
        image_path: Optional[str],
        candidates: Iterable[OcrCandidate],
        now: Optional[datetime] = None,
    ) -> "PendingImport":
        return cls(
            upload_id=uuid.uuid4().hex,
            owner_id=owner_id,
            image_path=image_path,
            candidates=OrderedDict((c.lemma, c.confidence) for c in candidates),
            created_at=now or utcnow(),
        )

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at >= ttl


def expired_sessions(
    now: datetime,
    entries: Mapping[str, PendingImport],
    ttl: timedelta,
) -> List[str]:
    """Ids of the sessions in ``entries`` that have expired at ``now``."""
    return [upload_id for upload_id, session in entries.items() if session.is_expired(now, ttl)]


class PreviewSessionStore(ABC):
    """Storage for pending image imports."""

    def __init__(self, ttl_minutes: int = 10):
        self.ttl = timedelta(minutes=ttl_minutes)

    @abstractmethod
    async def get(self, upload_id: str, now: Optional[datetime] = None) -> Optional[PendingImport]:
        """Live session by id; expired sessions read as absent."""

    @abstractmethod
    async def put(self, session: PendingImport) -> None:
        ...

    @abstractmethod
    async def delete(self, upload_id: str) -> Optional[PendingImport]:
        """Remove a session, returning it if it existed."""

    @abstractmethod
    async def sweep(self, now: Optional[datetime] = None) -> List[PendingImport]:
        """Remove and return every expired session."""


class InMemoryPreviewSessionStore(PreviewSessionStore):
    """Process-local session store. Not shared between workers."""

    def __init__(self, ttl_minutes: int = 10):
        super().__init__(ttl_minutes)
        self._sessions: Dict[str, PendingImport] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, upload_id: str, now: Optional[datetime] = None) -> Optional[PendingImport]:
        session = self._sessions.get(upload_id)
        if session is None or session.is_expired(now or utcnow(), self.ttl):
            return None
        return session

    async def put(self, session: PendingImport) -> None:
        self._sessions[session.upload_id] = session
        logger.debug(f"Stored preview session {session.upload_id}")

    async def delete(self, upload_id: str) -> Optional[PendingImport]:
        return self._sessions.pop(upload_id, None)

    async def sweep(self, now: Optional[datetime] = None) -> List[PendingImport]:
        removed = [
            self._sessions.pop(upload_id)
            for upload_id in expired_sessions(now or utcnow(), self._sessions, self.ttl)
        ]
        if removed:
            logger.info(f"Swept {len(removed)} expired preview sessions")
        return removed
