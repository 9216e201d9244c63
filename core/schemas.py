"""
API Schemas

Pydantic models shared by the services and the routers. Fields are
snake_case in Python and camelCase on the wire.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Words
# =============================================================================

class WordView(CamelModel):
    """A word joined with its metadata, as returned by every word endpoint."""
    id: int
    lemma: str
    image_path: Optional[str] = None
    audio_url: Optional[str] = None
    created_at: datetime
    confidence: Optional[float] = None
    en_definition: Optional[str] = None
    en_example: Optional[str] = None
    zh_definition: Optional[str] = None
    zh_example: Optional[str] = None
    en_definition_audio_url: Optional[str] = None
    en_example_audio_url: Optional[str] = None

    @classmethod
    def from_records(cls, word, metadata=None, confidence: Optional[float] = None) -> "WordView":
        view = cls(
            id=word.id,
            lemma=word.lemma,
            image_path=word.image_path,
            audio_url=word.audio_url,
            created_at=word.created_at,
            confidence=confidence,
        )
        if metadata is not None:
            view.en_definition = metadata.en_definition
            view.en_example = metadata.en_example
            view.zh_definition = metadata.zh_definition
            view.zh_example = metadata.zh_example
            view.en_definition_audio_url = metadata.en_definition_audio_url
            view.en_example_audio_url = metadata.en_example_audio_url
        return view


class ManualWordsRequest(CamelModel):
    word: Optional[str] = Field(None, description="A single word or a comma separated list")
    words: List[str] = Field(default_factory=list, description="Several words")

    def raw_inputs(self) -> List[str]:
        return ([self.word] if self.word else []) + list(self.words)


class CandidateView(CamelModel):
    lemma: str
    confidence: Optional[float] = None


class ImportPreview(CamelModel):
    upload_id: str
    image_path: Optional[str] = None
    candidates: List[CandidateView]


class ConfirmImportRequest(CamelModel):
    upload_id: str
    words: List[str] = Field(default_factory=list)
    finalize: bool = True


class CancelImportRequest(CamelModel):
    upload_id: str


class CancelImportResponse(CamelModel):
    cancelled: bool


class GlossView(CamelModel):
    definition: Optional[str] = None
    example: Optional[str] = None


class WordMetadataView(CamelModel):
    word_id: int
    lang: str
    definition: Optional[str] = None
    example: Optional[str] = None
    definition_audio_url: Optional[str] = None
    example_audio_url: Optional[str] = None


class WordAudioView(CamelModel):
    word_id: int
    target: str
    url: str


# =============================================================================
# Reviews
# =============================================================================

class DueReviewView(CamelModel):
    review_id: int
    word_id: int
    lemma: str
    audio_url: Optional[str] = None
    en_definition: Optional[str] = None
    en_example: Optional[str] = None
    zh_definition: Optional[str] = None
    zh_example: Optional[str] = None
    interval_minutes: int
    easiness: float
    next_due_at: Optional[datetime] = None


class ReviewAnswerRequest(CamelModel):
    rating: str = Field(..., description="familiar/simple/unfamiliar or a synonym")


class ReviewOutcomeView(CamelModel):
    review_id: int
    word_id: int
    outcome: str
    interval_minutes: int
    easiness: float
    reviewed_at: datetime
    next_due_at: datetime
    supplement: Optional[GlossView] = None


# =============================================================================
# Stats
# =============================================================================

class DailyStatView(CamelModel):
    day: date
    new_words: int = 0
    reviews_completed: int = 0


class HealthResponse(BaseModel):
    status: str
    version: str
    components: dict = Field(default_factory=dict)
    services_loaded: dict = Field(default_factory=dict)
