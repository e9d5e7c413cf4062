"""Durable data models: identity facts, identity records, context events."""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from shared_types import ContextEventType, FactCategory, Maturity, Visibility

IDENTITY_VERSION = "2.0.0"
CONTEXT_STORE_VERSION = "1.0.0"

# Text keys checked, in order, when a context event is reduced to one line.
_EVENT_TEXT_KEYS = ("fact", "insight", "summary", "text", "title")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_confidence(value: Any) -> float:
    """Force any reported confidence into [0, 1]. Non-numeric values become 0."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    if v != v:  # NaN
        return 0.0
    return max(0.0, min(1.0, v))


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so decay arithmetic never mixes kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class IdentityFact(BaseModel):
    """A persisted fact about the user with a trust tier."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    category: FactCategory = FactCategory.CONTEXT
    maturity: Maturity = Maturity.CANDIDATE
    confidence: float = 0.8
    visibility: Visibility = Visibility.TRUSTED
    source: str = "interview"
    validation_count: int = Field(default=0, ge=0)
    last_validated: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)

    @field_validator("last_validated", "created_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    def effective_confidence(self, now: datetime | None = None, half_life_days: float = 60) -> float:
        """Confidence decayed exponentially since last validation."""
        now = as_utc(now or utcnow())
        days = abs((now - self.last_validated).total_seconds()) / 86400
        return self.confidence * 0.5 ** (days / half_life_days)


class IdentityCore(BaseModel):
    name: str | None = None
    role: str | None = None


class IdentityRecord(BaseModel):
    """The durable identity document produced by a completed interview."""

    version: str = IDENTITY_VERSION
    device_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    core: IdentityCore = Field(default_factory=IdentityCore)
    facts: list[IdentityFact] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ContextEvent(BaseModel):
    """A loosely structured note (page visit, insight, conversation summary)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: ContextEventType = ContextEventType.INSIGHT
    timestamp: datetime = Field(default_factory=utcnow)
    source: str = "local"
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @property
    def text(self) -> str:
        for key in _EVENT_TEXT_KEYS:
            value = self.data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""


class PageVisit(BaseModel):
    url: str
    title: str = ""
    hostname: str = ""
    timestamp: datetime = Field(default_factory=utcnow)

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class ContextStore(BaseModel):
    """On-disk format of the local context cache."""

    version: str = CONTEXT_STORE_VERSION
    last_modified: datetime = Field(default_factory=utcnow)
    events: list[ContextEvent] = Field(default_factory=list)
    pages: list[PageVisit] = Field(default_factory=list)
