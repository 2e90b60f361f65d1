"""Content pipeline models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid4())


class ContentType(str, Enum):
    """Kinds of content an item can request."""

    BLOG_POST = "BLOG_POST"
    SERVICE_PAGE = "SERVICE_PAGE"
    LOCATION_PAGE = "LOCATION_PAGE"
    LANDING_PAGE = "LANDING_PAGE"
    ABOUT_PAGE = "ABOUT_PAGE"
    FAQ_PAGE = "FAQ_PAGE"
    HOW_TO_GUIDE = "HOW_TO_GUIDE"


class ContentStatus(str, Enum):
    """Item lifecycle status."""

    DRAFT = "DRAFT"
    QUEUED = "QUEUED"
    GENERATING = "GENERATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ContentStatus.COMPLETED, ContentStatus.FAILED)

    @property
    def is_active(self) -> bool:
        """Whether the item is enrolled in a batch that has not finished it."""
        return self in (ContentStatus.QUEUED, ContentStatus.GENERATING)

    @property
    def can_enrol(self) -> bool:
        """Whether a new batch may take the item.

        FAILED items only go back to QUEUED by retrying their own batch.
        """
        return self in (ContentStatus.DRAFT, ContentStatus.COMPLETED)


class BatchStatus(str, Enum):
    """Batch lifecycle status."""

    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not BatchStatus.PROCESSING


class ContentItem(BaseModel):
    """One requested piece of content."""

    id: str = Field(default_factory=new_id)
    account_id: str
    title: str
    content_type: ContentType = ContentType.BLOG_POST
    service_area: str | None = None
    target_audience: str | None = None
    geolocation: str | None = None
    target_keywords: str | None = None
    include_cta: bool = True

    status: ContentStatus = ContentStatus.DRAFT
    generated_content: str | None = None
    error_message: str | None = None
    retry_count: int = Field(default=0, ge=0)
    batch_id: str | None = None
    document_id: str | None = None
    document_url: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator(
        "service_area", "target_audience", "geolocation", "target_keywords"
    )
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat blank targeting fields as absent."""
        if v is None or not v.strip():
            return None
        return v.strip()


class InternalLink(BaseModel):
    """A page on the business site the content may link to."""

    title: str
    url: str


class BusinessContext(BaseModel):
    """Business details shared by every item of a batch."""

    business_name: str | None = None
    phone: str | None = None
    contact_url: str | None = None
    internal_links: list[InternalLink] = Field(default_factory=list)
    export_folder_id: str | None = None


class GenerationOptions(BaseModel):
    """Batch-wide generation options."""

    model: str | None = None
    word_count: int = Field(default=800, gt=0)
    template: str = "default"
    example_content: str | None = None
    custom_instruction: str | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0, le=1)


class BatchSettings(BaseModel):
    """Options and context recorded on a batch so a retry can reuse them."""

    options: GenerationOptions = Field(default_factory=GenerationOptions)
    business: BusinessContext = Field(default_factory=BusinessContext)


class ContentBatch(BaseModel):
    """A unit of fan-out over a fixed set of items."""

    id: str = Field(default_factory=new_id)
    account_id: str
    provider: str
    total_items: int = Field(ge=0)
    completed_items: int = Field(default=0, ge=0)
    failed_items: int = Field(default=0, ge=0)
    status: BatchStatus = BatchStatus.PROCESSING
    settings: BatchSettings = Field(default_factory=BatchSettings)
    created_at: datetime = Field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None


class BatchProgress(BaseModel):
    """Read-only projection of a batch's counters."""

    batch_id: str
    status: BatchStatus
    total_items: int
    completed_items: int
    failed_items: int

    @classmethod
    def from_batch(cls, batch: ContentBatch) -> "BatchProgress":
        return cls(
            batch_id=batch.id,
            status=batch.status,
            total_items=batch.total_items,
            completed_items=batch.completed_items,
            failed_items=batch.failed_items,
        )

    def to_event(self) -> dict[str, Any]:
        """Serialize as a progress event payload."""
        return {
            "batchId": self.batch_id,
            "status": self.status.value,
            "totalItems": self.total_items,
            "completedItems": self.completed_items,
            "failedItems": self.failed_items,
        }
