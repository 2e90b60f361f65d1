"""SQLAlchemy models for content items and batches."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
)
from sqlalchemy.orm import DeclarativeBase

from contentgen.content.models import (
    BatchStatus,
    ContentStatus,
    ContentType,
    new_id,
    utcnow,
)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class ContentBatchModel(Base):
    """Batch of content items generated together."""

    __tablename__ = "content_batch"

    id = Column(Text, primary_key=True, default=new_id, nullable=False)
    account_id = Column(Text, nullable=False, index=True)
    provider = Column(Text, nullable=False)
    total_items = Column(Integer, nullable=False)
    completed_items = Column(Integer, nullable=False, default=0)
    failed_items = Column(Integer, nullable=False, default=0)
    status: Column[BatchStatus] = Column(  # type: ignore[assignment]
        Enum(BatchStatus, name="batch_status_enum", native_enum=False),
        nullable=False,
        default=BatchStatus.PROCESSING,
    )
    settings = Column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class ContentItemModel(Base):
    """Requested piece of content and its generation result."""

    __tablename__ = "content_item"

    id = Column(Text, primary_key=True, default=new_id, nullable=False)
    account_id = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False)
    content_type: Column[ContentType] = Column(  # type: ignore[assignment]
        Enum(ContentType, name="content_type_enum", native_enum=False),
        nullable=False,
        default=ContentType.BLOG_POST,
    )
    service_area = Column(Text, nullable=True)
    target_audience = Column(Text, nullable=True)
    geolocation = Column(Text, nullable=True)
    target_keywords = Column(Text, nullable=True)
    include_cta = Column(Boolean, nullable=False, default=True)

    status: Column[ContentStatus] = Column(  # type: ignore[assignment]
        Enum(ContentStatus, name="content_status_enum", native_enum=False),
        nullable=False,
        default=ContentStatus.DRAFT,
        index=True,
    )
    generated_content = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    batch_id = Column(
        Text,
        ForeignKey("content_batch.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    document_id = Column(Text, nullable=True)
    document_url = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
