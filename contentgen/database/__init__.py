"""SQLAlchemy persistence for content items and batches."""

from contentgen.database.models import Base, ContentBatchModel, ContentItemModel
from contentgen.database.repositories import SqlAlchemyContentRepository

__all__ = [
    "Base",
    "ContentBatchModel",
    "ContentItemModel",
    "SqlAlchemyContentRepository",
]
