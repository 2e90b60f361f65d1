"""SQLAlchemy implementation of the content repository."""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentgen.content.errors import ContentValidationError, NotFoundError
from contentgen.content.models import (
    BatchStatus,
    ContentBatch,
    ContentItem,
    ContentStatus,
    utcnow,
)
from contentgen.content.repository import (
    DRAFT_FIELDS,
    ContentRepository,
    CounterField,
    check_enrollable,
    check_mutable_fields,
)
from contentgen.core.logging import get_logger
from contentgen.database.models import ContentBatchModel, ContentItemModel

logger = get_logger().bind(module="database.repositories")

ITEM_COLUMNS = (
    "id",
    "account_id",
    *DRAFT_FIELDS,
    "status",
    "created_at",
    "updated_at",
)


def _to_item(row: ContentItemModel) -> ContentItem:
    return ContentItem.model_validate(row, from_attributes=True)


def _to_batch(row: ContentBatchModel) -> ContentBatch:
    return ContentBatch.model_validate(row, from_attributes=True)


class SqlAlchemyContentRepository(ContentRepository):
    """Content repository backed by an async SQLAlchemy engine.

    Each operation runs in its own session so that concurrent item processors
    never share one. Counter increments are single ``UPDATE`` statements
    computed by the database, and batch enrolment and requeue each run in one
    transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def save_drafts(
        self, account_id: str, items: Sequence[ContentItem]
    ) -> list[ContentItem]:
        drafts = [
            i
            for i in items
            if i.status == ContentStatus.DRAFT and i.account_id == account_id
        ]
        draft_ids = [i.id for i in drafts]

        async with self.session_factory() as session, session.begin():
            await session.execute(
                delete(ContentItemModel).where(
                    ContentItemModel.account_id == account_id,
                    ContentItemModel.status == ContentStatus.DRAFT,
                    ContentItemModel.id.not_in(draft_ids),
                )
            )

            result = await session.execute(
                select(ContentItemModel).where(ContentItemModel.id.in_(draft_ids))
            )
            existing = {row.id: row for row in result.scalars()}

            now = utcnow()
            for incoming in drafts:
                row = existing.get(incoming.id)
                if row is None:
                    values = incoming.model_dump(include=set(ITEM_COLUMNS))
                    values.update(created_at=now, updated_at=now)
                    session.add(ContentItemModel(**values))
                elif row.status == ContentStatus.DRAFT and row.account_id == account_id:
                    for field in DRAFT_FIELDS:
                        setattr(row, field, getattr(incoming, field))
                    row.updated_at = now  # type: ignore[assignment]

        logger.debug("drafts_saved", account_id=account_id, count=len(drafts))
        return await self.list_items(account_id)

    async def list_items(self, account_id: str) -> list[ContentItem]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ContentItemModel)
                .where(ContentItemModel.account_id == account_id)
                .order_by(ContentItemModel.created_at, ContentItemModel.id)
            )
            return [_to_item(row) for row in result.scalars()]

    async def get_item(self, item_id: str) -> ContentItem | None:
        async with self.session_factory() as session:
            row = await session.get(ContentItemModel, item_id)
            return _to_item(row) if row else None

    async def get_items(self, item_ids: Sequence[str]) -> list[ContentItem]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ContentItemModel).where(ContentItemModel.id.in_(list(item_ids)))
            )
            rows = {row.id: row for row in result.scalars()}
        return [_to_item(rows[i]) for i in item_ids if i in rows]

    async def delete_item(self, account_id: str, item_id: str) -> None:
        async with self.session_factory() as session, session.begin():
            row = await session.get(ContentItemModel, item_id, with_for_update=True)
            if row is None or row.account_id != account_id:
                raise NotFoundError(f"Item {item_id} not found")
            if row.status != ContentStatus.DRAFT:
                raise ContentValidationError(
                    f"Item {item_id} is {row.status.value}; "
                    "only DRAFT items can be deleted"
                )
            await session.delete(row)

    async def create_batch_with_items(
        self, batch: ContentBatch, item_ids: Sequence[str]
    ) -> ContentBatch:
        ids = list(item_ids)
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                select(ContentItemModel)
                .where(ContentItemModel.id.in_(ids))
                .with_for_update()
            )
            rows = {row.id: row for row in result.scalars()}
            for item_id in ids:
                row = rows.get(item_id)
                if row is None or row.account_id != batch.account_id:
                    raise NotFoundError(f"Item {item_id} not found")
                check_enrollable(item_id, row.status, row.batch_id)

            session.add(
                ContentBatchModel(
                    id=batch.id,
                    account_id=batch.account_id,
                    provider=batch.provider,
                    total_items=batch.total_items,
                    completed_items=batch.completed_items,
                    failed_items=batch.failed_items,
                    status=batch.status,
                    settings=batch.settings.model_dump(mode="json"),
                    created_at=batch.created_at,
                    started_at=batch.started_at,
                    completed_at=batch.completed_at,
                )
            )
            await session.flush()

            enrolled = await session.execute(
                update(ContentItemModel)
                .where(
                    ContentItemModel.id.in_(ids),
                    ContentItemModel.status.in_(
                        [ContentStatus.DRAFT, ContentStatus.COMPLETED]
                    ),
                )
                .values(
                    status=ContentStatus.QUEUED,
                    batch_id=batch.id,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if enrolled.rowcount != len(ids):
                # Rolls back the batch insert with the rest of the transaction
                raise ContentValidationError(
                    f"Only {enrolled.rowcount} of {len(ids)} items could be enrolled"
                )
        return batch

    async def get_batch(self, batch_id: str) -> ContentBatch | None:
        async with self.session_factory() as session:
            row = await session.get(ContentBatchModel, batch_id)
            return _to_batch(row) if row else None

    async def list_batches(
        self, account_id: str, limit: int = 20
    ) -> list[ContentBatch]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ContentBatchModel)
                .where(ContentBatchModel.account_id == account_id)
                .order_by(ContentBatchModel.created_at.desc())
                .limit(limit)
            )
            return [_to_batch(row) for row in result.scalars()]

    async def list_batch_items(
        self, batch_id: str, status: ContentStatus | None = None
    ) -> list[ContentItem]:
        query = select(ContentItemModel).where(ContentItemModel.batch_id == batch_id)
        if status is not None:
            query = query.where(ContentItemModel.status == status)
        query = query.order_by(ContentItemModel.created_at, ContentItemModel.id)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return [_to_item(row) for row in result.scalars()]

    async def update_item(self, item_id: str, **fields: Any) -> ContentItem:
        check_mutable_fields(fields)
        values = dict(fields)
        if values.pop("retry_count_increment", False):
            values["retry_count"] = ContentItemModel.retry_count + 1
        values["updated_at"] = utcnow()

        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                update(ContentItemModel)
                .where(ContentItemModel.id == item_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Item {item_id} not found")
            row = (
                await session.execute(
                    select(ContentItemModel).where(ContentItemModel.id == item_id)
                )
            ).scalar_one()
            return _to_item(row)

    async def increment_batch_counter(self, batch_id: str, field: CounterField) -> None:
        column = getattr(ContentBatchModel, field)
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                update(ContentBatchModel)
                .where(ContentBatchModel.id == batch_id)
                .values({field: column + 1})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Batch {batch_id} not found")

    async def finalize_batch(
        self, batch_id: str, status: BatchStatus, completed_at: datetime
    ) -> ContentBatch:
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                update(ContentBatchModel)
                .where(ContentBatchModel.id == batch_id)
                .values(status=status, completed_at=completed_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Batch {batch_id} not found")
            row = (
                await session.execute(
                    select(ContentBatchModel).where(ContentBatchModel.id == batch_id)
                )
            ).scalar_one()
            return _to_batch(row)

    async def requeue_failed_items(self, batch_id: str) -> list[str]:
        async with self.session_factory() as session, session.begin():
            batch = await session.get(ContentBatchModel, batch_id, with_for_update=True)
            if batch is None:
                raise NotFoundError(f"Batch {batch_id} not found")

            result = await session.execute(
                select(ContentItemModel.id)
                .where(
                    ContentItemModel.batch_id == batch_id,
                    ContentItemModel.status == ContentStatus.FAILED,
                )
                .order_by(ContentItemModel.created_at, ContentItemModel.id)
                .with_for_update()
            )
            failed_ids = list(result.scalars())
            if not failed_ids:
                return []

            await session.execute(
                update(ContentItemModel)
                .where(ContentItemModel.id.in_(failed_ids))
                .values(
                    status=ContentStatus.QUEUED,
                    error_message=None,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                update(ContentBatchModel)
                .where(ContentBatchModel.id == batch_id)
                .values(
                    failed_items=0,
                    completed_at=None,
                    status=BatchStatus.PROCESSING,
                )
                .execution_options(synchronize_session=False)
            )
            return failed_ids
