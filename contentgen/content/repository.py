"""Persistence contract for content items and batches."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Literal

from contentgen.content.errors import ContentValidationError, NotFoundError
from contentgen.content.models import (
    BatchStatus,
    ContentBatch,
    ContentItem,
    ContentStatus,
    utcnow,
)

CounterField = Literal["completed_items", "failed_items"]

# Fields the pipeline may change on an existing item
ITEM_MUTABLE_FIELDS = frozenset(
    {
        "status",
        "generated_content",
        "error_message",
        "retry_count",
        "batch_id",
        "document_id",
        "document_url",
    }
)

# Fields a draft save may overwrite
DRAFT_FIELDS = (
    "title",
    "content_type",
    "service_area",
    "target_audience",
    "geolocation",
    "target_keywords",
    "include_cta",
)


class ContentRepository(ABC):
    """Storage operations the generation pipeline depends on.

    ``create_batch_with_items``, ``increment_batch_counter`` and
    ``requeue_failed_items`` must each be atomic with respect to concurrent
    callers.
    """

    @abstractmethod
    async def save_drafts(
        self, account_id: str, items: Sequence[ContentItem]
    ) -> list[ContentItem]:
        """Upsert the DRAFT items of an account.

        DRAFT items of the account missing from ``items`` are deleted. Items
        that are not DRAFT, incoming or stored, are left untouched.

        Returns:
            Every item of the account after the save
        """

    @abstractmethod
    async def list_items(self, account_id: str) -> list[ContentItem]:
        """List an account's items, oldest first."""

    @abstractmethod
    async def get_item(self, item_id: str) -> ContentItem | None:
        """Fetch one item."""

    @abstractmethod
    async def get_items(self, item_ids: Sequence[str]) -> list[ContentItem]:
        """Fetch the items that exist among ``item_ids``."""

    @abstractmethod
    async def delete_item(self, account_id: str, item_id: str) -> None:
        """Delete a DRAFT item of an account.

        Raises:
            NotFoundError: If the item does not exist in the account
            ContentValidationError: If the item is not DRAFT
        """

    @abstractmethod
    async def create_batch_with_items(
        self, batch: ContentBatch, item_ids: Sequence[str]
    ) -> ContentBatch:
        """Create a batch and enrol its items as QUEUED in one step.

        Either the batch is created and every item is enrolled, or nothing
        changes.

        Raises:
            NotFoundError: If an item does not exist in the batch's account
            ContentValidationError: If an item is already QUEUED or GENERATING
        """

    @abstractmethod
    async def get_batch(self, batch_id: str) -> ContentBatch | None:
        """Fetch one batch."""

    @abstractmethod
    async def list_batches(
        self, account_id: str, limit: int = 20
    ) -> list[ContentBatch]:
        """List an account's batches, newest first."""

    @abstractmethod
    async def list_batch_items(
        self, batch_id: str, status: ContentStatus | None = None
    ) -> list[ContentItem]:
        """List the items currently associated with a batch."""

    @abstractmethod
    async def update_item(self, item_id: str, **fields: Any) -> ContentItem:
        """Update mutable item fields.

        ``retry_count_increment=True`` increments the retry counter in the
        same write.
        """

    @abstractmethod
    async def increment_batch_counter(self, batch_id: str, field: CounterField) -> None:
        """Atomically add one to a batch counter."""

    @abstractmethod
    async def finalize_batch(
        self, batch_id: str, status: BatchStatus, completed_at: datetime
    ) -> ContentBatch:
        """Record a batch's terminal status."""

    @abstractmethod
    async def requeue_failed_items(self, batch_id: str) -> list[str]:
        """Reset a batch's FAILED items for another round.

        FAILED items go back to QUEUED with their error cleared; the batch's
        failed counter is zeroed, its completion time cleared and its status
        set to PROCESSING. Nothing changes when the batch has no FAILED items.

        Returns:
            Ids of the requeued items

        Raises:
            NotFoundError: If the batch does not exist
        """


def check_enrollable(
    item_id: str, status: ContentStatus, batch_id: str | None
) -> None:
    """Raise unless an item may be enrolled in a new batch."""
    if status.is_active:
        raise ContentValidationError(
            f"Item {item_id} is already {status.value} in batch {batch_id}"
        )
    if not status.can_enrol:
        raise ContentValidationError(
            f"Item {item_id} is {status.value} in batch {batch_id}; "
            "retry that batch instead"
        )


def check_mutable_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - ITEM_MUTABLE_FIELDS - {"retry_count_increment"}
    if unknown:
        raise ValueError(f"Cannot update item fields: {', '.join(sorted(unknown))}")


class InMemoryContentRepository(ContentRepository):
    """Process-local repository guarded by a single asyncio lock."""

    def __init__(self) -> None:
        self._items: dict[str, ContentItem] = {}
        self._batches: dict[str, ContentBatch] = {}
        self._lock = asyncio.Lock()

    async def save_drafts(
        self, account_id: str, items: Sequence[ContentItem]
    ) -> list[ContentItem]:
        drafts = [
            i
            for i in items
            if i.status == ContentStatus.DRAFT and i.account_id == account_id
        ]
        draft_ids = {i.id for i in drafts}
        async with self._lock:
            for item_id, stored in list(self._items.items()):
                if (
                    stored.account_id == account_id
                    and stored.status == ContentStatus.DRAFT
                    and item_id not in draft_ids
                ):
                    del self._items[item_id]

            now = utcnow()
            for incoming in drafts:
                stored = self._items.get(incoming.id)
                if stored is None:
                    self._items[incoming.id] = incoming.model_copy(
                        update={"created_at": now, "updated_at": now}
                    )
                elif (
                    stored.status == ContentStatus.DRAFT
                    and stored.account_id == account_id
                ):
                    update = {f: getattr(incoming, f) for f in DRAFT_FIELDS}
                    update["updated_at"] = now
                    self._items[incoming.id] = stored.model_copy(update=update)
        return await self.list_items(account_id)

    async def list_items(self, account_id: str) -> list[ContentItem]:
        items = [i for i in self._items.values() if i.account_id == account_id]
        return sorted(items, key=lambda i: i.created_at)

    async def get_item(self, item_id: str) -> ContentItem | None:
        return self._items.get(item_id)

    async def get_items(self, item_ids: Sequence[str]) -> list[ContentItem]:
        return [self._items[i] for i in item_ids if i in self._items]

    async def delete_item(self, account_id: str, item_id: str) -> None:
        async with self._lock:
            item = self._items.get(item_id)
            if item is None or item.account_id != account_id:
                raise NotFoundError(f"Item {item_id} not found")
            if item.status != ContentStatus.DRAFT:
                raise ContentValidationError(
                    f"Item {item_id} is {item.status.value}; "
                    "only DRAFT items can be deleted"
                )
            del self._items[item_id]

    async def create_batch_with_items(
        self, batch: ContentBatch, item_ids: Sequence[str]
    ) -> ContentBatch:
        async with self._lock:
            for item_id in item_ids:
                item = self._items.get(item_id)
                if item is None or item.account_id != batch.account_id:
                    raise NotFoundError(f"Item {item_id} not found")
                check_enrollable(item_id, item.status, item.batch_id)

            now = utcnow()
            self._batches[batch.id] = batch
            for item_id in item_ids:
                self._items[item_id] = self._items[item_id].model_copy(
                    update={
                        "status": ContentStatus.QUEUED,
                        "batch_id": batch.id,
                        "updated_at": now,
                    }
                )
        return batch

    async def get_batch(self, batch_id: str) -> ContentBatch | None:
        batch = self._batches.get(batch_id)
        return batch.model_copy() if batch else None

    async def list_batches(
        self, account_id: str, limit: int = 20
    ) -> list[ContentBatch]:
        batches = [
            b for b in reversed(self._batches.values()) if b.account_id == account_id
        ]
        batches.sort(key=lambda b: b.created_at, reverse=True)
        return [b.model_copy() for b in batches[:limit]]

    async def list_batch_items(
        self, batch_id: str, status: ContentStatus | None = None
    ) -> list[ContentItem]:
        items = [
            i
            for i in self._items.values()
            if i.batch_id == batch_id and (status is None or i.status == status)
        ]
        return sorted(items, key=lambda i: i.created_at)

    async def update_item(self, item_id: str, **fields: Any) -> ContentItem:
        check_mutable_fields(fields)
        async with self._lock:
            item = self._items.get(item_id)
            if item is None:
                raise NotFoundError(f"Item {item_id} not found")
            update = dict(fields)
            if update.pop("retry_count_increment", False):
                update["retry_count"] = item.retry_count + 1
            update["updated_at"] = utcnow()
            self._items[item_id] = item.model_copy(update=update)
            return self._items[item_id]

    async def increment_batch_counter(self, batch_id: str, field: CounterField) -> None:
        async with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None:
                raise NotFoundError(f"Batch {batch_id} not found")
            self._batches[batch_id] = batch.model_copy(
                update={field: getattr(batch, field) + 1}
            )

    async def finalize_batch(
        self, batch_id: str, status: BatchStatus, completed_at: datetime
    ) -> ContentBatch:
        async with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None:
                raise NotFoundError(f"Batch {batch_id} not found")
            self._batches[batch_id] = batch.model_copy(
                update={"status": status, "completed_at": completed_at}
            )
            return self._batches[batch_id].model_copy()

    async def requeue_failed_items(self, batch_id: str) -> list[str]:
        async with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None:
                raise NotFoundError(f"Batch {batch_id} not found")

            failed_ids = [
                i.id
                for i in self._items.values()
                if i.batch_id == batch_id and i.status == ContentStatus.FAILED
            ]
            if not failed_ids:
                return []

            now = utcnow()
            for item_id in failed_ids:
                self._items[item_id] = self._items[item_id].model_copy(
                    update={
                        "status": ContentStatus.QUEUED,
                        "error_message": None,
                        "updated_at": now,
                    }
                )
            self._batches[batch_id] = batch.model_copy(
                update={
                    "failed_items": 0,
                    "completed_at": None,
                    "status": BatchStatus.PROCESSING,
                }
            )
            return failed_ids
