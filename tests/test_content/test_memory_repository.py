"""Tests for the in-memory content repository."""

import pytest

from contentgen.content.errors import ContentValidationError, NotFoundError
from contentgen.content.models import (
    BatchStatus,
    ContentBatch,
    ContentItem,
    ContentStatus,
    utcnow,
)
from contentgen.content.repository import InMemoryContentRepository
from tests.fixtures.content import ACCOUNT_ID


@pytest.mark.asyncio
async def test_save_drafts_upserts_and_prunes(
    repository: InMemoryContentRepository,
) -> None:
    """Test drafts missing from a save are deleted and others updated."""
    keep = ContentItem(account_id=ACCOUNT_ID, title="Keep")
    drop = ContentItem(account_id=ACCOUNT_ID, title="Drop")
    await repository.save_drafts(ACCOUNT_ID, [keep, drop])

    renamed = keep.model_copy(update={"title": "Kept and renamed"})
    added = ContentItem(account_id=ACCOUNT_ID, title="New")
    items = await repository.save_drafts(ACCOUNT_ID, [renamed, added])

    assert [i.title for i in items] == ["Kept and renamed", "New"]
    assert await repository.get_item(drop.id) is None


@pytest.mark.asyncio
async def test_save_drafts_leaves_enrolled_items(
    repository: InMemoryContentRepository, make_items, enrol
) -> None:
    [queued] = await make_items(["Queued"])
    await enrol([queued])

    edited = queued.model_copy(update={"title": "Edited"})
    items = await repository.save_drafts(ACCOUNT_ID, [edited])

    assert [(i.title, i.status) for i in items] == [("Queued", ContentStatus.QUEUED)]


@pytest.mark.asyncio
async def test_save_drafts_ignores_other_accounts(
    repository: InMemoryContentRepository,
) -> None:
    other = ContentItem(account_id="acct-2", title="Other")
    await repository.save_drafts("acct-2", [other])

    await repository.save_drafts(ACCOUNT_ID, [])
    stolen = other.model_copy(update={"account_id": ACCOUNT_ID, "title": "Mine"})
    await repository.save_drafts(ACCOUNT_ID, [stolen])

    stored = await repository.get_item(other.id)
    assert stored.account_id == "acct-2"
    assert stored.title == "Other"


@pytest.mark.asyncio
async def test_delete_item(
    repository: InMemoryContentRepository, make_items, enrol
) -> None:
    draft, queued = await make_items(["Draft", "Queued"])
    await enrol([queued])

    with pytest.raises(NotFoundError):
        await repository.delete_item("acct-2", draft.id)
    assert await repository.get_item(draft.id) is not None

    await repository.delete_item(ACCOUNT_ID, draft.id)
    assert await repository.get_item(draft.id) is None

    with pytest.raises(ContentValidationError, match="only DRAFT items"):
        await repository.delete_item(ACCOUNT_ID, queued.id)
    with pytest.raises(NotFoundError):
        await repository.delete_item(ACCOUNT_ID, "missing")


@pytest.mark.asyncio
async def test_update_item_rejects_unknown_fields(
    repository: InMemoryContentRepository, make_items
) -> None:
    [item] = await make_items(["Alpha"])
    with pytest.raises(ValueError, match="title"):
        await repository.update_item(item.id, title="Changed")


@pytest.mark.asyncio
async def test_update_item_increments_retry_count(
    repository: InMemoryContentRepository, make_items
) -> None:
    [item] = await make_items(["Alpha"])

    await repository.update_item(item.id, retry_count_increment=True)
    updated = await repository.update_item(
        item.id, status=ContentStatus.FAILED, retry_count_increment=True
    )

    assert updated.retry_count == 2
    assert updated.status == ContentStatus.FAILED


@pytest.mark.asyncio
async def test_requeue_without_failed_items_is_noop(
    repository: InMemoryContentRepository, make_items, enrol
) -> None:
    [item] = await make_items(["Alpha"])
    batch = await enrol([item])
    await repository.finalize_batch(batch.id, BatchStatus.COMPLETED, utcnow())
    before = await repository.get_batch(batch.id)

    assert await repository.requeue_failed_items(batch.id) == []
    assert await repository.get_batch(batch.id) == before


@pytest.mark.asyncio
async def test_requeue_missing_batch(repository: InMemoryContentRepository) -> None:
    with pytest.raises(NotFoundError):
        await repository.requeue_failed_items("missing")


@pytest.mark.asyncio
async def test_list_batch_items_by_status(
    repository: InMemoryContentRepository, make_items, enrol
) -> None:
    alpha, beta = await make_items(["Alpha", "Beta"])
    batch = await enrol([alpha, beta])
    await repository.update_item(beta.id, status=ContentStatus.FAILED)

    failed = await repository.list_batch_items(batch.id, status=ContentStatus.FAILED)

    assert [i.id for i in failed] == [beta.id]
    assert len(await repository.list_batch_items(batch.id)) == 2


@pytest.mark.asyncio
async def test_batches_are_scoped_to_account(
    repository: InMemoryContentRepository, make_items
) -> None:
    [item] = await make_items(["Alpha"])
    batch = ContentBatch(account_id="acct-2", provider="openai", total_items=1)

    with pytest.raises(NotFoundError):
        await repository.create_batch_with_items(batch, [item.id])

    assert await repository.get_batch(batch.id) is None
    assert await repository.list_batches("acct-2") == []
