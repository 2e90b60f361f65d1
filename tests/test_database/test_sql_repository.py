"""Tests for the SQLAlchemy content repository against SQLite."""

import asyncio
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from contentgen.content.errors import ContentValidationError, NotFoundError
from contentgen.content.models import (
    BatchSettings,
    BatchStatus,
    BusinessContext,
    ContentBatch,
    ContentItem,
    ContentStatus,
    ContentType,
    GenerationOptions,
    utcnow,
)
from contentgen.content.orchestrator import StartBatchRequest
from contentgen.content.pipeline import ContentPipeline
from contentgen.content.retry import RetryBatchRequest
from contentgen.core.db import create_session_factory, create_tables, to_async_url
from contentgen.database.repositories import SqlAlchemyContentRepository
from contentgen.llm.providers.mock import MockProvider
from tests.fixtures.content import ACCOUNT_ID


@pytest_asyncio.fixture
async def sql_repository(
    tmp_path: Path,
) -> AsyncGenerator[SqlAlchemyContentRepository, None]:
    """Get a repository over a fresh SQLite database file."""
    engine, factory = create_session_factory(f"sqlite:///{tmp_path / 'content.db'}")
    await create_tables(engine)
    try:
        yield SqlAlchemyContentRepository(factory)
    finally:
        await engine.dispose()


async def save(
    repository: SqlAlchemyContentRepository, *titles: str, account_id: str = ACCOUNT_ID
) -> list[ContentItem]:
    items = [ContentItem(account_id=account_id, title=title) for title in titles]
    await repository.save_drafts(account_id, items)
    return items


def new_batch(items: list[ContentItem], **fields) -> ContentBatch:
    return ContentBatch(
        account_id=items[0].account_id,
        provider="openai",
        total_items=len(items),
        **fields,
    )


@pytest.mark.parametrize(
    "url,expected",
    [
        ("postgresql://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql+psycopg2://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("sqlite:///tmp/x.db", "sqlite+aiosqlite:///tmp/x.db"),
        ("postgresql+asyncpg://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
    ],
)
def test_to_async_url(url: str, expected: str) -> None:
    assert to_async_url(url) == expected


@pytest.mark.asyncio
async def test_save_and_list_drafts(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    keep = ContentItem(
        account_id=ACCOUNT_ID,
        title="Keep",
        content_type=ContentType.FAQ_PAGE,
        target_keywords="faq, help",
    )
    drop = ContentItem(account_id=ACCOUNT_ID, title="Drop")
    await sql_repository.save_drafts(ACCOUNT_ID, [keep, drop])

    renamed = keep.model_copy(update={"title": "Renamed", "include_cta": False})
    items = await sql_repository.save_drafts(ACCOUNT_ID, [renamed])

    assert len(items) == 1
    assert items[0].id == keep.id
    assert items[0].title == "Renamed"
    assert items[0].include_cta is False
    assert items[0].content_type == ContentType.FAQ_PAGE
    assert items[0].target_keywords == "faq, help"
    assert await sql_repository.get_item(drop.id) is None


@pytest.mark.asyncio
async def test_enrolment_is_atomic(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    """Test a missing item rolls back the batch and every enrolment."""
    items = await save(sql_repository, "Alpha", "Beta")
    batch = new_batch(items)

    with pytest.raises(NotFoundError):
        await sql_repository.create_batch_with_items(
            batch, [items[0].id, "missing", items[1].id]
        )

    assert await sql_repository.get_batch(batch.id) is None
    stored = await sql_repository.get_items([i.id for i in items])
    assert {i.status for i in stored} == {ContentStatus.DRAFT}


@pytest.mark.asyncio
async def test_enrolment_rejects_active_items(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    items = await save(sql_repository, "Alpha")
    await sql_repository.create_batch_with_items(new_batch(items), [items[0].id])

    second = new_batch(items)
    with pytest.raises(ContentValidationError, match="already QUEUED"):
        await sql_repository.create_batch_with_items(second, [items[0].id])
    assert await sql_repository.get_batch(second.id) is None


@pytest.mark.asyncio
async def test_enrolment_rejects_failed_items(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    items = await save(sql_repository, "Alpha", "Beta")
    first = new_batch(items)
    await sql_repository.create_batch_with_items(first, [i.id for i in items])
    await sql_repository.update_item(items[0].id, status=ContentStatus.FAILED)
    await sql_repository.update_item(items[1].id, status=ContentStatus.COMPLETED)

    second = new_batch(items)
    with pytest.raises(ContentValidationError, match="retry that batch instead"):
        await sql_repository.create_batch_with_items(second, [i.id for i in items])

    assert await sql_repository.get_batch(second.id) is None
    stored = await sql_repository.get_items([i.id for i in items])
    assert {i.batch_id for i in stored} == {first.id}


@pytest.mark.asyncio
async def test_batch_round_trip(sql_repository: SqlAlchemyContentRepository) -> None:
    items = await save(sql_repository, "Alpha")
    settings = BatchSettings(
        options=GenerationOptions(word_count=1000, template="technical"),
        business=BusinessContext(business_name="Acme"),
    )
    batch = new_batch(items, settings=settings, started_at=utcnow())

    await sql_repository.create_batch_with_items(batch, [items[0].id])
    stored = await sql_repository.get_batch(batch.id)

    assert stored.status == BatchStatus.PROCESSING
    assert stored.total_items == 1
    assert stored.settings == settings
    assert stored.started_at is not None
    [item] = await sql_repository.list_batch_items(batch.id)
    assert item.status == ContentStatus.QUEUED
    assert item.batch_id == batch.id


@pytest.mark.asyncio
async def test_concurrent_counter_increments(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    items = await save(sql_repository, "Alpha")
    batch = new_batch(items)
    await sql_repository.create_batch_with_items(batch, [items[0].id])

    await asyncio.gather(
        *(
            sql_repository.increment_batch_counter(batch.id, "completed_items")
            for _ in range(5)
        ),
        sql_repository.increment_batch_counter(batch.id, "failed_items"),
    )

    stored = await sql_repository.get_batch(batch.id)
    assert (stored.completed_items, stored.failed_items) == (5, 1)


@pytest.mark.asyncio
async def test_increment_unknown_batch(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    with pytest.raises(NotFoundError):
        await sql_repository.increment_batch_counter("missing", "completed_items")


@pytest.mark.asyncio
async def test_update_item_increments_retry_count(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    [item] = await save(sql_repository, "Alpha")

    updated = await sql_repository.update_item(
        item.id,
        status=ContentStatus.FAILED,
        error_message="boom",
        retry_count_increment=True,
    )

    assert updated.status == ContentStatus.FAILED
    assert updated.error_message == "boom"
    assert updated.retry_count == 1
    with pytest.raises(NotFoundError):
        await sql_repository.update_item("missing", status=ContentStatus.FAILED)


@pytest.mark.asyncio
async def test_requeue_failed_items(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    items = await save(sql_repository, "Alpha", "Beta")
    batch = new_batch(items)
    await sql_repository.create_batch_with_items(batch, [i.id for i in items])
    await sql_repository.update_item(
        items[0].id, status=ContentStatus.COMPLETED, generated_content="<p>A</p>"
    )
    await sql_repository.update_item(
        items[1].id, status=ContentStatus.FAILED, error_message="boom"
    )
    await sql_repository.increment_batch_counter(batch.id, "completed_items")
    await sql_repository.increment_batch_counter(batch.id, "failed_items")
    await sql_repository.finalize_batch(batch.id, BatchStatus.COMPLETED, utcnow())

    assert await sql_repository.requeue_failed_items(batch.id) == [items[1].id]

    stored = await sql_repository.get_batch(batch.id)
    assert stored.status == BatchStatus.PROCESSING
    assert (stored.completed_items, stored.failed_items) == (1, 0)
    assert stored.completed_at is None
    alpha, beta = await sql_repository.get_items([i.id for i in items])
    assert alpha.status == ContentStatus.COMPLETED
    assert beta.status == ContentStatus.QUEUED
    assert beta.error_message is None
    assert await sql_repository.requeue_failed_items(batch.id) == []


@pytest.mark.asyncio
async def test_delete_only_drafts(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    draft, queued = await save(sql_repository, "Draft", "Queued")
    await sql_repository.create_batch_with_items(new_batch([queued]), [queued.id])

    with pytest.raises(NotFoundError):
        await sql_repository.delete_item("acct-2", draft.id)
    assert await sql_repository.get_item(draft.id) is not None

    await sql_repository.delete_item(ACCOUNT_ID, draft.id)
    with pytest.raises(ContentValidationError):
        await sql_repository.delete_item(ACCOUNT_ID, queued.id)
    with pytest.raises(NotFoundError):
        await sql_repository.delete_item(ACCOUNT_ID, draft.id)


@pytest.mark.asyncio
async def test_list_batches_scoped_and_limited(
    sql_repository: SqlAlchemyContentRepository,
) -> None:
    items = await save(sql_repository, "Alpha", "Beta", "Gamma")
    for item in items:
        await sql_repository.create_batch_with_items(new_batch([item]), [item.id])
    await save(sql_repository, "Other", account_id="acct-2")

    batches = await sql_repository.list_batches(ACCOUNT_ID, limit=2)

    assert len(batches) == 2
    assert all(b.account_id == ACCOUNT_ID for b in batches)
    assert batches[0].created_at >= batches[1].created_at
    assert await sql_repository.list_batches("acct-2") == []


@pytest.mark.asyncio
async def test_pipeline_over_database(
    sql_repository: SqlAlchemyContentRepository, provider_factory, credentials
) -> None:
    """Test a batch with one failure, then its retry, end to end."""
    mock_provider: MockProvider = provider_factory.provider
    mock_provider.rules = {"Beta": ValueError("overloaded")}
    pipeline = ContentPipeline.create(
        sql_repository,
        provider_factory=provider_factory,
        credentials=credentials,
        concurrency=2,
        progress_interval=0.01,
        timeout=5,
    )
    items = await save(sql_repository, "Alpha", "Beta", "Gamma")

    handle = await pipeline.orchestrator.start_batch(
        StartBatchRequest(account_id=ACCOUNT_ID, item_ids=[i.id for i in items])
    )
    batch = await handle.wait()
    assert (batch.status, batch.completed_items, batch.failed_items) == (
        BatchStatus.COMPLETED,
        2,
        1,
    )

    mock_provider.rules = {}
    result = await pipeline.retry.retry_batch(
        RetryBatchRequest(batch_id=batch.id, account_id=ACCOUNT_ID)
    )
    batch = await result.handle.wait()

    assert (batch.completed_items, batch.failed_items) == (3, 0)
    beta = await sql_repository.get_item(items[1].id)
    assert beta.status == ContentStatus.COMPLETED
    assert beta.retry_count == 1
