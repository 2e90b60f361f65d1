"""Batch creation and bounded fan-out over item processors."""

import asyncio
from collections.abc import Coroutine, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from contentgen.content.credentials import CredentialResolver
from contentgen.content.errors import ContentValidationError, NotFoundError
from contentgen.content.models import (
    BatchSettings,
    BatchStatus,
    BusinessContext,
    ContentBatch,
    ContentStatus,
    GenerationOptions,
    utcnow,
)
from contentgen.content.processor import ItemProcessor
from contentgen.content.repository import ContentRepository
from contentgen.core.config import settings
from contentgen.core.logging import get_batch_logger, get_logger
from contentgen.core.metrics import ACTIVE_BATCHES, BATCHES_FINISHED, BATCHES_STARTED
from contentgen.llm.providers import (
    ProviderFactory,
    ProviderName,
    create_provider,
    parse_provider,
)
from contentgen.llm.providers.base import BaseLLMProvider

logger = get_logger().bind(module="orchestrator")

T = TypeVar("T")


class StartBatchRequest(BaseModel):
    """Everything needed to start a batch."""

    account_id: str
    item_ids: list[str]
    provider: str | None = None
    api_key: str | None = None
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    business: BusinessContext = Field(default_factory=BusinessContext)


class BatchItemSummary(BaseModel):
    """Item fields shown in batch history."""

    id: str
    title: str
    status: ContentStatus
    error_message: str | None = None
    document_url: str | None = None


class BatchSummary(ContentBatch):
    """A batch together with the items currently associated with it."""

    items: list[BatchItemSummary] = Field(default_factory=list)


@dataclass
class BatchHandle:
    """Handle on a batch whose generation runs in the background.

    Awaiting the task is optional; progress is observed through the
    progress notifier.
    """

    batch_id: str
    task: "asyncio.Task[ContentBatch | None]"

    async def wait(self) -> ContentBatch | None:
        """Wait for the dispatch round to finish."""
        return await self.task


class BatchTaskRegistry:
    """Tracks background dispatch tasks by batch id."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def spawn(self, batch_id: str, coro: Coroutine[Any, Any, T]) -> "asyncio.Task[T]":
        """Run ``coro`` in the background on behalf of ``batch_id``."""
        task = asyncio.create_task(coro, name=f"batch-{batch_id}")
        self._tasks[batch_id] = task
        task.add_done_callback(lambda t: self._forget(batch_id, t))
        return task

    def _forget(self, batch_id: str, task: asyncio.Task[Any]) -> None:
        if self._tasks.get(batch_id) is task:
            del self._tasks[batch_id]
        if task.cancelled():
            logger.warning("batch_task_cancelled", batch_id=batch_id)
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "batch_task_failed",
                batch_id=batch_id,
                error=str(error),
                error_type=type(error).__name__,
            )

    def is_running(self, batch_id: str) -> bool:
        task = self._tasks.get(batch_id)
        return task is not None and not task.done()

    @property
    def running(self) -> list[str]:
        return [batch_id for batch_id in self._tasks if self.is_running(batch_id)]

    async def wait(self, batch_id: str) -> None:
        """Wait for a batch's current task, if any."""
        task = self._tasks.get(batch_id)
        if task is not None:
            await asyncio.wait([task])

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for running tasks, cancelling any still running at ``timeout``."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Split ``items`` into consecutive groups of at most ``size``."""
    for start in range(0, len(items), size):
        yield items[start : start + size]


def unique_ids(item_ids: Sequence[str]) -> list[str]:
    """Drop blank and repeated ids, keeping first-seen order."""
    seen: dict[str, None] = {}
    for item_id in item_ids:
        if item_id and item_id.strip():
            seen.setdefault(item_id.strip(), None)
    return list(seen)


class BatchOrchestrator:
    """Creates batches and dispatches their items in fixed-width chunks.

    Items of one chunk are processed concurrently; the next chunk starts only
    after every item of the current one has finished, which bounds the number
    of simultaneous provider calls to the chunk width.
    """

    def __init__(
        self,
        repository: ContentRepository,
        processor: ItemProcessor | None = None,
        provider_factory: ProviderFactory = create_provider,
        credentials: CredentialResolver | None = None,
        concurrency: int | None = None,
        registry: BatchTaskRegistry | None = None,
    ) -> None:
        self.repository = repository
        self.processor = processor or ItemProcessor(repository)
        self.provider_factory = provider_factory
        self.credentials = credentials or CredentialResolver()
        self.concurrency = concurrency or settings.BATCH_CONCURRENCY
        if self.concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self.registry = registry or BatchTaskRegistry()

    def build_adapter(
        self,
        provider: str | ProviderName,
        api_key: str | None,
        options: GenerationOptions,
    ) -> BaseLLMProvider[Any, Any]:
        """Resolve the provider adapter used for a whole dispatch round.

        Raises:
            ContentValidationError: If the provider is unknown or has no credential
        """
        name = parse_provider(provider)
        credential = self.credentials.resolve(name, api_key)
        model = options.model
        if model is None and name.value == settings.LLM_PROVIDER:
            model = settings.LLM_MODEL_NAME
        return self.provider_factory(
            name,
            credential,
            model=model,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            timeout=settings.LLM_TIMEOUT,
        )

    async def start_batch(self, request: StartBatchRequest) -> BatchHandle:
        """Create a batch over ``request.item_ids`` and start generating it.

        Every validation happens before anything is written; enrolment of the
        items is all-or-nothing.

        Returns:
            Handle whose batch id is usable as soon as this returns

        Raises:
            ContentValidationError: If no items are given, the provider is
                unknown or has no credential, or an item is already active
            NotFoundError: If an item does not exist in the account
        """
        item_ids = unique_ids(request.item_ids)
        if not item_ids:
            raise ContentValidationError("No items selected")

        provider = parse_provider(request.provider or settings.LLM_PROVIDER)
        adapter = self.build_adapter(provider, request.api_key, request.options)

        batch = ContentBatch(
            account_id=request.account_id,
            provider=provider.value,
            total_items=len(item_ids),
            status=BatchStatus.PROCESSING,
            settings=BatchSettings(options=request.options, business=request.business),
            started_at=utcnow(),
        )
        await self.repository.create_batch_with_items(batch, item_ids)

        BATCHES_STARTED.labels(provider=provider.value, kind="start").inc()
        get_batch_logger(batch.id, provider=provider.value).info(
            "batch_started",
            account_id=request.account_id,
            total_items=batch.total_items,
            concurrency=self.concurrency,
        )

        task = self.registry.spawn(
            batch.id, self.run_batch(batch.id, item_ids, adapter)
        )
        return BatchHandle(batch_id=batch.id, task=task)

    async def run_batch(
        self,
        batch_id: str,
        item_ids: Sequence[str],
        adapter: BaseLLMProvider[Any, Any],
        context: BatchSettings | None = None,
    ) -> ContentBatch | None:
        """Process ``item_ids`` of a batch chunk by chunk, then finalize it.

        Args:
            batch_id: Batch the items are enrolled in
            item_ids: Items to process, in dispatch order
            adapter: Provider adapter used for every item
            context: Options and business context, the batch's stored ones
                when omitted

        Returns:
            The batch after finalization

        Raises:
            NotFoundError: If the batch does not exist
        """
        batch = await self.repository.get_batch(batch_id)
        if batch is None:
            raise NotFoundError(f"Batch {batch_id} not found")
        context = context or batch.settings
        log = get_batch_logger(batch_id, provider=adapter.name)

        ACTIVE_BATCHES.inc()
        try:
            items = await self.repository.get_items(item_ids)
            for index, chunk in enumerate(chunked(items, self.concurrency)):
                log.debug("chunk_dispatched", chunk=index, size=len(chunk))
                results = await asyncio.gather(
                    *(
                        self.processor.process(item, batch_id, adapter, context)
                        for item in chunk
                    ),
                    return_exceptions=True,
                )
                for item, result in zip(chunk, results):
                    if isinstance(result, BaseException):
                        log.error(
                            "item_processing_error",
                            item_id=item.id,
                            error=str(result),
                            error_type=type(result).__name__,
                        )
            return await self._finalize(batch_id, log)
        finally:
            ACTIVE_BATCHES.dec()

    async def _finalize(self, batch_id: str, log: Any) -> ContentBatch | None:
        items = await self.repository.list_batch_items(batch_id)
        pending = [item.id for item in items if not item.status.is_terminal]
        if pending:
            log.warning("batch_left_processing", pending_items=pending)
            return await self.repository.get_batch(batch_id)

        batch = await self.repository.get_batch(batch_id)
        if batch is None:
            raise NotFoundError(f"Batch {batch_id} not found")
        status = (
            BatchStatus.FAILED
            if batch.failed_items == batch.total_items
            else BatchStatus.COMPLETED
        )
        batch = await self.repository.finalize_batch(batch_id, status, utcnow())

        BATCHES_FINISHED.labels(status=status.value).inc()
        log.info(
            "batch_finished",
            status=status.value,
            completed_items=batch.completed_items,
            failed_items=batch.failed_items,
            total_items=batch.total_items,
        )
        return batch

    async def list_batches(
        self, account_id: str, limit: int = 20
    ) -> list[BatchSummary]:
        """Latest batches of an account with their items, newest first."""
        summaries = []
        for batch in await self.repository.list_batches(account_id, limit=limit):
            items = await self.repository.list_batch_items(batch.id)
            summaries.append(
                BatchSummary(
                    **batch.model_dump(),
                    items=[
                        BatchItemSummary.model_validate(item, from_attributes=True)
                        for item in items
                    ],
                )
            )
        return summaries
