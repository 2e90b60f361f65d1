"""Re-dispatch of the failed items of a batch."""

from dataclasses import dataclass

from pydantic import BaseModel, Field

from contentgen.content.errors import ContentValidationError, NotFoundError
from contentgen.content.models import BatchSettings, ContentStatus, GenerationOptions
from contentgen.content.orchestrator import BatchHandle, BatchOrchestrator
from contentgen.content.repository import ContentRepository
from contentgen.core.logging import get_batch_logger
from contentgen.core.metrics import BATCHES_STARTED
from contentgen.llm.providers import parse_provider


class RetryBatchRequest(BaseModel):
    """Retry the failed items of a batch.

    The provider defaults to the one the batch was started with; ``options``
    replaces the batch's stored generation options for this round only.
    Switching provider without new options drops the stored model name,
    which belongs to the batch's original provider.
    """

    batch_id: str
    account_id: str = Field(..., min_length=1)
    provider: str | None = None
    api_key: str | None = None
    options: GenerationOptions | None = None


@dataclass
class RetryResult:
    batch_id: str
    retried_count: int
    handle: BatchHandle


class RetryCoordinator:
    """Resets FAILED items of a batch to QUEUED and processes exactly those again."""

    def __init__(
        self, repository: ContentRepository, orchestrator: BatchOrchestrator
    ) -> None:
        self.repository = repository
        self.orchestrator = orchestrator

    async def retry_batch(self, request: RetryBatchRequest) -> RetryResult:
        """Start another round for the batch's FAILED items.

        Completed items and the completed counter are left alone, and retry
        counters keep accumulating.

        Raises:
            NotFoundError: If the batch does not exist in the account
            ContentValidationError: If the batch is still being processed, has
                no FAILED items, or its provider cannot be resolved
        """
        batch_id = request.batch_id
        batch = await self.repository.get_batch(batch_id)
        if batch is None or batch.account_id != request.account_id:
            raise NotFoundError(f"Batch {batch_id} not found")

        if self.orchestrator.registry.is_running(batch_id):
            raise ContentValidationError(f"Batch {batch_id} is still processing")

        failed = await self.repository.list_batch_items(
            batch_id, status=ContentStatus.FAILED
        )
        if not failed:
            raise ContentValidationError("No failed items to retry")

        context = batch.settings
        if request.options is not None:
            context = BatchSettings(
                options=request.options, business=batch.settings.business
            )
        provider = parse_provider(request.provider or batch.provider)
        if request.options is None and provider != parse_provider(batch.provider):
            context = BatchSettings(
                options=context.options.model_copy(update={"model": None}),
                business=context.business,
            )
        adapter = self.orchestrator.build_adapter(
            provider, request.api_key, context.options
        )

        requeued = await self.repository.requeue_failed_items(batch_id)
        if not requeued:
            raise ContentValidationError("No failed items to retry")

        BATCHES_STARTED.labels(provider=adapter.name, kind="retry").inc()
        get_batch_logger(batch_id, provider=adapter.name).info(
            "batch_retry_started", retried_count=len(requeued)
        )

        task = self.orchestrator.registry.spawn(
            batch_id,
            self.orchestrator.run_batch(batch_id, requeued, adapter, context),
        )
        return RetryResult(
            batch_id=batch_id,
            retried_count=len(requeued),
            handle=BatchHandle(batch_id=batch_id, task=task),
        )
