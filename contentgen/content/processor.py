"""Generation of a single content item."""

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any

from contentgen.content.errors import ProviderError
from contentgen.content.export import DocumentExporter, ExportedDocument
from contentgen.content.models import BatchSettings, ContentItem, ContentStatus
from contentgen.content.repository import ContentRepository
from contentgen.core.config import settings
from contentgen.core.logging import get_batch_logger
from contentgen.core.metrics import EXPORT_FAILURES, GENERATION_SECONDS, ITEMS_PROCESSED
from contentgen.llm.prompts import build_content_prompt
from contentgen.llm.providers.base import BaseLLMProvider
from contentgen.llm.providers.types import GenerateConfig

EMPTY_CONTENT_MESSAGE = "LLM returned empty content"

_OPENING_FENCE = re.compile(r"^```[a-z]*\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\n?```\s*$")


def strip_code_fence(text: str) -> str:
    """Remove one markdown code fence wrapped around generated content."""
    text = text.strip()
    if text.startswith("```"):
        text = _OPENING_FENCE.sub("", text, count=1)
        text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


@dataclass
class ItemOutcome:
    """Result of processing one item."""

    item_id: str
    status: ContentStatus
    error: str | None = None
    tokens_used: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == ContentStatus.COMPLETED


class ItemProcessor:
    """Takes one QUEUED item through generation to a terminal status.

    Generation failures are recorded on the item and counted on the batch;
    they are never raised. Persistence errors do propagate.
    """

    def __init__(
        self,
        repository: ContentRepository,
        exporter: DocumentExporter | None = None,
        timeout: float | None = None,
    ) -> None:
        self.repository = repository
        self.exporter = exporter
        self.timeout = float(timeout if timeout is not None else settings.LLM_TIMEOUT)

    async def process(
        self,
        item: ContentItem,
        batch_id: str,
        adapter: BaseLLMProvider[Any, Any],
        context: BatchSettings,
    ) -> ItemOutcome:
        """Generate content for ``item`` and record the outcome.

        Args:
            item: The item to generate, enrolled in ``batch_id``
            batch_id: Batch whose counters are updated
            adapter: Provider adapter resolved for the batch
            context: Options and business context of the batch

        Returns:
            The terminal outcome of the item
        """
        log = get_batch_logger(batch_id, provider=adapter.name).bind(item_id=item.id)

        await self.repository.update_item(item.id, status=ContentStatus.GENERATING)
        log.info("item_generating", title=item.title)

        content = ""
        tokens_used: int | None = None
        error: str | None = None
        started = time.perf_counter()
        try:
            content, tokens_used = await self._generate(item, adapter, context)
        except asyncio.TimeoutError:
            error = f"Generation timed out after {self.timeout:g}s"
        except Exception as e:
            # Any generation failure stays local to this item
            error = str(e) or type(e).__name__
        GENERATION_SECONDS.labels(provider=adapter.name).observe(
            time.perf_counter() - started
        )

        if error is not None:
            return await self._fail(item, batch_id, adapter, error, log)

        document = await self._export(item, content, context, log)
        await self.repository.update_item(
            item.id,
            status=ContentStatus.COMPLETED,
            generated_content=content,
            error_message=None,
            **(
                {"document_id": document.document_id, "document_url": document.url}
                if document
                else {}
            ),
        )
        await self.repository.increment_batch_counter(batch_id, "completed_items")
        ITEMS_PROCESSED.labels(provider=adapter.name, status="completed").inc()
        log.info("item_completed", tokens_used=tokens_used, length=len(content))
        return ItemOutcome(item.id, ContentStatus.COMPLETED, tokens_used=tokens_used)

    async def _generate(
        self,
        item: ContentItem,
        adapter: BaseLLMProvider[Any, Any],
        context: BatchSettings,
    ) -> tuple[str, int | None]:
        prompt = build_content_prompt(item, context.business, context.options)
        config = GenerateConfig(
            max_tokens=context.options.max_tokens,
            temperature=context.options.temperature,
        )
        response = await asyncio.wait_for(
            adapter.generate(prompt, config), timeout=self.timeout
        )
        content = strip_code_fence(response.text)
        if not content:
            raise ProviderError(EMPTY_CONTENT_MESSAGE, provider=adapter.name)
        return content, response.tokens_used

    async def _export(
        self,
        item: ContentItem,
        content: str,
        context: BatchSettings,
        log: Any,
    ) -> ExportedDocument | None:
        folder_id = context.business.export_folder_id
        if self.exporter is None or not folder_id:
            return None
        try:
            document = await self.exporter.export(item.title, content, folder_id)
        except Exception as e:
            # Export never affects the item's status
            EXPORT_FAILURES.inc()
            log.warning("item_export_failed", error=str(e), folder_id=folder_id)
            return None
        log.info("item_exported", document_id=document.document_id)
        return document

    async def _fail(
        self,
        item: ContentItem,
        batch_id: str,
        adapter: BaseLLMProvider[Any, Any],
        message: str,
        log: Any,
    ) -> ItemOutcome:
        await self.repository.update_item(
            item.id,
            status=ContentStatus.FAILED,
            error_message=message,
            retry_count_increment=True,
        )
        await self.repository.increment_batch_counter(batch_id, "failed_items")
        ITEMS_PROCESSED.labels(provider=adapter.name, status="failed").inc()
        log.warning("item_failed", error=message)
        return ItemOutcome(item.id, ContentStatus.FAILED, error=message)
