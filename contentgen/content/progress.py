"""Read-only progress projection of batches, polled or streamed."""

import asyncio
import json
from collections.abc import AsyncGenerator
from typing import Any

from contentgen.content.errors import NotFoundError
from contentgen.content.models import BatchProgress, ContentBatch
from contentgen.content.repository import ContentRepository
from contentgen.core.config import settings
from contentgen.core.logging import get_logger

logger = get_logger().bind(module="progress")

BATCH_NOT_FOUND_EVENT: dict[str, Any] = {"error": "Batch not found"}


def format_sse(event: dict[str, Any]) -> str:
    """Render one event as a server-sent events frame."""
    return f"data: {json.dumps(event)}\n\n"


class ProgressNotifier:
    """Observes batch counters without ever writing to the batch."""

    def __init__(
        self, repository: ContentRepository, interval: float | None = None
    ) -> None:
        self.repository = repository
        self.interval = (
            interval if interval is not None else settings.PROGRESS_INTERVAL_SECONDS
        )

    async def _get_batch(
        self, batch_id: str, account_id: str | None
    ) -> ContentBatch | None:
        batch = await self.repository.get_batch(batch_id)
        if batch is None or (
            account_id is not None and batch.account_id != account_id
        ):
            return None
        return batch

    async def snapshot(
        self, batch_id: str, account_id: str | None = None
    ) -> BatchProgress:
        """Return the batch's counters at the time of the read.

        When ``account_id`` is given, batches of other accounts are reported
        as missing.

        Raises:
            NotFoundError: If the batch does not exist
        """
        batch = await self._get_batch(batch_id, account_id)
        if batch is None:
            raise NotFoundError(f"Batch {batch_id} not found")
        return BatchProgress.from_batch(batch)

    async def stream(
        self,
        batch_id: str,
        interval: float | None = None,
        account_id: str | None = None,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Yield progress events until the batch reaches a terminal status.

        One event is yielded per interval while the batch is processing,
        followed by the terminal snapshot. A missing batch yields a single
        error event. Closing the generator early stops polling.
        """
        delay = interval if interval is not None else self.interval
        while True:
            batch = await self._get_batch(batch_id, account_id)
            if batch is None:
                logger.info("progress_batch_not_found", batch_id=batch_id)
                yield dict(BATCH_NOT_FOUND_EVENT)
                return

            yield BatchProgress.from_batch(batch).to_event()
            if batch.status.is_terminal:
                return
            await asyncio.sleep(delay)

    async def sse(
        self,
        batch_id: str,
        interval: float | None = None,
        account_id: str | None = None,
    ) -> AsyncGenerator[str, None]:
        """Stream progress events as server-sent event frames."""
        events = self.stream(batch_id, interval, account_id)
        try:
            async for event in events:
                yield format_sse(event)
        finally:
            await events.aclose()
            logger.debug("progress_stream_closed", batch_id=batch_id)
