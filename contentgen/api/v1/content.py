"""Content generation API endpoints."""

from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from contentgen.api.v1.models import (
    BatchesResponse,
    BatchStartedResponse,
    ItemsResponse,
    PromptTemplateInfo,
    RetryStartedResponse,
    SaveItemsRequest,
    TemplatesResponse,
    TopicsResponse,
)
from contentgen.content.orchestrator import StartBatchRequest
from contentgen.content.pipeline import ContentPipeline
from contentgen.content.retry import RetryBatchRequest
from contentgen.content.templates import CONTENT_TEMPLATES
from contentgen.content.topics import TopicSuggestionRequest
from contentgen.llm.prompts import PROMPT_TEMPLATES

router = APIRouter(prefix="/content", tags=["content"])

MAX_BATCH_HISTORY = 20


def get_pipeline(request: Request) -> ContentPipeline:
    """Return the pipeline created at startup."""
    pipeline: ContentPipeline | None = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Content pipeline is not initialized",
        )
    return pipeline


@router.get("/items", response_model=ItemsResponse)
async def list_items(
    account_id: str = Query(..., min_length=1, description="Account owning the items"),
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> ItemsResponse:
    """List every item of an account, oldest first."""
    return ItemsResponse(items=await pipeline.repository.list_items(account_id))


@router.post("/items", response_model=ItemsResponse)
async def save_items(
    body: SaveItemsRequest,
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> ItemsResponse:
    """
    Save the draft rows of an account.

    Draft rows missing from the request are deleted. Rows that have been
    enrolled in a batch are managed by the pipeline and left untouched.
    """
    drafts = [row.to_item(body.account_id) for row in body.items]
    items = await pipeline.repository.save_drafts(body.account_id, drafts)
    return ItemsResponse(items=items)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: str,
    account_id: str = Query(..., min_length=1, description="Account owning the item"),
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> None:
    """Delete a draft item of an account."""
    await pipeline.repository.delete_item(account_id, item_id)


@router.post(
    "/generate",
    response_model=BatchStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate(
    body: StartBatchRequest,
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> BatchStartedResponse:
    """
    Start generating a batch of items.

    Returns as soon as the items are enrolled; follow the batch through the
    progress endpoints.
    """
    handle = await pipeline.orchestrator.start_batch(body)
    return BatchStartedResponse(batch_id=handle.batch_id)


@router.post(
    "/retry",
    response_model=RetryStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def retry(
    body: RetryBatchRequest,
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> RetryStartedResponse:
    """Start another round for the FAILED items of a batch."""
    result = await pipeline.retry.retry_batch(body)
    return RetryStartedResponse(
        batch_id=result.batch_id, retried_count=result.retried_count
    )


@router.get("/batch/{batch_id}")
async def get_batch_progress(
    batch_id: str,
    account_id: str = Query(
        ..., min_length=1, description="Account owning the batch"
    ),
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    """Point-in-time progress of a batch."""
    progress = await pipeline.progress.snapshot(batch_id, account_id)
    return progress.to_event()


@router.get("/batch/{batch_id}/progress")
async def stream_batch_progress(
    batch_id: str,
    account_id: str = Query(
        ..., min_length=1, description="Account owning the batch"
    ),
    interval: float | None = Query(
        None, gt=0, le=60, description="Seconds between events"
    ),
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    """
    Stream batch progress as server-sent events.

    The stream ends after the terminal snapshot, or after a single error
    event when the batch does not exist in the account. A client disconnect
    cancels the stream without affecting the batch.
    """

    async def event_stream() -> AsyncGenerator[str, None]:
        async for frame in pipeline.progress.sse(batch_id, interval, account_id):
            yield frame

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/batches", response_model=BatchesResponse)
async def list_batches(
    account_id: str = Query(
        ..., min_length=1, description="Account owning the batches"
    ),
    limit: int = Query(MAX_BATCH_HISTORY, ge=1, le=MAX_BATCH_HISTORY),
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> BatchesResponse:
    """Latest batches of an account, newest first."""
    batches = await pipeline.orchestrator.list_batches(account_id, limit=limit)
    return BatchesResponse(batches=batches)


@router.get("/templates", response_model=TemplatesResponse)
async def list_templates() -> TemplatesResponse:
    """Writing-style templates and starter content rows."""
    return TemplatesResponse(
        prompt_templates=[
            PromptTemplateInfo(value=t.value, label=t.label, instruction=t.instruction)
            for t in PROMPT_TEMPLATES
        ],
        content_templates=list(CONTENT_TEMPLATES),
    )


@router.post("/suggest-topics", response_model=TopicsResponse)
async def suggest_topics(
    body: TopicSuggestionRequest,
    pipeline: ContentPipeline = Depends(get_pipeline),
) -> TopicsResponse:
    """Ask the provider for blog topic ideas."""
    return TopicsResponse(topics=await pipeline.topics.suggest(body))
