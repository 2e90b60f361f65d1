"""Request and response schemas of the content API."""

from pydantic import BaseModel, Field

from contentgen.content.models import ContentItem, ContentType
from contentgen.content.orchestrator import BatchSummary
from contentgen.content.templates import ContentTemplate
from contentgen.content.topics import TopicSuggestion


class ItemInput(BaseModel):
    """A draft row as edited by the client."""

    id: str | None = None
    title: str = Field(min_length=1)
    content_type: ContentType = ContentType.BLOG_POST
    service_area: str | None = None
    target_audience: str | None = None
    geolocation: str | None = None
    target_keywords: str | None = None
    include_cta: bool = True

    def to_item(self, account_id: str) -> ContentItem:
        fields = self.model_dump(exclude_none=True)
        return ContentItem(account_id=account_id, **fields)


class SaveItemsRequest(BaseModel):
    account_id: str = Field(min_length=1)
    items: list[ItemInput] = Field(default_factory=list)


class ItemsResponse(BaseModel):
    items: list[ContentItem]


class BatchStartedResponse(BaseModel):
    batch_id: str


class RetryStartedResponse(BaseModel):
    batch_id: str
    retried_count: int


class BatchesResponse(BaseModel):
    batches: list[BatchSummary]


class PromptTemplateInfo(BaseModel):
    value: str
    label: str
    instruction: str


class TemplatesResponse(BaseModel):
    prompt_templates: list[PromptTemplateInfo]
    content_templates: list[ContentTemplate]


class TopicsResponse(BaseModel):
    topics: list[TopicSuggestion]
