"""Wiring of the generation pipeline components."""

from dataclasses import dataclass

from contentgen.content.credentials import CredentialResolver
from contentgen.content.export import DocumentExporter
from contentgen.content.orchestrator import BatchOrchestrator, BatchTaskRegistry
from contentgen.content.processor import ItemProcessor
from contentgen.content.progress import ProgressNotifier
from contentgen.content.repository import ContentRepository
from contentgen.content.retry import RetryCoordinator
from contentgen.content.topics import TopicSuggester
from contentgen.core.logging import get_logger
from contentgen.llm.providers import ProviderFactory, create_provider

logger = get_logger().bind(module="pipeline")


@dataclass
class ContentPipeline:
    """The components that serve one application instance."""

    repository: ContentRepository
    orchestrator: BatchOrchestrator
    retry: RetryCoordinator
    progress: ProgressNotifier
    topics: TopicSuggester

    @classmethod
    def create(
        cls,
        repository: ContentRepository,
        exporter: DocumentExporter | None = None,
        provider_factory: ProviderFactory = create_provider,
        credentials: CredentialResolver | None = None,
        concurrency: int | None = None,
        progress_interval: float | None = None,
        timeout: float | None = None,
    ) -> "ContentPipeline":
        """Build a pipeline around ``repository``.

        Arguments left as ``None`` fall back to settings.
        """
        orchestrator = BatchOrchestrator(
            repository,
            processor=ItemProcessor(repository, exporter=exporter, timeout=timeout),
            provider_factory=provider_factory,
            credentials=credentials,
            concurrency=concurrency,
            registry=BatchTaskRegistry(),
        )
        return cls(
            repository=repository,
            orchestrator=orchestrator,
            retry=RetryCoordinator(repository, orchestrator),
            progress=ProgressNotifier(repository, interval=progress_interval),
            topics=TopicSuggester(repository, orchestrator),
        )

    @property
    def registry(self) -> BatchTaskRegistry:
        return self.orchestrator.registry

    async def shutdown(self, timeout: float | None = None) -> None:
        """Wait for running batches, cancelling any still running at ``timeout``."""
        running = self.registry.running
        if running:
            logger.info("pipeline_draining", batches=running, timeout=timeout)
        await self.registry.drain(timeout)
