"""Pipeline manager — in-memory table of executable pipelines, keyed by id.

Every lookup by id raises PipelineNotFoundError for unknown ids, so callers
can map "not found" failures to 404 before any stream is opened.
"""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from ragstudio.pipelines.engine import RAGPipeline
from ragstudio.pipelines.errors import InvalidConfigurationError, PipelineNotFoundError
from ragstudio.pipelines.schemas import PipelineConfiguration, ValidationResult

if TYPE_CHECKING:
    from ragstudio.models.registry import ModelRegistry
    from ragstudio.pipelines.engine import EmbeddingsFactory
    from ragstudio.pipelines.schemas import Document

logger = logging.getLogger(__name__)

MAX_RECOMMENDED_CHUNK_SIZE = 8000


def validate_configuration(
    configuration: PipelineConfiguration,
    providers: list[str] | None = None,
) -> ValidationResult:
    """Check stage settings for consistency.

    Partial configurations are accepted; only the stages present are checked.
    """
    errors: list[str] = []
    warnings: list[str] = []

    stages = configuration.stages
    if stages is None:
        return ValidationResult(is_valid=False, errors=["Configuration must have stages"])
    if not stages.configured():
        return ValidationResult(is_valid=False, errors=["No stages configured"])

    chunking = stages.chunking
    if chunking is not None:
        if chunking.chunk_overlap >= chunking.chunk_size:
            errors.append("Chunk overlap must be less than chunk size")
        if chunking.chunk_size > MAX_RECOMMENDED_CHUNK_SIZE:
            warnings.append("Large chunk size may exceed model context limits")

    if stages.embedding is not None and chunking is not None:
        estimated_tokens = math.ceil(chunking.chunk_size / 4)
        if estimated_tokens > stages.embedding.max_tokens:
            errors.append("Chunk size exceeds embedding model token limit")

    if providers is not None and stages.generation is not None:
        if stages.generation.provider not in providers:
            errors.append(
                f"Unknown generation provider '{stages.generation.provider}'. "
                f"Available: {providers}"
            )

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


class PipelineManager:
    """Creates, stores and dispatches to RAG pipelines."""

    def __init__(self, models: ModelRegistry, embeddings_factory: EmbeddingsFactory) -> None:
        self._models = models
        self._embeddings_factory = embeddings_factory
        self._pipelines: dict[str, RAGPipeline] = {}

    def validate(self, configuration: PipelineConfiguration) -> ValidationResult:
        return validate_configuration(configuration, providers=self._models.keys())

    def create(self, configuration: PipelineConfiguration) -> str:
        """Build and store a pipeline. Replaces any pipeline with the same id."""
        result = self.validate(configuration)
        if not result.is_valid:
            raise InvalidConfigurationError(result.errors)

        pipeline = RAGPipeline(
            configuration,
            self._models,
            self._embeddings_factory,
            warnings=result.warnings,
        )
        self._pipelines[pipeline.id] = pipeline
        logger.info(f"Created pipeline '{pipeline.id}' ({configuration.name})")
        return pipeline.id

    def get(self, pipeline_id: str) -> RAGPipeline | None:
        return self._pipelines.get(pipeline_id)

    def require(self, pipeline_id: str) -> RAGPipeline:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            raise PipelineNotFoundError(pipeline_id)
        return pipeline

    def all(self) -> list[RAGPipeline]:
        return list(self._pipelines.values())

    def delete(self, pipeline_id: str) -> bool:
        removed = self._pipelines.pop(pipeline_id, None) is not None
        if removed:
            logger.info(f"Deleted pipeline '{pipeline_id}'")
        return removed

    async def ingest(self, pipeline_id: str, documents: list[Document]) -> None:
        await self.require(pipeline_id).ingest(documents)

    def query(self, pipeline_id: str, question: str) -> AsyncGenerator[str, None]:
        """Resolve the pipeline and return its lazy answer sequence.

        Raises PipelineNotFoundError / PipelineNotReadyError immediately,
        before any fragment is produced.
        """
        return self.require(pipeline_id).query(question)
