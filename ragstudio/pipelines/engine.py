"""RAG pipeline engine — ingest documents, answer questions over them.

Ingestion: clean -> chunk -> embed -> keep in memory.
Query:     embed question -> rank chunks by cosine similarity -> stream
           generation from the configured chat model.
"""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage

from ragstudio.pipelines.chunking import chunk_document, clean_text
from ragstudio.pipelines.errors import PipelineNotReadyError
from ragstudio.pipelines.schemas import (
    Chunk,
    ChunkingConfig,
    EmbeddingConfig,
    GenerationConfig,
    IngestionConfig,
    PipelineConfiguration,
    PipelineStatus,
    RetrievalConfig,
)

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from ragstudio.models.registry import ModelRegistry
    from ragstudio.pipelines.schemas import Document

logger = logging.getLogger(__name__)

EmbeddingsFactory = Callable[[EmbeddingConfig], "Embeddings"]

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant that answers questions based on the provided context.\n"
    "Use only the information from the context to answer questions. If the context doesn't "
    "contain enough information to answer the question, say so clearly.\n"
    "Be concise but comprehensive in your responses."
)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def build_prompt(question: str, context: str) -> str:
    return (
        f"Context:\n{context}\n\n"
        f"Question: {question}\n\n"
        "Please provide a helpful answer based on the context above."
    )


class RAGPipeline:
    """One executable pipeline built from a PipelineConfiguration."""

    def __init__(
        self,
        configuration: PipelineConfiguration,
        models: ModelRegistry,
        embeddings_factory: EmbeddingsFactory,
        warnings: list[str] | None = None,
    ) -> None:
        self.id = configuration.id
        self.configuration = configuration
        self._models = models
        self._embeddings_factory = embeddings_factory
        self._embeddings: Embeddings | None = None
        self._chunks: list[Chunk] = []
        self._vectors: dict[str, list[float]] = {}
        self._status = PipelineStatus(warnings=list(warnings or []))

        stages = configuration.stages
        self._ingestion = (stages and stages.ingestion) or IngestionConfig()
        self._chunking = (stages and stages.chunking) or ChunkingConfig()
        self._embedding = (stages and stages.embedding) or EmbeddingConfig()
        self._retrieval = (stages and stages.retrieval) or RetrievalConfig()
        self._generation = (stages and stages.generation) or GenerationConfig()

    @property
    def chunks(self) -> list[Chunk]:
        return list(self._chunks)

    def get_status(self) -> PipelineStatus:
        return self._status.model_copy(deep=True)

    def _touch(self) -> None:
        self._status.last_activity = datetime.now(timezone.utc)

    def _get_embeddings(self) -> Embeddings:
        if self._embeddings is None:
            self._embeddings = self._embeddings_factory(self._embedding)
        return self._embeddings

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest(self, documents: list[Document]) -> None:
        """Replace the pipeline's corpus with ``documents``."""
        self._touch()
        try:
            chunks: list[Chunk] = []
            for doc in documents:
                cleaned = doc.model_copy(
                    update={
                        "content": clean_text(doc.content, self._ingestion.cleaning_options)
                    }
                )
                chunks.extend(chunk_document(cleaned, self._chunking))

            vectors = await self._get_embeddings().aembed_documents(
                [c.content for c in chunks]
            )
        except Exception as e:
            self._status.errors.append(f"Ingestion failed: {e}")
            raise

        self._chunks = chunks
        self._vectors = {c.id: v for c, v in zip(chunks, vectors)}
        self._status.documents_ingested = len(documents)
        self._status.is_ready = True
        self._status.errors = []
        logger.info(
            f"Pipeline '{self.id}' ingested {len(documents)} documents "
            f"({len(chunks)} chunks)"
        )

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def query(self, question: str) -> AsyncGenerator[str, None]:
        """Return a lazy sequence of answer fragments.

        Readiness is checked here, before any fragment is requested, so an
        unready pipeline fails without opening a stream.
        """
        if not self._status.is_ready:
            raise PipelineNotReadyError()
        self._touch()
        return self._answer(question)

    async def retrieve(self, question: str) -> list[Chunk]:
        query_vector = await self._get_embeddings().aembed_query(question)
        scored = [
            (cosine_similarity(query_vector, self._vectors.get(c.id, [])), c)
            for c in self._chunks
        ]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [chunk for _, chunk in scored[: self._retrieval.top_k]]

    async def _answer(self, question: str) -> AsyncGenerator[str, None]:
        try:
            relevant = await self.retrieve(question)
            context = "\n\n".join(c.content for c in relevant)

            model = self._models.chat_model(
                self._generation.provider,
                temperature=self._generation.temperature,
                max_tokens=self._generation.max_tokens,
            )
            messages = [
                SystemMessage(content=self._generation.system_prompt or DEFAULT_SYSTEM_PROMPT),
                HumanMessage(content=build_prompt(question, context)),
            ]
            async for fragment in self._models.stream_generate(model, messages):
                yield fragment
        except Exception as e:
            self._status.errors.append(f"Query failed: {e}")
            raise
