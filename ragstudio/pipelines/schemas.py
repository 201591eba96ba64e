"""Pipeline configuration and document models.

JSON payloads use camelCase keys; Python code uses the snake_case names.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CleaningOptions(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    remove_whitespace: bool = Field(default=False, alias="removeWhitespace")
    remove_special_chars: bool = Field(default=False, alias="removeSpecialChars")


class IngestionConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    cleaning_options: CleaningOptions = Field(
        default_factory=CleaningOptions, alias="cleaningOptions"
    )


class ChunkingConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    strategy: Literal["fixed", "recursive"] = "recursive"
    chunk_size: int = Field(default=1000, alias="chunkSize", gt=0)
    chunk_overlap: int = Field(default=200, alias="chunkOverlap", ge=0)
    separators: list[str] = Field(default_factory=lambda: ["\n\n", "\n", ". ", " "])


class EmbeddingConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    provider: str = "google"
    model: str = "models/text-embedding-004"
    max_tokens: int = Field(default=2048, alias="maxTokens", gt=0)


class RetrievalConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    top_k: int = Field(default=5, alias="topK", gt=0)


class GenerationConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    provider: str = "google"
    temperature: float = 0.1
    max_tokens: int = Field(default=1000, alias="maxTokens", gt=0)
    system_prompt: str | None = Field(default=None, alias="systemPrompt")


class PipelineStages(BaseModel):
    """Stage settings. A stage left out of the payload is None."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    ingestion: IngestionConfig | None = None
    chunking: ChunkingConfig | None = None
    embedding: EmbeddingConfig | None = None
    retrieval: RetrievalConfig | None = None
    generation: GenerationConfig | None = None

    def configured(self) -> list[str]:
        return [name for name, value in self if value is not None]


class PipelineConfiguration(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str = "Untitled pipeline"
    version: str = "1.0.0"
    stages: PipelineStages | None = None


class Document(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str = ""
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChunkMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId")
    chunk_index: int = Field(alias="chunkIndex")
    start_offset: int = Field(alias="startOffset")
    end_offset: int = Field(alias="endOffset")
    tokens: int
    source: str


class Chunk(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    content: str
    metadata: ChunkMetadata


class PipelineStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_ready: bool = Field(default=False, alias="isReady")
    documents_ingested: int = Field(default=0, alias="documentsIngested")
    last_activity: datetime = Field(default_factory=_utcnow, alias="lastActivity")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
