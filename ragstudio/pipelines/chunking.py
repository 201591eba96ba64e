"""Text cleaning and chunking for pipeline ingestion.

Two strategies:
- fixed:      windows of chunk_size characters, stepping chunk_size - chunk_overlap
- recursive:  windows that end on the coarsest separator found past half
              the chunk size, carrying chunk_overlap characters forward
"""

from __future__ import annotations

import math
import re

from ragstudio.pipelines.schemas import (
    Chunk,
    ChunkingConfig,
    ChunkMetadata,
    CleaningOptions,
    Document,
)

_WHITESPACE = re.compile(r"\s+")
_SPECIAL_CHARS = re.compile(r"[^\w\s.,!?-]")


def clean_text(text: str, options: CleaningOptions | None) -> str:
    if options is None:
        return text
    cleaned = text
    if options.remove_whitespace:
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    if options.remove_special_chars:
        cleaned = _SPECIAL_CHARS.sub("", cleaned)
    return cleaned


def estimate_tokens(text: str) -> int:
    """Rough token estimate: four characters per token."""
    return math.ceil(len(text) / 4)


def _fixed_spans(text: str, size: int, overlap: int) -> list[tuple[int, int]]:
    step = size - overlap
    return [(i, min(i + size, len(text))) for i in range(0, len(text), step)]


def _recursive_spans(
    text: str, size: int, overlap: int, separators: list[str]
) -> list[tuple[int, int]]:
    spans: list[tuple[int, int]] = []
    start = 0
    while True:
        remaining = text[start:]
        if len(remaining) <= size:
            spans.append((start, len(text)))
            break

        split = size
        for sep in separators:
            # Last separator that begins at or before the size boundary
            idx = remaining.rfind(sep, 0, size + len(sep))
            if idx > size * 0.5:
                split = idx + len(sep)
                break
        end = start + split
        spans.append((start, end))
        if end >= len(text):
            break

        next_start = end - overlap
        start = next_start if next_start > start else end
    return spans


def chunk_document(document: Document, config: ChunkingConfig) -> list[Chunk]:
    """Split one document into chunks according to the chunking config."""
    text = document.content
    if config.strategy == "fixed":
        spans = _fixed_spans(text, config.chunk_size, config.chunk_overlap)
    else:
        spans = _recursive_spans(
            text, config.chunk_size, config.chunk_overlap, config.separators
        )

    chunks: list[Chunk] = []
    for start, end in spans:
        content = text[start:end].strip()
        if not content:
            continue
        index = len(chunks)
        chunks.append(
            Chunk(
                id=f"{document.id}-chunk-{index}",
                content=content,
                metadata=ChunkMetadata(
                    document_id=document.id,
                    chunk_index=index,
                    start_offset=start,
                    end_offset=end,
                    tokens=estimate_tokens(content),
                    source=document.name,
                ),
            )
        )
    return chunks
