# Tests for the pipeline manager, configuration validation and the RAG engine.

import pytest

from ragstudio.pipelines.engine import cosine_similarity
from ragstudio.pipelines.errors import (
    InvalidConfigurationError,
    PipelineNotFoundError,
    PipelineNotReadyError,
)
from ragstudio.pipelines.manager import validate_configuration
from ragstudio.pipelines.schemas import Document, PipelineConfiguration


def _config(payload):
    return PipelineConfiguration.model_validate(payload)


class TestValidateConfiguration:
    def test_valid_configuration(self, make_payload):
        result = validate_configuration(_config(make_payload()))
        assert result.is_valid
        assert result.errors == []

    def test_no_stages_configured(self):
        result = validate_configuration(_config({"id": "x", "stages": {}}))
        assert not result.is_valid
        assert result.errors == ["No stages configured"]

    def test_chunk_tokens_must_fit_embedding_limit(self, make_payload):
        payload = make_payload(
            chunking={"strategy": "fixed", "chunkSize": 4000, "chunkOverlap": 0},
            embedding={"provider": "google", "maxTokens": 512},
        )
        result = validate_configuration(_config(payload))
        assert "Chunk size exceeds embedding model token limit" in result.errors

    def test_large_chunk_is_only_a_warning(self):
        payload = {"id": "x", "stages": {"chunking": {"chunkSize": 9000, "chunkOverlap": 0}}}
        result = validate_configuration(_config(payload))
        assert result.is_valid
        assert result.warnings == ["Large chunk size may exceed model context limits"]

    def test_unknown_generation_provider(self, make_payload):
        payload = make_payload(generation={"provider": "mystery"})
        result = validate_configuration(_config(payload), providers=["openai"])
        assert not result.is_valid
        assert "mystery" in result.errors[0]


class TestPipelineManager:
    def test_create_rejects_invalid(self, manager, make_payload):
        payload = make_payload(chunking={"chunkSize": 10, "chunkOverlap": 50})
        with pytest.raises(InvalidConfigurationError):
            manager.create(_config(payload))
        assert manager.all() == []

    def test_query_unknown_pipeline_raises_before_streaming(self, manager):
        with pytest.raises(PipelineNotFoundError, match="not found"):
            manager.query("ghost", "hello?")

    def test_query_unready_pipeline_raises_before_streaming(self, manager, make_payload):
        manager.create(_config(make_payload("p")))
        with pytest.raises(PipelineNotReadyError):
            manager.query("p", "hello?")

    @pytest.mark.asyncio
    async def test_ingest_unknown_pipeline(self, manager):
        with pytest.raises(PipelineNotFoundError):
            await manager.ingest("ghost", [])

    def test_delete(self, manager, make_payload):
        manager.create(_config(make_payload("p")))
        assert manager.delete("p") is True
        assert manager.delete("p") is False
        assert manager.get("p") is None


class TestRAGPipeline:
    @pytest.mark.asyncio
    async def test_ingest_then_query_streams_answer(self, manager, make_payload):
        manager.create(_config(make_payload("p")))
        await manager.ingest(
            "p", [Document(id="d", name="d.txt", content="The sky is blue.")]
        )

        status = manager.require("p").get_status()
        assert status.is_ready
        assert status.documents_ingested == 1

        fragments = [f async for f in manager.query("p", "What colour is the sky?")]
        assert "".join(fragments) == "hi there"

    @pytest.mark.asyncio
    async def test_retrieve_ranks_exact_match_first(self, manager, make_payload):
        manager.create(_config(make_payload("p", retrieval={"topK": 1})))
        docs = [
            Document(id="a", name="a", content="apples grow on trees"),
            Document(id="b", name="b", content="the ocean is deep"),
            Document(id="c", name="c", content="mountains are tall"),
        ]
        await manager.ingest("p", docs)

        [best] = await manager.require("p").retrieve("the ocean is deep")
        assert best.metadata.document_id == "b"

    @pytest.mark.asyncio
    async def test_reingest_replaces_corpus(self, manager, make_payload):
        manager.create(_config(make_payload("p")))
        pipeline = manager.require("p")
        await pipeline.ingest([Document(id="a", content="first corpus")])
        await pipeline.ingest([Document(id="b", content="second corpus")])
        assert [c.metadata.document_id for c in pipeline.chunks] == ["b"]

    @pytest.mark.asyncio
    async def test_query_failure_is_recorded(self, manager, registry, make_payload):
        manager.create(_config(make_payload("p")))
        await manager.ingest("p", [Document(id="d", content="text")])

        async def broken(model, messages):
            raise RuntimeError("model offline")
            yield  # pragma: no cover

        registry.stream_generate = broken
        with pytest.raises(RuntimeError, match="model offline"):
            async for _ in manager.query("p", "q"):
                pass
        assert manager.require("p").get_status().errors == ["Query failed: model offline"]


def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0], [1.0, 2.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
