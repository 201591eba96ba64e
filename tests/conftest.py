# Shared fixtures: an app wired to fake chat models and deterministic embeddings.

import pytest
from fastapi.testclient import TestClient
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from ragstudio.config import StudioConfig
from ragstudio.dependencies import get_model_registry, get_pipeline_manager
from ragstudio.main import create_app
from ragstudio.models.registry import ModelRegistry
from ragstudio.pipelines.manager import PipelineManager


def fake_embeddings(_config):
    return DeterministicFakeEmbedding(size=16)


@pytest.fixture
def registry():
    # Real provider keys stay resolvable; "fake" is served without credentials.
    return ModelRegistry(models={"fake": FakeListChatModel(responses=["hi there"])})


@pytest.fixture
def manager(registry):
    return PipelineManager(registry, fake_embeddings)


@pytest.fixture
def test_app(registry, manager):
    app = create_app(StudioConfig(default_provider="openai"))
    app.dependency_overrides[get_model_registry] = lambda: registry
    app.dependency_overrides[get_pipeline_manager] = lambda: manager
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


def pipeline_payload(pipeline_id="p1", **stage_overrides):
    stages = {
        "ingestion": {"cleaningOptions": {"removeWhitespace": True}},
        "chunking": {"strategy": "fixed", "chunkSize": 200, "chunkOverlap": 20},
        "embedding": {"provider": "google", "model": "models/text-embedding-004", "maxTokens": 2048},
        "retrieval": {"topK": 2},
        "generation": {"provider": "fake", "temperature": 0.1, "maxTokens": 100},
    }
    stages.update(stage_overrides)
    return {"id": pipeline_id, "name": "Test pipeline", "stages": stages}


@pytest.fixture
def make_payload():
    return pipeline_payload
