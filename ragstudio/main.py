"""RAG Studio — FastAPI app for chat relay and RAG pipeline queries.

Loads config.yaml on startup. Exposes /api/chat (streamed plain text),
/api/pipeline/query (streamed NDJSON events), pipeline lifecycle routes,
plus operational endpoints for health, config viewing, and hot-reload.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import ValidationError

from ragstudio.config import StudioConfig, load_config, reload_config
from ragstudio.dependencies import (
    get_model_registry,
    get_pipeline_manager,
    get_settings,
    verify_api_key,
)
from ragstudio.models.registry import ModelRegistry, build_embeddings
from ragstudio.pipelines.errors import InvalidConfigurationError, PipelineNotFoundError
from ragstudio.pipelines.manager import PipelineManager
from ragstudio.pipelines.schemas import Document, EmbeddingConfig, PipelineConfiguration
from ragstudio.relay import UnknownProviderError, open_chat_stream, pipeline_event_lines
from ragstudio.schemas import error_response, success_response

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def _embeddings_for(config: EmbeddingConfig):
    return build_embeddings(config.provider, config.model)


def _validation_details(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in error.errors()
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: StudioConfig = app.state.config
    logger.info(
        f"RAG Studio started (origins={config.allowed_origins}, "
        f"auth={'enabled' if config.api_key else 'disabled'}, "
        f"default_provider={config.default_provider})"
    )
    yield
    logger.info("RAG Studio shutting down")


def create_app(config: StudioConfig | None = None) -> FastAPI:
    """Build the app with its model registry and pipeline manager in app.state."""
    config = config or load_config()

    app = FastAPI(title="RAG Studio", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.models = ModelRegistry(temperature=config.temperature)
    app.state.pipelines = PipelineManager(app.state.models, _embeddings_for)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_chat_routes(app)
    _register_pipeline_routes(app)
    _register_operational_routes(app)
    return app


# ---------------------------------------------------------------------------
# Chat relay
# ---------------------------------------------------------------------------


def _register_chat_routes(app: FastAPI) -> None:
    @app.post("/api/chat")
    async def chat(
        request: Request,
        models: ModelRegistry = Depends(get_model_registry),
        config: StudioConfig = Depends(get_settings),
    ):
        """Stream a model reply as plain text.

        Body: ``{"messages": [...], "provider": "openai"}``. The provider
        falls back to the configured default when absent.
        """
        try:
            body = await request.json()
            fragments = await open_chat_stream(
                models,
                body.get("messages"),
                body.get("provider"),
                default_provider=config.default_provider,
            )
        except UnknownProviderError as e:
            logger.warning(f"Chat request rejected: {e}")
            return PlainTextResponse("Invalid provider", status_code=400)
        except Exception as e:
            logger.error(f"Chat API error: {e}", exc_info=True)
            return PlainTextResponse("Internal Server Error", status_code=500)

        return StreamingResponse(fragments, media_type=STREAM_MEDIA_TYPE)


# ---------------------------------------------------------------------------
# Pipeline routes
# ---------------------------------------------------------------------------


def _register_pipeline_routes(app: FastAPI) -> None:
    @app.post("/api/pipeline/query")
    async def query_pipeline(
        request: Request,
        pipelines: PipelineManager = Depends(get_pipeline_manager),
    ):
        """Stream a pipeline answer as newline-delimited JSON events.

        Every line is one of:
            {"type":"chunk","data":"..."}
            {"type":"complete"}
            {"type":"error","error":"..."}
        """
        try:
            body = await request.json()
            pipeline_id = body.get("pipelineId")
            question = body.get("question")

            if not pipeline_id or not isinstance(pipeline_id, str):
                return error_response(400, "Pipeline ID required")
            if not question or not isinstance(question, str):
                return error_response(400, "Question required")

            fragments = pipelines.query(pipeline_id, question)
        except Exception as e:
            logger.error(f"Pipeline query error: {e}", exc_info=True)
            if isinstance(e, PipelineNotFoundError) or "not found" in str(e):
                return error_response(404, "Pipeline not found")
            return error_response(
                500, "Failed to query pipeline", details=str(e) or "Unknown error"
            )

        return StreamingResponse(
            pipeline_event_lines(fragments),
            media_type=STREAM_MEDIA_TYPE,
            headers={"Transfer-Encoding": "chunked"},
        )

    @app.post("/api/pipeline")
    async def create_pipeline(
        request: Request,
        pipelines: PipelineManager = Depends(get_pipeline_manager),
    ):
        """Validate a pipeline configuration and register the pipeline."""
        try:
            body = await request.json()
            try:
                configuration = PipelineConfiguration.model_validate(
                    body.get("configuration")
                )
            except ValidationError as e:
                return error_response(
                    400, "Invalid configuration", details=_validation_details(e)
                )

            try:
                pipeline_id = pipelines.create(configuration)
            except InvalidConfigurationError as e:
                return error_response(400, "Invalid configuration", details=e.errors)

            return success_response(
                {
                    "pipelineId": pipeline_id,
                    "status": "created",
                    "warnings": pipelines.require(pipeline_id).get_status().warnings,
                }
            )
        except Exception as e:
            logger.error(f"Pipeline creation error: {e}", exc_info=True)
            return error_response(
                500, "Failed to create pipeline", details=str(e) or "Unknown error"
            )

    @app.get("/api/pipeline")
    async def get_pipelines(
        id: str | None = None,
        pipelines: PipelineManager = Depends(get_pipeline_manager),
    ):
        """Return one pipeline (``?id=``) or a summary of all pipelines."""
        try:
            if id:
                pipeline = pipelines.get(id)
                if pipeline is None:
                    return error_response(404, "Pipeline not found")
                return success_response(
                    {
                        "id": pipeline.id,
                        "configuration": pipeline.configuration.model_dump(
                            mode="json", by_alias=True
                        ),
                        "status": pipeline.get_status().model_dump(
                            mode="json", by_alias=True
                        ),
                    }
                )

            return success_response(
                [
                    {
                        "id": p.id,
                        "name": p.configuration.name,
                        "status": p.get_status().model_dump(mode="json", by_alias=True),
                    }
                    for p in pipelines.all()
                ]
            )
        except Exception as e:
            logger.error(f"Pipeline retrieval error: {e}", exc_info=True)
            return error_response(
                500, "Failed to retrieve pipeline(s)", details=str(e) or "Unknown error"
            )

    @app.delete("/api/pipeline")
    async def delete_pipeline(
        id: str | None = None,
        pipelines: PipelineManager = Depends(get_pipeline_manager),
    ):
        if not id:
            return error_response(400, "Pipeline ID required")
        if not pipelines.delete(id):
            return error_response(404, "Pipeline not found")
        return success_response({"message": "Pipeline deleted successfully"})

    @app.post("/api/pipeline/ingest")
    async def ingest_documents(
        request: Request,
        pipelines: PipelineManager = Depends(get_pipeline_manager),
    ):
        """Replace a pipeline's corpus with the posted documents."""
        try:
            body = await request.json()
            pipeline_id = body.get("pipelineId")
            documents = body.get("documents")

            if not pipeline_id or not isinstance(pipeline_id, str):
                return error_response(400, "Pipeline ID required")
            if not documents or not isinstance(documents, list):
                return error_response(400, "Documents array required")

            try:
                parsed = [Document.model_validate(doc) for doc in documents]
            except ValidationError as e:
                return error_response(
                    400, "Invalid documents", details=_validation_details(e)
                )

            await pipelines.ingest(pipeline_id, parsed)
            return success_response(
                {
                    "message": f"Successfully ingested {len(parsed)} documents",
                    "documentsProcessed": len(parsed),
                }
            )
        except PipelineNotFoundError as e:
            logger.warning(f"Document ingestion rejected: {e}")
            return error_response(404, "Pipeline not found")
        except Exception as e:
            logger.error(f"Document ingestion error: {e}", exc_info=True)
            return error_response(
                500, "Failed to ingest documents", details=str(e) or "Unknown error"
            )


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


def _register_operational_routes(app: FastAPI) -> None:
    @app.get("/health")
    async def health(
        models: ModelRegistry = Depends(get_model_registry),
        pipelines: PipelineManager = Depends(get_pipeline_manager),
    ):
        """Liveness check."""
        return {
            "status": "healthy",
            "providers": models.keys(),
            "pipelines": len(pipelines.all()),
        }

    @app.get("/config")
    async def get_current_config(config: StudioConfig = Depends(get_settings)):
        """Return current config as JSON, with the API key redacted."""
        data = config.model_dump()
        if data.get("api_key"):
            data["api_key"] = "***"
        return data

    @app.post("/reload", dependencies=[Depends(verify_api_key)])
    async def reload(request: Request):
        """Hot-reload config.yaml without a restart.

        Swaps app.state.config and drops cached chat models so they are
        rebuilt with the new settings. Pipelines are kept.
        """
        try:
            new_config = reload_config()
            request.app.state.config = new_config
            request.app.state.models.invalidate(temperature=new_config.temperature)
            return {
                "status": "reloaded",
                "default_provider": new_config.default_provider,
            }
        except Exception as e:
            logger.error(f"Reload failed: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Reload failed: {e}")


app = create_app()
