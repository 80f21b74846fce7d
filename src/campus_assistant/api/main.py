"""FastAPI entrypoint for upload/chat/trace endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from campus_assistant.agent.model import ModelGateway
from campus_assistant.agent.orchestrator import ToolOrchestrator
from campus_assistant.agent.registry import ToolRegistry
from campus_assistant.agent.tools import register_builtin_tools
from campus_assistant.config import Settings
from campus_assistant.ingest.layout import LayoutTextExtractor
from campus_assistant.ingest.parser import MarkdownParser, ParserRegistry, PdfParser, TextParser
from campus_assistant.ingest.pipeline import DocumentService
from campus_assistant.obs.logging_utils import configure_logging
from campus_assistant.obs.tracing import TraceStore
from campus_assistant.records.campus_db import CampusRecords
from campus_assistant.store.document_store import DocumentStore
from campus_assistant.syllabus.locator import SyllabusLocator
from campus_assistant.syllabus.service import SyllabusService

logger = logging.getLogger(__name__)

_APOLOGY = (
    "Sorry, something went wrong while handling your request. Please try again "
    "in a moment."
)


def _create_llm(settings: Settings) -> Any:
    if not settings.openai_api_key:
        return None

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=settings.openai_model, temperature=0, api_key=settings.openai_api_key
    )


class UploadRequest(BaseModel):
    documentId: str = Field(min_length=1)
    fileName: str = Field(min_length=1)
    fileContent: str
    fileType: str = Field(min_length=1)


class ChatRequest(BaseModel):
    messages: list[dict[str, Any]] = Field(min_length=1)


@dataclass(slots=True)
class AppContainer:
    """Components owned by one application instance."""

    settings: Settings
    store: DocumentStore
    documents: DocumentService
    registry: ToolRegistry
    trace_store: TraceStore
    orchestrator: ToolOrchestrator | None


def build_container(settings: Settings, *, llm: Any | None = None) -> AppContainer:
    extractor = LayoutTextExtractor(settings.extraction)
    parser_registry = ParserRegistry([PdfParser(extractor), TextParser(), MarkdownParser()])
    store = DocumentStore(settings.store)
    documents = DocumentService(parser_registry, store, settings.orchestrator)
    syllabus = SyllabusService(
        settings.syllabus_pdf_path,
        extractor=extractor,
        locator=SyllabusLocator(settings.locator),
    )

    registry = ToolRegistry()
    register_builtin_tools(
        registry,
        records=CampusRecords(settings.campus_db_path),
        syllabus=syllabus,
        documents=documents,
    )

    trace_store = TraceStore()
    llm = llm if llm is not None else _create_llm(settings)
    orchestrator = (
        ToolOrchestrator(
            gateway=ModelGateway(llm, registry.as_langchain_tools()),
            tool_registry=registry,
            trace_store=trace_store,
            config=settings.orchestrator,
        )
        if llm is not None
        else None
    )
    return AppContainer(
        settings=settings,
        store=store,
        documents=documents,
        registry=registry,
        trace_store=trace_store,
        orchestrator=orchestrator,
    )


def create_app(settings: Settings | None = None, *, llm: Any | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="Campus Assistant", version="0.1.0")
    app.state.container = build_container(settings, llm=llm)

    def _container(request: Request) -> AppContainer:
        return request.app.state.container

    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        container = _container(request)
        return {
            "status": "ok",
            "llm_configured": container.orchestrator is not None,
            "document_count": len(container.store),
            "trace_count": len(container.trace_store.list_recent(limit=1000)),
        }

    @app.post("/upload")
    def upload(request: Request, payload: UploadRequest) -> JSONResponse:
        try:
            result = _container(request).documents.upload(
                doc_id=payload.documentId,
                file_name=payload.fileName,
                file_content=payload.fileContent,
                file_type=payload.fileType,
            )
        except Exception:
            logger.exception("Unhandled error during upload of %s", payload.fileName)
            return JSONResponse(
                {"message": {"role": "assistant", "content": _APOLOGY}, "stored": False},
                status_code=500,
            )

        body: dict[str, Any] = {
            "message": {"role": "assistant", "content": result.output},
            "stored": result.ok,
        }
        if result.data:
            body["document"] = result.data
        return JSONResponse(body)

    @app.post("/chat")
    def chat(request: Request, payload: ChatRequest) -> JSONResponse:
        orchestrator = _container(request).orchestrator
        if orchestrator is None:
            return JSONResponse(
                {
                    "message": {
                        "role": "assistant",
                        "content": (
                            "The assistant's language model is not configured. "
                            "Please set OPENAI_API_KEY and restart the service."
                        ),
                    }
                },
                status_code=503,
            )

        try:
            reply = orchestrator.handle(payload.messages)
        except Exception:
            logger.exception("Unhandled error during chat turn")
            return JSONResponse(
                {"message": {"role": "assistant", "content": _APOLOGY}},
                status_code=500,
            )

        return JSONResponse(
            {"message": reply.to_message(), "trace_id": reply.trace_id},
            status_code=reply.status_code,
        )

    @app.get("/documents")
    def documents(request: Request) -> dict[str, Any]:
        return {"items": _container(request).store.list_names()}

    @app.get("/traces")
    def traces(request: Request, limit: int = 20) -> dict[str, Any]:
        records = _container(request).trace_store.list_recent(limit=limit)
        return {"items": [asdict(record) for record in records]}

    @app.get("/traces/{trace_id}")
    def trace_detail(request: Request, trace_id: str) -> dict[str, Any]:
        try:
            record = _container(request).trace_store.get(trace_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return asdict(record)

    @app.get("/metrics")
    def metrics(request: Request) -> dict[str, Any]:
        return _container(request).trace_store.summary()

    return app
