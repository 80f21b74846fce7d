"""Configuration models for the campus assistant."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class ExtractionConfig(BaseModel):
    """Configures reading-order reconstruction from positioned fragments."""

    line_tolerance: float = Field(default=5.0, ge=0.0)


class LocatorConfig(BaseModel):
    """Configures subject/unit search over linearized syllabus text."""

    max_window_chars: int = Field(default=5000, ge=100)
    title_skip_chars: int = Field(default=100, ge=0)
    max_content_chars: int = Field(default=2000, ge=100)
    min_topic_chars: int = Field(default=5, ge=0)


class StoreConfig(BaseModel):
    """Configures document classification at storage time."""

    min_tokens: int = Field(default=10, ge=1)


class OrchestratorConfig(BaseModel):
    """Configures the tool-calling turn protocol."""

    max_document_chars: int = Field(default=25_000, ge=1000)
    truncation_marker: str = "\n\n[... document truncated ...]"
    reformat_keywords: tuple[str, ...] = ("table", "format", "different", "show")


class Settings(BaseModel):
    """Process-level settings resolved from the environment."""

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    campus_db_path: str = "campus.db"
    syllabus_pdf_path: str = "public/TY-CSE-syllabus.pdf"
    log_level: str = "INFO"

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    locator: LocatorConfig = Field(default_factory=LocatorConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            campus_db_path=os.getenv("CAMPUS_DB_PATH", "campus.db"),
            syllabus_pdf_path=os.getenv(
                "SYLLABUS_PDF_PATH", "public/TY-CSE-syllabus.pdf"
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
