"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class TextFragment:
    """One positioned run of text on a page.

    `y` is the baseline in PDF user space: larger values sit higher on the page.
    """

    text: str
    x: float
    y: float


@dataclass(slots=True)
class ParsedDocument:
    """An uploaded source decoded into linearized text."""

    doc_id: str
    file_name: str
    text: str
    metadata: dict[str, Any]


@dataclass(frozen=True, slots=True)
class Document:
    """A stored document. Never mutated after insertion."""

    id: str
    display_name: str
    text: str
    word_count: int
    char_count: int
    file_type: str = "text"
    page_count: int = 0


@dataclass(slots=True)
class ToolResult:
    """Outcome of one tool execution, as folded back into the conversation."""

    output: str
    ok: bool = True
    data: dict[str, Any] | None = None
    instruction: str | None = None


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
    ok: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)
