"""Upload and query flows: decode -> parse -> store, and store -> capped content."""

from __future__ import annotations

import base64
import binascii
import json
import logging

from campus_assistant.config import OrchestratorConfig
from campus_assistant.errors import (
    DocumentNotFound,
    EmptyOrLowContentDocument,
    ExtractionError,
    UnsupportedFileType,
)
from campus_assistant.ingest.parser import ParserRegistry
from campus_assistant.store.document_store import DocumentStore
from campus_assistant.types import Document, ToolResult

logger = logging.getLogger(__name__)


class DocumentService:
    """Coordinates parser registry and document store.

    Both the upload endpoint and the `document-upload` tool go through
    `upload`, so classification and aliasing behave the same either way.
    All expected failures come back as a `ToolResult` with `ok=False` and a
    message fit to show the user.
    """

    def __init__(
        self,
        parser_registry: ParserRegistry,
        store: DocumentStore,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self._parser_registry = parser_registry
        self._store = store
        self.config = config or OrchestratorConfig()

    @property
    def store(self) -> DocumentStore:
        return self._store

    def ingest_bytes(
        self, data: bytes, *, doc_id: str, file_name: str, file_type: str
    ) -> Document:
        """Parse and store raw bytes, raising typed errors on failure."""

        parsed = self._parser_registry.parse_bytes(
            data, file_type=file_type, doc_id=doc_id, file_name=file_name
        )
        return self._store.put(
            parsed.doc_id,
            parsed.file_name,
            parsed.text,
            file_type=str(parsed.metadata.get("format", "text")),
            page_count=int(parsed.metadata.get("page_count", 0)),
        )

    def upload(
        self, *, doc_id: str, file_name: str, file_content: str, file_type: str
    ) -> ToolResult:
        try:
            data = base64.b64decode(file_content, validate=True)
        except (binascii.Error, ValueError):
            return ToolResult(
                output=(
                    f"Could not read **{file_name}**: the file content is not valid "
                    "base64. Please re-upload the file."
                ),
                ok=False,
            )

        try:
            document = self.ingest_bytes(
                data, doc_id=doc_id, file_name=file_name, file_type=file_type
            )
        except UnsupportedFileType as exc:
            return ToolResult(
                output=(
                    f"**{file_name}** has an unsupported file type ({exc.file_type}). "
                    f"Supported types: {', '.join(exc.supported)}."
                ),
                ok=False,
            )
        except ExtractionError as exc:
            logger.warning("Upload %s could not be decoded: %s", doc_id, exc)
            return ToolResult(
                output=(
                    f"Could not read **{file_name}**: {exc}. The file may be corrupt "
                    "or in an unsupported format."
                ),
                ok=False,
            )
        except EmptyOrLowContentDocument as exc:
            return ToolResult(output=_low_content_message(exc), ok=False)

        return ToolResult(
            output=_stored_message(document),
            data={
                "documentId": document.id,
                "fileName": document.display_name,
                "wordCount": document.word_count,
                "charCount": document.char_count,
                "pageCount": document.page_count,
            },
        )

    def query(self, key: str, question: str) -> ToolResult:
        """Resolve a document by id or file name and cap its content.

        A successful result carries the JSON payload sent to the model
        (`content`, `question`, `isTruncated`, `originalLength`). Missing or
        low-content documents yield `ok=False` with the message to show.
        """

        try:
            document = self._store.get(key)
        except DocumentNotFound as exc:
            return ToolResult(output=_not_found_message(exc), ok=False)

        if not document.text.strip():
            return ToolResult(
                output=(
                    f"**{document.display_name}** has no readable text. It may be a "
                    "scanned document; please run OCR or paste the text directly."
                ),
                ok=False,
            )

        content, truncated = self.cap_content(document.text)
        payload = {
            "content": content,
            "question": question,
            "isTruncated": truncated,
            "originalLength": len(document.text),
            "fileName": document.display_name,
        }
        instruction = (
            f"Answer the question using ONLY the content of {document.display_name} "
            "provided in the tool result above. If the answer is not in the "
            "document, say so plainly instead of guessing."
        )
        if truncated:
            instruction += (
                f" The document was truncated to {self.config.max_document_chars} of "
                f"{len(document.text)} characters; warn the user that later parts "
                "were not read."
            )
        return ToolResult(
            output=json.dumps(payload, ensure_ascii=False),
            data=payload,
            instruction=instruction,
        )

    def cap_content(self, text: str) -> tuple[str, bool]:
        limit = self.config.max_document_chars
        if len(text) <= limit:
            return text, False
        return text[:limit] + self.config.truncation_marker, True


def _stored_message(document: Document) -> str:
    pages = f", {document.page_count} page(s)" if document.page_count else ""
    return (
        f"**{document.display_name}** uploaded successfully.\n\n"
        f"- Document ID: `{document.id}`\n"
        f"- Words: {document.word_count}\n"
        f"- Characters: {document.char_count}{pages}\n\n"
        "You can now ask questions about this document."
    )


def _low_content_message(exc: EmptyOrLowContentDocument) -> str:
    if exc.is_empty:
        reason = "no extractable text was found"
    else:
        reason = f"only {exc.word_count} word(s) of text could be extracted"
    return (
        f"**{exc.display_name}** was not stored: {reason}. This usually means the "
        "file is a scanned or image-only document. Please run it through OCR or "
        "paste the text content directly."
    )


def _not_found_message(exc: DocumentNotFound) -> str:
    message = f'Document "{exc.key}" was not found.'
    if exc.known_names:
        listing = "\n".join(f"- {name}" for name in exc.known_names)
        message += f"\n\nAvailable documents:\n{listing}"
    else:
        message += " No documents have been uploaded yet; please upload one first."
    return message
