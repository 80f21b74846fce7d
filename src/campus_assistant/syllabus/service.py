"""Syllabus lookups against the configured syllabus PDF."""

from __future__ import annotations

import logging
from pathlib import Path

from campus_assistant.errors import ExtractionError
from campus_assistant.ingest.layout import LayoutTextExtractor
from campus_assistant.syllabus.locator import SyllabusLocator
from campus_assistant.types import ToolResult

logger = logging.getLogger(__name__)


class SyllabusService:
    """Parses the syllabus PDF on each lookup and locates the requested unit.

    Decode and locator failures are returned as readable results; nothing
    here raises to the caller.
    """

    def __init__(
        self,
        pdf_path: str | Path,
        *,
        extractor: LayoutTextExtractor | None = None,
        locator: SyllabusLocator | None = None,
    ) -> None:
        self.pdf_path = Path(pdf_path)
        self.extractor = extractor or LayoutTextExtractor()
        self.locator = locator or SyllabusLocator()

    def lookup(self, subject: str, unit: str) -> ToolResult:
        if not self.pdf_path.exists():
            logger.error("Syllabus file not found at %s", self.pdf_path)
            return ToolResult(
                output=(
                    "**Syllabus unavailable:** the syllabus file is not installed on "
                    "the server. Please contact the administrator."
                ),
                ok=False,
            )

        try:
            text, _ = self.extractor.extract_pdf(self.pdf_path.read_bytes())
        except ExtractionError as exc:
            logger.error("Syllabus PDF could not be decoded: %s", exc)
            return ToolResult(
                output=(
                    f"**Error processing PDF:** {exc}\n\n"
                    "Please ensure the syllabus file is properly formatted."
                ),
                ok=False,
            )

        logger.info("Searching syllabus for %r unit %r", subject, unit)
        result = self.locator.locate(text, subject, unit)
        return ToolResult(
            output=result.render(),
            ok=result.found,
            data={
                "status": result.status.value,
                "subject": result.subject,
                "unit": result.unit,
                "topics": result.topics,
                "subject_pattern": result.subject_pattern,
                "unit_pattern": result.unit_pattern,
            },
        )
