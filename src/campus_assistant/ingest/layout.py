"""Reading-order text reconstruction from positioned PDF glyph runs."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import fitz  # PyMuPDF

from campus_assistant.config import ExtractionConfig
from campus_assistant.errors import ExtractionError
from campus_assistant.types import TextFragment

logger = logging.getLogger(__name__)


class LayoutTextExtractor:
    """Linearizes fragments into top-to-bottom, left-to-right text.

    Line grouping:
    1. Fragments are sorted by descending baseline `y`, ties broken by
       ascending `x`. The sort is stable, so identical coordinates keep
       their decode order.
    2. Walking the sorted run, a fragment whose `y` differs from the previous
       fragment's `y` by more than `line_tolerance` opens a new line.
    3. Each line is re-sorted by `x` and its strings joined with one space.

    Lines are newline-terminated within a page; pages are separated by a
    blank line.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()

    def group_lines(self, fragments: Iterable[TextFragment]) -> list[list[TextFragment]]:
        ordered = sorted(fragments, key=lambda frag: (-frag.y, frag.x))
        lines: list[list[TextFragment]] = []
        previous_y: float | None = None

        for fragment in ordered:
            if previous_y is None or abs(previous_y - fragment.y) > self.config.line_tolerance:
                lines.append([])
            lines[-1].append(fragment)
            previous_y = fragment.y

        return [sorted(line, key=lambda frag: frag.x) for line in lines]

    def linearize_page(self, fragments: Iterable[TextFragment]) -> str:
        lines: list[str] = []
        for line in self.group_lines(fragments):
            text = " ".join(frag.text for frag in line if frag.text).strip()
            lines.append(text)
        return "\n".join(lines)

    def linearize(self, pages: Sequence[Iterable[TextFragment]]) -> str:
        return "\n\n".join(self.linearize_page(page) for page in pages)

    def extract_pdf(self, data: bytes) -> tuple[str, int]:
        """Decode PDF bytes and return `(linearized_text, page_count)`.

        Raises:
            ExtractionError: the bytes are not a decodable PDF.
        """

        pages = read_pdf_fragments(data)
        text = self.linearize(pages)
        logger.info(
            "Extracted %d chars from %d PDF page(s)", len(text), len(pages)
        )
        return text, len(pages)


def read_pdf_fragments(data: bytes) -> list[list[TextFragment]]:
    """Decode a PDF into per-page fragments with PDF-space baselines.

    PyMuPDF reports span origins with y growing downward; they are flipped
    against the page height so that higher text has a larger `y`.
    """

    if not data:
        raise ExtractionError("Document is empty: no bytes to decode")

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise ExtractionError(f"Unable to decode PDF: {exc}") from exc

    with doc:
        if doc.needs_pass:
            raise ExtractionError("Unable to decode PDF: document is password protected")
        if not doc.is_pdf or doc.page_count == 0:
            raise ExtractionError("Unable to decode PDF: no pages found")

        try:
            return [_page_fragments(page) for page in doc]
        except (RuntimeError, ValueError) as exc:
            raise ExtractionError(f"Unable to read PDF pages: {exc}") from exc


def _page_fragments(page: fitz.Page) -> list[TextFragment]:
    height = page.rect.height
    fragments: list[TextFragment] = []
    layout = page.get_text("dict")
    for block in layout.get("blocks", []):
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text.strip():
                    continue
                origin_x, origin_y = span["origin"]
                fragments.append(TextFragment(text=text, x=origin_x, y=height - origin_y))
    return fragments
