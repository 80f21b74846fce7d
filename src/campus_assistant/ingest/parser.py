"""Parsing interfaces and concrete parsers for uploaded documents."""

from __future__ import annotations

from abc import ABC, abstractmethod

from campus_assistant.errors import ExtractionError, UnsupportedFileType
from campus_assistant.ingest.layout import LayoutTextExtractor
from campus_assistant.types import ParsedDocument


class Parser(ABC):
    """Base parser interface used by the document service."""

    file_types: tuple[str, ...] = ()
    format_name: str = ""

    @abstractmethod
    def parse(self, data: bytes, *, doc_id: str, file_name: str) -> ParsedDocument:
        """Decode raw upload bytes into linearized text + metadata."""


class PdfParser(Parser):
    """Parser for PDF uploads, via positioned-fragment reconstruction."""

    file_types = ("pdf", "application/pdf")
    format_name = "pdf"

    def __init__(self, extractor: LayoutTextExtractor | None = None) -> None:
        self.extractor = extractor or LayoutTextExtractor()

    def parse(self, data: bytes, *, doc_id: str, file_name: str) -> ParsedDocument:
        text, page_count = self.extractor.extract_pdf(data)
        return ParsedDocument(
            doc_id=doc_id,
            file_name=file_name,
            text=text,
            metadata={"format": self.format_name, "page_count": page_count},
        )


class TextParser(Parser):
    """Parser for plain text uploads."""

    file_types = ("txt", "text", "plain-text", "text/plain")
    format_name = "text"

    def parse(self, data: bytes, *, doc_id: str, file_name: str) -> ParsedDocument:
        return ParsedDocument(
            doc_id=doc_id,
            file_name=file_name,
            text=_decode_utf8(data),
            metadata={"format": self.format_name, "page_count": 0},
        )


class MarkdownParser(Parser):
    """Parser for markdown uploads."""

    file_types = ("md", "markdown", "text/markdown")
    format_name = "markdown"

    def parse(self, data: bytes, *, doc_id: str, file_name: str) -> ParsedDocument:
        return ParsedDocument(
            doc_id=doc_id,
            file_name=file_name,
            text=_decode_utf8(data),
            metadata={"format": self.format_name, "page_count": 0},
        )


class ParserRegistry:
    """Maps a declared file type to its parser implementation."""

    def __init__(self, parsers: list[Parser] | None = None) -> None:
        self._parsers: dict[str, Parser] = {}
        for parser in parsers or [PdfParser(), TextParser(), MarkdownParser()]:
            self.register(parser)

    def register(self, parser: Parser) -> None:
        for file_type in parser.file_types:
            self._parsers[file_type.lower()] = parser

    def supported_types(self) -> list[str]:
        return sorted({parser.format_name for parser in self._parsers.values()})

    def resolve(self, file_type: str) -> Parser:
        parser = self._parsers.get(_normalize_file_type(file_type))
        if parser is None:
            raise UnsupportedFileType(file_type, self.supported_types())
        return parser

    def parse_bytes(
        self, data: bytes, *, file_type: str, doc_id: str, file_name: str
    ) -> ParsedDocument:
        return self.resolve(file_type).parse(data, doc_id=doc_id, file_name=file_name)


def _normalize_file_type(file_type: str) -> str:
    value = file_type.strip().lower()
    if "/" not in value:
        value = value.lstrip(".")
    return value


def _decode_utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExtractionError(f"File is not valid UTF-8 text: {exc}") from exc
