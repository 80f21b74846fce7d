"""Transient, lock-guarded store of uploaded documents."""

from __future__ import annotations

import logging
import re
import threading

from campus_assistant.config import StoreConfig
from campus_assistant.errors import DocumentNotFound, EmptyOrLowContentDocument
from campus_assistant.types import Document

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class DocumentStore:
    """Maps document ids and display-name aliases to extracted text.

    Both tables live behind one lock: a `put` updates id and alias together,
    and a `get` never observes one without the other. Lookups resolve by id
    first, then by alias, so an id that collides with another document's
    file name always wins.
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self.config = config or StoreConfig()
        self._lock = threading.Lock()
        self._by_id: dict[str, Document] = {}
        self._by_name: dict[str, str] = {}

    def put(
        self,
        doc_id: str,
        display_name: str,
        text: str,
        *,
        file_type: str = "text",
        page_count: int = 0,
    ) -> Document:
        """Insert or fully replace a document and its name alias.

        Re-uploading an id under a new name drops the alias of the old name.

        Raises:
            EmptyOrLowContentDocument: fewer than `min_tokens` tokens remain
                after whitespace collapse.
        """

        collapsed = _WHITESPACE.sub(" ", text).strip()
        word_count = len(collapsed.split()) if collapsed else 0
        if word_count < self.config.min_tokens:
            logger.warning(
                "Rejected low-content document %s (%s): %d words",
                doc_id,
                display_name,
                word_count,
            )
            raise EmptyOrLowContentDocument(display_name, word_count, self.config.min_tokens)

        document = Document(
            id=doc_id,
            display_name=display_name,
            text=text,
            word_count=word_count,
            char_count=len(text),
            file_type=file_type,
            page_count=page_count,
        )
        with self._lock:
            previous = self._by_id.get(doc_id)
            if (
                previous is not None
                and previous.display_name != display_name
                and self._by_name.get(previous.display_name) == doc_id
            ):
                del self._by_name[previous.display_name]
            self._by_id[doc_id] = document
            self._by_name[display_name] = doc_id

        logger.info(
            "Stored document %s as %s (%d words, %d chars)",
            doc_id,
            display_name,
            word_count,
            len(text),
        )
        return document

    def get(self, key: str) -> Document:
        """Resolve `key` as an id, then as a display name.

        Raises:
            DocumentNotFound: neither resolution matched; carries known names.
        """

        with self._lock:
            document = self._by_id.get(key)
            if document is None:
                alias_id = self._by_name.get(key)
                if alias_id is not None:
                    document = self._by_id.get(alias_id)
            if document is not None:
                return document
            known = sorted(self._by_name)
        raise DocumentNotFound(key, known)

    def list_names(self) -> list[str]:
        with self._lock:
            return sorted(self._by_name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            return key in self._by_id or key in self._by_name
