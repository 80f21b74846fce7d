"""Classification of the latest user turn."""

from __future__ import annotations

import re
from collections.abc import Iterable


class ReformatClassifier:
    """Flags turns that ask to restyle data already shown.

    Keywords match as whole words, so "timetable" does not count as "table",
    but "show my attendance" still counts as a reformat request.
    """

    def __init__(self, keywords: Iterable[str]) -> None:
        self.keywords = tuple(keyword.lower() for keyword in keywords if keyword)
        self._pattern = (
            re.compile(r"\b(?:" + "|".join(re.escape(k) for k in self.keywords) + r")\b")
            if self.keywords
            else None
        )

    def is_reformat_request(self, text: str) -> bool:
        if self._pattern is None:
            return False
        return self._pattern.search(text.lower()) is not None
