"""Cascading subject/unit search over linearized syllabus text."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from campus_assistant.config import LocatorConfig

logger = logging.getLogger(__name__)

_ROMAN_NUMERALS = {
    "1": "I",
    "2": "II",
    "3": "III",
    "4": "IV",
    "5": "V",
    "6": "VI",
    "7": "VII",
    "8": "VIII",
}

_COURSE_TITLE = re.compile(r"Course\s+Title\s*:?", re.IGNORECASE)
_SECTION_END = r"\bCourse\s+Outcomes|\bText\s+Books?\b|\bReferences?\b"
_HOURS = re.compile(r"(\d+)\s*Hours?\b", re.IGNORECASE)


class LocatorStatus(str, Enum):
    FOUND = "found"
    SUBJECT_NOT_FOUND = "subject_not_found"
    UNIT_NOT_FOUND = "unit_not_found"


@dataclass(slots=True)
class UnitLookup:
    """Result of a subject/unit search. Not-found outcomes are values."""

    status: LocatorStatus
    subject: str
    unit: str
    content: str = ""
    topics: list[str] = field(default_factory=list)
    hours: str | None = None
    subject_pattern: str | None = None
    unit_pattern: str | None = None

    @property
    def found(self) -> bool:
        return self.status is LocatorStatus.FOUND

    def render(self) -> str:
        """Markdown rendering shown to the user (or forwarded to the model)."""

        if self.status is LocatorStatus.SUBJECT_NOT_FOUND:
            return (
                f'**Subject "{self.subject}" not found** in the syllabus.\n\n'
                "**Tip:** Check the exact course title as printed in the syllabus "
                "and try again."
            )
        if self.status is LocatorStatus.UNIT_NOT_FOUND:
            return (
                f"**Unit {self.unit} not found** for {self.subject}.\n\n"
                "**Available units:** usually 1-6. Please verify the unit number."
            )

        if self.topics:
            body = "**Topics Covered:**\n\n" + "\n".join(
                f"{idx}. {topic}" for idx, topic in enumerate(self.topics, start=1)
            )
        else:
            body = self.content
        duration = f"\n\n**Duration:** {self.hours} Hours" if self.hours else ""
        return f"# {self.subject}\n## Unit {self.unit}\n\n{body}{duration}"


class SyllabusLocator:
    """Finds one unit of one subject inside linearized syllabus text.

    Subject anchor, first match wins:
    1. `Course Title: <subject>` label.
    2. The raw subject string anywhere.
    3. The subject with flexible whitespace between its words.
    4. Normalized line scan (lowercase, no punctuation, collapsed spaces).

    The unit search is limited to a window after the anchor that stops at the
    next course-title label, so a unit cannot be read out of a neighbouring
    subject.
    """

    def __init__(self, config: LocatorConfig | None = None) -> None:
        self.config = config or LocatorConfig()

    def locate(self, text: str, subject: str, unit: str) -> UnitLookup:
        subject = subject.strip()
        unit = unit.strip()

        anchor, subject_pattern = self.find_subject(text, subject)
        if anchor is None:
            logger.info("Subject %r not found", subject)
            return UnitLookup(LocatorStatus.SUBJECT_NOT_FOUND, subject, unit)

        window = self.subject_window(text, anchor)
        raw, unit_pattern = self.find_unit(window, unit)
        if raw is None:
            logger.info("Unit %r not found for subject %r", unit, subject)
            return UnitLookup(
                LocatorStatus.UNIT_NOT_FOUND,
                subject,
                unit,
                subject_pattern=subject_pattern,
            )

        content = self.clean(raw)
        hours_match = _HOURS.search(raw)
        return UnitLookup(
            status=LocatorStatus.FOUND,
            subject=subject,
            unit=unit,
            content=content,
            topics=self.split_topics(content),
            hours=hours_match.group(1) if hours_match else None,
            subject_pattern=subject_pattern,
            unit_pattern=unit_pattern,
        )

    def find_subject(self, text: str, subject: str) -> tuple[int | None, str | None]:
        if not subject:
            return None, None

        escaped = re.escape(subject)
        flexible = r"\s+".join(re.escape(word) for word in subject.split())
        patterns = [
            ("course_title", rf"Course\s+Title\s*:?\s*{escaped}"),
            ("raw", escaped),
            ("flexible_whitespace", flexible),
        ]
        for name, pattern in patterns:
            match = re.search(pattern, text, flags=re.IGNORECASE)
            if match:
                return match.start(), name

        target = normalize_subject(subject)
        if not target:
            return None, None
        offset = 0
        for line in text.split("\n"):
            if target in normalize_subject(line):
                return offset, "normalized_line"
            offset += len(line) + 1
        return None, None

    def subject_window(self, text: str, anchor: int) -> str:
        after = text[anchor:]
        skip = self.config.title_skip_chars
        limit = self.config.max_window_chars
        boundary = _COURSE_TITLE.search(after, skip, limit)
        if boundary is not None:
            return after[: boundary.start()]
        return after[:limit]

    def find_unit(self, window: str, unit: str) -> tuple[str | None, str | None]:
        if not unit:
            return None, None

        escaped = re.escape(unit)
        roman = re.escape(to_roman(unit))
        next_labeled = rf"Unit[\s-]*(?:\d+|[IVX]+)\s*:"
        next_any = rf"Unit[\s-]*(?:\d+|[IVX]+)\b"
        patterns = [
            (
                "labeled",
                rf"Unit[\s-]*{escaped}\s*:(.+?)(?={next_labeled}|{_SECTION_END}|$)",
            ),
            (
                "unlabeled",
                rf"UNIT[\s-]*{escaped}\b(.+?)(?={next_any}|{_SECTION_END}|$)",
            ),
            (
                "roman",
                rf"Unit[\s-]*{roman}\b\s*:?(.+?)(?={next_any}|{_SECTION_END}|$)",
            ),
        ]
        for name, pattern in patterns:
            match = re.search(pattern, window, flags=re.IGNORECASE | re.DOTALL)
            if match and match.group(1).strip():
                return match.group(1), name
        return None, None

    def clean(self, raw: str) -> str:
        cleaned = re.sub(r"\s+", " ", raw.strip())
        cleaned = re.sub(r"(\d+)\s+Hours?\b", r"**\1 Hours**", cleaned, flags=re.IGNORECASE)
        cleaned = re.sub(r"^\s*[:;-]\s*", "", cleaned, flags=re.MULTILINE)
        return cleaned[: self.config.max_content_chars]

    def split_topics(self, content: str) -> list[str]:
        clauses = [
            part.strip()
            for part in re.split(r"[,;]", content)
            if len(part.strip()) > self.config.min_topic_chars
        ]
        return clauses if len(clauses) > 1 else []


def normalize_subject(value: str) -> str:
    value = re.sub(r"[^\w\s]", "", value.lower())
    return re.sub(r"\s+", " ", value).strip()


def to_roman(unit: str) -> str:
    return _ROMAN_NUMERALS.get(unit.strip(), unit.strip())
