"""Append-only conversation log shared with the model."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
)


class ConversationLog:
    """Ordered message history for one request.

    Messages can only be appended. `messages` hands out a copy, so callers
    cannot reorder or drop entries behind the log's back.
    """

    def __init__(self, messages: Iterable[BaseMessage] | None = None) -> None:
        self._messages: list[BaseMessage] = list(messages or [])

    @classmethod
    def from_history(
        cls, system_prompt: str, history: Iterable[Mapping[str, Any]]
    ) -> "ConversationLog":
        log = cls([SystemMessage(content=system_prompt)])
        for entry in history:
            log.append(to_message(entry))
        return log

    def append(self, message: BaseMessage) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> list[BaseMessage]:
        return list(self._messages)

    def latest_user_text(self) -> str:
        for message in reversed(self._messages):
            if isinstance(message, HumanMessage):
                return message_text(message)
        return ""

    def __len__(self) -> int:
        return len(self._messages)


def to_message(entry: Mapping[str, Any]) -> BaseMessage:
    role = str(entry.get("role", "user")).lower()
    content = entry.get("content") or ""
    if not isinstance(content, (str, list)):
        content = str(content)

    if role == "system":
        return SystemMessage(content=content)
    # Replayed assistant entries carry no tool calls, so earlier tool results
    # are kept as plain assistant context.
    if role in {"assistant", "ai", "function", "tool"}:
        return AIMessage(content=content)
    return HumanMessage(content=content)


def message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for item in content:
        if isinstance(item, dict) and "text" in item:
            parts.append(str(item["text"]))
        else:
            parts.append(str(item))
    return " ".join(parts).strip()
