"""Chat model gateway and upstream failure classification."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import openai
from langchain_core.messages import AIMessage, BaseMessage

from campus_assistant.agent.conversation import message_text
from campus_assistant.errors import QuotaExceeded, UpstreamError

logger = logging.getLogger(__name__)

_QUOTA_HINTS = ("rate limit", "rate_limit", "quota", "too many requests")
_RETRY_IN = re.compile(
    r"try again in\s+(?:(?P<h>\d+)h)?(?:(?P<m>\d+)m(?!s))?(?:(?P<s>[\d.]+)s)?(?:(?P<ms>[\d.]+)ms)?",
    re.IGNORECASE,
)


@dataclass(slots=True)
class RawToolCall:
    """A tool call as emitted by the model, before validation."""

    name: str
    args: dict[str, Any]
    call_id: str
    error: str | None = None


@dataclass(slots=True)
class ModelReply:
    """Either natural-language content or a list of tool calls."""

    message: AIMessage
    content: str
    tool_calls: list[RawToolCall] = field(default_factory=list)


class ModelGateway:
    """Wraps a LangChain chat model for the two calls of a turn.

    `decide` binds the tool catalog and may return tool calls; `synthesize`
    runs without tools over the history that now holds tool results. Any
    provider failure is re-raised as `QuotaExceeded` or `UpstreamError`.
    """

    def __init__(self, llm: Any, tools: Sequence[Any]) -> None:
        self.llm = llm
        self.tools = list(tools)
        self._tool_llm = llm.bind_tools(self.tools) if self.tools else llm

    def decide(self, messages: list[BaseMessage]) -> ModelReply:
        return self._call(self._tool_llm, messages, stage="decide")

    def synthesize(self, messages: list[BaseMessage]) -> ModelReply:
        return self._call(self.llm, messages, stage="synthesize")

    def _call(self, runnable: Any, messages: list[BaseMessage], *, stage: str) -> ModelReply:
        try:
            response = runnable.invoke(messages)
        except Exception as exc:
            raise classify_upstream_error(exc) from exc

        if not isinstance(response, AIMessage):
            response = AIMessage(content=str(getattr(response, "content", response)))

        calls = [
            RawToolCall(
                name=str(call.get("name", "")),
                args=dict(call.get("args") or {}),
                call_id=str(call.get("id") or ""),
            )
            for call in response.tool_calls
        ]
        calls.extend(
            RawToolCall(
                name=str(call.get("name") or ""),
                args={},
                call_id=str(call.get("id") or ""),
                error=str(call.get("error") or "Tool arguments could not be parsed."),
            )
            for call in response.invalid_tool_calls
        )
        logger.info("Model %s returned %d tool call(s)", stage, len(calls))
        return ModelReply(message=response, content=message_text(response), tool_calls=calls)


def classify_upstream_error(exc: BaseException) -> QuotaExceeded | UpstreamError:
    """Map a provider exception onto the assistant's error taxonomy."""

    text = str(exc)
    status = getattr(exc, "status_code", None)
    is_quota = (
        isinstance(exc, openai.RateLimitError)
        or status == 429
        or any(hint in text.lower() for hint in _QUOTA_HINTS)
    )
    if is_quota:
        retry_after = _retry_after_header(exc)
        if retry_after is None:
            retry_after = parse_retry_after(text)
        logger.warning("Model quota exhausted (retry after %s s)", retry_after)
        return QuotaExceeded(text or "Rate limit exceeded", retry_after)

    logger.error("Model call failed: %s", text, exc_info=exc)
    return UpstreamError(text or exc.__class__.__name__)


def parse_retry_after(text: str) -> float | None:
    """Parse waits like "try again in 7m12.5s" or "try again in 820ms"."""

    match = _RETRY_IN.search(text)
    if not match or not any(match.group(key) for key in ("h", "m", "s", "ms")):
        return None
    seconds = 0.0
    if match.group("h"):
        seconds += int(match.group("h")) * 3600
    if match.group("m"):
        seconds += int(match.group("m")) * 60
    if match.group("s"):
        seconds += float(match.group("s"))
    if match.group("ms"):
        seconds += float(match.group("ms")) / 1000.0
    return seconds


def _retry_after_header(exc: BaseException) -> float | None:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def format_wait(seconds: float | None) -> str:
    if seconds is None:
        return "a few minutes"
    if seconds < 60:
        return f"about {max(1, round(seconds))} seconds"
    minutes, secs = divmod(round(seconds), 60)
    if secs:
        return f"about {minutes} minute(s) {secs} second(s)"
    return f"about {minutes} minute(s)"
