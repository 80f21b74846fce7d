"""Tool-calling turn protocol between the caller, the model and the tools."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from langchain_core.messages import HumanMessage, ToolMessage

from campus_assistant.agent.conversation import ConversationLog
from campus_assistant.agent.intent import ReformatClassifier
from campus_assistant.agent.model import ModelGateway, RawToolCall, format_wait
from campus_assistant.agent.registry import ToolName, ToolRegistry
from campus_assistant.config import OrchestratorConfig
from campus_assistant.errors import (
    InvalidToolArguments,
    QuotaExceeded,
    UnknownToolError,
    UpstreamError,
)
from campus_assistant.obs.tracing import Timer, TraceStore
from campus_assistant.types import ToolResult, ToolTrace

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = """
You are the college assistant. Help students with attendance, timetables,
syllabus units and questions about documents they upload.

Rules:
1) Use a tool whenever the answer depends on college records, the syllabus or an uploaded document.
2) Ask for missing tool inputs (roll number, year, branch, subject, unit) instead of guessing them.
3) For timetables, pass the year as an integer 1-4 and the branch as its short name (CSE, MECH, CIVIL, AIML).
4) Ground document answers strictly in the document content returned by `document-query`.
5) Never invent attendance figures, timetable slots or syllabus topics.

Formatting:
- Reply in well-formed markdown; tables and headings are welcome when they help.
""".strip()


class TurnState(str, Enum):
    DECIDING = "deciding"
    DISPATCHING = "dispatching"
    SYNTHESIZING = "synthesizing"
    RESPONDING = "responding"
    RATE_LIMITED = "rate_limited"


@dataclass(slots=True)
class ChatReply:
    """Terminal output of one turn."""

    content: str
    state: TurnState
    tools_used: list[str] = field(default_factory=list)
    status_code: int = 200
    trace_id: str | None = None
    retry_after_seconds: float | None = None

    @property
    def tool_used(self) -> str | None:
        return self.tools_used[0] if self.tools_used else None

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_used is not None:
            message["tool_used"] = self.tool_used
        return message


@dataclass(slots=True)
class _DispatchOutcome:
    name: str
    tool: ToolName | None
    result: ToolResult
    direct_reply: bool = False


class ToolOrchestrator:
    """Drives one request through Deciding -> Dispatching -> Synthesizing.

    Tool calls run strictly in the order the model returned them, and each
    result is appended to the log before the next call starts, so a
    `document-upload` is visible to a following `document-query` in the same
    turn. Some results end the turn without a second model call:
    - a `document-query` that resolved no content replies with its message;
    - attendance/timetable lookups reply verbatim unless the user asked to
      reformat earlier data.
    A quota signal from either model call ends the turn as `RATE_LIMITED`.
    """

    def __init__(
        self,
        *,
        gateway: ModelGateway,
        tool_registry: ToolRegistry,
        trace_store: TraceStore,
        config: OrchestratorConfig | None = None,
        system_prompt: str = _SYSTEM_PROMPT,
    ) -> None:
        self.gateway = gateway
        self.tool_registry = tool_registry
        self.trace_store = trace_store
        self.config = config or OrchestratorConfig()
        self.system_prompt = system_prompt
        self.classifier = ReformatClassifier(self.config.reformat_keywords)

    def handle(self, history: Sequence[Mapping[str, Any]]) -> ChatReply:
        """Run one full turn over the caller's message history."""

        log = ConversationLog.from_history(self.system_prompt, history)
        question = log.latest_user_text()
        traces: list[ToolTrace] = []

        with Timer() as timer:
            reply = self._run(log, traces)

        record = self.trace_store.create_record(
            question=question,
            answer=reply.content,
            final_state=reply.state.value,
            tool_used=reply.tool_used,
            tool_traces=traces,
            latency_ms=timer.elapsed_ms,
        )
        reply.trace_id = record.trace_id
        logger.info(
            "Turn %s finished in state %s (tools=%s, %.0f ms)",
            record.trace_id,
            reply.state.value,
            reply.tools_used,
            timer.elapsed_ms,
        )
        return reply

    def _run(self, log: ConversationLog, traces: list[ToolTrace]) -> ChatReply:
        tools_used: list[str] = []
        try:
            decision = self.gateway.decide(log.messages)
            if not decision.tool_calls:
                return ChatReply(content=decision.content, state=TurnState.RESPONDING)

            log.append(decision.message)
            outcomes: list[_DispatchOutcome] = []
            for call in decision.tool_calls:
                outcome = self._dispatch(call, traces)
                log.append(
                    ToolMessage(
                        content=outcome.result.output,
                        tool_call_id=call.call_id,
                        name=call.name,
                    )
                )
                outcomes.append(outcome)
                tools_used.append(outcome.name)

            terminal = self._short_circuit(outcomes, log.latest_user_text())
            if terminal is not None:
                return ChatReply(
                    content=terminal, state=TurnState.RESPONDING, tools_used=tools_used
                )

            for outcome in outcomes:
                if outcome.result.ok and outcome.result.instruction:
                    log.append(HumanMessage(content=outcome.result.instruction))

            final = self.gateway.synthesize(log.messages)
            return ChatReply(
                content=final.content, state=TurnState.RESPONDING, tools_used=tools_used
            )
        except QuotaExceeded as exc:
            return ChatReply(
                content=(
                    "**Rate limit reached.** The assistant's language model quota is "
                    "temporarily used up, so this request could not be completed. "
                    f"Please try again in {format_wait(exc.retry_after_seconds)}."
                ),
                state=TurnState.RATE_LIMITED,
                tools_used=tools_used,
                status_code=429,
                retry_after_seconds=exc.retry_after_seconds,
            )
        except UpstreamError:
            return ChatReply(
                content=(
                    "Sorry, the assistant could not reach its language model right now. "
                    "Please try again in a moment."
                ),
                state=TurnState.RESPONDING,
                tools_used=tools_used,
                status_code=502,
            )

    def _dispatch(self, call: RawToolCall, traces: list[ToolTrace]) -> _DispatchOutcome:
        if call.error is not None:
            logger.warning("Malformed tool call %s: %s", call.name, call.error)
            return _DispatchOutcome(
                name=call.name,
                tool=None,
                result=ToolResult(
                    output=f"Tool call {call.name or '<unnamed>'} was malformed: {call.error}",
                    ok=False,
                ),
            )

        try:
            invocation = self.tool_registry.parse(call.name, call.args, call_id=call.call_id)
        except (UnknownToolError, InvalidToolArguments) as exc:
            logger.warning("Rejected tool call %s: %s", call.name, exc)
            return _DispatchOutcome(
                name=call.name,
                tool=None,
                result=ToolResult(output=f"{exc}. Ask the user for valid input.", ok=False),
            )

        spec = self.tool_registry.get(invocation.name)
        result = self.tool_registry.dispatch(invocation, trace_sink=traces.append)
        return _DispatchOutcome(
            name=invocation.name.value,
            tool=invocation.name,
            result=result,
            direct_reply=spec.direct_reply,
        )

    def _short_circuit(self, outcomes: list[_DispatchOutcome], user_text: str) -> str | None:
        for outcome in outcomes:
            if outcome.tool is ToolName.DOCUMENT_QUERY and not outcome.result.ok:
                return outcome.result.output

        if all(outcome.direct_reply for outcome in outcomes):
            if not self.classifier.is_reformat_request(user_text):
                return "\n\n".join(outcome.result.output for outcome in outcomes)
            logger.info("Reformat request detected; routing tool output to synthesis")
        return None
