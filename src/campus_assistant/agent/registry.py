"""Closed tool set and registry built on Pydantic v2 models."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from time import perf_counter
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from campus_assistant.errors import InvalidToolArguments, UnknownToolError
from campus_assistant.types import ToolResult, ToolTrace

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    """The fixed set of tools the model may invoke."""

    ATTENDANCE_LOOKUP = "attendance-lookup"
    TIMETABLE_LOOKUP = "timetable-lookup"
    SYLLABUS_LOOKUP = "syllabus-lookup"
    DOCUMENT_UPLOAD = "document-upload"
    DOCUMENT_QUERY = "document-query"

    @classmethod
    def parse(cls, name: str) -> "ToolName":
        try:
            return cls(name)
        except ValueError as exc:
            raise UnknownToolError(name) from exc


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: ToolName
    description: str
    args_schema: type[BaseModel]
    handler: Callable[[Any], ToolResult]
    direct_reply: bool = False
    tags: list[str] = Field(default_factory=list)

    def validate_arguments(self, payload: dict[str, Any]) -> BaseModel:
        try:
            return self.args_schema.model_validate(payload)
        except ValidationError as exc:
            detail = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in exc.errors()
            )
            raise InvalidToolArguments(self.name.value, detail) from exc


@dataclass(slots=True)
class ToolInvocation:
    """One validated request from the model to run a tool."""

    name: ToolName
    arguments: BaseModel
    call_id: str = ""

    @property
    def payload(self) -> dict[str, Any]:
        return self.arguments.model_dump()


class ToolRegistry:
    """Stores tool specs, validates invocations and exports LangChain tools."""

    def __init__(self) -> None:
        self._tools: dict[ToolName, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name.value}")
        self._tools[spec.name] = spec

    def get(self, name: ToolName) -> ToolSpec:
        spec = self._tools.get(name)
        if spec is None:
            raise UnknownToolError(name.value)
        return spec

    def parse(self, name: str, payload: dict[str, Any], *, call_id: str = "") -> ToolInvocation:
        """Turn a raw model tool call into a validated invocation.

        Raises:
            UnknownToolError: the name is outside the registered set.
            InvalidToolArguments: the payload fails the tool's schema.
        """

        spec = self.get(ToolName.parse(name))
        arguments = spec.validate_arguments(payload)
        return ToolInvocation(name=spec.name, arguments=arguments, call_id=call_id)

    def dispatch(
        self,
        invocation: ToolInvocation,
        *,
        trace_sink: Callable[[ToolTrace], None] | None = None,
    ) -> ToolResult:
        """Run a validated invocation, handing its trace to `trace_sink`."""
        return self._execute_spec(self.get(invocation.name), invocation, trace_sink)

    def execute(self, name: str, payload: dict[str, Any]) -> ToolResult:
        return self.dispatch(self.parse(name, payload))

    def as_langchain_tools(self) -> list[StructuredTool]:
        tools: list[StructuredTool] = []
        for spec in self._tools.values():
            tools.append(
                StructuredTool.from_function(
                    name=spec.name.value,
                    description=spec.description,
                    args_schema=spec.args_schema,
                    func=self._build_function(spec),
                )
            )
        return tools

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def _build_function(self, spec: ToolSpec) -> Callable[..., str]:
        def _callable(**kwargs: Any) -> str:
            invocation = ToolInvocation(
                name=spec.name, arguments=spec.validate_arguments(kwargs)
            )
            return self._execute_spec(spec, invocation).output

        return _callable

    def _execute_spec(
        self,
        spec: ToolSpec,
        invocation: ToolInvocation,
        trace_sink: Callable[[ToolTrace], None] | None = None,
    ) -> ToolResult:
        start = perf_counter()
        result = spec.handler(invocation.arguments)
        latency_ms = (perf_counter() - start) * 1000.0
        logger.info(
            "Tool %s finished in %.1f ms (ok=%s)", spec.name.value, latency_ms, result.ok
        )

        if trace_sink is not None:
            trace_sink(
                ToolTrace(
                    name=spec.name.value,
                    input_payload=redact_payload(invocation.payload),
                    output_preview=result.output[:320],
                    latency_ms=latency_ms,
                    ok=result.ok,
                )
            )
        return result


def redact_payload(payload: dict[str, Any]) -> dict[str, Any]:
    # Upload bodies are reduced to their length.
    return {
        key: (f"<{len(value)} chars>" if key == "fileContent" and isinstance(value, str) else value)
        for key, value in payload.items()
    }
