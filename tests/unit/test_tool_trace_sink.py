from pydantic import BaseModel

from campus_assistant.agent.registry import ToolName, ToolRegistry, ToolSpec, redact_payload
from campus_assistant.types import ToolResult


class UploadInput(BaseModel):
    fileName: str
    fileContent: str


def _registry() -> ToolRegistry:
    registry = ToolRegistry()

    def _handler(data: UploadInput) -> ToolResult:
        return ToolResult(output=f"stored {data.fileName}", ok=True)

    registry.register(
        ToolSpec(
            name=ToolName.DOCUMENT_UPLOAD,
            description="store a document",
            args_schema=UploadInput,
            handler=_handler,
        )
    )
    return registry


def test_trace_sink_captures_latency_and_redacted_payload() -> None:
    registry = _registry()
    invocation = registry.parse(
        "document-upload", {"fileName": "a.txt", "fileContent": "QUJD"}, call_id="c1"
    )

    observed = []
    result = registry.dispatch(invocation, trace_sink=observed.append)

    assert result.output == "stored a.txt"
    assert len(observed) == 1
    assert observed[0].name == "document-upload"
    assert observed[0].input_payload == {"fileName": "a.txt", "fileContent": "<4 chars>"}
    assert observed[0].output_preview == "stored a.txt"
    assert observed[0].ok is True
    assert observed[0].latency_ms >= 0.0


def test_dispatch_without_sink_still_runs() -> None:
    result = _registry().execute("document-upload", {"fileName": "b.md", "fileContent": ""})

    assert result.output == "stored b.md"


def test_redact_payload_leaves_other_fields() -> None:
    assert redact_payload({"roll_number": "21CS001"}) == {"roll_number": "21CS001"}
