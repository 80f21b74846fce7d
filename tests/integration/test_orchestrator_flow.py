import json

from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from campus_assistant.agent.orchestrator import TurnState

from conftest import QuotaError, b64, tool_call

POLICY = (
    "Library policy: students may borrow five books for fourteen days. Late returns "
    "cost two rupees per day and reference books never leave the reading room."
)


def _user(text: str) -> list[dict[str, str]]:
    return [{"role": "user", "content": text}]


def test_plain_answer_without_tools(make_container) -> None:
    container, llm = make_container([AIMessage(content="Hello! How can I help?")])

    reply = container.orchestrator.handle(_user("hi"))

    assert reply.content == "Hello! How can I help?"
    assert reply.state is TurnState.RESPONDING
    assert reply.to_message() == {"role": "assistant", "content": "Hello! How can I help?"}
    assert len(llm.calls) == 1


def test_attendance_is_returned_verbatim_with_one_model_call(make_container) -> None:
    container, llm = make_container(
        [tool_call("attendance-lookup", {"roll_number": "21CS001"})]
    )

    reply = container.orchestrator.handle(_user("What is the attendance for 21CS001?"))

    assert reply.content == "Your attendance is 87.5%."
    assert reply.tool_used == "attendance-lookup"
    assert reply.to_message()["tool_used"] == "attendance-lookup"
    assert len(llm.calls) == 1


def test_several_direct_lookups_are_joined(make_container) -> None:
    decision = AIMessage(
        content="",
        tool_calls=[
            {"name": "attendance-lookup", "args": {"roll_number": "21CS001"}, "id": "a"},
            {"name": "timetable-lookup", "args": {"year": 3, "branch": "MECH"}, "id": "b"},
        ],
    )
    container, llm = make_container([decision])

    reply = container.orchestrator.handle(_user("attendance 21CS001 and year 3 mech timetable"))

    first, second = reply.content.split("\n\n", 1)
    assert first == "Your attendance is 87.5%."
    assert second.startswith("Here is the timetable for year 3, MECH branch:")
    assert reply.tools_used == ["attendance-lookup", "timetable-lookup"]
    assert len(llm.calls) == 1


def test_reformat_request_goes_through_synthesis(make_container) -> None:
    table = "| Day | Slot | Subject |\n|---|---|---|"
    container, llm = make_container(
        [
            tool_call("timetable-lookup", {"year": 3, "branch": "CSE"}),
            AIMessage(content=table),
        ]
    )

    reply = container.orchestrator.handle(_user("Can you show my year 3 CSE timetable as a table?"))

    assert reply.content == table
    assert reply.tool_used == "timetable-lookup"
    assert len(llm.calls) == 2
    tool_messages = [m for m in llm.calls[1] if isinstance(m, ToolMessage)]
    assert "Compiler Design" in tool_messages[0].content


def test_upload_then_query_in_one_turn(make_container) -> None:
    decision = AIMessage(
        content="",
        tool_calls=[
            {
                "name": "document-upload",
                "args": {
                    "documentId": "doc-7",
                    "fileName": "library.txt",
                    "fileContent": b64(POLICY),
                    "fileType": "txt",
                },
                "id": "up",
            },
            {
                "name": "document-query",
                "args": {"documentId": "library.txt", "question": "How many books?"},
                "id": "q",
            },
        ],
    )
    container, llm = make_container([decision, AIMessage(content="You may borrow five books.")])

    reply = container.orchestrator.handle(_user("How many books can I borrow?"))

    assert reply.content == "You may borrow five books."
    assert reply.tools_used == ["document-upload", "document-query"]
    synthesis_input = llm.calls[1]
    tool_messages = [m for m in synthesis_input if isinstance(m, ToolMessage)]
    assert [m.tool_call_id for m in tool_messages] == ["up", "q"]
    payload = json.loads(tool_messages[1].content)
    assert payload["content"] == POLICY
    assert payload["isTruncated"] is False
    assert isinstance(synthesis_input[-1], HumanMessage)
    assert "ONLY" in synthesis_input[-1].content


def test_unknown_document_short_circuits(make_container) -> None:
    container, llm = make_container(
        [tool_call("document-query", {"documentId": "nope.pdf", "question": "summary?"})]
    )
    container.documents.upload(
        doc_id="d1", file_name="library.txt", file_content=b64(POLICY), file_type="txt"
    )

    reply = container.orchestrator.handle(_user("Summarize nope.pdf"))

    assert reply.content.startswith('Document "nope.pdf" was not found.')
    assert "- library.txt" in reply.content
    assert reply.tool_used == "document-query"
    assert len(llm.calls) == 1


def test_syllabus_lookup_adds_reproduce_instruction(make_container) -> None:
    container, llm = make_container(
        [
            tool_call("syllabus-lookup", {"subject": "Compiler Design", "unit": 2}),
            AIMessage(content="Unit 2 covers lexical analysis and parsing."),
        ]
    )

    reply = container.orchestrator.handle(_user("Compiler Design unit 2 syllabus please"))

    assert reply.content == "Unit 2 covers lexical analysis and parsing."
    synthesis_input = llm.calls[1]
    tool_message = next(m for m in synthesis_input if isinstance(m, ToolMessage))
    assert "Lexical analysis" in tool_message.content
    assert "Intermediate code" not in tool_message.content
    assert "reproduce it exactly" in synthesis_input[-1].content


def test_quota_on_decide_is_rate_limited(make_container) -> None:
    container, _ = make_container(
        [QuotaError("Rate limit reached for model. Please try again in 7m12.5s.")]
    )

    reply = container.orchestrator.handle(_user("hi"))

    assert reply.state is TurnState.RATE_LIMITED
    assert reply.status_code == 429
    assert "7 minute(s) 12 second(s)" in reply.content
    assert reply.tool_used is None


def test_quota_on_synthesis_keeps_tool_used(make_container) -> None:
    container, llm = make_container(
        [
            tool_call("syllabus-lookup", {"subject": "Computer Networks", "unit": "1"}),
            QuotaError("quota exceeded"),
        ]
    )

    reply = container.orchestrator.handle(_user("networks unit 1"))

    assert reply.state is TurnState.RATE_LIMITED
    assert reply.tool_used == "syllabus-lookup"
    assert "a few minutes" in reply.content
    assert len(llm.calls) == 2


def test_unknown_tool_becomes_tool_error_message(make_container) -> None:
    container, llm = make_container(
        [
            tool_call("launch-rockets", {"count": 3}),
            AIMessage(content="I can only help with campus questions."),
        ]
    )

    reply = container.orchestrator.handle(_user("launch the rockets"))

    assert reply.content == "I can only help with campus questions."
    tool_message = next(m for m in llm.calls[1] if isinstance(m, ToolMessage))
    assert "Unknown tool: launch-rockets" in tool_message.content


def test_invalid_arguments_are_reported_to_the_model(make_container) -> None:
    container, llm = make_container(
        [
            tool_call("timetable-lookup", {"year": 7, "branch": "CSE"}),
            AIMessage(content="Which year are you in (1-4)?"),
        ]
    )

    reply = container.orchestrator.handle(_user("timetable for year 7 cse"))

    assert reply.content == "Which year are you in (1-4)?"
    tool_message = next(m for m in llm.calls[1] if isinstance(m, ToolMessage))
    assert "Invalid arguments for timetable-lookup" in tool_message.content


def test_upstream_failure_maps_to_502(make_container) -> None:
    container, _ = make_container([RuntimeError("connection reset")])

    reply = container.orchestrator.handle(_user("hi"))

    assert reply.status_code == 502
    assert reply.state is TurnState.RESPONDING


def test_turn_is_traced(make_container) -> None:
    container, _ = make_container(
        [tool_call("attendance-lookup", {"roll_number": "21CS001"})]
    )

    reply = container.orchestrator.handle(_user("attendance 21CS001"))
    record = container.trace_store.get(reply.trace_id)

    assert record.question == "attendance 21CS001"
    assert record.final_state == "responding"
    assert record.tool_used == "attendance-lookup"
    assert [trace.name for trace in record.tool_traces] == ["attendance-lookup"]
    assert record.tool_traces[0].input_payload == {"roll_number": "21CS001"}
