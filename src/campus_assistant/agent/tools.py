"""Built-in tool implementations for the campus assistant."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from campus_assistant.agent.registry import ToolName, ToolRegistry, ToolSpec
from campus_assistant.ingest.pipeline import DocumentService
from campus_assistant.records.campus_db import CampusRecords
from campus_assistant.syllabus.service import SyllabusService
from campus_assistant.types import ToolResult


class AttendanceToolInput(BaseModel):
    roll_number: str = Field(min_length=1, description="The student's roll number.")

    @field_validator("roll_number", mode="before")
    @classmethod
    def _coerce_roll_number(cls, value: object) -> object:
        return str(value).strip() if isinstance(value, int) else value


class TimetableToolInput(BaseModel):
    year: int = Field(ge=1, le=4, description="The academic year (1, 2, 3 or 4).")
    branch: str = Field(
        min_length=1, description="The branch name, e.g. CSE, MECH, CIVIL, AIML."
    )


class SyllabusToolInput(BaseModel):
    subject: str = Field(min_length=1, description="The subject name, e.g. 'Compiler Design'.")
    unit: str = Field(min_length=1, description="The unit number, e.g. '1', '2'.")

    @field_validator("unit", mode="before")
    @classmethod
    def _coerce_unit(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value


class DocumentUploadToolInput(BaseModel):
    documentId: str = Field(min_length=1, description="Caller-assigned document id.")
    fileName: str = Field(min_length=1, description="Original file name.")
    fileContent: str = Field(description="Base64-encoded file bytes.")
    fileType: str = Field(min_length=1, description="One of pdf, txt, md.")


class DocumentQueryToolInput(BaseModel):
    documentId: str = Field(
        min_length=1, description="The document id or its uploaded file name."
    )
    question: str = Field(min_length=1, description="The user's question about the document.")


_SYLLABUS_INSTRUCTION = (
    "The syllabus content above was retrieved from the official syllabus. First "
    "reproduce it exactly as given, without rewording or dropping topics. Then "
    "add concise study tips for this unit: key points to focus on, practice "
    "advice and a revision strategy."
)


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    records: CampusRecords,
    syllabus: SyllabusService,
    documents: DocumentService,
) -> None:
    """Register the closed tool set used by the orchestrator.

    Tools:
    - `attendance-lookup` / `timetable-lookup`: college records via SQLite.
    - `syllabus-lookup`: unit content parsed from the syllabus PDF.
    - `document-upload` / `document-query`: the transient document store.
    """

    def _attendance(input_data: AttendanceToolInput) -> ToolResult:
        percentage = records.attendance(input_data.roll_number)
        if percentage is None:
            return ToolResult(
                output="Roll number not found. Please check and try again.", ok=False
            )
        return ToolResult(
            output=f"Your attendance is {percentage:g}%.",
            data={"roll_number": input_data.roll_number, "attendance": percentage},
        )

    def _timetable(input_data: TimetableToolInput) -> ToolResult:
        slots = records.timetable(input_data.year, input_data.branch)
        if not slots:
            message = (
                f"Timetable not found for year {input_data.year}, "
                f"branch {input_data.branch}."
            )
            alternatives = records.branches_for_year(input_data.year)
            if alternatives:
                message += " Available branches for this year: " + ", ".join(alternatives) + "."
            return ToolResult(output=message, ok=False)

        lines = [
            f"Here is the timetable for year {input_data.year}, "
            f"{input_data.branch} branch:",
            "",
        ]
        current_day = ""
        for slot in slots:
            if slot.day != current_day:
                lines.append(f"**{slot.day}:**")
                current_day = slot.day
            lines.append(f"  - {slot.time_slot} - {slot.subject}")
        return ToolResult(output="\n".join(lines), data={"slots": len(slots)})

    def _syllabus(input_data: SyllabusToolInput) -> ToolResult:
        result = syllabus.lookup(input_data.subject, input_data.unit)
        if result.ok:
            result.instruction = _SYLLABUS_INSTRUCTION
        return result

    def _upload(input_data: DocumentUploadToolInput) -> ToolResult:
        return documents.upload(
            doc_id=input_data.documentId,
            file_name=input_data.fileName,
            file_content=input_data.fileContent,
            file_type=input_data.fileType,
        )

    def _query(input_data: DocumentQueryToolInput) -> ToolResult:
        return documents.query(input_data.documentId, input_data.question)

    registry.register(
        ToolSpec(
            name=ToolName.ATTENDANCE_LOOKUP,
            description="Fetch student attendance based on roll number.",
            args_schema=AttendanceToolInput,
            handler=_attendance,
            direct_reply=True,
            tags=["records"],
        )
    )
    registry.register(
        ToolSpec(
            name=ToolName.TIMETABLE_LOOKUP,
            description="Fetch the weekly class timetable based on year and branch.",
            args_schema=TimetableToolInput,
            handler=_timetable,
            direct_reply=True,
            tags=["records"],
        )
    )
    registry.register(
        ToolSpec(
            name=ToolName.SYLLABUS_LOOKUP,
            description="Extract unit-wise syllabus content for a subject from the syllabus PDF.",
            args_schema=SyllabusToolInput,
            handler=_syllabus,
            tags=["syllabus", "pdf"],
        )
    )
    registry.register(
        ToolSpec(
            name=ToolName.DOCUMENT_UPLOAD,
            description="Store an uploaded PDF, text or markdown document for later questions.",
            args_schema=DocumentUploadToolInput,
            handler=_upload,
            tags=["documents"],
        )
    )
    registry.register(
        ToolSpec(
            name=ToolName.DOCUMENT_QUERY,
            description=(
                "Retrieve the content of an uploaded document, by id or file name, "
                "to answer a question about it."
            ),
            args_schema=DocumentQueryToolInput,
            handler=_query,
            tags=["documents"],
        )
    )
