import base64
import sqlite3
from pathlib import Path

import fitz
import pytest
from langchain_core.messages import AIMessage

from campus_assistant.api.main import AppContainer, build_container
from campus_assistant.config import Settings

SYLLABUS_LINES = [
    "Course Title: Computer Networks",
    "Unit 1: Network models, OSI layers, TCP/IP suite 6 Hours",
    "Unit 2: Data link layer, framing, error detection 7 Hours",
    "Course Outcomes",
    "Students will be able to design small networks",
    "Course Title: Compiler Design",
    "Unit 1: Introduction to compilers, phases of a compiler",
    "Unit 2: Lexical analysis, parsing, syntax directed translation",
    "Unit 3: Intermediate code generation, code optimization",
    "Text Books",
    "Compilers: Principles, Techniques and Tools",
]


class ScriptedLLM:
    """Chat model double that replays canned replies and records its inputs."""

    def __init__(self, replies: list[object]) -> None:
        self.replies = list(replies)
        self.calls: list[list[object]] = []
        self.bound_tools: list[object] | None = None

    def bind_tools(self, tools: list[object], **kwargs: object) -> "ScriptedLLM":
        self.bound_tools = list(tools)
        return self

    def invoke(self, messages: list[object]) -> AIMessage:
        self.calls.append(list(messages))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class QuotaError(Exception):
    status_code = 429


def tool_call(name: str, args: dict[str, object], call_id: str = "call_1") -> AIMessage:
    return AIMessage(content="", tool_calls=[{"name": name, "args": args, "id": call_id}])


def make_pdf(lines: list[str], *, start_y: float = 72.0, step: float = 18.0) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    for idx, line in enumerate(lines):
        page.insert_text((72, start_y + idx * step), line, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def b64(text: str | bytes) -> str:
    raw = text.encode("utf-8") if isinstance(text, str) else text
    return base64.b64encode(raw).decode("ascii")


def seed_records(db_path: Path) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS students ("
            "id TEXT PRIMARY KEY, name TEXT, attendance_percentage REAL NOT NULL)"
        )
        conn.execute(
            "CREATE TABLE IF NOT EXISTS timetable (year INTEGER NOT NULL, "
            "branch TEXT NOT NULL, day TEXT NOT NULL, time_slot TEXT NOT NULL, "
            "subject TEXT NOT NULL)"
        )
        conn.execute("INSERT INTO students VALUES ('21CS001', 'Asha', 87.5)")
        conn.executemany(
            "INSERT INTO timetable VALUES (?, ?, ?, ?, ?)",
            [
                (3, "CSE", "Tuesday", "10:00-11:00", "Compiler Design"),
                (3, "CSE", "Monday", "11:00-12:00", "Computer Networks"),
                (3, "CSE", "Monday", "09:00-10:00", "Operating Systems"),
                (3, "MECH", "Monday", "09:00-10:00", "Thermodynamics"),
            ],
        )
        conn.commit()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    db_path = tmp_path / "campus.db"
    seed_records(db_path)
    syllabus_path = tmp_path / "syllabus.pdf"
    syllabus_path.write_bytes(make_pdf(SYLLABUS_LINES))
    return Settings(
        campus_db_path=str(db_path),
        syllabus_pdf_path=str(syllabus_path),
    )


@pytest.fixture()
def make_container(settings: Settings):
    def _factory(replies: list[object]) -> tuple[AppContainer, ScriptedLLM]:
        llm = ScriptedLLM(replies)
        return build_container(settings, llm=llm), llm

    return _factory
