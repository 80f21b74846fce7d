"""SQLite-backed attendance and timetable records."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path

_DAY_ORDER = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS students ("
    "id TEXT PRIMARY KEY, name TEXT, attendance_percentage REAL NOT NULL)",
    "CREATE TABLE IF NOT EXISTS timetable ("
    "year INTEGER NOT NULL, branch TEXT NOT NULL, day TEXT NOT NULL, "
    "time_slot TEXT NOT NULL, subject TEXT NOT NULL)",
)


@dataclass(slots=True)
class TimetableSlot:
    day: str
    time_slot: str
    subject: str


class CampusRecords:
    """Parameterized lookups over the college records database."""

    def __init__(self, sqlite_path: str | Path) -> None:
        self.db_file = Path(sqlite_path)
        self.ensure_schema()

    def ensure_schema(self) -> None:
        with sqlite3.connect(self.db_file) as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()

    def attendance(self, roll_number: str) -> float | None:
        with sqlite3.connect(self.db_file) as conn:
            cur = conn.execute(
                "SELECT attendance_percentage FROM students WHERE id = ?",
                (roll_number,),
            )
            row = cur.fetchone()
        return float(row[0]) if row else None

    def timetable(self, year: int, branch: str) -> list[TimetableSlot]:
        with sqlite3.connect(self.db_file) as conn:
            cur = conn.execute(
                "SELECT day, time_slot, subject FROM timetable "
                "WHERE year = ? AND branch = ? COLLATE NOCASE",
                (year, branch),
            )
            rows = cur.fetchall()
        slots = [TimetableSlot(day=r[0], time_slot=r[1], subject=r[2]) for r in rows]
        return sorted(slots, key=lambda s: (_day_rank(s.day), s.time_slot))

    def branches_for_year(self, year: int) -> list[str]:
        with sqlite3.connect(self.db_file) as conn:
            cur = conn.execute(
                "SELECT DISTINCT branch FROM timetable WHERE year = ? ORDER BY branch",
                (year,),
            )
            return [row[0] for row in cur.fetchall()]


def _day_rank(day: str) -> int:
    try:
        return _DAY_ORDER.index(day.capitalize())
    except ValueError:
        return len(_DAY_ORDER)
