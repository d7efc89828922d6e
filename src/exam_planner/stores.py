"""Storage adapters the session controller talks to.

The planning engine never touches storage. The controller is handed three
collaborators: a performance source (profile, attempt count, mastery rows),
a completion cache (date -> completed task ids) and a schedule writer
(upserts of task state), plus an optional achievement ledger. Caches and
ledgers belong to one user. Each has an in-memory or sqlite implementation.
"""
import threading
from datetime import datetime
from typing import Optional, Protocol

from loguru import logger

from exam_planner.db import get_connection
from exam_planner.models import MasteryRow, Profile, ScheduleEntry
from exam_planner.rules import (
    DEFAULT_DAILY_HOURS, DEFAULT_EXAM_DATES, DEFAULT_TARGET_EXAM, EXAM_ALIASES,
)

PROFILE_FIELDS = (
    "full_name", "target_exam", "daily_study_hours", "target_exam_date",
    "current_streak", "overall_accuracy", "total_points", "created_at",
)


class PerformanceSource(Protocol):
    def fetch_profile(self, user_id: str) -> Profile: ...

    def count_question_attempts(self, user_id: str) -> int: ...

    def fetch_topic_mastery(self, user_id: str) -> list[MasteryRow]: ...

    def update_profile(self, user_id: str, **fields) -> None: ...

    def exam_date_for(self, target_exam: str) -> Optional[str]: ...


class CompletionCache(Protocol):
    def get(self, date_str: str) -> set[str]: ...

    def save(self, date_str: str, task_ids) -> None: ...

    def clear(self, date_str: str) -> None: ...


class ScheduleWriter(Protocol):
    def upsert(self, entry: ScheduleEntry) -> None: ...


class AchievementLedger(Protocol):
    def get(self) -> set[str]: ...

    def save(self, achievement_ids) -> None: ...


def canonical_exam(target_exam: str) -> str:
    if not target_exam:
        return DEFAULT_TARGET_EXAM
    if target_exam.startswith("Foundation"):
        return "Foundation"
    return EXAM_ALIASES.get(target_exam, target_exam)


def default_exam_date(target_exam: str) -> str:
    """Built-in exam date, falling back to the default exam's date."""
    exam = canonical_exam(target_exam)
    return DEFAULT_EXAM_DATES.get(exam, DEFAULT_EXAM_DATES[DEFAULT_TARGET_EXAM])


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class MemoryCompletionCache:
    """Process-local completion cache. Nothing survives a restart."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_date: dict[str, frozenset] = {}

    def get(self, date_str: str) -> set[str]:
        with self._lock:
            return set(self._by_date.get(date_str, ()))

    def save(self, date_str: str, task_ids) -> None:
        with self._lock:
            self._by_date[date_str] = frozenset(task_ids)

    def clear(self, date_str: str) -> None:
        with self._lock:
            self._by_date.pop(date_str, None)


class SqliteCompletionCache:
    def __init__(self, db_path: str, user_id: str):
        self.db_path = db_path
        self.user_id = user_id

    def get(self, date_str: str) -> set[str]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            "SELECT task_id FROM completed_tasks WHERE user_id = ? AND date = ?",
            (self.user_id, date_str),
        ).fetchall()
        conn.close()
        return {row["task_id"] for row in rows}

    def save(self, date_str: str, task_ids) -> None:
        conn = get_connection(self.db_path)
        conn.execute(
            "DELETE FROM completed_tasks WHERE user_id = ? AND date = ?",
            (self.user_id, date_str),
        )
        conn.executemany(
            "INSERT OR IGNORE INTO completed_tasks (user_id, date, task_id) VALUES (?, ?, ?)",
            [(self.user_id, date_str, task_id) for task_id in sorted(task_ids)],
        )
        conn.commit()
        conn.close()

    def clear(self, date_str: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute(
            "DELETE FROM completed_tasks WHERE user_id = ? AND date = ?",
            (self.user_id, date_str),
        )
        conn.commit()
        conn.close()


class MemoryAchievementLedger:
    def __init__(self):
        self._lock = threading.Lock()
        self._ids = frozenset()

    def get(self) -> set[str]:
        with self._lock:
            return set(self._ids)

    def save(self, achievement_ids) -> None:
        with self._lock:
            self._ids = frozenset(achievement_ids)


class SqliteAchievementLedger:
    def __init__(self, db_path: str, user_id: str):
        self.db_path = db_path
        self.user_id = user_id

    def get(self) -> set[str]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            "SELECT achievement_id FROM unlocked_achievements WHERE user_id = ?",
            (self.user_id,),
        ).fetchall()
        conn.close()
        return {row["achievement_id"] for row in rows}

    def save(self, achievement_ids) -> None:
        conn = get_connection(self.db_path)
        conn.executemany(
            "INSERT OR IGNORE INTO unlocked_achievements (user_id, achievement_id) VALUES (?, ?)",
            [(self.user_id, a) for a in sorted(achievement_ids)],
        )
        conn.commit()
        conn.close()


class SqlitePerformanceStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def fetch_profile(self, user_id: str) -> Profile:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
        conn.close()
        if row is None:
            return Profile()
        return Profile(
            full_name=row["full_name"],
            target_exam=row["target_exam"] or DEFAULT_TARGET_EXAM,
            daily_study_hours=row["daily_study_hours"] or DEFAULT_DAILY_HOURS,
            target_exam_date=row["target_exam_date"],
            current_streak=row["current_streak"] or 0,
            overall_accuracy=row["overall_accuracy"] or 0.0,
            total_points=row["total_points"] or 0,
            created_at=row["created_at"],
        )

    def count_question_attempts(self, user_id: str) -> int:
        conn = get_connection(self.db_path)
        count = conn.execute(
            "SELECT COUNT(*) FROM question_attempts WHERE user_id = ?", (user_id,)
        ).fetchone()[0]
        conn.close()
        return count

    def fetch_topic_mastery(self, user_id: str) -> list[MasteryRow]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            "SELECT * FROM topic_mastery WHERE user_id = ?", (user_id,)
        ).fetchall()
        conn.close()
        return [
            MasteryRow(
                subject=row["subject"] or "Unknown",
                chapter=row["chapter"] or "",
                topic=row["topic"] or "",
                accuracy=row["accuracy"] or 0,
                questions_attempted=row["questions_attempted"] or 0,
                last_practiced=_parse_timestamp(row["last_practiced"]),
                stuck_days=row["stuck_days"] or 0,
            )
            for row in rows
        ]

    def update_profile(self, user_id: str, **fields) -> None:
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise KeyError(f"Unknown profile fields: {sorted(unknown)}")
        conn = get_connection(self.db_path)
        conn.execute("INSERT OR IGNORE INTO profiles (id) VALUES (?)", (user_id,))
        for column, value in fields.items():
            conn.execute(f"UPDATE profiles SET {column} = ? WHERE id = ?", (value, user_id))
        conn.commit()
        conn.close()

    def exam_date_for(self, target_exam: str) -> Optional[str]:
        conn = get_connection(self.db_path)
        row = conn.execute(
            "SELECT exam_date FROM exam_config WHERE exam_name = ?",
            (canonical_exam(target_exam),),
        ).fetchone()
        conn.close()
        return row["exam_date"] if row else None

    def set_exam_date(self, exam_name: str, exam_date: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute(
            "INSERT INTO exam_config (exam_name, exam_date) VALUES (?, ?) "
            "ON CONFLICT(exam_name) DO UPDATE SET exam_date=?",
            (exam_name, exam_date, exam_date),
        )
        conn.commit()
        conn.close()


class SqliteScheduleWriter:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, entry: ScheduleEntry) -> None:
        conn = get_connection(self.db_path)
        conn.execute(
            """INSERT INTO study_schedule
            (user_id, date, subject, chapter, topic, activity_type,
             allocated_minutes, completed_minutes, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, date, subject, topic) DO UPDATE SET
                chapter=excluded.chapter,
                activity_type=excluded.activity_type,
                allocated_minutes=excluded.allocated_minutes,
                completed_minutes=excluded.completed_minutes,
                status=excluded.status""",
            (entry.user_id, entry.date, entry.subject, entry.chapter, entry.topic,
             entry.activity_type, entry.allocated_minutes, entry.completed_minutes,
             entry.status),
        )
        conn.commit()
        conn.close()
        logger.debug(f"Saved {entry.status} for {entry.subject}/{entry.topic} on {entry.date}")


def get_schedule(db_path: str, user_id: str, date_str: str) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM study_schedule WHERE user_id = ? AND date = ? ORDER BY id",
        (user_id, date_str),
    ).fetchall()
    conn.close()
    return [dict(row) for row in rows]
