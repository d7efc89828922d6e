"""Import a performance snapshot from a JSON or YAML file into the database."""
import json
from datetime import date, datetime
from pathlib import Path

import yaml
from loguru import logger

from exam_planner.db import get_connection
from exam_planner.stores import PROFILE_FIELDS


def read_snapshot_file(file_path: str) -> dict:
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        data = json.loads(path.read_text())
    elif suffix in (".yaml", ".yml"):
        data = yaml.safe_load(path.read_text())
    else:
        raise ValueError(f"Unsupported snapshot format: {suffix or path.name}")
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} does not contain a snapshot mapping")
    return data


def _timestamp(value):
    # YAML parses bare dates and datetimes into objects
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def import_snapshot(db_path: str, file_path: str, user_id: str = None) -> dict:
    """Replace a user's profile, mastery rows and attempts with the file's contents."""
    data = read_snapshot_file(file_path)
    user_id = user_id or data.get("user_id") or "default"
    profile = {k: _timestamp(v) for k, v in (data.get("profile") or {}).items() if k in PROFILE_FIELDS}
    mastery = data.get("topic_mastery") or []
    attempts = data.get("question_attempts")
    if attempts is None:
        attempts = [{} for _ in range(int(data.get("total_questions") or 0))]

    conn = get_connection(db_path)
    conn.execute("INSERT OR IGNORE INTO profiles (id) VALUES (?)", (user_id,))
    for column, value in profile.items():
        conn.execute(f"UPDATE profiles SET {column} = ? WHERE id = ?", (value, user_id))
    conn.execute("DELETE FROM topic_mastery WHERE user_id = ?", (user_id,))
    conn.executemany(
        """INSERT INTO topic_mastery
        (user_id, subject, chapter, topic, accuracy, questions_attempted, last_practiced, stuck_days)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        [
            (user_id, row.get("subject") or "Unknown", row.get("chapter") or "",
             row.get("topic") or "", row.get("accuracy") or 0,
             row.get("questions_attempted") or 0, _timestamp(row.get("last_practiced")),
             row.get("stuck_days") or 0)
            for row in mastery
        ],
    )
    conn.execute("DELETE FROM question_attempts WHERE user_id = ?", (user_id,))
    conn.executemany(
        "INSERT INTO question_attempts (user_id, question_id, is_correct, attempted_at) VALUES (?, ?, ?, ?)",
        [
            (user_id, a.get("question_id"), a.get("is_correct"), _timestamp(a.get("attempted_at")))
            for a in attempts
        ],
    )
    for exam_name, exam_date in (data.get("exam_dates") or {}).items():
        conn.execute(
            "INSERT INTO exam_config (exam_name, exam_date) VALUES (?, ?) "
            "ON CONFLICT(exam_name) DO UPDATE SET exam_date=excluded.exam_date",
            (exam_name, _timestamp(exam_date)),
        )
    conn.commit()
    conn.close()
    logger.info(f"Imported {len(mastery)} topics and {len(attempts)} attempts for {user_id}")
    return {
        "filename": Path(file_path).name,
        "user_id": user_id,
        "topics": len(mastery),
        "attempts": len(attempts),
    }
