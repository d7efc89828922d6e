"""Database initialization and connection management."""
import os
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = os.environ.get(
    "EXAM_PLANNER_DB", str(Path.home() / ".exam_planner" / "planner.db")
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    full_name TEXT,
    target_exam TEXT DEFAULT 'JEE',
    daily_study_hours REAL DEFAULT 4,
    target_exam_date TEXT,
    current_streak INTEGER DEFAULT 0,
    overall_accuracy REAL DEFAULT 0,
    total_points INTEGER DEFAULT 0,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS topic_mastery (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES profiles(id),
    subject TEXT NOT NULL,
    chapter TEXT,
    topic TEXT NOT NULL,
    accuracy REAL DEFAULT 0,
    questions_attempted INTEGER DEFAULT 0,
    last_practiced TEXT,
    stuck_days INTEGER DEFAULT 0,
    UNIQUE(user_id, subject, chapter, topic)
);

CREATE TABLE IF NOT EXISTS question_attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES profiles(id),
    question_id TEXT,
    is_correct INTEGER,
    attempted_at TEXT
);

CREATE TABLE IF NOT EXISTS study_schedule (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    date TEXT NOT NULL,
    subject TEXT NOT NULL,
    chapter TEXT,
    topic TEXT NOT NULL,
    activity_type TEXT NOT NULL,
    allocated_minutes INTEGER NOT NULL,
    completed_minutes INTEGER DEFAULT 0,
    status TEXT DEFAULT 'pending',
    UNIQUE(user_id, date, subject, topic)
);

CREATE TABLE IF NOT EXISTS completed_tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    date TEXT NOT NULL,
    task_id TEXT NOT NULL,
    UNIQUE(user_id, date, task_id)
);

CREATE TABLE IF NOT EXISTS unlocked_achievements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    achievement_id TEXT NOT NULL,
    UNIQUE(user_id, achievement_id)
);

CREATE TABLE IF NOT EXISTS exam_config (
    exam_name TEXT PRIMARY KEY,
    exam_date TEXT NOT NULL
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
