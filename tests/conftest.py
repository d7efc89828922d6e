from datetime import date, datetime, timedelta

import pytest

from exam_planner.analyzer import classify_status, score_priority
from exam_planner.models import MasteryRow, TopicInsight

# Monday; the 24th is a Saturday and the 25th a Sunday
MONDAY = date(2026, 10, 19)
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)
NOW = datetime(2026, 10, 19, 9, 30)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


def make_topic(topic="Kinematics", subject="Physics", accuracy=50, questions=10, days=5,
               chapter="Mechanics", stuck_days=0) -> TopicInsight:
    return TopicInsight(
        subject=subject,
        chapter=chapter,
        topic=topic,
        accuracy=accuracy,
        questions_attempted=questions,
        status=classify_status(accuracy, questions),
        days_since_practice=days,
        priority_score=score_priority(accuracy, days, questions),
        stuck_days=stuck_days,
    )


def make_row(topic="Kinematics", subject="Physics", accuracy=50, questions=10, days=5,
             chapter="Mechanics") -> MasteryRow:
    return MasteryRow(
        subject=subject,
        chapter=chapter,
        topic=topic,
        accuracy=accuracy,
        questions_attempted=questions,
        last_practiced=NOW - timedelta(days=days),
    )


@pytest.fixture
def mixed_topics():
    """A realistic spread of topics, most urgent first."""
    topics = [
        make_topic("Rotational Motion", accuracy=22, questions=8, days=12),
        make_topic("Organic Reactions", subject="Chemistry", chapter="Organic", accuracy=35, questions=12, days=6),
        make_topic("Integration", subject="Mathematics", chapter="Calculus", accuracy=45, questions=18, days=3),
        make_topic("Thermodynamics", chapter="Heat", accuracy=60, questions=14, days=9),
        make_topic("Chemical Bonding", subject="Chemistry", chapter="Inorganic", accuracy=68, questions=20, days=4),
        make_topic("Matrices", subject="Mathematics", chapter="Algebra", accuracy=80, questions=25, days=5),
        make_topic("Optics", chapter="Waves", accuracy=85, questions=10, days=1),
        make_topic("Probability", subject="Mathematics", chapter="Statistics", accuracy=95, questions=30, days=8),
    ]
    return sorted(topics, key=lambda t: t.priority_score, reverse=True)


SNAPSHOT = """\
user_id: aarav
profile:
  full_name: Aarav Sharma
  target_exam: JEE
  daily_study_hours: 4
  target_exam_date: "2027-05-24"
  current_streak: 6
  overall_accuracy: 58
total_questions: 60
topic_mastery:
  - {subject: Physics, chapter: Mechanics, topic: Friction, accuracy: 20, questions_attempted: 12, last_practiced: "2026-10-09T18:00:00"}
  - {subject: Chemistry, chapter: Organic, topic: Isomerism, accuracy: 40, questions_attempted: 15, last_practiced: "2026-10-13T18:00:00"}
  - {subject: Mathematics, chapter: Calculus, topic: Limits, accuracy: 62, questions_attempted: 20, last_practiced: "2026-10-15T18:00:00"}
  - {subject: Physics, chapter: Waves, topic: Optics, accuracy: 82, questions_attempted: 18, last_practiced: "2026-10-10T18:00:00"}
  - {subject: Mathematics, chapter: Algebra, topic: Vectors, accuracy: 93, questions_attempted: 25, last_practiced: "2026-10-17T18:00:00"}
"""


@pytest.fixture
def snapshot_file(tmp_path):
    """A YAML performance snapshot with enough data to plan from."""
    path = tmp_path / "snapshot.yaml"
    path.write_text(SNAPSHOT)
    return str(path)
