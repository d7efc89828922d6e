"""Topic analysis: raw mastery rows to ranked topic insights."""
import math
from datetime import datetime, timedelta

from exam_planner.models import MasteryRow, TopicInsight
from exam_planner.rules import (
    IMPROVING_ACCURACY, MASTERED_ACCURACY, MASTERED_MIN_QUESTIONS, NEVER_PRACTICED_DAYS,
    PRIORITY_ACCURACY_WEIGHT, PRIORITY_EXPOSURE_TARGET, PRIORITY_EXPOSURE_WEIGHT,
    PRIORITY_RECENCY_CAP_DAYS, PRIORITY_RECENCY_WEIGHT, STRONG_ACCURACY,
)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def classify_status(accuracy: float, questions_attempted: int) -> str:
    if accuracy >= MASTERED_ACCURACY and questions_attempted >= MASTERED_MIN_QUESTIONS:
        return "mastered"
    elif accuracy >= STRONG_ACCURACY:
        return "strong"
    elif accuracy >= IMPROVING_ACCURACY:
        return "improving"
    return "weak"


def score_priority(accuracy: float, days_since_practice: int, questions_attempted: int) -> int:
    """Urgency score: higher means study this topic sooner."""
    accuracy_part = (100 - accuracy) * PRIORITY_ACCURACY_WEIGHT
    recency_part = min(days_since_practice, PRIORITY_RECENCY_CAP_DAYS) * PRIORITY_RECENCY_WEIGHT
    exposure_part = max(0, PRIORITY_EXPOSURE_TARGET - questions_attempted) * PRIORITY_EXPOSURE_WEIGHT
    return round_half_up(accuracy_part + recency_part + exposure_part)


def days_since(last_practiced, now: datetime) -> int:
    if last_practiced is None:
        last_practiced = now - timedelta(days=NEVER_PRACTICED_DAYS)
    elif isinstance(last_practiced, str):
        last_practiced = datetime.fromisoformat(last_practiced)
    if last_practiced.tzinfo is not None and now.tzinfo is None:
        last_practiced = last_practiced.replace(tzinfo=None)
    elif last_practiced.tzinfo is None and now.tzinfo is not None:
        now = now.replace(tzinfo=None)
    return max(0, math.floor((now - last_practiced) / timedelta(days=1)))


def _as_row(row) -> MasteryRow:
    if isinstance(row, MasteryRow):
        return row
    return MasteryRow(
        subject=row.get("subject") or "Unknown",
        chapter=row.get("chapter") or "",
        topic=row.get("topic") or "",
        accuracy=row.get("accuracy") or 0,
        questions_attempted=row.get("questions_attempted") or 0,
        last_practiced=row.get("last_practiced"),
        stuck_days=row.get("stuck_days") or 0,
    )


def analyze_topic(row, now: datetime) -> TopicInsight:
    row = _as_row(row)
    days = days_since(row.last_practiced, now)
    return TopicInsight(
        subject=row.subject or "Unknown",
        chapter=row.chapter or "",
        topic=row.topic or "",
        accuracy=round_half_up(row.accuracy),
        questions_attempted=row.questions_attempted,
        status=classify_status(row.accuracy, row.questions_attempted),
        days_since_practice=days,
        priority_score=score_priority(row.accuracy, days, row.questions_attempted),
        stuck_days=row.stuck_days,
    )


def analyze_topics(rows, now: datetime = None) -> list[TopicInsight]:
    """Turn mastery rows (MasteryRow or mappings) into insights, most urgent first."""
    now = now or datetime.now()
    insights = [analyze_topic(row, now) for row in rows]
    return sorted(insights, key=lambda t: t.priority_score, reverse=True)
