"""Spaced-repetition revision queue.

Forgetting risk is a heuristic decay curve, not a calibrated retention
model: risk grows linearly with days since practice, and higher accuracy
slows the growth (well-learned material fades more slowly).
"""
from exam_planner.analyzer import round_half_up
from exam_planner.models import RevisionItem, TopicInsight
from exam_planner.rules import (
    REVISION_DUE_DAYS, REVISION_MIN_ACCURACY, REVISION_MIN_DAYS, REVISION_OVERDUE_DAYS,
    REVISION_QUEUE_SIZE, REVISION_RETENTION_DAMPING, REVISION_RISK_SCALE,
)


def forgetting_risk(accuracy: int, days_since_practice: int) -> int:
    """Estimated retention loss, 0-100."""
    retention = accuracy / 100
    decay = days_since_practice * (1 - REVISION_RETENTION_DAMPING * retention) * REVISION_RISK_SCALE
    return max(0, min(100, round_half_up(decay)))


def revision_urgency(days_since_practice: int) -> str:
    if days_since_practice > REVISION_OVERDUE_DAYS:
        return "overdue"
    elif days_since_practice > REVISION_DUE_DAYS:
        return "due"
    return "upcoming"


def needs_revision(topic: TopicInsight) -> bool:
    return (
        topic.days_since_practice >= REVISION_MIN_DAYS
        and topic.accuracy > REVISION_MIN_ACCURACY
    )


def get_revision_due(topics, limit: int = REVISION_QUEUE_SIZE) -> list[RevisionItem]:
    """Topics most at risk of being forgotten, riskiest first."""
    items = [
        RevisionItem(
            subject=t.subject,
            chapter=t.chapter,
            topic=t.topic,
            accuracy=t.accuracy,
            days_since=t.days_since_practice,
            urgency=revision_urgency(t.days_since_practice),
            forgetting_risk=forgetting_risk(t.accuracy, t.days_since_practice),
        )
        for t in topics
        if needs_revision(t)
    ]
    items.sort(key=lambda item: item.forgetting_risk, reverse=True)
    return items[:limit]
