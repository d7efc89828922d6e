"""Daily plan generation.

The day of the week picks the policy: Sunday is a rest day with optional
light revision, Saturday is a mock-test day, every other day splits the
budget into a morning study block, an afternoon practice block and an
evening revision block.
"""
import re
from datetime import date

from exam_planner.allocation import split_minutes
from exam_planner.analyzer import round_half_up
from exam_planner.models import DayPlan, PlannerTask, TimeAllocation, TopicInsight
from exam_planner.rules import (
    AFTERNOON_MAX_TASKS, AFTERNOON_TASK_CAP, CRITICAL_STALE_DAYS, DAY_NAMES, DAY_SHORTS,
    EVENING_EXTRA_CAP, EVENING_EXTRA_THRESHOLD, EVENING_MAX_TASKS, EVENING_MIN_ACCURACY,
    EVENING_MIN_DAYS, EVENING_TASK_CAP, FADING_MEMORY_DAYS, FALLBACK_SUBJECT,
    LOW_ACCURACY_REASON, MIN_QUESTIONS_TARGET, MINUTES_PER_QUESTION, MOCK_PRACTICE_MAX_TASKS,
    MOCK_PRACTICE_SHARE, MOCK_PRACTICE_TASK_CAP, MOCK_REVISION_MAX_TASKS, MOCK_REVISION_MIN_DAYS,
    MOCK_REVISION_TASK_CAP, MOCK_TEST_CHAPTER, MOCK_TEST_ID_TOPIC, MOCK_TEST_SHARE,
    MOCK_TEST_TOPIC, MOCK_TEST_WEEKDAY, MORNING_EXTRA_CAP, MORNING_EXTRA_THRESHOLD,
    MORNING_IMPROVING_CAP, MORNING_MAX_TASKS, MORNING_WEAK_CAP, REST_DAY_MAX_TASKS,
    REST_DAY_TASK_MINUTES, REST_WEEKDAY,
)


def make_task_id(date_str: str, subject: str, topic: str, task_type: str) -> str:
    """Stable id: the same date, topic and type always give the same id."""
    return re.sub(r"\s+", "_", f"{date_str}::{subject}::{topic}::{task_type}").lower()


def questions_for_minutes(minutes: int) -> int:
    return max(MIN_QUESTIONS_TARGET, round_half_up(minutes / MINUTES_PER_QUESTION))


def task_priority(topic: TopicInsight) -> str:
    if topic.status == "weak" and topic.days_since_practice > CRITICAL_STALE_DAYS:
        return "critical"
    elif topic.status == "weak":
        return "high"
    elif topic.status == "improving":
        return "medium"
    return "low"


def task_reason(topic: TopicInsight, task_type: str) -> str:
    if task_type == "revision":
        if topic.days_since_practice > FADING_MEMORY_DAYS:
            return f"Last practiced {topic.days_since_practice} days ago — memory fading"
        return f"Quick revision to reinforce ({topic.accuracy}% accuracy)"
    if topic.status == "weak":
        if topic.accuracy < LOW_ACCURACY_REASON:
            return f"Only {topic.accuracy}% accuracy — needs focused practice"
        return f"Below target at {topic.accuracy}% — building foundations"
    if topic.status == "improving":
        return f"{topic.accuracy}% and climbing — push to 75%+"
    if topic.status == "strong":
        return f"Strong at {topic.accuracy}% — maintain with quick practice"
    return f"{topic.accuracy}% mastery — keep it sharp"


def create_task(topic: TopicInsight, task_type: str, slot: str, minutes: int, date_str: str) -> PlannerTask:
    return PlannerTask(
        id=make_task_id(date_str, topic.subject, topic.topic, task_type),
        subject=topic.subject,
        chapter=topic.chapter,
        topic=topic.topic,
        type=task_type,
        priority=task_priority(topic),
        time_slot=slot,
        allocated_minutes=minutes,
        accuracy=topic.accuracy,
        questions_target=questions_for_minutes(minutes),
        reason=task_reason(topic, task_type),
    )


def most_urgent_subject(topics) -> str:
    """Subject with the highest summed priority score."""
    scores = {}
    for t in topics:
        scores[t.subject] = scores.get(t.subject, 0) + t.priority_score
    best, best_score = FALLBACK_SUBJECT, 0
    for subject, score in scores.items():
        if score > best_score:
            best, best_score = subject, score
    return best


def unique_topics(topics) -> list:
    """Keep the first (highest priority) row for each (subject, topic).

    Task ids are built from subject and topic only, so the same topic name
    under two chapters must not be scheduled twice on one day.
    """
    seen = set()
    unique = []
    for t in topics:
        key = (t.subject, t.topic)
        if key not in seen:
            seen.add(key)
            unique.append(t)
    return unique


def _is_scheduled(topic: TopicInsight, tasks) -> bool:
    return any(tk.topic == topic.topic and tk.subject == topic.subject for tk in tasks)


def _fill_slot(tasks, candidates, task_type, slot, budget, cap_for, date_str) -> int:
    """Append tasks for candidates until the budget runs out. Returns minutes left."""
    for topic in candidates:
        if budget <= 0:
            break
        minutes = min(budget, cap_for(topic))
        tasks.append(create_task(topic, task_type, slot, minutes, date_str))
        budget -= minutes
    return budget


def _day_plan(plan_date: date, tasks, is_today: bool, is_rest_day: bool = False) -> DayPlan:
    weekday = plan_date.weekday()
    tasks = tuple(tasks)
    return DayPlan(
        date=plan_date.isoformat(),
        day_name=DAY_NAMES[weekday],
        day_short=DAY_SHORTS[weekday],
        is_today=is_today,
        is_rest_day=is_rest_day,
        tasks=tasks,
        total_minutes=sum(t.allocated_minutes for t in tasks),
        completed_minutes=0,
    )


def build_rest_day(topics, plan_date: date, is_today: bool = True) -> DayPlan:
    date_str = plan_date.isoformat()
    light = [t for t in topics if t.status in ("strong", "mastered")][:REST_DAY_MAX_TASKS]
    tasks = [create_task(t, "revision", "morning", REST_DAY_TASK_MINUTES, date_str) for t in light]
    return _day_plan(plan_date, tasks, is_today, is_rest_day=True)


def build_mock_test_day(topics, total_minutes: int, plan_date: date, is_today: bool = True) -> DayPlan:
    date_str = plan_date.isoformat()
    tasks = []

    mock_minutes = round_half_up(total_minutes * MOCK_TEST_SHARE)
    subject = most_urgent_subject(topics)
    if mock_minutes > 0:
        tasks.append(PlannerTask(
            id=make_task_id(date_str, subject, MOCK_TEST_ID_TOPIC, "mock_test"),
            subject=subject,
            chapter=MOCK_TEST_CHAPTER,
            topic=MOCK_TEST_TOPIC,
            type="mock_test",
            priority="high",
            time_slot="morning",
            allocated_minutes=mock_minutes,
            accuracy=0,
            questions_target=questions_for_minutes(mock_minutes),
            reason=f"Full practice session on {subject} — simulate exam conditions",
        ))

    practice_minutes = round_half_up(total_minutes * MOCK_PRACTICE_SHARE)
    weak = [t for t in topics if t.status == "weak"][:MOCK_PRACTICE_MAX_TASKS]
    _fill_slot(tasks, weak, "practice", "afternoon", practice_minutes,
               lambda t: MOCK_PRACTICE_TASK_CAP, date_str)

    revision_minutes = total_minutes - mock_minutes - practice_minutes
    stale = [
        t for t in topics
        if t.days_since_practice >= MOCK_REVISION_MIN_DAYS and t not in weak
    ][:MOCK_REVISION_MAX_TASKS]
    _fill_slot(tasks, stale, "revision", "evening", revision_minutes,
               lambda t: MOCK_REVISION_TASK_CAP, date_str)

    return _day_plan(plan_date, tasks, is_today)


def build_weekday(topics, total_minutes: int, allocation: TimeAllocation,
                  plan_date: date, is_today: bool = True) -> DayPlan:
    date_str = plan_date.isoformat()
    study_minutes, revision_minutes, practice_minutes = split_minutes(total_minutes, allocation)
    tasks = []

    # Morning: hardest material while fresh
    learning = [t for t in topics if t.status in ("weak", "improving")]
    morning_left = _fill_slot(
        tasks, learning[:MORNING_MAX_TASKS], "study", "morning", study_minutes,
        lambda t: MORNING_WEAK_CAP if t.status == "weak" else MORNING_IMPROVING_CAP, date_str,
    )
    if morning_left >= MORNING_EXTRA_THRESHOLD and len(learning) > MORNING_MAX_TASKS:
        extra = learning[MORNING_MAX_TASKS]
        tasks.append(create_task(extra, "study", "morning",
                                 min(morning_left, MORNING_EXTRA_CAP), date_str))

    # Afternoon: practice on mid-range topics
    practice = [
        t for t in topics
        if t.status in ("improving", "strong") and not _is_scheduled(t, tasks)
    ][:AFTERNOON_MAX_TASKS]
    _fill_slot(tasks, practice, "practice", "afternoon", practice_minutes,
               lambda t: AFTERNOON_TASK_CAP, date_str)

    # Evening: revision, most overdue first
    revision = sorted(
        (t for t in topics
         if t.days_since_practice >= EVENING_MIN_DAYS
         and t.accuracy > EVENING_MIN_ACCURACY
         and not _is_scheduled(t, tasks)),
        key=lambda t: t.days_since_practice,
        reverse=True,
    )[:EVENING_MAX_TASKS]
    evening_left = _fill_slot(tasks, revision, "revision", "evening", revision_minutes,
                              lambda t: EVENING_TASK_CAP, date_str)
    if evening_left >= EVENING_EXTRA_THRESHOLD:
        strong = [
            t for t in topics
            if t.status in ("strong", "mastered") and not _is_scheduled(t, tasks)
        ][:1]
        for t in strong:
            tasks.append(create_task(t, "revision", "evening",
                                     min(evening_left, EVENING_EXTRA_CAP), date_str))

    return _day_plan(plan_date, tasks, is_today)


def build_day_plan(topics, daily_hours: float, allocation: TimeAllocation,
                   plan_date: date, is_today: bool = True) -> DayPlan:
    """Build the plan for one calendar day from ranked topic insights."""
    if isinstance(plan_date, str):
        plan_date = date.fromisoformat(plan_date)
    topics = unique_topics(topics)
    weekday = plan_date.weekday()
    if weekday == REST_WEEKDAY:
        return build_rest_day(topics, plan_date, is_today)
    total_minutes = round_half_up(daily_hours * 60)
    if weekday == MOCK_TEST_WEEKDAY:
        return build_mock_test_day(topics, total_minutes, plan_date, is_today)
    return build_weekday(topics, total_minutes, allocation, plan_date, is_today)


def build_plan_for_minutes(topics, available_minutes: int, allocation: TimeAllocation,
                           plan_date: date, is_today: bool = True) -> DayPlan:
    """Same as build_day_plan, with the budget given in minutes."""
    return build_day_plan(topics, available_minutes / 60, allocation, plan_date, is_today)
