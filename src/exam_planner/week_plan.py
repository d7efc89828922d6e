"""Seven-day plan with topic rotation so consecutive days differ."""
from datetime import date, timedelta

from exam_planner.daily_plan import build_day_plan
from exam_planner.models import DayPlan, TimeAllocation
from exam_planner.rules import ROTATION_MIN_TOPICS

WEEK_LENGTH = 7


def _rotate(items: list, offset: int) -> list:
    if not items:
        return items
    shift = offset % len(items)
    return items[shift:] + items[:shift]


def rotate_topics(topics, day_offset: int) -> list:
    """Rotate each status group by the day offset, keeping group order.

    Weak topics stay ahead of improving ones, which stay ahead of
    strong/mastered ones; only the order inside each group shifts.
    """
    topics = list(topics)
    if len(topics) <= ROTATION_MIN_TOPICS:
        return topics
    weak = [t for t in topics if t.status == "weak"]
    improving = [t for t in topics if t.status == "improving"]
    strong = [t for t in topics if t.status in ("strong", "mastered")]
    return _rotate(weak, day_offset) + _rotate(improving, day_offset) + _rotate(strong, day_offset)


def build_week_plan(topics, daily_hours: float, allocation: TimeAllocation,
                    start: date = None) -> list[DayPlan]:
    start = start or date.today()
    plans = []
    for offset in range(WEEK_LENGTH):
        plan_date = start + timedelta(days=offset)
        plans.append(build_day_plan(
            rotate_topics(topics, offset), daily_hours, allocation, plan_date,
            is_today=offset == 0,
        ))
    return plans
