"""Time allocation across study modes based on exam proximity."""
from datetime import date

from exam_planner.analyzer import round_half_up
from exam_planner.models import TimeAllocation
from exam_planner.rules import FINAL_ALLOCATION, TIME_ALLOCATION_TABLE


def allocation_percentages(days_to_exam: int) -> tuple[int, int, int]:
    """(study, revision, practice) in whole percent for the given horizon."""
    for more_than, study, revision, practice in TIME_ALLOCATION_TABLE:
        if days_to_exam > more_than:
            return study, revision, practice
    return FINAL_ALLOCATION


def compute_time_allocation(days_to_exam: int) -> TimeAllocation:
    study, revision, practice = allocation_percentages(days_to_exam)
    return TimeAllocation(study=study / 100, revision=revision / 100, practice=practice / 100)


def split_minutes(total_minutes: int, allocation: TimeAllocation) -> tuple[int, int, int]:
    """Split a budget into (study, revision, practice) minutes.

    Practice takes whatever rounding leaves over, so the parts always add
    back up to the total.
    """
    study = round_half_up(total_minutes * allocation.study)
    revision = round_half_up(total_minutes * allocation.revision)
    return study, revision, total_minutes - study - revision


def days_until(exam_date, today: date = None) -> int:
    """Whole days until the exam. Negative once the date has passed."""
    today = today or date.today()
    if isinstance(exam_date, str):
        exam_date = date.fromisoformat(exam_date[:10])
    return (exam_date - today).days
