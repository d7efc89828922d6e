"""Data classes for the planner domain model."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from exam_planner.rules import DEFAULT_DAILY_HOURS, DEFAULT_TARGET_EXAM


@dataclass(frozen=True)
class Profile:
    full_name: Optional[str] = None
    target_exam: str = DEFAULT_TARGET_EXAM
    daily_study_hours: float = DEFAULT_DAILY_HOURS
    target_exam_date: Optional[str] = None
    current_streak: int = 0
    overall_accuracy: float = 0.0
    total_points: int = 0
    created_at: Optional[str] = None


@dataclass(frozen=True)
class MasteryRow:
    subject: str = "Unknown"
    chapter: str = ""
    topic: str = ""
    accuracy: float = 0.0
    questions_attempted: int = 0
    last_practiced: Optional[datetime] = None
    stuck_days: int = 0


@dataclass(frozen=True)
class Snapshot:
    profile: Profile
    total_questions: int
    mastery_rows: tuple = ()


@dataclass(frozen=True)
class TopicInsight:
    subject: str
    chapter: str
    topic: str
    accuracy: int
    questions_attempted: int
    status: str
    days_since_practice: int
    priority_score: int
    stuck_days: int = 0


@dataclass(frozen=True)
class TimeAllocation:
    study: float
    revision: float
    practice: float


@dataclass(frozen=True)
class PlannerTask:
    id: str
    subject: str
    chapter: str
    topic: str
    type: str
    priority: str
    time_slot: str
    allocated_minutes: int
    accuracy: int
    questions_target: int
    reason: str
    status: str = "pending"


@dataclass(frozen=True)
class DayPlan:
    date: str
    day_name: str
    day_short: str
    is_today: bool = False
    is_rest_day: bool = False
    tasks: tuple = ()
    total_minutes: int = 0
    completed_minutes: int = 0

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self.tasks if t.status == "completed")

    def completed_ids(self) -> set[str]:
        return {t.id for t in self.tasks if t.status == "completed"}

    def with_completed(self, ids) -> "DayPlan":
        """Return a copy with the given task ids marked completed."""
        ids = set(ids)
        tasks = tuple(
            replace(t, status="completed") if t.id in ids else t
            for t in self.tasks
        )
        return replace(self, tasks=tasks, completed_minutes=_completed_minutes(tasks))

    def toggled(self, task_id: str) -> "DayPlan":
        """Flip one task between completed and pending."""
        tasks = tuple(
            replace(t, status="pending" if t.status == "completed" else "completed")
            if t.id == task_id else t
            for t in self.tasks
        )
        return replace(self, tasks=tasks, completed_minutes=_completed_minutes(tasks))

    def find_task(self, task_id: str) -> Optional[PlannerTask]:
        return next((t for t in self.tasks if t.id == task_id), None)


def _completed_minutes(tasks) -> int:
    return sum(t.allocated_minutes for t in tasks if t.status == "completed")


def empty_day_plan(date_str: str = "") -> DayPlan:
    return DayPlan(date=date_str, day_name="", day_short="", is_today=True)


@dataclass(frozen=True)
class RevisionItem:
    subject: str
    chapter: str
    topic: str
    accuracy: int
    days_since: int
    urgency: str
    forgetting_risk: int


@dataclass(frozen=True)
class WeeklyWin:
    type: str
    title: str
    detail: str
    emoji: str


@dataclass(frozen=True)
class SubjectBreakdown:
    subject: str
    avg_accuracy: int
    topic_count: int
    mastered_count: int
    strong_count: int
    improving_count: int
    weak_count: int
    topics: tuple = ()


@dataclass(frozen=True)
class PlannerStats:
    days_to_exam: int = 0
    journey_percent: int = 0
    total_topics_practiced: int = 0
    mastered_count: int = 0
    strong_count: int = 0
    improving_count: int = 0
    weak_count: int = 0
    avg_accuracy: int = 0
    current_streak: int = 0
    today_tasks_total: int = 0
    today_tasks_done: int = 0
    weekly_study_minutes: int = 0
    exam_phase: str = ""
    current_xp: int = 0
    level: int = 1
    level_title: str = ""
    xp_to_next_level: int = 0
    xp_progress: int = 0


@dataclass(frozen=True)
class ChapterPriority:
    subject: str
    chapter: str
    score: int
    weak_topics: int
    total_topics: int
    avg_accuracy: int


@dataclass(frozen=True)
class LevelInfo:
    level: int
    title: str
    icon: str
    xp_to_next: int
    progress: int
    next_title: str


@dataclass(frozen=True)
class DailyChallenge:
    id: str
    type: str
    title: str
    description: str
    target: int
    xp_reward: int
    icon: str
    current: int = 0


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    icon: str
    rarity: str
    xp_reward: int
    unlocked: bool = False


@dataclass(frozen=True)
class ScheduleEntry:
    user_id: str
    date: str
    subject: str
    chapter: str
    topic: str
    activity_type: str
    allocated_minutes: int
    completed_minutes: int
    status: str


@dataclass(frozen=True)
class PlannerState:
    student_name: str = ""
    target_exam: str = DEFAULT_TARGET_EXAM
    exam_date: str = ""
    daily_study_hours: float = DEFAULT_DAILY_HOURS
    stats: PlannerStats = field(default_factory=PlannerStats)
    today_plan: DayPlan = field(default_factory=empty_day_plan)
    week_plan: tuple = ()
    selected_day_index: int = 0
    revision_due: tuple = ()
    weekly_wins: tuple = ()
    topics: tuple = ()
    subject_breakdowns: tuple = ()
    chapter_priorities: tuple = ()
    achievements: tuple = ()
    daily_challenge: Optional[DailyChallenge] = None
    time_allocation: TimeAllocation = field(
        default_factory=lambda: TimeAllocation(study=0.6, revision=0.25, practice=0.15)
    )
    greeting: str = ""
    motivation: str = ""
    is_loading: bool = True
    has_enough_data: bool = False
    needs_diagnostic: bool = False
    total_questions: int = 0
    notice: Optional[str] = None
