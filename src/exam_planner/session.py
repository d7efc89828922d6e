"""Plan session controller.

Loads a performance snapshot, runs the planning engine over it, merges in
task completions recorded earlier today and keeps the resulting
PlannerState. The state is only ever replaced wholesale; callers read it
through ``PlanSession.state``.

Loads are serialized. Each load takes a sequence number when requested and
publishes its result only if no newer load has been requested since, so a
slow stale load can never overwrite a fresher one. A replan also takes a
sequence number, so a load that was already running cannot undo it.

Task toggles are applied to the in-memory state immediately. The write to
the schedule store runs on the session's thread pool and is never awaited;
a failed write is logged and the optimistic state is kept. Cache writes are
made in the same order as the state changes they record.
"""
import itertools
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from loguru import logger

from exam_planner.allocation import compute_time_allocation, days_until
from exam_planner.analyzer import analyze_topics
from exam_planner.daily_plan import build_day_plan, build_plan_for_minutes
from exam_planner.insights import (
    chapter_priorities, compute_achievements, compute_stats, detect_weekly_wins,
    pick_daily_challenge, subject_breakdowns,
)
from exam_planner.models import DayPlan, PlannerState, ScheduleEntry, Snapshot, empty_day_plan
from exam_planner.narrative import build_greeting
from exam_planner.revision import get_revision_due
from exam_planner.rules import DEFAULT_DAILY_HOURS, DEFAULT_TARGET_EXAM, MIN_QUESTIONS, MIN_TOPICS
from exam_planner.stores import (
    AchievementLedger, CompletionCache, MemoryAchievementLedger, PerformanceSource,
    ScheduleWriter, default_exam_date,
)
from exam_planner.week_plan import build_week_plan

LOAD_FAILED = "Failed to load study plan"
SETTINGS_SAVED = "Settings saved — plan regenerated"
SETTINGS_FAILED = "Failed to update settings"


def has_enough_data(total_questions: int, topic_count: int) -> bool:
    return total_questions >= MIN_QUESTIONS and topic_count >= MIN_TOPICS


class PlanSession:
    def __init__(
        self,
        source: PerformanceSource,
        completions: CompletionCache,
        writer: ScheduleWriter,
        user_id: str,
        clock: Callable[[], datetime] = datetime.now,
        max_workers: int = 4,
        on_write_error: Optional[Callable[[ScheduleEntry, BaseException], None]] = None,
        achievements: Optional[AchievementLedger] = None,
    ):
        self.source = source
        self.completions = completions
        self.writer = writer
        self.user_id = user_id
        self.clock = clock
        self.on_write_error = on_write_error
        self.achievements = achievements if achievements is not None else MemoryAchievementLedger()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="planner")
        self._state = PlannerState()
        self._state_lock = threading.Lock()
        self._load_lock = threading.Lock()
        # Orders cache writes with the state changes they belong to
        self._completion_lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._latest_request = 0
        self._pending_writes = set()
        self._writes_lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def state(self) -> PlannerState:
        return self._state

    def _today(self) -> date:
        return self.clock().date()

    def _publish(self, state: PlannerState, request: Optional[int] = None) -> bool:
        with self._state_lock:
            if request is not None and request != self._latest_request:
                return False
            self._state = state
            return True

    def _update(self, **changes) -> PlannerState:
        with self._state_lock:
            self._state = replace(self._state, **changes)
            return self._state

    # ── Loading ──

    def fetch_snapshot(self) -> Snapshot:
        """Read profile, attempt count and mastery rows in parallel."""
        profile_f = self._executor.submit(self.source.fetch_profile, self.user_id)
        count_f = self._executor.submit(self.source.count_question_attempts, self.user_id)
        mastery_f = self._executor.submit(self.source.fetch_topic_mastery, self.user_id)
        return Snapshot(
            profile=profile_f.result(),
            total_questions=count_f.result() or 0,
            mastery_rows=tuple(mastery_f.result() or ()),
        )

    def resolve_exam_date(self, target_exam: str) -> str:
        return self.source.exam_date_for(target_exam) or default_exam_date(target_exam)

    def load_data(self, notice: Optional[str] = None) -> PlannerState:
        with self._state_lock:
            request = next(self._sequence)
            self._latest_request = request
        self._update(is_loading=True)

        with self._load_lock:
            if request != self._latest_request:
                logger.debug(f"Load #{request} superseded before it started")
                return self.state
            try:
                snapshot = self.fetch_snapshot()
                state = self.build_state(snapshot)
            except Exception:
                logger.exception(f"Planner load #{request} failed for {self.user_id}")
                with self._state_lock:
                    if request == self._latest_request:
                        self._state = replace(self._state, is_loading=False, notice=LOAD_FAILED)
                return self.state
            if notice:
                state = replace(state, notice=notice)
            if not self._publish(state, request):
                logger.debug(f"Discarding stale load #{request}")
        return self.state

    refresh = load_data

    def build_state(self, snapshot: Snapshot) -> PlannerState:
        """Run the whole engine over a snapshot. Reads only the completion cache."""
        now = self.clock()
        today = now.date()
        profile = snapshot.profile
        student_name = profile.full_name or ""
        target_exam = profile.target_exam or DEFAULT_TARGET_EXAM
        daily_hours = profile.daily_study_hours or DEFAULT_DAILY_HOURS

        if not has_enough_data(snapshot.total_questions, len(snapshot.mastery_rows)):
            logger.info(
                f"Not enough data for {self.user_id}: {snapshot.total_questions} questions, "
                f"{len(snapshot.mastery_rows)} topics"
            )
            return PlannerState(
                student_name=student_name,
                target_exam=target_exam,
                daily_study_hours=daily_hours,
                today_plan=empty_day_plan(today.isoformat()),
                is_loading=False,
                has_enough_data=False,
                needs_diagnostic=True,
                total_questions=snapshot.total_questions,
            )

        exam_date = profile.target_exam_date or self.resolve_exam_date(target_exam)
        streak = profile.current_streak or 0
        avg_accuracy = profile.overall_accuracy or 0
        days_to_exam = days_until(exam_date, today)

        topics = analyze_topics(snapshot.mastery_rows, now)
        allocation = compute_time_allocation(days_to_exam)

        today_plan = build_day_plan(topics, daily_hours, allocation, today)
        completed = self.completions.get(today.isoformat())
        if completed:
            today_plan = today_plan.with_completed(completed)

        week_plan = build_week_plan(topics, daily_hours, allocation, today)
        week_plan[0] = today_plan

        stats = compute_stats(topics, profile, days_to_exam, today_plan)
        achievements = self._achievements(stats, snapshot.total_questions)

        weak_count = sum(1 for t in topics if t.status == "weak")
        greeting, motivation = build_greeting(
            student_name, streak, avg_accuracy, days_to_exam, weak_count, now
        )
        logger.info(
            f"Planned {len(today_plan.tasks)} tasks for {self.user_id} "
            f"({len(topics)} topics, {days_to_exam} days to exam)"
        )
        return PlannerState(
            student_name=student_name,
            target_exam=target_exam,
            exam_date=exam_date,
            daily_study_hours=daily_hours,
            stats=stats,
            today_plan=today_plan,
            week_plan=tuple(week_plan),
            revision_due=tuple(get_revision_due(topics)),
            weekly_wins=tuple(detect_weekly_wins(topics, streak, avg_accuracy, snapshot.total_questions)),
            topics=tuple(topics),
            subject_breakdowns=tuple(subject_breakdowns(topics)),
            chapter_priorities=tuple(chapter_priorities(topics)),
            achievements=tuple(achievements),
            daily_challenge=pick_daily_challenge(today.isoformat()),
            time_allocation=allocation,
            greeting=greeting,
            motivation=motivation,
            is_loading=False,
            has_enough_data=True,
            total_questions=snapshot.total_questions,
        )

    def _achievements(self, stats, total_questions: int) -> list:
        unlocked = self.achievements.get()
        achievements = compute_achievements(
            {
                "streak": stats.current_streak,
                "total_questions": total_questions,
                "accuracy": stats.avg_accuracy,
                "mastered": stats.mastered_count,
                "level": stats.level,
                "tasks_completed": stats.today_tasks_done,
            },
            unlocked,
        )
        now_unlocked = {a.id for a in achievements if a.unlocked}
        if now_unlocked != unlocked:
            try:
                self.achievements.save(now_unlocked)
            except Exception as e:
                logger.warning(f"Could not save achievements for {self.user_id}: {e}")
        return achievements

    # ── Mutations ──

    def _with_today(self, state: PlannerState, today_plan: DayPlan) -> PlannerState:
        week_plan = (today_plan,) + tuple(state.week_plan[1:]) if state.week_plan else ()
        stats = replace(
            state.stats,
            today_tasks_total=len(today_plan.tasks),
            today_tasks_done=today_plan.completed_count,
        )
        return replace(state, today_plan=today_plan, week_plan=week_plan, stats=stats)

    def toggle_task(self, task_id: str) -> PlannerState:
        """Flip a task of today's plan between completed and pending."""
        with self._completion_lock:
            with self._state_lock:
                prev = self._state
                if prev.today_plan.find_task(task_id) is None:
                    logger.warning(f"Toggle ignored, no task {task_id!r} in today's plan")
                    return prev
                today_plan = prev.today_plan.toggled(task_id)
                self._state = self._with_today(prev, today_plan)

            try:
                self.completions.save(today_plan.date, today_plan.completed_ids())
            except Exception as e:
                logger.warning(f"Could not cache completions for {today_plan.date}: {e}")

        task = today_plan.find_task(task_id)
        entry = ScheduleEntry(
            user_id=self.user_id,
            date=today_plan.date,
            subject=task.subject,
            chapter=task.chapter,
            topic=task.topic,
            activity_type=task.type,
            allocated_minutes=task.allocated_minutes,
            completed_minutes=task.allocated_minutes if task.status == "completed" else 0,
            status=task.status,
        )
        self._submit_write(entry)
        return self.state

    def _write(self, entry: ScheduleEntry) -> None:
        try:
            self.writer.upsert(entry)
        except Exception as e:
            logger.warning(f"Schedule write failed for {entry.subject}/{entry.topic}: {e}")
            if self.on_write_error:
                self.on_write_error(entry, e)

    def _submit_write(self, entry: ScheduleEntry) -> None:
        future = self._executor.submit(self._write, entry)
        with self._writes_lock:
            self._pending_writes.add(future)
        future.add_done_callback(self._forget_write)

    def _forget_write(self, future) -> None:
        with self._writes_lock:
            self._pending_writes.discard(future)

    def wait_for_writes(self, timeout: Optional[float] = None) -> None:
        """Block until every write submitted so far has finished."""
        with self._writes_lock:
            pending = list(self._pending_writes)
        wait(pending, timeout=timeout)

    def replan(self, available_minutes: int) -> PlannerState:
        """Rebuild today's plan for a new budget. Today's completions are reset."""
        if available_minutes < 0:
            raise ValueError(f"available_minutes must be >= 0, got {available_minutes}")
        prev = self.state
        if not prev.has_enough_data:
            return prev
        today = self._today()
        today_plan = build_plan_for_minutes(
            list(prev.topics), available_minutes, prev.time_allocation, today
        )
        with self._completion_lock:
            self.completions.clear(today.isoformat())
            with self._state_lock:
                # a load still in flight would overwrite the new budget
                self._latest_request = next(self._sequence)
                self._state = replace(self._with_today(self._state, today_plan), is_loading=False)
        logger.info(f"Replanned {today.isoformat()} for {available_minutes} minutes")
        return self.state

    def select_day(self, index: int) -> PlannerState:
        """Pick which day of the week plan is on display."""
        with self._state_lock:
            if not 0 <= index < len(self._state.week_plan):
                raise ValueError(f"day index must be within the week plan, got {index}")
            self._state = replace(self._state, selected_day_index=index)
            return self._state

    def update_settings(self, daily_hours: float, target_exam: str) -> PlannerState:
        """Save study hours and exam to the profile, then reload everything."""
        if daily_hours <= 0:
            raise ValueError(f"daily_hours must be positive, got {daily_hours}")
        try:
            exam_date = self.resolve_exam_date(target_exam)
            self.source.update_profile(
                self.user_id,
                daily_study_hours=daily_hours,
                target_exam=target_exam,
                target_exam_date=exam_date,
            )
        except Exception:
            logger.exception(f"Settings update failed for {self.user_id}")
            return self._update(notice=SETTINGS_FAILED)
        return self.load_data(notice=SETTINGS_SAVED)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
