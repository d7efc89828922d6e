"""Tests for the plan session controller."""
import threading
import time
from dataclasses import replace

import pytest

from conftest import NOW, make_row
from exam_planner.models import Profile, TimeAllocation
from exam_planner.session import (
    LOAD_FAILED, SETTINGS_FAILED, SETTINGS_SAVED, PlanSession, has_enough_data,
)
from exam_planner.stores import MemoryAchievementLedger, MemoryCompletionCache

PROFILE = Profile(
    full_name="Aarav Sharma",
    target_exam="JEE",
    daily_study_hours=4,
    target_exam_date="2027-05-24",
    current_streak=3,
    overall_accuracy=55,
)

ROWS = [
    make_row("Friction", accuracy=20, questions=12, days=10),
    make_row("Isomerism", subject="Chemistry", chapter="Organic", accuracy=40, questions=15, days=6),
    make_row("Limits", subject="Mathematics", chapter="Calculus", accuracy=62, questions=20, days=4),
    make_row("Optics", chapter="Waves", accuracy=82, questions=18, days=9),
    make_row("Vectors", subject="Mathematics", chapter="Algebra", accuracy=93, questions=25, days=2),
]


class FakeSource:
    def __init__(self, profile=PROFILE, total=120, rows=ROWS, exam_dates=None):
        self.profile = profile
        self.total = total
        self.rows = list(rows)
        self.exam_dates = exam_dates or {}
        self.fail_reads = False
        self.fail_updates = False
        self.updates = []

    def fetch_profile(self, user_id):
        if self.fail_reads:
            raise RuntimeError("database offline")
        return self.profile

    def count_question_attempts(self, user_id):
        return self.total

    def fetch_topic_mastery(self, user_id):
        return list(self.rows)

    def update_profile(self, user_id, **fields):
        if self.fail_updates:
            raise RuntimeError("database offline")
        self.updates.append(fields)
        self.profile = replace(self.profile, **fields)

    def exam_date_for(self, target_exam):
        return self.exam_dates.get(target_exam)


class FakeWriter:
    def __init__(self, fail=False):
        self.fail = fail
        self.entries = []

    def upsert(self, entry):
        if self.fail:
            raise RuntimeError("write rejected")
        self.entries.append(entry)


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def writer():
    return FakeWriter()


@pytest.fixture
def cache():
    return MemoryCompletionCache()


@pytest.fixture
def session(source, cache, writer):
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as s:
        yield s


def test_has_enough_data_thresholds():
    assert has_enough_data(10, 3)
    assert not has_enough_data(9, 3)
    assert not has_enough_data(10, 2)


def test_initial_state_is_loading(session):
    assert session.state.is_loading
    assert not session.state.has_enough_data


def test_not_enough_data(cache, writer):
    source = FakeSource(total=8, rows=ROWS[:5])
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as session:
        state = session.load_data()
    assert not state.is_loading
    assert not state.has_enough_data
    assert state.student_name == "Aarav Sharma"
    assert state.total_questions == 8
    assert state.today_plan.tasks == ()
    assert state.today_plan.date == "2026-10-19"
    assert state.week_plan == ()


def test_full_load(session):
    state = session.load_data()
    assert state.has_enough_data
    assert not state.is_loading
    assert state.exam_date == "2027-05-24"
    assert state.stats.days_to_exam == 217
    assert state.time_allocation == TimeAllocation(0.65, 0.20, 0.15)
    assert state.greeting == "Good morning, Aarav"
    assert len(state.week_plan) == 7
    assert state.week_plan[0] == state.today_plan
    assert state.today_plan.date == "2026-10-19"
    assert state.today_plan.tasks
    assert len(state.topics) == 5
    assert state.topics[0].topic == "Friction"
    assert state.stats.today_tasks_total == len(state.today_plan.tasks)
    assert state.notice is None


def test_exam_date_falls_back_to_source_then_builtin(cache, writer):
    no_date = replace(PROFILE, target_exam_date=None)
    source = FakeSource(profile=no_date, exam_dates={"JEE": "2027-01-22"})
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as session:
        assert session.load_data().exam_date == "2027-01-22"
        source.exam_dates = {}
        assert session.load_data().exam_date == "2026-05-24"


def test_toggle_round_trip(session, cache, writer):
    plan = session.load_data().today_plan
    task = plan.tasks[0]

    state = session.toggle_task(task.id)
    assert state.today_plan.find_task(task.id).status == "completed"
    assert state.today_plan.completed_minutes == task.allocated_minutes
    assert state.stats.today_tasks_done == 1
    assert state.week_plan[0] == state.today_plan
    assert cache.get("2026-10-19") == {task.id}

    state = session.toggle_task(task.id)
    assert state.today_plan == plan
    assert state.stats.today_tasks_done == 0
    assert cache.get("2026-10-19") == set()

    session.wait_for_writes(timeout=5)
    assert [e.status for e in writer.entries] == ["completed", "pending"]
    first = writer.entries[0]
    assert first.user_id == "u1"
    assert first.date == "2026-10-19"
    assert first.topic == task.topic
    assert first.activity_type == task.type
    assert first.completed_minutes == task.allocated_minutes
    assert writer.entries[1].completed_minutes == 0


def test_completions_merged_on_load(source, cache, writer):
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as session:
        task = session.load_data().today_plan.tasks[1]
        session.toggle_task(task.id)
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as fresh:
        state = fresh.load_data()
    assert state.today_plan.completed_ids() == {task.id}
    assert state.stats.today_tasks_done == 1


def test_failed_write_keeps_optimistic_state(source, cache):
    failures = []
    writer = FakeWriter(fail=True)
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW,
                     on_write_error=lambda entry, exc: failures.append((entry, exc))) as session:
        task = session.load_data().today_plan.tasks[0]
        state = session.toggle_task(task.id)
        session.wait_for_writes(timeout=5)
        assert session.state.today_plan.find_task(task.id).status == "completed"
        assert session.state is state
    assert len(failures) == 1
    assert failures[0][0].topic == task.topic
    assert isinstance(failures[0][1], RuntimeError)


def test_toggle_unknown_task_is_ignored(session, writer):
    before = session.load_data()
    assert session.toggle_task("2026-10-19::nope::nope::study") is before
    session.wait_for_writes(timeout=5)
    assert writer.entries == []


def test_replan(session, cache):
    state = session.load_data()
    session.toggle_task(state.today_plan.tasks[0].id)
    state = session.replan(60)
    assert 0 < state.today_plan.total_minutes <= 60
    assert state.today_plan.completed_count == 0
    assert state.week_plan[0] == state.today_plan
    assert state.stats.today_tasks_total == len(state.today_plan.tasks)
    assert cache.get("2026-10-19") == set()


def test_replan_zero_minutes_gives_empty_day(session):
    session.load_data()
    assert session.replan(0).today_plan.tasks == ()


def test_replan_rejects_negative_minutes(session):
    session.load_data()
    with pytest.raises(ValueError):
        session.replan(-5)


def test_replan_without_data_keeps_state(cache, writer):
    source = FakeSource(total=2)
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as session:
        before = session.load_data()
        assert session.replan(30) is before


def test_load_failure_keeps_previous_state(session, source):
    loaded = session.load_data()
    source.fail_reads = True
    state = session.load_data()
    assert state.notice == LOAD_FAILED
    assert not state.is_loading
    assert state.today_plan == loaded.today_plan
    assert state.student_name == "Aarav Sharma"


def test_stale_load_is_discarded(cache, writer):
    source = FakeSource()
    started = [threading.Event(), threading.Event()]
    release = [threading.Event(), threading.Event()]
    names = ["First", "Second"]
    calls = []

    def fetch_profile(user_id):
        n = len(calls)
        calls.append(n)
        started[n].set()
        release[n].wait(5)
        return replace(PROFILE, full_name=names[n])

    source.fetch_profile = fetch_profile
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as session:
        first = threading.Thread(target=session.load_data)
        second = threading.Thread(target=session.load_data)
        first.start()
        assert started[0].wait(5)
        second.start()
        deadline = time.monotonic() + 5
        while session._latest_request != 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert session._latest_request == 2

        release[0].set()
        first.join(5)
        assert session.state.student_name != "First"

        assert started[1].wait(5)
        release[1].set()
        second.join(5)
        assert session.state.student_name == "Second"
        assert not session.state.is_loading


def test_update_settings_reloads(session, source):
    session.load_data()
    state = session.update_settings(6, "NEET")
    assert source.updates == [
        {"daily_study_hours": 6, "target_exam": "NEET", "target_exam_date": "2026-05-05"}
    ]
    assert state.notice == SETTINGS_SAVED
    assert state.daily_study_hours == 6
    assert state.target_exam == "NEET"
    assert state.exam_date == "2026-05-05"
    assert state.stats.days_to_exam == 0


def test_update_settings_failure_sets_notice(session, source):
    loaded = session.load_data()
    source.fail_updates = True
    state = session.update_settings(5, "JEE")
    assert state.notice == SETTINGS_FAILED
    assert state.today_plan == loaded.today_plan
    assert state.daily_study_hours == 4


def test_update_settings_rejects_non_positive_hours(session):
    with pytest.raises(ValueError):
        session.update_settings(0, "JEE")


class SlowFirstSaveCache(MemoryCompletionCache):
    """Completion cache whose first save blocks until released."""

    def __init__(self):
        super().__init__()
        self.first_save_started = threading.Event()
        self.release_first_save = threading.Event()
        self.saves = 0

    def save(self, date_str, task_ids):
        self.saves += 1
        if self.saves == 1:
            self.first_save_started.set()
            self.release_first_save.wait(5)
        super().save(date_str, task_ids)


def test_cached_completions_match_state_after_overlapping_toggles(source, writer):
    cache = SlowFirstSaveCache()
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as session:
        first, second = session.load_data().today_plan.tasks[:2]
        a = threading.Thread(target=session.toggle_task, args=(first.id,))
        b = threading.Thread(target=session.toggle_task, args=(second.id,))
        a.start()
        assert cache.first_save_started.wait(5)
        b.start()
        time.sleep(0.1)
        cache.release_first_save.set()
        a.join(5)
        b.join(5)
        completed = session.state.today_plan.completed_ids()
    assert completed == {first.id, second.id}
    assert cache.get("2026-10-19") == completed


def test_thin_data_needs_diagnostic(cache, writer):
    source = FakeSource(total=4, rows=ROWS[:2])
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as session:
        state = session.load_data()
    assert state.needs_diagnostic
    assert state.notice is None


def test_first_load_failure_is_not_a_diagnostic_prompt(source, cache, writer):
    source.fail_reads = True
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW) as session:
        state = session.load_data()
    assert state.notice == LOAD_FAILED
    assert not state.needs_diagnostic
    assert not state.has_enough_data
    assert not state.is_loading


def test_full_load_does_not_need_diagnostic(session):
    assert not session.load_data().needs_diagnostic


def test_replan_wins_over_a_load_in_flight(cache, writer):
    source = FakeSource()
    session = PlanSession(source, cache, writer, "u1", clock=lambda: NOW)
    with session:
        session.load_data()
        started = threading.Event()
        release = threading.Event()

        def fetch_profile(user_id):
            started.set()
            release.wait(5)
            return PROFILE

        source.fetch_profile = fetch_profile
        loader = threading.Thread(target=session.load_data)
        loader.start()
        assert started.wait(5)
        session.replan(60)
        release.set()
        loader.join(5)
        state = session.state
    assert 0 < state.today_plan.total_minutes <= 60
    assert not state.is_loading


def test_select_day(session):
    session.load_data()
    state = session.select_day(3)
    assert state.selected_day_index == 3
    assert state.week_plan[3].day_name == "Thursday"
    with pytest.raises(ValueError):
        session.select_day(7)
    with pytest.raises(ValueError):
        session.select_day(-1)


def test_select_day_before_load_is_rejected(session):
    with pytest.raises(ValueError):
        session.select_day(0)


def test_load_fills_phase_chapters_and_challenge(session):
    state = session.load_data()
    assert state.stats.exam_phase == "foundation"
    assert state.stats.level == 1
    top = state.chapter_priorities[0]
    assert (top.subject, top.chapter) == ("Physics", "Mechanics")
    assert state.daily_challenge.id == "challenge-2026-10-19"


def test_unlocked_achievements_are_saved(source, cache, writer):
    ledger = MemoryAchievementLedger()
    with PlanSession(source, cache, writer, "u1", clock=lambda: NOW,
                     achievements=ledger) as session:
        state = session.load_data()
        unlocked = {a.id for a in state.achievements if a.unlocked}
        assert {"streak-3", "qs-100"} <= unlocked
        assert "first-blood" not in unlocked
        assert ledger.get() == unlocked

        source.profile = replace(PROFILE, current_streak=0)
        state = session.load_data()
    assert "streak-3" in {a.id for a in state.achievements if a.unlocked}
