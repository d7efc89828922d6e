from conftest import MONDAY
from exam_planner.allocation import compute_time_allocation
from exam_planner.daily_plan import build_day_plan
from exam_planner.models import DayPlan, PlannerState, Profile, empty_day_plan


def _plan(mixed_topics):
    return build_day_plan(mixed_topics, 4, compute_time_allocation(200), MONDAY)


def test_profile_defaults():
    profile = Profile()
    assert profile.target_exam == "JEE"
    assert profile.daily_study_hours == 4
    assert profile.current_streak == 0


def test_planner_state_defaults():
    state = PlannerState()
    assert state.is_loading
    assert not state.has_enough_data
    assert state.today_plan.tasks == ()
    assert state.week_plan == ()
    assert state.notice is None
    assert not state.needs_diagnostic
    assert state.selected_day_index == 0
    assert state.daily_challenge is None


def test_toggle_twice_restores_plan(mixed_topics):
    plan = _plan(mixed_topics)
    task = plan.tasks[0]
    toggled = plan.toggled(task.id)
    assert toggled.find_task(task.id).status == "completed"
    assert toggled.completed_minutes == task.allocated_minutes
    assert toggled.completed_count == 1
    assert toggled.toggled(task.id) == plan


def test_with_completed_ignores_unknown_ids(mixed_topics):
    plan = _plan(mixed_topics)
    ids = {plan.tasks[0].id, plan.tasks[1].id, "2026-10-19::nope::nope::study"}
    done = plan.with_completed(ids)
    assert done.completed_ids() == {plan.tasks[0].id, plan.tasks[1].id}
    assert done.completed_minutes == plan.tasks[0].allocated_minutes + plan.tasks[1].allocated_minutes
    assert done.total_minutes == plan.total_minutes


def test_find_task_missing():
    assert DayPlan(date="2026-10-19", day_name="Monday", day_short="Mon").find_task("x") is None


def test_empty_day_plan():
    plan = empty_day_plan("2026-10-19")
    assert plan.date == "2026-10-19"
    assert plan.is_today
    assert plan.completed_count == 0
