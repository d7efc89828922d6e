"""End-to-end: import a snapshot, plan, complete a task and come back later."""
from conftest import NOW
from exam_planner.app import open_session
from exam_planner.db import init_db
from exam_planner.importer import import_snapshot
from exam_planner.stores import get_schedule


def _session(db_path):
    return open_session(db_path, "aarav", clock=lambda: NOW)


def test_full_day_workflow(tmp_db, snapshot_file):
    init_db(tmp_db)
    import_snapshot(tmp_db, snapshot_file)

    with _session(tmp_db) as session:
        state = session.load_data()
        assert state.has_enough_data
        assert state.greeting == "Good morning, Aarav"
        assert state.exam_date == "2027-05-24"
        assert state.topics[0].topic == "Friction"
        assert state.topics[0].days_since_practice == 9

        task = state.today_plan.tasks[0]
        session.toggle_task(task.id)
        session.wait_for_writes(timeout=5)

    [row] = get_schedule(tmp_db, "aarav", "2026-10-19")
    assert row["topic"] == task.topic
    assert row["status"] == "completed"
    assert row["completed_minutes"] == task.allocated_minutes

    with _session(tmp_db) as later:
        state = later.load_data()
        assert state.today_plan.find_task(task.id).status == "completed"
        assert state.stats.today_tasks_done == 1

        later.update_settings(2, "JEE")
        assert later.state.daily_study_hours == 2
        assert later.state.today_plan.total_minutes <= 120
        # settings change regenerates the plan but keeps today's completions
        done = later.state.today_plan.find_task(task.id)
        assert done is None or done.status == "completed"
