"""Interactive CLI application."""
import os
import sys
from datetime import datetime
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import FloatPrompt, IntPrompt, Prompt
from rich.table import Table

from exam_planner.db import DEFAULT_DB_PATH, init_db
from exam_planner.importer import import_snapshot
from exam_planner.rules import DEFAULT_EXAM_DATES, DEFAULT_TARGET_EXAM
from exam_planner.session import PlanSession
from exam_planner.insights import phase_label
from exam_planner.stores import (
    SqliteAchievementLedger, SqliteCompletionCache, SqlitePerformanceStore, SqliteScheduleWriter,
)

console = Console()

DEFAULT_USER = os.environ.get("EXAM_PLANNER_USER", "default")

PRIORITY_COLORS = {"critical": "red", "high": "dark_orange", "medium": "yellow", "low": "green"}
STATUS_COLORS = {"weak": "red", "improving": "yellow", "strong": "cyan", "mastered": "green"}
URGENCY_COLORS = {"overdue": "red", "due": "yellow", "upcoming": "dim"}
SLOT_ORDER = ("morning", "afternoon", "evening")


def open_session(db_path: str, user_id: str = DEFAULT_USER, clock=datetime.now) -> PlanSession:
    return PlanSession(
        source=SqlitePerformanceStore(db_path),
        completions=SqliteCompletionCache(db_path, user_id),
        writer=SqliteScheduleWriter(db_path),
        user_id=user_id,
        achievements=SqliteAchievementLedger(db_path, user_id),
        clock=clock,
    )


def show_welcome(state):
    console.print(Panel(
        f"[bold]{state.greeting or 'Welcome'}[/bold]\n[dim]{state.motivation}[/dim]",
        title="Exam Planner", border_style="blue",
    ))


def show_notice(state):
    if state.notice:
        color = "red" if "Failed" in state.notice else "green"
        console.print(f"[{color}]{state.notice}[/{color}]")


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("today", "Today's plan"),
        ("week", "Next 7 days"),
        ("day", "One day of the week in detail"),
        ("revision", "Topics due for revision"),
        ("insights", "Subjects, wins and stats"),
        ("toggle", "Mark a task done / undone"),
        ("replan", "Rebuild today for a new time budget"),
        ("settings", "Daily hours and target exam"),
        ("import", "Load a performance snapshot"),
        ("refresh", "Reload everything"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_needs_data(state):
    console.print(Panel(
        f"Only [bold]{state.total_questions}[/bold] questions on record.\n"
        "Take a diagnostic test (at least 10 questions across 3 topics) "
        "and use 'import' to load the results.",
        title="Not enough data yet", border_style="yellow",
    ))


def show_unavailable(state):
    console.print(Panel(
        f"{state.notice or 'The plan is still loading.'}\nUse 'refresh' to try again.",
        title="Plan unavailable", border_style="red",
    ))


def has_plan(state) -> bool:
    """Print why there is no plan and return False, or return True."""
    if state.needs_diagnostic:
        show_needs_data(state)
        return False
    if not state.has_enough_data:
        show_unavailable(state)
        return False
    return True


def render_day(plan, title: str = None) -> Table:
    table = Table(title=title or f"{plan.day_name} {plan.date}")
    table.add_column("#", justify="right")
    table.add_column("Slot")
    table.add_column("Task")
    table.add_column("Topic", style="cyan")
    table.add_column("Min", justify="right")
    table.add_column("Qs", justify="right")
    table.add_column("Why", style="dim")
    tasks = sorted(plan.tasks, key=lambda t: SLOT_ORDER.index(t.time_slot))
    for i, task in enumerate(tasks, 1):
        color = PRIORITY_COLORS.get(task.priority, "white")
        done = task.status == "completed"
        table.add_row(
            str(i),
            task.time_slot,
            f"[{color}]{task.type}[/{color}]",
            f"{'[strike]' if done else ''}{task.subject}: {task.topic}{'[/strike]' if done else ''}",
            str(task.allocated_minutes),
            str(task.questions_target),
            task.reason,
        )
    return table


def cmd_today(session: PlanSession):
    state = session.state
    if not has_plan(state):
        return
    plan = state.today_plan
    if plan.is_rest_day:
        console.print("[green]Rest day. Light revision only, if you feel like it.[/green]")
    console.print(render_day(plan, title=f"Today — {plan.day_name} {plan.date}"))
    pct = round(plan.completed_minutes / plan.total_minutes * 100) if plan.total_minutes else 0
    console.print(
        f"\n  Done: [bold]{plan.completed_minutes}[/bold]/{plan.total_minutes} min ({pct}%)  |  "
        f"Tasks: [bold]{state.stats.today_tasks_done}[/bold]/{state.stats.today_tasks_total}"
    )
    challenge = state.daily_challenge
    if challenge:
        console.print(f"  {challenge.icon} Challenge: [bold]{challenge.title}[/bold] "
                      f"[dim]{challenge.description} (+{challenge.xp_reward} XP)[/dim]")


def cmd_week(session: PlanSession):
    state = session.state
    if not has_plan(state):
        return
    table = Table(title="This Week")
    table.add_column("Day")
    table.add_column("Date")
    table.add_column("Tasks", justify="right")
    table.add_column("Minutes", justify="right")
    table.add_column("Focus")
    for plan in state.week_plan:
        label = "Rest" if plan.is_rest_day else ", ".join(
            dict.fromkeys(t.subject for t in plan.tasks)
        )
        marker = " ←" if plan.is_today else ""
        table.add_row(f"{plan.day_short}{marker}", plan.date, str(len(plan.tasks)),
                      str(plan.total_minutes), label)
    console.print(table)


def cmd_day(session: PlanSession):
    if not has_plan(session.state):
        return
    days = session.state.week_plan
    number = IntPrompt.ask("Day (1 = today)", choices=[str(i) for i in range(1, len(days) + 1)])
    state = session.select_day(number - 1)
    plan = state.week_plan[state.selected_day_index]
    console.print(render_day(plan))


def cmd_revision(session: PlanSession):
    state = session.state
    if not state.revision_due:
        console.print("[green]Nothing due for revision.[/green]")
        return
    table = Table(title="Revision Due")
    table.add_column("Topic", style="cyan")
    table.add_column("Accuracy", justify="right")
    table.add_column("Days since", justify="right")
    table.add_column("Urgency")
    table.add_column("Risk", justify="right")
    for item in state.revision_due:
        color = URGENCY_COLORS[item.urgency]
        table.add_row(
            f"{item.subject}: {item.topic}", f"{item.accuracy}%", str(item.days_since),
            f"[{color}]{item.urgency}[/{color}]", f"{item.forgetting_risk}%",
        )
    console.print(table)


def cmd_insights(session: PlanSession):
    state = session.state
    stats = state.stats
    console.print(Panel(
        f"[bold]{stats.days_to_exam}[/bold] days to {state.target_exam} ({state.exam_date})  |  "
        f"Journey {stats.journey_percent}%  |  Streak {stats.current_streak}  |  "
        f"Avg accuracy {stats.avg_accuracy}%\n"
        f"Phase {phase_label(stats.exam_phase)}  |  Level {stats.level} {stats.level_title} "
        f"({stats.current_xp} XP, {stats.xp_to_next_level} to next)",
        title="Overview", border_style="blue",
    ))
    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Accuracy", justify="right")
    table.add_column("Topics", justify="right")
    for status in ("mastered", "strong", "improving", "weak"):
        color = STATUS_COLORS[status]
        table.add_column(f"[{color}]{status.title()}[/{color}]", justify="right")
    for b in state.subject_breakdowns:
        table.add_row(b.subject, f"{b.avg_accuracy}%", str(b.topic_count), str(b.mastered_count),
                      str(b.strong_count), str(b.improving_count), str(b.weak_count))
    console.print(table)
    for win in state.weekly_wins:
        console.print(f"  {win.emoji} [bold]{win.title}[/bold] [dim]{win.detail}[/dim]")
    if state.chapter_priorities:
        chapters = Table(title="Chapters to Study Next")
        chapters.add_column("Chapter", style="cyan")
        chapters.add_column("Score", justify="right")
        chapters.add_column("Weak", justify="right")
        chapters.add_column("Accuracy", justify="right")
        for c in state.chapter_priorities[:5]:
            chapters.add_row(f"{c.subject}: {c.chapter}", str(c.score),
                             f"{c.weak_topics}/{c.total_topics}", f"{c.avg_accuracy}%")
        console.print(chapters)
    unlocked = [a for a in state.achievements if a.unlocked]
    if unlocked:
        console.print(f"\n[bold]Achievements ({len(unlocked)}/{len(state.achievements)}):[/bold] "
                      + ", ".join(f"{a.icon} {a.title}" for a in unlocked))


def cmd_toggle(session: PlanSession):
    tasks = sorted(session.state.today_plan.tasks, key=lambda t: SLOT_ORDER.index(t.time_slot))
    if not tasks:
        console.print("[yellow]No tasks today.[/yellow]")
        return
    cmd_today(session)
    number = IntPrompt.ask("Task number", choices=[str(i) for i in range(1, len(tasks) + 1)])
    task = tasks[number - 1]
    state = session.toggle_task(task.id)
    now_done = state.today_plan.find_task(task.id).status == "completed"
    console.print(f"[green]{task.topic}: {'done' if now_done else 'back to pending'}[/green]")


def cmd_replan(session: PlanSession):
    minutes = IntPrompt.ask("Minutes available today", default=120)
    try:
        session.replan(minutes)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    cmd_today(session)


def cmd_settings(session: PlanSession):
    state = session.state
    hours = FloatPrompt.ask("Daily study hours", default=float(state.daily_study_hours))
    current = state.target_exam if state.target_exam in DEFAULT_EXAM_DATES else DEFAULT_TARGET_EXAM
    exam = Prompt.ask("Target exam", choices=list(DEFAULT_EXAM_DATES), default=current)
    try:
        state = session.update_settings(hours, exam)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    show_notice(state)


def cmd_import(db_path: str, session: PlanSession):
    file_path = Prompt.ask("Snapshot file (.json / .yaml)")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_snapshot(db_path, file_path, user_id=session.user_id)
    console.print(f"[green]Imported {result['filename']}: {result['topics']} topics, "
                  f"{result['attempts']} attempts[/green]")
    show_notice(session.load_data())


def main():
    logger.remove()
    logger.add(sys.stderr, level="WARNING", format="<level>{message}</level>")

    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    with open_session(db_path) as session:
        state = session.load_data()
        show_notice(state)
        show_welcome(state)

        while True:
            show_menu()
            choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
            try:
                if choice == "today":
                    cmd_today(session)
                elif choice == "week":
                    cmd_week(session)
                elif choice == "day":
                    cmd_day(session)
                elif choice == "revision":
                    cmd_revision(session)
                elif choice == "insights":
                    cmd_insights(session)
                elif choice == "toggle":
                    cmd_toggle(session)
                elif choice == "replan":
                    cmd_replan(session)
                elif choice == "settings":
                    cmd_settings(session)
                elif choice == "import":
                    cmd_import(db_path, session)
                elif choice == "refresh":
                    show_notice(session.load_data())
                elif choice in ("quit", "exit", "q"):
                    console.print("[dim]Good luck on your exam![/dim]")
                    break
                else:
                    console.print("[red]Unknown command. Try again.[/red]")
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except Exception as e:
                console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
