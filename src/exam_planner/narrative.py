"""Personalized greeting and motivation line."""
from datetime import datetime

from exam_planner.rules import (
    AFTERNOON_ENDS_HOUR, EVENING_ENDS_HOUR, MORNING_ENDS_HOUR, MOTIVATION_ACCURACY_HIGH,
    MOTIVATION_ACCURACY_OK, MOTIVATION_FINAL_SPRINT_DAYS, MOTIVATION_LAST_MONTH_DAYS,
    MOTIVATION_MANY_WEAK, MOTIVATION_STREAK_ANY, MOTIVATION_STREAK_HIGH, MOTIVATION_STREAK_MID,
)


def display_name(name) -> str:
    if not name or not name.strip():
        return "there"
    return name.split()[0]


def salutation(name, hour: int) -> str:
    who = display_name(name)
    if hour < MORNING_ENDS_HOUR:
        return f"Good morning, {who}"
    elif hour < AFTERNOON_ENDS_HOUR:
        return f"Good afternoon, {who}"
    elif hour < EVENING_ENDS_HOUR:
        return f"Good evening, {who}"
    return f"Night owl mode, {who}?"


def motivation_line(streak: int, avg_accuracy: float, days_to_exam: int, weak_count: int) -> str:
    # First matching rule wins.
    if days_to_exam <= MOTIVATION_FINAL_SPRINT_DAYS:
        return "Final sprint. Every question you solve today counts double."
    elif days_to_exam <= MOTIVATION_LAST_MONTH_DAYS:
        return "Last month. This is where toppers separate from the rest."
    elif streak >= MOTIVATION_STREAK_HIGH:
        return f"{streak}-day streak. You're not just studying — you're building dominance."
    elif streak >= MOTIVATION_STREAK_MID:
        return f"{streak} days consistent. Champions are built in streaks like this."
    elif avg_accuracy >= MOTIVATION_ACCURACY_HIGH:
        return "Your accuracy is in the toppers zone. Don't let up."
    elif avg_accuracy >= MOTIVATION_ACCURACY_OK:
        return "Solid progress. Focus on weak spots today and watch your rank climb."
    elif weak_count > MOTIVATION_MANY_WEAK:
        return f"{weak_count} topics to conquer. Start with the hardest one — momentum follows."
    elif streak >= MOTIVATION_STREAK_ANY:
        return "You showed up yesterday. Show up again today. That's the formula."
    return "Every expert was once a beginner. Today is your day to start."


def build_greeting(name, streak: int, avg_accuracy: float, days_to_exam: int,
                   weak_count: int, now: datetime = None) -> tuple[str, str]:
    """Return (greeting, motivation)."""
    now = now or datetime.now()
    return (
        salutation(name, now.hour),
        motivation_line(streak, avg_accuracy, days_to_exam, weak_count),
    )
