"""Subject breakdowns, weekly wins and summary statistics."""
from exam_planner.analyzer import round_half_up
from exam_planner.models import (
    Achievement, ChapterPriority, DailyChallenge, DayPlan, LevelInfo, PlannerStats, Profile,
    SubjectBreakdown, WeeklyWin,
)
from exam_planner.rules import (
    ACHIEVEMENT_DEFS, ACTIVE_DAYS_PER_WEEK, CHALLENGE_TEMPLATES, CHAPTER_ACCURACY_GAP_WEIGHT,
    CHAPTER_WEAK_SHARE_WEIGHT, CONSISTENCY_HIGH, CONSISTENCY_OK, DEFAULT_DAILY_HOURS,
    EXAM_PHASES, FINAL_PHASE, LEVELS, MAX_LEVEL_TITLE, MAX_WEEKLY_WINS, NOMINAL_PREP_DAYS,
    QUESTION_MILESTONES, RECENT_PRACTICE_DAYS, STREAK_LONG, STREAK_SHORT, WIN_DETAIL_ITEMS,
)


def count_status(topics, status: str) -> int:
    return sum(1 for t in topics if t.status == status)


def average_accuracy(topics) -> int:
    topics = list(topics)
    if not topics:
        return 0
    return round_half_up(sum(t.accuracy for t in topics) / len(topics))


def subject_breakdowns(topics) -> list[SubjectBreakdown]:
    """Per-subject rollup, weakest subject first."""
    by_subject = {}
    for t in topics:
        by_subject.setdefault(t.subject, []).append(t)
    breakdowns = [
        SubjectBreakdown(
            subject=subject,
            avg_accuracy=average_accuracy(group),
            topic_count=len(group),
            mastered_count=count_status(group, "mastered"),
            strong_count=count_status(group, "strong"),
            improving_count=count_status(group, "improving"),
            weak_count=count_status(group, "weak"),
            topics=tuple(sorted(group, key=lambda t: t.priority_score, reverse=True)),
        )
        for subject, group in by_subject.items()
    ]
    return sorted(breakdowns, key=lambda b: b.avg_accuracy)


def chapter_priorities(topics) -> list[ChapterPriority]:
    """Rank (subject, chapter) pairs: more weak topics and lower accuracy come first."""
    by_chapter = {}
    for t in topics:
        by_chapter.setdefault((t.subject, t.chapter), []).append(t)
    priorities = []
    for (subject, chapter), group in by_chapter.items():
        weak = count_status(group, "weak")
        avg = average_accuracy(group)
        score = round_half_up(
            weak / len(group) * CHAPTER_WEAK_SHARE_WEIGHT
            + (100 - avg) * CHAPTER_ACCURACY_GAP_WEIGHT
        )
        priorities.append(ChapterPriority(subject, chapter, score, weak, len(group), avg))
    return sorted(priorities, key=lambda p: p.score, reverse=True)


def exam_phase(days_to_exam: int) -> str:
    for more_than, phase, _, _ in EXAM_PHASES:
        if days_to_exam > more_than:
            return phase
    return FINAL_PHASE[0]


def phase_label(phase: str) -> str:
    for _, key, label, emoji in EXAM_PHASES + ((0,) + FINAL_PHASE,):
        if key == phase:
            return f"{emoji} {label}"
    return phase


def level_info(xp: int) -> LevelInfo:
    current = LEVELS[0]
    for row in LEVELS:
        if xp >= row[2]:
            current = row
        else:
            break
    following = next((row for row in LEVELS if row[2] > xp), None)
    level, title, floor_xp, icon = current
    if following is None:
        return LevelInfo(level, title, icon, 0, 100, MAX_LEVEL_TITLE)
    progress = (xp - floor_xp) / (following[2] - floor_xp) * 100
    return LevelInfo(level, title, icon, following[2] - xp, round_half_up(progress), following[1])


def pick_daily_challenge(date_str: str) -> DailyChallenge:
    """Same date, same challenge."""
    day_hash = sum(int(part) for part in date_str.split("-"))
    kind, title, description, target, xp, icon = CHALLENGE_TEMPLATES[day_hash % len(CHALLENGE_TEMPLATES)]
    return DailyChallenge(
        id=f"challenge-{date_str}",
        type=kind,
        title=title,
        description=description,
        target=target,
        xp_reward=xp,
        icon=icon,
    )


def compute_achievements(metrics: dict, unlocked_ids=()) -> list[Achievement]:
    """Evaluate every achievement against metrics; earlier unlocks stay unlocked.

    ``metrics`` maps the metric names used in ACHIEVEMENT_DEFS (streak,
    total_questions, accuracy, mastered, level, tasks_completed) to values.
    """
    unlocked_ids = set(unlocked_ids)
    return [
        Achievement(
            id=achievement_id,
            title=title,
            description=description,
            icon=icon,
            rarity=rarity,
            xp_reward=xp,
            unlocked=achievement_id in unlocked_ids or metrics.get(metric, 0) >= threshold,
        )
        for achievement_id, title, description, icon, rarity, xp, metric, threshold in ACHIEVEMENT_DEFS
    ]


def _milestone_win(total_questions: int):
    top, middle, first = QUESTION_MILESTONES
    if total_questions >= top:
        return WeeklyWin("milestone", f"{top}+ questions solved!",
                         "You're in the top 5% of serious aspirants.", "💎")
    elif total_questions >= middle:
        return WeeklyWin("milestone", f"{middle}+ questions done!",
                         "Halfway to serious mastery.", "🎯")
    elif total_questions >= first:
        return WeeklyWin("milestone", f"{total_questions} questions conquered!",
                         "Building momentum.", "🚀")
    return None


def detect_weekly_wins(topics, streak: int, avg_accuracy: float,
                       total_questions: int) -> list[WeeklyWin]:
    wins = []

    mastered = [t for t in topics if t.status == "mastered"]
    if mastered:
        title = (f"Mastered {mastered[0].topic}!" if len(mastered) == 1
                 else f"{len(mastered)} topics mastered!")
        detail = ", ".join(t.topic for t in mastered[:WIN_DETAIL_ITEMS])
        wins.append(WeeklyWin("mastered", title, detail, "🏆"))

    strong_recent = [
        t for t in topics
        if t.status == "strong" and t.days_since_practice <= RECENT_PRACTICE_DAYS
    ]
    if strong_recent:
        detail = ", ".join(f"{t.topic} ({t.accuracy}%)" for t in strong_recent[:WIN_DETAIL_ITEMS])
        wins.append(WeeklyWin("improved", f"{len(strong_recent)} topics going strong", detail, "📈"))

    if streak >= STREAK_LONG:
        wins.append(WeeklyWin("streak", f"{streak}-day streak!",
                              "Consistency beats intensity. You're proving it.", "🔥"))
    elif streak >= STREAK_SHORT:
        wins.append(WeeklyWin("streak", f"{streak} days strong!",
                              "Building the habit. Keep going.", "⚡"))

    milestone = _milestone_win(total_questions)
    if milestone:
        wins.append(milestone)

    if avg_accuracy >= CONSISTENCY_HIGH:
        wins.append(WeeklyWin("consistency", f"{round_half_up(avg_accuracy)}% overall accuracy",
                              "Elite-level precision. AIR under 5000 territory.", "🎯"))
    elif avg_accuracy >= CONSISTENCY_OK:
        wins.append(WeeklyWin("consistency", f"{round_half_up(avg_accuracy)}% and climbing",
                              "Solid foundation. Push to 80% for top ranks.", "💪"))

    return wins[:MAX_WEEKLY_WINS]


def journey_percent(days_to_exam: int) -> int:
    # Provisional: assumes a fixed nominal prep cycle rather than the
    # learner's actual start date.
    elapsed = NOMINAL_PREP_DAYS - days_to_exam
    return min(99, max(1, round_half_up(elapsed / NOMINAL_PREP_DAYS * 100)))


def compute_stats(topics, profile: Profile, days_to_exam: int, today_plan: DayPlan) -> PlannerStats:
    topics = list(topics)
    daily_hours = profile.daily_study_hours or DEFAULT_DAILY_HOURS
    xp = profile.total_points or 0
    level = level_info(xp)
    return PlannerStats(
        days_to_exam=max(0, days_to_exam),
        journey_percent=journey_percent(days_to_exam),
        total_topics_practiced=len(topics),
        mastered_count=count_status(topics, "mastered"),
        strong_count=count_status(topics, "strong"),
        improving_count=count_status(topics, "improving"),
        weak_count=count_status(topics, "weak"),
        avg_accuracy=average_accuracy(topics),
        current_streak=profile.current_streak or 0,
        today_tasks_total=len(today_plan.tasks),
        today_tasks_done=today_plan.completed_count,
        weekly_study_minutes=round_half_up(daily_hours * 60 * ACTIVE_DAYS_PER_WEEK),
        exam_phase=exam_phase(days_to_exam),
        current_xp=xp,
        level=level.level,
        level_title=level.title,
        xp_to_next_level=level.xp_to_next,
        xp_progress=level.progress,
    )
