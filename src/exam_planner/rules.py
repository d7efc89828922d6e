"""Rule tables for the planning engine.

Every threshold, weight and cap the engine applies lives here so a change in
behaviour is a change to one table. Builders import these names; they never
inline the numbers.
"""

# Topic status thresholds (percent accuracy)
MASTERED_ACCURACY = 90
MASTERED_MIN_QUESTIONS = 15
STRONG_ACCURACY = 75
IMPROVING_ACCURACY = 50

STATUS_ORDER = ("weak", "improving", "strong", "mastered")

# Priority score weights. Bump the version whenever a weight changes:
# every downstream ranking depends on this set.
PRIORITY_WEIGHTS_VERSION = 1
PRIORITY_ACCURACY_WEIGHT = 0.45
PRIORITY_RECENCY_WEIGHT = 0.35
PRIORITY_EXPOSURE_WEIGHT = 0.20
PRIORITY_RECENCY_CAP_DAYS = 30
PRIORITY_EXPOSURE_TARGET = 20

NEVER_PRACTICED_DAYS = 30

# (days_to_exam strictly greater than, study %, revision %, practice %)
# Each row sums to 100.
TIME_ALLOCATION_TABLE = (
    (180, 65, 20, 15),
    (90, 55, 25, 20),
    (45, 40, 35, 25),
    (15, 25, 40, 35),
)
FINAL_ALLOCATION = (15, 40, 45)

# Spaced repetition
REVISION_MIN_DAYS = 2
REVISION_MIN_ACCURACY = 20
REVISION_RETENTION_DAMPING = 0.7
REVISION_RISK_SCALE = 8
REVISION_OVERDUE_DAYS = 7
REVISION_DUE_DAYS = 3
REVISION_QUEUE_SIZE = 8

# Week layout (Python weekday numbering, Monday=0)
REST_WEEKDAY = 6
MOCK_TEST_WEEKDAY = 5

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
DAY_SHORTS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Rest day
REST_DAY_MAX_TASKS = 2
REST_DAY_TASK_MINUTES = 20

# Mock-test day
MOCK_TEST_SHARE = 0.40
MOCK_PRACTICE_SHARE = 0.35
MOCK_PRACTICE_MAX_TASKS = 2
MOCK_PRACTICE_TASK_CAP = 35
MOCK_REVISION_MAX_TASKS = 2
MOCK_REVISION_TASK_CAP = 20
MOCK_REVISION_MIN_DAYS = 4
MOCK_TEST_CHAPTER = "Mixed"
MOCK_TEST_TOPIC = "Mini Mock Test"
MOCK_TEST_ID_TOPIC = "mini-mock"
FALLBACK_SUBJECT = "Physics"

# Weekday morning (study)
MORNING_MAX_TASKS = 2
MORNING_WEAK_CAP = 45
MORNING_IMPROVING_CAP = 35
MORNING_EXTRA_THRESHOLD = 25
MORNING_EXTRA_CAP = 30

# Weekday afternoon (practice)
AFTERNOON_MAX_TASKS = 2
AFTERNOON_TASK_CAP = 30

# Weekday evening (revision)
EVENING_MAX_TASKS = 2
EVENING_TASK_CAP = 25
EVENING_MIN_DAYS = 3
EVENING_MIN_ACCURACY = 30
EVENING_EXTRA_THRESHOLD = 20
EVENING_EXTRA_CAP = 20

MINUTES_PER_QUESTION = 3
MIN_QUESTIONS_TARGET = 3

CRITICAL_STALE_DAYS = 5
LOW_ACCURACY_REASON = 30
FADING_MEMORY_DAYS = 7

# Week rotation: pools this small are passed through unchanged
ROTATION_MIN_TOPICS = 3

# Insights
MAX_WEEKLY_WINS = 4
WIN_DETAIL_ITEMS = 3
RECENT_PRACTICE_DAYS = 7
STREAK_LONG = 7
STREAK_SHORT = 3
QUESTION_MILESTONES = (1000, 500, 100)
CONSISTENCY_HIGH = 80
CONSISTENCY_OK = 65
NOMINAL_PREP_DAYS = 365
ACTIVE_DAYS_PER_WEEK = 6

# Chapter priority: share of weak topics and accuracy gap
CHAPTER_WEAK_SHARE_WEIGHT = 50
CHAPTER_ACCURACY_GAP_WEIGHT = 0.5

# (days_to_exam strictly greater than, phase, label, emoji), nearest last
EXAM_PHASES = (
    (180, "foundation", "Foundation", "🏗️"),
    (120, "building", "Building", "📚"),
    (60, "strengthening", "Strengthening", "💪"),
    (30, "revision-sprint", "Revision Sprint", "🔄"),
    (14, "mock-intensive", "Mock Intensive", "📝"),
)
FINAL_PHASE = ("final-push", "Final Push", "🚀")

# Levels: (level, title, xp needed, icon)
LEVELS = (
    (1, "Aspirant", 0, "🌱"),
    (2, "Learner", 500, "📚"),
    (3, "Scholar", 1500, "🎓"),
    (4, "Practitioner", 3500, "⚡"),
    (5, "Strategist", 7000, "🧠"),
    (6, "Expert", 12000, "💎"),
    (7, "Master", 20000, "👑"),
    (8, "Champion", 35000, "🏆"),
    (9, "Legend", 55000, "🌟"),
    (10, "Genius", 80000, "🔥"),
)
MAX_LEVEL_TITLE = "Max"

# Daily challenges: (type, title, description, target, xp, icon).
# Picked by the sum of the date's year, month and day.
CHALLENGE_TEMPLATES = (
    ("speed-round", "Speed Demon", "Solve 10 Qs under 20 min", 10, 100, "⚡"),
    ("accuracy-challenge", "Sharpshooter", "8/10 correct in a row", 8, 120, "🎯"),
    ("topic-boss", "Topic Boss", "Reach 70% in a weak topic", 70, 150, "👊"),
    ("consistency", "Iron Will", "Complete all tasks today", 100, 200, "🔥"),
)

# Achievements: (id, title, description, icon, rarity, xp, metric, threshold).
# Unlocked once metric >= threshold; unlocks are never revoked.
ACHIEVEMENT_DEFS = (
    ("first-blood", "First Blood", "Complete your first task", "🗡️", "common", 25, "tasks_completed", 1),
    ("streak-3", "Consistent", "3-day study streak", "🔥", "common", 50, "streak", 3),
    ("streak-7", "Dedicated", "7-day study streak", "⚡", "rare", 150, "streak", 7),
    ("streak-30", "Unstoppable", "30-day study streak", "💎", "epic", 500, "streak", 30),
    ("qs-100", "Century", "100 questions solved", "💯", "common", 75, "total_questions", 100),
    ("qs-500", "Half-K Warrior", "500 questions solved", "⚔️", "rare", 250, "total_questions", 500),
    ("qs-1000", "K-Club", "1000 questions solved", "🏆", "epic", 500, "total_questions", 1000),
    ("acc-80", "Precision Strike", "80%+ overall accuracy", "🎯", "rare", 200, "accuracy", 80),
    ("mastery-5", "Scholar", "Master 5 topics", "📚", "rare", 200, "mastered", 5),
    ("mastery-15", "Grandmaster", "Master 15 topics", "👑", "epic", 500, "mastered", 15),
    ("mastery-30", "Legendary Mind", "Master 30 topics", "🌟", "legendary", 1000, "mastered", 30),
    ("level-5", "Strategist", "Reach Level 5", "🧠", "rare", 300, "level", 5),
    ("level-8", "Champion", "Reach Level 8", "🏅", "epic", 750, "level", 8),
    ("level-10", "Genius Mode", "Reach Level 10", "🔥", "legendary", 2000, "level", 10),
)

# Motivation cascade, first match wins
MOTIVATION_FINAL_SPRINT_DAYS = 15
MOTIVATION_LAST_MONTH_DAYS = 30
MOTIVATION_STREAK_HIGH = 10
MOTIVATION_STREAK_MID = 5
MOTIVATION_ACCURACY_HIGH = 80
MOTIVATION_ACCURACY_OK = 60
MOTIVATION_MANY_WEAK = 5
MOTIVATION_STREAK_ANY = 1

# Greeting hour boundaries (exclusive upper bounds)
MORNING_ENDS_HOUR = 12
AFTERNOON_ENDS_HOUR = 17
EVENING_ENDS_HOUR = 21

# Session thresholds and defaults
MIN_QUESTIONS = 10
MIN_TOPICS = 3
DEFAULT_DAILY_HOURS = 4
DEFAULT_TARGET_EXAM = "JEE"
DEFAULT_EXAM_DATES = {
    "JEE": "2026-05-24",
    "NEET": "2026-05-05",
    "CET": "2026-05-20",
    "Scholarship": "2026-02-15",
    "Foundation": "2026-03-15",
}
EXAM_ALIASES = {
    "JEE Main": "JEE",
    "JEE Advanced": "JEE",
    "MHT-CET": "CET",
}
