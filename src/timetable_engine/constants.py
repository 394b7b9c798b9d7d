"""Default values used across the timetable engine."""

# Week layout
DEFAULT_WORKING_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]
DEFAULT_PERIODS_PER_DAY = 8
DEFAULT_PERIOD_DURATION_MINUTES = 40
DEFAULT_SCHOOL_START_TIME = "08:00"

# (after_period, duration_minutes)
DEFAULT_BREAK_PERIODS = [(2, 20), (5, 40)]

# Search budget
MAX_ITERATIONS = 10000
DEFAULT_TIME_LIMIT_SECONDS = 30.0

# Optimizer
DEFAULT_OPTIMIZER_MAX_PASSES = 3

# Goal weights (relative, renormalized over the goals that are enabled)
DEFAULT_GOAL_WEIGHTS = {
    "minimize_conflicts": 0.4,
    "balance_teacher_load": 0.3,
    "maximize_room_utilization": 0.2,
    "respect_preferences": 0.1,
}

DEFAULT_OPTIMIZATION_GOALS = [
    "minimize_conflicts",
    "balance_teacher_load",
    "maximize_room_utilization",
]

# MCV degree weights
DEFAULT_HEURISTIC_WEIGHTS = {
    "shared_class": 1.0,
    "shared_teacher": 1.0,
    "shared_subject": 0.5,
}

# Scoring penalties
CONFLICT_PENALTY = 10
UNRESOLVED_PENALTY = 5
LOAD_VARIANCE_PENALTY = 5

DEFAULT_PROFICIENCY = 3
MIN_PROFICIENCY = 1
MAX_PROFICIENCY = 5

# Preference bonus weights
PREFERENCE_WEIGHTS = {
    "teacher_preferred_period": 1.0,
    "preferred_window": 1.0,
}
