"""Constants and default values."""

# Habit lengths
AUTOPILOT_TOTAL_DAYS = 21
MANUAL_MIN_DAYS = 3
MANUAL_MAX_DAYS = 365

# Mini missions
MIN_ESTIMATED_MINUTES = 1
DEFAULT_ESTIMATED_MINUTES = 15
DEFAULT_EXTEND_MINUTES = 5

# XP awards
XP_PER_LEVEL = 100
HABIT_DAY_XP = 10
MINI_MISSION_XP = 15
EARLY_FINISH_BONUS_XP = 10

# Bonus keyed to the streak value reached by a day completion
STREAK_MILESTONE_BONUS = {
    7: 50,
    14: 75,
    21: 150,
}
WEEKLY_STREAK_BONUS = 30  # every other multiple of 7
WEEKLY_STREAK_MIN = 3

# Streak banner tiers (minimum streak, name), highest first
STREAK_TIERS = [
    (21, "legendary"),
    (14, "epic"),
    (7, "hot"),
    (3, "warm"),
]

# Persistence
DEFAULT_SNAPSHOT_KEY = "habit-storage"

# Default timezone
DEFAULT_TIMEZONE = "UTC"
