"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_WORK_START = "08:00"
DEFAULT_LATE_GRACE_MINUTES = 15
DEFAULT_MIN_FULL_DAY_HOURS = 6.0
DEFAULT_INCOMPLETE_AFTER_HOURS = 24
DEFAULT_ABSENCE_BACKDATE_DAYS = 7

DEFAULT_LATENESS_RATIO = 0.30
DEFAULT_ABSENCE_RATIO = 0.20
DEFAULT_INCOMPLETE_THRESHOLD = 2
DEFAULT_CONSECUTIVE_ABSENCE_DAYS = 3
DEFAULT_MIN_SAMPLE_DAYS = 5

# Monday=0 ... Sunday=6
DEFAULT_WEEKEND_DAYS = (5, 6)

SYSTEM_ABSENCE_REASON = "No check-in recorded"
DEFAULT_HISTORY_LIMIT = 30
