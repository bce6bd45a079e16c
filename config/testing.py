import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "placement_attendance_test"),
}

STORE_BACKEND = "memory"

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False

WORK_START_TIME = "08:00"
LATE_GRACE_MINUTES = 15
MIN_FULL_DAY_HOURS = 6.0
INCOMPLETE_AFTER_HOURS = 24
ABSENCE_BACKDATE_DAYS = 7
REQUIRE_SECOND_REVIEWER = True

LATENESS_RATIO = 0.30
ABSENCE_RATIO = 0.20
INCOMPLETE_THRESHOLD = 2
CONSECUTIVE_ABSENCE_DAYS = 3
MIN_SAMPLE_DAYS = 5

WEEKEND_DAYS = (5, 6)
HOLIDAYS = []
