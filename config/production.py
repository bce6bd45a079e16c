import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "placement_attendance"),
}

STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

WORK_START_TIME = os.getenv("WORK_START_TIME", "08:00")
LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "15"))
MIN_FULL_DAY_HOURS = float(os.getenv("MIN_FULL_DAY_HOURS", "6"))
INCOMPLETE_AFTER_HOURS = float(os.getenv("INCOMPLETE_AFTER_HOURS", "24"))
ABSENCE_BACKDATE_DAYS = int(os.getenv("ABSENCE_BACKDATE_DAYS", "7"))
REQUIRE_SECOND_REVIEWER = bool(int(os.getenv("REQUIRE_SECOND_REVIEWER", "1")))

LATENESS_RATIO = float(os.getenv("LATENESS_RATIO", "0.30"))
ABSENCE_RATIO = float(os.getenv("ABSENCE_RATIO", "0.20"))
INCOMPLETE_THRESHOLD = int(os.getenv("INCOMPLETE_THRESHOLD", "2"))
CONSECUTIVE_ABSENCE_DAYS = int(os.getenv("CONSECUTIVE_ABSENCE_DAYS", "3"))
MIN_SAMPLE_DAYS = int(os.getenv("MIN_SAMPLE_DAYS", "5"))

WEEKEND_DAYS = tuple(int(d) for d in os.getenv("WEEKEND_DAYS", "5,6").split(",") if d.strip())
HOLIDAYS = [d.strip() for d in os.getenv("HOLIDAYS", "").split(",") if d.strip()]
