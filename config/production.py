import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "class_attendance"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LEGACY_TIMEZONE = os.getenv("LEGACY_TIMEZONE", "Asia/Kolkata")
ANALYTICS_MAX_WORKERS = int(os.getenv("ANALYTICS_MAX_WORKERS", "4"))
OD_REQUEST_PRIORITY = os.getenv("OD_REQUEST_PRIORITY", "medium")
