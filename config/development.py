import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "class_attendance"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

# Zone the legacy write path used when it stored local midnight as UTC
LEGACY_TIMEZONE = os.getenv("LEGACY_TIMEZONE", "Asia/Kolkata")
ANALYTICS_MAX_WORKERS = int(os.getenv("ANALYTICS_MAX_WORKERS", "1"))
OD_REQUEST_PRIORITY = os.getenv("OD_REQUEST_PRIORITY", "medium")
