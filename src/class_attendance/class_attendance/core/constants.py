"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_LEGACY_TIMEZONE = "Asia/Kolkata"
DEFAULT_ANALYTICS_WORKERS = 1
DEFAULT_PENDING_LIMIT = 200

MAX_NOTES_LENGTH = 1000
MAX_HOLIDAY_REASON_LENGTH = 255
MAX_REMARKS_LENGTH = 500

OD_REQUEST_PREFIX = "ODR"
RE_MARK_REMARK = "superseded by re-mark"
ALREADY_MARKED_REMARK = "attendance already marked"
LOST_RACE_REMARK = "edit lost to a concurrent update"
WRITE_FAILED_REMARK = "attendance write failed"
UPDATE_RETRY_ATTEMPTS = 3

# MySQL duplicate-key errno
ER_DUP_ENTRY = 1062
