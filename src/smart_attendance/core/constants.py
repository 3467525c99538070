"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import date

# Storage key for a mark that is not tied to a scheduled period.
DAILY_PERIOD_KEY = 0

REPORT_EPOCH = date(1970, 1, 1)
DEFAULT_HISTORY_LIMIT = 500
DEFAULT_TOKEN_TTL_HOURS = 12
DEFAULT_TEMP_PASSWORD = "Welcome#4"
MIN_PASSWORD_LENGTH = 6

SCAN_LOG_HEADER = ("RegNo", "Name", "Status", "Timestamp")
