"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PERIOD_DAYS = 7
DATE_KEY_FORMAT = "%Y-%m-%d"
DISPLAY_DECIMALS = 2

# Backend int status for logically deleted records (patterns, details, timesheets).
INT_STATUS_DELETED = 3

# Fixed pivot rows that carry calendar overlay durations.
PIVOT_HOLIDAY_ROW = "holiday"
PIVOT_ABSENCE_ROW = "absence"
PIVOT_TOTAL_KEY = "total"

DEFAULT_PREFERRED_LANGUAGES = ("en", "de")
