"""
Centralized constants for the daily motivation scheduler and dispatcher.

Change job IDs, the tick grid, or notification copy here instead of scattering literals
across main, the job and the dispatcher.
"""

# Scheduler job ID (must match id used in main.py add_job)
DAILY_MOTIVATION_JOB_ID = "daily_motivation"
# The scheduler fires on this grid (UTC-anchored cron: minute="*/15").
# Time bucketing snaps user times to the same grid.
TICK_MINUTES = 15

# Used when a user has no (or an unparsable) preferred time; missing timezones fall back to UTC
DEFAULT_NOTIFICATION_TIME = "09:00"

# FCM registration tokens are ~150 chars and APNs device tokens 64 hex chars;
# anything shorter is a placeholder or a truncated write from the app.
MIN_PUSH_TOKEN_LENGTH = 50

NOTIFICATION_TITLE = "Daily Aura Check-In ✨"
TEST_NOTIFICATION_TITLE = "Test: Daily Aura Check-In ✨"

# Separates a quote from its author in notification bodies and AI output
ATTRIBUTION_DELIMITER = " — "

# Sent when the quote pool is empty and AI content is unavailable
FALLBACK_MESSAGE = "Today is a good day to check in with how you feel."
