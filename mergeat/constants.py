# Entrius 2025
# =============================================================================
# General
# =============================================================================
SECONDS_PER_MINUTE = 60
MAX_SCHEDULE_DAYS = 30  # furthest a merge can be scheduled ahead

# =============================================================================
# GitHub API
# =============================================================================
BASE_GITHUB_API_URL = "https://api.github.com"
DEFAULT_REQUEST_TIMEOUT = 30  # seconds
COMMENTS_PER_PAGE = 100
SEARCH_RESULTS_PER_PAGE = 100
MERGE_METHOD = "squash"
WRITE_PERMISSIONS = ("admin", "write")

# =============================================================================
# Schedule Metadata
# =============================================================================
SCHEDULE_LABEL = "merge-scheduled"
SCHEDULE_MARKER = "MERGE_SCHEDULE_INFO"
SCHEDULE_INFO_TYPE = "merge-schedule-info"
SCHEDULED_PRS_QUERY = f"is:pr is:open label:{SCHEDULE_LABEL}"

# =============================================================================
# Command Surface
# =============================================================================
COMMAND_PREFIX = "@merge-at"
CANCEL_COMMAND = "@merge-at cancel"
DEFAULT_TIMEZONE = "UTC"

LOCAL_TIME_FORMAT = "%Y-%m-%d %I:%M %p"
UTC_TIME_FORMAT = "%Y-%m-%d %H:%M"

# =============================================================================
# Parser Reasons
# =============================================================================
PARSE_ERROR_PREFIX = "Invalid date/time format: "
REASON_MISSING_PARTS = "Date and time must be provided"
REASON_INVALID_TIME = "Invalid time format"
REASON_INVALID_DATE = "Invalid date format"
REASON_IN_PAST = "Scheduled time must be in the future"
REASON_TOO_FAR = f"Cannot schedule more than {MAX_SCHEDULE_DAYS} days in advance"

# =============================================================================
# User-facing Messages
# =============================================================================
MSG_NO_PERMISSION = "❌ Only users with write permission can schedule PR merges."
MSG_CANCELLED = "🚫 Scheduled merge has been cancelled."
MSG_INVALID_COMMAND = "❌ Invalid command format. Please use: @merge-at YYYY-MM-DD HH:mm[am|pm] [timezone]"
MSG_GENERIC_ERROR = "❌ An error occurred while processing your command. Please try again."
MSG_MERGED = "✅ Successfully merged as scheduled!"

MERGE_FAILED_PREFIX = "Failed to merge PR: "
MERGE_NOT_FOUND = "PR not found or you may not have permission to merge."
MERGE_CONFLICTED = "PR is not mergeable. There might be conflicts."
MERGE_NOT_ALLOWED = "PR is not mergeable at this time. Please resolve any conflicts or check branch protection rules."
MERGE_UNEXPECTED = "An unexpected error occurred."
