"""Shared constants for migraflow."""

from enum import IntEnum

# Cache key prefixes for per-project artifacts
ANALYSIS_RESULT_KEY = "cachedAnalysisResult"
CONVERSION_PLANNER_KEY = "cachedConversionPlanner"
TRANSFORMATION_DATA_KEY = "cachedTransformationData"

# Well-known keys shared by the whole store (not partitioned per project)
SELECTED_REPOSITORY_KEY = "selectedRepository"
STEP_STATE_KEY = "stepState"
PHASE_NOTIFICATIONS_KEY = "phase_notifications"
UI_PREFERENCES_KEY = "ui-preferences"

# Expiration presets in seconds. ``None`` never expires.
ONE_HOUR = 60 * 60
ONE_DAY = 24 * ONE_HOUR
ONE_WEEK = 7 * ONE_DAY

DEFAULT_PHASE_TIMEOUT = 600.0

# Keys left behind by token-based auth; they are purged on startup.
DEPRECATED_KEYS = (
    "github_token",
    "access_token",
    "refresh_token",
    "authToken",
    "mcp_session_token",
    "github_oauth_code",
)


class Step(IntEnum):
    """Fixed, ordered workflow steps."""

    UPLOAD = 1
    ANALYZE = 2
    TRANSFORM = 3
    EXPORT = 4


FIRST_STEP = Step.UPLOAD
LAST_STEP = Step.EXPORT
