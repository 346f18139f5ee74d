"""Engine thresholds and defaults."""

from __future__ import annotations

DEFAULT_DAY_ANCHOR_MINUTES = 240

DEFAULT_GAP_THRESHOLD_MIN = 8 * 60
GAP_MULTIPLIER = 10

LONG_SESSION_THRESHOLD_MIN = 6 * 60
DEFAULT_SESSION_MIN = 10
DEFAULT_PLANNED_MIN = 10

FLOATING_SUGGESTION_MIN = 5
FLOATING_SUGGESTION_MAX = 20
FLOATING_DELAY_OPTIONS = (1, 3)

ALLOWED_DELAY_MINUTES = (1, 3, 5, 10)
MAX_FUTURE_MINUTES = 5
DUPLICATE_ACTION_WINDOW_SECONDS = 2
MAX_TARGET_INTERVAL_MIN = 480

LEVEL_THRESHOLDS = (0, 30, 120, 360, 720, 1440, 2880, 5760, 11520, 23040)

# (enabled, target_interval_min, default config)
DEFAULT_MODULE_SETTINGS = {
    "SMOKE": (True, 60, None),
    "SNS": (False, 30, None),
    "CAFFEINE": (False, 180, None),
    "FOCUS": (False, 25, {"default_session_min": DEFAULT_SESSION_MIN}),
}
