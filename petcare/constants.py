"""Default values shared by the configuration layer and the engine components."""

from __future__ import annotations

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE

GAUGE_MIN = 0.0
GAUGE_MAX = 100.0

# Two or more gauges below this value make the pet sick.
SICK_THRESHOLD = 20.0
SICK_GAUGE_COUNT = 2

DEFAULT_DIFFICULTY = "normal"

# Proactive requests
DEFAULT_PROACTIVE_BASE_INTERVAL_MS = 30 * MS_PER_MINUTE
DEFAULT_PROACTIVE_MIN_INTERVAL_MS = 5 * MS_PER_MINUTE
DEFAULT_PROACTIVE_MAX_INTERVAL_MS = 2 * MS_PER_HOUR
DEFAULT_DECLINE_PENALTY = 1.2
DEFAULT_URGENCY_FLOOR = 20

# Auto work
DEFAULT_AUTO_WORK_IDLE_MINUTES = 30
DEFAULT_AUTO_WORK_MAX_HOURS = 2.5
DEFAULT_AUTO_WORK_DAILY_HOURS = 4.0
DEFAULT_AUTO_WORK_MIN_MOOD = 30.0
DEFAULT_AUTO_WORK_MIN_ENERGY = 30.0
EXPERIENCE_PER_COIN = 0.6
INTIMACY_BONUS_DIVISOR = 1000.0

# Interaction cooldowns in seconds
DEFAULT_INTERACTION_COOLDOWNS = {
    "feed": 120,
    "play": 90,
    "pet": 60,
    "clean": 300,
    "sleep": 3600,
    "work": 1800,
    "study": 1200,
}

# Status report thresholds
REPORT_SATIETY_WARNING = 35.0
REPORT_HYGIENE_WARNING = 40.0
REPORT_ENERGY_WARNING = 35.0
REPORT_BOREDOM_WARNING = 70.0

# Daemon
DEFAULT_TICK_SECONDS = 45.0
DEFAULT_HISTORY_LIMIT = 200
