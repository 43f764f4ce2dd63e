"""
Analytics engine configuration — single source of truth for thresholds,
look-back windows, and settings defaults.

Import from here in all engines rather than hardcoding values.
"""
from __future__ import annotations

import os

# ── Record reader ──────────────────────────────────────────────────────────────

# Upper bound on the whole fan-out read for one report (seconds)
READER_TIMEOUT_S: float = float(os.getenv("ANALYTICS_READER_TIMEOUT_S", "10"))

# Ranking rewards cumulative track record, not just the report window
RANKING_LOOKBACK_DAYS: int = int(os.getenv("ANALYTICS_RANKING_LOOKBACK_DAYS", "365"))

# Number of calendar months in the metrics trend (current month included)
TREND_MONTHS: int = 6


# ── Facility settings defaults ─────────────────────────────────────────────────

DEFAULT_MONTHLY_BUDGET: float = 0.0
DEFAULT_ALERT_THRESHOLD: float = 0.80
DEFAULT_FORECAST_HORIZON_DAYS: int = 14
MIN_FORECAST_HORIZON_DAYS: int = 7
MAX_FORECAST_HORIZON_DAYS: int = 90
DEFAULT_TIMEZONE: str = "UTC"
DEFAULT_TOP_PERFORMERS: int = 5


# ── Forecast alert levels ──────────────────────────────────────────────────────

# staffing_gap_ratio at or above this is CRITICAL; anything above 0 is ELEVATED
CRITICAL_GAP_RATIO: float = 0.5


# ── Cost optimization rules ────────────────────────────────────────────────────

# POST_EARLIER fires when fill rate is below this AND fills are slow
POST_EARLIER_FILL_RATE: float = 0.7
POST_EARLIER_HOURS: float = 48.0
# Share of an average shift recoverable by posting early (no last-minute premium)
POST_EARLIER_SAVINGS_PCT: float = 0.10

# BUDGET_REVIEW lists this many of the most expensive open upcoming shifts
BUDGET_REVIEW_LISTED_SHIFTS: int = 3

# URGENT_RELIANCE: urgent share of postings and urgent cost premium thresholds
URGENT_SHARE_THRESHOLD: float = 0.30
URGENT_PREMIUM_THRESHOLD: float = 0.20

# STAFFING_GAP / APPLICATION_BACKLOG (count triggers, strictly greater than)
STAFFING_GAP_SHIFTS: int = 3
APPLICATION_BACKLOG_PENDING: int = 5

# PREFERRED_PERSONNEL fires while the preferred list is shorter than this;
# a preferred hire is estimated to save this share of an average shift
PREFERRED_PERSONNEL_MIN: int = 5
PREFERRED_PERSONNEL_SAVINGS_PCT: float = 0.15


# ── Report ─────────────────────────────────────────────────────────────────────

REPORT_VERSION: str = "1.0"
