"""
Liftlog Analytics — Configuration

Thresholds and presentation defaults for the analytics pipeline.
Every numeric constant can be overridden from the environment so a host
application can tune the chart ladder without touching code.
"""
import os
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _env_number(name: str, default: float, cast=float):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return cast(default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


# ── Time zone ────────────────────────────────────────────────────────
# Naive timestamps are taken as local wall time. Aware timestamps are
# converted to this zone before the calendar day is taken; empty means
# the system local zone.
TIMEZONE = os.environ.get("LIFTLOG_TIMEZONE", "")

_cached_timezone: tzinfo | None = None


def get_timezone() -> tzinfo | None:
    """
    Resolve LIFTLOG_TIMEZONE to a tzinfo.

    Returns None when unset, which callers treat as "system local zone".
    Caches the result for the process lifetime.
    """
    global _cached_timezone
    if not TIMEZONE:
        return None
    if _cached_timezone is None:
        try:
            _cached_timezone = ZoneInfo(TIMEZONE)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"LIFTLOG_TIMEZONE: unknown zone {TIMEZONE!r}") from exc
    return _cached_timezone


# ── Chart granularity ladder ─────────────────────────────────────────
DAILY_SPAN_DAYS = _env_number("LIFTLOG_DAILY_SPAN_DAYS", 180, int)
WEEKLY_SPAN_DAYS = _env_number("LIFTLOG_WEEKLY_SPAN_DAYS", 365, int)

# ── Series normalization ─────────────────────────────────────────────
NORMALIZE_PADDING_RATIO = _env_number("LIFTLOG_NORMALIZE_PADDING_RATIO", 0.1)
NORMALIZE_MIN_PADDING = _env_number("LIFTLOG_NORMALIZE_MIN_PADDING", 1.0)

# ── Session timing ───────────────────────────────────────────────────
SESSION_REST_SECONDS = _env_number("LIFTLOG_SESSION_REST_SECONDS", 180, int)

# ═════════════════════════════════════════════════════════════════════
# CHART RANGES: keyed by ChartRange value
#
# "tier" places the range on the granularity ladder:
#   short  → always daily
#   middle → weekly once the data spans a year
#   long   → monthly once the data spans a year
# ═════════════════════════════════════════════════════════════════════

CHART_RANGES = {
    "1M": {"label": "1 Month", "days": 30, "tier": "short"},
    "3M": {"label": "3 Months", "days": 90, "tier": "middle"},
    "1Y": {"label": "1 Year", "days": 365, "tier": "long"},
    "ALL": {"label": "All Time", "days": None, "tier": "long"},
}

DEFAULT_CHART_RANGE = os.environ.get("LIFTLOG_DEFAULT_CHART_RANGE", "ALL")

# Trend lines fitted per exercise kind, in display order
WEIGHTED_TREND_METRICS = ("max_weight", "max_reps", "total_volume", "total_reps")
BODYWEIGHT_TREND_METRICS = ("max_reps", "total_reps")


def get_range_days(range_key: str) -> int | None:
    """Lookback window in days for a chart range, None for all-time."""
    return CHART_RANGES[range_key]["days"]


def get_range_tier(range_key: str) -> str:
    """Ladder tier ("short", "middle", "long") for a chart range."""
    return CHART_RANGES[range_key]["tier"]


def get_range_label(range_key: str) -> str:
    return CHART_RANGES[range_key]["label"]
