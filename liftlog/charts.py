"""
Liftlog Analytics — Chart series

Downsamples one exercise's working sets into chart buckets whose size adapts
to how much history is on screen, normalizes every metric series to [0, 1]
and fits a least-squares trend line to each.
"""
import logging
from dataclasses import asdict
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from liftlog.analytics import mark_personal_bests
from liftlog.config import (
    BODYWEIGHT_TREND_METRICS,
    DAILY_SPAN_DAYS,
    DEFAULT_CHART_RANGE,
    NORMALIZE_MIN_PADDING,
    NORMALIZE_PADDING_RATIO,
    WEEKLY_SPAN_DAYS,
    WEIGHTED_TREND_METRICS,
    get_range_days,
    get_range_tier,
)
from liftlog.frames import exercise_kind, records_to_dataframe, working_frame
from liftlog.grouping import bucket_for_day, to_instant
from liftlog.models import (
    ChartPoint,
    ChartRange,
    ChartSeries,
    ExerciseKind,
    Granularity,
    SetRecord,
    TrendLine,
)

logger = logging.getLogger(__name__)

# metric column -> ChartPoint field holding its normalized value
NORMALIZED_FIELDS = {
    "max_weight": "normalized_weight",
    "max_reps": "normalized_reps",
    "total_volume": "normalized_volume",
    "total_reps": "normalized_total_reps",
}


def choose_granularity(span_days: int, chart_range: ChartRange) -> Granularity:
    """
    Bucket size for a data span and a selected range.

    Under DAILY_SPAN_DAYS everything is daily. Under WEEKLY_SPAN_DAYS only
    the shortest range stays daily. Beyond that the shortest range is daily,
    the middle one weekly and the longer ones monthly.
    """
    tier = get_range_tier(ChartRange.parse(chart_range).value)
    if span_days < DAILY_SPAN_DAYS:
        return Granularity.DAILY
    if span_days < WEEKLY_SPAN_DAYS:
        return Granularity.DAILY if tier == "short" else Granularity.WEEKLY
    if tier == "short":
        return Granularity.DAILY
    if tier == "middle":
        return Granularity.WEEKLY
    return Granularity.MONTHLY


def normalize_series(values: Sequence[float]) -> np.ndarray:
    """
    Map a series onto [0, 1] with padding above and below.

    Padding is 10% of the value range but at least one unit, so a flat or
    single-point series lands on the midpoint instead of dividing by zero.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return arr
    lo, hi = arr.min(), arr.max()
    padding = max((hi - lo) * NORMALIZE_PADDING_RATIO, NORMALIZE_MIN_PADDING)
    # width never drops below 1, even with a zero padding floor
    width = max(hi - lo + 2 * padding, 1.0)
    return (arr - (lo - padding)) / width


def fit_trend(values: Sequence[float]) -> TrendLine | None:
    """Ordinary least squares of value against 0-based index; None when underdetermined."""
    y = np.asarray(values, dtype=float)
    n = y.size
    if n < 2:
        return None
    x = np.arange(n, dtype=float)
    # n·Σx² − (Σx)² is n² times the variance of x; zero means no spread to fit
    denominator = n * np.sum(x * x) - np.sum(x) ** 2
    if denominator == 0:
        return None
    slope = (n * np.sum(x * y) - np.sum(x) * np.sum(y)) / denominator
    intercept = (np.sum(y) - slope * np.sum(x)) / n
    return TrendLine(slope=float(slope), intercept=float(intercept))


def build_chart(
    records: Iterable[SetRecord],
    kind: ExerciseKind | None = None,
    chart_range: ChartRange | None = None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> ChartSeries:
    """
    Chart points and trend lines for one exercise.

    PB flags come from the full history, so a PB set keeps its marker when
    the range cuts off the sets it beat.
    """
    records = list(records)
    chart_range = ChartRange.parse(chart_range or DEFAULT_CHART_RANGE)
    kind = ExerciseKind.parse(kind) if kind is not None else exercise_kind(records)
    pb_ids = mark_personal_bests(records, kind, tz)

    df = working_frame(records_to_dataframe(records, tz))
    lookback = get_range_days(chart_range.value)
    if lookback is not None and not df.empty:
        cutoff = to_instant(now or datetime.now(), tz) - timedelta(days=lookback)
        df = df[df["instant"] >= cutoff].copy()

    if df.empty:
        return ChartSeries()

    span_days = (df["day"].max() - df["day"].min()).days
    granularity = choose_granularity(span_days, chart_range)
    logger.debug("Chart %s: %d sets over %d days -> %s buckets",
                 chart_range.value, len(df), span_days, granularity.value)

    df["bucket"] = df["day"].map(lambda d: bucket_for_day(d, granularity))
    df["is_pb"] = df["set_id"].isin(pb_ids)
    buckets = (
        df.groupby("bucket")
        .agg(
            max_weight=("weight", "max"),
            max_reps=("reps", "max"),
            total_volume=("volume", "sum"),
            total_reps=("reps", "sum"),
            is_pb=("is_pb", "any"),
        )
        .reset_index()
        .sort_values("bucket")
        .reset_index(drop=True)
    )

    normalized = {metric: normalize_series(buckets[metric]) for metric in NORMALIZED_FIELDS}

    points = tuple(
        ChartPoint(
            index=i,
            bucket_date=row.bucket,
            max_weight=float(row.max_weight),
            max_reps=int(row.max_reps),
            total_volume=float(row.total_volume),
            total_reps=int(row.total_reps),
            is_pb=bool(row.is_pb),
            **{field: float(normalized[metric][i]) for metric, field in NORMALIZED_FIELDS.items()},
        )
        for i, row in enumerate(buckets.itertuples(index=False))
    )

    metrics = WEIGHTED_TREND_METRICS if kind is ExerciseKind.WEIGHTED else BODYWEIGHT_TREND_METRICS
    trends = {metric: fit_trend(normalized[metric]) for metric in metrics}

    return ChartSeries(points=points, trends=trends, granularity=granularity, span_days=span_days)


def chart_frame(series: ChartSeries) -> pd.DataFrame:
    """Chart points as a DataFrame, one row per bucket."""
    columns = list(ChartPoint.__dataclass_fields__)
    if series.is_empty:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([asdict(p) for p in series.points], columns=columns)
