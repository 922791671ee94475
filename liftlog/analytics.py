"""
Liftlog Analytics — Session metrics and personal bests

Working-set rule: warm-ups and bonus sets never contribute to any metric or
to PB detection. Drop sets are ordinary working sets.
"""
import logging
from datetime import date, datetime, tzinfo
from typing import Iterable

import numpy as np
import pandas as pd

from liftlog.config import SESSION_REST_SECONDS
from liftlog.frames import FRAME_COLUMNS, exercise_kinds, records_to_dataframe, working_frame
from liftlog.grouping import day_start, group_sets, to_instant
from liftlog.models import (
    ExerciseKind,
    Granularity,
    PersonalRecord,
    SessionAggregate,
    SetRecord,
    WeightGroup,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# 1. SESSION METRICS
# ═══════════════════════════════════════════════════════════════════════

def working_sets(records: Iterable[SetRecord]) -> list[SetRecord]:
    return [r for r in records if r.is_working]


def aggregate(records: Iterable[SetRecord], day: date | None = None, tz: tzinfo | None = None) -> SessionAggregate:
    """
    Collapse one bucket of sets into a SessionAggregate.

    Filters working sets itself, so raw bucket contents can be passed in.
    reps_at_max_weight is the best rep count among the sets at the top
    weight, not the first or last one logged. Empty input gives an
    all-zero aggregate.
    """
    sets = working_sets(records)
    if not sets:
        return SessionAggregate(date=day)

    if day is None:
        day = day_start(sets[0].timestamp, tz)

    weights = [s.weight for s in sets]
    reps_list = [s.reps for s in sets]
    max_w = max(weights)
    reps_at_max = [r for wt, r in zip(weights, reps_list) if wt == max_w]

    return SessionAggregate(
        date=day,
        sets=tuple(sets),
        volume=sum(wt * r for wt, r in zip(weights, reps_list)),
        max_weight=max_w,
        reps_at_max_weight=max(reps_at_max),
        max_reps=max(reps_list),
        total_reps=sum(reps_list),
        set_count=len(sets),
    )


def session_aggregates(
    records: Iterable[SetRecord],
    granularity: Granularity = Granularity.DAILY,
    tz: tzinfo | None = None,
) -> list[SessionAggregate]:
    """One aggregate per bucket with working sets, oldest first."""
    grouped = group_sets(working_sets(records), granularity, tz)
    return [aggregate(sets, day) for day, sets in grouped.items()]


def session_table(records: Iterable[SetRecord], tz: tzinfo | None = None) -> pd.DataFrame:
    """
    Daily aggregates as a DataFrame, one row per exercise per day.
    Same numbers as session_aggregates, for callers that stay in pandas.
    """
    columns = ["exercise_id", "day", "set_count", "volume", "max_weight",
               "reps_at_max_weight", "max_reps", "total_reps"]
    df = working_frame(records_to_dataframe(records, tz))
    if df.empty:
        return pd.DataFrame(columns=columns)

    table = (
        df.groupby(["exercise_id", "day"])
        .agg(
            set_count=("set_id", "count"),
            volume=("volume", "sum"),
            max_weight=("weight", "max"),
            max_reps=("reps", "max"),
            total_reps=("reps", "sum"),
        )
        .reset_index()
    )

    top = df.merge(table[["exercise_id", "day", "max_weight"]], on=["exercise_id", "day"])
    at_max = (
        top[top["weight"] == top["max_weight"]]
        .groupby(["exercise_id", "day"])["reps"]
        .max()
        .rename("reps_at_max_weight")
        .reset_index()
    )
    table = table.merge(at_max, on=["exercise_id", "day"], how="left")
    return table[columns].sort_values(["exercise_id", "day"]).reset_index(drop=True)


def session_breakdown(session: SessionAggregate) -> list[WeightGroup]:
    """Group a session's sets by weight, in the order each weight first appeared."""
    reps_by_weight: dict[float, list[int]] = {}
    for s in session.sets:
        reps_by_weight.setdefault(s.weight, []).append(s.reps)
    return [WeightGroup(weight=w, reps=tuple(reps)) for w, reps in reps_by_weight.items()]


def session_duration_minutes(records: Iterable[SetRecord], tz: tzinfo | None = None) -> int | None:
    """
    Minutes from the first to the last set plus one rest period after the
    last set. A single set counts as one rest period; never below 1.
    """
    times = [to_instant(r.timestamp, tz) for r in records]
    if not times:
        return None
    elapsed = (max(times) - min(times)).total_seconds() + SESSION_REST_SECONDS
    return max(1, int(elapsed // 60))


# ═══════════════════════════════════════════════════════════════════════
# 2. PERSONAL BESTS
# ═══════════════════════════════════════════════════════════════════════

def pb_history(
    records: Iterable[SetRecord],
    kind: ExerciseKind | None = None,
    tz: tzinfo | None = None,
) -> pd.DataFrame:
    """
    Working sets in chronological order with PB flags, per exercise.

    `value` is weight for weighted exercises and reps for bodyweight ones.
    A set is a PB when its value beats the running max of the sets before
    it; equalling the previous best is not a PB. The first working set of
    an exercise is always a PB. `kind` forces one kind on every exercise,
    otherwise each exercise's kind is derived from its own sets.
    """
    df = working_frame(records_to_dataframe(records, tz))
    if df.empty:
        return pd.DataFrame(columns=FRAME_COLUMNS + ["value", "running_max", "is_pb"])

    kinds = exercise_kinds(df)
    if kind is not None:
        kinds = dict.fromkeys(kinds, ExerciseKind.parse(kind))
    weighted = df["exercise_id"].map(lambda e: kinds[e] is ExerciseKind.WEIGHTED).astype(bool)

    df["value"] = np.where(weighted, df["weight"], df["reps"]).astype(float)
    df["running_max"] = df.groupby("exercise_id")["value"].cummax()
    previous_best = df.groupby("exercise_id")["running_max"].shift(1)
    df["is_pb"] = previous_best.isna() | (df["value"] > previous_best)
    return df.reset_index(drop=True)


def mark_personal_bests(
    records: Iterable[SetRecord],
    kind: ExerciseKind | None = None,
    tz: tzinfo | None = None,
) -> set[str]:
    """Ids of the sets that were a new all-time best when they were logged."""
    history = pb_history(records, kind, tz)
    if history.empty:
        return set()
    pb_ids = set(history.loc[history["is_pb"], "set_id"])
    logger.debug("PB scan: %d working sets, %d PBs", len(history), len(pb_ids))
    return pb_ids


def all_time_record(records: Iterable[SetRecord]) -> PersonalRecord | None:
    """
    Best single set ever: heaviest weight, most reps at that weight.
    Bodyweight exercises rank by reps alone. None without working sets.
    """
    sets = working_sets(records)
    if not sets:
        return None

    if all(s.weight == 0 for s in sets):
        best = max(sets, key=lambda s: s.reps)
        return PersonalRecord(weight=0, reps=best.reps, timestamp=best.timestamp, is_bodyweight=True)

    max_w = max(s.weight for s in sets)
    best = max((s for s in sets if s.weight == max_w), key=lambda s: s.reps)
    return PersonalRecord(weight=best.weight, reps=best.reps, timestamp=best.timestamp, is_bodyweight=False)


def todays_sets(records: Iterable[SetRecord], now: datetime | None = None, tz: tzinfo | None = None) -> list[SetRecord]:
    """All of today's sets, warm-ups included, oldest first."""
    today = day_start(now or datetime.now(), tz)
    return group_sets(records, Granularity.DAILY, tz).get(today, [])
