"""
Liftlog Analytics — Set log frames

Converts set records into a flat pandas DataFrame, one row per set, with the
derived columns the analytics stages group and aggregate on.
"""
from datetime import datetime
from typing import Iterable

import pandas as pd

from liftlog.grouping import to_instant, to_local
from liftlog.models import ExerciseKind, SetRecord

FRAME_COLUMNS = [
    "set_id",
    "exercise_id",
    "timestamp",
    "instant",
    "local_time",
    "day",
    "seq",
    "weight",
    "reps",
    "volume",
    "is_warm_up",
    "is_drop_set",
    "is_bonus",
    "is_working",
]


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def records_from_rows(rows: Iterable[dict]) -> list[SetRecord]:
    """
    Build SetRecords from plain dict rows.

    Accepts "id" or "set_id", ISO-8601 strings or datetimes for "timestamp",
    and treats missing weight/reps as 0 the way a bodyweight entry is stored.
    """
    records = []
    for row in rows:
        records.append(
            SetRecord(
                set_id=str(row.get("set_id", row.get("id"))),
                timestamp=_parse_timestamp(row["timestamp"]),
                weight=float(row.get("weight") or 0),
                reps=int(row.get("reps") or 0),
                exercise_id=str(row.get("exercise_id", "")),
                is_warm_up=bool(row.get("is_warm_up", False)),
                is_drop_set=bool(row.get("is_drop_set", False)),
                is_bonus=bool(row.get("is_bonus", False)),
            )
        )
    return records


def records_to_dataframe(records: Iterable[SetRecord], tz=None) -> pd.DataFrame:
    """
    Flatten set records to a DataFrame sorted chronologically.

    Rows are ordered by `instant` (UTC), then `seq`, the input order, so
    equal timestamps sort stably. `local_time` is the naive wall-clock time
    in the analysis zone and `day` its calendar date; both are for bucketing
    only.
    """
    rows = []
    for seq, r in enumerate(records):
        local = to_local(r.timestamp, tz)
        rows.append(
            {
                "set_id": r.set_id,
                "exercise_id": r.exercise_id,
                "timestamp": r.timestamp,
                "instant": to_instant(r.timestamp, tz),
                "local_time": local,
                "day": local.date(),
                "seq": seq,
                "weight": float(r.weight),
                "reps": int(r.reps),
                "volume": float(r.weight) * int(r.reps),
                "is_warm_up": r.is_warm_up,
                "is_drop_set": r.is_drop_set,
                "is_bonus": r.is_bonus,
                "is_working": r.is_working,
            }
        )

    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    return df.sort_values(["instant", "seq"], kind="mergesort").reset_index(drop=True)


def working_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Rows that count towards metrics (no warm-ups, no bonus sets)."""
    if df.empty:
        return df.copy()
    return df[df["is_working"].astype(bool)].copy()


def exercise_kind(records: Iterable[SetRecord]) -> ExerciseKind:
    """
    Bodyweight iff every working set has zero weight.

    An exercise without working sets is reported as bodyweight, matching how
    the kind is derived from an all-zero scan.
    """
    if any(r.weight > 0 for r in records if r.is_working):
        return ExerciseKind.WEIGHTED
    return ExerciseKind.BODYWEIGHT_REPS


def exercise_kinds(df: pd.DataFrame) -> dict[str, ExerciseKind]:
    """ExerciseKind per exercise_id for every exercise in the frame."""
    if df.empty:
        return {}
    working = working_frame(df)
    top = working.groupby("exercise_id")["weight"].max()
    kinds = {
        exercise_id: ExerciseKind.WEIGHTED if weight > 0 else ExerciseKind.BODYWEIGHT_REPS
        for exercise_id, weight in top.items()
    }
    for exercise_id in df["exercise_id"].unique():
        kinds.setdefault(exercise_id, ExerciseKind.BODYWEIGHT_REPS)
    return kinds
