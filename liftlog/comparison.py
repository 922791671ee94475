"""
Liftlog Analytics — Progress comparison

Compares today's session (or any aggregate) against a reference session and
reports a direction and delta per metric. Two outcomes are not comparisons
at all and are kept apart from a flat SAME result:

- baseline: no usable reference, compare() returns None
- no data:  the current bucket has no working sets, compare() returns NO_DATA
"""
import logging
import math
from datetime import date, datetime, tzinfo
from typing import Iterable

from liftlog.analytics import session_aggregates
from liftlog.frames import exercise_kind
from liftlog.grouping import day_start
from liftlog.models import (
    NO_DATA,
    ComparisonMode,
    ComparisonResult,
    Direction,
    ExerciseKind,
    Granularity,
    MetricDelta,
    SessionAggregate,
    SetRecord,
    VolumeProgress,
)

logger = logging.getLogger(__name__)


def _volume_metric(session: SessionAggregate, kind: ExerciseKind) -> float:
    # Bodyweight exercises have zero load volume; total reps stands in for it.
    if kind is ExerciseKind.BODYWEIGHT_REPS:
        return session.total_reps
    return session.volume


def is_baseline(reference: SessionAggregate | None, kind: ExerciseKind = ExerciseKind.WEIGHTED) -> bool:
    """True when there is nothing meaningful to compare against."""
    return reference is None or _volume_metric(reference, ExerciseKind.parse(kind)) == 0


def compare(
    current: SessionAggregate | None,
    reference: SessionAggregate | None,
    kind: ExerciseKind = ExerciseKind.WEIGHTED,
) -> ComparisonResult | None:
    """
    Per-metric delta of `current` against `reference`.

    Metrics: weight = max_weight, reps = reps_at_max_weight,
    volume = volume (weighted) or total_reps (bodyweight).
    """
    kind = ExerciseKind.parse(kind)
    if is_baseline(reference, kind):
        logger.debug("Comparison baseline: no reference session with work")
        return None
    if current is None or current.is_empty:
        logger.debug("Comparison has no data: current session has no working sets")
        return NO_DATA

    def delta(now: float, then: float) -> MetricDelta:
        diff = now - then
        return MetricDelta(direction=Direction.of(diff), delta=diff)

    return ComparisonResult(
        weight=delta(current.max_weight, reference.max_weight),
        reps=delta(current.reps_at_max_weight, reference.reps_at_max_weight),
        volume=delta(_volume_metric(current, kind), _volume_metric(reference, kind)),
    )


# ═══════════════════════════════════════════════════════════════════════
# REFERENCE SELECTION
# ═══════════════════════════════════════════════════════════════════════

def last_session_reference(sessions: Iterable[SessionAggregate], today: date) -> SessionAggregate | None:
    """Most recent session with work strictly before today."""
    past = [s for s in sessions if s.date < today and not s.is_empty]
    return max(past, key=lambda s: s.date) if past else None


def best_session_reference(
    sessions: Iterable[SessionAggregate],
    kind: ExerciseKind,
    today: date,
) -> SessionAggregate | None:
    """
    All-time best session before today.

    Weighted: highest max_weight, then higher volume, then most recent.
    Bodyweight: most total reps, then most recent.
    """
    kind = ExerciseKind.parse(kind)
    past = [s for s in sessions if s.date < today and not s.is_empty]
    if not past:
        return None
    if kind is ExerciseKind.BODYWEIGHT_REPS:
        return max(past, key=lambda s: (s.total_reps, s.date))
    return max(past, key=lambda s: (s.max_weight, s.volume, s.date))


def compare_for_mode(
    records: Iterable[SetRecord],
    mode: ComparisonMode = ComparisonMode.LAST_SESSION,
    now: datetime | None = None,
    kind: ExerciseKind | None = None,
    tz: tzinfo | None = None,
) -> ComparisonResult | None:
    """
    Today's session of one exercise against the reference picked by `mode`.
    The exercise kind is derived from the whole log unless given.
    """
    records = list(records)
    mode = ComparisonMode.parse(mode)
    today = day_start(now or datetime.now(), tz)
    kind = ExerciseKind.parse(kind) if kind is not None else exercise_kind(records)

    sessions = session_aggregates(records, Granularity.DAILY, tz)
    current = next((s for s in sessions if s.date == today), SessionAggregate(date=today))

    if mode is ComparisonMode.LAST_SESSION:
        reference = last_session_reference(sessions, today)
    else:
        reference = best_session_reference(sessions, kind, today)
    return compare(current, reference, kind)


def recent_progress(
    records: Iterable[SetRecord],
    kind: ExerciseKind | None = None,
    tz: tzinfo | None = None,
) -> ComparisonResult | None:
    """Latest session against the one before it, regardless of today."""
    records = list(records)
    sessions = session_aggregates(records, Granularity.DAILY, tz)
    if len(sessions) < 2:
        return None
    kind = ExerciseKind.parse(kind) if kind is not None else exercise_kind(records)
    return compare(sessions[-1], sessions[-2], kind)


# ═══════════════════════════════════════════════════════════════════════
# VOLUME PROGRESS
# ═══════════════════════════════════════════════════════════════════════

def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def volume_progress(today_volume: float, last_volume: float | None) -> VolumeProgress:
    """
    Today's volume relative to the last session's.

    Without a last volume any work today counts as 100% (ratio 1.0) and no
    work as 0%. bar_ratio is the ratio clamped to 1.0 for a progress bar.
    """
    last = last_volume or 0
    if last == 0:
        ratio = 1.0 if today_volume > 0 else 0.0
        gains = 100 if today_volume > 0 else 0
    else:
        ratio = today_volume / last
        gains = _round_half_away((today_volume - last) / last * 100)

    return VolumeProgress(
        percent_of_last=_round_half_away(ratio * 100),
        gains_percent=gains,
        bar_ratio=min(ratio, 1.0),
        ratio=ratio,
    )
