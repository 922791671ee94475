"""
Liftlog Analytics — Session grouping

Partitions set records into calendar buckets. A bucket key is always a
datetime.date: the local day, the Monday of the ISO week, or the first of
the month.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable

from liftlog.config import get_timezone
from liftlog.models import Granularity, SetRecord


def to_local(timestamp: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Wall-clock time of a timestamp in the analysis time zone, without tzinfo.

    Naive timestamps are already local. Aware ones are converted to `tz`,
    then the configured zone, then the system zone.
    """
    if timestamp.tzinfo is None:
        return timestamp
    zone = tz or get_timezone()
    return timestamp.astimezone(zone).replace(tzinfo=None)


def to_instant(timestamp: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Absolute UTC instant of a timestamp, for chronological ordering.

    Wall-clock time repeats an hour when clocks fall back, so ordering is
    done on this and never on to_local(). Naive timestamps are read as wall
    time in `tz`, the configured zone or the system zone.
    """
    if timestamp.tzinfo is None:
        zone = tz or get_timezone()
        if zone is not None:
            timestamp = timestamp.replace(tzinfo=zone)
    return timestamp.astimezone(timezone.utc)


def day_start(timestamp: datetime, tz: tzinfo | None = None) -> date:
    """Local calendar day of a timestamp (midnight-to-midnight)."""
    return to_local(timestamp, tz).date()


def bucket_for_day(day: date, granularity: Granularity) -> date:
    if granularity is Granularity.DAILY:
        return day
    if granularity is Granularity.WEEKLY:
        return day - timedelta(days=day.weekday())
    if granularity is Granularity.MONTHLY:
        return day.replace(day=1)
    raise ValueError(f"Unsupported granularity: {granularity!r}")


def bucket_key(timestamp: datetime, granularity: Granularity = Granularity.DAILY,
               tz: tzinfo | None = None) -> date:
    return bucket_for_day(day_start(timestamp, tz), Granularity.parse(granularity))


def group_sets(
    records: Iterable[SetRecord],
    granularity: Granularity = Granularity.DAILY,
    tz: tzinfo | None = None,
) -> dict[date, list[SetRecord]]:
    """
    Partition records into buckets, oldest bucket first.

    Every record lands in exactly one bucket; nothing is filtered here, so
    callers wanting working sets only must filter first. Records inside a
    bucket are in chronological order (insertion order for equal timestamps).
    """
    granularity = Granularity.parse(granularity)
    buckets: dict[date, list[tuple]] = defaultdict(list)
    for seq, record in enumerate(records):
        day = day_start(record.timestamp, tz)
        instant = to_instant(record.timestamp, tz)
        buckets[bucket_for_day(day, granularity)].append((instant, seq, record))

    return {
        key: [record for _, _, record in sorted(buckets[key], key=lambda item: item[:2])]
        for key in sorted(buckets)
    }


def split_today(
    records: Iterable[SetRecord],
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> tuple[list[SetRecord], list[tuple[date, list[SetRecord]]]]:
    """
    Separate today's sets from the historic day groups.

    Returns (today_sets, historic_groups); today's sets and each group are
    newest first, and the groups themselves are newest day first, which is
    how a history list is read during an active workout.
    """
    today = day_start(now or datetime.now(), tz)
    grouped = group_sets(records, Granularity.DAILY, tz)

    today_sets = list(reversed(grouped.pop(today, [])))
    historic = [(day, list(reversed(sets))) for day, sets in sorted(grouped.items(), reverse=True)]
    return today_sets, historic
