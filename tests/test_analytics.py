"""
Tests for grouping, session metrics and PB detection.
Run: pytest tests/ -v
"""
from datetime import date, datetime, timedelta, timezone

import pytest

START = datetime(2026, 3, 2, 18, 0)  # a Monday evening


def _make_sets(rows: list[dict]) -> list:
    """Helper: build SetRecords from simplified rows; ids follow input order."""
    from liftlog.models import SetRecord
    defaults = {
        "exercise_id": "bench",
        "weight": 80.0,
        "reps": 10,
        "is_warm_up": False,
        "is_drop_set": False,
        "is_bonus": False,
    }
    records = []
    for i, r in enumerate(rows):
        row = {**defaults, **r}
        row.setdefault("set_id", f"s{i + 1}")
        if "day" in row:
            row["timestamp"] = START + timedelta(days=row.pop("day"), minutes=i)
        row.setdefault("timestamp", START + timedelta(minutes=i))
        records.append(SetRecord(**row))
    return records


# ═══════════════════════════════════════════════════════════════════════
# DATA MODEL
# ═══════════════════════════════════════════════════════════════════════

class TestSetRecord:

    def test_negative_weight_rejected(self):
        from liftlog.models import InvalidSetRecord
        with pytest.raises(InvalidSetRecord):
            _make_sets([{"weight": -2.5}])

    def test_negative_reps_rejected(self):
        from liftlog.models import InvalidSetRecord
        with pytest.raises(ValueError):
            _make_sets([{"reps": -1}])

    def test_working_flags(self):
        warm, bonus, drop = _make_sets([
            {"is_warm_up": True}, {"is_bonus": True}, {"is_drop_set": True},
        ])
        assert warm.is_working is False
        assert bonus.is_working is False
        assert drop.is_working is True

    def test_enum_parse(self):
        from liftlog.models import ChartRange, Granularity
        assert ChartRange.parse("1y") is ChartRange.ONE_YEAR
        assert ChartRange.parse("ALL") is ChartRange.ALL
        assert Granularity.parse("weekly") is Granularity.WEEKLY
        with pytest.raises(ValueError):
            Granularity.parse("hourly")


# ═══════════════════════════════════════════════════════════════════════
# SESSION GROUPER
# ═══════════════════════════════════════════════════════════════════════

class TestGrouping:

    def test_midnight_splits_days(self):
        from liftlog.grouping import group_sets
        sets = _make_sets([
            {"timestamp": datetime(2026, 3, 2, 23, 59)},
            {"timestamp": datetime(2026, 3, 3, 0, 1)},
        ])
        grouped = group_sets(sets)
        assert list(grouped) == [date(2026, 3, 2), date(2026, 3, 3)]
        assert [len(v) for v in grouped.values()] == [1, 1]

    def test_weekly_key_is_monday(self):
        from liftlog.grouping import bucket_key
        from liftlog.models import Granularity
        # Sunday 2026-03-08 belongs to the week starting Monday 2026-03-02
        assert bucket_key(datetime(2026, 3, 8, 12), Granularity.WEEKLY) == date(2026, 3, 2)
        assert bucket_key(datetime(2026, 3, 9, 0, 0), Granularity.WEEKLY) == date(2026, 3, 9)

    def test_monthly_key_is_first_of_month(self):
        from liftlog.grouping import bucket_key
        assert bucket_key(datetime(2026, 2, 28, 23, 59), "monthly") == date(2026, 2, 1)
        assert bucket_key(datetime(2026, 3, 1, 0, 0), "monthly") == date(2026, 3, 1)

    @pytest.mark.parametrize("granularity", ["daily", "weekly", "monthly"])
    def test_partition_property(self, granularity):
        from liftlog.grouping import group_sets
        sets = _make_sets([{"day": d} for d in (0, 0, 1, 6, 7, 13, 30, 31, 45, 90)])
        grouped = group_sets(sets, granularity)
        flattened = [s.set_id for bucket in grouped.values() for s in bucket]
        assert sum(len(b) for b in grouped.values()) == len(sets)
        assert sorted(flattened) == sorted(s.set_id for s in sets)
        assert list(grouped) == sorted(grouped)

    def test_bucket_is_chronological(self):
        from liftlog.grouping import group_sets
        sets = _make_sets([
            {"set_id": "late", "timestamp": datetime(2026, 3, 2, 19, 0)},
            {"set_id": "early", "timestamp": datetime(2026, 3, 2, 18, 0)},
        ])
        assert [s.set_id for s in group_sets(sets)[date(2026, 3, 2)]] == ["early", "late"]

    def test_empty_input(self):
        from liftlog.grouping import group_sets
        assert group_sets([]) == {}

    def test_fall_back_hour_keeps_real_order(self):
        from zoneinfo import ZoneInfo
        from liftlog.frames import records_to_dataframe
        from liftlog.grouping import group_sets
        ny = ZoneInfo("America/New_York")
        sets = _make_sets([
            {"set_id": "second", "timestamp": datetime(2026, 11, 1, 6, 10, tzinfo=timezone.utc)},
            {"set_id": "first", "timestamp": datetime(2026, 11, 1, 5, 30, tzinfo=timezone.utc)},
        ])
        bucket = group_sets(sets, tz=ny)[date(2026, 11, 1)]
        assert [s.set_id for s in bucket] == ["first", "second"]
        assert records_to_dataframe(sets, ny)["set_id"].tolist() == ["first", "second"]

    def test_aware_timestamps_use_local_day(self):
        from zoneinfo import ZoneInfo
        from liftlog.grouping import day_start
        ts = datetime(2026, 3, 10, 3, 30, tzinfo=timezone.utc)
        assert day_start(ts, ZoneInfo("America/New_York")) == date(2026, 3, 9)
        assert day_start(ts, ZoneInfo("Europe/Madrid")) == date(2026, 3, 10)

    def test_split_today(self):
        from liftlog.grouping import split_today
        sets = _make_sets([{"day": 0}, {"day": 1}, {"day": 3}, {"day": 3}])
        today_sets, historic = split_today(sets, now=START + timedelta(days=3, hours=2))
        assert [s.set_id for s in today_sets] == ["s4", "s3"]
        assert [day for day, _ in historic] == [date(2026, 3, 3), date(2026, 3, 2)]


# ═══════════════════════════════════════════════════════════════════════
# FRAMES
# ═══════════════════════════════════════════════════════════════════════

class TestFrames:

    def test_records_from_rows(self):
        from liftlog.frames import records_from_rows
        records = records_from_rows([
            {"id": 7, "timestamp": "2026-03-02T18:00:00Z", "weight": None, "reps": "12",
             "exercise_id": "pullup", "is_warm_up": False},
        ])
        r = records[0]
        assert r.set_id == "7"
        assert r.weight == 0.0
        assert r.reps == 12
        assert r.timestamp.tzinfo is not None

    def test_dataframe_sorted_chronologically(self):
        from liftlog.frames import records_to_dataframe
        sets = _make_sets([
            {"set_id": "b", "timestamp": datetime(2026, 3, 3, 9)},
            {"set_id": "a", "timestamp": datetime(2026, 3, 2, 9)},
        ])
        df = records_to_dataframe(sets)
        assert df["set_id"].tolist() == ["a", "b"]
        assert df["volume"].tolist() == [800.0, 800.0]

    def test_empty_dataframe_has_columns(self):
        from liftlog.frames import FRAME_COLUMNS, records_to_dataframe
        df = records_to_dataframe([])
        assert df.empty
        assert list(df.columns) == FRAME_COLUMNS

    def test_exercise_kind(self):
        from liftlog.frames import exercise_kind
        from liftlog.models import ExerciseKind
        pullups = _make_sets([{"weight": 0, "reps": 8}, {"weight": 0, "reps": 10}])
        assert exercise_kind(pullups) is ExerciseKind.BODYWEIGHT_REPS
        # A loaded warm-up does not make the exercise weighted
        pullups += _make_sets([{"weight": 10, "is_warm_up": True}])
        assert exercise_kind(pullups) is ExerciseKind.BODYWEIGHT_REPS
        weighted = _make_sets([{"weight": 0}, {"weight": 10}])
        assert exercise_kind(weighted) is ExerciseKind.WEIGHTED


# ═══════════════════════════════════════════════════════════════════════
# METRICS CALCULATOR
# ═══════════════════════════════════════════════════════════════════════

class TestAggregate:

    def test_basic_session(self):
        from liftlog.analytics import aggregate
        agg = aggregate(_make_sets([{"weight": 80, "reps": 10}, {"weight": 80, "reps": 8}]))
        assert agg.date == date(2026, 3, 2)
        assert agg.volume == 1440
        assert agg.max_weight == 80
        assert agg.reps_at_max_weight == 10
        assert agg.total_reps == 18
        assert agg.set_count == 2

    def test_reps_at_max_prefers_best_set(self):
        from liftlog.analytics import aggregate
        agg = aggregate(_make_sets([
            {"weight": 100, "reps": 3},
            {"weight": 90, "reps": 8},
            {"weight": 100, "reps": 5},
            {"weight": 100, "reps": 4},
        ]))
        assert agg.max_weight == 100
        assert agg.reps_at_max_weight == 5
        assert agg.max_reps == 8

    def test_warm_up_and_bonus_excluded(self):
        from liftlog.analytics import aggregate
        agg = aggregate(_make_sets([
            {"weight": 40, "reps": 10, "is_warm_up": True},
            {"weight": 120, "reps": 1, "is_bonus": True},
            {"weight": 80, "reps": 5},
        ]))
        assert agg.volume == 400
        assert agg.max_weight == 80
        assert agg.total_reps == 5
        assert agg.set_count == 1

    def test_drop_set_included(self):
        from liftlog.analytics import aggregate
        agg = aggregate(_make_sets([
            {"weight": 80, "reps": 8},
            {"weight": 60, "reps": 10, "is_drop_set": True},
        ]))
        assert agg.volume == 80 * 8 + 60 * 10
        assert agg.set_count == 2

    def test_empty_is_all_zero(self):
        from liftlog.analytics import aggregate
        agg = aggregate([], day=date(2026, 3, 2))
        assert agg.volume == 0
        assert agg.max_weight == 0
        assert agg.reps_at_max_weight == 0
        assert agg.total_reps == 0
        assert agg.set_count == 0
        assert agg.is_empty

    def test_only_warm_ups_is_empty(self):
        from liftlog.analytics import aggregate
        assert aggregate(_make_sets([{"is_warm_up": True}])).set_count == 0

    def test_volume_additivity(self):
        from liftlog.analytics import aggregate, session_aggregates
        sets = _make_sets([
            {"day": 0, "weight": 60, "reps": 10},
            {"day": 0, "weight": 70, "reps": 8, "is_warm_up": True},
            {"day": 2, "weight": 65, "reps": 9},
            {"day": 5, "weight": 70, "reps": 6, "is_drop_set": True},
            {"day": 5, "weight": 72.5, "reps": 5},
        ])
        daily = session_aggregates(sets)
        assert [s.date for s in daily] == [date(2026, 3, 2), date(2026, 3, 4), date(2026, 3, 7)]
        assert sum(s.volume for s in daily) == pytest.approx(aggregate(sets).volume)

    def test_session_table_matches_aggregates(self):
        from liftlog.analytics import session_table
        sets = _make_sets([
            {"day": 0, "weight": 80, "reps": 10},
            {"day": 0, "weight": 80, "reps": 8},
            {"day": 0, "exercise_id": "row", "weight": 60, "reps": 12},
            {"day": 1, "weight": 85, "reps": 8},
        ])
        table = session_table(sets)
        assert len(table) == 3
        bench_day1 = table[(table["exercise_id"] == "bench") & (table["day"] == date(2026, 3, 2))].iloc[0]
        assert bench_day1["volume"] == 1440
        assert bench_day1["reps_at_max_weight"] == 10
        assert bench_day1["set_count"] == 2

    def test_session_table_empty(self):
        from liftlog.analytics import session_table
        assert session_table([]).empty


class TestSessionHelpers:

    def test_breakdown_keeps_first_appearance_order(self):
        from liftlog.analytics import aggregate, session_breakdown
        session = aggregate(_make_sets([
            {"weight": 60, "reps": 10},
            {"weight": 80, "reps": 6},
            {"weight": 60, "reps": 12},
        ]))
        groups = session_breakdown(session)
        assert [g.weight for g in groups] == [60, 80]
        assert groups[0].reps == (10, 12)
        assert groups[0].set_count == 2

    def test_duration(self):
        from liftlog.analytics import session_duration_minutes
        sets = _make_sets([
            {"timestamp": datetime(2026, 3, 2, 10, 0)},
            {"timestamp": datetime(2026, 3, 2, 10, 30)},
        ])
        assert session_duration_minutes(sets) == 33
        assert session_duration_minutes(sets[:1]) == 3
        assert session_duration_minutes([]) is None

    def test_todays_sets(self):
        from liftlog.analytics import todays_sets
        sets = _make_sets([{"day": 0}, {"day": 1, "is_warm_up": True}, {"day": 1}])
        today = todays_sets(sets, now=START + timedelta(days=1))
        assert [s.set_id for s in today] == ["s2", "s3"]


# ═══════════════════════════════════════════════════════════════════════
# PERSONAL BESTS
# ═══════════════════════════════════════════════════════════════════════

class TestPersonalBests:

    def test_fall_back_hour_uses_real_order(self):
        from zoneinfo import ZoneInfo
        from liftlog.analytics import mark_personal_bests
        from liftlog.models import SetRecord
        # 2026-11-01 New York: 05:30Z is 01:30 EDT, 06:10Z is 01:10 EST
        ny = ZoneInfo("America/New_York")
        later = SetRecord(set_id="b", timestamp=datetime(2026, 11, 1, 6, 10, tzinfo=timezone.utc),
                          weight=100, reps=5, exercise_id="bench")
        earlier = SetRecord(set_id="a", timestamp=datetime(2026, 11, 1, 5, 30, tzinfo=timezone.utc),
                            weight=100, reps=5, exercise_id="bench")
        assert mark_personal_bests([later, earlier], tz=ny) == {"a"}

    def test_strictly_increasing_all_pbs(self):
        from liftlog.analytics import mark_personal_bests
        sets = _make_sets([{"day": i, "weight": w} for i, w in enumerate([50, 60, 70])])
        assert mark_personal_bests(sets) == {"s1", "s2", "s3"}

    def test_tie_is_not_a_pb(self):
        from liftlog.analytics import mark_personal_bests
        sets = _make_sets([{"day": i, "weight": w} for i, w in enumerate([50, 50, 60])])
        assert mark_personal_bests(sets) == {"s1", "s3"}

    def test_uses_timestamp_not_input_order(self):
        from liftlog.analytics import mark_personal_bests
        sets = _make_sets([
            {"set_id": "new", "day": 2, "weight": 70},
            {"set_id": "old", "day": 0, "weight": 60},
        ])
        assert mark_personal_bests(sets) == {"old", "new"}

    def test_warm_ups_skipped(self):
        from liftlog.analytics import mark_personal_bests
        sets = _make_sets([
            {"weight": 100, "reps": 5, "is_warm_up": True},
            {"weight": 60, "reps": 5},
            {"weight": 70, "reps": 5},
        ])
        assert mark_personal_bests(sets) == {"s2", "s3"}

    def test_bodyweight_tracks_reps(self):
        from liftlog.analytics import mark_personal_bests
        sets = _make_sets([
            {"day": i, "weight": 0, "reps": r, "exercise_id": "pullup"}
            for i, r in enumerate([10, 12, 12, 15])
        ])
        assert mark_personal_bests(sets) == {"s1", "s2", "s4"}

    def test_exercises_independent(self):
        from liftlog.analytics import mark_personal_bests
        sets = _make_sets([
            {"day": 0, "weight": 200, "exercise_id": "deadlift"},
            {"day": 1, "weight": 50, "exercise_id": "ohp"},
            {"day": 2, "weight": 190, "exercise_id": "deadlift"},
        ])
        assert mark_personal_bests(sets) == {"s1", "s2"}

    def test_no_working_sets(self):
        from liftlog.analytics import mark_personal_bests, pb_history
        assert mark_personal_bests([]) == set()
        assert mark_personal_bests(_make_sets([{"is_warm_up": True}])) == set()
        assert pb_history([]).empty

    def test_history_running_max(self):
        from liftlog.analytics import pb_history
        sets = _make_sets([{"day": i, "weight": w} for i, w in enumerate([80, 75, 85])])
        history = pb_history(sets)
        assert history["running_max"].tolist() == [80.0, 80.0, 85.0]
        assert history["is_pb"].tolist() == [True, False, True]


class TestAllTimeRecord:

    def test_heaviest_then_most_reps(self):
        from liftlog.analytics import all_time_record
        sets = _make_sets([
            {"day": 0, "weight": 100, "reps": 3},
            {"day": 1, "weight": 100, "reps": 5},
            {"day": 2, "weight": 90, "reps": 10},
        ])
        record = all_time_record(sets)
        assert (record.weight, record.reps, record.is_bodyweight) == (100, 5, False)
        assert record.timestamp == sets[1].timestamp

    def test_bodyweight(self):
        from liftlog.analytics import all_time_record
        sets = _make_sets([{"weight": 0, "reps": 12}, {"weight": 0, "reps": 15}])
        record = all_time_record(sets)
        assert record.is_bodyweight is True
        assert record.reps == 15

    def test_none_without_working_sets(self):
        from liftlog.analytics import all_time_record
        assert all_time_record(_make_sets([{"is_warm_up": True}])) is None
