"""
Liftlog Analytics — Data model

Immutable value types passed between the pipeline stages. SetRecord is the
only input type; everything else is derived.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class InvalidSetRecord(ValueError):
    """Raised when a set record violates the upstream data contract."""


class _ParseableEnum(Enum):
    @classmethod
    def parse(cls, value):
        """Accept an enum member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() == member.value.lower() or text.upper() == member.name:
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown {cls.__name__} {value!r} (expected one of: {choices})")


class ExerciseKind(_ParseableEnum):
    WEIGHTED = "weighted"
    BODYWEIGHT_REPS = "bodyweight_reps"


class Granularity(_ParseableEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ChartRange(_ParseableEnum):
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    ONE_YEAR = "1Y"
    ALL = "ALL"


class ComparisonMode(_ParseableEnum):
    LAST_SESSION = "last_session"
    ALL_TIME_BEST = "all_time_best"


class Direction(_ParseableEnum):
    UP = "up"
    DOWN = "down"
    SAME = "same"

    @classmethod
    def of(cls, delta: float) -> "Direction":
        if delta > 0:
            return cls.UP
        if delta < 0:
            return cls.DOWN
        return cls.SAME


@dataclass(frozen=True)
class SetRecord:
    """One logged set. Owned by the persistence layer; read-only here."""

    set_id: str
    timestamp: datetime
    weight: float
    reps: int
    exercise_id: str
    is_warm_up: bool = False
    is_drop_set: bool = False
    is_bonus: bool = False

    def __post_init__(self):
        if self.weight < 0:
            raise InvalidSetRecord(f"Set {self.set_id}: weight must be >= 0, got {self.weight}")
        if self.reps < 0:
            raise InvalidSetRecord(f"Set {self.set_id}: reps must be >= 0, got {self.reps}")

    @property
    def is_working(self) -> bool:
        """Working sets count towards every metric; warm-ups and bonus sets don't."""
        return not self.is_warm_up and not self.is_bonus

    @property
    def volume(self) -> float:
        return self.weight * self.reps


@dataclass(frozen=True)
class SessionAggregate:
    date: date
    sets: tuple = ()
    volume: float = 0.0
    max_weight: float = 0.0
    reps_at_max_weight: int = 0
    max_reps: int = 0
    total_reps: int = 0
    set_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.set_count == 0


@dataclass(frozen=True)
class MetricDelta:
    direction: Direction
    delta: float


@dataclass(frozen=True)
class ComparisonResult:
    """
    Per-metric deltas of a current aggregate against a reference.

    All three cells None is the "no data" state: the current bucket had no
    working sets, so nothing was compared. It is deliberately distinct from
    a completed comparison whose deltas are all SAME.
    """

    weight: MetricDelta | None = None
    reps: MetricDelta | None = None
    volume: MetricDelta | None = None

    @property
    def has_data(self) -> bool:
        return not (self.weight is None and self.reps is None and self.volume is None)


NO_DATA = ComparisonResult()


@dataclass(frozen=True)
class PersonalRecord:
    weight: float
    reps: int
    timestamp: datetime
    is_bodyweight: bool


@dataclass(frozen=True)
class WeightGroup:
    """Sets of one session performed at the same weight."""

    weight: float
    reps: tuple

    @property
    def set_count(self) -> int:
        return len(self.reps)


@dataclass(frozen=True)
class VolumeProgress:
    percent_of_last: int
    gains_percent: int
    bar_ratio: float
    ratio: float


@dataclass(frozen=True)
class ChartPoint:
    index: int
    bucket_date: date
    max_weight: float
    max_reps: int
    total_volume: float
    total_reps: int
    normalized_weight: float
    normalized_reps: float
    normalized_volume: float
    normalized_total_reps: float
    is_pb: bool = False


@dataclass(frozen=True)
class TrendLine:
    slope: float
    intercept: float

    def value_at(self, index: float) -> float:
        return self.slope * index + self.intercept


@dataclass(frozen=True)
class ChartSeries:
    points: tuple = ()
    trends: dict = field(default_factory=dict)
    granularity: Granularity = Granularity.DAILY
    span_days: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.points
