"""Follow-up Monitoring Domain Models.

Chronic-disease follow-up enrollments, the measurements patients record
against them, and the statistics recomputed on every query.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from domain.clinical_errors import ClinicalValidationError


class MeasurementType(str, Enum):
    BLOOD_PRESSURE = "blood_pressure"
    GLYCEMIA = "glycemia"
    WEIGHT = "weight"


class MonitoringType(str, Enum):
    """What an enrollment monitors."""

    BLOOD_PRESSURE = "blood_pressure"
    GLYCEMIA_TYPE1 = "glycemia_type1"
    GLYCEMIA_TYPE2 = "glycemia_type2"
    WEIGHT = "weight"

    @classmethod
    def parse(cls, value: Any) -> "MonitoringType":
        if isinstance(value, MonitoringType):
            return value
        text = str(value).strip().lower().replace("glycemia_type_", "glycemia_type")
        try:
            return cls(text)
        except ValueError as e:
            raise ClinicalValidationError(
                f"Unknown monitoring type: {value!r}", field="monitoring_type", value=value
            ) from e

    @property
    def measurement_type(self) -> MeasurementType:
        if self in (MonitoringType.GLYCEMIA_TYPE1, MonitoringType.GLYCEMIA_TYPE2):
            return MeasurementType.GLYCEMIA
        return MeasurementType(self.value)


class Frequency(str, Enum):
    """How often the patient is asked to measure."""

    DAILY = "daily"
    EVERY_2_DAYS = "every_2_days"
    TWICE_WEEKLY = "twice_weekly"
    THREE_DAYS_WEEKLY = "three_days_weekly"
    WEEKLY = "weekly"


class Trend(str, Enum):
    AMELIORATION = "amelioration"
    STABLE = "stable"
    DEGRADATION = "degradation"


class TrendWindow(str, Enum):
    """Which measurements a trend compares."""

    WEEK_OVER_WEEK = "week_over_week"              # mean of last 7 days vs the 7 before
    LAST_TWO_MEASUREMENTS = "last_two_measurements"


@dataclass(frozen=True)
class TrendPolicy:
    """Shared trend rule for every monitored type.

    The delta is always "recent minus earlier". A delta beyond +threshold is
    a degradation and beyond -threshold an amelioration when
    `increase_is_worse` is set; the flag flips that reading.

    Weight trend sign inversion is a domain rule, not a bug: a weight gain
    above the threshold is a degradation and a loss above it an amelioration,
    because the monitored weight programmes are weight-loss programmes. The
    weight trend is read on its own terms rather than as a generic
    "value went up" signal; do not normalize it away. The rule lives in
    `FollowUpConfig.weight_increase_is_worse`. The weight policy also
    compares the two most recent measurements rather than week-over-week
    means.
    """

    threshold: float
    window: TrendWindow
    increase_is_worse: bool = True

    def classify(self, delta: float) -> Trend:
        if delta > self.threshold:
            return Trend.DEGRADATION if self.increase_is_worse else Trend.AMELIORATION
        if delta < -self.threshold:
            return Trend.AMELIORATION if self.increase_is_worse else Trend.DEGRADATION
        return Trend.STABLE


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return as_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise ClinicalValidationError(
            f"Invalid timestamp for {field_name}: {value!r}", field=field_name, value=value
        ) from e


@dataclass(frozen=True)
class FollowUpEnrollment:
    """A patient's enrollment in a monitoring programme.

    Attributes:
        enrollment_id: Enrollment identifier
        patient_id: Patient reference
        monitoring_type: What is monitored
        frequency: Measurement frequency
        started_at: Enrollment start (UTC)
        duration_days: Planned programme length, caps elapsed time
        measurement_times: Times of day the patient measures (length = per day)
        target_systolic_max, target_diastolic_max: Blood pressure targets
        target_min, target_max: Glycaemia targets in g/L
        baseline_weight: Weight at enrollment in kg
        disease_subtype: hypertension, diabetes_type_1, diabetes_type_2, obesity
        status: Enrollment status
    """

    enrollment_id: str
    patient_id: str
    monitoring_type: MonitoringType
    frequency: Frequency
    started_at: datetime
    duration_days: Optional[int] = None
    measurement_times: Tuple[str, ...] = ()
    target_systolic_max: Optional[float] = None
    target_diastolic_max: Optional[float] = None
    target_min: Optional[float] = None
    target_max: Optional[float] = None
    baseline_weight: Optional[float] = None
    disease_subtype: Optional[str] = None
    status: str = "active"

    def __post_init__(self):
        object.__setattr__(self, "monitoring_type", MonitoringType.parse(self.monitoring_type))
        try:
            object.__setattr__(self, "frequency", Frequency(self.frequency))
        except ValueError as e:
            raise ClinicalValidationError(
                f"Unknown frequency: {self.frequency!r}", field="frequency", value=self.frequency
            ) from e
        object.__setattr__(self, "started_at", parse_timestamp(self.started_at, "started_at"))
        object.__setattr__(self, "measurement_times", tuple(self.measurement_times or ()))
        if self.duration_days is not None and self.duration_days < 0:
            raise ClinicalValidationError(
                "duration_days cannot be negative", field="duration_days", value=self.duration_days
            )
        if self.baseline_weight is not None and self.baseline_weight <= 0:
            raise ClinicalValidationError(
                "baseline_weight must be positive", field="baseline_weight", value=self.baseline_weight
            )

    @property
    def times_per_day(self) -> int:
        return len(self.measurement_times) or 1


@dataclass(frozen=True)
class Measurement:
    """One recorded measurement. Immutable once recorded.

    value_1 is systolic, glycaemia or weight; value_2 is diastolic.
    """

    enrollment_id: str
    measurement_type: MeasurementType
    value_1: float
    measured_at: datetime
    value_2: Optional[float] = None
    unit: str = ""
    is_alert: bool = False
    escalation_status: Optional[str] = None
    tag: Optional[str] = None
    source: Optional[str] = None
    heart_rate: Optional[int] = None
    waist_cm: Optional[float] = None
    measurement_id: Optional[str] = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "measurement_type", MeasurementType(self.measurement_type))
        except ValueError as e:
            raise ClinicalValidationError(
                f"Unknown measurement type: {self.measurement_type!r}",
                field="measurement_type",
                value=self.measurement_type,
            ) from e
        object.__setattr__(self, "measured_at", parse_timestamp(self.measured_at, "measured_at"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "measurement_id": self.measurement_id,
            "enrollment_id": self.enrollment_id,
            "measurement_type": self.measurement_type.value,
            "value_1": self.value_1,
            "value_2": self.value_2,
            "unit": self.unit,
            "measured_at": self.measured_at.isoformat(),
            "is_alert": self.is_alert,
            "escalation_status": self.escalation_status,
            "tag": self.tag,
            "source": self.source,
            "heart_rate": self.heart_rate,
            "waist_cm": self.waist_cm,
        }


@dataclass(frozen=True)
class LastAlert:
    level: str  # ROUGE or ORANGE
    date: str   # YYYY-MM-DD

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level, "date": self.date}


@dataclass
class FollowUpStats:
    """Adherence, range, trend and alert analytics for one enrollment."""

    total_measures: int = 0
    expected_measures: int = 1
    adherence_percent: int = 0
    in_range_percent: int = 0
    average: str = "N/A"
    min: str = "N/A"
    max: str = "N/A"
    trend: Trend = Trend.STABLE
    trend_delta: str = "N/A"
    alert_count: int = 0
    last_alert: Optional[LastAlert] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "total_measures": self.total_measures,
            "expected_measures": self.expected_measures,
            "adherence_percent": self.adherence_percent,
            "in_range_percent": self.in_range_percent,
            "average": self.average,
            "min": self.min,
            "max": self.max,
            "trend": self.trend.value,
            "trend_delta": self.trend_delta,
            "alert_count": self.alert_count,
            "last_alert": self.last_alert.to_dict() if self.last_alert else None,
        }


@dataclass
class FollowUpSummary:
    """Everything a follow-up report needs about one enrollment."""

    enrollment: FollowUpEnrollment
    disease_label: str
    targets: Dict[str, Optional[float]]
    stats: FollowUpStats
    measurements: List[Measurement] = field(default_factory=list)
    formatted_table: str = ""

    def to_dict(self) -> Dict[str, Any]:
        e = self.enrollment
        return {
            "id": e.enrollment_id,
            "patient_id": e.patient_id,
            "disease_subtype": e.disease_subtype,
            "disease_label": self.disease_label,
            "monitoring_type": e.monitoring_type.value,
            "status": e.status,
            "started_at": e.started_at.isoformat(),
            "frequency": e.frequency.value,
            "duration_days": e.duration_days,
            "targets": self.targets,
            "stats": self.stats.to_dict(),
            "measurements": [m.to_dict() for m in self.measurements],
            "formatted_table": self.formatted_table,
        }
