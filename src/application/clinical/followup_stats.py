"""Follow-up Statistics Engine.

Turns a chronic-disease enrollment and its measurement series into
adherence, range, trend and alert analytics plus a fixed-width table for
report generation. Statistics are recomputed on every call and never stored.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from application.clinical.numeric import format_fixed, round_int
from config.engine_config import FollowUpConfig, get_engine_config
from domain.clinical_errors import ClinicalValidationError
from domain.followup_models import (
    Frequency,
    FollowUpEnrollment,
    FollowUpStats,
    FollowUpSummary,
    LastAlert,
    Measurement,
    MeasurementType,
    TrendPolicy,
    TrendWindow,
    as_utc,
)
from domain.knowledge_base import ClinicalKnowledgeBase, get_knowledge_base

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0
NO_MEASUREMENTS = "no measurements recorded"


def _signed(value: float, text: str) -> str:
    """Prefix "+" on strictly positive deltas only."""
    return f"+{text}" if value > 0 else text


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _most_recent_first(measurements: Sequence[Measurement]) -> List[Measurement]:
    return sorted(measurements, key=lambda m: m.measured_at, reverse=True)


def _up_to(measurements: Sequence[Measurement], now: datetime) -> List[Measurement]:
    """Measurements taken at or before the reference time."""
    return [m for m in measurements if m.measured_at <= now]


class FollowUpStatsEngine:
    """Computes follow-up statistics for one enrollment at a time."""

    def __init__(
        self,
        knowledge_base: Optional[ClinicalKnowledgeBase] = None,
        config: Optional[FollowUpConfig] = None,
    ):
        self.knowledge_base = knowledge_base or get_knowledge_base()
        self.config = config or get_engine_config().follow_up

    # ========================================
    # Policies and lookups
    # ========================================

    def trend_policy(self, measurement_type: MeasurementType) -> TrendPolicy:
        """Trend rule for a measurement type (see TrendPolicy for the weight sign)."""
        if measurement_type == MeasurementType.BLOOD_PRESSURE:
            return TrendPolicy(self.config.bp_trend_threshold, TrendWindow.WEEK_OVER_WEEK)
        if measurement_type == MeasurementType.GLYCEMIA:
            return TrendPolicy(self.config.glycemia_trend_threshold, TrendWindow.WEEK_OVER_WEEK)
        return TrendPolicy(
            self.config.weight_trend_threshold,
            TrendWindow.LAST_TWO_MEASUREMENTS,
            increase_is_worse=self.config.weight_increase_is_worse,
        )

    def targets(self, enrollment: FollowUpEnrollment) -> Dict[str, Optional[float]]:
        """Effective thresholds: enrollment values, else type defaults."""
        defaults = self.knowledge_base.default_targets.get(enrollment.monitoring_type, {})
        kind = enrollment.monitoring_type.measurement_type
        if kind == MeasurementType.BLOOD_PRESSURE:
            return {
                "systolic_max": enrollment.target_systolic_max if enrollment.target_systolic_max is not None
                else defaults.get("systolic_max"),
                "diastolic_max": enrollment.target_diastolic_max if enrollment.target_diastolic_max is not None
                else defaults.get("diastolic_max"),
            }
        if kind == MeasurementType.GLYCEMIA:
            return {
                "min": enrollment.target_min if enrollment.target_min is not None else defaults.get("min"),
                "max": enrollment.target_max if enrollment.target_max is not None else defaults.get("max"),
            }
        return {"baseline_weight": enrollment.baseline_weight}

    def disease_label(self, subtype: Optional[str]) -> str:
        if not subtype:
            return ""
        return self.knowledge_base.disease_labels.get(subtype, subtype)

    # ========================================
    # Validation
    # ========================================

    @staticmethod
    def _reference(reference_time: Optional[datetime]) -> datetime:
        return as_utc(reference_time) if reference_time is not None else datetime.now(timezone.utc)

    @staticmethod
    def validate_measurements(enrollment: FollowUpEnrollment, measurements: Sequence[Measurement]) -> None:
        """Reject measurements that belong to another enrollment or type."""
        expected_type = enrollment.monitoring_type.measurement_type
        for m in measurements:
            if m.enrollment_id != enrollment.enrollment_id:
                raise ClinicalValidationError(
                    f"Measurement belongs to enrollment {m.enrollment_id!r}, not {enrollment.enrollment_id!r}",
                    field="enrollment_id",
                    value=m.enrollment_id,
                )
            if m.measurement_type != expected_type:
                raise ClinicalValidationError(
                    f"{m.measurement_type.value} measurement in a {enrollment.monitoring_type.value} follow-up",
                    field="measurement_type",
                    value=m.measurement_type.value,
                )
            if expected_type == MeasurementType.BLOOD_PRESSURE and m.value_2 is None:
                raise ClinicalValidationError(
                    "Blood pressure measurement without a diastolic value",
                    field="value_2",
                    value=None,
                )

    # ========================================
    # Counts
    # ========================================

    def elapsed_days(self, enrollment: FollowUpEnrollment, reference_time: Optional[datetime] = None) -> float:
        """Days since enrollment start, capped at the planned duration."""
        now = self._reference(reference_time)
        days = (now - enrollment.started_at).total_seconds() / SECONDS_PER_DAY
        if days < 0:
            raise ClinicalValidationError(
                "Enrollment starts after the reference time",
                field="started_at",
                value=enrollment.started_at.isoformat(),
            )
        if enrollment.duration_days is not None:
            days = min(days, float(enrollment.duration_days))
        return days

    def expected_measures(self, enrollment: FollowUpEnrollment, reference_time: Optional[datetime] = None) -> int:
        """Measurements the schedule asked for so far; never below 1."""
        days = self.elapsed_days(enrollment, reference_time)
        weeks = days / 7
        per_day = enrollment.times_per_day

        if enrollment.frequency == Frequency.DAILY:
            expected = round_int(per_day * days)
        elif enrollment.frequency == Frequency.EVERY_2_DAYS:
            expected = round_int(per_day * math.ceil(days / 2))
        elif enrollment.frequency == Frequency.TWICE_WEEKLY:
            expected = round_int(per_day * 2 * weeks)
        elif enrollment.frequency == Frequency.THREE_DAYS_WEEKLY:
            expected = round_int(per_day * 3 * weeks)
        else:
            expected = round_int(per_day * weeks)
        return max(expected, 1)

    # ========================================
    # Trend
    # ========================================

    def _window(self, measurements: Sequence[Measurement], now: datetime, start_days: float, end_days: float) -> List[Measurement]:
        selected = []
        for m in measurements:
            days_ago = (now - m.measured_at).total_seconds() / SECONDS_PER_DAY
            if start_days <= days_ago < end_days:
                selected.append(m)
        return selected

    def _trend_delta(
        self,
        policy: TrendPolicy,
        measurements: Sequence[Measurement],
        now: datetime,
        value: Callable[[Measurement], float],
    ) -> Optional[float]:
        """Recent minus earlier, or None when there is not enough data."""
        if policy.window == TrendWindow.LAST_TWO_MEASUREMENTS:
            ordered = _most_recent_first(measurements)
            if len(ordered) < 2:
                return None
            return value(ordered[0]) - value(ordered[1])

        span = self.config.trend_window_days
        recent = self._window(measurements, now, 0, span)
        earlier = self._window(measurements, now, span, 2 * span)
        if not recent or not earlier:
            return None
        return _mean([value(m) for m in recent]) - _mean([value(m) for m in earlier])

    # ========================================
    # Stats
    # ========================================

    @staticmethod
    def _last_alert(measurements: Sequence[Measurement]) -> Optional[LastAlert]:
        alerts = [m for m in measurements if m.is_alert]
        if not alerts:
            return None
        latest = _most_recent_first(alerts)[0]
        level = "ROUGE" if latest.escalation_status == "critical" else "ORANGE"
        return LastAlert(level=level, date=latest.measured_at.date().isoformat())

    def compute_stats(
        self,
        enrollment: FollowUpEnrollment,
        measurements: Sequence[Measurement],
        reference_time: Optional[datetime] = None,
    ) -> FollowUpStats:
        """Adherence, range, trend and alert statistics."""
        now = self._reference(reference_time)
        expected = self.expected_measures(enrollment, now)
        self.validate_measurements(enrollment, measurements)
        measurements = _up_to(measurements, now)
        if not measurements:
            return FollowUpStats(expected_measures=expected)

        total = len(measurements)
        stats = FollowUpStats(
            total_measures=total,
            expected_measures=expected,
            adherence_percent=min(round_int(total / expected * 100), 100),
            alert_count=sum(1 for m in measurements if m.is_alert),
            last_alert=self._last_alert(measurements),
        )

        kind = enrollment.monitoring_type.measurement_type
        if kind == MeasurementType.BLOOD_PRESSURE:
            self._blood_pressure_stats(stats, enrollment, measurements, now)
        elif kind == MeasurementType.GLYCEMIA:
            self._glycemia_stats(stats, enrollment, measurements, now)
        else:
            self._weight_stats(stats, enrollment, measurements, now)

        logger.debug(
            f"Follow-up {enrollment.enrollment_id}: {total}/{expected} measures, "
            f"trend {stats.trend.value} ({stats.trend_delta})"
        )
        return stats

    def _blood_pressure_stats(self, stats: FollowUpStats, enrollment, measurements, now) -> None:
        targets = self.targets(enrollment)
        systolic = [m.value_1 for m in measurements]
        diastolic = [m.value_2 for m in measurements]
        total = len(measurements)

        stats.average = f"{round_int(_mean(systolic))}/{round_int(_mean(diastolic))} mmHg"
        stats.min = f"{round_int(min(systolic))}/{round_int(min(diastolic))} mmHg"
        stats.max = f"{round_int(max(systolic))}/{round_int(max(diastolic))} mmHg"

        in_range = sum(
            1 for m in measurements
            if m.value_1 < targets["systolic_max"] and m.value_2 < targets["diastolic_max"]
        )
        stats.in_range_percent = round_int(in_range / total * 100)

        policy = self.trend_policy(MeasurementType.BLOOD_PRESSURE)
        delta_sys = self._trend_delta(policy, measurements, now, lambda m: m.value_1)
        if delta_sys is not None:
            delta_dia = self._trend_delta(policy, measurements, now, lambda m: m.value_2)
            sys_rounded, dia_rounded = round_int(delta_sys), round_int(delta_dia)
            stats.trend_delta = (
                f"{_signed(sys_rounded, str(sys_rounded))}/{_signed(dia_rounded, str(dia_rounded))} mmHg"
            )
            stats.trend = policy.classify(sys_rounded)

    def _glycemia_stats(self, stats: FollowUpStats, enrollment, measurements, now) -> None:
        targets = self.targets(enrollment)
        values = [m.value_1 for m in measurements]
        total = len(measurements)

        stats.average = f"{format_fixed(_mean(values), 2)} g/L"
        stats.min = f"{format_fixed(min(values), 2)} g/L"
        stats.max = f"{format_fixed(max(values), 2)} g/L"

        in_range = sum(1 for v in values if targets["min"] <= v <= targets["max"])
        stats.in_range_percent = round_int(in_range / total * 100)

        policy = self.trend_policy(MeasurementType.GLYCEMIA)
        delta = self._trend_delta(policy, measurements, now, lambda m: m.value_1)
        if delta is not None:
            stats.trend_delta = f"{_signed(delta, format_fixed(delta, 2))} g/L"
            stats.trend = policy.classify(delta)

    def _weight_stats(self, stats: FollowUpStats, enrollment, measurements, now) -> None:
        values = [m.value_1 for m in measurements]
        total = len(measurements)

        stats.average = f"{format_fixed(_mean(values), 1)} kg"
        stats.min = f"{format_fixed(min(values), 1)} kg"
        stats.max = f"{format_fixed(max(values), 1)} kg"

        baseline = enrollment.baseline_weight
        if baseline:
            band = self.config.weight_in_range_percent
            in_range = sum(1 for v in values if abs((v - baseline) / baseline) * 100 < band)
            stats.in_range_percent = round_int(in_range / total * 100)

        policy = self.trend_policy(MeasurementType.WEIGHT)
        delta = self._trend_delta(policy, measurements, now, lambda m: m.value_1)
        if delta is not None:
            stats.trend_delta = f"{_signed(delta, format_fixed(delta, 1))} kg"
            stats.trend = policy.classify(delta)

    # ========================================
    # Table
    # ========================================

    @staticmethod
    def _row(cells: Sequence[Tuple[str, int]]) -> str:
        return "| ".join(text.ljust(width) for text, width in cells[:-1]) + "| " + cells[-1][0]

    def format_table(
        self,
        enrollment: FollowUpEnrollment,
        measurements: Sequence[Measurement],
        reference_time: Optional[datetime] = None,
    ) -> str:
        """Fixed-width measurement table, most recent first."""
        measurements = _up_to(measurements, self._reference(reference_time))
        if not measurements:
            return NO_MEASUREMENTS

        ordered = _most_recent_first(measurements)
        kind = enrollment.monitoring_type.measurement_type
        lines: List[str] = []

        if kind == MeasurementType.BLOOD_PRESSURE:
            widths = (11, 6, 9, 10, 4, 14, 0)
            lines.append(self._row(list(zip(
                ("Date", "Time", "Systolic", "Diastolic", "HR", "Tag", "Alert"), widths))))
            for m in ordered:
                lines.append(self._row(list(zip((
                    m.measured_at.strftime("%Y-%m-%d"),
                    m.measured_at.strftime("%H:%M"),
                    str(round_int(m.value_1)),
                    str(round_int(m.value_2 or 0)),
                    str(m.heart_rate) if m.heart_rate is not None else "-",
                    m.tag or "-",
                    "YES" if m.is_alert else "no",
                ), widths))))

        elif kind == MeasurementType.GLYCEMIA:
            widths = (11, 6, 15, 16, 0)
            lines.append(self._row(list(zip(
                ("Date", "Time", "Glycemia (g/L)", "Tag", "Alert"), widths))))
            for m in ordered:
                lines.append(self._row(list(zip((
                    m.measured_at.strftime("%Y-%m-%d"),
                    m.measured_at.strftime("%H:%M"),
                    f"{m.value_1:g}",
                    m.tag or "-",
                    "YES" if m.is_alert else "no",
                ), widths))))

        else:
            widths = (11, 12, 11, 11, 0)
            lines.append(self._row(list(zip(
                ("Date", "Weight (kg)", "Waist (cm)", "Delta", "Alert"), widths))))
            for i, m in enumerate(ordered):
                if i < len(ordered) - 1:
                    delta = m.value_1 - ordered[i + 1].value_1
                    delta_text = f"{_signed(delta, format_fixed(delta, 1))} kg"
                else:
                    delta_text = "-"
                lines.append(self._row(list(zip((
                    m.measured_at.strftime("%Y-%m-%d"),
                    f"{m.value_1:g}",
                    f"{m.waist_cm:g}" if m.waist_cm else "-",
                    delta_text,
                    "YES" if m.is_alert else "no",
                ), widths))))

        return "\n".join(lines)

    # ========================================
    # Summary
    # ========================================

    def summarize(
        self,
        enrollment: FollowUpEnrollment,
        measurements: Sequence[Measurement],
        reference_time: Optional[datetime] = None,
    ) -> FollowUpSummary:
        """Targets, stats, ordered measurements and table for one enrollment.

        Measurements after the reference time are left out of every part.
        """
        now = self._reference(reference_time)
        stats = self.compute_stats(enrollment, measurements, now)
        measurements = _up_to(measurements, now)
        summary = FollowUpSummary(
            enrollment=enrollment,
            disease_label=self.disease_label(enrollment.disease_subtype),
            targets=self.targets(enrollment),
            stats=stats,
            measurements=_most_recent_first(measurements),
            formatted_table=self.format_table(enrollment, measurements, now),
        )
        logger.info(
            f"Follow-up summary {enrollment.enrollment_id} ({enrollment.monitoring_type.value}): "
            f"adherence {stats.adherence_percent}%, in range {stats.in_range_percent}%, "
            f"{stats.alert_count} alerts"
        )
        return summary


# Global instance for easy access
_engine_instance: Optional[FollowUpStatsEngine] = None


def get_followup_stats_engine() -> FollowUpStatsEngine:
    """Get the global follow-up statistics engine instance."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = FollowUpStatsEngine()
    return _engine_instance
