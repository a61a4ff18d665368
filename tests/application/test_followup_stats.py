"""Tests for the Follow-up Statistics Engine."""

from datetime import datetime, timedelta, timezone

import pytest

from application.clinical.followup_stats import NO_MEASUREMENTS, FollowUpStatsEngine
from config.engine_config import FollowUpConfig
from domain.clinical_errors import ClinicalValidationError
from domain.followup_models import FollowUpEnrollment, Measurement, Trend

REFERENCE = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def engine(knowledge_base):
    return FollowUpStatsEngine(knowledge_base, FollowUpConfig())


def enrollment(monitoring_type="blood_pressure", frequency="daily", days=14, **kwargs):
    return FollowUpEnrollment(
        enrollment_id="enr-1",
        patient_id="pat-1",
        monitoring_type=monitoring_type,
        frequency=frequency,
        started_at=REFERENCE - timedelta(days=days),
        **kwargs,
    )


def bp(days_ago, systolic, diastolic, **kwargs):
    return Measurement(
        enrollment_id="enr-1",
        measurement_type="blood_pressure",
        value_1=systolic,
        value_2=diastolic,
        measured_at=REFERENCE - timedelta(days=days_ago),
        **kwargs,
    )


def reading(measurement_type, days_ago, value, **kwargs):
    return Measurement(
        enrollment_id="enr-1",
        measurement_type=measurement_type,
        value_1=value,
        measured_at=REFERENCE - timedelta(days=days_ago),
        **kwargs,
    )


def two_weeks_of_bp(recent, earlier):
    """One reading a day: `recent` over the last 7 days, `earlier` over the 7 before."""
    return (
        [bp(d + 0.5, *recent) for d in range(7)]
        + [bp(d + 0.5, *earlier) for d in range(7, 14)]
    )


# ========================================
# Expected measures
# ========================================

class TestExpectedMeasures:
    """Tests for schedule-based expected counts."""

    @pytest.mark.parametrize("frequency, days, times, expected", [
        ("daily", 14, (), 14),
        ("daily", 7, ("08:00", "20:00"), 14),
        ("every_2_days", 5, (), 3),
        ("twice_weekly", 14, (), 4),
        ("three_days_weekly", 14, (), 6),
        ("weekly", 14, (), 2),
    ])
    def test_frequencies(self, engine, frequency, days, times, expected):
        e = enrollment(frequency=frequency, days=days, measurement_times=times)
        assert engine.expected_measures(e, REFERENCE) == expected

    def test_never_below_one(self, engine):
        assert engine.expected_measures(enrollment(days=0), REFERENCE) == 1

    def test_capped_at_duration(self, engine):
        e = enrollment(days=30, duration_days=10)
        assert engine.elapsed_days(e, REFERENCE) == 10.0
        assert engine.expected_measures(e, REFERENCE) == 10

    def test_start_after_reference_raises(self, engine):
        with pytest.raises(ClinicalValidationError) as exc:
            engine.expected_measures(enrollment(days=-1), REFERENCE)
        assert exc.value.field == "started_at"


# ========================================
# Statistics
# ========================================

class TestBloodPressureStats:
    """Tests for blood pressure statistics."""

    def test_full_adherence(self, engine):
        stats = engine.compute_stats(enrollment(), two_weeks_of_bp((130, 80), (130, 80)), REFERENCE)
        assert stats.total_measures == 14
        assert stats.expected_measures == 14
        assert stats.adherence_percent == 100

    def test_adherence_capped_at_100(self, engine):
        measurements = two_weeks_of_bp((130, 80), (130, 80)) + [bp(0.25, 128, 79)]
        assert engine.compute_stats(enrollment(), measurements, REFERENCE).adherence_percent == 100

    def test_rising_pressure_is_degradation(self, engine):
        stats = engine.compute_stats(enrollment(), two_weeks_of_bp((136, 86), (130, 83)), REFERENCE)
        assert stats.trend == Trend.DEGRADATION
        assert stats.trend_delta == "+6/+3 mmHg"

    def test_small_change_is_stable(self, engine):
        stats = engine.compute_stats(enrollment(), two_weeks_of_bp((134, 84), (130, 83)), REFERENCE)
        assert stats.trend == Trend.STABLE
        assert stats.trend_delta == "+4/+1 mmHg"

    def test_falling_pressure_is_amelioration(self, engine):
        stats = engine.compute_stats(enrollment(), two_weeks_of_bp((124, 78), (130, 83)), REFERENCE)
        assert stats.trend == Trend.AMELIORATION
        assert stats.trend_delta == "-6/-5 mmHg"

    def test_configured_threshold(self, knowledge_base):
        engine = FollowUpStatsEngine(knowledge_base, FollowUpConfig(bp_trend_threshold=10))
        stats = engine.compute_stats(enrollment(), two_weeks_of_bp((136, 86), (130, 83)), REFERENCE)
        assert stats.trend == Trend.STABLE

    def test_average_min_max_and_range(self, engine):
        stats = engine.compute_stats(enrollment(), two_weeks_of_bp((136, 86), (130, 83)), REFERENCE)
        assert stats.average == "133/85 mmHg"
        assert stats.min == "130/83 mmHg"
        assert stats.max == "136/86 mmHg"
        assert stats.in_range_percent == 50

    def test_enrollment_targets_override_defaults(self, engine):
        e = enrollment(target_systolic_max=140, target_diastolic_max=90)
        stats = engine.compute_stats(e, two_weeks_of_bp((136, 86), (130, 83)), REFERENCE)
        assert stats.in_range_percent == 100

    def test_one_week_of_data_has_no_trend(self, engine):
        measurements = [bp(d + 0.5, 130, 80) for d in range(7)]
        stats = engine.compute_stats(enrollment(), measurements, REFERENCE)
        assert stats.trend == Trend.STABLE
        assert stats.trend_delta == "N/A"

    def test_future_measurements_excluded_from_trend(self, engine):
        measurements = [bp(1, 130, 80), bp(8, 130, 80), bp(-1, 200, 120)]
        stats = engine.compute_stats(enrollment(), measurements, REFERENCE)
        assert stats.trend_delta == "0/0 mmHg"
        assert stats.trend == Trend.STABLE
        assert stats.total_measures == 2
        assert stats.max == "130/80 mmHg"

    def test_last_alert(self, engine):
        measurements = [
            bp(5, 165, 100, is_alert=True, escalation_status="pending"),
            bp(2, 182, 112, is_alert=True, escalation_status="critical"),
            bp(1, 130, 80),
        ]
        stats = engine.compute_stats(enrollment(), measurements, REFERENCE)
        assert stats.alert_count == 2
        assert stats.last_alert.level == "ROUGE"
        assert stats.last_alert.date == "2024-03-13"

    def test_non_critical_alert_is_orange(self, engine):
        stats = engine.compute_stats(enrollment(), [bp(2, 165, 100, is_alert=True)], REFERENCE)
        assert stats.last_alert.level == "ORANGE"

    def test_empty_series(self, engine):
        stats = engine.compute_stats(enrollment(), [], REFERENCE)
        assert stats.total_measures == 0
        assert stats.expected_measures == 14
        assert stats.adherence_percent == 0
        assert stats.average == "N/A"
        assert stats.trend == Trend.STABLE
        assert stats.last_alert is None


class TestGlycemiaStats:
    """Tests for glycaemia statistics."""

    @pytest.fixture
    def measurements(self):
        return [
            reading("glycemia", 1, 1.30),
            reading("glycemia", 2, 1.30),
            reading("glycemia", 8, 1.10),
            reading("glycemia", 9, 1.10),
        ]

    def test_rise_is_degradation(self, engine, measurements):
        stats = engine.compute_stats(enrollment("glycemia_type2"), measurements, REFERENCE)
        assert stats.trend_delta == "+0.20 g/L"
        assert stats.trend == Trend.DEGRADATION

    def test_values_and_range(self, engine, measurements):
        stats = engine.compute_stats(enrollment("glycemia_type2"), measurements, REFERENCE)
        assert stats.average == "1.20 g/L"
        assert stats.min == "1.10 g/L"
        assert stats.max == "1.30 g/L"
        # Glycaemia bounds are inclusive
        assert stats.in_range_percent == 100
        assert stats.adherence_percent == 29

    def test_type1_lower_bound(self, engine):
        measurements = [reading("glycemia", 1, 0.75), reading("glycemia", 2, 0.75)]
        assert engine.compute_stats(enrollment("glycemia_type1"), measurements, REFERENCE).in_range_percent == 100
        assert engine.compute_stats(enrollment("glycemia_type2"), measurements, REFERENCE).in_range_percent == 0


class TestWeightStats:
    """Tests for weight statistics."""

    def test_loss_is_amelioration(self, engine):
        e = enrollment("weight", "weekly", baseline_weight=100)
        measurements = [reading("weight", 10, 100.0), reading("weight", 3, 98.0)]
        stats = engine.compute_stats(e, measurements, REFERENCE)
        assert stats.trend_delta == "-2.0 kg"
        assert stats.trend == Trend.AMELIORATION
        assert stats.average == "99.0 kg"
        assert stats.in_range_percent == 100
        assert stats.adherence_percent == 100

    def test_gain_is_degradation(self, engine):
        e = enrollment("weight", "weekly")
        measurements = [reading("weight", 10, 100.0), reading("weight", 3, 101.0)]
        stats = engine.compute_stats(e, measurements, REFERENCE)
        assert stats.trend_delta == "+1.0 kg"
        assert stats.trend == Trend.DEGRADATION

    def test_range_needs_baseline(self, engine):
        e = enrollment("weight", "weekly")
        stats = engine.compute_stats(e, [reading("weight", 3, 98.0)], REFERENCE)
        assert stats.in_range_percent == 0
        assert stats.trend_delta == "N/A"

    def test_range_is_five_percent_of_baseline(self, engine):
        e = enrollment("weight", "weekly", baseline_weight=100)
        measurements = [reading("weight", 10, 96.0), reading("weight", 3, 94.0)]
        assert engine.compute_stats(e, measurements, REFERENCE).in_range_percent == 50

    def test_future_readings_are_ignored(self, engine):
        e = enrollment("weight", "weekly")
        measurements = [
            reading("weight", 1, 80.0),
            reading("weight", -3, 95.0, is_alert=True, escalation_status="critical"),
        ]
        stats = engine.compute_stats(e, measurements, REFERENCE)
        assert stats.total_measures == 1
        assert stats.adherence_percent == 50
        assert stats.average == "80.0 kg"
        assert stats.max == "80.0 kg"
        assert stats.trend == Trend.STABLE
        assert stats.trend_delta == "N/A"
        assert stats.alert_count == 0
        assert stats.last_alert is None

    def test_only_future_readings(self, engine):
        stats = engine.compute_stats(enrollment("weight", "weekly"), [reading("weight", -1, 90.0)], REFERENCE)
        assert stats.total_measures == 0
        assert stats.average == "N/A"


class TestMeasurementValidation:
    """Tests for rejecting mismatched measurements."""

    def test_other_enrollment(self, engine):
        foreign = Measurement("enr-2", "blood_pressure", 130, REFERENCE, value_2=80)
        with pytest.raises(ClinicalValidationError) as exc:
            engine.compute_stats(enrollment(), [foreign], REFERENCE)
        assert exc.value.field == "enrollment_id"

    def test_wrong_type(self, engine):
        with pytest.raises(ClinicalValidationError) as exc:
            engine.compute_stats(enrollment(), [reading("glycemia", 1, 1.1)], REFERENCE)
        assert exc.value.field == "measurement_type"

    def test_blood_pressure_needs_diastolic(self, engine):
        with pytest.raises(ClinicalValidationError) as exc:
            engine.compute_stats(enrollment(), [reading("blood_pressure", 1, 130)], REFERENCE)
        assert exc.value.field == "value_2"


# ========================================
# Table and summary
# ========================================

class TestFormatTable:
    """Tests for the fixed-width measurement table."""

    def test_blood_pressure_table(self, engine):
        measurements = [bp(3, 128, 79), bp(1, 150, 95, is_alert=True, heart_rate=72, tag="morning")]
        lines = engine.format_table(enrollment(), measurements).split("\n")
        assert [c.strip() for c in lines[0].split("|")] == [
            "Date", "Time", "Systolic", "Diastolic", "HR", "Tag", "Alert",
        ]
        assert [c.strip() for c in lines[1].split("|")] == [
            "2024-03-14", "12:00", "150", "95", "72", "morning", "YES",
        ]
        assert [c.strip() for c in lines[2].split("|")] == [
            "2024-03-12", "12:00", "128", "79", "-", "-", "no",
        ]

    def test_columns_are_aligned(self, engine):
        measurements = [bp(3, 128, 79), bp(1, 150, 95, tag="after exercise")]
        lines = engine.format_table(enrollment(), measurements).split("\n")
        assert len({line.index("| ") for line in lines}) == 1
        assert len({line.rindex("| ") for line in lines}) == 1

    def test_weight_table_delta(self, engine):
        e = enrollment("weight", "weekly")
        measurements = [reading("weight", 10, 100.0, waist_cm=102), reading("weight", 3, 98.5)]
        lines = engine.format_table(e, measurements).split("\n")
        assert [c.strip() for c in lines[0].split("|")] == ["Date", "Weight (kg)", "Waist (cm)", "Delta", "Alert"]
        assert [c.strip() for c in lines[1].split("|")][3] == "-1.5 kg"
        assert [c.strip() for c in lines[2].split("|")][2:4] == ["102", "-"]

    def test_empty_table(self, engine):
        assert engine.format_table(enrollment(), []) == NO_MEASUREMENTS


class TestSummarize:
    """Tests for the combined follow-up summary."""

    def test_summary(self, engine):
        e = enrollment(disease_subtype="hypertension")
        summary = engine.summarize(e, [bp(3, 128, 79), bp(1, 130, 80)], REFERENCE)
        assert summary.disease_label == "Hypertension Artérielle (HTA)"
        assert summary.targets == {"systolic_max": 135, "diastolic_max": 85}
        assert [m.measured_at.day for m in summary.measurements] == [14, 12]

        data = summary.to_dict()
        assert data["id"] == "enr-1"
        assert data["monitoring_type"] == "blood_pressure"
        assert data["frequency"] == "daily"
        assert data["stats"]["total_measures"] == 2
        assert data["formatted_table"].startswith("Date")

    def test_future_readings_left_out(self, engine):
        e = enrollment("weight", "weekly")
        measurements = [reading("weight", 1, 80.0), reading("weight", -3, 95.0)]
        summary = engine.summarize(e, measurements, REFERENCE)
        assert [m.value_1 for m in summary.measurements] == [80.0]
        assert len(summary.formatted_table.split("\n")) == 2
        assert summary.stats.total_measures == 1

    def test_table_leaves_out_future_readings(self, engine):
        lines = engine.format_table(enrollment(), [bp(1, 130, 80), bp(-2, 150, 90)], REFERENCE).split("\n")
        assert len(lines) == 2
        assert lines[1].startswith("2024-03-14")

    def test_unknown_subtype_label_falls_back(self, engine):
        assert engine.disease_label("gout") == "gout"
        assert engine.disease_label(None) == ""

    def test_weight_targets(self, engine):
        assert engine.targets(enrollment("weight", "weekly", baseline_weight=92)) == {"baseline_weight": 92}
