"""Tests for the combined Clinical Safety Review."""

import pytest

from application.clinical.differential_ranker import DifferentialRanker
from application.clinical.dose_adjuster import DoseAdjuster
from application.clinical.interaction_detector import InteractionDetector
from application.clinical.safety_review import (
    ClinicalSafetyReview,
    MedicationAdjustments,
    PatientSafetyContext,
    overall_safety_score,
)
from config.engine_config import DoseConfig, SafetyScoreConfig
from domain.dose_models import AdjustmentSeverity, AdjustmentType, DoseAdjustment, PatientDoseProfile
from domain.interaction_models import SafetyLevel


@pytest.fixture(scope="module")
def review(knowledge_base, resolver):
    return ClinicalSafetyReview(
        DifferentialRanker(knowledge_base),
        InteractionDetector(knowledge_base, resolver),
        DoseAdjuster(knowledge_base, resolver, DoseConfig()),
        SafetyScoreConfig(),
    )


def adjustment(contraindicated):
    return DoseAdjustment(
        drug="x",
        reason="test",
        original_dose="Standard dose",
        adjusted_dose="CONTRAINDICATED" if contraindicated else "Reduce",
        adjustment_type=AdjustmentType.RENAL,
        severity=AdjustmentSeverity.IMPORTANT,
        recommendation="",
        contraindicated=contraindicated,
        dose_factor=0.0 if contraindicated else 0.5,
    )


# ========================================
# Score
# ========================================

class TestOverallSafetyScore:
    """Tests for the score arithmetic."""

    @pytest.mark.parametrize("level, expected", [
        (SafetyLevel.SAFE, 100),
        (SafetyLevel.CAUTION, 85),
        (SafetyLevel.UNSAFE, 70),
        (SafetyLevel.CONTRAINDICATED, 50),
    ])
    def test_interaction_penalty(self, level, expected):
        assert overall_safety_score(level, [], 0) == expected

    def test_medication_penalties(self):
        adjusted = [
            MedicationAdjustments("a", [adjustment(True)]),
            MedicationAdjustments("b", [adjustment(False)]),
        ]
        assert overall_safety_score(SafetyLevel.SAFE, adjusted, 0) == 75

    def test_cannot_miss_bonus_is_capped(self):
        assert overall_safety_score(SafetyLevel.SAFE, [], 2) == 100
        assert overall_safety_score(SafetyLevel.CAUTION, [], 1) == 95

    def test_never_below_zero(self):
        adjusted = [MedicationAdjustments(str(i), [adjustment(True)]) for i in range(3)]
        assert overall_safety_score(SafetyLevel.CONTRAINDICATED, adjusted, 0) == 0

    def test_custom_weights(self):
        weights = SafetyScoreConfig(unsafe_penalty=60)
        assert overall_safety_score(SafetyLevel.UNSAFE, [], 0, weights) == 40


# ========================================
# Review
# ========================================

class TestClinicalSafetyReview:
    """Tests for the combined review."""

    def test_chest_pain_on_warfarin_and_ibuprofen(self, review):
        context = PatientSafetyContext(
            patient_id="p1",
            chief_complaint="chest pain",
            current_medications=["warfarin"],
            proposed_medications=["ibuprofen"],
        )
        report = review.review(context)
        assert report.interactions.safety_level == SafetyLevel.UNSAFE
        assert report.medications_requiring_adjustment == []
        assert report.cannot_miss
        assert report.overall_safety_score == 80

    def test_older_patient_adds_geriatric_advisory(self, review):
        context = PatientSafetyContext(
            chief_complaint="chest pain",
            current_medications=["warfarin"],
            proposed_medications=["ibuprofen"],
            dose_profile=PatientDoseProfile(age=70),
        )
        report = review.review(context)
        assert [m.medication for m in report.medications_requiring_adjustment] == ["ibuprofen"]
        assert report.overall_safety_score == 75

    def test_contraindicated_dose(self, review):
        context = PatientSafetyContext(
            proposed_medications=["metformin"],
            dose_profile=PatientDoseProfile(egfr=20),
        )
        report = review.review(context)
        assert report.medications_requiring_adjustment[0].contraindicated
        assert report.renal_function.stage == "G4"
        assert report.differentials == []
        assert report.overall_safety_score == 80

    def test_only_proposed_medications_are_dose_checked(self, review):
        context = PatientSafetyContext(
            current_medications=["metformin"],
            dose_profile=PatientDoseProfile(egfr=20),
        )
        assert review.review(context).medications_requiring_adjustment == []

    def test_empty_context(self, review):
        report = review.review(PatientSafetyContext())
        assert report.overall_safety_score == 100
        assert report.interactions.safety_level == SafetyLevel.SAFE

    def test_to_dict(self, review):
        context = PatientSafetyContext(
            chief_complaint="headache",
            proposed_medications=["metformin"],
            dose_profile=PatientDoseProfile(egfr=45),
        )
        data = review.review(context).to_dict()
        assert set(data) == {
            "differential_diagnoses",
            "cannot_miss_diagnoses",
            "drug_interactions",
            "dose_adjustments",
            "quality_assessment",
        }
        assert data["differential_diagnoses"][0]["name"] == "Meningitis"
        assert data["dose_adjustments"]["renal_function"]["stage"] == "G3a"
        assert data["dose_adjustments"]["medications_requiring_adjustment"][0]["medication"] == "metformin"
        assert data["quality_assessment"] == {
            "differential_diagnoses_generated": True,
            "interactions_checked": True,
            "overall_safety_score": 100,
        }
