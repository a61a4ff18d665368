"""Clinical Safety Review.

Runs the differential ranker, the interaction detector and the dose adjuster
over one patient context and condenses the findings into an overall safety
score for the physician's report.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from application.clinical.differential_ranker import (
    DifferentialRanker,
    cannot_miss,
    get_differential_ranker,
)
from application.clinical.dose_adjuster import DoseAdjuster, get_dose_adjuster
from application.clinical.interaction_detector import (
    InteractionDetector,
    get_interaction_detector,
)
from config.engine_config import SafetyScoreConfig, get_engine_config
from domain.differential_models import DifferentialDiagnosis
from domain.dose_models import DoseAdjustment, PatientDoseProfile, RenalFunction
from domain.interaction_models import InteractionSummary, SafetyLevel

logger = logging.getLogger(__name__)


@dataclass
class PatientSafetyContext:
    """Patient context for a safety review.

    Attributes:
        patient_id: Patient identifier
        chief_complaint: Presenting complaint (free text or symptom key)
        symptoms: Additional symptoms
        current_medications: Medications the patient already takes
        proposed_medications: Medications the draft proposes
        dose_profile: Data for dose checks (age, renal, hepatic...)
    """

    patient_id: str = ""
    chief_complaint: str = ""
    symptoms: List[str] = None
    current_medications: List[str] = None
    proposed_medications: List[str] = None
    dose_profile: Optional[PatientDoseProfile] = None

    def __post_init__(self):
        self.symptoms = self.symptoms or []
        self.current_medications = self.current_medications or []
        self.proposed_medications = self.proposed_medications or []
        self.dose_profile = self.dose_profile or PatientDoseProfile()


@dataclass
class MedicationAdjustments:
    medication: str
    adjustments: List[DoseAdjustment] = field(default_factory=list)

    @property
    def contraindicated(self) -> bool:
        return any(a.contraindicated for a in self.adjustments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication": self.medication,
            "contraindicated": self.contraindicated,
            "adjustments": [a.to_dict() for a in self.adjustments],
        }


@dataclass
class SafetyReviewReport:
    """Combined safety findings for one patient context."""

    differentials: List[DifferentialDiagnosis] = field(default_factory=list)
    cannot_miss: List[DifferentialDiagnosis] = field(default_factory=list)
    interactions: InteractionSummary = field(default_factory=InteractionSummary)
    medications_requiring_adjustment: List[MedicationAdjustments] = field(default_factory=list)
    renal_function: Optional[RenalFunction] = None
    overall_safety_score: int = 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "differential_diagnoses": [d.to_dict() for d in self.differentials],
            "cannot_miss_diagnoses": [d.to_dict() for d in self.cannot_miss],
            "drug_interactions": self.interactions.to_dict(),
            "dose_adjustments": {
                "medications_requiring_adjustment": [
                    m.to_dict() for m in self.medications_requiring_adjustment
                ],
                "renal_function": self.renal_function.to_dict() if self.renal_function else None,
            },
            "quality_assessment": {
                "differential_diagnoses_generated": bool(self.differentials),
                "interactions_checked": True,
                "overall_safety_score": self.overall_safety_score,
            },
        }


def overall_safety_score(
    safety_level: SafetyLevel,
    adjusted: List[MedicationAdjustments],
    cannot_miss_count: int,
    weights: Optional[SafetyScoreConfig] = None,
) -> int:
    """100 minus interaction and adjustment penalties, plus a cannot-miss bonus, in [0, 100]."""
    weights = weights or SafetyScoreConfig()
    score = 100
    if safety_level == SafetyLevel.CONTRAINDICATED:
        score -= weights.contraindicated_penalty
    elif safety_level == SafetyLevel.UNSAFE:
        score -= weights.unsafe_penalty
    elif safety_level == SafetyLevel.CAUTION:
        score -= weights.caution_penalty

    contraindicated = sum(1 for m in adjusted if m.contraindicated)
    score -= contraindicated * weights.contraindicated_medication_penalty
    score -= (len(adjusted) - contraindicated) * weights.adjusted_medication_penalty

    if cannot_miss_count > 0:
        score += weights.cannot_miss_bonus
    return max(0, min(100, score))


class ClinicalSafetyReview:
    """Combines ranker, detector and adjuster for one patient."""

    def __init__(
        self,
        ranker: Optional[DifferentialRanker] = None,
        detector: Optional[InteractionDetector] = None,
        adjuster: Optional[DoseAdjuster] = None,
        weights: Optional[SafetyScoreConfig] = None,
    ):
        self.ranker = ranker or get_differential_ranker()
        self.detector = detector or get_interaction_detector()
        self.adjuster = adjuster or get_dose_adjuster()
        self.weights = weights or get_engine_config().safety_score

    def review(self, context: PatientSafetyContext) -> SafetyReviewReport:
        """Differentials, interactions and dose advisories with a safety score."""
        ranked = self.ranker.rank(context.chief_complaint, context.symptoms)
        must_exclude = cannot_miss(ranked)

        all_medications = list(context.current_medications) + list(context.proposed_medications)
        interactions = self.detector.analyze(all_medications)

        renal = self.adjuster.estimate_renal_function(context.dose_profile)
        adjusted: List[MedicationAdjustments] = []
        for medication in context.proposed_medications:
            if not medication:
                continue
            adjustments = self.adjuster.adjust(medication, context.dose_profile, renal_function=renal)
            if adjustments:
                adjusted.append(MedicationAdjustments(medication=medication, adjustments=adjustments))

        score = overall_safety_score(interactions.safety_level, adjusted, len(must_exclude), self.weights)

        logger.info(
            f"Safety review for patient {context.patient_id or '-'}: "
            f"{len(ranked)} differentials ({len(must_exclude)} cannot-miss), "
            f"interactions {interactions.safety_level.value}, "
            f"{len(adjusted)} medications need adjustment, score {score}/100"
        )
        return SafetyReviewReport(
            differentials=ranked,
            cannot_miss=must_exclude,
            interactions=interactions,
            medications_requiring_adjustment=adjusted,
            renal_function=renal,
            overall_safety_score=score,
        )
