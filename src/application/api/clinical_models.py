"""
Pydantic models for the clinical engine boundary.

Request/response models for each clinical component. Requests carry the
loosely-typed JSON a caller sends; domain validation (units, enums that
accept French spellings, timestamps) stays in the domain models, so string
fields here are passed through and checked there.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from domain.dose_models import PatientDoseProfile
from domain.followup_models import FollowUpEnrollment, Measurement


# ========================================
# Errors
# ========================================

class ErrorResponse(BaseModel):
    """Invalid input reported instead of a result."""
    error: str = Field("validation_error", description="Error kind")
    message: str = Field(..., description="Human readable message")
    field: Optional[str] = Field(None, description="Offending field")
    value: Optional[str] = Field(None, description="Offending value")


# ========================================
# Interactions
# ========================================

class InteractionCheckRequest(BaseModel):
    """Medication list to cross-check."""
    medications: List[str] = Field(default_factory=list, description="Medication names in input order")


class InteractionFindingModel(BaseModel):
    """A fired interaction rule."""
    rule_id: str
    drugs: List[str] = Field(default_factory=list, description="Rule tokens")
    severity: str
    description: str
    mechanism: str
    management: str
    evidence: str
    drug_a: str = Field(..., description="First matched input name")
    drug_b: str = Field(..., description="Second matched input name")
    matched_tokens: List[str] = Field(default_factory=list)
    ambiguous: bool = False


class InteractionCheckResponse(BaseModel):
    """Interaction summary for a medication list."""
    safety_level: str = Field(..., description="safe, caution, unsafe or contraindicated")
    contraindicated_count: int = 0
    major_count: int = 0
    has_ambiguous_matches: bool = False
    findings: List[InteractionFindingModel] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


# ========================================
# Dose adjustment
# ========================================

class DoseProfileModel(BaseModel):
    """Patient data for dose checks. Every field is optional."""
    age: Optional[float] = Field(None, description="Age in years")
    sex: Optional[str] = Field(None, description="male/female (m, f, homme, femme accepted)")
    weight_kg: Optional[float] = Field(None, description="Body weight in kg")
    serum_creatinine_umol_l: Optional[float] = Field(None, description="Serum creatinine in umol/L")
    egfr: Optional[float] = Field(None, description="Measured eGFR in ml/min/1.73m2")
    child_pugh_class: Optional[str] = Field(None, description="A, B or C")
    bilirubin_mg_dl: Optional[float] = None
    albumin_g_dl: Optional[float] = None
    inr: Optional[float] = None
    ascites: Optional[str] = Field(None, description="none, mild or moderate")
    encephalopathy: Optional[str] = Field(None, description="none, grade1-2 or grade3-4")
    pregnant: bool = False

    def to_profile(self) -> PatientDoseProfile:
        """Build the domain profile (raises ClinicalValidationError)."""
        return PatientDoseProfile(**self.model_dump())


class DoseAdjustmentRequest(BaseModel):
    """One drug checked against one patient profile."""
    drug: str = Field(..., min_length=1, description="Drug name")
    profile: DoseProfileModel = Field(default_factory=DoseProfileModel)
    original_dose_mg: Optional[float] = Field(None, description="Numeric standard dose in mg")
    original_dose: Optional[str] = Field(None, description="Dose as written")


class RenalFunctionModel(BaseModel):
    egfr: float
    method: str
    stage: str
    label: str
    recommendation: str


class DoseAdjustmentModel(BaseModel):
    """One dose advisory."""
    drug: str
    reason: str
    original_dose: str
    adjusted_dose: str
    adjustment_type: str
    severity: str
    recommendation: str
    contraindicated: bool = False
    dose_factor: float = Field(1.0, ge=0, le=1)
    original_dose_mg: Optional[float] = None
    adjusted_dose_mg: Optional[float] = None


class DoseAdjustmentResponse(BaseModel):
    drug: str
    renal_function: Optional[RenalFunctionModel] = None
    adjustments: List[DoseAdjustmentModel] = Field(default_factory=list)

    @property
    def contraindicated(self) -> bool:
        return any(a.contraindicated for a in self.adjustments)


# ========================================
# Differential diagnosis
# ========================================

class DifferentialRequest(BaseModel):
    complaint: str = Field(..., description="Presenting complaint, symptom key or free text")
    symptoms: List[str] = Field(default_factory=list, description="Additional symptoms")


class DifferentialDiagnosisModel(BaseModel):
    name: str
    icd10: str
    probability: str
    severity: str
    time_sensitive: bool
    cannot_miss: bool
    supporting_features: List[str] = Field(default_factory=list)
    against_features: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)
    clinical_pearl: Optional[str] = None


class DifferentialResponse(BaseModel):
    """Ranked differential; empty when the complaint is not recognized."""
    symptom_key: Optional[str] = None
    differentials: List[DifferentialDiagnosisModel] = Field(default_factory=list)
    cannot_miss: List[DifferentialDiagnosisModel] = Field(default_factory=list)


# ========================================
# Protocol enforcement
# ========================================

class ProtocolEnforcementRequest(BaseModel):
    """Diagnosis text and the drafted analysis to enforce."""
    diagnosis: str = Field(..., description="Working diagnosis text")
    analysis: Dict[str, Any] = Field(default_factory=dict, description="Drafted clinical analysis JSON")


class ProtocolEnforcementResponse(BaseModel):
    state: str = Field(..., description="unmatched or enforced")
    enforced: bool = False
    category: Optional[str] = None
    protocol: Optional[str] = Field(None, description="Protocol diagnosis name")
    analysis: Dict[str, Any] = Field(default_factory=dict, description="Resulting analysis JSON")
    changes: List[str] = Field(default_factory=list)
    critical_issues: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)


# ========================================
# Follow-up
# ========================================

class FollowUpEnrollmentModel(BaseModel):
    """Enrollment in a monitoring programme."""
    enrollment_id: str
    patient_id: str
    monitoring_type: str = Field(..., description="blood_pressure, glycemia_type1, glycemia_type2 or weight")
    frequency: str = Field(..., description="daily, every_2_days, twice_weekly, three_days_weekly or weekly")
    started_at: datetime
    duration_days: Optional[int] = None
    measurement_times: List[str] = Field(default_factory=list, description="Times of day (HH:MM)")
    target_systolic_max: Optional[float] = None
    target_diastolic_max: Optional[float] = None
    target_min: Optional[float] = None
    target_max: Optional[float] = None
    baseline_weight: Optional[float] = None
    disease_subtype: Optional[str] = None
    status: str = "active"

    def to_enrollment(self) -> FollowUpEnrollment:
        return FollowUpEnrollment(**self.model_dump())


class MeasurementModel(BaseModel):
    """One recorded measurement; value_1 is systolic, glycaemia or weight."""
    enrollment_id: str
    measurement_type: str
    value_1: float
    measured_at: datetime
    value_2: Optional[float] = Field(None, description="Diastolic")
    unit: str = ""
    is_alert: bool = False
    escalation_status: Optional[str] = None
    tag: Optional[str] = None
    source: Optional[str] = None
    heart_rate: Optional[int] = None
    waist_cm: Optional[float] = None
    measurement_id: Optional[str] = None

    def to_measurement(self) -> Measurement:
        return Measurement(**self.model_dump())


class FollowUpRequest(BaseModel):
    enrollment: FollowUpEnrollmentModel
    measurements: List[MeasurementModel] = Field(default_factory=list)
    reference_time: Optional[datetime] = Field(None, description="Defaults to now (UTC)")


class LastAlertModel(BaseModel):
    level: str = Field(..., description="ROUGE or ORANGE")
    date: str = Field(..., description="YYYY-MM-DD")


class FollowUpStatsModel(BaseModel):
    total_measures: int = 0
    expected_measures: int = 1
    adherence_percent: int = Field(0, ge=0, le=100)
    in_range_percent: int = Field(0, ge=0, le=100)
    average: str = "N/A"
    min: str = "N/A"
    max: str = "N/A"
    trend: str = "stable"
    trend_delta: str = "N/A"
    alert_count: int = 0
    last_alert: Optional[LastAlertModel] = None


class FollowUpResponse(BaseModel):
    """Follow-up summary for one enrollment."""
    id: str = Field(..., description="Enrollment id")
    patient_id: str
    disease_subtype: Optional[str] = None
    disease_label: str = ""
    monitoring_type: str
    status: str
    started_at: datetime
    frequency: str
    duration_days: Optional[int] = None
    targets: Dict[str, Optional[float]] = Field(default_factory=dict)
    stats: FollowUpStatsModel
    measurements: List[MeasurementModel] = Field(default_factory=list, description="Most recent first")
    formatted_table: str = ""


# ========================================
# Safety review
# ========================================

class SafetyReviewRequest(BaseModel):
    patient_id: str = ""
    chief_complaint: str = ""
    symptoms: List[str] = Field(default_factory=list)
    current_medications: List[str] = Field(default_factory=list)
    proposed_medications: List[str] = Field(default_factory=list)
    dose_profile: DoseProfileModel = Field(default_factory=DoseProfileModel)


class MedicationAdjustmentsModel(BaseModel):
    medication: str
    contraindicated: bool = False
    adjustments: List[DoseAdjustmentModel] = Field(default_factory=list)


class DoseAdjustmentSection(BaseModel):
    medications_requiring_adjustment: List[MedicationAdjustmentsModel] = Field(default_factory=list)
    renal_function: Optional[RenalFunctionModel] = None


class QualityAssessmentModel(BaseModel):
    differential_diagnoses_generated: bool = False
    interactions_checked: bool = True
    overall_safety_score: int = Field(100, ge=0, le=100)


class SafetyReviewResponse(BaseModel):
    """Combined safety findings with an overall score."""
    differential_diagnoses: List[DifferentialDiagnosisModel] = Field(default_factory=list)
    cannot_miss_diagnoses: List[DifferentialDiagnosisModel] = Field(default_factory=list)
    drug_interactions: InteractionCheckResponse
    dose_adjustments: DoseAdjustmentSection = Field(default_factory=DoseAdjustmentSection)
    quality_assessment: QualityAssessmentModel = Field(default_factory=QualityAssessmentModel)
