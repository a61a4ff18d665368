"""Dose Adjustment Domain Models.

Patient profile, renal/hepatic classifications, the adjustment advisory
record, and the rule shapes of the static dose tables.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from domain.clinical_errors import ClinicalValidationError


class Sex(str, Enum):
    """Biological sex used by renal formulas."""

    MALE = "male"
    FEMALE = "female"

    @classmethod
    def parse(cls, value: Any) -> "Sex":
        if isinstance(value, Sex):
            return value
        text = str(value).strip().lower()
        if text in ("m", "male", "h", "homme", "man"):
            return cls.MALE
        if text in ("f", "female", "femme", "woman"):
            return cls.FEMALE
        raise ClinicalValidationError(f"Unknown sex: {value!r}", field="sex", value=value)


class AdjustmentType(str, Enum):
    """Why a dose adjustment was emitted."""

    RENAL = "renal"
    HEPATIC = "hepatic"
    GERIATRIC = "geriatric"
    WEIGHT = "weight"
    PREGNANCY = "pregnancy"


class AdjustmentSeverity(str, Enum):
    """Severity of a dose adjustment advisory."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    MODERATE = "moderate"


class ChildPughClass(str, Enum):
    """Child-Pugh hepatic impairment class."""

    A = "A"
    B = "B"
    C = "C"


class Ascites(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"


class Encephalopathy(str, Enum):
    NONE = "none"
    GRADE_1_2 = "grade1-2"
    GRADE_3_4 = "grade3-4"


class RenalEstimateMethod(str, Enum):
    """Where a renal function estimate came from."""

    MEASURED = "measured"
    COCKCROFT_GAULT = "cockcroft_gault"
    CKD_EPI = "ckd_epi"


class PregnancyCategory(str, Enum):
    """FDA letter category (only the restrictive ones are tabulated)."""

    D = "D"
    X = "X"


def _coerce(enum_cls, value: Any, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ClinicalValidationError(
            f"Invalid {field_name}: {value!r}", field=field_name, value=value
        ) from e


@dataclass
class PatientDoseProfile:
    """Patient data available to the dose adjuster.

    Every field is optional; a check whose inputs are missing is skipped.

    Attributes:
        age: Age in years
        sex: Biological sex
        weight_kg: Body weight in kg
        serum_creatinine_umol_l: Serum creatinine in umol/L
        egfr: Measured eGFR in ml/min/1.73m2 (takes precedence)
        child_pugh_class: Known Child-Pugh class
        bilirubin_mg_dl, albumin_g_dl, inr, ascites, encephalopathy:
            Surrogate markers scored into a Child-Pugh class when the class
            itself is not given
        pregnant: Whether the patient is pregnant
    """

    age: Optional[float] = None
    sex: Optional[Sex] = None
    weight_kg: Optional[float] = None
    serum_creatinine_umol_l: Optional[float] = None
    egfr: Optional[float] = None
    child_pugh_class: Optional[ChildPughClass] = None
    bilirubin_mg_dl: Optional[float] = None
    albumin_g_dl: Optional[float] = None
    inr: Optional[float] = None
    ascites: Optional[Ascites] = None
    encephalopathy: Optional[Encephalopathy] = None
    pregnant: bool = False

    def __post_init__(self):
        if self.sex is not None:
            self.sex = Sex.parse(self.sex)
        if self.child_pugh_class is not None and not isinstance(self.child_pugh_class, ChildPughClass):
            self.child_pugh_class = _coerce(
                ChildPughClass, str(self.child_pugh_class).strip().upper(), "child_pugh_class"
            )
        if self.ascites is not None:
            self.ascites = _coerce(Ascites, self.ascites, "ascites")
        if self.encephalopathy is not None:
            self.encephalopathy = _coerce(Encephalopathy, self.encephalopathy, "encephalopathy")

        if self.age is not None and self.age < 0:
            raise ClinicalValidationError("Age cannot be negative", field="age", value=self.age)
        for name in ("weight_kg", "serum_creatinine_umol_l"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ClinicalValidationError(f"{name} must be positive", field=name, value=value)
        if self.egfr is not None and self.egfr < 0:
            raise ClinicalValidationError("eGFR cannot be negative", field="egfr", value=self.egfr)

    @property
    def has_hepatic_markers(self) -> bool:
        return None not in (
            self.bilirubin_mg_dl, self.albumin_g_dl, self.inr, self.ascites, self.encephalopathy,
        )


@dataclass(frozen=True)
class RenalFunction:
    """Renal function estimate with KDIGO staging."""

    egfr: float
    method: RenalEstimateMethod
    stage: str
    label: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "egfr": self.egfr,
            "method": self.method.value,
            "stage": self.stage,
            "label": self.label,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class ChildPughScore:
    score: int
    child_pugh_class: ChildPughClass


@dataclass
class DoseAdjustment:
    """One actionable dose advisory for one drug.

    Attributes:
        drug: Drug name as supplied by the caller
        reason: Why the adjustment applies
        original_dose: Dose as supplied (or "Standard dose")
        adjusted_dose: Instruction replacing the original dose
        adjustment_type: renal, hepatic, geriatric, weight or pregnancy
        severity: critical, important or moderate
        recommendation: Monitoring or alternative advice
        contraindicated: Drug must not be given
        dose_factor: Maximum fraction of the original dose, in [0, 1]
        original_dose_mg: Numeric standard dose when supplied
        adjusted_dose_mg: original_dose_mg * dose_factor
    """

    drug: str
    reason: str
    original_dose: str
    adjusted_dose: str
    adjustment_type: AdjustmentType
    severity: AdjustmentSeverity
    recommendation: str
    contraindicated: bool = False
    dose_factor: float = 1.0
    original_dose_mg: Optional[float] = None
    adjusted_dose_mg: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert adjustment to dictionary."""
        return {
            "drug": self.drug,
            "reason": self.reason,
            "original_dose": self.original_dose,
            "adjusted_dose": self.adjusted_dose,
            "adjustment_type": self.adjustment_type.value,
            "severity": self.severity.value,
            "recommendation": self.recommendation,
            "contraindicated": self.contraindicated,
            "dose_factor": self.dose_factor,
            "original_dose_mg": self.original_dose_mg,
            "adjusted_dose_mg": self.adjusted_dose_mg,
        }


# Static table rule shapes


@dataclass(frozen=True)
class DoseInstruction:
    """Instruction text with the maximum dose fraction it allows."""

    text: str
    dose_factor: float = 1.0
    contraindicated: bool = False


@dataclass(frozen=True)
class RenalBand:
    """Applies when clearance is below `below` ml/min."""

    below: float
    instruction: DoseInstruction


@dataclass(frozen=True)
class RenalAdjustmentRule:
    drugs: Tuple[str, ...]
    bands: Tuple[RenalBand, ...]
    monitoring: str

    @property
    def threshold(self) -> float:
        return max(b.below for b in self.bands)

    def band_for(self, clearance: float) -> Optional[RenalBand]:
        """Tightest band whose limit the clearance falls under."""
        applicable = [b for b in self.bands if clearance < b.below]
        if not applicable:
            return None
        return min(applicable, key=lambda b: b.below)


@dataclass(frozen=True)
class HepaticAdjustmentRule:
    drugs: Tuple[str, ...]
    child_pugh_b: DoseInstruction
    child_pugh_c: DoseInstruction
    monitoring: str


@dataclass(frozen=True)
class GeriatricRule:
    """Beers-criteria style caution for patients aged 65 and over."""

    drugs: Tuple[str, ...]
    recommendation: str
    alternative: str
    dose_factor: float = 1.0


@dataclass(frozen=True)
class WeightBandRule:
    """Weight-banded dosing; outside [min, max] an adjustment is emitted."""

    drugs: Tuple[str, ...]
    min_weight_kg: Optional[float]
    max_weight_kg: Optional[float]
    below: DoseInstruction
    above: DoseInstruction
    monitoring: str


@dataclass(frozen=True)
class PregnancyRule:
    drugs: Tuple[str, ...]
    category: PregnancyCategory
    note: str
    alternative: str = ""


@dataclass(frozen=True)
class DoseTables:
    """All static dose tables, grouped for the knowledge base."""

    renal: Tuple[RenalAdjustmentRule, ...] = field(default_factory=tuple)
    hepatic: Tuple[HepaticAdjustmentRule, ...] = field(default_factory=tuple)
    geriatric: Tuple[GeriatricRule, ...] = field(default_factory=tuple)
    weight: Tuple[WeightBandRule, ...] = field(default_factory=tuple)
    pregnancy: Tuple[PregnancyRule, ...] = field(default_factory=tuple)
