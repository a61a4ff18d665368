"""Differential Diagnosis Domain Models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SymptomKey(str, Enum):
    """Presenting complaints with a curated differential list."""

    CHEST_PAIN = "chest_pain"
    ABDOMINAL_PAIN = "abdominal_pain"
    HEADACHE = "headache"
    DYSPNEA = "dyspnea"


class ProbabilityTier(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


class SeverityTier(str, Enum):
    LIFE_THREATENING = "life_threatening"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"


# Lower sorts first
PROBABILITY_ORDER = {
    ProbabilityTier.HIGH: 0,
    ProbabilityTier.MODERATE: 1,
    ProbabilityTier.LOW: 2,
}

SEVERITY_ORDER = {
    SeverityTier.LIFE_THREATENING: 0,
    SeverityTier.SERIOUS: 1,
    SeverityTier.MODERATE: 2,
    SeverityTier.MINOR: 3,
}


@dataclass(frozen=True)
class DifferentialDiagnosis:
    """A candidate diagnosis for a presenting complaint.

    Attributes:
        name: Diagnosis name
        icd10: ICD-10 code
        probability: Pre-test probability tier
        severity: Severity tier
        time_sensitive: Delay worsens outcome
        cannot_miss: Must be actively excluded
        supporting_features: Findings in favour
        against_features: Findings against
        next_steps: Recommended investigations and actions
        clinical_pearl: Short teaching point
    """

    name: str
    icd10: str
    probability: ProbabilityTier
    severity: SeverityTier
    time_sensitive: bool
    cannot_miss: bool
    supporting_features: Tuple[str, ...] = ()
    against_features: Tuple[str, ...] = ()
    next_steps: Tuple[str, ...] = ()
    clinical_pearl: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert diagnosis to dictionary."""
        return {
            "name": self.name,
            "icd10": self.icd10,
            "probability": self.probability.value,
            "severity": self.severity.value,
            "time_sensitive": self.time_sensitive,
            "cannot_miss": self.cannot_miss,
            "supporting_features": list(self.supporting_features),
            "against_features": list(self.against_features),
            "next_steps": list(self.next_steps),
            "clinical_pearl": self.clinical_pearl,
        }
