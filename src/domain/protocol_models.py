"""Protocol Enforcement Domain Models.

Static critical-diagnosis protocols, the externally drafted clinical
analysis that the enforcer validates, and the enforcement result.

Draft records are frozen; enforcement builds new drafts rather than editing
the caller's. Keys the enforcer does not understand are carried through
`extra` so that `to_dict` returns everything the collaborator sent.
"""

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class DiagnosisCategory(str, Enum):
    """Critical diagnoses with a hard protocol."""

    ACUTE_CORONARY_SYNDROME = "acute_coronary_syndrome"
    STROKE = "stroke"
    PULMONARY_EMBOLISM = "pulmonary_embolism"


class UrgencyTier(str, Enum):
    EMERGENCY = "emergency"
    URGENT = "urgent"
    ROUTINE = "routine"


class EnforcementState(str, Enum):
    UNMATCHED = "unmatched"
    ENFORCED = "enforced"


# Static protocol records


@dataclass(frozen=True)
class RequiredInvestigation:
    """Investigation a protocol requires.

    `match_terms` decide whether a draft already contains the investigation;
    the name itself always contains one of them.
    """

    name: str
    timing: Tuple[str, ...]
    critical: bool
    justification: str
    match_terms: Tuple[str, ...]
    interpretation: Optional[str] = None


@dataclass(frozen=True)
class RequiredMedication:
    """Medication a protocol requires, identified by its canonical substance."""

    drug: str
    substance: str
    dose: str
    timing: str
    critical: bool
    justification: str

    @property
    def display_name(self) -> str:
        return f"{self.drug} {self.dose}"


@dataclass(frozen=True)
class Contraindication:
    """Substance or class token forbidden by a protocol.

    A conditional contraindication applies only when its condition holds;
    it is enforced automatically when the diagnosis text states the
    condition (one of `condition_terms`), otherwise it is flagged for review.
    """

    token: str
    label: str
    condition: Optional[str] = None
    condition_terms: Tuple[str, ...] = ()

    @property
    def conditional(self) -> bool:
        return self.condition is not None


@dataclass(frozen=True)
class SpecialistReferral:
    specialty: str
    urgency: UrgencyTier
    timeframe: str
    required: bool


@dataclass(frozen=True)
class MedicalProtocol:
    """Hard clinical rules for one critical diagnosis category."""

    category: DiagnosisCategory
    diagnosis: str
    icd10_codes: Tuple[str, ...]
    required_investigations: Tuple[RequiredInvestigation, ...]
    required_medications: Tuple[RequiredMedication, ...]
    contraindications: Tuple[Contraindication, ...]
    referral: SpecialistReferral
    red_flags: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "diagnosis": self.diagnosis,
            "icd10_codes": list(self.icd10_codes),
            "required_investigations": [i.name for i in self.required_investigations],
            "required_medications": [m.display_name for m in self.required_medications],
            "contraindications": [c.label for c in self.contraindications],
            "referral": {
                "specialty": self.referral.specialty,
                "urgency": self.referral.urgency.value,
                "timeframe": self.referral.timeframe,
                "required": self.referral.required,
            },
            "red_flags": list(self.red_flags),
        }


# Draft records (collaborator-supplied)


def _pop_str(data: Dict[str, Any], key: str) -> str:
    value = data.pop(key, None)
    return "" if value is None else str(value)


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    """A draft section as a dict; a wrong-shaped section reads as empty."""
    value = data.get(key)
    if value is None or isinstance(value, dict):
        return value or {}
    logger.warning(f"Draft section '{key}' is {type(value).__name__}, expected an object; ignoring it")
    return {}


def _records(section: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """Dict entries of a list field; anything else reads as empty."""
    value = section.pop(key, None)
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning(f"Draft field '{key}' is {type(value).__name__}, expected a list; ignoring it")
        return []
    return [item for item in value if isinstance(item, dict)]


@dataclass(frozen=True)
class DraftInvestigation:
    test_name: str
    clinical_justification: str = ""
    urgency: str = ""
    timing: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DraftInvestigation":
        data = copy.deepcopy(dict(data))
        return cls(
            test_name=_pop_str(data, "test_name"),
            clinical_justification=_pop_str(data, "clinical_justification"),
            urgency=_pop_str(data, "urgency"),
            timing=_pop_str(data, "timing"),
            extra=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **copy.deepcopy(self.extra),
            "test_name": self.test_name,
            "clinical_justification": self.clinical_justification,
            "urgency": self.urgency,
            "timing": self.timing,
        }


@dataclass(frozen=True)
class DraftMedication:
    medication_name: str = ""
    drug: str = ""
    dci: str = ""
    indication: str = ""
    how_to_take: str = ""
    duration: str = ""
    monitoring: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def names(self) -> Tuple[str, ...]:
        """Every non-empty name field."""
        return tuple(n for n in (self.medication_name, self.drug, self.dci) if n)

    @property
    def display_name(self) -> str:
        return self.medication_name or self.drug or self.dci

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DraftMedication":
        data = copy.deepcopy(dict(data))
        return cls(
            medication_name=_pop_str(data, "medication_name"),
            drug=_pop_str(data, "drug"),
            dci=_pop_str(data, "dci"),
            indication=_pop_str(data, "indication"),
            how_to_take=_pop_str(data, "how_to_take"),
            duration=_pop_str(data, "duration"),
            monitoring=_pop_str(data, "monitoring"),
            extra=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **copy.deepcopy(self.extra),
            "medication_name": self.medication_name,
            "drug": self.drug,
            "dci": self.dci,
            "indication": self.indication,
            "how_to_take": self.how_to_take,
            "duration": self.duration,
            "monitoring": self.monitoring,
        }


@dataclass(frozen=True)
class ReferralSection:
    required: bool = False
    specialty: str = ""
    urgency: str = ""
    reason: str = ""
    timeframe: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReferralSection":
        return cls(
            required=bool(data.get("required", False)),
            specialty=str(data.get("specialty") or ""),
            urgency=str(data.get("urgency") or ""),
            reason=str(data.get("reason") or ""),
            timeframe=str(data.get("timeframe") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "required": self.required,
            "specialty": self.specialty,
            "urgency": self.urgency,
            "reason": self.reason,
            "timeframe": self.timeframe,
        }


@dataclass(frozen=True)
class ClinicalAnalysisDraft:
    """AI-drafted analysis: investigations, medications and referral.

    Wire shape:
        investigation_strategy.laboratory_tests[]
        treatment_plan.medications[]
        follow_up_plan.specialist_referral
    """

    investigations: Tuple[DraftInvestigation, ...] = ()
    medications: Tuple[DraftMedication, ...] = ()
    referral: Optional[ReferralSection] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClinicalAnalysisDraft":
        """Parse a drafted analysis.

        Sections or lists of the wrong JSON type are read as empty, so the
        protocol is still enforced on a malformed draft.
        """
        if data is not None and not isinstance(data, dict):
            logger.warning(f"Draft analysis is {type(data).__name__}, expected an object; ignoring it")
            data = None
        data = copy.deepcopy(dict(data or {}))
        strategy = _section(data, "investigation_strategy")
        plan = _section(data, "treatment_plan")
        follow_up = _section(data, "follow_up_plan")

        tests = _records(strategy, "laboratory_tests")
        meds = _records(plan, "medications")
        referral = follow_up.pop("specialist_referral", None)

        for key, section in (
            ("investigation_strategy", strategy),
            ("treatment_plan", plan),
            ("follow_up_plan", follow_up),
        ):
            if section:
                data[key] = section
            else:
                data.pop(key, None)

        return cls(
            investigations=tuple(DraftInvestigation.from_dict(t) for t in tests),
            medications=tuple(DraftMedication.from_dict(m) for m in meds),
            referral=ReferralSection.from_dict(referral) if isinstance(referral, dict) else None,
            extra=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        result = copy.deepcopy(self.extra)
        result.setdefault("investigation_strategy", {})["laboratory_tests"] = [
            t.to_dict() for t in self.investigations
        ]
        result.setdefault("treatment_plan", {})["medications"] = [
            m.to_dict() for m in self.medications
        ]
        if self.referral is not None:
            result.setdefault("follow_up_plan", {})["specialist_referral"] = self.referral.to_dict()
        return result


@dataclass
class EnforcementResult:
    """Outcome of one enforcement pass.

    Attributes:
        state: unmatched or enforced
        category: Resolved diagnosis category
        protocol: Protocol that was applied
        draft: Resulting draft (the input draft when unmatched)
        changes: Audit log of modifications
        critical_issues: Removed or flagged medications
        red_flags: Protocol red flags for the physician
    """

    state: EnforcementState
    draft: ClinicalAnalysisDraft
    category: Optional[DiagnosisCategory] = None
    protocol: Optional[MedicalProtocol] = None
    changes: List[str] = field(default_factory=list)
    critical_issues: List[str] = field(default_factory=list)
    red_flags: List[str] = field(default_factory=list)

    @property
    def enforced(self) -> bool:
        return self.state == EnforcementState.ENFORCED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "enforced": self.enforced,
            "category": self.category.value if self.category else None,
            "protocol": self.protocol.diagnosis if self.protocol else None,
            "analysis": self.draft.to_dict(),
            "changes": self.changes,
            "critical_issues": self.critical_issues,
            "red_flags": self.red_flags,
        }
