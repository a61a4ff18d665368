"""Drug Interaction Domain Models.

Defines interaction severities, the static interaction rule record, and the
findings produced when a medication list is cross-matched against the rules.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple


class InteractionSeverity(str, Enum):
    """Severity of a drug-drug interaction."""

    CONTRAINDICATED = "contraindicated"  # Never co-prescribe
    MAJOR = "major"                      # Avoid or monitor closely
    MODERATE = "moderate"                # Adjust or monitor
    MINOR = "minor"                      # Informational

    @property
    def rank(self) -> int:
        """Higher rank sorts first."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    InteractionSeverity.CONTRAINDICATED: 3,
    InteractionSeverity.MAJOR: 2,
    InteractionSeverity.MODERATE: 1,
    InteractionSeverity.MINOR: 0,
}


class SafetyLevel(str, Enum):
    """Overall safety of a medication list."""

    SAFE = "safe"
    CAUTION = "caution"
    UNSAFE = "unsafe"
    CONTRAINDICATED = "contraindicated"


@dataclass(frozen=True)
class InteractionRule:
    """Static drug interaction rule.

    Attributes:
        rule_id: Unique identifier
        drugs: Substance ids, class ids or raw name tokens taking part
        severity: Interaction severity
        description: Clinical effect of the combination
        mechanism: Pharmacological mechanism
        management: What the prescriber should do
        evidence: Evidence grade (A, B, C)
        representative_pair: Two drug names that must fire this rule
    """

    rule_id: str
    drugs: Tuple[str, ...]
    severity: InteractionSeverity
    description: str
    mechanism: str
    management: str
    evidence: str
    representative_pair: Tuple[str, str]

    def to_dict(self) -> Dict[str, Any]:
        """Convert rule to dictionary."""
        return {
            "rule_id": self.rule_id,
            "drugs": list(self.drugs),
            "severity": self.severity.value,
            "description": self.description,
            "mechanism": self.mechanism,
            "management": self.management,
            "evidence": self.evidence,
        }


@dataclass(frozen=True)
class InteractionFinding:
    """A rule that fired for one pair of input medications.

    Attributes:
        rule: The fired rule
        drug_a: Input name matched first (input order)
        drug_b: Input name matched second
        matched_tokens: Rule tokens matched by drug_a and drug_b
        ambiguous: True when either input resolved ambiguously
    """

    rule: InteractionRule
    drug_a: str
    drug_b: str
    matched_tokens: Tuple[str, str]
    ambiguous: bool = False

    @property
    def severity(self) -> InteractionSeverity:
        return self.rule.severity

    def to_dict(self) -> Dict[str, Any]:
        """Convert finding to dictionary."""
        return {
            **self.rule.to_dict(),
            "drug_a": self.drug_a,
            "drug_b": self.drug_b,
            "matched_tokens": list(self.matched_tokens),
            "ambiguous": self.ambiguous,
        }


@dataclass
class InteractionSummary:
    """Aggregated view of all findings for a medication list.

    Attributes:
        safety_level: Worst level reached by any finding
        findings: Findings sorted by severity
        recommendations: One management line per finding
    """

    safety_level: SafetyLevel = SafetyLevel.SAFE
    findings: List[InteractionFinding] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def contraindicated_count(self) -> int:
        return sum(1 for f in self.findings if f.severity == InteractionSeverity.CONTRAINDICATED)

    @property
    def major_count(self) -> int:
        return sum(1 for f in self.findings if f.severity == InteractionSeverity.MAJOR)

    @property
    def has_ambiguous_matches(self) -> bool:
        return any(f.ambiguous for f in self.findings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert summary to dictionary."""
        return {
            "safety_level": self.safety_level.value,
            "contraindicated_count": self.contraindicated_count,
            "major_count": self.major_count,
            "has_ambiguous_matches": self.has_ambiguous_matches,
            "findings": [f.to_dict() for f in self.findings],
            "recommendations": self.recommendations,
        }
