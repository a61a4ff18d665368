"""Drug Interaction Detector.

Cross-matches a medication list against the static interaction table.

For every unordered pair of input medications, a rule fires when the two
inputs match two distinct tokens of the rule. Tokens are substance ids or
drug class ids, expanded to every registry alias when the knowledge base is
built. Two inputs that resolve to the same single substance ("Warfarin" and
"Coumadine") are a duplicate listing and never interact with each other.

The detector keeps a conservative bias: ambiguous names still fire, and the
finding is flagged so the prescriber can check what was meant.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from application.clinical.substance_resolver import (
    SubstanceMatch,
    SubstanceResolver,
    get_substance_resolver,
)
from domain.interaction_models import (
    InteractionFinding,
    InteractionRule,
    InteractionSeverity,
    InteractionSummary,
    SafetyLevel,
)
from domain.knowledge_base import ClinicalKnowledgeBase, get_knowledge_base

logger = logging.getLogger(__name__)


def sort_by_severity(findings: Iterable[InteractionFinding]) -> List[InteractionFinding]:
    """Severity descending; findings of equal severity keep their order."""
    return sorted(findings, key=lambda f: -f.severity.rank)


def safety_level_for(findings: Iterable[InteractionFinding]) -> SafetyLevel:
    severities = {f.severity for f in findings}
    if InteractionSeverity.CONTRAINDICATED in severities:
        return SafetyLevel.CONTRAINDICATED
    if InteractionSeverity.MAJOR in severities:
        return SafetyLevel.UNSAFE
    if InteractionSeverity.MODERATE in severities:
        return SafetyLevel.CAUTION
    return SafetyLevel.SAFE


class InteractionDetector:
    """Detects drug-drug interactions in a medication list.

    Example:
        >>> detector = InteractionDetector()
        >>> findings = detector.detect(["warfarin", "ibuprofen"])
        >>> findings[0].rule.rule_id
        'DI001'
    """

    def __init__(
        self,
        knowledge_base: Optional[ClinicalKnowledgeBase] = None,
        resolver: Optional[SubstanceResolver] = None,
    ):
        self.knowledge_base = knowledge_base or get_knowledge_base()
        self.resolver = resolver or get_substance_resolver()
        self.rules: Tuple[InteractionRule, ...] = self.knowledge_base.interaction_rules

    def _matched_tokens(self, match: SubstanceMatch, rule: InteractionRule) -> Set[str]:
        return {t for t in rule.drugs if self.resolver.matches_token(match, t)}

    @staticmethod
    def _same_substance(a: SubstanceMatch, b: SubstanceMatch) -> bool:
        return a.is_resolved and b.is_resolved and a.canonical_id == b.canonical_id

    def _fire(
        self,
        rule: InteractionRule,
        a: SubstanceMatch,
        b: SubstanceMatch,
    ) -> Optional[Tuple[str, str]]:
        """Return a distinct (token_a, token_b) pair if the rule fires for a and b."""
        tokens_a = self._matched_tokens(a, rule)
        if not tokens_a:
            return None
        tokens_b = self._matched_tokens(b, rule)
        for token_a in rule.drugs:
            if token_a not in tokens_a:
                continue
            for token_b in rule.drugs:
                if token_b != token_a and token_b in tokens_b:
                    return token_a, token_b
        return None

    def detect(self, medications: Sequence[str]) -> List[InteractionFinding]:
        """Find every rule fired by the medication list.

        Each rule is reported once, for the first pair (in input order) that
        fires it. Results are in first-occurrence order; use
        `sort_by_severity` for display.
        """
        names = [m for m in medications if m and str(m).strip()]
        matches = self.resolver.resolve_batch(names)

        findings: Dict[str, InteractionFinding] = {}
        for i in range(len(matches)):
            for j in range(i + 1, len(matches)):
                a, b = matches[i], matches[j]
                if self._same_substance(a, b):
                    logger.debug(f"Skipping duplicate listing: '{a.original_name}' / '{b.original_name}'")
                    continue
                for rule in self.rules:
                    if rule.rule_id in findings:
                        continue
                    tokens = self._fire(rule, a, b)
                    if tokens is None:
                        continue
                    finding = InteractionFinding(
                        rule=rule,
                        drug_a=a.original_name,
                        drug_b=b.original_name,
                        matched_tokens=tokens,
                        ambiguous=a.ambiguous or b.ambiguous,
                    )
                    findings[rule.rule_id] = finding
                    logger.debug(
                        f"{rule.rule_id} fired for '{a.original_name}' + '{b.original_name}' "
                        f"({rule.severity.value})"
                    )
                    if finding.ambiguous:
                        logger.warning(
                            f"{rule.rule_id} matched an ambiguous medication name: "
                            f"'{a.original_name}' / '{b.original_name}'"
                        )

        result = list(findings.values())
        logger.info(f"Checked {len(names)} medications against {len(self.rules)} rules: {len(result)} interactions")
        return result

    def check_pair(self, drug_a: str, drug_b: str) -> Optional[InteractionFinding]:
        """First rule (table order) fired by two drugs, or None."""
        a, b = self.resolver.resolve(drug_a), self.resolver.resolve(drug_b)
        if self._same_substance(a, b):
            return None
        for rule in self.rules:
            tokens = self._fire(rule, a, b)
            if tokens is not None:
                return InteractionFinding(
                    rule=rule,
                    drug_a=drug_a,
                    drug_b=drug_b,
                    matched_tokens=tokens,
                    ambiguous=a.ambiguous or b.ambiguous,
                )
        return None

    def summarize(self, findings: Iterable[InteractionFinding]) -> InteractionSummary:
        """Safety level and management lines for a set of findings."""
        ordered = sort_by_severity(findings)
        recommendations = []
        for f in ordered:
            line = f"[{f.severity.value.upper()}] {f.drug_a} + {f.drug_b}: {f.rule.description}. {f.rule.management}"
            if f.ambiguous:
                line += " (ambiguous medication name, verify)"
            recommendations.append(line)
        return InteractionSummary(
            safety_level=safety_level_for(ordered),
            findings=ordered,
            recommendations=recommendations,
        )

    def analyze(self, medications: Sequence[str]) -> InteractionSummary:
        """detect() followed by summarize()."""
        return self.summarize(self.detect(medications))


# Global instance for easy access
_detector_instance: Optional[InteractionDetector] = None


def get_interaction_detector() -> InteractionDetector:
    """Get the global interaction detector instance."""
    global _detector_instance
    if _detector_instance is None:
        _detector_instance = InteractionDetector()
    return _detector_instance
