"""Protocol Enforcement Engine.

Validates and repairs an AI-drafted clinical analysis against the hard
protocol of a recognized critical diagnosis:

1. Resolve the diagnosis text to a category (unmatched: nothing happens)
2. Add every critical investigation the draft lacks
3. Remove medications the protocol contraindicates
4. Add every critical medication the draft lacks
5. Overwrite the specialist referral with the protocol's

The caller's draft is never modified; a new draft is returned with a change
log and a critical-issues log. Enforcing the result a second time yields an
empty change log.
"""

import logging
import re
from dataclasses import replace
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple, Union

from application.clinical.substance_resolver import (
    SubstanceResolver,
    contains_term,
    get_substance_resolver,
)
from domain.knowledge_base import ClinicalKnowledgeBase, get_knowledge_base
from domain.protocol_models import (
    ClinicalAnalysisDraft,
    Contraindication,
    DiagnosisCategory,
    DraftInvestigation,
    DraftMedication,
    EnforcementResult,
    EnforcementState,
    MedicalProtocol,
    ReferralSection,
    RequiredInvestigation,
    RequiredMedication,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> "re.Pattern":
    # Whole words, optional plural
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"s?(?![a-z0-9])")


def resolve_diagnosis_category(
    text: str,
    knowledge_base: Optional[ClinicalKnowledgeBase] = None,
) -> Optional[DiagnosisCategory]:
    """Map free diagnosis text to a critical category.

    Whole-word keyword matching ("tia" does not match "dementia"), then
    ICD-10 code prefixes of each protocol. First category in table order
    wins. This is a heuristic; None means no protocol applies.
    """
    if not text or not text.strip():
        return None
    kb = knowledge_base or get_knowledge_base()
    lowered = text.lower()

    for category, keywords in kb.diagnosis_keywords:
        if any(_keyword_pattern(k).search(lowered) for k in keywords):
            return category

    for category, protocol in kb.protocols.items():
        for code in protocol.icd10_codes:
            if _keyword_pattern(code.lower()).search(lowered):
                return category
    return None


class ProtocolEnforcer:
    """Applies critical-diagnosis protocols to drafted analyses.

    Example:
        >>> enforcer = ProtocolEnforcer()
        >>> result = enforcer.enforce("STEMI", {"treatment_plan": {"medications": []}})
        >>> result.state.value
        'enforced'
    """

    def __init__(
        self,
        knowledge_base: Optional[ClinicalKnowledgeBase] = None,
        resolver: Optional[SubstanceResolver] = None,
    ):
        self.knowledge_base = knowledge_base or get_knowledge_base()
        self.resolver = resolver or get_substance_resolver()

    def resolve_diagnosis_category(self, text: str) -> Optional[DiagnosisCategory]:
        return resolve_diagnosis_category(text, self.knowledge_base)

    def get_protocol(self, category: DiagnosisCategory) -> MedicalProtocol:
        return self.knowledge_base.protocols[category]

    # Equivalence checks

    def _has_investigation(self, draft_tests: Tuple[DraftInvestigation, ...], required: RequiredInvestigation) -> bool:
        min_length = self.resolver.min_length
        for test in draft_tests:
            name = test.test_name.lower()
            if any(contains_term(name, term.lower(), min_length) for term in required.match_terms):
                return True
        return False

    def _medication_matches(self, medication: DraftMedication, token: str) -> bool:
        return any(self.resolver.name_matches_token(name, token) for name in medication.names)

    def _has_medication(self, medications: Tuple[DraftMedication, ...], required: RequiredMedication) -> bool:
        return any(self._medication_matches(m, required.substance) for m in medications)

    def _condition_stated(self, contraindication: Contraindication, diagnosis: str) -> bool:
        lowered = diagnosis.lower()
        return any(
            contains_term(lowered, term.lower(), self.resolver.min_length)
            for term in contraindication.condition_terms
        )

    # Steps

    def _inject_investigations(
        self, draft: ClinicalAnalysisDraft, protocol: MedicalProtocol, changes: List[str]
    ) -> ClinicalAnalysisDraft:
        tests = list(draft.investigations)
        for required in protocol.required_investigations:
            if not required.critical or self._has_investigation(tuple(tests), required):
                continue
            tests.append(DraftInvestigation(
                test_name=required.name,
                clinical_justification=required.justification,
                urgency="urgent",
                timing=", ".join(required.timing),
                extra={"expected_results": {}},
            ))
            changes.append(f"ADDED CRITICAL: {required.name}")
            logger.info(f"Protocol {protocol.category.value}: added investigation '{required.name}'")
        return replace(draft, investigations=tuple(tests))

    def _strip_contraindicated(
        self,
        draft: ClinicalAnalysisDraft,
        protocol: MedicalProtocol,
        diagnosis: str,
        changes: List[str],
        critical_issues: List[str],
    ) -> ClinicalAnalysisDraft:
        kept: List[DraftMedication] = []
        removed = 0
        for medication in draft.medications:
            blocked = False
            for contraindication in protocol.contraindications:
                if not self._medication_matches(medication, contraindication.token):
                    continue
                if contraindication.conditional and not self._condition_stated(contraindication, diagnosis):
                    critical_issues.append(
                        f"REVIEW CONDITIONAL CONTRAINDICATION: {medication.display_name} "
                        f"({contraindication.label}) in {protocol.diagnosis}"
                    )
                    logger.warning(
                        f"Conditional contraindication for '{medication.display_name}' "
                        f"in {protocol.category.value} needs review"
                    )
                    continue
                blocked = True
                critical_issues.append(f"BLOCKED CONTRAINDICATED: {medication.display_name} in {protocol.diagnosis}")
                logger.warning(
                    f"Protocol {protocol.category.value}: removed contraindicated '{medication.display_name}'"
                )
                break
            if blocked:
                removed += 1
            else:
                kept.append(medication)

        if removed:
            changes.append(f"REMOVED {removed} contraindicated medications")
        return replace(draft, medications=tuple(kept))

    def _inject_medications(
        self, draft: ClinicalAnalysisDraft, protocol: MedicalProtocol, changes: List[str]
    ) -> ClinicalAnalysisDraft:
        medications = list(draft.medications)
        for required in protocol.required_medications:
            if not required.critical or self._has_medication(tuple(medications), required):
                continue
            medications.append(DraftMedication(
                medication_name=required.display_name,
                drug=required.display_name,
                dci=required.substance,
                indication=required.justification,
                how_to_take=required.timing,
                duration="As prescribed",
                monitoring="Regular monitoring required",
                extra={
                    "why_prescribed": required.justification,
                    "contraindications": "",
                    "side_effects": "",
                },
            ))
            changes.append(f"ADDED CRITICAL: {required.display_name}")
            logger.info(f"Protocol {protocol.category.value}: added medication '{required.display_name}'")
        return replace(draft, medications=tuple(medications))

    def _force_referral(
        self, draft: ClinicalAnalysisDraft, protocol: MedicalProtocol, changes: List[str]
    ) -> ClinicalAnalysisDraft:
        template = protocol.referral
        if not template.required:
            return draft
        urgency = template.urgency.value
        referral = ReferralSection(
            required=True,
            specialty=template.specialty,
            urgency=urgency,
            reason=f"{protocol.diagnosis} requiring {urgency} specialist review",
            timeframe=template.timeframe,
        )
        if draft.referral == referral:
            return draft
        changes.append(f"FORCED SPECIALIST REFERRAL: {template.specialty} ({urgency})")
        return replace(draft, referral=referral)

    # Entry point

    def enforce(
        self,
        diagnosis: str,
        draft: Union[ClinicalAnalysisDraft, Dict[str, Any], None],
    ) -> EnforcementResult:
        """Enforce the protocol of the diagnosis on a draft analysis."""
        if not isinstance(draft, ClinicalAnalysisDraft):
            draft = ClinicalAnalysisDraft.from_dict(draft)

        category = self.resolve_diagnosis_category(diagnosis)
        if category is None:
            logger.debug(f"No critical protocol for diagnosis '{diagnosis}'")
            return EnforcementResult(state=EnforcementState.UNMATCHED, draft=draft)

        protocol = self.get_protocol(category)
        changes: List[str] = []
        critical_issues: List[str] = []

        result = self._inject_investigations(draft, protocol, changes)
        result = self._strip_contraindicated(result, protocol, diagnosis, changes, critical_issues)
        result = self._inject_medications(result, protocol, changes)
        result = self._force_referral(result, protocol, changes)

        logger.info(
            f"Enforced {category.value} protocol on '{diagnosis}': "
            f"{len(changes)} changes, {len(critical_issues)} critical issues"
        )
        return EnforcementResult(
            state=EnforcementState.ENFORCED,
            draft=result,
            category=category,
            protocol=protocol,
            changes=changes,
            critical_issues=critical_issues,
            red_flags=list(protocol.red_flags),
        )


# Global instance for easy access
_enforcer_instance: Optional[ProtocolEnforcer] = None


def get_protocol_enforcer() -> ProtocolEnforcer:
    """Get the global protocol enforcer instance."""
    global _enforcer_instance
    if _enforcer_instance is None:
        _enforcer_instance = ProtocolEnforcer()
    return _enforcer_instance
