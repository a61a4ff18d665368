"""Clinical Safety Engines.

Deterministic engines applied between an AI-drafted clinical analysis and
the document shown to a physician.
"""

from .differential_ranker import DifferentialRanker, cannot_miss, resolve_symptom_key
from .dose_adjuster import DoseAdjuster
from .followup_stats import FollowUpStatsEngine
from .interaction_detector import InteractionDetector, sort_by_severity
from .protocol_enforcer import ProtocolEnforcer, resolve_diagnosis_category
from .safety_review import ClinicalSafetyReview, PatientSafetyContext
from .substance_resolver import SubstanceMatch, SubstanceResolver

__all__ = [
    "ClinicalSafetyReview",
    "DifferentialRanker",
    "DoseAdjuster",
    "FollowUpStatsEngine",
    "InteractionDetector",
    "PatientSafetyContext",
    "ProtocolEnforcer",
    "cannot_miss",
    "SubstanceMatch",
    "SubstanceResolver",
    "resolve_diagnosis_category",
    "resolve_symptom_key",
    "sort_by_severity",
]
