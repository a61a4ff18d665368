"""Differential Diagnosis Ranker.

Expands a presenting complaint into its curated candidate list and orders it
for safety: cannot-miss diagnoses first whatever their probability, then by
severity, then by probability, table order breaking ties.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Union

from domain.differential_models import (
    PROBABILITY_ORDER,
    SEVERITY_ORDER,
    DifferentialDiagnosis,
    SymptomKey,
)
from domain.knowledge_base import ClinicalKnowledgeBase, get_knowledge_base

logger = logging.getLogger(__name__)


def ranking_key(diagnosis: DifferentialDiagnosis):
    return (
        0 if diagnosis.cannot_miss else 1,
        SEVERITY_ORDER[diagnosis.severity],
        PROBABILITY_ORDER[diagnosis.probability],
    )


def cannot_miss(ranked: Iterable[DifferentialDiagnosis]) -> List[DifferentialDiagnosis]:
    """Cannot-miss entries, order preserved."""
    return [d for d in ranked if d.cannot_miss]


def resolve_symptom_key(
    text: str,
    knowledge_base: Optional[ClinicalKnowledgeBase] = None,
) -> Optional[SymptomKey]:
    """Map free text (English or French) to a symptom key.

    An exact key ("chest_pain") wins; otherwise the first keyword group
    found, in table order. Keyword containment is a heuristic;
    unrecognized text returns None.
    """
    if not text or not text.strip():
        return None
    kb = knowledge_base or get_knowledge_base()
    lowered = text.strip().lower()
    try:
        return SymptomKey(lowered.replace(" ", "_"))
    except ValueError:
        pass
    for key, keywords in kb.symptom_keywords:
        if any(k in lowered for k in keywords):
            return key
    return None


class DifferentialRanker:
    """Ranks candidate diagnoses for a complaint."""

    def __init__(self, knowledge_base: Optional[ClinicalKnowledgeBase] = None):
        self.knowledge_base = knowledge_base or get_knowledge_base()

    def resolve_symptom_key(self, text: str) -> Optional[SymptomKey]:
        return resolve_symptom_key(text, self.knowledge_base)

    def rank(
        self,
        complaint: Union[SymptomKey, str],
        symptoms: Sequence[str] = (),
    ) -> List[DifferentialDiagnosis]:
        """Ranked differential for a complaint; empty when unrecognized."""
        if isinstance(complaint, SymptomKey):
            key = complaint
        else:
            key = self.resolve_symptom_key(" ".join([complaint or "", *symptoms]))
        if key is None:
            logger.debug(f"No curated differential for complaint '{complaint}'")
            return []

        candidates = self.knowledge_base.differentials.get(key, ())
        # sorted() is stable, so table order breaks ties
        ranked = sorted(candidates, key=ranking_key)
        logger.info(
            f"Ranked {len(ranked)} differentials for {key.value}, "
            f"{len(cannot_miss(ranked))} cannot-miss"
        )
        return ranked


# Global instance for easy access
_ranker_instance: Optional[DifferentialRanker] = None


def get_differential_ranker() -> DifferentialRanker:
    """Get the global differential ranker instance."""
    global _ranker_instance
    if _ranker_instance is None:
        _ranker_instance = DifferentialRanker()
    return _ranker_instance
