"""Clinical knowledge base.

Bundles every static table the engines read: substance registry,
interaction rules, dose tables, differential lists, protocols and follow-up
defaults. Built once, shared by reference, never mutated.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from domain.differential_models import DifferentialDiagnosis, SymptomKey
from domain.differential_tables import DIFFERENTIALS_BY_SYMPTOM, SYMPTOM_KEYWORDS
from domain.dose_models import DoseTables
from domain.dose_tables import DOSE_TABLES
from domain.followup_models import MonitoringType
from domain.followup_tables import DEFAULT_TARGETS, DISEASE_LABELS
from domain.interaction_models import InteractionRule
from domain.interaction_rules import INTERACTION_RULES
from domain.protocol_models import DiagnosisCategory, MedicalProtocol
from domain.protocol_tables import DIAGNOSIS_KEYWORDS, MEDICAL_PROTOCOLS
from domain.substances import DRUG_CLASSES, SUBSTANCES, DrugClass, Substance, expand_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClinicalKnowledgeBase:
    """Immutable bundle of the static clinical tables.

    `token_aliases` holds the registry expansion of every drug token any
    table uses, computed once at build time.
    """

    substances: Mapping[str, Substance]
    drug_classes: Mapping[str, DrugClass]
    interaction_rules: Tuple[InteractionRule, ...]
    token_aliases: Mapping[str, Tuple[str, ...]]
    dose_tables: DoseTables
    differentials: Mapping[SymptomKey, Tuple[DifferentialDiagnosis, ...]]
    symptom_keywords: Tuple[Tuple[SymptomKey, Tuple[str, ...]], ...]
    protocols: Mapping[DiagnosisCategory, MedicalProtocol]
    diagnosis_keywords: Tuple[Tuple[DiagnosisCategory, Tuple[str, ...]], ...]
    default_targets: Mapping[MonitoringType, Mapping[str, float]]
    disease_labels: Mapping[str, str]

    def aliases_for(self, token: str) -> Tuple[str, ...]:
        """Expanded aliases of a table token (computed on the fly if unknown)."""
        aliases = self.token_aliases.get(token)
        if aliases is None:
            aliases = expand_token(token, self.substances, self.drug_classes)
        return aliases

    def get_stats(self) -> dict:
        return {
            "substances": len(self.substances),
            "drug_classes": len(self.drug_classes),
            "interaction_rules": len(self.interaction_rules),
            "renal_rules": len(self.dose_tables.renal),
            "hepatic_rules": len(self.dose_tables.hepatic),
            "geriatric_rules": len(self.dose_tables.geriatric),
            "weight_rules": len(self.dose_tables.weight),
            "pregnancy_rules": len(self.dose_tables.pregnancy),
            "symptom_keys": len(self.differentials),
            "protocols": len(self.protocols),
        }


def _table_tokens(
    interaction_rules: Iterable[InteractionRule],
    dose_tables: DoseTables,
    protocols: Mapping[DiagnosisCategory, MedicalProtocol],
) -> Tuple[str, ...]:
    tokens = []
    for rule in interaction_rules:
        tokens.extend(rule.drugs)
    for table in (
        dose_tables.renal, dose_tables.hepatic, dose_tables.geriatric,
        dose_tables.weight, dose_tables.pregnancy,
    ):
        for entry in table:
            tokens.extend(entry.drugs)
    for protocol in protocols.values():
        tokens.extend(c.token for c in protocol.contraindications)
        tokens.extend(m.substance for m in protocol.required_medications)
    return tuple(dict.fromkeys(tokens))


def build_knowledge_base(
    interaction_rules: Tuple[InteractionRule, ...] = INTERACTION_RULES,
    dose_tables: DoseTables = DOSE_TABLES,
    protocols: Mapping[DiagnosisCategory, MedicalProtocol] = MEDICAL_PROTOCOLS,
) -> ClinicalKnowledgeBase:
    """Assemble the knowledge base and expand every table token."""
    substances = MappingProxyType(dict(SUBSTANCES))
    drug_classes = MappingProxyType(dict(DRUG_CLASSES))

    token_aliases = {
        token: expand_token(token, substances, drug_classes)
        for token in _table_tokens(interaction_rules, dose_tables, protocols)
    }
    unknown = [t for t, aliases in token_aliases.items() if aliases == (t,) and t not in substances]
    if unknown:
        logger.debug(f"Tokens without registry entry (matched literally): {unknown}")

    kb = ClinicalKnowledgeBase(
        substances=substances,
        drug_classes=drug_classes,
        interaction_rules=tuple(interaction_rules),
        token_aliases=MappingProxyType(token_aliases),
        dose_tables=dose_tables,
        differentials=DIFFERENTIALS_BY_SYMPTOM,
        symptom_keywords=SYMPTOM_KEYWORDS,
        protocols=MappingProxyType(dict(protocols)),
        diagnosis_keywords=DIAGNOSIS_KEYWORDS,
        default_targets=DEFAULT_TARGETS,
        disease_labels=DISEASE_LABELS,
    )
    logger.info(f"Clinical knowledge base built: {kb.get_stats()}")
    return kb


# Global instance for easy access
_knowledge_base: Optional[ClinicalKnowledgeBase] = None


def get_knowledge_base() -> ClinicalKnowledgeBase:
    """Get the shared knowledge base, building it on first use."""
    global _knowledge_base
    if _knowledge_base is None:
        _knowledge_base = build_knowledge_base()
    return _knowledge_base
