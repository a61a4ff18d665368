"""Consistency tests for the static clinical tables.

These guard the properties the engines rely on: interaction rules never let
one substance play both parts, dose factors stay within [0, 1], protocol
investigations recognise themselves, and every token a table uses exists in
the substance registry.
"""

import pytest

from application.clinical.substance_resolver import contains_term
from domain.dose_models import DoseInstruction
from domain.substances import normalize_name


def covered_substances(kb, token):
    """Registry substances a table token stands for."""
    aliases = set(kb.aliases_for(token))
    return {
        s.substance_id
        for s in kb.substances.values()
        if aliases & {normalize_name(n) for n in s.all_names}
    }


# ========================================
# Registry
# ========================================

class TestSubstanceRegistry:
    """Tests for the substance and class registry."""

    def test_every_substance_class_exists(self, knowledge_base):
        for substance in knowledge_base.substances.values():
            for class_id in substance.classes:
                assert class_id in knowledge_base.drug_classes, (substance.substance_id, class_id)

    def test_every_class_has_members(self, knowledge_base):
        for class_id in knowledge_base.drug_classes:
            assert covered_substances(knowledge_base, class_id), class_id

    def test_aspirin_is_not_an_nsaid(self, knowledge_base):
        assert "aspirin" not in covered_substances(knowledge_base, "nsaid")

    def test_stats_report_table_sizes(self, knowledge_base):
        stats = knowledge_base.get_stats()
        assert stats["interaction_rules"] == len(knowledge_base.interaction_rules)
        assert stats["protocols"] == 3
        assert stats["symptom_keys"] == 4


# ========================================
# Interaction rules
# ========================================

class TestInteractionRuleTable:
    """Tests for the interaction rule table."""

    def test_rule_ids_are_unique(self, knowledge_base):
        ids = [r.rule_id for r in knowledge_base.interaction_rules]
        assert len(ids) == len(set(ids))

    def test_rules_name_two_participants(self, knowledge_base):
        for rule in knowledge_base.interaction_rules:
            assert len(rule.drugs) == 2, rule.rule_id

    def test_every_token_is_in_registry(self, knowledge_base):
        for rule in knowledge_base.interaction_rules:
            for token in rule.drugs:
                assert covered_substances(knowledge_base, token), (rule.rule_id, token)

    def test_no_substance_satisfies_both_tokens(self, knowledge_base):
        for rule in knowledge_base.interaction_rules:
            first, second = (covered_substances(knowledge_base, t) for t in rule.drugs)
            assert not (first & second), (rule.rule_id, first & second)


# ========================================
# Dose tables
# ========================================

def _instructions(tables):
    for rule in tables.renal:
        for band in rule.bands:
            yield band.instruction
    for rule in tables.hepatic:
        yield rule.child_pugh_b
        yield rule.child_pugh_c
    for rule in tables.weight:
        yield rule.below
        yield rule.above


class TestDoseTables:
    """Tests for the dose adjustment tables."""

    def test_factors_within_unit_interval(self, knowledge_base):
        for instruction in _instructions(knowledge_base.dose_tables):
            assert 0.0 <= instruction.dose_factor <= 1.0, instruction.text
        for rule in knowledge_base.dose_tables.geriatric:
            assert 0.0 <= rule.dose_factor <= 1.0

    def test_contraindicated_instructions_have_zero_factor(self, knowledge_base):
        contraindicated = [i for i in _instructions(knowledge_base.dose_tables) if i.contraindicated]
        assert contraindicated
        for instruction in contraindicated:
            assert instruction.dose_factor == 0.0, instruction.text

    def test_renal_bands_tighten_with_clearance(self, knowledge_base):
        for rule in knowledge_base.dose_tables.renal:
            factors = [b.instruction.dose_factor for b in sorted(rule.bands, key=lambda b: -b.below)]
            assert factors == sorted(factors, reverse=True), rule.drugs

    def test_every_token_is_in_registry(self, knowledge_base):
        tables = knowledge_base.dose_tables
        for table in (tables.renal, tables.hepatic, tables.geriatric, tables.weight, tables.pregnancy):
            for entry in table:
                for token in entry.drugs:
                    assert covered_substances(knowledge_base, token), token

    def test_default_instruction_is_full_dose(self):
        assert DoseInstruction("Standard dose").dose_factor == 1.0


# ========================================
# Protocols and differentials
# ========================================

class TestProtocolTables:
    """Tests for the critical diagnosis protocols."""

    def test_investigation_name_contains_a_match_term(self, knowledge_base):
        for protocol in knowledge_base.protocols.values():
            for investigation in protocol.required_investigations:
                name = investigation.name.lower()
                assert any(
                    contains_term(name, term.lower(), 5) for term in investigation.match_terms
                ), investigation.name

    def test_required_medications_are_registry_substances(self, knowledge_base):
        for protocol in knowledge_base.protocols.values():
            for medication in protocol.required_medications:
                assert medication.substance in knowledge_base.substances

    def test_contraindication_tokens_resolve(self, knowledge_base):
        for protocol in knowledge_base.protocols.values():
            for contraindication in protocol.contraindications:
                assert covered_substances(knowledge_base, contraindication.token)

    def test_conditional_contraindications_state_their_terms(self, knowledge_base):
        for protocol in knowledge_base.protocols.values():
            for contraindication in protocol.contraindications:
                if contraindication.conditional:
                    assert contraindication.condition_terms

    @pytest.mark.parametrize("category", ["acute_coronary_syndrome", "stroke", "pulmonary_embolism"])
    def test_every_category_has_keywords(self, knowledge_base, category):
        keywords = dict((c.value, k) for c, k in knowledge_base.diagnosis_keywords)
        assert keywords[category]


class TestDifferentialTables:
    """Tests for the curated differential lists."""

    def test_every_symptom_has_cannot_miss_entry(self, knowledge_base):
        for key, candidates in knowledge_base.differentials.items():
            assert any(d.cannot_miss for d in candidates), key

    def test_names_unique_per_symptom(self, knowledge_base):
        for candidates in knowledge_base.differentials.values():
            names = [d.name for d in candidates]
            assert len(names) == len(set(names))
