"""Tests for the Substance Resolver."""

import pytest

from application.clinical.substance_resolver import (
    SubstanceResolver,
    contains_term,
    names_match,
)
from config.engine_config import ResolverConfig


# ========================================
# Term matching
# ========================================

class TestContainsTerm:
    """Tests for the containment primitive."""

    def test_long_term_matches_as_substring(self):
        assert contains_term("amoxicillin clavulanate", "amoxicillin", 5)

    def test_short_term_needs_word_boundary(self):
        assert not contains_term("nasal spray", "asa", 5)
        assert contains_term("asa 100", "asa", 5)
        assert contains_term("kardegic (asa)", "asa", 5)

    def test_empty_inputs(self):
        assert not contains_term("", "warfarin", 5)
        assert not contains_term("warfarin", "", 5)

    def test_names_match_is_bidirectional(self):
        assert names_match("warfarin sodium", "warfarin", 5)
        assert names_match("warfa", "warfarin", 5)
        assert not names_match("heparin", "warfarin", 5)


# ========================================
# Resolution
# ========================================

class TestSubstanceResolver:
    """Tests for resolving free-text medication names."""

    def test_generic_name(self, resolver):
        match = resolver.resolve("Warfarin 5mg")
        assert match.canonical_id == "warfarin"
        assert "vitamin_k_antagonist" in match.class_ids
        assert not match.ambiguous

    @pytest.mark.parametrize("name, expected", [
        ("Coumadine", "warfarin"),
        ("Advil 200 mg", "ibuprofen"),
        ("Aspirine 100mg", "aspirin"),
        ("Doliprane 1000 mg comprimés", "paracetamol"),
        ("Lovenox 4000 UI", "enoxaparin"),
        ("Kardegic", "aspirin"),
    ])
    def test_brand_and_french_names(self, resolver, name, expected):
        assert resolver.resolve(name).canonical_id == expected

    def test_longest_alias_wins(self, resolver):
        match = resolver.resolve("Esomeprazole 40mg")
        assert match.substance_ids == ("esomeprazole",)
        assert not match.ambiguous

    def test_class_word_inside_name_does_not_resolve_substance(self, resolver):
        match = resolver.resolve("calcium channel blocker")
        assert match.substance_ids == ()
        assert "calcium_channel_blocker" in match.class_ids

    def test_class_name(self, resolver):
        match = resolver.resolve("NSAIDs")
        assert match.substance_ids == ()
        assert match.class_ids == ("nsaid",)
        assert not match.is_resolved

    def test_short_alias_does_not_fire_inside_word(self, resolver):
        match = resolver.resolve("Ferritin")
        assert "iron" not in match.substance_ids

    def test_short_input_is_ambiguous(self, resolver):
        match = resolver.resolve("Fer")
        assert match.substance_ids == ("iron",)
        assert match.ambiguous

    def test_truncated_name(self, resolver):
        assert resolver.resolve("amoxici").canonical_id == "amoxicillin"

    def test_combination_is_ambiguous(self, resolver):
        match = resolver.resolve("warfarin + aspirin")
        assert set(match.substance_ids) == {"warfarin", "aspirin"}
        assert match.ambiguous
        assert match.canonical_id is None

    def test_unknown_name_gets_suggestions(self, resolver):
        match = resolver.resolve("ibuprofn")
        assert match.substance_ids == ()
        assert "ibuprofen" in match.suggestions

    def test_empty_name(self, resolver):
        match = resolver.resolve("")
        assert match.normalized_name == ""
        assert not match.is_resolved
        assert match.suggestions == ()

    def test_resolve_batch_keeps_order(self, resolver):
        matches = resolver.resolve_batch(["metformin", "lasix"])
        assert [m.canonical_id for m in matches] == ["metformin", "furosemide"]

    def test_to_dict(self, resolver):
        data = resolver.resolve("Xarelto").to_dict()
        assert data["substance_ids"] == ["rivaroxaban"]
        assert data["class_ids"] == ["doac"]
        assert data["ambiguous"] is False


class TestTokenMatching:
    """Tests for matching names against table tokens."""

    def test_member_matches_class_token(self, resolver):
        assert resolver.name_matches_token("Advil", "nsaid")
        assert resolver.name_matches_token("Voltaren gel", "nsaid")

    def test_non_member_does_not_match(self, resolver):
        assert not resolver.name_matches_token("Paracetamol", "nsaid")
        assert not resolver.name_matches_token("Aspirin", "nsaid")

    def test_brand_matches_substance_token(self, resolver):
        assert resolver.name_matches_token("Coumadine", "warfarin")

    def test_prefix_substance_not_confused(self, resolver):
        assert not resolver.name_matches_token("Esomeprazole", "omeprazole")
        assert resolver.name_matches_token("Esomeprazole", "ppi")

    def test_unknown_token_matches_literally(self, resolver):
        assert resolver.name_matches_token("grapefruit juice", "grapefruit")

    def test_configured_min_length(self, knowledge_base):
        strict = SubstanceResolver(knowledge_base, ResolverConfig(min_substring_alias_length=12))
        # "warfarin" is now short enough to need whole words
        assert strict.resolve("warfarin").canonical_id == "warfarin"
        assert strict.resolve("warfarinsodium").substance_ids == ()
