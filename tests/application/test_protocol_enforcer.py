"""Tests for the Protocol Enforcement Engine."""

import copy
from dataclasses import replace

import pytest

from application.clinical.protocol_enforcer import (
    ProtocolEnforcer,
    resolve_diagnosis_category,
)
from domain.protocol_models import DiagnosisCategory, EnforcementState
from domain.protocol_tables import MEDICAL_PROTOCOLS
from domain.substances import SUBSTANCES, substances_in_class

DIAGNOSIS_TEXT = {
    DiagnosisCategory.ACUTE_CORONARY_SYNDROME: "NSTEMI",
    DiagnosisCategory.STROKE: "Ischaemic stroke",
    DiagnosisCategory.PULMONARY_EMBOLISM: "Pulmonary embolism",
}

PROTOCOLS = list(MEDICAL_PROTOCOLS.values())


@pytest.fixture(scope="module")
def enforcer(knowledge_base, resolver):
    return ProtocolEnforcer(knowledge_base, resolver)


def draft_with(tests=(), medications=(), referral=None):
    draft = {
        "investigation_strategy": {"laboratory_tests": [{"test_name": t} for t in tests]},
        "treatment_plan": {"medications": [{"medication_name": m} for m in medications]},
    }
    if referral is not None:
        draft["follow_up_plan"] = {"specialist_referral": referral}
    return draft


def investigation_names(result):
    return [t.test_name for t in result.draft.investigations]


def medication_names(result):
    return [m.medication_name for m in result.draft.medications]


# ========================================
# Diagnosis resolution
# ========================================

class TestResolveDiagnosisCategory:
    """Tests for mapping diagnosis text to a protocol."""

    @pytest.mark.parametrize("text, expected", [
        ("STEMI", DiagnosisCategory.ACUTE_CORONARY_SYNDROME),
        ("NSTEMI inferior", DiagnosisCategory.ACUTE_CORONARY_SYNDROME),
        ("Suspected ACS", DiagnosisCategory.ACUTE_CORONARY_SYNDROME),
        ("Infarctus du myocarde", DiagnosisCategory.ACUTE_CORONARY_SYNDROME),
        ("Ischaemic stroke", DiagnosisCategory.STROKE),
        ("TIA", DiagnosisCategory.STROKE),
        ("AVC ischémique", DiagnosisCategory.STROKE),
        ("Pulmonary embolism", DiagnosisCategory.PULMONARY_EMBOLISM),
        ("Embolie pulmonaire", DiagnosisCategory.PULMONARY_EMBOLISM),
    ])
    def test_keywords(self, knowledge_base, text, expected):
        assert resolve_diagnosis_category(text, knowledge_base) == expected

    def test_icd10_fallback(self, knowledge_base):
        assert resolve_diagnosis_category("I21.4", knowledge_base) == DiagnosisCategory.ACUTE_CORONARY_SYNDROME
        assert resolve_diagnosis_category("Code I26.9", knowledge_base) == DiagnosisCategory.PULMONARY_EMBOLISM

    @pytest.mark.parametrize("text", ["dementia", "Community-acquired pneumonia", "", "   "])
    def test_unmatched(self, knowledge_base, text):
        assert resolve_diagnosis_category(text, knowledge_base) is None


# ========================================
# Enforcement
# ========================================

class TestAcuteCoronarySyndrome:
    """Tests for the ACS protocol."""

    def test_empty_draft_gets_full_protocol(self, enforcer):
        result = enforcer.enforce("ACS", {})
        assert result.state == EnforcementState.ENFORCED
        assert result.category == DiagnosisCategory.ACUTE_CORONARY_SYNDROME
        assert len(result.changes) == 11
        assert len(result.draft.investigations) == 7
        assert "Chest X-ray" not in investigation_names(result)
        assert medication_names(result) == ["Aspirin 300mg", "Ticagrelor 180mg", "Atorvastatin 80mg"]
        assert result.changes[-1] == "FORCED SPECIALIST REFERRAL: Cardiology (emergency)"
        assert result.draft.referral.reason == "Acute Coronary Syndrome requiring emergency specialist review"
        assert result.red_flags == list(result.protocol.red_flags)

    def test_plain_troponin_is_not_high_sensitivity(self, enforcer):
        result = enforcer.enforce("STEMI", draft_with(tests=["Troponin I"]))
        assert "ADDED CRITICAL: Troponin hs (high-sensitivity)" in result.changes
        assert investigation_names(result)[0] == "Troponin I"

    def test_existing_investigation_not_duplicated(self, enforcer):
        result = enforcer.enforce("STEMI", draft_with(tests=["hs-Troponin T", "ECG 12 dérivations", "NFS"]))
        added = [c for c in result.changes if c.startswith("ADDED CRITICAL")]
        assert "ADDED CRITICAL: Troponin hs (high-sensitivity)" not in added
        assert "ADDED CRITICAL: 12-lead ECG" not in added
        assert "ADDED CRITICAL: Full Blood Count (FBC)" not in added
        assert len(result.draft.investigations) == 7

    def test_nsaid_removed(self, enforcer):
        result = enforcer.enforce("NSTEMI", draft_with(medications=["Ibuprofen 400mg", "Bisoprolol 2.5mg"]))
        assert "Ibuprofen 400mg" not in medication_names(result)
        assert "Bisoprolol 2.5mg" in medication_names(result)
        assert "REMOVED 1 contraindicated medications" in result.changes
        assert result.critical_issues == ["BLOCKED CONTRAINDICATED: Ibuprofen 400mg in Acute Coronary Syndrome"]

    def test_brand_names_recognized(self, enforcer):
        result = enforcer.enforce("ACS", draft_with(medications=["Kardegic 75mg", "Advil"]))
        assert "ADDED CRITICAL: Aspirin 300mg" not in result.changes
        assert "Advil" not in medication_names(result)

    def test_enforcement_is_idempotent(self, enforcer):
        first = enforcer.enforce("STEMI", draft_with(tests=["Troponin I"], medications=["Ibuprofen"]))
        second = enforcer.enforce("STEMI", first.draft)
        assert second.changes == []
        assert second.critical_issues == []
        assert second.draft == first.draft

    def test_idempotent_through_wire_format(self, enforcer):
        first = enforcer.enforce("STEMI", {})
        second = enforcer.enforce("STEMI", first.to_dict()["analysis"])
        assert second.changes == []

    def test_matching_referral_not_logged(self, enforcer):
        referral = {
            "required": True,
            "specialty": "Cardiology",
            "urgency": "emergency",
            "reason": "Acute Coronary Syndrome requiring emergency specialist review",
            "timeframe": "24-48 hours",
        }
        result = enforcer.enforce("ACS", draft_with(referral=referral))
        assert not any(c.startswith("FORCED SPECIALIST REFERRAL") for c in result.changes)

    def test_input_not_mutated(self, enforcer):
        draft = draft_with(tests=["Troponin I"], medications=["Ibuprofen 400mg"])
        draft["summary"] = "Chest pain"
        original = copy.deepcopy(draft)
        result = enforcer.enforce("STEMI", draft)
        assert draft == original
        assert result.to_dict()["analysis"]["summary"] == "Chest pain"


class TestStroke:
    """Tests for the stroke protocol and its conditional contraindication."""

    def test_aspirin_flagged_when_type_unknown(self, enforcer):
        result = enforcer.enforce("Ischaemic stroke", draft_with(medications=["Aspirin 300mg"]))
        assert medication_names(result) == ["Aspirin 300mg"]
        assert len(result.critical_issues) == 1
        assert result.critical_issues[0].startswith("REVIEW CONDITIONAL CONTRAINDICATION: Aspirin 300mg")
        assert not any(c.startswith("REMOVED") for c in result.changes)

    def test_aspirin_removed_in_haemorrhagic_stroke(self, enforcer):
        result = enforcer.enforce("Haemorrhagic stroke", draft_with(medications=["Aspirin 300mg"]))
        assert medication_names(result) == []
        assert "REMOVED 1 contraindicated medications" in result.changes
        assert result.critical_issues[0].startswith("BLOCKED CONTRAINDICATED: Aspirin 300mg")

    def test_no_required_medications(self, enforcer):
        result = enforcer.enforce("stroke", {})
        assert result.draft.medications == ()
        assert len(result.changes) == 7


class TestPulmonaryEmbolism:
    """Tests for the PE protocol."""

    def test_lmwh_added(self, enforcer):
        result = enforcer.enforce("Pulmonary embolism", {})
        assert "LMWH (Low Molecular Weight Heparin) 1mg/kg BD or 1.5mg/kg OD" in medication_names(result)

    def test_existing_enoxaparin_kept(self, enforcer):
        result = enforcer.enforce("Pulmonary embolism", draft_with(medications=["Lovenox 4000 UI"]))
        assert medication_names(result) == ["Lovenox 4000 UI"]

    def test_nsaid_always_removed(self, enforcer):
        result = enforcer.enforce("Pulmonary embolism", draft_with(medications=["Naproxen 500mg"]))
        assert "Naproxen 500mg" not in medication_names(result)
        assert "REMOVED 1 contraindicated medications" in result.changes


class TestUnmatched:
    """Tests for diagnoses without a protocol."""

    def test_unmatched_passes_draft_through(self, enforcer):
        draft = draft_with(tests=["FBC"], medications=["Ibuprofen"])
        result = enforcer.enforce("dementia", draft)
        assert result.state == EnforcementState.UNMATCHED
        assert not result.enforced
        assert result.changes == []
        assert result.to_dict()["analysis"]["treatment_plan"]["medications"][0]["medication_name"] == "Ibuprofen"

    def test_missing_draft(self, enforcer):
        result = enforcer.enforce("dementia", None)
        assert result.draft.investigations == ()


class TestMalformedDraft:
    """Tests for drafts whose sections have the wrong JSON shape."""

    @pytest.mark.parametrize("analysis", [
        {"investigation_strategy": "CT brain and troponin"},
        {"investigation_strategy": {"laboratory_tests": "troponin"}},
        {"treatment_plan": ["aspirin"]},
        {"treatment_plan": {"medications": {"medication_name": "Aspirin"}}},
        {"follow_up_plan": "cardiology"},
        {"treatment_plan": {"medications": ["Ibuprofen", None, 3]}},
    ])
    def test_wrong_shape_reads_as_empty(self, enforcer, analysis):
        result = enforcer.enforce("STEMI", analysis)
        assert result.enforced
        assert len(result.draft.investigations) == 7
        assert medication_names(result) == ["Aspirin 300mg", "Ticagrelor 180mg", "Atorvastatin 80mg"]
        assert result.draft.referral.specialty == "Cardiology"

        data = result.to_dict()["analysis"]
        assert isinstance(data["investigation_strategy"]["laboratory_tests"], list)
        assert isinstance(data["treatment_plan"]["medications"], list)

    def test_other_sections_kept(self, enforcer):
        analysis = {"investigation_strategy": "pending", "treatment_plan": {"medications": [], "notes": "rest"}}
        data = enforcer.enforce("STEMI", analysis).to_dict()["analysis"]
        assert data["treatment_plan"]["notes"] == "rest"

    def test_draft_not_an_object(self, enforcer):
        result = enforcer.enforce("Pulmonary embolism", ["aspirin"])
        assert result.enforced
        assert len(result.draft.investigations) == 6

    def test_unmatched_malformed_draft(self, enforcer):
        result = enforcer.enforce("dementia", {"treatment_plan": "rest"})
        assert result.state == EnforcementState.UNMATCHED
        assert result.draft.medications == ()


# ========================================
# Properties over every protocol
# ========================================

def members(token):
    return substances_in_class(token) or (SUBSTANCES[token],)


CRITICAL_INVESTIGATIONS = [
    pytest.param(p, i, id=f"{p.category.value}:{i.name}")
    for p in PROTOCOLS for i in p.required_investigations if i.critical
]
CRITICAL_MEDICATIONS = [
    pytest.param(p, m, id=f"{p.category.value}:{m.drug}")
    for p in PROTOCOLS for m in p.required_medications if m.critical
]
BLOCKED_SUBSTANCES = [
    pytest.param(p, s, id=f"{p.category.value}:{s.substance_id}")
    for p in PROTOCOLS for c in p.contraindications if not c.conditional for s in members(c.token)
]


class TestProtocolProperties:
    """Completeness, safety and idempotence for every protocol."""

    @pytest.mark.parametrize("protocol", PROTOCOLS, ids=lambda p: p.category.value)
    def test_diagnosis_text_resolves(self, knowledge_base, protocol):
        assert resolve_diagnosis_category(DIAGNOSIS_TEXT[protocol.category], knowledge_base) == protocol.category

    @pytest.mark.parametrize("protocol, required", CRITICAL_INVESTIGATIONS)
    def test_missing_investigation_injected_once(self, enforcer, protocol, required):
        text = DIAGNOSIS_TEXT[protocol.category]
        full = enforcer.enforce(text, {}).draft
        partial = replace(
            full, investigations=tuple(t for t in full.investigations if t.test_name != required.name)
        )
        result = enforcer.enforce(text, partial)
        assert result.changes == [f"ADDED CRITICAL: {required.name}"]
        injected = [t for t in result.draft.investigations if t.test_name == required.name]
        assert len(injected) == 1
        assert injected[0].clinical_justification == required.justification

    @pytest.mark.parametrize("protocol, required", CRITICAL_MEDICATIONS)
    def test_missing_medication_injected_once(self, enforcer, protocol, required):
        text = DIAGNOSIS_TEXT[protocol.category]
        full = enforcer.enforce(text, {}).draft
        partial = replace(
            full, medications=tuple(m for m in full.medications if m.medication_name != required.display_name)
        )
        result = enforcer.enforce(text, partial)
        assert result.changes == [f"ADDED CRITICAL: {required.display_name}"]
        assert medication_names(result).count(required.display_name) == 1

    @pytest.mark.parametrize("protocol, substance", BLOCKED_SUBSTANCES)
    def test_contraindicated_substance_removed_and_logged(self, enforcer, protocol, substance):
        names = [f"{substance.display_name} 100mg", substance.aliases[-1]]
        result = enforcer.enforce(DIAGNOSIS_TEXT[protocol.category], draft_with(medications=names))
        for name in names:
            assert name not in medication_names(result)
            assert f"BLOCKED CONTRAINDICATED: {name} in {protocol.diagnosis}" in result.critical_issues
        assert "REMOVED 2 contraindicated medications" in result.changes

    @pytest.mark.parametrize("protocol", PROTOCOLS, ids=lambda p: p.category.value)
    def test_enforcement_is_idempotent(self, enforcer, protocol):
        text = DIAGNOSIS_TEXT[protocol.category]
        draft = draft_with(tests=["Troponin I", "FBC"], medications=["Ibuprofen 400mg", "Aspirin 75mg"])
        first = enforcer.enforce(text, draft)
        second = enforcer.enforce(text, first.draft)
        third = enforcer.enforce(text, first.to_dict()["analysis"])
        assert first.changes
        assert second.changes == []
        assert third.changes == []
        assert second.draft == first.draft
