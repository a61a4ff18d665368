"""Critical diagnosis protocols and the keyword table that selects them.

These are hard rules applied to every AI-drafted analysis whose diagnosis
resolves to one of the categories, whatever the draft says.
"""

from types import MappingProxyType
from typing import Mapping, Tuple

from domain.protocol_models import (
    Contraindication,
    DiagnosisCategory,
    MedicalProtocol,
    RequiredInvestigation,
    RequiredMedication,
    SpecialistReferral,
    UrgencyTier,
)

_FBC_TERMS = ("full blood count", "fbc", "complete blood count", "cbc", "nfs")
_COAG_TERMS = ("coagulation", "pt/inr", "aptt", "inr", "bilan de coagulation")
_RENAL_TERMS = ("u&e", "urea and electrolytes", "renal function", "egfr", "creatinine", "créatinine")
_ECG_TERMS = ("ecg", "ekg", "electrocardiogram", "électrocardiogramme")


ACS_PROTOCOL = MedicalProtocol(
    category=DiagnosisCategory.ACUTE_CORONARY_SYNDROME,
    diagnosis="Acute Coronary Syndrome",
    icd10_codes=("I20.0", "I21.0", "I21.1", "I21.2", "I21.3", "I21.4"),
    required_investigations=(
        RequiredInvestigation(
            name="Troponin hs (high-sensitivity)",
            timing=("T0 (baseline)", "T1h (1 hour)", "T3h (3 hours)"),
            critical=True,
            interpretation="Rise > 50% = NSTEMI",
            justification="ESC Guidelines 2023 - Essential for NSTEMI diagnosis",
            match_terms=("troponin hs", "hs-troponin", "hs troponin", "high-sensitivity troponin", "troponine hs"),
        ),
        RequiredInvestigation(
            name="12-lead ECG",
            timing=("STAT (immediate)",),
            critical=True,
            interpretation="ST elevation >= 1mm in 2 contiguous leads = STEMI",
            justification="Identify STEMI requiring immediate PCI",
            match_terms=_ECG_TERMS,
        ),
        RequiredInvestigation(
            name="U&E (Urea and Electrolytes) + eGFR",
            timing=("STAT",),
            critical=True,
            justification="Renal function for Fondaparinux/LMWH dosing",
            match_terms=_RENAL_TERMS,
        ),
        RequiredInvestigation(
            name="Lipid profile (Total cholesterol, LDL, HDL, Triglycerides)",
            timing=("Within 24 hours",),
            critical=True,
            justification="Risk stratification and statin therapy guidance",
            match_terms=("lipid profile", "lipid panel", "lipids", "cholesterol", "bilan lipidique"),
        ),
        RequiredInvestigation(
            name="HbA1c + Glucose",
            timing=("Within 24 hours",),
            critical=True,
            justification="Screen for diabetes (major ACS risk factor)",
            match_terms=("hba1c", "glycated haemoglobin", "glycated hemoglobin"),
        ),
        RequiredInvestigation(
            name="Full Blood Count (FBC)",
            timing=("STAT",),
            critical=True,
            justification="Rule out anaemia (Hb < 10 g/dL = transfusion)",
            match_terms=_FBC_TERMS,
        ),
        RequiredInvestigation(
            name="Coagulation screen (PT/INR, APTT)",
            timing=("STAT",),
            critical=True,
            justification="Baseline before anticoagulation (INR > 1.5 = caution)",
            match_terms=_COAG_TERMS,
        ),
        RequiredInvestigation(
            name="Chest X-ray",
            timing=("Within 24 hours",),
            critical=False,
            justification="Rule out complications (pulmonary oedema, pneumothorax)",
            match_terms=("chest x-ray", "chest xray", "cxr", "radiographie thorax"),
        ),
    ),
    required_medications=(
        RequiredMedication(
            drug="Aspirin",
            substance="aspirin",
            dose="300mg",
            timing="STAT (loading dose)",
            critical=True,
            justification="ESC Guidelines 2023 - Immediate antiplatelet therapy",
        ),
        RequiredMedication(
            drug="Ticagrelor",
            substance="ticagrelor",
            dose="180mg",
            timing="STAT (loading dose)",
            critical=True,
            justification="ESC Guidelines 2023 - Dual antiplatelet therapy (DAPT)",
        ),
        RequiredMedication(
            drug="Atorvastatin",
            substance="atorvastatin",
            dose="80mg",
            timing="OD (daily)",
            critical=True,
            justification="High-intensity statin for LDL reduction",
        ),
    ),
    contraindications=(
        Contraindication(token="nsaid", label="NSAIDs (ibuprofen, diclofenac, naproxen, celecoxib, indomethacin, ketorolac)"),
    ),
    referral=SpecialistReferral(
        specialty="Cardiology",
        urgency=UrgencyTier.EMERGENCY,
        timeframe="24-48 hours",
        required=True,
    ),
    red_flags=(
        "ST elevation on ECG (immediate PCI within 120 minutes)",
        "Cardiogenic shock (immediate ICU)",
        "Ventricular arrhythmias",
        "Acute heart failure",
        "Persistent chest pain despite treatment",
    ),
)


STROKE_PROTOCOL = MedicalProtocol(
    category=DiagnosisCategory.STROKE,
    diagnosis="Cerebrovascular Accident (Stroke)",
    icd10_codes=("I63.0", "I63.1", "I63.2", "I63.3", "I63.4", "I63.5"),
    required_investigations=(
        RequiredInvestigation(
            name="CT Brain (non-contrast)",
            timing=("STAT (within 1 hour)",),
            critical=True,
            interpretation="Haemorrhage vs infarction - determines thrombolysis eligibility",
            justification="NICE CG68 - Essential for acute stroke management",
            match_terms=("ct brain", "brain ct", "ct head", "head ct", "ct scan of the brain", "scanner cérébral"),
        ),
        RequiredInvestigation(
            name="Blood glucose",
            timing=("STAT",),
            critical=True,
            justification="Hypoglycaemia can mimic stroke symptoms",
            match_terms=("glucose", "glycaemia", "glycemia", "glycémie"),
        ),
        RequiredInvestigation(
            name="Full Blood Count (FBC)",
            timing=("STAT",),
            critical=True,
            justification="Rule out thrombocytopenia before thrombolysis",
            match_terms=_FBC_TERMS,
        ),
        RequiredInvestigation(
            name="Coagulation screen (PT/INR, APTT)",
            timing=("STAT",),
            critical=True,
            justification="Assess bleeding risk before thrombolysis",
            match_terms=_COAG_TERMS,
        ),
        RequiredInvestigation(
            name="U&E + eGFR",
            timing=("STAT",),
            critical=True,
            justification="Renal function assessment",
            match_terms=_RENAL_TERMS,
        ),
        RequiredInvestigation(
            name="ECG",
            timing=("STAT",),
            critical=True,
            justification="Identify atrial fibrillation (cardioembolic source)",
            match_terms=_ECG_TERMS,
        ),
    ),
    # Depends on ischaemic vs haemorrhagic
    required_medications=(),
    contraindications=(
        Contraindication(token="nsaid", label="NSAIDs (ibuprofen, diclofenac, naproxen)"),
        Contraindication(
            token="aspirin",
            label="Aspirin (if hemorrhagic stroke)",
            condition="hemorrhagic stroke",
            condition_terms=(
                "hemorrhagic", "haemorrhagic", "hémorragique", "intracerebral hemorrhage",
                "intracerebral haemorrhage", "ich",
            ),
        ),
    ),
    referral=SpecialistReferral(
        specialty="Neurology / Stroke Unit",
        urgency=UrgencyTier.EMERGENCY,
        timeframe="Immediate",
        required=True,
    ),
    red_flags=(
        "Symptom onset < 4.5 hours (thrombolysis window)",
        "Decreased consciousness",
        "Seizures",
        "Rapidly worsening symptoms",
    ),
)


PE_PROTOCOL = MedicalProtocol(
    category=DiagnosisCategory.PULMONARY_EMBOLISM,
    diagnosis="Pulmonary Embolism",
    icd10_codes=("I26.0", "I26.9"),
    required_investigations=(
        RequiredInvestigation(
            name="D-Dimer",
            timing=("STAT",),
            critical=True,
            interpretation="< 500 ng/mL = PE unlikely (if Wells score <= 4)",
            justification="NICE CG144 - Risk stratification",
            match_terms=("d-dimer", "d dimer", "ddimer", "d-dimère", "d-dimères"),
        ),
        RequiredInvestigation(
            name="CT Pulmonary Angiography (CTPA)",
            timing=("STAT (if D-Dimer positive)",),
            critical=True,
            interpretation="Definitive diagnosis of PE",
            justification="Gold standard for PE diagnosis",
            match_terms=("ctpa", "ct pulmonary angiography", "pulmonary angiography", "angioscanner"),
        ),
        RequiredInvestigation(
            name="ABG (Arterial Blood Gas)",
            timing=("STAT",),
            critical=True,
            justification="Assess hypoxaemia and acid-base status",
            match_terms=("abg", "arterial blood gas", "blood gas", "gaz du sang"),
        ),
        RequiredInvestigation(
            name="ECG",
            timing=("STAT",),
            critical=True,
            interpretation="S1Q3T3 pattern suggests PE (low sensitivity)",
            justification="Rule out MI, identify RV strain",
            match_terms=_ECG_TERMS,
        ),
        RequiredInvestigation(
            name="Troponin",
            timing=("STAT",),
            critical=True,
            justification="Elevated troponin = RV dysfunction (poor prognosis)",
            match_terms=("troponin", "troponine"),
        ),
        RequiredInvestigation(
            name="U&E + eGFR",
            timing=("STAT",),
            critical=True,
            justification="Renal function for anticoagulation dosing",
            match_terms=_RENAL_TERMS,
        ),
    ),
    required_medications=(
        RequiredMedication(
            drug="LMWH (Low Molecular Weight Heparin)",
            substance="enoxaparin",
            dose="1mg/kg BD or 1.5mg/kg OD",
            timing="STAT",
            critical=True,
            justification="Immediate anticoagulation (ESC Guidelines 2019)",
        ),
    ),
    # The protocol itself starts anticoagulation, so the NSAID condition always holds
    contraindications=(
        Contraindication(token="nsaid", label="NSAIDs (on anticoagulation)"),
    ),
    referral=SpecialistReferral(
        specialty="Respiratory Medicine / Acute Medicine",
        urgency=UrgencyTier.EMERGENCY,
        timeframe="Immediate",
        required=True,
    ),
    red_flags=(
        "Massive PE (hypotension, shock)",
        "Submassive PE (RV dysfunction on echo/troponin elevation)",
        "Severe hypoxaemia (SpO2 < 90%)",
        "Cardiac arrest",
    ),
)


MEDICAL_PROTOCOLS: Mapping[DiagnosisCategory, MedicalProtocol] = MappingProxyType({
    DiagnosisCategory.ACUTE_CORONARY_SYNDROME: ACS_PROTOCOL,
    DiagnosisCategory.STROKE: STROKE_PROTOCOL,
    DiagnosisCategory.PULMONARY_EMBOLISM: PE_PROTOCOL,
})


# Checked in order; keywords match on word boundaries
DIAGNOSIS_KEYWORDS: Tuple[Tuple[DiagnosisCategory, Tuple[str, ...]], ...] = (
    (DiagnosisCategory.ACUTE_CORONARY_SYNDROME, (
        "acs", "acute coronary", "coronary", "stemi", "nstemi", "myocardial infarction",
        "angina", "syndrome coronarien", "infarctus du myocarde",
    )),
    (DiagnosisCategory.STROKE, (
        "stroke", "cva", "cerebrovascular", "tia", "transient ischaemic attack",
        "transient ischemic attack", "avc", "accident vasculaire cérébral",
    )),
    (DiagnosisCategory.PULMONARY_EMBOLISM, (
        "pulmonary embolism", "pulmonary embolus", "embolie pulmonaire",
    )),
)
