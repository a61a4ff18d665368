"""Curated differential diagnosis lists per presenting complaint.

Table order is the tie-breaker when ranking, so entries keep the order in
which a clinician would usually consider them.
"""

from types import MappingProxyType
from typing import Mapping, Tuple

from domain.differential_models import (
    DifferentialDiagnosis as DD,
    ProbabilityTier as P,
    SeverityTier as Sev,
    SymptomKey,
)


CHEST_PAIN_DIFFERENTIALS: Tuple[DD, ...] = (
    DD(
        name="Acute Coronary Syndrome (myocardial infarction / unstable angina)",
        icd10="I21",
        probability=P.HIGH,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Crushing retrosternal pain",
            "Radiation to jaw or left arm",
            "Cardiovascular risk factors (age > 50, diabetes, hypertension, smoking)",
            "Associated dyspnoea",
            "Sweating, nausea",
        ),
        against_features=(
            "Pain reproducible on palpation",
            "Pleuritic pain (worse on inspiration)",
            "Young patient without risk factors",
        ),
        next_steps=(
            "Immediate ECG (STEMI vs NSTEMI)",
            "Urgent high-sensitivity troponin, repeated at 3h",
            "Aspirin 300mg chewed IMMEDIATELY unless contraindicated",
            "Call emergency services / transfer to coronary care",
        ),
        clinical_pearl="Any chest pain over 50 is ACS until proven otherwise",
    ),
    DD(
        name="Pulmonary Embolism",
        icd10="I26",
        probability=P.MODERATE,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Sudden pleuritic pain",
            "Acute dyspnoea",
            "Tachycardia",
            "Risk factors: recent surgery, immobilisation, cancer, oestrogen contraception",
        ),
        next_steps=(
            "Wells score for PE",
            "D-dimer if Wells is low",
            "CT pulmonary angiography if Wells is high or D-dimer positive",
            "Arterial blood gas (hypoxaemia, hypocapnia)",
        ),
        clinical_pearl="PE can mimic infarction. Negative D-dimer excludes PE when probability is low",
    ),
    DD(
        name="Aortic Dissection",
        icd10="I71.0",
        probability=P.LOW,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "TEARING pain of abrupt onset",
            "Radiation to the back between the shoulder blades",
            "Severe hypertension",
            "Pulse or blood pressure asymmetry between arms",
            "History: Marfan syndrome, poorly controlled hypertension",
        ),
        next_steps=(
            "URGENT CT angiography of the thorax",
            "Transoesophageal echo if CT unavailable",
            "Aggressive blood pressure control (IV beta-blocker)",
            "Immediate vascular surgery referral",
        ),
        clinical_pearl="Mortality 1-2% per hour. A normal chest X-ray does NOT exclude it",
    ),
    DD(
        name="Pneumothorax",
        icd10="J93",
        probability=P.MODERATE,
        severity=Sev.SERIOUS,
        time_sensitive=True,
        cannot_miss=False,
        supporting_features=(
            "Sudden unilateral pleuritic pain",
            "Dyspnoea",
            "Reduced breath sounds",
            "Hyper-resonance on percussion",
            "Tall young patient or COPD",
        ),
        next_steps=(
            "Chest X-ray (upright, expiration)",
            "Tension pneumothorax: immediate needle decompression",
            "Chest drain if > 20% or symptomatic",
        ),
    ),
    DD(
        name="Acute Pericarditis",
        icd10="I30",
        probability=P.MODERATE,
        severity=Sev.MODERATE,
        time_sensitive=False,
        cannot_miss=False,
        supporting_features=(
            "Pain worse lying flat, relieved leaning forward",
            "Pericardial rub",
            "Recent viral illness",
            "Fever",
        ),
        next_steps=(
            "ECG: diffuse ST elevation, PR depression",
            "Troponin (may be raised)",
            "Echocardiography (pericardial effusion)",
            "CRP",
        ),
    ),
    DD(
        name="Pneumonia / Pleurisy",
        icd10="J18",
        probability=P.HIGH,
        severity=Sev.SERIOUS,
        time_sensitive=False,
        cannot_miss=False,
        supporting_features=(
            "Pleuritic pain",
            "Fever, cough",
            "Dyspnoea",
            "Crackles on auscultation",
        ),
        next_steps=(
            "Chest X-ray",
            "CRP, procalcitonin if sepsis suspected",
            "Blood cultures if severe",
        ),
    ),
    DD(
        name="Gastro-oesophageal reflux / oesophageal spasm",
        icd10="K21",
        probability=P.HIGH,
        severity=Sev.MINOR,
        time_sensitive=False,
        cannot_miss=False,
        supporting_features=(
            "Retrosternal burning",
            "Related to meals",
            "Relieved by antacids",
            "Worse lying down",
        ),
        next_steps=(
            "Therapeutic PPI trial",
            "Endoscopy if alarm symptoms",
            "ECG first to exclude a cardiac cause",
        ),
        clinical_pearl="Can mimic ACS perfectly. Always exclude a cardiac cause first",
    ),
    DD(
        name="Chest wall pain / Costochondritis (Tietze syndrome)",
        icd10="M94.0",
        probability=P.HIGH,
        severity=Sev.MINOR,
        time_sensitive=False,
        cannot_miss=False,
        supporting_features=(
            "Pain reproducible on palpation",
            "No dyspnoea",
            "Worse with chest movement",
        ),
        next_steps=(
            "Clinical diagnosis",
            "Reassure the patient",
            "Topical or oral NSAIDs",
        ),
    ),
)


ABDOMINAL_PAIN_DIFFERENTIALS: Tuple[DD, ...] = (
    DD(
        name="Acute Appendicitis",
        icd10="K35",
        probability=P.HIGH,
        severity=Sev.SERIOUS,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Periumbilical pain migrating to the right iliac fossa",
            "Anorexia, nausea",
            "Low-grade fever",
            "Right iliac fossa guarding",
            "Alvarado score >= 7",
        ),
        next_steps=(
            "Alvarado score",
            "Full blood count (neutrophilia)",
            "CRP",
            "Abdominal ultrasound if in doubt",
            "Abdominal CT if the diagnosis is uncertain",
            "Surgery if confirmed",
        ),
        clinical_pearl="Alvarado < 4: appendicitis unlikely. > 7: surgery. 4-7: imaging",
    ),
    DD(
        name="Acute Cholecystitis / Biliary colic",
        icd10="K81",
        probability=P.HIGH,
        severity=Sev.SERIOUS,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Right upper quadrant pain radiating to the right shoulder blade",
            "Post-prandial (fatty meal)",
            "Positive Murphy sign",
            "Fever in cholecystitis",
        ),
        next_steps=(
            "Abdominal ultrasound (gold standard)",
            "Full blood count, CRP",
            "Bilirubin, GGT, alkaline phosphatase",
            "If complicated: HIDA scan, MRCP",
            "Surgery if acute",
        ),
    ),
    DD(
        name="Acute Pancreatitis",
        icd10="K85",
        probability=P.MODERATE,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Severe epigastric pain radiating to the back",
            "Intractable vomiting",
            "Context: alcohol, gallstones",
            "Antalgic position (knees to chest)",
        ),
        next_steps=(
            "Lipase > 3x normal (gold standard)",
            "Amylase (less specific)",
            "Abdominal CT if in doubt (not in the acute phase)",
            "Ranson / BISAP score",
            "Admission, intensive care if severe",
        ),
        clinical_pearl="Lipase beats amylase. CT within 72h only if the diagnosis is uncertain",
    ),
    DD(
        name="Visceral Perforation",
        icd10="K63.1",
        probability=P.LOW,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Sudden stabbing abdominal pain",
            "Generalised guarding / board-like rigidity",
            "Loss of liver dullness",
            "Context: ulcer, NSAIDs, corticosteroids",
        ),
        next_steps=(
            "Upright abdominal X-ray (pneumoperitoneum)",
            "Abdominal CT if in doubt",
            "URGENT surgery",
            "Broad-spectrum antibiotics",
        ),
    ),
    DD(
        name="Bowel Obstruction",
        icd10="K56",
        probability=P.MODERATE,
        severity=Sev.SERIOUS,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "No passage of stool or flatus",
            "Vomiting",
            "Abdominal distension",
            "Tinkling or absent bowel sounds",
            "History: surgery (adhesions), hernia",
        ),
        next_steps=(
            "Abdominal X-ray (air-fluid levels)",
            "Contrast abdominal CT",
            "Admission",
            "Surgery if strangulated",
        ),
    ),
    DD(
        name="Urinary Tract Infection / Pyelonephritis",
        icd10="N10",
        probability=P.HIGH,
        severity=Sev.SERIOUS,
        time_sensitive=False,
        cannot_miss=False,
        supporting_features=(
            "Loin / flank pain",
            "High fever",
            "Dysuria, frequency",
            "Renal angle tenderness",
        ),
        next_steps=(
            "Urine culture",
            "Full blood count, CRP",
            "Creatinine",
            "Renal ultrasound if complicated",
        ),
    ),
    DD(
        name="Acute Gastroenteritis",
        icd10="K52",
        probability=P.HIGH,
        severity=Sev.MINOR,
        time_sensitive=False,
        cannot_miss=False,
        supporting_features=(
            "Diffuse cramping abdominal pain",
            "Diarrhoea with or without vomiting",
            "Low-grade fever",
            "Similar cases among contacts",
        ),
        next_steps=(
            "Hydration",
            "Oral rehydration solution",
            "Stool culture if blood or mucus, or if persistent",
        ),
    ),
    DD(
        name="Ectopic Pregnancy",
        icd10="O00",
        probability=P.MODERATE,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Woman of childbearing age",
            "Amenorrhoea",
            "Left iliac fossa pain",
            "Vaginal bleeding",
            "Palpable adnexal mass",
        ),
        next_steps=(
            "Beta-hCG",
            "Pelvic ultrasound",
            "Full blood count if bleeding",
            "Surgery if ruptured",
        ),
        clinical_pearl="Any woman of childbearing age with abdominal pain has an ectopic until proven otherwise",
    ),
)


HEADACHE_DIFFERENTIALS: Tuple[DD, ...] = (
    DD(
        name="Subarachnoid Haemorrhage",
        icd10="I60",
        probability=P.LOW,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Thunderclap headache, worst of their life",
            "ABRUPT onset, maximal within a minute",
            "Neck stiffness",
            "Photophobia",
            "Altered consciousness",
        ),
        next_steps=(
            "URGENT non-contrast head CT",
            "Lumbar puncture if CT negative (xanthochromia)",
            "CT or MR angiography",
            "Immediate neurosurgical referral",
        ),
        clinical_pearl="Mortality 50%. A negative CT after 6h does not exclude it: lumbar puncture is mandatory",
    ),
    DD(
        name="Migraine",
        icd10="G43",
        probability=P.HIGH,
        severity=Sev.MINOR,
        time_sensitive=False,
        cannot_miss=False,
        supporting_features=(
            "Unilateral pulsating headache",
            "Photophobia, phonophobia",
            "Nausea / vomiting",
            "Visual aura (20-30%)",
            "Personal or family history",
        ),
        next_steps=(
            "Clinical diagnosis",
            "Triptan if severe",
            "Prophylaxis if more than 3 attacks a month",
        ),
    ),
    DD(
        name="Meningitis",
        icd10="G03",
        probability=P.MODERATE,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Headache with fever and neck stiffness",
            "Photophobia",
            "Altered consciousness",
            "Purpura (meningococcus)",
        ),
        next_steps=(
            "Blood cultures",
            "CT before lumbar puncture if focal signs or raised intracranial pressure",
            "Lumbar puncture",
            "Antibiotics IMMEDIATELY on suspicion, without waiting for the lumbar puncture",
        ),
        clinical_pearl="Ceftriaxone 2g IV on suspicion, before the lumbar puncture",
    ),
    DD(
        name="Giant Cell Arteritis (temporal arteritis)",
        icd10="M31.6",
        probability=P.LOW,
        severity=Sev.SERIOUS,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Patient over 50",
            "Temporal headache",
            "Jaw claudication",
            "Thickened temporal artery",
            "Markedly raised ESR (> 50)",
            "Visual disturbance (amaurosis fugax)",
        ),
        next_steps=(
            "ESR, CRP",
            "IMMEDIATE corticosteroids (prednisone 1mg/kg)",
            "Temporal artery biopsy within 7 days",
        ),
        clinical_pearl="Emergency: risk of irreversible blindness. Steroids BEFORE biopsy",
    ),
)


DYSPNEA_DIFFERENTIALS: Tuple[DD, ...] = (
    DD(
        name="Acute Heart Failure / Pulmonary Oedema",
        icd10="I50",
        probability=P.HIGH,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Orthopnoea",
            "Bilateral crackles",
            "Lower limb oedema",
            "Raised jugular venous pressure",
            "Cardiac history",
        ),
        next_steps=(
            "ECG",
            "BNP / NT-proBNP",
            "Chest X-ray (cardiomegaly, upper lobe diversion)",
            "Echocardiography",
            "IV diuretics, oxygen",
        ),
    ),
    DD(
        name="Acute Severe Asthma",
        icd10="J45",
        probability=P.HIGH,
        severity=Sev.LIFE_THREATENING,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Expiratory wheeze",
            "Recession, tachypnoea",
            "Unable to complete sentences",
            "Peak flow < 50% predicted",
            "Silent chest (extreme severity)",
        ),
        next_steps=(
            "Peak flow",
            "Blood gas if severe",
            "Bronchodilators and corticosteroids",
            "Admission if severe",
        ),
    ),
    DD(
        name="COPD Exacerbation",
        icd10="J44",
        probability=P.HIGH,
        severity=Sev.SERIOUS,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Smoking history",
            "Worsening chronic dyspnoea",
            "Purulent sputum",
            "Wheeze",
        ),
        next_steps=(
            "Blood gas",
            "Chest X-ray",
            "Bronchodilators",
            "Oral corticosteroids",
            "Antibiotics if infected",
        ),
    ),
    DD(
        name="Pneumothorax",
        icd10="J93",
        probability=P.MODERATE,
        severity=Sev.SERIOUS,
        time_sensitive=True,
        cannot_miss=True,
        supporting_features=(
            "Sudden dyspnoea with chest pain",
            "Unilateral reduced breath sounds",
            "Hyper-resonance",
        ),
        next_steps=(
            "Chest X-ray",
            "Chest drain if > 20%",
        ),
    ),
)


DIFFERENTIALS_BY_SYMPTOM: Mapping[SymptomKey, Tuple[DD, ...]] = MappingProxyType({
    SymptomKey.CHEST_PAIN: CHEST_PAIN_DIFFERENTIALS,
    SymptomKey.ABDOMINAL_PAIN: ABDOMINAL_PAIN_DIFFERENTIALS,
    SymptomKey.HEADACHE: HEADACHE_DIFFERENTIALS,
    SymptomKey.DYSPNEA: DYSPNEA_DIFFERENTIALS,
})


# Checked in order; the first key with a matching keyword wins
SYMPTOM_KEYWORDS: Tuple[Tuple[SymptomKey, Tuple[str, ...]], ...] = (
    (SymptomKey.CHEST_PAIN, ("chest pain", "douleur thoracique", "thorax", "thoracic", "cardiac")),
    (SymptomKey.ABDOMINAL_PAIN, ("abdominal", "stomach", "ventre", "abdomen", "douleur abdominale")),
    (SymptomKey.HEADACHE, ("headache", "céphalée", "cephalee", "mal de tête", "mal de tete", "migraine")),
    (SymptomKey.DYSPNEA, (
        "dyspnea", "dyspnoea", "dyspnée", "dyspnee", "shortness of breath",
        "essoufflement", "difficulté respir", "breathless",
    )),
)
