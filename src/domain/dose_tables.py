"""Static dose adjustment tables.

Renal bands follow the usual clearance cut-offs (60, 30, 15 ml/min). A
`dose_factor` is the largest fraction of the standard dose the instruction
permits; "avoid" instructions carry 0.0 and contraindications always do.
"""

from domain.dose_models import (
    DoseInstruction as I,
    DoseTables,
    GeriatricRule,
    HepaticAdjustmentRule,
    PregnancyCategory,
    PregnancyRule,
    RenalAdjustmentRule,
    RenalBand,
    WeightBandRule,
)


RENAL_ADJUSTMENTS = (
    RenalAdjustmentRule(
        drugs=("metformin",),
        bands=(
            RenalBand(60, I("Reduce dose by 50%, max 1000 mg/day, close monitoring", 0.5)),
            RenalBand(30, I("CONTRAINDICATED: risk of lactic acidosis", 0.0, True)),
            RenalBand(15, I("ABSOLUTE CONTRAINDICATION", 0.0, True)),
        ),
        monitoring="Creatinine every 3 months. Stop during severe infection or dehydration",
    ),
    RenalAdjustmentRule(
        drugs=("enoxaparin",),
        bands=(
            RenalBand(60, I("Standard dose possible with monitoring", 1.0)),
            RenalBand(30, I("Reduce by 50%: 1 mg/kg/day becomes 0.5 mg/kg/day", 0.5)),
            RenalBand(15, I("Reduce by 50% or prefer unfractionated heparin", 0.5)),
        ),
        monitoring="Anti-Xa levels where available, watch for bleeding",
    ),
    RenalAdjustmentRule(
        drugs=("gabapentin",),
        bands=(
            RenalBand(60, I("Reduce by 50%: 300 mg TDS becomes 300 mg BD", 0.5)),
            RenalBand(30, I("Reduce by 75%: 300 mg OD", 0.25)),
            RenalBand(15, I("100-300 mg OD or after dialysis", 0.25)),
        ),
        monitoring="Watch for sedation and dizziness",
    ),
    RenalAdjustmentRule(
        drugs=("digoxin",),
        bands=(
            RenalBand(60, I("Reduce dose by 25%; digoxin level mandatory", 0.75)),
            RenalBand(30, I("Reduce dose by 50%; frequent digoxin levels", 0.5)),
            RenalBand(15, I("Reduce dose by 75% or stop: high toxicity risk", 0.25)),
        ),
        monitoring="Target digoxin level 0.5-0.9 ng/mL",
    ),
    RenalAdjustmentRule(
        drugs=("nsaid",),
        bands=(
            RenalBand(60, I("AVOID: risk of worsening renal function", 0.0)),
            RenalBand(30, I("CONTRAINDICATED", 0.0, True)),
            RenalBand(15, I("ABSOLUTE CONTRAINDICATION", 0.0, True)),
        ),
        monitoring="Prefer paracetamol. If unavoidable, creatinine at day 3-5",
    ),
    RenalAdjustmentRule(
        drugs=("amoxicillin",),
        bands=(
            RenalBand(60, I("Standard dose 500 mg TDS possible", 1.0)),
            RenalBand(30, I("Reduce frequency: 500 mg BD", 0.67)),
            RenalBand(15, I("500 mg OD or BD depending on severity", 0.67)),
        ),
        monitoring="Adapt to clinical response",
    ),
    RenalAdjustmentRule(
        drugs=("ciprofloxacin",),
        bands=(
            RenalBand(60, I("Standard dose or reduce by 50%", 1.0)),
            RenalBand(30, I("Reduce by 50%", 0.5)),
            RenalBand(15, I("Reduce by 50% and extend the interval", 0.5)),
        ),
        monitoring="Watch for tendinopathy and CNS effects",
    ),
    RenalAdjustmentRule(
        drugs=("aminoglycoside",),
        bands=(
            RenalBand(60, I("Dose by nomogram; levels mandatory", 1.0)),
            RenalBand(30, I("Dose by levels; extend the interval", 1.0)),
            RenalBand(15, I("AVOID if possible; if required, frequent levels", 0.0)),
        ),
        monitoring="Peak and trough levels MANDATORY. Daily renal function",
    ),
    RenalAdjustmentRule(
        drugs=("ace_inhibitor",),
        bands=(
            RenalBand(60, I("Normal dose; monitor creatinine", 1.0)),
            RenalBand(30, I("Start at a low dose; titrate cautiously", 0.5)),
            RenalBand(15, I("AVOID if possible or very low doses", 0.25)),
        ),
        monitoring="Creatinine and potassium at day 3-7 then monthly. Stop if creatinine rises >30%",
    ),
    RenalAdjustmentRule(
        drugs=("spironolactone",),
        bands=(
            RenalBand(60, I("Max 25 mg/day with close potassium monitoring", 1.0)),
            RenalBand(30, I("AVOID: major hyperkalaemia risk", 0.0)),
            RenalBand(15, I("CONTRAINDICATED", 0.0, True)),
        ),
        monitoring="Potassium at day 3, day 7, then weekly",
    ),
)


HEPATIC_ADJUSTMENTS = (
    HepaticAdjustmentRule(
        drugs=("paracetamol",),
        child_pugh_b=I("Reduce dose by 50%, max 2 g/day", 0.5),
        child_pugh_c=I("Avoid or max 1 g/day: major hepatotoxicity risk", 0.25),
        monitoring="Transaminases during prolonged use",
    ),
    HepaticAdjustmentRule(
        drugs=("metformin",),
        child_pugh_b=I("CONTRAINDICATED: risk of lactic acidosis", 0.0, True),
        child_pugh_c=I("ABSOLUTE CONTRAINDICATION", 0.0, True),
        monitoring="Lactate if warning signs appear",
    ),
    HepaticAdjustmentRule(
        drugs=("statin",),
        child_pugh_b=I("Reduce dose by 50% or avoid", 0.5),
        child_pugh_c=I("CONTRAINDICATED", 0.0, True),
        monitoring="Monthly transaminases in Child-Pugh B",
    ),
    HepaticAdjustmentRule(
        drugs=("warfarin",),
        child_pugh_b=I("Start at a low dose; very frequent INR", 0.5),
        child_pugh_c=I("AVOID if possible: major bleeding risk", 0.0),
        monitoring="INR every 2-3 days initially, then weekly",
    ),
    HepaticAdjustmentRule(
        drugs=("opioid",),
        child_pugh_b=I("Reduce dose by 25-50%: prolonged effect", 0.75),
        child_pugh_c=I("Reduce dose by 50-75%: risk of encephalopathy", 0.5),
        monitoring="Sedation and cognitive function",
    ),
)


GERIATRIC_ADJUSTMENTS = (
    GeriatricRule(
        drugs=("benzodiazepine",),
        recommendation="AVOID over 65: falls risk doubled, confusion, dependence",
        alternative="Non-drug management of insomnia. If required, short course of zopiclone",
    ),
    GeriatricRule(
        drugs=("anticholinergic",),
        recommendation="AVOID: risk of confusion, urinary retention and falls",
        alternative="Non-anticholinergic alternatives",
    ),
    GeriatricRule(
        drugs=("nsaid",),
        recommendation="AVOID chronic use: GI bleeding, acute kidney injury, heart failure",
        alternative="Paracetamol first line; weak opioids if insufficient",
    ),
    GeriatricRule(
        drugs=("first_gen_antihistamine",),
        recommendation="AVOID: strongly anticholinergic",
        alternative="Cetirizine or loratadine (second-generation H1 antihistamines)",
    ),
    GeriatricRule(
        drugs=("tricyclic_antidepressant",),
        recommendation="AVOID: anticholinergic and cardiotoxic",
        alternative="SSRI (sertraline, citalopram) or SNRI",
    ),
    GeriatricRule(
        drugs=("digoxin",),
        recommendation="AVOID doses above 125 micrograms/day: frequent toxicity in older adults",
        alternative="In heart failure max 125 micrograms/day, target level 0.5-0.9 ng/mL",
    ),
)


WEIGHT_ADJUSTMENTS = (
    WeightBandRule(
        drugs=("paracetamol",),
        min_weight_kg=50,
        max_weight_kg=None,
        below=I("Max 3 g/day (15 mg/kg per dose) below 50 kg", 0.75),
        above=I("Standard dose", 1.0),
        monitoring="Liver function if used for more than a few days",
    ),
    WeightBandRule(
        drugs=("enoxaparin",),
        min_weight_kg=40,
        max_weight_kg=150,
        below=I("Reduce dose below 40 kg; check anti-Xa", 0.75),
        above=I("Cap at the 150 kg dose; check anti-Xa", 1.0),
        monitoring="Anti-Xa levels 4h after the third dose",
    ),
    WeightBandRule(
        drugs=("aminoglycoside",),
        min_weight_kg=None,
        max_weight_kg=120,
        below=I("Standard dose", 1.0),
        above=I("Dose on adjusted body weight above 120 kg", 1.0),
        monitoring="Peak and trough levels",
    ),
)


PREGNANCY_RULES = (
    PregnancyRule(("warfarin",), PregnancyCategory.X, "Teratogenic (warfarin embryopathy)", "Low molecular weight heparin"),
    PregnancyRule(("retinoid",), PregnancyCategory.X, "Major teratogen"),
    PregnancyRule(("methotrexate",), PregnancyCategory.X, "Abortifacient and teratogenic"),
    PregnancyRule(("statin",), PregnancyCategory.X, "Stop during pregnancy"),
    PregnancyRule(("valproate",), PregnancyCategory.X, "Neural tube defects and neurodevelopmental harm", "Specialist review for lamotrigine or levetiracetam"),
    PregnancyRule(("ace_inhibitor",), PregnancyCategory.D, "Fetal renal toxicity in the second and third trimesters", "Labetalol or nifedipine"),
    PregnancyRule(("arb",), PregnancyCategory.D, "Fetal renal toxicity in the second and third trimesters", "Labetalol or nifedipine"),
    PregnancyRule(("nsaid",), PregnancyCategory.D, "Premature ductus arteriosus closure in the third trimester", "Paracetamol"),
    PregnancyRule(("lithium",), PregnancyCategory.D, "Cardiac malformations (Ebstein anomaly)"),
    PregnancyRule(("tetracycline",), PregnancyCategory.D, "Tooth discolouration and bone growth inhibition", "Amoxicillin or a macrolide"),
    PregnancyRule(("amiodarone",), PregnancyCategory.D, "Fetal thyroid dysfunction"),
    PregnancyRule(("aminoglycoside",), PregnancyCategory.D, "Fetal ototoxicity"),
)


DOSE_TABLES = DoseTables(
    renal=RENAL_ADJUSTMENTS,
    hepatic=HEPATIC_ADJUSTMENTS,
    geriatric=GERIATRIC_ADJUSTMENTS,
    weight=WEIGHT_ADJUSTMENTS,
    pregnancy=PREGNANCY_RULES,
)
