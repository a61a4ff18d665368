"""Static drug-drug interaction table.

Each rule names exactly the participants of one interaction, as substance ids,
drug class ids or raw tokens (alcohol, tobacco). No substance may satisfy two
tokens of the same rule; the knowledge base tests check that.
"""

from typing import Tuple

from domain.interaction_models import InteractionRule, InteractionSeverity

S = InteractionSeverity


INTERACTION_RULES: Tuple[InteractionRule, ...] = (
    # Anticoagulants
    InteractionRule(
        rule_id="DI001",
        drugs=("warfarin", "nsaid"),
        severity=S.MAJOR,
        description="Major bleeding risk: GI haemorrhage, anticoagulant potentiation and platelet inhibition",
        mechanism="Gastric mucosal injury and displacement from plasma proteins",
        management="Avoid; prefer paracetamol. If unavoidable add a PPI and monitor INR closely",
        evidence="A",
        representative_pair=("warfarin", "ibuprofen"),
    ),
    InteractionRule(
        rule_id="DI002",
        drugs=("warfarin", "aspirin"),
        severity=S.MAJOR,
        description="Major bleeding risk, mainly gastrointestinal",
        mechanism="Antiplatelet effect added to anticoagulation",
        management="Avoid unless specifically indicated; add a PPI and monitor for bleeding",
        evidence="A",
        representative_pair=("Coumadine", "Aspirine 100mg"),
    ),
    InteractionRule(
        rule_id="DI003",
        drugs=("warfarin", "ciprofloxacin"),
        severity=S.MAJOR,
        description="Raised INR with bleeding risk",
        mechanism="CYP1A2 and CYP3A4 inhibition",
        management="Check INR 48-72h after starting the antibiotic, then weekly",
        evidence="B",
        representative_pair=("warfarin", "ciprofloxacin"),
    ),
    InteractionRule(
        rule_id="DI004",
        drugs=("warfarin", "metronidazole"),
        severity=S.MAJOR,
        description="Marked warfarin potentiation; INR may double",
        mechanism="CYP2C9 inhibition",
        management="Pre-emptively reduce warfarin by 25-50% and check INR on day 2",
        evidence="A",
        representative_pair=("warfarin", "metronidazole"),
    ),
    InteractionRule(
        rule_id="DI005",
        drugs=("warfarin", "amiodarone"),
        severity=S.MAJOR,
        description="Progressive INR rise over several weeks",
        mechanism="CYP2C9 and CYP3A4 inhibition",
        management="Reduce warfarin by 30-50% and monitor INR weekly for two months",
        evidence="A",
        representative_pair=("warfarin", "cordarone"),
    ),
    InteractionRule(
        rule_id="DI006",
        drugs=("warfarin", "macrolide"),
        severity=S.MAJOR,
        description="Raised INR with bleeding risk",
        mechanism="CYP3A4 inhibition",
        management="Check INR within 3-5 days of starting the macrolide",
        evidence="B",
        representative_pair=("warfarin", "clarithromycin"),
    ),
    InteractionRule(
        rule_id="DI007",
        drugs=("warfarin", "amoxicillin"),
        severity=S.MODERATE,
        description="Possible moderate INR rise",
        mechanism="Altered gut flora reduces vitamin K production",
        management="Control INR on day 7",
        evidence="C",
        representative_pair=("warfarin", "amoxicillin"),
    ),
    InteractionRule(
        rule_id="DI008",
        drugs=("warfarin", "paracetamol"),
        severity=S.MODERATE,
        description="INR rise with paracetamol above 2 g/day for more than a week",
        mechanism="Not fully elucidated",
        management="Control INR when paracetamol is taken regularly",
        evidence="B",
        representative_pair=("warfarin", "paracetamol"),
    ),
    InteractionRule(
        rule_id="DI009",
        drugs=("doac", "nsaid"),
        severity=S.MAJOR,
        description="Increased bleeding risk with direct oral anticoagulants",
        mechanism="Additive anticoagulant effect and mucosal injury",
        management="Prefer paracetamol. If an NSAID is required use the shortest course",
        evidence="B",
        representative_pair=("dabigatran", "diclofenac"),
    ),
    InteractionRule(
        rule_id="DI010",
        drugs=("rivaroxaban", "clarithromycin"),
        severity=S.MAJOR,
        description="Raised rivaroxaban exposure with over-anticoagulation",
        mechanism="CYP3A4 and P-glycoprotein inhibition",
        management="Avoid; azithromycin is an alternative",
        evidence="B",
        representative_pair=("Xarelto", "clarithromycin"),
    ),

    # Antibiotics
    InteractionRule(
        rule_id="DI011",
        drugs=("macrolide", "statin"),
        severity=S.MAJOR,
        description="Potentially fatal rhabdomyolysis",
        mechanism="CYP3A4 inhibition with statin accumulation",
        management="Stop the statin during the macrolide course; resume 48h after the last dose",
        evidence="A",
        representative_pair=("clarithromycin", "simvastatin"),
    ),
    InteractionRule(
        rule_id="DI012",
        drugs=("fluoroquinolone", "corticosteroid"),
        severity=S.MAJOR,
        description="Tendon rupture, Achilles tendon most often; risk increased sixfold",
        mechanism="Additive tendon toxicity",
        management="Avoid. Warn the patient to stop at the first tendon pain",
        evidence="A",
        representative_pair=("levofloxacin", "prednisolone"),
    ),
    InteractionRule(
        rule_id="DI013",
        drugs=("metronidazole", "alcohol"),
        severity=S.MAJOR,
        description="Severe disulfiram-like reaction",
        mechanism="Aldehyde dehydrogenase inhibition",
        management="No alcohol during treatment and for 48h after",
        evidence="B",
        representative_pair=("flagyl", "alcohol"),
    ),
    InteractionRule(
        rule_id="DI014",
        drugs=("fluoroquinolone", "theophylline"),
        severity=S.MAJOR,
        description="Theophylline toxicity with seizures and arrhythmias",
        mechanism="CYP1A2 inhibition",
        management="Halve the theophylline dose and measure theophylline levels",
        evidence="A",
        representative_pair=("ciprofloxacin", "theophylline"),
    ),
    InteractionRule(
        rule_id="DI015",
        drugs=("tetracycline", "polyvalent_cation"),
        severity=S.MODERATE,
        description="Chelation reduces tetracycline absorption by 50-90%",
        mechanism="Insoluble complex formation",
        management="Take the tetracycline 2h before or 4h after the supplement",
        evidence="B",
        representative_pair=("doxycycline", "ferrous sulfate"),
    ),
    InteractionRule(
        rule_id="DI016",
        drugs=("aminoglycoside", "loop_diuretic"),
        severity=S.MAJOR,
        description="Synergistic ototoxicity and nephrotoxicity",
        mechanism="Additive cellular toxicity",
        management="Daily renal function and aminoglycoside levels",
        evidence="B",
        representative_pair=("gentamicin", "furosemide"),
    ),

    # Cardiovascular
    InteractionRule(
        rule_id="DI017",
        drugs=("ace_inhibitor", "nsaid"),
        severity=S.MAJOR,
        description="Acute kidney injury; risk tripled",
        mechanism="Efferent arteriole dilatation combined with afferent constriction",
        management="Avoid. If unavoidable check creatinine before and at day 3-5 and keep hydrated",
        evidence="A",
        representative_pair=("ramipril", "ibuprofen"),
    ),
    InteractionRule(
        rule_id="DI018",
        drugs=("arb", "nsaid"),
        severity=S.MAJOR,
        description="Acute kidney injury, as with ACE inhibitors",
        mechanism="Loss of renal autoregulation",
        management="Avoid. If unavoidable check creatinine before and at day 3-5",
        evidence="A",
        representative_pair=("losartan", "naproxen"),
    ),
    InteractionRule(
        rule_id="DI019",
        drugs=("beta_blocker", "non_dhp_calcium_channel_blocker"),
        severity=S.MAJOR,
        description="Complete heart block and extreme bradycardia",
        mechanism="Combined negative chronotropic and dromotropic effects",
        management="Do not combine. If already co-prescribed, monitor ECG in hospital",
        evidence="A",
        representative_pair=("metoprolol", "verapamil"),
    ),
    InteractionRule(
        rule_id="DI020",
        drugs=("digoxin", "loop_diuretic"),
        severity=S.MODERATE,
        description="Digitalis toxicity through hypokalaemia",
        mechanism="Diuretic-induced potassium loss",
        management="Supplement potassium below 3.5 mmol/L; measure digoxin if symptomatic",
        evidence="B",
        representative_pair=("digoxin", "furosemide"),
    ),
    InteractionRule(
        rule_id="DI021",
        drugs=("digoxin", "amiodarone"),
        severity=S.MAJOR,
        description="Digoxin levels double with risk of toxicity",
        mechanism="P-glycoprotein inhibition and reduced renal clearance",
        management="Halve the digoxin dose and measure the level on day 7",
        evidence="A",
        representative_pair=("digoxin", "amiodarone"),
    ),
    InteractionRule(
        rule_id="DI022",
        drugs=("amiodarone", "statin"),
        severity=S.MAJOR,
        description="Myopathy and rhabdomyolysis",
        mechanism="CYP3A4 inhibition",
        management="Simvastatin 20 mg maximum; prefer rosuvastatin",
        evidence="B",
        representative_pair=("amiodarone", "simvastatin"),
    ),
    InteractionRule(
        rule_id="DI023",
        drugs=("lithium", "diuretic"),
        severity=S.MAJOR,
        description="Potentially fatal lithium toxicity",
        mechanism="Sodium depletion reduces lithium clearance",
        management="Avoid. If unavoidable measure lithium weekly",
        evidence="A",
        representative_pair=("lithium", "hydrochlorothiazide"),
    ),
    InteractionRule(
        rule_id="DI024",
        drugs=("nsaid", "diuretic"),
        severity=S.MODERATE,
        description="Reduced diuretic efficacy and acute kidney injury risk",
        mechanism="NSAID-induced sodium and water retention",
        management="Monitor weight, blood pressure and creatinine",
        evidence="B",
        representative_pair=("ibuprofen", "furosemide"),
    ),
    InteractionRule(
        rule_id="DI025",
        drugs=("spironolactone", "ace_inhibitor"),
        severity=S.MAJOR,
        description="Severe hyperkalaemia with risk of fatal arrhythmia",
        mechanism="Combined potassium retention",
        management="Potassium at baseline, day 3-5 and monthly; no potassium supplements",
        evidence="A",
        representative_pair=("spironolactone", "ramipril"),
    ),
    InteractionRule(
        rule_id="DI026",
        drugs=("spironolactone", "potassium_chloride"),
        severity=S.MAJOR,
        description="Severe hyperkalaemia",
        mechanism="Potassium intake with a potassium-sparing diuretic",
        management="Avoid potassium supplements unless hypokalaemia is documented",
        evidence="B",
        representative_pair=("aldactone", "potassium chloride"),
    ),
    InteractionRule(
        rule_id="DI027",
        drugs=("ace_inhibitor", "potassium_chloride"),
        severity=S.MODERATE,
        description="Hyperkalaemia",
        mechanism="Reduced aldosterone with added potassium intake",
        management="Monitor potassium; stop supplements when above 5.0 mmol/L",
        evidence="B",
        representative_pair=("lisinopril", "potassium chloride"),
    ),
    InteractionRule(
        rule_id="DI028",
        drugs=("simvastatin", "amlodipine"),
        severity=S.MODERATE,
        description="Raised simvastatin exposure with myopathy risk",
        mechanism="Weak CYP3A4 inhibition by amlodipine",
        management="Limit simvastatin to 20 mg daily",
        evidence="B",
        representative_pair=("simvastatin", "amlodipine"),
    ),

    # Central nervous system
    InteractionRule(
        rule_id="DI029",
        drugs=("ssri", "tramadol"),
        severity=S.MAJOR,
        description="Potentially fatal serotonin syndrome",
        mechanism="Serotonin excess: rigidity, hyperthermia, confusion, seizures",
        management="Avoid; prefer paracetamol. Stop both at the first sign",
        evidence="B",
        representative_pair=("sertraline", "tramadol"),
    ),
    InteractionRule(
        rule_id="DI030",
        drugs=("ssri", "nsaid"),
        severity=S.MAJOR,
        description="Upper GI bleeding; risk increased fourfold",
        mechanism="SSRIs deplete platelet serotonin",
        management="Systematic PPI if the combination is needed",
        evidence="A",
        representative_pair=("citalopram", "ibuprofen"),
    ),
    InteractionRule(
        rule_id="DI031",
        drugs=("ssri", "aspirin"),
        severity=S.MODERATE,
        description="Increased GI bleeding risk",
        mechanism="Combined platelet inhibition",
        management="Consider a PPI, especially in older adults",
        evidence="B",
        representative_pair=("fluoxetine", "aspirin"),
    ),
    InteractionRule(
        rule_id="DI032",
        drugs=("maoi", "ssri"),
        severity=S.CONTRAINDICATED,
        description="Fatal serotonin syndrome",
        mechanism="Massive serotonin excess",
        management="Never combine. Allow 14 days between an MAOI and an SSRI",
        evidence="A",
        representative_pair=("phenelzine", "fluoxetine"),
    ),
    InteractionRule(
        rule_id="DI033",
        drugs=("linezolid", "ssri"),
        severity=S.CONTRAINDICATED,
        description="Serotonin syndrome",
        mechanism="Linezolid is a reversible MAO inhibitor",
        management="Do not combine; if linezolid is essential stop the SSRI and monitor",
        evidence="B",
        representative_pair=("linezolid", "escitalopram"),
    ),
    InteractionRule(
        rule_id="DI034",
        drugs=("benzodiazepine", "opioid"),
        severity=S.MAJOR,
        description="Respiratory depression and death",
        mechanism="Synergistic CNS depression",
        management="Avoid. If unavoidable use minimal doses under supervision",
        evidence="A",
        representative_pair=("diazepam", "morphine"),
    ),
    InteractionRule(
        rule_id="DI035",
        drugs=("tricyclic_antidepressant", "first_gen_antihistamine"),
        severity=S.MODERATE,
        description="Anticholinergic syndrome: confusion, urinary retention, ileus",
        mechanism="Additive anticholinergic effect",
        management="Clinical monitoring; use alternatives where possible",
        evidence="C",
        representative_pair=("amitriptyline", "diphenhydramine"),
    ),

    # Metabolic and endocrine
    InteractionRule(
        rule_id="DI036",
        drugs=("metformin", "iodinated_contrast"),
        severity=S.MAJOR,
        description="Lactic acidosis with high mortality",
        mechanism="Contrast-induced acute kidney injury",
        management="Stop metformin 48h before and after; resume when creatinine is normal",
        evidence="A",
        representative_pair=("metformin", "iodinated contrast"),
    ),
    InteractionRule(
        rule_id="DI037",
        drugs=("sulfonylurea", "clarithromycin"),
        severity=S.MAJOR,
        description="Severe prolonged hypoglycaemia",
        mechanism="CYP3A4 inhibition with sulfonylurea accumulation",
        management="Close glucose monitoring; reduce the sulfonylurea dose",
        evidence="B",
        representative_pair=("gliclazide", "clarithromycin"),
    ),
    InteractionRule(
        rule_id="DI038",
        drugs=("sulfonylurea", "fluconazole"),
        severity=S.MAJOR,
        description="Severe prolonged hypoglycaemia",
        mechanism="CYP2C9 inhibition with sulfonylurea accumulation",
        management="Close glucose monitoring; reduce the sulfonylurea dose",
        evidence="B",
        representative_pair=("glibenclamide", "fluconazole"),
    ),
    InteractionRule(
        rule_id="DI039",
        drugs=("levothyroxine", "polyvalent_cation"),
        severity=S.MODERATE,
        description="Reduced levothyroxine absorption and hypothyroidism",
        mechanism="Chelation in the GI tract",
        management="Levothyroxine fasting in the morning; supplement at least 4h later",
        evidence="B",
        representative_pair=("levothyroxine", "calcium carbonate"),
    ),
    InteractionRule(
        rule_id="DI040",
        drugs=("levothyroxine", "ppi"),
        severity=S.MINOR,
        description="Slightly reduced levothyroxine absorption",
        mechanism="Raised gastric pH",
        management="Recheck TSH 6-8 weeks after starting a long-term PPI",
        evidence="C",
        representative_pair=("levothyrox", "omeprazole"),
    ),
    InteractionRule(
        rule_id="DI041",
        drugs=("corticosteroid", "nsaid"),
        severity=S.MAJOR,
        description="Peptic ulcer and GI bleeding; risk increased fifteenfold",
        mechanism="Synergistic gastric mucosal toxicity",
        management="Avoid. If required give a high-dose PPI",
        evidence="A",
        representative_pair=("prednisolone", "ibuprofen"),
    ),
    InteractionRule(
        rule_id="DI042",
        drugs=("corticosteroid", "live_vaccine"),
        severity=S.CONTRAINDICATED,
        description="Potentially fatal disseminated vaccine infection",
        mechanism="Immunosuppression lets the vaccine strain replicate",
        management="No live vaccines with corticosteroids above 20 mg/day for more than 2 weeks",
        evidence="A",
        representative_pair=("prednisone", "yellow fever vaccine"),
    ),

    # Gastrointestinal
    InteractionRule(
        rule_id="DI043",
        drugs=("ppi", "clopidogrel"),
        severity=S.MAJOR,
        description="Reduced antiplatelet effect with infarction risk",
        mechanism="CYP2C19 inhibition prevents clopidogrel activation",
        management="Avoid omeprazole and esomeprazole; prefer pantoprazole",
        evidence="B",
        representative_pair=("omeprazole", "clopidogrel"),
    ),
    InteractionRule(
        rule_id="DI044",
        drugs=("metoclopramide", "antipsychotic"),
        severity=S.MAJOR,
        description="Severe, possibly irreversible extrapyramidal syndrome",
        mechanism="Combined dopamine blockade",
        management="Avoid; domperidone is an alternative",
        evidence="C",
        representative_pair=("metoclopramide", "haloperidol"),
    ),

    # Immunology
    InteractionRule(
        rule_id="DI045",
        drugs=("azathioprine", "allopurinol"),
        severity=S.MAJOR,
        description="Fatal bone marrow toxicity",
        mechanism="Xanthine oxidase inhibition leads to azathioprine accumulation",
        management="Reduce azathioprine by 75% if allopurinol is essential",
        evidence="A",
        representative_pair=("azathioprine", "allopurinol"),
    ),
    InteractionRule(
        rule_id="DI046",
        drugs=("methotrexate", "trimethoprim"),
        severity=S.MAJOR,
        description="Severe bone marrow toxicity",
        mechanism="Dual folate antagonism",
        management="Avoid. Monitor full blood count if the combination cannot be avoided",
        evidence="B",
        representative_pair=("methotrexate", "bactrim"),
    ),

    # Respiratory
    InteractionRule(
        rule_id="DI047",
        drugs=("theophylline", "tobacco"),
        severity=S.MODERATE,
        description="Lower theophylline levels and loss of efficacy",
        mechanism="CYP1A2 induction by tobacco smoke",
        management="Adjust the dose on theophylline levels, and again if the patient stops smoking",
        evidence="B",
        representative_pair=("theophylline", "smoking"),
    ),
)
