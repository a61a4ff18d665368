"""Canonical substance registry.

Maps canonical substance ids (DCI, lowercase) to their brand, generic and
French spellings, and groups substances into drug classes. Interaction rules,
dose tables and protocols name substances or classes by id; the resolver
expands those ids into every alias so that free-text medication names can be
matched without each table repeating brand lists.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple


@dataclass(frozen=True)
class Substance:
    """A canonical drug substance.

    Attributes:
        substance_id: Canonical id (DCI, lowercase)
        display_name: Human-readable name
        aliases: Brand names, alternative spellings, French names
        classes: Drug class ids this substance belongs to
    """

    substance_id: str
    display_name: str
    aliases: Tuple[str, ...] = ()
    classes: Tuple[str, ...] = ()

    @property
    def all_names(self) -> Tuple[str, ...]:
        """Canonical id plus every alias, lowercase."""
        names = [self.substance_id.replace("_", " ")] + [a.lower() for a in self.aliases]
        return tuple(dict.fromkeys(names))


@dataclass(frozen=True)
class DrugClass:
    """A pharmacological class grouping several substances."""

    class_id: str
    display_name: str
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def all_names(self) -> Tuple[str, ...]:
        names = [self.class_id.replace("_", " ")] + [a.lower() for a in self.aliases]
        return tuple(dict.fromkeys(names))


def _s(substance_id: str, aliases: Tuple[str, ...] = (), classes: Tuple[str, ...] = ()) -> Substance:
    return Substance(
        substance_id=substance_id,
        display_name=substance_id.replace("_", " ").title(),
        aliases=aliases,
        classes=classes,
    )


DRUG_CLASSES: Dict[str, DrugClass] = {
    c.class_id: c
    for c in [
        DrugClass("nsaid", "NSAIDs", ("nsaids", "ains", "anti-inflammatoire non stéroïdien")),
        DrugClass("antiplatelet", "Antiplatelet agents", ("antiplatelets", "antiagrégant")),
        DrugClass("vitamin_k_antagonist", "Vitamin K antagonists", ("vka", "avk")),
        DrugClass("doac", "Direct oral anticoagulants", ("doacs", "noac", "aod")),
        DrugClass("lmwh", "Low molecular weight heparins", ("low molecular weight heparin", "hbpm")),
        DrugClass("statin", "Statins", ("statins", "statine", "statines")),
        DrugClass("macrolide", "Macrolides", ("macrolides",)),
        DrugClass("fluoroquinolone", "Fluoroquinolones", ("fluoroquinolones", "quinolone", "quinolones")),
        DrugClass("tetracycline", "Tetracyclines", ("tetracyclines", "tétracyclines")),
        DrugClass("aminoglycoside", "Aminoglycosides", ("aminoglycosides", "aminosides")),
        DrugClass("penicillin", "Penicillins", ("penicillins", "pénicillines")),
        DrugClass("azole_antifungal", "Azole antifungals", ("azoles", "azole antifungal")),
        DrugClass("ace_inhibitor", "ACE inhibitors", ("ace inhibitor", "ace inhibitors", "ace-inhibitor", "acei", "iec")),
        DrugClass("arb", "Angiotensin receptor blockers", ("ara2", "sartan", "sartans", "angiotensin receptor blocker")),
        DrugClass("beta_blocker", "Beta blockers", ("beta-blocker", "beta-blockers", "beta blocker", "bêta-bloquant", "bêta-bloquants")),
        DrugClass("non_dhp_calcium_channel_blocker", "Non-dihydropyridine calcium channel blockers", ("non-dihydropyridine",)),
        DrugClass("calcium_channel_blocker", "Calcium channel blockers", ("calcium channel blocker", "calcium channel blockers")),
        DrugClass("diuretic", "Diuretics", ("diuretics", "diurétique", "diurétiques")),
        DrugClass("loop_diuretic", "Loop diuretics", ("loop diuretic", "loop diuretics")),
        DrugClass("thiazide", "Thiazide diuretics", ("thiazides", "thiazidique")),
        DrugClass("ssri", "Selective serotonin reuptake inhibitors", ("ssris", "isrs")),
        DrugClass("maoi", "Monoamine oxidase inhibitors", ("maois", "imao")),
        DrugClass("opioid", "Opioids", ("opioids", "opioïdes", "opiates")),
        DrugClass("benzodiazepine", "Benzodiazepines", ("benzodiazepines", "benzodiazépines")),
        DrugClass("tricyclic_antidepressant", "Tricyclic antidepressants", ("tricyclic", "tricyclics", "tricycliques")),
        DrugClass("first_gen_antihistamine", "First-generation antihistamines", ("first-generation antihistamine", "first-generation antihistamines")),
        DrugClass("anticholinergic", "Anticholinergics", ("anticholinergics", "anticholinergiques")),
        DrugClass("antipsychotic", "Antipsychotics", ("antipsychotics", "antipsychotiques", "neuroleptique")),
        DrugClass("biguanide", "Biguanides", ("biguanides",)),
        DrugClass("sulfonylurea", "Sulfonylureas", ("sulfonylureas", "sulfamides hypoglycémiants")),
        DrugClass("corticosteroid", "Corticosteroids", ("corticosteroids", "corticoïdes", "corticothérapie")),
        DrugClass("ppi", "Proton pump inhibitors", ("ppis", "ipp", "proton pump inhibitor")),
        DrugClass("polyvalent_cation", "Polyvalent cation supplements", ("antacid", "antacids", "antiacide", "antiacides")),
        DrugClass("retinoid", "Systemic retinoids", ("retinoids", "rétinoïdes")),
        DrugClass("antiepileptic", "Antiepileptics", ("antiepileptics", "antiépileptiques")),
    ]
}


SUBSTANCES: Dict[str, Substance] = {
    s.substance_id: s
    for s in [
        # Anticoagulants and antiplatelets
        _s("warfarin", ("warfarine", "coumadin", "coumadine", "jantoven"), ("vitamin_k_antagonist",)),
        _s("dabigatran", ("pradaxa",), ("doac",)),
        _s("rivaroxaban", ("xarelto",), ("doac",)),
        _s("apixaban", ("eliquis",), ("doac",)),
        _s("enoxaparin", ("enoxaparine", "lovenox", "clexane"), ("lmwh",)),
        _s("heparin", ("héparine", "unfractionated heparin"), ()),
        _s("aspirin", ("aspirine", "acetylsalicylic acid", "acide acétylsalicylique", "kardegic", "aspegic"), ("antiplatelet",)),
        _s("clopidogrel", ("plavix",), ("antiplatelet",)),
        _s("ticagrelor", ("brilinta", "brilique"), ("antiplatelet",)),

        # NSAIDs
        _s("ibuprofen", ("ibuprofène", "advil", "nurofen", "motrin", "brufen"), ("nsaid",)),
        _s("diclofenac", ("diclofénac", "voltaren", "cataflam"), ("nsaid",)),
        _s("naproxen", ("naproxène", "aleve", "naprosyn"), ("nsaid",)),
        _s("celecoxib", ("célécoxib", "celebrex"), ("nsaid",)),
        _s("indomethacin", ("indométacine", "indocid"), ("nsaid",)),
        _s("ketorolac", ("toradol",), ("nsaid",)),
        _s("ketoprofen", ("kétoprofène", "profenid"), ("nsaid",)),

        # Anti-infectives
        _s("ciprofloxacin", ("ciprofloxacine", "cipro", "ciflox"), ("fluoroquinolone",)),
        _s("levofloxacin", ("lévofloxacine", "levaquin", "tavanic"), ("fluoroquinolone",)),
        _s("metronidazole", ("métronidazole", "flagyl"), ()),
        _s("amoxicillin", ("amoxicilline", "amoxil", "clamoxyl"), ("penicillin",)),
        _s("clarithromycin", ("clarithromycine", "biaxin", "zeclar"), ("macrolide",)),
        _s("erythromycin", ("érythromycine", "erythromycine"), ("macrolide",)),
        _s("azithromycin", ("azithromycine", "zithromax"), ("macrolide",)),
        _s("doxycycline", ("vibramycin", "doxy"), ("tetracycline",)),
        _s("gentamicin", ("gentamicine",), ("aminoglycoside",)),
        _s("linezolid", ("zyvox",), ()),
        _s("trimethoprim", ("triméthoprime", "bactrim", "septra", "cotrimoxazole"), ()),
        _s("fluconazole", ("triflucan", "diflucan"), ("azole_antifungal",)),

        # Cardiovascular
        _s("simvastatin", ("simvastatine", "zocor"), ("statin",)),
        _s("atorvastatin", ("atorvastatine", "lipitor", "tahor"), ("statin",)),
        _s("rosuvastatin", ("rosuvastatine", "crestor"), ("statin",)),
        _s("amlodipine", ("norvasc", "amlor"), ("calcium_channel_blocker",)),
        _s("verapamil", ("vérapamil", "isoptin"), ("calcium_channel_blocker", "non_dhp_calcium_channel_blocker")),
        _s("diltiazem", ("tildiem",), ("calcium_channel_blocker", "non_dhp_calcium_channel_blocker")),
        _s("propranolol", ("avlocardyl", "inderal"), ("beta_blocker",)),
        _s("metoprolol", ("métoprolol", "lopressor", "seloken"), ("beta_blocker",)),
        _s("bisoprolol", ("cardensiel", "concor"), ("beta_blocker",)),
        _s("atenolol", ("aténolol", "tenormin"), ("beta_blocker",)),
        _s("digoxin", ("digoxine", "lanoxin"), ()),
        _s("amiodarone", ("cordarone",), ()),
        _s("ramipril", ("triatec", "altace"), ("ace_inhibitor",)),
        _s("enalapril", ("renitec",), ("ace_inhibitor",)),
        _s("lisinopril", ("zestril", "prinivil"), ("ace_inhibitor",)),
        _s("perindopril", ("périndopril", "coversyl"), ("ace_inhibitor",)),
        _s("losartan", ("cozaar",), ("arb",)),
        _s("valsartan", ("tareg", "diovan"), ("arb",)),
        _s("spironolactone", ("aldactone",), ("diuretic",)),
        _s("furosemide", ("furosémide", "frusemide", "lasix"), ("diuretic", "loop_diuretic")),
        _s("hydrochlorothiazide", ("hctz", "esidrex"), ("diuretic", "thiazide")),
        _s("potassium_chloride", ("potassium", "kcl", "diffu-k"), ()),

        # Neuro / psychiatry
        _s("lithium", ("teralithe",), ()),
        _s("sertraline", ("zoloft",), ("ssri",)),
        _s("fluoxetine", ("fluoxétine", "prozac"), ("ssri",)),
        _s("citalopram", ("seropram", "celexa"), ("ssri",)),
        _s("escitalopram", ("seroplex", "lexapro"), ("ssri",)),
        _s("paroxetine", ("paroxétine", "deroxat", "paxil"), ("ssri",)),
        _s("phenelzine", ("nardil",), ("maoi",)),
        _s("moclobemide", ("moclamine",), ("maoi",)),
        _s("tramadol", ("topalgic", "contramal", "ultram"), ("opioid",)),
        _s("morphine", ("skenan", "ms contin"), ("opioid",)),
        _s("codeine", ("codéine",), ("opioid",)),
        _s("oxycodone", ("oxycontin",), ("opioid",)),
        _s("diazepam", ("valium",), ("benzodiazepine",)),
        _s("lorazepam", ("ativan", "temesta"), ("benzodiazepine",)),
        _s("alprazolam", ("xanax",), ("benzodiazepine",)),
        _s("amitriptyline", ("laroxyl", "elavil"), ("tricyclic_antidepressant", "anticholinergic")),
        _s("diphenhydramine", ("benadryl",), ("first_gen_antihistamine", "anticholinergic")),
        _s("haloperidol", ("haldol",), ("antipsychotic",)),
        _s("metoclopramide", ("métoclopramide", "primperan", "reglan"), ()),
        _s("gabapentin", ("gabapentine", "neurontin"), ("antiepileptic",)),
        _s("valproate", ("valproic acid", "acide valproïque", "depakine", "depakote"), ("antiepileptic",)),

        # Endocrine / metabolic
        _s("metformin", ("metformine", "glucophage", "stagid"), ("biguanide",)),
        _s("gliclazide", ("diamicron",), ("sulfonylurea",)),
        _s("glibenclamide", ("glyburide", "daonil"), ("sulfonylurea",)),
        _s("levothyroxine", ("lévothyroxine", "levothyrox", "synthroid"), ()),
        _s("iron", ("ferrous sulfate", "ferrous", "sulfate ferreux", "fer", "tardyferon"), ("polyvalent_cation",)),
        _s("calcium", ("calcium carbonate", "carbonate de calcium"), ("polyvalent_cation",)),
        _s("prednisolone", ("solupred",), ("corticosteroid",)),
        _s("prednisone", ("cortancyl",), ("corticosteroid",)),
        _s("dexamethasone", ("dexaméthasone", "decadron"), ("corticosteroid",)),
        _s("isotretinoin", ("isotrétinoïne", "roaccutane", "accutane"), ("retinoid",)),

        # Gastro / respiratory / other
        _s("omeprazole", ("oméprazole", "mopral", "prilosec"), ("ppi",)),
        _s("esomeprazole", ("ésoméprazole", "inexium", "nexium"), ("ppi",)),
        _s("theophylline", ("théophylline",), ()),
        _s("azathioprine", ("imurel", "imuran"), ()),
        _s("allopurinol", ("zyloric", "zyloprim"), ()),
        _s("methotrexate", ("méthotrexate", "novatrex", "trexall"), ()),
        _s("paracetamol", ("paracétamol", "acetaminophen", "doliprane", "efferalgan", "tylenol", "panadol"), ()),
        _s("iodinated_contrast", ("contrast medium", "iodinated contrast", "contraste iodé", "iohexol"), ()),
        _s("live_vaccine", ("live vaccine", "live attenuated vaccine", "vaccin vivant", "bcg", "mmr", "yellow fever vaccine"), ()),
        _s("alcohol", ("ethanol", "alcool"), ()),
        _s("tobacco", ("smoking", "tabac", "cigarettes"), ()),
    ]
}


def substances_in_class(class_id: str) -> Tuple[Substance, ...]:
    """All registry substances that belong to a class."""
    return tuple(s for s in SUBSTANCES.values() if class_id in s.classes)


_DOSE_PATTERN = re.compile(
    r"\b\d+(?:[.,]\d+)?\s*(?:mg|g|mcg|µg|μg|ug|ml|ui|iu|mmol)(?:\s*/\s*[a-z0-9]+)?\b"
)
_FORM_SUFFIX = re.compile(
    r"\s*(tablets?|capsules?|pills?|comprimes?|gelules?|mg|ml|solution|suspension)\s*$"
)


def normalize_name(name: str) -> str:
    """Normalize a medication name for comparison.

    Lowercase, accents stripped, doses and dosage-form suffixes removed,
    whitespace collapsed.
    """
    text = unicodedata.normalize("NFKD", str(name or ""))
    text = "".join(c for c in text if not unicodedata.combining(c)).lower().strip()
    text = _DOSE_PATTERN.sub(" ", text)
    text = re.sub(r"\s+", " ", text).strip()
    text = _FORM_SUFFIX.sub("", text)
    return text.strip()


def expand_token(
    token: str,
    substances: Mapping[str, Substance] = SUBSTANCES,
    drug_classes: Mapping[str, DrugClass] = DRUG_CLASSES,
) -> Tuple[str, ...]:
    """Every normalized alias of the substance or class a token names.

    A class expands to its own aliases plus those of every member substance.
    Unknown tokens expand to themselves.
    """
    key = token.strip().lower()
    names: list = []

    def add_class(drug_class: DrugClass) -> None:
        names.extend(drug_class.all_names)
        for s in substances.values():
            if drug_class.class_id in s.classes:
                names.extend(s.all_names)

    if key in substances:
        names.extend(substances[key].all_names)
    elif key in drug_classes:
        add_class(drug_classes[key])
    else:
        normalized = normalize_name(key)
        for s in substances.values():
            if normalized in (normalize_name(n) for n in s.all_names):
                names.extend(s.all_names)
        for c in drug_classes.values():
            if normalized in (normalize_name(n) for n in c.all_names):
                add_class(c)
        if not names:
            names.append(key)

    return tuple(dict.fromkeys(n for n in (normalize_name(n) for n in names) if n))
