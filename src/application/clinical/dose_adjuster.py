"""Dose Adjustment Calculator.

Renal, hepatic, geriatric, weight and pregnancy advisories for one drug
given whatever patient data is available. Each check runs only when its
inputs are present; a missing value skips the check instead of being
guessed.

Every advisory carries a `dose_factor` in [0, 1]: the largest fraction of the
standard dose the instruction permits. When a numeric standard dose is
supplied the adjusted dose is that dose times the factor, so an advisory can
never raise a dose.
"""

import logging
import math
from typing import List, Optional

from application.clinical.numeric import round_half_up, round_int
from application.clinical.substance_resolver import (
    SubstanceMatch,
    SubstanceResolver,
    get_substance_resolver,
)
from config.engine_config import DoseConfig, get_engine_config
from domain.clinical_errors import ClinicalValidationError
from domain.dose_models import (
    AdjustmentSeverity,
    AdjustmentType,
    Ascites,
    ChildPughClass,
    ChildPughScore,
    DoseAdjustment,
    DoseInstruction,
    Encephalopathy,
    PatientDoseProfile,
    PregnancyCategory,
    RenalEstimateMethod,
    RenalFunction,
    Sex,
)
from domain.knowledge_base import ClinicalKnowledgeBase, get_knowledge_base

logger = logging.getLogger(__name__)

CREATININE_UMOL_PER_MG_DL = 88.4


# ========================================
# Formulas
# ========================================

def cockcroft_gault(creatinine_umol_l: float, age: float, weight_kg: float, sex: Sex) -> int:
    """Creatinine clearance in ml/min from creatinine in umol/L."""
    if creatinine_umol_l <= 0:
        raise ClinicalValidationError("Creatinine must be positive", field="serum_creatinine_umol_l", value=creatinine_umol_l)
    factor = 1.23 if Sex.parse(sex) == Sex.MALE else 1.04
    clearance = (140 - age) * weight_kg * factor / creatinine_umol_l
    return max(round_int(clearance), 0)


def ckd_epi_2021(creatinine_umol_l: float, age: float, sex: Sex) -> int:
    """eGFR in ml/min/1.73m2 by the race-free CKD-EPI 2021 equation."""
    if creatinine_umol_l <= 0:
        raise ClinicalValidationError("Creatinine must be positive", field="serum_creatinine_umol_l", value=creatinine_umol_l)
    female = Sex.parse(sex) == Sex.FEMALE
    kappa = 0.7 if female else 0.9
    alpha = -0.241 if female else -0.302
    ratio = (creatinine_umol_l / CREATININE_UMOL_PER_MG_DL) / kappa

    egfr = (
        142
        * math.pow(min(ratio, 1.0), alpha)
        * math.pow(max(ratio, 1.0), -1.200)
        * math.pow(0.9938, age)
        * (1.012 if female else 1.0)
    )
    return round_int(egfr)


_KDIGO_STAGES = (
    (90, "G1", "Normal or high", "No adjustment usually needed"),
    (60, "G2", "Mildly decreased", "Monitor; adjustments rarely needed"),
    (45, "G3a", "Mildly to moderately decreased", "Check dose adjustments for renally cleared drugs"),
    (30, "G3b", "Moderately to severely decreased", "DOSE ADJUSTMENTS REQUIRED; avoid nephrotoxic drugs"),
    (15, "G4", "Severely decreased", "MAJOR ADJUSTMENTS; nephrology referral; many drugs to avoid"),
    (0, "G5", "Kidney failure", "CRITICAL ADJUSTMENTS; nephrology opinion mandatory; dialysis likely"),
)


def classify_renal_function(
    egfr: float,
    method: RenalEstimateMethod = RenalEstimateMethod.MEASURED,
) -> RenalFunction:
    """KDIGO G-stage for an eGFR value."""
    if egfr < 0:
        raise ClinicalValidationError("eGFR cannot be negative", field="egfr", value=egfr)
    for lower, stage, label, recommendation in _KDIGO_STAGES:
        if egfr >= lower:
            return RenalFunction(egfr=egfr, method=method, stage=stage, label=label, recommendation=recommendation)
    raise AssertionError("unreachable: G5 covers every non-negative eGFR")


def calculate_child_pugh(
    bilirubin_mg_dl: float,
    albumin_g_dl: float,
    inr: float,
    ascites: Ascites,
    encephalopathy: Encephalopathy,
) -> ChildPughScore:
    """Child-Pugh score (5-15) and class from the five surrogate markers."""
    ascites = Ascites(ascites)
    encephalopathy = Encephalopathy(encephalopathy)

    score = 0
    score += 1 if bilirubin_mg_dl < 2 else 2 if bilirubin_mg_dl <= 3 else 3
    score += 1 if albumin_g_dl > 3.5 else 2 if albumin_g_dl >= 2.8 else 3
    score += 1 if inr < 1.7 else 2 if inr <= 2.3 else 3
    score += {Ascites.NONE: 1, Ascites.MILD: 2, Ascites.MODERATE: 3}[ascites]
    score += {Encephalopathy.NONE: 1, Encephalopathy.GRADE_1_2: 2, Encephalopathy.GRADE_3_4: 3}[encephalopathy]

    if score <= 6:
        child_class = ChildPughClass.A
    elif score <= 9:
        child_class = ChildPughClass.B
    else:
        child_class = ChildPughClass.C
    return ChildPughScore(score=score, child_pugh_class=child_class)


def _renal_severity(clearance: float) -> AdjustmentSeverity:
    if clearance >= 30:
        return AdjustmentSeverity.MODERATE
    if clearance >= 15:
        return AdjustmentSeverity.IMPORTANT
    return AdjustmentSeverity.CRITICAL


# ========================================
# Adjuster
# ========================================

class DoseAdjuster:
    """Computes dose advisories for a drug and a patient profile.

    Example:
        >>> adjuster = DoseAdjuster()
        >>> profile = PatientDoseProfile(age=80, sex="female", weight_kg=50,
        ...                              serum_creatinine_umol_l=180)
        >>> [a.adjustment_type.value for a in adjuster.adjust("metformin", profile)]
        ['renal']
    """

    def __init__(
        self,
        knowledge_base: Optional[ClinicalKnowledgeBase] = None,
        resolver: Optional[SubstanceResolver] = None,
        config: Optional[DoseConfig] = None,
    ):
        self.knowledge_base = knowledge_base or get_knowledge_base()
        self.resolver = resolver or get_substance_resolver()
        self.config = config or get_engine_config().dose
        self.tables = self.knowledge_base.dose_tables

    # Shared helpers

    def _matches(self, match: SubstanceMatch, tokens) -> bool:
        return any(self.resolver.matches_token(match, t) for t in tokens)

    @staticmethod
    def _build(
        drug: str,
        reason: str,
        instruction: DoseInstruction,
        adjustment_type: AdjustmentType,
        severity: AdjustmentSeverity,
        recommendation: str,
        original_dose: Optional[str],
        original_dose_mg: Optional[float],
        contraindicated: Optional[bool] = None,
        dose_factor: Optional[float] = None,
    ) -> DoseAdjustment:
        contraindicated = instruction.contraindicated if contraindicated is None else contraindicated
        factor = instruction.dose_factor if dose_factor is None else dose_factor
        if contraindicated:
            factor = 0.0
        factor = min(max(factor, 0.0), 1.0)

        adjusted_mg = None
        if original_dose_mg is not None:
            adjusted_mg = round_half_up(original_dose_mg * factor, 2)

        return DoseAdjustment(
            drug=drug,
            reason=reason,
            original_dose=original_dose or "Standard dose",
            adjusted_dose=instruction.text,
            adjustment_type=adjustment_type,
            severity=severity,
            recommendation=recommendation,
            contraindicated=contraindicated,
            dose_factor=factor,
            original_dose_mg=original_dose_mg,
            adjusted_dose_mg=adjusted_mg,
        )

    # Renal

    def estimate_renal_function(self, profile: PatientDoseProfile) -> Optional[RenalFunction]:
        """Measured eGFR, else Cockcroft-Gault, else CKD-EPI; None without inputs."""
        if profile.egfr is not None:
            return classify_renal_function(profile.egfr, RenalEstimateMethod.MEASURED)

        if profile.serum_creatinine_umol_l is None or profile.age is None or profile.sex is None:
            return None

        if profile.weight_kg is not None and not self.config.prefer_ckd_epi:
            clearance = cockcroft_gault(
                profile.serum_creatinine_umol_l, profile.age, profile.weight_kg, profile.sex
            )
            return classify_renal_function(clearance, RenalEstimateMethod.COCKCROFT_GAULT)

        egfr = ckd_epi_2021(profile.serum_creatinine_umol_l, profile.age, profile.sex)
        return classify_renal_function(egfr, RenalEstimateMethod.CKD_EPI)

    def adjust_renal(
        self,
        drug: str,
        clearance: float,
        original_dose: Optional[str] = None,
        original_dose_mg: Optional[float] = None,
        match: Optional[SubstanceMatch] = None,
    ) -> Optional[DoseAdjustment]:
        match = match or self.resolver.resolve(drug)
        for rule in self.tables.renal:
            if not self._matches(match, rule.drugs):
                continue
            band = rule.band_for(clearance)
            if band is None:
                return None
            return self._build(
                drug,
                f"Renal impairment (clearance {clearance:g} ml/min, below {band.below:g})",
                band.instruction,
                AdjustmentType.RENAL,
                _renal_severity(clearance),
                rule.monitoring,
                original_dose,
                original_dose_mg,
            )
        return None

    # Hepatic

    def resolve_child_pugh(self, profile: PatientDoseProfile) -> Optional[ChildPughClass]:
        if profile.child_pugh_class is not None:
            return profile.child_pugh_class
        if profile.has_hepatic_markers:
            return calculate_child_pugh(
                profile.bilirubin_mg_dl,
                profile.albumin_g_dl,
                profile.inr,
                profile.ascites,
                profile.encephalopathy,
            ).child_pugh_class
        return None

    def adjust_hepatic(
        self,
        drug: str,
        child_pugh: ChildPughClass,
        original_dose: Optional[str] = None,
        original_dose_mg: Optional[float] = None,
        match: Optional[SubstanceMatch] = None,
    ) -> Optional[DoseAdjustment]:
        child_pugh = ChildPughClass(child_pugh)
        if child_pugh == ChildPughClass.A:
            return None
        match = match or self.resolver.resolve(drug)
        for rule in self.tables.hepatic:
            if not self._matches(match, rule.drugs):
                continue
            if child_pugh == ChildPughClass.B:
                instruction, severity = rule.child_pugh_b, AdjustmentSeverity.IMPORTANT
            else:
                instruction, severity = rule.child_pugh_c, AdjustmentSeverity.CRITICAL
            return self._build(
                drug,
                f"Hepatic impairment (Child-Pugh {child_pugh.value})",
                instruction,
                AdjustmentType.HEPATIC,
                severity,
                rule.monitoring,
                original_dose,
                original_dose_mg,
            )
        return None

    # Geriatric

    def check_geriatric(
        self,
        drug: str,
        age: float,
        original_dose: Optional[str] = None,
        original_dose_mg: Optional[float] = None,
        match: Optional[SubstanceMatch] = None,
    ) -> Optional[DoseAdjustment]:
        if age < self.config.geriatric_age:
            return None
        match = match or self.resolver.resolve(drug)
        for rule in self.tables.geriatric:
            if not self._matches(match, rule.drugs):
                continue
            return self._build(
                drug,
                f"Patient aged {self.config.geriatric_age:g} or over (Beers criteria)",
                DoseInstruction(rule.recommendation, rule.dose_factor),
                AdjustmentType.GERIATRIC,
                AdjustmentSeverity.IMPORTANT,
                rule.alternative or "Consider alternatives",
                original_dose or "Standard adult dose",
                original_dose_mg,
                contraindicated=False,
            )
        return None

    # Weight

    def adjust_weight(
        self,
        drug: str,
        weight_kg: float,
        original_dose: Optional[str] = None,
        original_dose_mg: Optional[float] = None,
        match: Optional[SubstanceMatch] = None,
    ) -> Optional[DoseAdjustment]:
        if weight_kg <= 0:
            raise ClinicalValidationError("weight_kg must be positive", field="weight_kg", value=weight_kg)
        match = match or self.resolver.resolve(drug)
        for rule in self.tables.weight:
            if not self._matches(match, rule.drugs):
                continue
            if rule.min_weight_kg is not None and weight_kg < rule.min_weight_kg:
                reason = f"Body weight {weight_kg:g} kg below {rule.min_weight_kg:g} kg"
                instruction, severity = rule.below, AdjustmentSeverity.IMPORTANT
            elif rule.max_weight_kg is not None and weight_kg > rule.max_weight_kg:
                reason = f"Body weight {weight_kg:g} kg above {rule.max_weight_kg:g} kg"
                # Upper band caps the dose, never raises it
                instruction = DoseInstruction(rule.above.text, min(rule.above.dose_factor, 1.0))
                severity = AdjustmentSeverity.MODERATE
            else:
                return None
            return self._build(
                drug, reason, instruction, AdjustmentType.WEIGHT, severity,
                rule.monitoring, original_dose, original_dose_mg,
            )
        return None

    # Pregnancy

    def check_pregnancy(
        self,
        drug: str,
        original_dose: Optional[str] = None,
        original_dose_mg: Optional[float] = None,
        match: Optional[SubstanceMatch] = None,
    ) -> Optional[DoseAdjustment]:
        match = match or self.resolver.resolve(drug)
        for rule in self.tables.pregnancy:
            if not self._matches(match, rule.drugs):
                continue
            if rule.category == PregnancyCategory.X:
                instruction = DoseInstruction(f"CONTRAINDICATED in pregnancy: {rule.note}", 0.0, True)
                severity = AdjustmentSeverity.CRITICAL
            else:
                instruction = DoseInstruction(f"Avoid in pregnancy unless benefit outweighs risk: {rule.note}", 1.0)
                severity = AdjustmentSeverity.IMPORTANT
            return self._build(
                drug,
                f"Pregnancy (category {rule.category.value})",
                instruction,
                AdjustmentType.PREGNANCY,
                severity,
                rule.alternative or "Specialist review before prescribing",
                original_dose,
                original_dose_mg,
            )
        return None

    # Combined

    def adjust(
        self,
        drug: str,
        profile: PatientDoseProfile,
        original_dose_mg: Optional[float] = None,
        original_dose: Optional[str] = None,
        renal_function: Optional[RenalFunction] = None,
    ) -> List[DoseAdjustment]:
        """Every applicable advisory for one drug, in renal, hepatic,
        geriatric, weight, pregnancy order."""
        if original_dose_mg is not None and original_dose_mg < 0:
            raise ClinicalValidationError(
                "original_dose_mg cannot be negative", field="original_dose_mg", value=original_dose_mg
            )
        match = self.resolver.resolve(drug)
        adjustments: List[DoseAdjustment] = []

        renal = renal_function or self.estimate_renal_function(profile)
        if renal is not None:
            result = self.adjust_renal(drug, renal.egfr, original_dose, original_dose_mg, match)
            if result:
                adjustments.append(result)

        child_pugh = self.resolve_child_pugh(profile)
        if child_pugh is not None:
            result = self.adjust_hepatic(drug, child_pugh, original_dose, original_dose_mg, match)
            if result:
                adjustments.append(result)

        if profile.age is not None:
            result = self.check_geriatric(drug, profile.age, original_dose, original_dose_mg, match)
            if result:
                adjustments.append(result)

        if profile.weight_kg is not None:
            result = self.adjust_weight(drug, profile.weight_kg, original_dose, original_dose_mg, match)
            if result:
                adjustments.append(result)

        if profile.pregnant:
            result = self.check_pregnancy(drug, original_dose, original_dose_mg, match)
            if result:
                adjustments.append(result)

        if adjustments:
            logger.info(
                f"{len(adjustments)} dose adjustment(s) for '{drug}': "
                f"{[a.adjustment_type.value for a in adjustments]}"
            )
        else:
            logger.debug(f"No dose adjustment for '{drug}'")
        return adjustments


# Global instance for easy access
_adjuster_instance: Optional[DoseAdjuster] = None


def get_dose_adjuster() -> DoseAdjuster:
    """Get the global dose adjuster instance."""
    global _adjuster_instance
    if _adjuster_instance is None:
        _adjuster_instance = DoseAdjuster()
    return _adjuster_instance
