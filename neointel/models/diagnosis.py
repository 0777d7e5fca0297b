"""
Diagnosis consistency validator.

Cross-checks the admission indications and the free-text diagnosis against
the resolved gestational age and birth weight, scores how many indications
hold up, and composes the final diagnosis line used on discharge papers.
"""
import math
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Tuple

from neointel.models.data_structures import (
    ClinicalCourseAnalysis, ClinicalWarning, DiagnosisAnalysis,
    GestationalAgeResult, GrowthStatus, IndicationValidation, Severity,
    WeightAnalysis, WeightCategory,
)
from neointel.models.narrative_miner import (
    ONGOING, RESOLVED, condition_status, conditions_in_diagnosis, is_resolved,
)
from neointel.models.records import Outcome, PatientRecord
from neointel.models.rules import prematurity_band


@dataclass(frozen=True)
class WeightIndicationRule:
    pattern: Pattern
    label: str
    range_text: str
    accepts: Callable[[float], bool]


# First match wins, so the narrower bands come first.
WEIGHT_INDICATION_RULES: Tuple[WeightIndicationRule, ...] = (
    WeightIndicationRule(
        re.compile(r"\belbw\b|\bextremely\s+low\s+birth\s*weight", re.I),
        "ELBW", "<1000g", lambda g: g < 1000),
    WeightIndicationRule(
        re.compile(r"\bvlbw\b|\bvery\s+low\s+birth\s*weight", re.I),
        "VLBW", "1000-1500g", lambda g: 1000 <= g < 1500),
    WeightIndicationRule(
        re.compile(r"\blbw\b|(?<!very\s)(?<!extremely\s)\blow\s+birth\s*weight", re.I),
        "LBW", "1500-2500g", lambda g: 1500 <= g < 2500),
    WeightIndicationRule(
        re.compile(r"\bmacrosomi", re.I),
        "Macrosomia", ">4000g", lambda g: g > 4000),
)

GROWTH_INDICATION_RULES = (
    (re.compile(r"\bsga\b|\bsmall\s+for\s+(?:gestational\s+)?(?:age|dates)", re.I),
     GrowthStatus.SGA),
    (re.compile(r"\blga\b|\blarge\s+for\s+(?:gestational\s+)?(?:age|dates)", re.I),
     GrowthStatus.LGA),
)

PRETERM_WORD = re.compile(r"\bpre-?term\b", re.I)
# "term" describing the baby, not "short term" or "pre-term".
TERM_INFANT = re.compile(
    r"(?<!-)\b(?:full[\s-]+)?term\s+"
    r"(?:baby|neonate|infant|newborn|male|female|boy|girl|aga|sga|lga)\b"
    r"|\bfull[\s-]+term\b|\b(?:born|delivered)\s+at\s+term\b", re.I)

_BAND_TEXT = {
    'Extreme Preterm': "Extreme prematurity (<28 weeks)",
    'Very Preterm': "Very preterm (28-32 weeks)",
    'Moderate Preterm': "Moderate preterm (32-34 weeks)",
    'Late Preterm': "Late preterm (34-37 weeks)",
}


def _valid(indication: str) -> IndicationValidation:
    return IndicationValidation(indication, True)


def _invalid(indication: str, reason: str, suggestion: str) -> IndicationValidation:
    return IndicationValidation(indication, False, reason, suggestion)


def validate_indication(indication: str, ga: GestationalAgeResult,
                        weight: Optional[WeightAnalysis]) -> IndicationValidation:
    """Check one indication against the resolved GA band and weight band."""
    if ga.is_available:
        is_prematurity, band = prematurity_band(indication)
        if is_prematurity and band is not None and band is not ga.category:
            return _invalid(
                indication,
                f"{_BAND_TEXT[band.value]} selected but GA is {ga.ga_string} weeks",
                ga.category.value)
        if is_prematurity and band is None and not ga.category.is_preterm:
            return _invalid(
                indication,
                f"Prematurity selected but GA is {ga.ga_string} weeks (term)",
                ga.category.value)

    if weight is not None:
        grams = weight.weight_in_grams
        for rule in WEIGHT_INDICATION_RULES:
            if rule.pattern.search(indication):
                if not rule.accepts(grams):
                    return _invalid(
                        indication,
                        f"{rule.label} ({rule.range_text}) selected but weight "
                        f"is {grams:g}g",
                        weight.category.abbreviation)
                break
        if weight.growth_status is not None:
            for pattern, status in GROWTH_INDICATION_RULES:
                if pattern.search(indication) and weight.growth_status is not status:
                    return _invalid(
                        indication,
                        f"{status.abbreviation} selected but birth weight is "
                        f"{weight.growth_status.value.lower()}",
                        weight.growth_status.abbreviation)

    return _valid(indication)


def consistency_score(validations: List[IndicationValidation]) -> int:
    if not validations:
        return 100
    valid = sum(1 for v in validations if v.is_valid)
    return int(math.floor(100.0 * valid / len(validations) + 0.5))


def diagnosis_text_warnings(diagnosis: str,
                            ga: GestationalAgeResult) -> List[ClinicalWarning]:
    if not diagnosis or not ga.is_available:
        return []
    warnings = []
    preterm = ga.category.is_preterm
    if PRETERM_WORD.search(diagnosis) and not preterm:
        warnings.append(ClinicalWarning(
            Severity.WARNING,
            f'Diagnosis mentions "preterm" but GA is {ga.ga_string} weeks (term)',
            'diagnosis', ga.category.value))
    elif TERM_INFANT.search(diagnosis) and preterm:
        warnings.append(ClinicalWarning(
            Severity.WARNING,
            f'Diagnosis mentions "term" but GA is {ga.ga_string} weeks (preterm)',
            'diagnosis', ga.category.value))
    return warnings


def diagnosis_status(patient: PatientRecord, resolved: Tuple[str, ...]) -> str:
    """Status of the free-text diagnosis as a whole."""
    rules = conditions_in_diagnosis(patient.diagnosis)
    if rules:
        names = [r.canonical_name for r in rules]
        return RESOLVED if all(n in resolved for n in names) else ONGOING
    pattern = re.compile(re.escape(patient.diagnosis.strip()), re.I)
    return RESOLVED if is_resolved(pattern, patient.progress_notes) else ONGOING


def _named_in(name: str, diagnosis: str) -> bool:
    if name.lower() in diagnosis.lower():
        return True
    return any(r.canonical_name == name for r in conditions_in_diagnosis(diagnosis))


def build_final_diagnosis(patient: PatientRecord, ga: GestationalAgeResult,
                          weight: Optional[WeightAnalysis],
                          course: ClinicalCourseAnalysis) -> str:
    parts = []
    if ga.is_available:
        if ga.category.is_preterm:
            parts.append(f"{ga.category.value} ({ga.ga_string} weeks)")
        else:
            parts.append("Term")

    if weight is not None and weight.category is not WeightCategory.NORMAL:
        parts.append(weight.category.abbreviation)
    if weight is not None and weight.growth_status is GrowthStatus.SGA:
        parts.append(GrowthStatus.SGA.abbreviation)

    annotate = patient.outcome is not Outcome.DECEASED
    diagnosis = patient.diagnosis.strip()
    if diagnosis:
        status = diagnosis_status(patient, course.resolved_conditions)
        parts.append(f"{diagnosis} - {status}" if annotate else diagnosis)

    extra = [c for c in course.complications if not _named_in(c, diagnosis)][:2]
    for name in extra:
        if annotate:
            status = condition_status(name, patient, course.resolved_conditions)
            parts.append(f"{name} - {status}")
        else:
            parts.append(name)

    return ', '.join(parts)


def analyze_diagnosis(patient: PatientRecord, ga: GestationalAgeResult,
                      weight: Optional[WeightAnalysis],
                      course: ClinicalCourseAnalysis) -> DiagnosisAnalysis:
    indications = tuple(patient.indications_for_admission)
    validations = [validate_indication(i, ga, weight) for i in indications]

    warnings = diagnosis_text_warnings(patient.diagnosis, ga)
    for validation in validations:
        if not validation.is_valid:
            warnings.append(ClinicalWarning(
                Severity.WARNING, validation.reason, 'indicationsForAdmission',
                validation.suggested_correction))

    return DiagnosisAnalysis(
        primary_diagnosis=patient.diagnosis or 'Unknown',
        admission_indications=indications,
        indications_validation=tuple(validations),
        final_diagnosis=build_final_diagnosis(patient, ga, weight, course),
        diagnosis_consistency_score=consistency_score(validations),
        warnings=tuple(warnings),
    )
