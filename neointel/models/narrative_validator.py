"""
Checks externally drafted free text (e.g. a generated discharge narrative)
against a computed summary. The text is never trusted; anything it asserts
that the summary does not support comes back as a warning.
"""
import re
from typing import List

from neointel.models.data_structures import (
    ClinicalWarning, ComprehensiveClinicalSummary, Severity,
)
from neointel.models.diagnosis import TERM_INFANT, WEIGHT_INDICATION_RULES
from neointel.models.narrative_miner import affirmed_mentions, mentions_condition
from neointel.models.rules import CONDITION_RULES

FIELD = 'narrative'

PRETERM_INFANT = re.compile(r"\bpre-?term\b|\bprematur", re.I)

NARRATIVE_WEIGHT_BANDS = ('ELBW', 'VLBW', 'LBW')


def _asserts(pattern, text: str) -> bool:
    return next(affirmed_mentions(pattern, text), None) is not None


def validate_narrative(text: str,
                       summary: ComprehensiveClinicalSummary) -> List[ClinicalWarning]:
    warnings = []
    if not text:
        return warnings

    confirmed = set(summary.clinical_course.complications)
    for rule in CONDITION_RULES:
        if rule.canonical_name not in confirmed and mentions_condition(rule, text):
            warnings.append(ClinicalWarning(
                Severity.WARNING,
                f"Narrative mentions {rule.canonical_name}, which is not a "
                "confirmed condition for this patient",
                FIELD, f"Remove or verify {rule.canonical_name}"))

    ga = summary.gestational_age
    if ga.is_available:
        if ga.category.is_preterm and _asserts(TERM_INFANT, text):
            warnings.append(ClinicalWarning(
                Severity.ERROR,
                f"Narrative describes a term infant but GA is {ga.ga_string} "
                f"weeks ({ga.category.value})",
                FIELD, ga.category.value))
        elif not ga.category.is_preterm and _asserts(PRETERM_INFANT, text):
            warnings.append(ClinicalWarning(
                Severity.ERROR,
                f"Narrative describes a preterm infant but GA is {ga.ga_string} "
                f"weeks ({ga.category.value})",
                FIELD, ga.category.value))

    weight = summary.weight_analysis
    if weight is not None:
        actual = weight.category.abbreviation
        for rule in WEIGHT_INDICATION_RULES:
            if rule.label not in NARRATIVE_WEIGHT_BANDS:
                continue
            if rule.label != actual and _asserts(rule.pattern, text):
                warnings.append(ClinicalWarning(
                    Severity.ERROR,
                    f"Narrative states {rule.label} but birth weight is "
                    f"{weight.weight_in_grams:g}g ({actual})",
                    FIELD, actual))
                break
    return warnings
