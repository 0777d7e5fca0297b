"""
Medication classifier: one therapeutic bucket and one activity bucket per drug.
"""
from typing import Iterable, Tuple

from neointel.models.data_structures import MedicationInfo, MedicationSummary
from neointel.models.records import Medication
from neointel.models.rules import (
    ANTIBIOTIC, CARDIOVASCULAR, INOTROPE_PATTERN, MEDICATION_CATEGORY_RULES,
    NEUROLOGICAL, NUTRITIONAL, OTHER, RESPIRATORY, MarkerRule,
)


def categorize_medication(name: str,
                          rules: Tuple[MarkerRule, ...] = MEDICATION_CATEGORY_RULES) -> str:
    for rule in rules:
        if rule.pattern.search(name or ''):
            return rule.label
    return OTHER


def _as_text(value):
    return None if value is None else str(value)


def analyze_medications(medications: Iterable[Medication]) -> MedicationSummary:
    buckets = {ANTIBIOTIC: [], RESPIRATORY: [], CARDIOVASCULAR: [],
               NEUROLOGICAL: [], NUTRITIONAL: [], OTHER: []}
    active, discontinued = [], []

    medications = list(medications)
    for med in medications:
        info = MedicationInfo(
            name=med.name,
            status='active' if med.is_active else 'discontinued',
            start_date=_as_text(med.start_date),
            end_date=_as_text(med.stop_date),
        )
        buckets[categorize_medication(med.name)].append(info)
        (active if med.is_active else discontinued).append(info)

    return MedicationSummary(
        total_medications=len(medications),
        antibiotics=tuple(buckets[ANTIBIOTIC]),
        respiratory_meds=tuple(buckets[RESPIRATORY]),
        cardiovascular_meds=tuple(buckets[CARDIOVASCULAR]),
        neurological_meds=tuple(buckets[NEUROLOGICAL]),
        nutritional_support=tuple(buckets[NUTRITIONAL]),
        others=tuple(buckets[OTHER]),
        active_medications=tuple(active),
        discontinued_medications=tuple(discontinued),
    )


def medication_interventions(medications: Iterable[Medication]) -> list:
    """Interventions implied by the drug list rather than the notes."""
    medications = list(medications)
    found = []
    if any(categorize_medication(m.name) == ANTIBIOTIC for m in medications):
        found.append('Antibiotic Therapy')
    if any(INOTROPE_PATTERN.search(m.name or '') for m in medications):
        found.append('Inotropic Support')
    return found
