"""
Discharge-readiness checklist. Recomputed from the current course every time.
"""
from datetime import date
from typing import List, Optional

from neointel.config.settings import DISCHARGE_MIN_CORRECTED_WEEKS
from neointel.models.data_structures import (
    ClinicalCourseAnalysis, DischargeCriterion, DischargeReadiness,
    GestationalAgeResult,
)
from neointel.models.gestational_age import corrected_age
from neointel.models.records import PatientRecord
from neointel.models.rules import (
    ESTABLISHED_FEEDING_STAGES, INFECTIOUS_CONDITIONS,
    MINIMAL_RESPIRATORY_STAGES,
)

THERMAL_STABILITY = "Thermal stability (36.5-37.5°C in open cot)"
ESTABLISHED_FEEDING = "Established feeding with weight gain"
MINIMAL_RESPIRATORY_SUPPORT = "Off oxygen or on minimal respiratory support"
NO_ACTIVE_INFECTION = "No active infection requiring IV antibiotics"
CORRECTED_AGE = f"Corrected gestational age ≥{DISCHARGE_MIN_CORRECTED_WEEKS} weeks"

AFEBRILE = "Afebrile for 24-48 hours"
TOLERATING_ORAL = "Tolerating oral feeds/medications"
NO_OXYGEN = "No oxygen requirement"
IMPROVING = "Improving clinically"

NEONATAL_RECOMMENDATIONS = (
    "Ensure mother is confident with feeding and care",
    "Complete ROP screening if indicated",
    "Complete hearing screening",
    "Discuss immunizations",
    "Schedule follow-up appointments",
)


def _neonatal_criteria(patient: PatientRecord, ga: GestationalAgeResult,
                       course: ClinicalCourseAnalysis,
                       as_of: Optional[date]) -> List[DischargeCriterion]:
    temp = course.vital_trend('Temperature')
    weight = course.vital_trend('Weight')
    feeding = course.current_feeding
    respiratory = course.current_respiratory_support

    on_full_feeds = feeding in ESTABLISHED_FEEDING_STAGES
    gaining = weight is not None and weight.trend == 'improving'

    active_infections = [c for c in course.ongoing_conditions
                         if c in INFECTIOUS_CONDITIONS]
    active_antibiotics = [m.name for m in course.medication_summary.antibiotics
                          if m.status == 'active']
    infection_notes = ', '.join(active_infections + active_antibiotics) or None

    criteria = [
        DischargeCriterion(
            THERMAL_STABILITY,
            temp is not None and temp.trend in ('stable', 'improving'),
            temp.latest_value if temp else None),
        DischargeCriterion(
            ESTABLISHED_FEEDING,
            on_full_feeds and gaining,
            ', '.join(filter(None, [feeding,
                                    weight.latest_value if weight else None])) or None),
        DischargeCriterion(
            MINIMAL_RESPIRATORY_SUPPORT,
            respiratory is None or respiratory in MINIMAL_RESPIRATORY_STAGES,
            respiratory),
        DischargeCriterion(
            NO_ACTIVE_INFECTION,
            not active_infections and not active_antibiotics,
            infection_notes),
    ]

    if ga.is_available and ga.category.is_preterm:
        corrected = corrected_age(ga, patient.date_of_birth, as_of)
        criteria.append(DischargeCriterion(
            CORRECTED_AGE,
            corrected.weeks >= DISCHARGE_MIN_CORRECTED_WEEKS,
            f"Current: {corrected.weeks}+{corrected.days} weeks"))
    return criteria


def _pediatric_criteria(course: ClinicalCourseAnalysis) -> List[DischargeCriterion]:
    temp = course.vital_trend('Temperature')
    if temp is not None:
        afebrile = temp.trend in ('stable', 'improving')
    else:
        afebrile = course.clinical_improvement
    feeding = course.current_feeding
    respiratory = course.current_respiratory_support
    return [
        DischargeCriterion(AFEBRILE, afebrile, temp.latest_value if temp else None),
        DischargeCriterion(TOLERATING_ORAL,
                           feeding is None or not feeding.startswith('NPO'),
                           feeding),
        DischargeCriterion(NO_OXYGEN,
                           respiratory is None or respiratory == 'Room Air',
                           respiratory),
        DischargeCriterion(IMPROVING, course.clinical_improvement),
    ]


def evaluate_discharge_readiness(patient: PatientRecord, ga: GestationalAgeResult,
                                 course: ClinicalCourseAnalysis,
                                 as_of: Optional[date] = None) -> DischargeReadiness:
    """Ready only when every mandatory criterion is met."""
    as_of = as_of or patient.assessment_date()
    if patient.is_neonatal:
        criteria = _neonatal_criteria(patient, ga, course, as_of)
        recommendations = NEONATAL_RECOMMENDATIONS
    else:
        criteria = _pediatric_criteria(course)
        recommendations = ()

    pending = tuple(c.criterion for c in criteria if not c.met)
    return DischargeReadiness(
        is_ready=not pending,
        criteria=tuple(criteria),
        pending_issues=pending,
        recommendations=recommendations,
    )
