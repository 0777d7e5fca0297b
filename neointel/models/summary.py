"""
Summary composer: the single entry point used by the discharge-summary
generator, the death-certificate workflow and the dashboards.

``generate_comprehensive_clinical_summary`` runs every analysis on one
patient record and returns a frozen report plus the aggregated warnings.
It never reads the clock: the assessment date comes from the caller or from
the record itself, so two calls on the same record give identical output.
"""
import logging
import re
from datetime import date, datetime, time
from typing import List, Optional

from neointel.models.data_structures import (
    ClinicalWarning, ComprehensiveClinicalSummary, GestationalAgeResult,
    MaternalFactorSummary, PatientProfile, Severity,
)
from neointel.models.dates import days_between, parse_date
from neointel.models.diagnosis import analyze_diagnosis
from neointel.models.discharge import evaluate_discharge_readiness
from neointel.models.gestational_age import resolve
from neointel.models.growth_engine import analyze_weight
from neointel.models.narrative_miner import analyze_clinical_course
from neointel.models.records import MaternalHistory, Outcome, PatientRecord

logger = logging.getLogger(__name__)

# (pattern over a risk-factor label, implication)
RISK_FACTOR_IMPLICATIONS = (
    (re.compile(r"\bgdm\b|gestational\s+diabetes", re.I),
     "Monitor for neonatal hypoglycemia"),
    (re.compile(r"\bpih\b|hypertension|pre-?eclampsia", re.I),
     "Monitor for IUGR/SGA"),
    (re.compile(r"chorioamnionitis", re.I),
     "High risk for early-onset sepsis"),
    (re.compile(r"\bp?prom\b|rupture\s+of\s+membranes", re.I),
     "Sepsis risk increased"),
    (re.compile(r"\brh\b.*neg|rh-", re.I),
     "Monitor for hemolytic disease"),
)


def analyze_maternal_factors(history: Optional[MaternalHistory]) -> MaternalFactorSummary:
    if history is None:
        return MaternalFactorSummary()

    factors = list(history.risk_factors)
    implications = []
    for pattern, implication in RISK_FACTOR_IMPLICATIONS:
        if any(pattern.search(f) for f in factors) and implication not in implications:
            implications.append(implication)

    if history.prolonged_rupture:
        factors.append("Prolonged rupture of membranes (>18 hours)")
        implications.append("Increased sepsis risk - empirical antibiotics may be needed")
    if history.maternal_fever:
        factors.append("Intrapartum maternal fever")
        implications.append("Sepsis workup indicated")

    antenatal_care = "Not documented"
    if history.anc_received is True:
        antenatal_care = "ANC received"
        if history.anc_visits:
            antenatal_care += f" ({history.anc_visits} visits)"
        if history.antenatal_steroids_given:
            antenatal_care += ", Antenatal steroids given"
    elif history.anc_received is False:
        antenatal_care = "No ANC - high risk"
        implications.append("Lack of ANC - increased risk of complications")

    formula = [f"{letter}{value}" for letter, value in (
        ('G', history.gravida), ('P', history.para),
        ('A', history.abortion), ('L', history.living)) if value is not None]

    return MaternalFactorSummary(
        has_risk_factors=bool(factors),
        significant_factors=tuple(factors),
        antenatal_care=antenatal_care,
        delivery_details=' '.join(formula) or "Not documented",
        implications=tuple(implications),
    )


def _chronological_age(born: date, as_of: date) -> str:
    age_days = days_between(born, as_of)
    if age_days < 30:
        return f"{age_days} days"
    if age_days < 365:
        return f"{age_days // 30} months"
    return f"{age_days // 365} years"


def build_age_description(patient: PatientRecord, ga: GestationalAgeResult,
                          as_of: Optional[date]) -> str:
    born = parse_date(patient.date_of_birth)
    if patient.is_neonatal:
        parts = []
        if ga.is_available:
            parts.append(f"{ga.weeks}+{ga.days} weeks gestation")
        if born is not None and as_of is not None and as_of >= born:
            parts.append(f"Day {days_between(born, as_of) + 1} of life")
        return ', '.join(parts) or "Age unknown"
    if born is not None and as_of is not None and as_of >= born:
        return _chronological_age(born, as_of)
    return "Age unknown"


def build_patient_profile(patient: PatientRecord, ga: GestationalAgeResult,
                          as_of: Optional[date]) -> PatientProfile:
    born = parse_date(patient.date_of_birth)
    return PatientProfile(
        name=patient.name,
        gender=patient.gender or "Unknown",
        date_of_birth=born.isoformat() if born else "Unknown",
        age_description=build_age_description(patient, ga, as_of),
        unit=patient.unit.value,
        is_neonatal=patient.is_neonatal,
    )


def record_warnings(patient: PatientRecord) -> List[ClinicalWarning]:
    """Data-quality warnings about the record itself."""
    warnings = []
    if patient.birth_weight is None:
        warnings.append(ClinicalWarning(
            Severity.INFO, "Birth weight not recorded; weight analysis skipped",
            'birthWeight'))
    if patient.admission_date is None:
        warnings.append(ClinicalWarning(
            Severity.INFO, "Admission date not recorded", 'admissionDate'))
    elif parse_date(patient.admission_date) is None:
        warnings.append(ClinicalWarning(
            Severity.WARNING,
            f"Invalid admission date: {patient.admission_date!r}",
            'admissionDate', "Correct the admission date"))

    bad_dates = sum(1 for n in patient.progress_notes if parse_date(n.date) is None)
    if bad_dates:
        warnings.append(ClinicalWarning(
            Severity.WARNING,
            f"{bad_dates} progress note(s) have unparsable dates and were left "
            "out of the timeline",
            'progressNotes'))
    return warnings


def _timestamp(as_of: Optional[date]) -> str:
    if as_of is None:
        return "unknown"
    return datetime.combine(as_of, time()).isoformat()


def generate_comprehensive_clinical_summary(
        patient: PatientRecord,
        as_of: Optional[date] = None) -> ComprehensiveClinicalSummary:
    """Run the full analysis pipeline for one patient."""
    as_of = as_of or patient.assessment_date()
    extra = {'patient_id': patient.id}

    ga = resolve(patient)
    weight = None
    if patient.birth_weight is not None:
        weight = analyze_weight(patient.birth_weight, ga, patient.gender)
    course = analyze_clinical_course(patient, as_of)
    diagnosis = analyze_diagnosis(patient, ga, weight, course)

    readiness = None
    if patient.outcome in (None, Outcome.IN_PROGRESS):
        readiness = evaluate_discharge_readiness(patient, ga, course, as_of)

    warnings = list(ga.warnings)
    warnings.extend(record_warnings(patient))
    if patient.birth_weight is not None and weight is None:
        warnings.append(ClinicalWarning(
            Severity.WARNING,
            f"Birth weight {patient.birth_weight!r} could not be interpreted",
            'birthWeight', "Record weight in grams or kilograms"))
    warnings.extend(diagnosis.warnings)

    logger.debug("Summary built: GA %s, %d warnings, score %d",
                 ga.ga_string if ga.is_available else '-', len(warnings),
                 diagnosis.diagnosis_consistency_score, extra=extra)

    return ComprehensiveClinicalSummary(
        patient_id=patient.id,
        patient_profile=build_patient_profile(patient, ga, as_of),
        gestational_age=ga,
        weight_analysis=weight,
        maternal_factors=analyze_maternal_factors(patient.maternal_history),
        clinical_course=course,
        diagnosis=diagnosis,
        discharge_readiness=readiness,
        warnings=tuple(warnings),
        generated_at=_timestamp(as_of),
    )
