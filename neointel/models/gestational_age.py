"""
Gestational-age resolver.

GA can be dated three ways: from the last menstrual period, from the
expected date of delivery, or from a value typed in at admission. Each source
is computed on its own into an optional result, then the results are merged:
the most trusted one becomes the primary answer and the others are only used
to flag discrepancies. Nothing in this module raises on bad input; an
unusable source comes back as an invalid result carrying the reason.
"""
import logging
from datetime import date
from itertools import combinations
from typing import List, Optional

from neointel.config.settings import (
    GA_DISCREPANCY_DAYS, GA_MAX_PLAUSIBLE_DAYS, GA_MIN_PLAUSIBLE_DAYS,
    STANDARD_CYCLE_DAYS, TERM_PREGNANCY_DAYS,
)
from neointel.models.data_structures import (
    ClinicalWarning, GASource, GestationalAgeResult, GestationalCategory,
    Severity,
)
from neointel.models.dates import days_between, parse_date
from neointel.models.records import PatientRecord
from neointel.models.rules import prematurity_band

logger = logging.getLogger(__name__)

FIELD = 'gestationalAge'

# Dating preference when several sources are available.
SOURCE_PRIORITY = (GASource.LMP, GASource.EDD, GASource.MANUAL)


def _warning(message: str, severity: Severity = Severity.WARNING,
             suggestion: str = None) -> ClinicalWarning:
    return ClinicalWarning(severity, message, FIELD, suggestion)


def categorize(weeks: int, days: int = 0) -> GestationalCategory:
    """Band for a GA given in completed weeks plus days."""
    return GestationalCategory.from_total_days(weeks * 7 + days)


def invalid_result(reason: str, *extra: ClinicalWarning) -> GestationalAgeResult:
    """Sentinel returned when no usable GA can be derived."""
    return GestationalAgeResult(
        total_days=0,
        source=GASource.NONE,
        is_validated=False,
        warnings=(_warning(reason),) + tuple(extra),
    )


def _plausibility_warnings(total_days: int, source: GASource) -> List[ClinicalWarning]:
    warnings = []
    if total_days < GA_MIN_PLAUSIBLE_DAYS:
        warnings.append(_warning(
            f"Gestational age from {source.label} ({total_days // 7}+{total_days % 7} weeks) "
            "seems too early for a neonatal admission",
            suggestion=f"Verify the {source.label} date"))
    if total_days > GA_MAX_PLAUSIBLE_DAYS:
        warnings.append(_warning(
            f"Gestational age from {source.label} exceeds the normal range "
            f"({total_days // 7}+{total_days % 7} weeks)",
            suggestion=f"Verify the {source.label} date"))
    return warnings


def from_lmp(lmp_date, reference_date,
             cycle_length: Optional[int] = STANDARD_CYCLE_DAYS) -> GestationalAgeResult:
    """GA at ``reference_date`` dated from the last menstrual period.

    A cycle longer than 28 days means later ovulation, so the difference is
    subtracted from the day count.
    """
    lmp = parse_date(lmp_date)
    reference = parse_date(reference_date)
    if lmp is None:
        return invalid_result(f"Invalid LMP date: {lmp_date!r}")
    if reference is None:
        return invalid_result(f"Invalid reference date: {reference_date!r}")

    notes: List[ClinicalWarning] = []
    total_days = days_between(lmp, reference)
    cycle = cycle_length or STANDARD_CYCLE_DAYS
    if cycle != STANDARD_CYCLE_DAYS:
        total_days -= cycle - STANDARD_CYCLE_DAYS
        notes.append(_warning(f"Adjusted for {cycle}-day cycle", Severity.INFO))

    warnings = _plausibility_warnings(total_days, GASource.LMP)
    return GestationalAgeResult(
        total_days=total_days,
        source=GASource.LMP,
        is_validated=not warnings,
        warnings=tuple(notes + warnings),
    )


def from_edd(edd_date, reference_date) -> GestationalAgeResult:
    """GA at ``reference_date`` counted back from a 280-day EDD."""
    edd = parse_date(edd_date)
    reference = parse_date(reference_date)
    if edd is None:
        return invalid_result(f"Invalid EDD date: {edd_date!r}")
    if reference is None:
        return invalid_result(f"Invalid reference date: {reference_date!r}")

    total_days = TERM_PREGNANCY_DAYS - days_between(reference, edd)
    warnings = []
    if total_days < 0:
        warnings.append(_warning(
            "Reference date falls more than 40 weeks before the EDD",
            suggestion="Verify the EDD"))
    elif total_days > GA_MAX_PLAUSIBLE_DAYS:
        warnings.extend(_plausibility_warnings(total_days, GASource.EDD))

    return GestationalAgeResult(
        total_days=total_days,
        source=GASource.EDD,
        is_validated=not warnings,
        warnings=tuple(warnings),
    )


def from_manual(weeks, days=None) -> GestationalAgeResult:
    try:
        weeks = int(weeks)
        days = int(days or 0)
    except (TypeError, ValueError):
        return invalid_result(f"Invalid manual gestational age: {weeks!r}+{days!r}")

    warnings = []
    if not 0 <= days <= 6:
        warnings.append(_warning(
            f"Manual gestational age has {days} extra days; normalized to "
            f"{(weeks * 7 + days) // 7}+{(weeks * 7 + days) % 7} weeks"))
    return GestationalAgeResult(
        total_days=weeks * 7 + days,
        source=GASource.MANUAL,
        is_validated=not warnings,
        warnings=tuple(warnings),
    )


def _gather_sources(patient: PatientRecord, reference) -> dict:
    """Optional result per source; absent inputs map to ``None``."""
    history = patient.maternal_history
    sources = {
        GASource.LMP: None,
        GASource.EDD: None,
        GASource.MANUAL: None,
    }
    if history is not None and history.lmp:
        sources[GASource.LMP] = from_lmp(
            history.lmp, reference,
            history.menstrual_cycle_length or STANDARD_CYCLE_DAYS)
    if history is not None and history.edd:
        sources[GASource.EDD] = from_edd(history.edd, reference)
    if patient.gestational_age_weeks is not None:
        sources[GASource.MANUAL] = from_manual(
            patient.gestational_age_weeks, patient.gestational_age_days)
    return sources


def _discrepancy_warnings(results: List[GestationalAgeResult]) -> List[ClinicalWarning]:
    warnings = []
    for first, second in combinations(results, 2):
        variance = abs(first.total_days - second.total_days)
        if variance > GA_DISCREPANCY_DAYS:
            warnings.append(_warning(
                f"Discrepancy of {variance} days (~{round(variance / 7)} weeks) between "
                f"{first.source.label} ({first.weeks}+{first.days}) and "
                f"{second.source.label} ({second.weeks}+{second.days}) dating",
                suggestion=f"Gestational age taken from {first.source.label}"))
    return warnings


def _indication_warnings(result: GestationalAgeResult,
                         indications) -> List[ClinicalWarning]:
    warnings = []
    category = result.category
    claims_prematurity = False
    for indication in indications:
        is_prematurity, band = prematurity_band(indication)
        if not is_prematurity:
            continue
        claims_prematurity = True
        if not category.is_preterm:
            warnings.append(_warning(
                f"CRITICAL: Prematurity indication '{indication}' selected but GA is "
                f"{result.ga_string} weeks ({category.value}). Please verify.",
                Severity.ERROR, suggestion=category.value))
        elif band is not None and band is not category:
            warnings.append(_warning(
                f"CRITICAL: Indication '{indication}' implies {band.value} but GA is "
                f"{result.ga_string} weeks ({category.value}). Please verify.",
                Severity.ERROR, suggestion=category.value))

    if category.is_preterm and not claims_prematurity:
        warnings.append(_warning(
            f"Missing prematurity indication - GA is {result.weeks}+{result.days} "
            f"weeks ({category.value})",
            suggestion=f"Add '{category.value}' to admission indications"))
    return warnings


def resolve(patient: PatientRecord) -> GestationalAgeResult:
    """Validated GA for a patient, cross-checked across every dating source."""
    reference = parse_date(patient.date_of_birth)
    dating: List[ClinicalWarning] = []
    if reference is None and patient.date_of_birth:
        dating.append(_warning(
            f"Invalid date of birth: {patient.date_of_birth!r}; "
            f"dating against the admission date",
            suggestion="Correct the date of birth"))
    if reference is None:
        reference = parse_date(patient.admission_date)
    if reference is None:
        return invalid_result(
            "No reference date (date of birth or admission date) available", *dating)

    sources = _gather_sources(patient, reference)
    present = [r for r in sources.values() if r is not None]
    usable = [r for r in present if r.is_available]
    # Warnings from sources that could not be used at all.
    rejected = [w for r in present if not r.is_available for w in r.warnings]

    if not usable:
        if rejected:
            return GestationalAgeResult(0, GASource.NONE, False, tuple(dating + rejected))
        return invalid_result("No gestational age data available", *dating)

    primary = next(sources[s] for s in SOURCE_PRIORITY
                   if sources[s] is not None and sources[s].is_available)

    extra = dating + rejected + _discrepancy_warnings(
        sorted(usable, key=lambda r: SOURCE_PRIORITY.index(r.source)))
    extra += _indication_warnings(primary, patient.indications_for_admission)

    blocking = [w for w in extra if w.severity is not Severity.INFO]
    logger.debug("GA resolved from %s: %s+%s (%d sources)",
                 primary.source.value, primary.weeks, primary.days, len(usable))
    return GestationalAgeResult(
        total_days=primary.total_days,
        source=primary.source,
        is_validated=primary.is_validated and not blocking,
        warnings=primary.warnings + tuple(extra),
    )


def corrected_age(result: GestationalAgeResult, birth_date,
                  as_of: Optional[date]) -> Optional[GestationalAgeResult]:
    """Postmenstrual (corrected) age: GA at birth plus days of life at ``as_of``."""
    if not result.is_available:
        return None
    born = parse_date(birth_date)
    if born is None or as_of is None:
        return result
    days_of_life = max(days_between(born, as_of), 0)
    return GestationalAgeResult(
        total_days=result.total_days + days_of_life,
        source=result.source,
        is_validated=result.is_validated,
    )
