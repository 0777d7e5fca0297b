"""
Clinical narrative miner.

Reads the free-text progress notes (plus the indication list and the
diagnosis field) and pulls out structured facts: confirmed complications,
a key-event timeline, vital-sign trends, feeding and respiratory milestones,
and which diagnosed conditions have resolved.

Matching is driven by the rule tables in ``neointel.models.rules``. Every
condition mention is checked against a negation window before it counts, so
"no evidence of sepsis" never confirms sepsis. Windows are clipped at
sentence punctuation unless ``SENTENCE_BOUNDED_WINDOWS`` is turned off.
"""
import logging
import re
from datetime import date
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

import numpy as np

from neointel.config import settings
from neointel.models.data_structures import (
    ClinicalCourseAnalysis, ClinicalEvent, VitalTrend,
)
from neointel.models.dates import days_between, parse_date, parse_float
from neointel.models.medications import analyze_medications, medication_interventions
from neointel.models.records import Outcome, PatientRecord, ProgressNote
from neointel.models.rules import (
    CONDITION_RULES, CONFIRMATION_PATTERNS, CRITICAL_EVENT_TERMS,
    FEEDING_MARKERS, FEEDING_STATE_MARKERS, IMPROVEMENT_EVENT_TERMS,
    IMPROVEMENT_KEYWORDS, INTERVENTION_RULES, MAJOR_EVENT_TERMS,
    NEGATION_PATTERNS, RESOLUTION_NEGATION, RESOLUTION_PATTERN,
    RESPIRATORY_MARKERS, SENTENCE_BOUNDARY,
    TRAILING_NEGATION, TREATMENT_PATTERNS, WORSENING_KEYWORDS,
    ConditionRule, MarkerRule,
)

logger = logging.getLogger(__name__)

TEMP_RANGE = (36.5, 37.5)
SPO2_STABLE = 94
FAHRENHEIT_THRESHOLD = 45

# Event snippet width around the matched term.
EVENT_CONTEXT_BEFORE = 30
EVENT_CONTEXT_AFTER = 50

RESOLVED = "Resolved"
ONGOING = "Ongoing"


# =============================================================================
# Text windows
# =============================================================================

def _bounded(bounded: Optional[bool]) -> bool:
    return settings.SENTENCE_BOUNDED_WINDOWS if bounded is None else bounded


def context_before(text: str, start: int, width: int = None,
                   bounded: bool = None) -> str:
    """Up to ``width`` characters before ``start``, clipped to the current sentence."""
    width = settings.TEXT_WINDOW_CHARS if width is None else width
    segment = text[max(0, start - width):start]
    if _bounded(bounded):
        last = None
        for last in SENTENCE_BOUNDARY.finditer(segment):
            pass
        if last is not None:
            segment = segment[last.end():]
    return segment


def context_after(text: str, end: int, width: int = None,
                  bounded: bool = None) -> str:
    """Up to ``width`` characters after ``end``, clipped to the current sentence."""
    width = settings.TEXT_WINDOW_CHARS if width is None else width
    segment = text[end:end + width]
    if _bounded(bounded):
        boundary = SENTENCE_BOUNDARY.search(segment)
        if boundary is not None:
            segment = segment[:boundary.start()]
    return segment


def is_negated(text: str, start: int, end: int, bounded: bool = None) -> bool:
    """True when the mention at ``text[start:end]`` sits in a negated phrase."""
    before = context_before(text, start, bounded=bounded)
    if any(p.search(before) for p in NEGATION_PATTERNS):
        return True
    return TRAILING_NEGATION.match(context_after(text, end, bounded=bounded)) is not None


def is_confirmed(text: str, start: int, end: int, bounded: bool = None) -> bool:
    """True when a confirming or treatment phrase surrounds the mention."""
    window = (context_before(text, start, bounded=bounded)
              + text[start:end]
              + context_after(text, end, bounded=bounded))
    return any(p.search(window) for p in CONFIRMATION_PATTERNS + TREATMENT_PATTERNS)


def affirmed_mentions(pattern: Pattern, text: str, bounded: bool = None):
    """Matches of ``pattern`` in ``text`` that are not negated."""
    for match in pattern.finditer(text or ''):
        if not is_negated(text, match.start(), match.end(), bounded):
            yield match


def mentions_condition(rule: ConditionRule, text: str) -> bool:
    return next(affirmed_mentions(rule.pattern, text), None) is not None


# =============================================================================
# Complications
# =============================================================================

def _confirmed_in_note(rule: ConditionRule, text: str) -> bool:
    for match in affirmed_mentions(rule.pattern, text):
        if not rule.requires_confirmation:
            return True
        if is_confirmed(text, match.start(), match.end()):
            return True
    return False


def extract_complications(patient: PatientRecord,
                          rules: Sequence[ConditionRule] = CONDITION_RULES) -> List[str]:
    """Confirmed conditions only, in rule-table order.

    A condition counts when it is an admission indication, when the
    diagnosis field names it, or when a note mentions it without negation
    alongside a confirming phrase.
    """
    complications = []
    for rule in rules:
        if any(rule.pattern.search(ind) for ind in patient.indications_for_admission):
            complications.append(rule.canonical_name)
        elif mentions_condition(rule, patient.diagnosis):
            complications.append(rule.canonical_name)
        elif any(_confirmed_in_note(rule, n.note) for n in patient.progress_notes):
            complications.append(rule.canonical_name)
    return complications


# =============================================================================
# Key events
# =============================================================================

def _event_context(text: str, start: int, end: int) -> str:
    lo = max(0, start - EVENT_CONTEXT_BEFORE)
    hi = min(len(text), end + EVENT_CONTEXT_AFTER)
    context = text[lo:hi].strip()
    if lo > 0:
        context = '...' + context
    if hi < len(text):
        context = context + '...'
    return context[:1].upper() + context[1:]


def _note_day(note: ProgressNote, admitted: Optional[date]) -> Optional[int]:
    noted = parse_date(note.date)
    if noted is None or admitted is None:
        return None
    return days_between(admitted, noted) + 1


def extract_key_events(patient: PatientRecord) -> List[ClinicalEvent]:
    """Timeline of critical, treatment and improvement events by day of stay."""
    admitted = parse_date(patient.admission_date)
    term_groups = (
        (CRITICAL_EVENT_TERMS, 'critical', 'complication', True),
        (MAJOR_EVENT_TERMS, 'major', 'treatment', True),
        (IMPROVEMENT_EVENT_TERMS, 'minor', 'improvement', False),
    )

    events = {}
    for note in patient.progress_notes:
        day = _note_day(note, admitted)
        text = note.note or ''
        if day is None or not text:
            continue
        for terms, severity, category, check_negation in term_groups:
            for term in terms:
                if check_negation:
                    match = next(affirmed_mentions(term, text), None)
                else:
                    match = term.search(text)
                if match is None:
                    continue
                event = _event_context(text, match.start(), match.end())
                events.setdefault((day, event), ClinicalEvent(
                    day=day, date=str(note.date), event=event,
                    severity=severity, category=category))

    return sorted(events.values(), key=lambda e: e.day)


# =============================================================================
# Interventions and care progression
# =============================================================================

def extract_interventions(patient: PatientRecord,
                          rules: Sequence[MarkerRule] = INTERVENTION_RULES) -> List[str]:
    found = []
    for rule in rules:
        if any(next(affirmed_mentions(rule.pattern, n.note), None)
               for n in patient.progress_notes):
            found.append(rule.label)
    for label in medication_interventions(patient.medications):
        if label not in found:
            found.append(label)
    return found


def _progression(notes: Iterable[ProgressNote], markers: Sequence[MarkerRule]) -> List[str]:
    stages = []
    for note in notes:
        for marker in markers:
            if marker.label not in stages and marker.pattern.search(note.note or ''):
                stages.append(marker.label)
    return stages


def feeding_progression(notes: Iterable[ProgressNote]) -> List[str]:
    return _progression(notes, FEEDING_MARKERS)


def respiratory_progression(notes: Iterable[ProgressNote]) -> List[str]:
    return _progression(notes, RESPIRATORY_MARKERS)


def current_stage(notes: Sequence[ProgressNote],
                  markers: Sequence[MarkerRule]) -> Optional[str]:
    """Stage named last in the most recent note that names any stage.

    Unlike the progression lists, a stage seen earlier counts again, so
    "back on CPAP" after room air reports CPAP.
    """
    for note in reversed(list(notes)):
        text = note.note or ''
        latest = None
        for marker in markers:
            for match in marker.pattern.finditer(text):
                if latest is None or match.start() > latest[0]:
                    latest = (match.start(), marker.label)
        if latest is not None:
            return latest[1]
    return None


def current_feeding(notes: Sequence[ProgressNote]) -> Optional[str]:
    return current_stage(notes, FEEDING_STATE_MARKERS)


def current_respiratory_support(notes: Sequence[ProgressNote]) -> Optional[str]:
    return current_stage(notes, RESPIRATORY_MARKERS)


# =============================================================================
# Vital trends
# =============================================================================

def _vital(note: ProgressNote, *keys) -> Optional[float]:
    vitals = {str(k).lower(): v for k, v in (note.vitals or {}).items()}
    for key in keys:
        if key in vitals:
            return parse_float(vitals[key])
    return None


def _readings(notes: Sequence[ProgressNote], *keys) -> np.ndarray:
    values = [_vital(n, *keys) for n in notes]
    return np.array([v for v in values if v is not None], dtype=float)


def _fmt(value: float) -> str:
    return f"{round(float(value), 1):g}"


def analyze_vital_trends(notes: Sequence[ProgressNote],
                         is_neonatal: bool = True) -> List[VitalTrend]:
    """Temperature, SpO2 and weight trends over the most recent notes."""
    notes = list(notes)
    if len(notes) < 2:
        return []
    recent = notes[-settings.VITAL_TREND_NOTES:]
    trends = []

    temps = _readings(recent, 'temperature', 'temp')
    if temps.size >= 2:
        temps = np.where(temps > FAHRENHEIT_THRESHOLD, (temps - 32) * 5 / 9, temps)
        low, high = TEMP_RANGE
        latest = temps[-1]
        if np.all((temps >= low) & (temps <= high)):
            trend = 'stable'
        elif latest < low or latest > high:
            trend = 'worsening'
        else:
            trend = 'improving'
        trends.append(VitalTrend('Temperature', trend, f"{_fmt(latest)}°C",
                                 '36.5-37.5°C'))

    spo2 = _readings(recent, 'spo2', 'oxygen_saturation', 'oxygenSaturation')
    if spo2.size >= 2:
        latest = spo2[-1]
        if latest >= SPO2_STABLE:
            trend = 'stable'
        else:
            trend = 'improving' if latest >= spo2[0] else 'worsening'
        normal = '91-95% (preterm), >95% (term)' if is_neonatal else '>94%'
        trends.append(VitalTrend('SpO2', trend, f"{_fmt(latest)}%", normal))

    weights = _readings(recent, 'weight')
    if weights.size >= 2:
        weights = np.where(weights < 10, weights * 1000, weights)
        change = weights[-1] - weights[0]
        trend = 'improving' if change > 0 else ('worsening' if change < 0 else 'stable')
        trends.append(VitalTrend('Weight', trend, f"{_fmt(weights[-1])}g",
                                 'Gaining 15-20g/kg/day'))

    return trends


# =============================================================================
# Resolved vs ongoing
# =============================================================================

def _rest_of_sentence(text: str, end: int) -> str:
    boundary = SENTENCE_BOUNDARY.search(text, end)
    return text[end:boundary.start()] if boundary else text[end:]


def _states_resolution(rest: str) -> bool:
    """True when ``rest`` resolves the condition and never denies it."""
    affirmed = False
    for match in RESOLUTION_PATTERN.finditer(rest):
        if RESOLUTION_NEGATION.search(rest[:match.start()]):
            return False
        affirmed = True
    return affirmed


def is_resolved(pattern: Pattern, notes: Sequence[ProgressNote]) -> bool:
    """Resolution language after a mention, in the last few notes only.

    Each note is read on its own so one note's sentence never runs into the
    next.
    """
    for note in list(notes)[-settings.STATUS_LOOKBACK_NOTES:]:
        text = note.note or ''
        if any(_states_resolution(_rest_of_sentence(text, m.end()))
               for m in pattern.finditer(text)):
            return True
    return False


def conditions_in_diagnosis(diagnosis: str,
                            rules: Sequence[ConditionRule] = CONDITION_RULES) -> List[ConditionRule]:
    return [rule for rule in rules if mentions_condition(rule, diagnosis)]


def categorize_conditions(patient: PatientRecord) -> Tuple[List[str], List[str]]:
    """Split the diagnosed conditions into (resolved, ongoing)."""
    resolved, ongoing = [], []
    for rule in conditions_in_diagnosis(patient.diagnosis):
        if is_resolved(rule.pattern, patient.progress_notes):
            resolved.append(rule.canonical_name)
        else:
            ongoing.append(rule.canonical_name)
    return resolved, ongoing


def condition_status(name: str, patient: PatientRecord,
                     resolved: Sequence[str] = None) -> str:
    """'Resolved' or 'Ongoing' for a canonical condition name."""
    if resolved is not None and name in resolved:
        return RESOLVED
    rule = next((r for r in CONDITION_RULES if r.canonical_name == name), None)
    if rule is None:
        pattern = re.compile(re.escape(name), re.IGNORECASE)
    else:
        pattern = rule.pattern
    return RESOLVED if is_resolved(pattern, patient.progress_notes) else ONGOING


# =============================================================================
# Improvement and assessment
# =============================================================================

def assess_clinical_improvement(notes: Sequence[ProgressNote],
                                vital_trends: Sequence[VitalTrend]) -> bool:
    improving = sum(1 for t in vital_trends if t.trend in ('improving', 'stable'))
    worsening = sum(1 for t in vital_trends if t.trend == 'worsening')

    score = 0
    for note in list(notes)[-settings.STATUS_LOOKBACK_NOTES:]:
        text = (note.note or '').lower()
        score += sum(1 for kw in IMPROVEMENT_KEYWORDS if kw in text)
        score -= sum(1 for kw in WORSENING_KEYWORDS if kw in text)
    return score > 0 and worsening < improving


def overall_assessment(patient: PatientRecord, days_of_stay: int,
                       complications: Sequence[str], clinical_improvement: bool,
                       ongoing: Sequence[str]) -> str:
    patient_type = 'neonate' if patient.is_neonatal else 'child'
    diagnosis = patient.diagnosis or 'an unspecified condition'
    outcome = patient.outcome

    if outcome is Outcome.DISCHARGED:
        parts = [f"This {patient_type} was admitted for {diagnosis} and treated "
                 f"for {days_of_stay} days."]
    elif outcome is Outcome.DECEASED:
        parts = [f"This {patient_type} was admitted in critical condition with "
                 f"{diagnosis}. Despite intensive care for {days_of_stay} days,"]
    else:
        parts = [f"This {patient_type} is currently being managed for {diagnosis} "
                 f"(Day {days_of_stay} of admission)."]

    if complications:
        parts.append(f"Hospital course was complicated by "
                     f"{', '.join(list(complications)[:3])}.")
    else:
        parts.append("Hospital course was uneventful.")

    if outcome is Outcome.DISCHARGED:
        if clinical_improvement:
            parts.append("The patient showed steady clinical improvement and met "
                         "discharge criteria.")
        else:
            parts.append("The patient stabilized and is being discharged for "
                         "continued care.")
        if ongoing:
            parts.append(f"Ongoing conditions requiring follow-up: {', '.join(ongoing)}.")
    elif outcome is Outcome.DECEASED:
        parts.append("the patient succumbed to the illness.")

    return ' '.join(parts)


def length_of_stay(patient: PatientRecord, as_of: Optional[date]) -> int:
    admitted = parse_date(patient.admission_date)
    end = parse_date(patient.release_date) or as_of
    if admitted is None or end is None:
        return 0
    return max(days_between(admitted, end), 0)


def analyze_clinical_course(patient: PatientRecord,
                            as_of: Optional[date] = None) -> ClinicalCourseAnalysis:
    """Reconstruct the hospital course from the notes and medication list."""
    as_of = as_of or patient.assessment_date()
    notes = patient.progress_notes

    days_of_stay = length_of_stay(patient, as_of)
    complications = extract_complications(patient)
    vital_trends = analyze_vital_trends(notes, patient.is_neonatal)
    resolved, ongoing = categorize_conditions(patient)
    improvement = assess_clinical_improvement(notes, vital_trends)

    logger.debug("Course: %d notes, %d complications, %d ongoing",
                 len(notes), len(complications), len(ongoing))
    return ClinicalCourseAnalysis(
        total_days_of_stay=days_of_stay,
        key_events=tuple(extract_key_events(patient)),
        complications=tuple(complications),
        interventions=tuple(extract_interventions(patient)),
        vital_trends=tuple(vital_trends),
        medication_summary=analyze_medications(patient.medications),
        feeding_progression=tuple(feeding_progression(notes)),
        respiratory_support_progression=tuple(respiratory_progression(notes)),
        resolved_conditions=tuple(resolved),
        ongoing_conditions=tuple(ongoing),
        clinical_improvement=improvement,
        overall_assessment=overall_assessment(
            patient, days_of_stay, complications, improvement, ongoing),
        current_feeding=current_feeding(notes),
        current_respiratory_support=current_respiratory_support(notes),
    )
