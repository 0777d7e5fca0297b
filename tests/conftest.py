"""
Shared record builders for the clinical intelligence tests.
"""
from datetime import date, timedelta

import pytest

from neointel.models.data_structures import GASource, GestationalAgeResult
from neointel.models.records import (
    MaternalHistory, Medication, Outcome, PatientRecord, ProgressNote, Unit,
)

ADMITTED = date(2024, 3, 1)


def build_patient(**overrides) -> PatientRecord:
    fields = dict(
        id="NICU-0001",
        name="Baby of Asha",
        date_of_birth=ADMITTED.isoformat(),
        admission_date=ADMITTED.isoformat(),
        gender="Male",
        unit=Unit.NICU,
        birth_weight=1.5,
        gestational_age_weeks=32,
        gestational_age_days=0,
        indications_for_admission=("Moderate Preterm",),
        diagnosis="RDS",
        outcome=Outcome.IN_PROGRESS,
    )
    fields.update(overrides)
    for key in ('indications_for_admission', 'progress_notes', 'medications'):
        if key in fields:
            fields[key] = tuple(fields[key])
    return PatientRecord(**fields)


def build_note(day: int, text: str, **vitals) -> ProgressNote:
    """Note written on ``day`` of stay (admission day is day 1)."""
    return ProgressNote(
        date=(ADMITTED + timedelta(days=day - 1)).isoformat(),
        note=text,
        vitals=vitals,
    )


def ga_result(weeks: int, days: int = 0,
              source: GASource = GASource.MANUAL) -> GestationalAgeResult:
    return GestationalAgeResult(weeks * 7 + days, source, True)


@pytest.fixture
def patient_factory():
    return build_patient


@pytest.fixture
def note_factory():
    return build_note


@pytest.fixture
def ga_factory():
    return ga_result


@pytest.fixture
def discharge_ready_patient():
    """Moderate preterm infant at 34+2 corrected, feeding and on room air."""
    return build_patient(
        gestational_age_weeks=33,
        gestational_age_days=0,
        birth_weight=1.9,
        diagnosis="RDS",
        progress_notes=[
            build_note(8, "Tolerating full feeds, on room air.",
                       temperature=36.8, weight=1.90, spo2=97),
            build_note(9, "Direct breastfeeding, stable.",
                       temperature=37.0, weight=1.95, spo2=98),
            build_note(10, "Stable in open cot.",
                       temperature=36.9, weight=2.0, spo2=98),
        ],
        medications=[
            Medication("Caffeine citrate", "2024-03-01", "2024-03-07", is_active=False),
            Medication("Multivitamin drops", "2024-03-05"),
        ],
    )


@pytest.fixture
def maternal_history():
    return MaternalHistory(
        lmp="2024-01-01",
        edd="2024-10-07",
        risk_factors=("GDM", "PPROM"),
        gravida=2, para=1, abortion=0, living=1,
        anc_received=True, anc_visits=4, antenatal_steroids_given=True,
        prolonged_rupture=True,
    )
