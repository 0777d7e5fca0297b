"""
Input records for the Clinical Intelligence Engine.

These mirror the documents held by the patient store. The engine reads them
and never mutates them; dates are kept exactly as received so that a bad
value can be reported instead of crashing the analysis.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from neointel.models.dates import parse_date


class Unit(str, Enum):
    NICU = "Neonatal Intensive Care Unit"
    PICU = "Pediatric Intensive Care Unit"
    SNCU = "Special New Born Care Unit"
    HDU = "High Dependency Unit"
    GENERAL_WARD = "General Ward"

    @property
    def is_neonatal(self) -> bool:
        return self in (Unit.NICU, Unit.SNCU)


class Outcome(str, Enum):
    IN_PROGRESS = "In Progress"
    DISCHARGED = "Discharged"
    REFERRED = "Referred"
    DECEASED = "Deceased"
    STEP_DOWN = "Step Down"


@dataclass(frozen=True)
class MaternalHistory:
    lmp: object = None
    edd: object = None
    menstrual_cycle_length: Optional[int] = None
    risk_factors: Tuple[str, ...] = ()
    gravida: Optional[int] = None
    para: Optional[int] = None
    abortion: Optional[int] = None
    living: Optional[int] = None
    anc_received: Optional[bool] = None
    anc_visits: Optional[int] = None
    antenatal_steroids_given: Optional[bool] = None
    prolonged_rupture: bool = False
    maternal_fever: bool = False


@dataclass(frozen=True)
class ProgressNote:
    date: object
    note: str = ""
    vitals: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Medication:
    name: str
    start_date: object = None
    stop_date: object = None
    is_active: bool = True
    dose: Optional[str] = None
    route: Optional[str] = None


@dataclass(frozen=True)
class PatientRecord:
    id: str
    name: str = ""
    date_of_birth: object = None
    admission_date: object = None
    release_date: object = None
    gender: str = "Unknown"
    unit: Unit = Unit.NICU
    birth_weight: Optional[float] = None
    gestational_age_weeks: Optional[int] = None
    gestational_age_days: Optional[int] = None
    maternal_history: Optional[MaternalHistory] = None
    indications_for_admission: Tuple[str, ...] = ()
    diagnosis: str = ""
    outcome: Optional[Outcome] = Outcome.IN_PROGRESS
    progress_notes: Tuple[ProgressNote, ...] = ()
    medications: Tuple[Medication, ...] = ()

    @property
    def is_neonatal(self) -> bool:
        return self.unit.is_neonatal

    def assessment_date(self) -> Optional[date]:
        """Date the record describes: release, else last note, else admission."""
        candidates = [self.release_date]
        candidates.extend(n.date for n in reversed(self.progress_notes))
        candidates.append(self.admission_date)
        for value in candidates:
            parsed = parse_date(value)
            if parsed is not None:
                return parsed
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "PatientRecord":
        """Build a record from a store document (snake_case or camelCase keys)."""
        maternal = _get(data, "maternal_history", "maternalHistory")
        unit = _get(data, "unit")
        outcome = _get(data, "outcome")
        return cls(
            id=str(_get(data, "id", default="") or ""),
            name=_get(data, "name", default="") or "",
            date_of_birth=_get(data, "date_of_birth", "dateOfBirth"),
            admission_date=_get(data, "admission_date", "admissionDate"),
            release_date=_get(data, "release_date", "releaseDate"),
            gender=_get(data, "gender", default="Unknown") or "Unknown",
            unit=_coerce_enum(Unit, unit, Unit.NICU),
            birth_weight=_get(data, "birth_weight", "birthWeight"),
            gestational_age_weeks=_get(
                data, "gestational_age_weeks", "gestationalAgeWeeks"),
            gestational_age_days=_get(
                data, "gestational_age_days", "gestationalAgeDays"),
            maternal_history=_maternal_from_dict(maternal) if maternal else None,
            indications_for_admission=tuple(
                _get(data, "indications_for_admission",
                     "indicationsForAdmission", default=()) or ()),
            diagnosis=_get(data, "diagnosis", default="") or "",
            outcome=_coerce_enum(Outcome, outcome, Outcome.IN_PROGRESS),
            progress_notes=tuple(
                ProgressNote(
                    date=_get(n, "date"),
                    note=_get(n, "note", default="") or "",
                    vitals=dict(_get(n, "vitals", default={}) or {}),
                )
                for n in _get(data, "progress_notes", "progressNotes",
                              default=()) or ()
            ),
            medications=tuple(
                Medication(
                    name=_get(m, "name", default="") or "",
                    start_date=_get(m, "start_date", "startDate"),
                    stop_date=_get(m, "stop_date", "stopDate"),
                    is_active=_get(m, "is_active", "isActive",
                                   default=True) is not False,
                    dose=_get(m, "dose"),
                    route=_get(m, "route"),
                )
                for m in _get(data, "medications", default=()) or ()
            ),
        )


def _get(data: dict, *keys, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _coerce_enum(enum_cls, value, default):
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if str(value).strip().lower() in (member.value.lower(), member.name.lower()):
            return member
    return default


def _maternal_from_dict(data: dict) -> MaternalHistory:
    return MaternalHistory(
        lmp=_get(data, "lmp"),
        edd=_get(data, "edd"),
        menstrual_cycle_length=_get(
            data, "menstrual_cycle_length", "menstrualCycleLength"),
        risk_factors=tuple(_get(data, "risk_factors", "riskFactors",
                                default=()) or ()),
        gravida=_get(data, "gravida"),
        para=_get(data, "para"),
        abortion=_get(data, "abortion"),
        living=_get(data, "living"),
        anc_received=_get(data, "anc_received", "ancReceived"),
        anc_visits=_get(data, "anc_visits", "ancVisits"),
        antenatal_steroids_given=_get(
            data, "antenatal_steroids_given", "antenatalSteroidsGiven"),
        prolonged_rupture=bool(_get(data, "prolonged_rupture",
                                    "prolongedRupture", default=False)),
        maternal_fever=bool(_get(data, "maternal_fever", "maternalFever",
                                 default=False)),
    )
