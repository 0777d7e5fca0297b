"""
Result data structures for the Clinical Intelligence Engine.

Every result is a frozen dataclass so a computed summary can be handed to
report renderers without risk of them altering it. ``to_dict`` gives the
JSON shape consumed by the dashboard and the discharge-summary generator.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ClinicalWarning:
    severity: Severity
    message: str
    field: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'type': self.severity.value,
            'message': self.message,
            'field': self.field,
            'suggestion': self.suggestion,
        }


# =============================================================================
# Gestational age
# =============================================================================

class GestationalCategory(str, Enum):
    EXTREME_PRETERM = "Extreme Preterm"
    VERY_PRETERM = "Very Preterm"
    MODERATE_PRETERM = "Moderate Preterm"
    LATE_PRETERM = "Late Preterm"
    EARLY_TERM = "Early Term"
    FULL_TERM = "Full Term"
    LATE_TERM = "Late Term"
    POST_TERM = "Post Term"

    @classmethod
    def from_total_days(cls, total_days: int) -> "GestationalCategory":
        for upper_days, category in _GA_BANDS:
            if total_days < upper_days:
                return category
        return cls.POST_TERM

    @property
    def is_preterm(self) -> bool:
        return self in _PRETERM

    @property
    def range_label(self) -> str:
        return _GA_RANGE_LABELS[self]


# Exclusive upper bound of each band, in days.
_GA_BANDS = (
    (28 * 7, GestationalCategory.EXTREME_PRETERM),
    (32 * 7, GestationalCategory.VERY_PRETERM),
    (34 * 7, GestationalCategory.MODERATE_PRETERM),
    (37 * 7, GestationalCategory.LATE_PRETERM),
    (39 * 7, GestationalCategory.EARLY_TERM),
    (41 * 7, GestationalCategory.FULL_TERM),
    (42 * 7, GestationalCategory.LATE_TERM),
)

_PRETERM = frozenset({
    GestationalCategory.EXTREME_PRETERM,
    GestationalCategory.VERY_PRETERM,
    GestationalCategory.MODERATE_PRETERM,
    GestationalCategory.LATE_PRETERM,
})

_GA_RANGE_LABELS = {
    GestationalCategory.EXTREME_PRETERM: "<28 weeks",
    GestationalCategory.VERY_PRETERM: "28-31+6 weeks",
    GestationalCategory.MODERATE_PRETERM: "32-33+6 weeks",
    GestationalCategory.LATE_PRETERM: "34-36+6 weeks",
    GestationalCategory.EARLY_TERM: "37-38+6 weeks",
    GestationalCategory.FULL_TERM: "39-40+6 weeks",
    GestationalCategory.LATE_TERM: "41-41+6 weeks",
    GestationalCategory.POST_TERM: "≥42 weeks",
}


class GASource(str, Enum):
    LMP = "lmp"
    EDD = "edd"
    MANUAL = "manual"
    NONE = "none"

    @property
    def label(self) -> str:
        return {
            GASource.LMP: "LMP",
            GASource.EDD: "EDD",
            GASource.MANUAL: "manual entry",
            GASource.NONE: "none",
        }[self]


@dataclass(frozen=True)
class GestationalAgeResult:
    """GA at the reference date.

    ``weeks``, ``days`` and ``category`` are derived from ``total_days`` so
    they can never disagree with it.
    """
    total_days: int
    source: GASource
    is_validated: bool
    warnings: Tuple[ClinicalWarning, ...] = ()

    @property
    def weeks(self) -> int:
        return self.total_days // 7

    @property
    def days(self) -> int:
        return self.total_days % 7

    @property
    def category(self) -> GestationalCategory:
        return GestationalCategory.from_total_days(self.total_days)

    @property
    def is_available(self) -> bool:
        return self.source is not GASource.NONE

    @property
    def ga_string(self) -> str:
        return f"{self.weeks}+{self.days}" if self.days else f"{self.weeks}"

    @property
    def category_description(self) -> str:
        if not self.is_available:
            return "Unknown"
        return (f"{self.category.value} ({self.ga_string} weeks, "
                f"{self.category.range_label})")

    def to_dict(self) -> dict:
        return {
            'weeks': self.weeks,
            'days': self.days,
            'total_days': self.total_days,
            'category': self.category.value if self.is_available else None,
            'category_description': self.category_description,
            'source': self.source.value,
            'is_validated': self.is_validated,
            'warnings': [w.to_dict() for w in self.warnings],
        }


# =============================================================================
# Weight
# =============================================================================

class WeightCategory(str, Enum):
    ELBW = "Extremely Low Birth Weight"
    VLBW = "Very Low Birth Weight"
    LBW = "Low Birth Weight"
    NORMAL = "Normal Birth Weight"
    MACROSOMIA = "Macrosomia"

    @property
    def abbreviation(self) -> str:
        return {
            WeightCategory.ELBW: "ELBW",
            WeightCategory.VLBW: "VLBW",
            WeightCategory.LBW: "LBW",
            WeightCategory.NORMAL: "NBW",
            WeightCategory.MACROSOMIA: "Macrosomia",
        }[self]


class GrowthStatus(str, Enum):
    SGA = "Small for Gestational Age"
    AGA = "Appropriate for Gestational Age"
    LGA = "Large for Gestational Age"

    @property
    def abbreviation(self) -> str:
        return self.name


@dataclass(frozen=True)
class WeightAnalysis:
    weight_in_grams: float
    category: WeightCategory
    growth_status: Optional[GrowthStatus] = None
    percentile: Optional[float] = None
    z_score: Optional[float] = None

    @property
    def weight_in_kg(self) -> float:
        return self.weight_in_grams / 1000.0

    def to_dict(self) -> dict:
        return {
            'weight_in_grams': round(self.weight_in_grams, 1),
            'weight_in_kg': round(self.weight_in_kg, 3),
            'category': self.category.value,
            'category_abbreviation': self.category.abbreviation,
            'growth_status': (self.growth_status.value
                              if self.growth_status else None),
            'percentile': (round(self.percentile, 1)
                           if self.percentile is not None else None),
            'z_score': (round(self.z_score, 3)
                        if self.z_score is not None else None),
        }


# =============================================================================
# Clinical course
# =============================================================================

@dataclass(frozen=True)
class ClinicalEvent:
    day: int
    date: str
    event: str
    severity: str   # 'critical', 'major', 'minor'
    category: str   # 'complication', 'treatment', 'improvement'

    def to_dict(self) -> dict:
        return {
            'day': self.day, 'date': self.date, 'event': self.event,
            'severity': self.severity, 'category': self.category,
        }


@dataclass(frozen=True)
class VitalTrend:
    parameter: str
    trend: str      # 'improving', 'stable', 'worsening'
    latest_value: str
    normal_range: str

    def to_dict(self) -> dict:
        return {
            'parameter': self.parameter, 'trend': self.trend,
            'latest_value': self.latest_value,
            'normal_range': self.normal_range,
        }


@dataclass(frozen=True)
class MedicationInfo:
    name: str
    status: str     # 'active' or 'discontinued'
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'name': self.name, 'status': self.status,
            'start_date': self.start_date, 'end_date': self.end_date,
        }


@dataclass(frozen=True)
class MedicationSummary:
    total_medications: int = 0
    antibiotics: Tuple[MedicationInfo, ...] = ()
    respiratory_meds: Tuple[MedicationInfo, ...] = ()
    cardiovascular_meds: Tuple[MedicationInfo, ...] = ()
    neurological_meds: Tuple[MedicationInfo, ...] = ()
    nutritional_support: Tuple[MedicationInfo, ...] = ()
    others: Tuple[MedicationInfo, ...] = ()
    active_medications: Tuple[MedicationInfo, ...] = ()
    discontinued_medications: Tuple[MedicationInfo, ...] = ()

    def to_dict(self) -> dict:
        out = {'total_medications': self.total_medications}
        for key in ('antibiotics', 'respiratory_meds', 'cardiovascular_meds',
                    'neurological_meds', 'nutritional_support', 'others',
                    'active_medications', 'discontinued_medications'):
            out[key] = [m.to_dict() for m in getattr(self, key)]
        return out


@dataclass(frozen=True)
class ClinicalCourseAnalysis:
    total_days_of_stay: int
    key_events: Tuple[ClinicalEvent, ...]
    complications: Tuple[str, ...]
    interventions: Tuple[str, ...]
    vital_trends: Tuple[VitalTrend, ...]
    medication_summary: MedicationSummary
    feeding_progression: Tuple[str, ...]
    respiratory_support_progression: Tuple[str, ...]
    resolved_conditions: Tuple[str, ...]
    ongoing_conditions: Tuple[str, ...]
    clinical_improvement: bool
    overall_assessment: str
    current_feeding: Optional[str] = None
    current_respiratory_support: Optional[str] = None

    def vital_trend(self, parameter: str) -> Optional[VitalTrend]:
        for trend in self.vital_trends:
            if trend.parameter == parameter:
                return trend
        return None

    def to_dict(self) -> dict:
        return {
            'total_days_of_stay': self.total_days_of_stay,
            'key_events': [e.to_dict() for e in self.key_events],
            'complications': list(self.complications),
            'interventions': list(self.interventions),
            'vital_trends': [t.to_dict() for t in self.vital_trends],
            'medication_summary': self.medication_summary.to_dict(),
            'feeding_progression': list(self.feeding_progression),
            'respiratory_support_progression':
                list(self.respiratory_support_progression),
            'resolved_conditions': list(self.resolved_conditions),
            'ongoing_conditions': list(self.ongoing_conditions),
            'clinical_improvement': self.clinical_improvement,
            'overall_assessment': self.overall_assessment,
            'current_feeding': self.current_feeding,
            'current_respiratory_support': self.current_respiratory_support,
        }


# =============================================================================
# Diagnosis, discharge and the composed summary
# =============================================================================

@dataclass(frozen=True)
class IndicationValidation:
    indication: str
    is_valid: bool
    reason: Optional[str] = None
    suggested_correction: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'indication': self.indication, 'is_valid': self.is_valid,
            'reason': self.reason,
            'suggested_correction': self.suggested_correction,
        }


@dataclass(frozen=True)
class DiagnosisAnalysis:
    primary_diagnosis: str
    admission_indications: Tuple[str, ...]
    indications_validation: Tuple[IndicationValidation, ...]
    final_diagnosis: str
    diagnosis_consistency_score: int
    warnings: Tuple[ClinicalWarning, ...] = ()

    def to_dict(self) -> dict:
        return {
            'primary_diagnosis': self.primary_diagnosis,
            'admission_indications': list(self.admission_indications),
            'indications_validation':
                [v.to_dict() for v in self.indications_validation],
            'final_diagnosis': self.final_diagnosis,
            'diagnosis_consistency_score': self.diagnosis_consistency_score,
            'warnings': [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class DischargeCriterion:
    criterion: str
    met: bool
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {'criterion': self.criterion, 'met': self.met,
                'notes': self.notes}


@dataclass(frozen=True)
class DischargeReadiness:
    is_ready: bool
    criteria: Tuple[DischargeCriterion, ...]
    pending_issues: Tuple[str, ...]
    recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            'is_ready': self.is_ready,
            'criteria': [c.to_dict() for c in self.criteria],
            'pending_issues': list(self.pending_issues),
            'recommendations': list(self.recommendations),
        }


@dataclass(frozen=True)
class PatientProfile:
    name: str
    gender: str
    date_of_birth: str
    age_description: str
    unit: str
    is_neonatal: bool

    def to_dict(self) -> dict:
        return {
            'name': self.name, 'gender': self.gender,
            'date_of_birth': self.date_of_birth,
            'age_description': self.age_description, 'unit': self.unit,
            'is_neonatal': self.is_neonatal,
            'is_pediatric': not self.is_neonatal,
        }


@dataclass(frozen=True)
class MaternalFactorSummary:
    has_risk_factors: bool = False
    significant_factors: Tuple[str, ...] = ()
    antenatal_care: str = "Not documented"
    delivery_details: str = "Not documented"
    implications: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            'has_risk_factors': self.has_risk_factors,
            'significant_factors': list(self.significant_factors),
            'antenatal_care': self.antenatal_care,
            'delivery_details': self.delivery_details,
            'implications': list(self.implications),
        }


@dataclass(frozen=True)
class ComprehensiveClinicalSummary:
    patient_id: str
    patient_profile: PatientProfile
    gestational_age: GestationalAgeResult
    weight_analysis: Optional[WeightAnalysis]
    maternal_factors: MaternalFactorSummary
    clinical_course: ClinicalCourseAnalysis
    diagnosis: DiagnosisAnalysis
    discharge_readiness: Optional[DischargeReadiness]
    warnings: Tuple[ClinicalWarning, ...]
    generated_at: str

    def warnings_by_severity(self, severity: Severity) -> List[ClinicalWarning]:
        return [w for w in self.warnings if w.severity is severity]

    def to_dict(self) -> dict:
        return {
            'patient_id': self.patient_id,
            'patient_profile': self.patient_profile.to_dict(),
            'gestational_age': self.gestational_age.to_dict(),
            'weight_analysis': (self.weight_analysis.to_dict()
                                if self.weight_analysis else None),
            'maternal_factors': self.maternal_factors.to_dict(),
            'clinical_course': self.clinical_course.to_dict(),
            'diagnosis': self.diagnosis.to_dict(),
            'discharge_readiness': (self.discharge_readiness.to_dict()
                                    if self.discharge_readiness else None),
            'warnings': [w.to_dict() for w in self.warnings],
            'generated_at': self.generated_at,
        }
