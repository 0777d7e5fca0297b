"""
Tests for indication validation, the consistency score and the final diagnosis line.
"""
import pytest

from neointel.models.data_structures import (
    GrowthStatus, IndicationValidation, Severity, WeightAnalysis, WeightCategory,
)
from neointel.models.diagnosis import (
    analyze_diagnosis, build_final_diagnosis, consistency_score,
    diagnosis_text_warnings, validate_indication,
)
from neointel.models.growth_engine import analyze_weight
from neointel.models.narrative_miner import analyze_clinical_course
from neointel.models.records import Outcome


class TestValidateIndication:

    def test_wrong_prematurity_band(self, ga_factory):
        result = validate_indication("Extreme Prematurity", ga_factory(30), None)
        assert not result.is_valid
        assert result.reason == "Extreme prematurity (<28 weeks) selected but GA is 30 weeks"
        assert result.suggested_correction == "Very Preterm"

    def test_generic_prematurity_at_term(self, ga_factory):
        result = validate_indication("Prematurity", ga_factory(39), None)
        assert not result.is_valid
        assert "(term)" in result.reason
        assert result.suggested_correction == "Full Term"

    def test_matching_band(self, ga_factory):
        assert validate_indication("Late Preterm", ga_factory(35), None).is_valid

    def test_weight_band_mismatch(self, ga_factory):
        weight = WeightAnalysis(1800, WeightCategory.LBW)
        result = validate_indication("VLBW", ga_factory(32), weight)
        assert not result.is_valid
        assert result.reason == "VLBW (1000-1500g) selected but weight is 1800g"
        assert result.suggested_correction == "LBW"

    def test_low_birth_weight_is_not_very_low(self, ga_factory):
        weight = WeightAnalysis(1200, WeightCategory.VLBW)
        assert validate_indication("Very low birth weight", ga_factory(30), weight).is_valid
        loose = validate_indication("Low birth weight", ga_factory(30), weight)
        assert not loose.is_valid
        assert loose.suggested_correction == "VLBW"

    def test_growth_mismatch(self, ga_factory):
        weight = WeightAnalysis(1880, WeightCategory.LBW, GrowthStatus.AGA, 50.0, 0.0)
        result = validate_indication("SGA", ga_factory(32), weight)
        assert not result.is_valid
        assert result.suggested_correction == "AGA"

    def test_unrelated_indication(self, ga_factory):
        weight = WeightAnalysis(1880, WeightCategory.LBW)
        assert validate_indication("Respiratory distress", ga_factory(32), weight).is_valid


class TestConsistencyScore:

    def _validations(self, valid, invalid):
        return ([IndicationValidation("x", True)] * valid
                + [IndicationValidation("y", False)] * invalid)

    @pytest.mark.parametrize("valid,invalid,expected", [
        (0, 0, 100),
        (1, 1, 50),
        (2, 1, 67),
        (1, 7, 13),
        (0, 3, 0),
    ])
    def test_rounding(self, valid, invalid, expected):
        assert consistency_score(self._validations(valid, invalid)) == expected


class TestDiagnosisText:

    def test_preterm_word_at_term(self, ga_factory):
        warnings = diagnosis_text_warnings("Preterm baby with RDS", ga_factory(39))
        assert len(warnings) == 1
        assert warnings[0].field == 'diagnosis'

    def test_term_word_for_preterm(self, ga_factory):
        warnings = diagnosis_text_warnings("Term baby with sepsis", ga_factory(30))
        assert warnings and "(preterm)" in warnings[0].message

    def test_term_as_duration_ignored(self, ga_factory):
        assert diagnosis_text_warnings("RDS needing short term ventilation",
                                       ga_factory(30)) == []
        assert diagnosis_text_warnings("Pre-term baby, long-term follow up",
                                       ga_factory(30)) == []

    def test_full_term_for_preterm(self, ga_factory):
        assert len(diagnosis_text_warnings("Full-term, TTN", ga_factory(33))) == 1

    def test_consistent_text(self, ga_factory):
        assert diagnosis_text_warnings("Preterm baby with RDS", ga_factory(30)) == []


class TestFinalDiagnosis:

    def test_preterm_vlbw_resolved(self, patient_factory, note_factory, ga_factory):
        patient = patient_factory(progress_notes=[
            note_factory(6, "RDS resolved, on room air."),
        ])
        weight = WeightAnalysis(1200, WeightCategory.VLBW)
        line = build_final_diagnosis(patient, ga_factory(30, 2), weight,
                                     analyze_clinical_course(patient))
        assert line == "Very Preterm (30+2 weeks), VLBW, RDS - Resolved"

    def test_sga_included(self, patient_factory, ga_factory):
        patient = patient_factory()
        weight = WeightAnalysis(1500, WeightCategory.LBW, GrowthStatus.SGA)
        line = build_final_diagnosis(patient, ga_factory(34), weight,
                                     analyze_clinical_course(patient))
        assert line == "Late Preterm (34 weeks), LBW, SGA, RDS - Ongoing"

    def test_term_normal_weight(self, patient_factory, ga_factory):
        patient = patient_factory(diagnosis="TTN")
        weight = WeightAnalysis(3200, WeightCategory.NORMAL, GrowthStatus.AGA)
        line = build_final_diagnosis(patient, ga_factory(39), weight,
                                     analyze_clinical_course(patient))
        assert line == "Term, TTN - Ongoing"

    def test_extra_complications_appended(self, patient_factory, note_factory, ga_factory):
        patient = patient_factory(progress_notes=[
            note_factory(2, "Blood culture positive, diagnosed with sepsis."),
        ])
        line = build_final_diagnosis(patient, ga_factory(32), None,
                                     analyze_clinical_course(patient))
        assert line == "Moderate Preterm (32 weeks), RDS - Ongoing, Sepsis - Ongoing"

    def test_deceased_not_annotated(self, patient_factory, ga_factory):
        patient = patient_factory(outcome=Outcome.DECEASED, release_date="2024-03-04")
        line = build_final_diagnosis(patient, ga_factory(32), None,
                                     analyze_clinical_course(patient))
        assert line == "Moderate Preterm (32 weeks), RDS"


class TestAnalyzeDiagnosis:

    def test_half_of_indications_hold(self, patient_factory, ga_factory):
        patient = patient_factory(indications_for_admission=["Late Preterm", "ELBW"],
                                  birth_weight=2.0)
        ga = ga_factory(35)
        weight = analyze_weight(patient.birth_weight, ga, patient.gender)
        result = analyze_diagnosis(patient, ga, weight, analyze_clinical_course(patient))
        assert result.diagnosis_consistency_score == 50
        assert [v.is_valid for v in result.indications_validation] == [True, False]
        assert len(result.warnings) == 1
        assert result.warnings[0].severity is Severity.WARNING
        assert result.warnings[0].field == 'indicationsForAdmission'
        assert result.warnings[0].suggestion == "LBW"

    def test_no_indications_scores_full(self, patient_factory, ga_factory):
        patient = patient_factory(indications_for_admission=[])
        result = analyze_diagnosis(patient, ga_factory(32), None,
                                   analyze_clinical_course(patient))
        assert result.diagnosis_consistency_score == 100
        assert result.primary_diagnosis == "RDS"
