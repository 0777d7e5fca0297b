"""
Tests for building patient records from store documents.
"""
from neointel.models.records import Outcome, PatientRecord, Unit


class TestFromDict:

    def test_outcome_defaults_match_dataclass(self):
        record = PatientRecord.from_dict({"id": "x"})
        assert record.outcome is Outcome.IN_PROGRESS
        assert record.outcome is PatientRecord(id="x").outcome

    def test_unknown_outcome_treated_as_in_progress(self):
        record = PatientRecord.from_dict({"id": "x", "outcome": "Transferred out"})
        assert record.outcome is Outcome.IN_PROGRESS

    def test_enum_values_and_names(self):
        record = PatientRecord.from_dict(
            {"id": "x", "outcome": "deceased", "unit": "Pediatric Intensive Care Unit"})
        assert record.outcome is Outcome.DECEASED
        assert record.unit is Unit.PICU

    def test_camel_case_keys(self):
        record = PatientRecord.from_dict({
            "id": 7,
            "dateOfBirth": "2024-03-01",
            "progressNotes": [{"date": "2024-03-02", "note": None}],
            "medications": [{"name": "Ampicillin", "isActive": False}],
        })
        assert record.id == "7"
        assert record.date_of_birth == "2024-03-01"
        assert record.progress_notes[0].note == ""
        assert not record.medications[0].is_active
