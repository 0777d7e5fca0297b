"""
Tests for the cohort report runner.
"""
import json

import pandas as pd
import pytest

from neointel.batch.cohort import (
    COHORT_COLUMNS, cohort_frame, load_records, main, summarize_cohort,
)
from neointel.models.records import Outcome, PatientRecord

DOCUMENTS = [
    {
        "id": "NICU-0101",
        "name": "Baby of Meera",
        "dateOfBirth": "2024-03-01",
        "admissionDate": "2024-03-01",
        "gender": "Female",
        "unit": "Neonatal Intensive Care Unit",
        "birthWeight": 1450,
        "gestationalAgeWeeks": 31,
        "gestationalAgeDays": 4,
        "indicationsForAdmission": ["Very Preterm", "VLBW"],
        "diagnosis": "RDS",
        "outcome": "In Progress",
        "progressNotes": [
            {"date": "2024-03-02", "note": "On CPAP, surfactant given.",
             "vitals": {"temperature": 36.7, "spo2": 92}},
            {"date": "2024-03-04", "note": "Weaned to room air.",
             "vitals": {"temperature": 36.9, "spo2": 97}},
        ],
        "medications": [{"name": "Caffeine citrate", "startDate": "2024-03-01"}],
    },
    {
        "id": "PICU-0042",
        "dateOfBirth": "2023-05-10",
        "admissionDate": "2024-02-01",
        "releaseDate": "2024-02-06",
        "gender": "Male",
        "unit": "PICU",
        "diagnosis": "Pneumonia",
        "outcome": "Discharged",
    },
]


class TestLoadRecords:

    def test_array(self, tmp_path):
        path = tmp_path / "patients.json"
        path.write_text(json.dumps(DOCUMENTS))
        records = load_records(path)
        assert [r.id for r in records] == ["NICU-0101", "PICU-0042"]
        assert records[1].outcome is Outcome.DISCHARGED
        assert records[0].progress_notes[1].vitals['spo2'] == 97

    def test_wrapped(self, tmp_path):
        path = tmp_path / "patients.json"
        path.write_text(json.dumps({"patients": DOCUMENTS}))
        assert len(load_records(path)) == 2


class TestSummarizeCohort:

    @pytest.fixture
    def records(self):
        return [PatientRecord.from_dict(d) for d in DOCUMENTS]

    def test_parallel_matches_sequential(self, records):
        sequential = summarize_cohort(records, workers=1)
        parallel = summarize_cohort(records, workers=4)
        assert [s.to_dict() for s in sequential] == [s.to_dict() for s in parallel]

    def test_frame(self, records):
        frame = cohort_frame(summarize_cohort(records, workers=1))
        assert list(frame.columns) == COHORT_COLUMNS
        assert list(frame['patient_id']) == ["NICU-0101", "PICU-0042"]
        first = frame.iloc[0]
        assert first['ga_weeks'] == 31
        assert first['weight_category'] == "VLBW"
        assert first['consistency_score'] == 100
        assert pd.isna(frame.iloc[1]['discharge_ready'])
        assert frame.iloc[1]['length_of_stay'] == 5

    def test_empty(self):
        frame = cohort_frame([])
        assert frame.empty
        assert list(frame.columns) == COHORT_COLUMNS


class TestMain:

    def test_writes_csv(self, tmp_path, capsys):
        source = tmp_path / "patients.json"
        source.write_text(json.dumps(DOCUMENTS))
        output = tmp_path / "out" / "cohort.csv"

        assert main(["--input", str(source), "--output", str(output), "-w", "2"]) == 0
        frame = pd.read_csv(output)
        assert len(frame) == 2
        assert "COHORT REPORT" in capsys.readouterr().out

    def test_missing_input(self, tmp_path):
        assert main(["--input", str(tmp_path / "absent.json"),
                     "--output", str(tmp_path / "cohort.csv")]) == 1

    def test_invalid_json(self, tmp_path):
        source = tmp_path / "patients.json"
        source.write_text("{not json")
        assert main(["-i", str(source), "-o", str(tmp_path / "cohort.csv")]) == 1
