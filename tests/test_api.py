"""
Tests for the Neonatal Clinical Intelligence API
Run: pytest tests/test_api.py -v
"""
import pytest
from fastapi.testclient import TestClient

from neointel.api.server import app

client = TestClient(app)


def _patient(**overrides):
    body = {
        "id": "NICU-2001",
        "name": "Baby of Lakshmi",
        "dateOfBirth": "2024-03-01",
        "admissionDate": "2024-03-01",
        "gender": "Male",
        "unit": "NICU",
        "birthWeight": 1.5,
        "gestationalAgeWeeks": 32,
        "gestationalAgeDays": 0,
        "indicationsForAdmission": ["Moderate Preterm"],
        "diagnosis": "RDS",
        "outcome": "In Progress",
        "progressNotes": [
            {"date": "2024-03-01", "note": "Grunting, started on CPAP. Surfactant given.",
             "vitals": {"temperature": 36.6, "spo2": 91, "weight": 1.5}},
            {"date": "2024-03-03", "note": "Improving, trophic feeds started.",
             "vitals": {"temperature": 36.9, "spo2": 95, "weight": 1.48}},
        ],
        "medications": [
            {"name": "Ampicillin", "startDate": "2024-03-01", "isActive": True},
        ],
    }
    body.update(overrides)
    return body


class TestHealth:

    def test_health(self):
        r = client.get("/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["fenton_weeks"] == [22, 42]

    def test_docs_available(self):
        r = client.get("/docs")
        assert r.status_code == 200


class TestSummary:

    def test_summary_from_camel_case_record(self):
        r = client.post("/summary", json=_patient())
        assert r.status_code == 200
        data = r.json()
        assert data["patient_id"] == "NICU-2001"
        assert data["gestational_age"]["weeks"] == 32
        assert data["gestational_age"]["source"] == "manual"
        assert data["weight_analysis"]["category_abbreviation"] == "LBW"
        assert "CPAP" in data["clinical_course"]["interventions"]
        assert data["discharge_readiness"]["is_ready"] is False

    def test_as_of(self):
        r = client.post("/summary", params={"as_of": "2024-03-05"}, json=_patient())
        assert r.status_code == 200
        assert r.json()["generated_at"] == "2024-03-05T00:00:00"

    def test_repeatable(self):
        first = client.post("/summary", json=_patient()).json()
        second = client.post("/summary", json=_patient()).json()
        assert first == second

    def test_snake_case_accepted(self):
        body = {"id": "NICU-2002", "birth_weight": 2.1,
                "gestational_age_weeks": 35, "date_of_birth": "2024-03-01"}
        r = client.post("/summary", json=body)
        assert r.status_code == 200
        assert r.json()["weight_analysis"]["weight_in_grams"] == 2100


class TestGestationalAgeAndWeight:

    def test_lmp_dating(self):
        body = _patient(
            dateOfBirth="2024-08-01", admissionDate="2024-08-01",
            gestationalAgeWeeks=None, indicationsForAdmission=["Very Preterm"],
            maternalHistory={"lmp": "2024-01-01"},
        )
        r = client.post("/gestational-age", json=body)
        assert r.status_code == 200
        data = r.json()
        assert data["source"] == "lmp"
        assert (data["weeks"], data["days"]) == (30, 3)

    def test_weight(self):
        r = client.post("/weight", json=_patient(birthWeight=1880))
        assert r.status_code == 200
        assert r.json()["growth_status"] == "Appropriate for Gestational Age"

    def test_weight_missing(self):
        r = client.post("/weight", json=_patient(birthWeight=None))
        assert r.status_code == 200
        assert r.json() is None


class TestCourseAndNarrative:

    def test_course(self):
        r = client.post("/course", json=_patient())
        assert r.status_code == 200
        data = r.json()
        assert data["feeding_progression"] == ["Trophic Feeds Started"]
        assert data["medication_summary"]["antibiotics"][0]["name"] == "Ampicillin"

    def test_narrative_contradiction(self):
        r = client.post("/narrative/validate", json={
            "patient": _patient(gestationalAgeWeeks=30, birthWeight=1.2,
                                indicationsForAdmission=["Very Preterm"]),
            "text": "Term baby admitted with RDS.",
        })
        assert r.status_code == 200
        data = r.json()
        assert data["is_consistent"] is False
        assert data["warnings"][0]["type"] == "error"

    def test_narrative_consistent(self):
        r = client.post("/narrative/validate", json={
            "patient": _patient(),
            "text": "Preterm baby with RDS on CPAP.",
        })
        assert r.json()["is_consistent"] is True


class TestReference:

    def test_fenton_female(self):
        r = client.get("/reference/fenton", params={"gender": "female"})
        assert r.status_code == 200
        data = r.json()
        assert data["gender"] == "female"
        assert data["rows"][0]["p50"] == 480

    def test_invalid_gender(self):
        r = client.get("/reference/fenton", params={"gender": "other"})
        assert r.status_code == 422


class TestValidation:

    def test_negative_weight(self):
        r = client.post("/summary", json=_patient(birthWeight=-1))
        assert r.status_code == 422

    def test_missing_id(self):
        body = _patient()
        del body["id"]
        r = client.post("/summary", json=body)
        assert r.status_code == 422

    @pytest.mark.parametrize("path", ["/summary", "/gestational-age", "/course"])
    def test_bad_note_shape(self, path):
        r = client.post(path, json=_patient(progressNotes=[{"note": "no date"}]))
        assert r.status_code == 422
