"""
Neonatal Clinical Intelligence — FastAPI Backend
================================================

Stateless HTTP front for the clinical intelligence engine. Every request
carries the full patient record; nothing is stored between calls.

REST API endpoints:
    POST   /summary                 Comprehensive clinical summary
    POST   /gestational-age         Validated gestational age
    POST   /weight                  Birth-weight and growth classification
    POST   /course                  Reconstructed clinical course
    POST   /narrative/validate      Check drafted free text against the record
    GET    /reference/fenton        Fenton p10/p50/p90 reference rows
    GET    /health                  Health check
"""
import logging
import secrets
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from neointel.config.logging import configure_logging
from neointel.config.settings import (
    API_VERSION, AUTH_ENABLED, AUTH_PASSWORD, AUTH_USERNAME, HOST, LOG_LEVEL,
    PORT,
)
from neointel.models.gestational_age import resolve
from neointel.models.growth_engine import FentonGrowthEngine, analyze_weight
from neointel.models.narrative_miner import analyze_clinical_course
from neointel.models.narrative_validator import validate_narrative
from neointel.models.records import PatientRecord
from neointel.models.summary import generate_comprehensive_clinical_summary

logger = logging.getLogger(__name__)

# ── Auth ─────────────────────────────────────────────────────────
security = HTTPBasic()

def verify_credentials(credentials: HTTPBasicCredentials = Depends(security)):
    """HTTP Basic Auth, only enforced when AUTH_ENABLED=true."""
    if not AUTH_ENABLED:
        return True
    correct_user = secrets.compare_digest(credentials.username, AUTH_USERNAME)
    correct_pass = secrets.compare_digest(credentials.password, AUTH_PASSWORD)
    if not (correct_user and correct_pass):
        raise HTTPException(
            status_code=401,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return True

# ── Reference data ────────────────────────────────────────────

_growth_engine = FentonGrowthEngine()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(LOG_LEVEL)
    low, high = _growth_engine.week_range
    logger.info("Clinical intelligence engine ready (Fenton weeks %d-%d)", low, high)
    yield
    logger.info("Shutting down")


# ── App ──────────────────────────────────────────────────────

_deps = [Depends(verify_credentials)] if AUTH_ENABLED else []

app = FastAPI(
    title="Neonatal Clinical Intelligence API",
    description=(
        "Deterministic clinical analysis of neonatal and pediatric records: "
        "gestational-age reconciliation, Fenton growth classification, "
        "narrative mining with negation handling, diagnosis consistency "
        "checks and discharge readiness."
    ),
    version=API_VERSION,
    lifespan=lifespan,
    dependencies=_deps,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Models ────────────────────────────────────────────

class _StoreModel(BaseModel):
    """Accepts the store's camelCase keys as well as snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MaternalHistoryRequest(_StoreModel):
    lmp: Optional[str] = None
    edd: Optional[str] = None
    menstrual_cycle_length: Optional[int] = Field(None, ge=15, le=60)
    risk_factors: List[str] = []
    gravida: Optional[int] = Field(None, ge=0)
    para: Optional[int] = Field(None, ge=0)
    abortion: Optional[int] = Field(None, ge=0)
    living: Optional[int] = Field(None, ge=0)
    anc_received: Optional[bool] = None
    anc_visits: Optional[int] = Field(None, ge=0)
    antenatal_steroids_given: Optional[bool] = None
    prolonged_rupture: bool = False
    maternal_fever: bool = False


class ProgressNoteRequest(_StoreModel):
    date: str
    note: str = ""
    vitals: dict = {}


class MedicationRequest(_StoreModel):
    name: str = Field(..., min_length=1)
    start_date: Optional[str] = None
    stop_date: Optional[str] = None
    is_active: bool = True
    dose: Optional[str] = None
    route: Optional[str] = None


class PatientRecordRequest(_StoreModel):
    id: str = Field(..., description="Patient identifier")
    name: str = ""
    date_of_birth: Optional[str] = None
    admission_date: Optional[str] = None
    release_date: Optional[str] = None
    gender: str = "Unknown"
    unit: Optional[str] = None
    birth_weight: Optional[float] = Field(None, gt=0, le=10000)
    gestational_age_weeks: Optional[int] = Field(None, ge=0, le=50)
    gestational_age_days: Optional[int] = Field(None, ge=0)
    maternal_history: Optional[MaternalHistoryRequest] = None
    indications_for_admission: List[str] = []
    diagnosis: str = ""
    outcome: Optional[str] = None
    progress_notes: List[ProgressNoteRequest] = []
    medications: List[MedicationRequest] = []

    def to_record(self) -> PatientRecord:
        return PatientRecord.from_dict(self.model_dump())


class NarrativeRequest(BaseModel):
    patient: PatientRecordRequest
    text: str = Field(..., description="Drafted free text to check")


# ── Endpoints ─────────────────────────────────────────────────

@app.get("/health")
async def health_check():
    low, high = _growth_engine.week_range
    return {
        "status": "healthy",
        "version": API_VERSION,
        "fenton_weeks": [low, high],
        "auth_enabled": AUTH_ENABLED,
    }


@app.post("/summary")
async def clinical_summary(
    req: PatientRecordRequest,
    as_of: Optional[date] = Query(None, description="Assessment date (defaults to the record's own dates)"),
):
    summary = generate_comprehensive_clinical_summary(req.to_record(), as_of)
    return summary.to_dict()


@app.post("/gestational-age")
async def gestational_age(req: PatientRecordRequest):
    return resolve(req.to_record()).to_dict()


@app.post("/weight")
async def weight_analysis(req: PatientRecordRequest):
    record = req.to_record()
    analysis = analyze_weight(record.birth_weight, resolve(record), record.gender,
                              _growth_engine)
    return analysis.to_dict() if analysis else None


@app.post("/course")
async def clinical_course(
    req: PatientRecordRequest,
    as_of: Optional[date] = Query(None),
):
    return analyze_clinical_course(req.to_record(), as_of).to_dict()


@app.post("/narrative/validate")
async def narrative_validate(req: NarrativeRequest):
    summary = generate_comprehensive_clinical_summary(req.patient.to_record())
    warnings = validate_narrative(req.text, summary)
    return {
        "patient_id": summary.patient_id,
        "is_consistent": not warnings,
        "warnings": [w.to_dict() for w in warnings],
    }


@app.get("/reference/fenton")
async def fenton_reference(
    gender: str = Query("male", pattern="^(male|female)$"),
):
    return {"gender": gender, "rows": _growth_engine.percentile_rows(gender)}


# ── Run ───────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("neointel.api.server:app", host=HOST, port=PORT, reload=True)
