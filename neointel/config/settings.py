"""
Configuration for the Neonatal Clinical Intelligence Engine.
"""
import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]
REPORTS_DIR = PROJECT_ROOT / "reports"

# ── Server ────────────────────────────────────────────────────
PORT = int(os.environ.get("PORT", 8000))
HOST = os.environ.get("HOST", "0.0.0.0")
DEBUG = os.environ.get("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
API_VERSION = "1.0.0"

# ── Auth (optional) ───────────────────────────────────────────
AUTH_ENABLED = os.environ.get("AUTH_ENABLED", "false").lower() == "true"
AUTH_USERNAME = os.environ.get("AUTH_USERNAME", "admin")
AUTH_PASSWORD = os.environ.get("AUTH_PASSWORD", "changeme")

# ── Narrative mining ──────────────────────────────────────────
# Characters inspected on each side of a condition match.
TEXT_WINDOW_CHARS = int(os.environ.get("TEXT_WINDOW_CHARS", 50))
# Clip the window at sentence punctuation so "No allergies. Sepsis confirmed"
# does not negate the second sentence.
SENTENCE_BOUNDED_WINDOWS = (
    os.environ.get("SENTENCE_BOUNDED_WINDOWS", "true").lower() == "true"
)
VITAL_TREND_NOTES = 5
STATUS_LOOKBACK_NOTES = 3

# ── Gestational age ───────────────────────────────────────────
STANDARD_CYCLE_DAYS = 28
TERM_PREGNANCY_DAYS = 280
GA_DISCREPANCY_DAYS = int(os.environ.get("GA_DISCREPANCY_DAYS", 14))
GA_MIN_PLAUSIBLE_DAYS = 140   # 20 weeks
GA_MAX_PLAUSIBLE_DAYS = 315   # 45 weeks
DISCHARGE_MIN_CORRECTED_WEEKS = 34

# ── Cohort reporting ─────────────────────────────────────────
COHORT_WORKERS = int(os.environ.get("COHORT_WORKERS", 4))
