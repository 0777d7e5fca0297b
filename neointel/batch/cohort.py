"""
Cohort reporting: run the summary over many records and tabulate the results.

Usage:
    python -m neointel.batch.cohort --input patients.json --output cohort.csv

The input is a JSON array of patient documents in the store's shape.
"""
import argparse
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List

import pandas as pd

from neointel.config.logging import configure_logging
from neointel.config.settings import COHORT_WORKERS, LOG_LEVEL, REPORTS_DIR
from neointel.models.data_structures import ComprehensiveClinicalSummary, Severity
from neointel.models.records import PatientRecord
from neointel.models.summary import generate_comprehensive_clinical_summary

logger = logging.getLogger(__name__)

COHORT_COLUMNS = [
    'patient_id', 'unit', 'ga_weeks', 'ga_days', 'ga_category', 'ga_source',
    'ga_validated', 'birth_weight_g', 'weight_category', 'growth_status',
    'percentile', 'length_of_stay', 'complications', 'ongoing_conditions',
    'final_diagnosis', 'consistency_score', 'discharge_ready',
    'errors', 'warnings', 'infos',
]


def summarize_cohort(records: Iterable[PatientRecord],
                     workers: int = COHORT_WORKERS) -> List[ComprehensiveClinicalSummary]:
    """Summaries in input order; patients are independent so a plain map is enough."""
    records = list(records)
    if workers <= 1 or len(records) <= 1:
        return [generate_comprehensive_clinical_summary(r) for r in records]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(generate_comprehensive_clinical_summary, records))


def cohort_row(summary: ComprehensiveClinicalSummary) -> dict:
    ga = summary.gestational_age
    weight = summary.weight_analysis
    course = summary.clinical_course
    readiness = summary.discharge_readiness
    return {
        'patient_id': summary.patient_id,
        'unit': summary.patient_profile.unit,
        'ga_weeks': ga.weeks if ga.is_available else None,
        'ga_days': ga.days if ga.is_available else None,
        'ga_category': ga.category.value if ga.is_available else None,
        'ga_source': ga.source.value,
        'ga_validated': ga.is_validated,
        'birth_weight_g': weight.weight_in_grams if weight else None,
        'weight_category': weight.category.abbreviation if weight else None,
        'growth_status': (weight.growth_status.abbreviation
                          if weight and weight.growth_status else None),
        'percentile': weight.percentile if weight else None,
        'length_of_stay': course.total_days_of_stay,
        'complications': '; '.join(course.complications),
        'ongoing_conditions': '; '.join(course.ongoing_conditions),
        'final_diagnosis': summary.diagnosis.final_diagnosis,
        'consistency_score': summary.diagnosis.diagnosis_consistency_score,
        'discharge_ready': readiness.is_ready if readiness else None,
        'errors': len(summary.warnings_by_severity(Severity.ERROR)),
        'warnings': len(summary.warnings_by_severity(Severity.WARNING)),
        'infos': len(summary.warnings_by_severity(Severity.INFO)),
    }


def cohort_frame(summaries: Iterable[ComprehensiveClinicalSummary]) -> pd.DataFrame:
    """One row per patient."""
    return pd.DataFrame([cohort_row(s) for s in summaries], columns=COHORT_COLUMNS)


def load_records(path: Path) -> List[PatientRecord]:
    with open(path) as f:
        documents = json.load(f)
    if isinstance(documents, dict):
        documents = documents.get('patients', [documents])
    return [PatientRecord.from_dict(d) for d in documents]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Summarize a cohort of neonatal/pediatric patient records",
    )
    parser.add_argument("--input", "-i", required=True,
                        help="JSON file holding an array of patient records")
    parser.add_argument("--output", "-o", default=None,
                        help=f"CSV output path (default: {REPORTS_DIR}/cohort.csv)")
    parser.add_argument("--workers", "-w", type=int, default=COHORT_WORKERS,
                        help=f"Parallel workers (default: {COHORT_WORKERS})")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else LOG_LEVEL)

    input_path = Path(args.input)
    try:
        records = load_records(input_path)
    except (OSError, ValueError) as e:
        print(f"Cannot read {input_path}: {e}", file=sys.stderr)
        return 1

    print("=" * 70)
    print("  NEONATAL CLINICAL INTELLIGENCE - COHORT REPORT")
    print("=" * 70)
    print(f"\n[1/2] Summarizing {len(records)} patients ({args.workers} workers)...")
    frame = cohort_frame(summarize_cohort(records, args.workers))

    output = Path(args.output) if args.output else REPORTS_DIR / "cohort.csv"
    output.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(output, index=False)

    print(f"\n[2/2] Wrote {len(frame)} rows to {output}")
    if len(frame):
        print(f"  Discharge ready: {int(frame['discharge_ready'].fillna(False).sum())}")
        print(f"  Mean consistency score: {frame['consistency_score'].mean():.1f}")
        print(f"  Records with errors: {int((frame['errors'] > 0).sum())}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
