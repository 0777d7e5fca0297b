"""
Birth-weight classification against the Fenton preterm growth reference.
Source: Fenton & Kim (2013), 10th/50th/90th percentile birth weights (g)
by completed gestational week, simplified to whole weeks 22-42.
"""
import logging
from typing import Optional, Tuple

import numpy as np
from scipy import stats

from neointel.models.data_structures import (
    GestationalAgeResult, GrowthStatus, WeightAnalysis, WeightCategory,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Fenton Reference Tables  {week: (p10, p50, p90)} in grams
# =============================================================================

FENTON_WEIGHTS = {
    'male': {
        22: (380, 500, 640), 23: (430, 570, 730),
        24: (490, 650, 840), 25: (560, 750, 970),
        26: (640, 860, 1110), 27: (730, 980, 1270),
        28: (830, 1120, 1450), 29: (950, 1280, 1660),
        30: (1080, 1460, 1890), 31: (1230, 1660, 2150),
        32: (1400, 1880, 2430), 33: (1580, 2120, 2730),
        34: (1780, 2380, 3040), 35: (1990, 2650, 3360),
        36: (2210, 2920, 3680), 37: (2430, 3180, 3980),
        38: (2640, 3430, 4260), 39: (2830, 3650, 4510),
        40: (2990, 3830, 4710), 41: (3100, 3960, 4860),
        42: (3160, 4030, 4950)
    },
    'female': {
        22: (360, 480, 620), 23: (410, 550, 710),
        24: (470, 630, 820), 25: (540, 720, 940),
        26: (610, 830, 1080), 27: (700, 950, 1230),
        28: (800, 1080, 1400), 29: (910, 1230, 1600),
        30: (1040, 1400, 1820), 31: (1180, 1590, 2060),
        32: (1340, 1800, 2330), 33: (1520, 2030, 2610),
        34: (1710, 2280, 2910), 35: (1920, 2540, 3220),
        36: (2140, 2800, 3530), 37: (2360, 3060, 3830),
        38: (2570, 3300, 4100), 39: (2760, 3520, 4340),
        40: (2920, 3700, 4530), 41: (3030, 3830, 4670),
        42: (3090, 3900, 4760)
    }
}

# z-score of the 90th percentile of a standard normal
Z_P90 = float(stats.norm.ppf(0.90))

KG_THRESHOLD = 10


def normalize_weight(raw_weight: float) -> float:
    """Birth weight in grams; values under 10 are taken to be kilograms."""
    weight = float(raw_weight)
    return weight * 1000.0 if weight < KG_THRESHOLD else weight


def classify_weight(weight_in_grams: float) -> WeightCategory:
    if weight_in_grams < 1000:
        return WeightCategory.ELBW
    if weight_in_grams < 1500:
        return WeightCategory.VLBW
    if weight_in_grams < 2500:
        return WeightCategory.LBW
    if weight_in_grams > 4000:
        return WeightCategory.MACROSOMIA
    return WeightCategory.NORMAL


class FentonGrowthEngine:
    """Growth-status lookup on the Fenton birth-weight table."""

    def __init__(self, weight_tables: dict = None):
        self.weight_tables = weight_tables or FENTON_WEIGHTS

    def _table_for(self, gender: str) -> dict:
        sex = 'female' if (gender or '').strip().lower() == 'female' else 'male'
        return self.weight_tables[sex]

    def reference(self, gender: str, weeks: int) -> Optional[Tuple[int, int, int]]:
        """(p10, p50, p90) for the completed week, or None outside the table."""
        return self._table_for(gender).get(int(weeks))

    def growth_status(self, weight_in_grams: float, gender: str,
                      weeks: int) -> Optional[GrowthStatus]:
        ref = self.reference(gender, weeks)
        if ref is None:
            return None
        p10, _, p90 = ref
        if weight_in_grams < p10:
            return GrowthStatus.SGA
        if weight_in_grams > p90:
            return GrowthStatus.LGA
        return GrowthStatus.AGA

    def compute_zscore(self, weight_in_grams: float, gender: str,
                       weeks: int) -> Optional[float]:
        """Approximate z-score: normal fit with median p50 and the p10-p90 spread."""
        ref = self.reference(gender, weeks)
        if ref is None:
            return None
        p10, p50, p90 = ref
        sigma = (p90 - p10) / (2 * Z_P90)
        if sigma <= 0:
            return None
        z = (weight_in_grams - p50) / sigma
        return float(np.clip(z, -5, 5))

    def zscore_to_percentile(self, z: float) -> float:
        return float(stats.norm.cdf(z) * 100)

    def percentile_rows(self, gender: str) -> list:
        return [
            {'week': week, 'p10': p10, 'p50': p50, 'p90': p90}
            for week, (p10, p50, p90) in sorted(self._table_for(gender).items())
        ]

    @property
    def week_range(self) -> Tuple[int, int]:
        weeks = sorted(self.weight_tables['male'].keys())
        return weeks[0], weeks[-1]


_default_engine = FentonGrowthEngine()


def analyze_weight(birth_weight, gestational_age: GestationalAgeResult,
                   gender: str,
                   engine: FentonGrowthEngine = None) -> Optional[WeightAnalysis]:
    """Weight band plus growth status for the GA week, if the week is on the chart."""
    if birth_weight is None or isinstance(birth_weight, bool):
        return None
    try:
        grams = normalize_weight(birth_weight)
    except (TypeError, ValueError):
        return None
    if grams <= 0:
        return None

    engine = engine or _default_engine
    category = classify_weight(grams)

    status = percentile = z = None
    low, high = engine.week_range
    if gestational_age.is_available and low <= gestational_age.weeks <= high:
        status = engine.growth_status(grams, gender, gestational_age.weeks)
        z = engine.compute_zscore(grams, gender, gestational_age.weeks)
        if z is not None:
            percentile = engine.zscore_to_percentile(z)

    logger.debug("Weight %.0fg -> %s, growth %s", grams, category.name,
                 status.name if status else None)
    return WeightAnalysis(
        weight_in_grams=grams,
        category=category,
        growth_status=status,
        percentile=percentile,
        z_score=z,
    )
