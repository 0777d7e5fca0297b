"""
Tests for birth-weight normalization and Fenton growth classification.
"""
import pytest

from neointel.models.data_structures import (
    GASource, GestationalAgeResult, GrowthStatus, WeightCategory,
)
from neointel.models.growth_engine import (
    FENTON_WEIGHTS, FentonGrowthEngine, analyze_weight, classify_weight,
    normalize_weight,
)


class TestWeightBands:

    def test_kilograms_and_grams_agree(self):
        assert normalize_weight(1.5) == 1500
        assert normalize_weight(1500) == 1500
        assert classify_weight(normalize_weight(1.5)) is WeightCategory.LBW
        assert classify_weight(normalize_weight(1500)) is WeightCategory.LBW

    @pytest.mark.parametrize("grams,expected", [
        (999, WeightCategory.ELBW),
        (1000, WeightCategory.VLBW),
        (1499, WeightCategory.VLBW),
        (2499, WeightCategory.LBW),
        (2500, WeightCategory.NORMAL),
        (4000, WeightCategory.NORMAL),
        (4001, WeightCategory.MACROSOMIA),
    ])
    def test_boundaries(self, grams, expected):
        assert classify_weight(grams) is expected

    def test_abbreviations(self):
        assert WeightCategory.NORMAL.abbreviation == "NBW"
        assert WeightCategory.VLBW.abbreviation == "VLBW"


class TestFentonTable:

    def test_table_covers_22_to_42_weeks(self):
        for sex in ('male', 'female'):
            assert sorted(FENTON_WEIGHTS[sex]) == list(range(22, 43))

    def test_rows_verbatim(self):
        assert FENTON_WEIGHTS['male'][22] == (380, 500, 640)
        assert FENTON_WEIGHTS['male'][32] == (1400, 1880, 2430)
        assert FENTON_WEIGHTS['male'][42] == (3160, 4030, 4950)
        assert FENTON_WEIGHTS['female'][22] == (360, 480, 620)
        assert FENTON_WEIGHTS['female'][42] == (3090, 3900, 4760)

    def test_percentiles_ordered(self):
        for sex, rows in FENTON_WEIGHTS.items():
            for week, (p10, p50, p90) in rows.items():
                assert p10 < p50 < p90, (sex, week)

    def test_percentile_rows(self):
        rows = FentonGrowthEngine().percentile_rows("female")
        assert len(rows) == 21
        assert rows[0] == {'week': 22, 'p10': 360, 'p50': 480, 'p90': 620}


class TestGrowthStatus:

    @pytest.fixture
    def engine(self):
        return FentonGrowthEngine()

    @pytest.mark.parametrize("grams,expected", [
        (1300, GrowthStatus.SGA),
        (1400, GrowthStatus.AGA),
        (1880, GrowthStatus.AGA),
        (2430, GrowthStatus.AGA),
        (2500, GrowthStatus.LGA),
    ])
    def test_male_32_weeks(self, engine, grams, expected):
        assert engine.growth_status(grams, "Male", 32) is expected

    def test_female_table_used(self, engine):
        # 1370g sits between the female (1340) and male (1400) p10 at 32 weeks.
        assert engine.growth_status(1370, "female", 32) is GrowthStatus.AGA
        assert engine.growth_status(1370, "male", 32) is GrowthStatus.SGA

    def test_outside_table(self, engine):
        assert engine.growth_status(500, "male", 21) is None
        assert engine.growth_status(4000, "male", 43) is None


class TestAnalyzeWeight:

    def test_median_is_fiftieth_percentile(self, ga_factory):
        result = analyze_weight(1.88, ga_factory(32, 4), "Male")
        assert result.weight_in_grams == pytest.approx(1880)
        assert result.growth_status is GrowthStatus.AGA
        assert result.percentile == pytest.approx(50.0, abs=0.01)
        assert result.z_score == pytest.approx(0.0, abs=1e-6)

    def test_percentile_monotonic(self, ga_factory):
        ga = ga_factory(32)
        low = analyze_weight(1400, ga, "male").percentile
        mid = analyze_weight(1880, ga, "male").percentile
        high = analyze_weight(2430, ga, "male").percentile
        assert low < mid < high

    def test_growth_unset_outside_weeks(self, ga_factory):
        result = analyze_weight(400, ga_factory(21), "male")
        assert result.category is WeightCategory.ELBW
        assert result.growth_status is None
        assert result.percentile is None

    def test_growth_unset_without_ga(self):
        no_ga = GestationalAgeResult(0, GASource.NONE, False)
        result = analyze_weight(3.1, no_ga, "female")
        assert result.category is WeightCategory.NORMAL
        assert result.growth_status is None

    @pytest.mark.parametrize("raw", [None, 0, -2])
    def test_missing_weight(self, ga_factory, raw):
        assert analyze_weight(raw, ga_factory(32), "male") is None

    def test_to_dict(self, ga_factory):
        data = analyze_weight(1.2, ga_factory(30), "male").to_dict()
        assert data['category_abbreviation'] == "VLBW"
        assert data['weight_in_kg'] == 1.2
