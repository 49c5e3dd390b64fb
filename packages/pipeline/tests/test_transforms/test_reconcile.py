"""
tests/test_transforms/test_reconcile.py — Tests for population reconciliation.
"""

from __future__ import annotations

from datetime import date

import polars as pl
import pytest

from covcan_shared.constants import POPULATION_ESTIMATES
from covcan_shared.errors import ReconciliationError
from covcan_shared.population import PopulationTable
from covcan_pipeline.sources.primary import PrimarySeriesSource
from covcan_pipeline.transforms.reconcile import (
    find_discrepancies,
    implied_population,
    recompute_percentages,
    reconcile_populations,
    require_corrected,
)

from conftest import PHAC_DENOMINATORS, REFERENCE_DATE, WEEKS, make_primary_raw


@pytest.fixture
def primary(primary_raw) -> pl.DataFrame:
    return PrimarySeriesSource().transform(primary_raw)


class TestRecomputePercentages:
    def test_long_layout(self, primary, population):
        checked = recompute_percentages(primary, population, cutoff=REFERENCE_DATE)
        assert checked.columns == ["ref_date", "pt", "dose", "count", "published", "computed"]
        assert set(checked["dose"].unique().to_list()) == {"dose_1", "dose_2", "dose_3"}

    def test_cutoff_applied(self, primary, population):
        checked = recompute_percentages(primary, population, cutoff=REFERENCE_DATE)
        assert checked["ref_date"].min() == REFERENCE_DATE

    def test_undefined_values_skipped(self, primary, population):
        checked = recompute_percentages(primary, population, cutoff=WEEKS[0])
        assert checked["count"].null_count() == 0
        assert checked["published"].null_count() == 0
        # dose 3 is unreported for the first weeks
        assert len(checked.filter(pl.col("dose") == "dose_3")) < len(
            checked.filter(pl.col("dose") == "dose_1")
        )

    def test_uses_published_population_after_override(self, primary, reconciled_population):
        checked = recompute_percentages(primary, reconciled_population, cutoff=REFERENCE_DATE)
        nu = checked.filter((pl.col("pt") == "Nunavut") & (pl.col("dose") == "dose_1"))
        expected = nu["count"][0] / POPULATION_ESTIMATES["Nunavut"] * 100
        assert nu["computed"][0] == pytest.approx(expected, abs=0.006)


class TestFindDiscrepancies:
    def test_only_territories_disagree(self, primary, population):
        checked, discrepancies = find_discrepancies(primary, population, cutoff=REFERENCE_DATE)
        assert checked > 0
        assert {d.pt for d in discrepancies} == set(PHAC_DENOMINATORS)
        assert all(d.expected for d in discrepancies)

    def test_unexpected_discrepancy_flagged(self, primary_raw, population):
        raw = primary_raw.with_columns(
            pl.when(
                (pl.col("prename") == "Ontario") & (pl.col("week_end") == REFERENCE_DATE.isoformat())
            )
            .then(pl.lit("12.34"))
            .otherwise(pl.col("proptotal_fully"))
            .alias("proptotal_fully")
        )
        primary = PrimarySeriesSource().transform(raw)
        _, discrepancies = find_discrepancies(primary, population, cutoff=REFERENCE_DATE)

        unexpected = [d for d in discrepancies if not d.expected]
        assert len(unexpected) == 1
        assert unexpected[0].pt == "Ontario"
        assert unexpected[0].dose == "dose_2"
        assert unexpected[0].ref_date == REFERENCE_DATE
        assert unexpected[0].published == pytest.approx(12.34)


class TestImpliedPopulation:
    def test_close_to_phac_denominator(self, primary):
        value, count, percent = implied_population(primary, "Nunavut", REFERENCE_DATE)
        assert value == round(count / percent * 100)
        assert abs(value - PHAC_DENOMINATORS["Nunavut"]) <= 5

    def test_missing_reference_week(self, primary):
        with pytest.raises(ReconciliationError, match="No primary record"):
            implied_population(primary, "Nunavut", date(2022, 1, 1))

    def test_missing_percentage(self, primary):
        primary = primary.with_columns(pl.lit(None, dtype=pl.Float64).alias("percent_dose_1"))
        with pytest.raises(ReconciliationError, match="no usable"):
            implied_population(primary, "Nunavut", REFERENCE_DATE)


class TestReconcilePopulations:
    def test_installs_both_overrides(self, primary, population):
        report = reconcile_populations(
            primary, population, cutoff=REFERENCE_DATE, reference_date=REFERENCE_DATE
        )
        assert population.version == 2
        assert {o.pt for o in report.overrides} == set(PHAC_DENOMINATORS)
        for override in report.overrides:
            assert population.population(override.pt) == override.corrected
            assert override.published == POPULATION_ESTIMATES[override.pt]

    def test_corrected_populations_reproduce_published(self, primary, population):
        reconcile_populations(
            primary, population, cutoff=REFERENCE_DATE, reference_date=REFERENCE_DATE
        )
        for pt in PHAC_DENOMINATORS:
            row = primary.filter((pl.col("date") == REFERENCE_DATE) & (pl.col("pt") == pt))
            recomputed = row["count_dose_1"][0] / population.population(pt) * 100
            assert round(recomputed, 2) == pytest.approx(row["percent_dose_1"][0], abs=0.011)

    def test_clean_report_needs_no_review(self, primary, population):
        report = reconcile_populations(
            primary, population, cutoff=REFERENCE_DATE, reference_date=REFERENCE_DATE
        )
        assert report.discrepancies
        assert not report.unexpected
        assert not report.needs_review

    def test_missing_reference_aborts_without_overrides(self, population):
        primary = PrimarySeriesSource().transform(make_primary_raw(weeks=WEEKS[:4]))
        with pytest.raises(ReconciliationError):
            reconcile_populations(
                primary, population, cutoff=WEEKS[0], reference_date=REFERENCE_DATE
            )
        assert population.version == 0


class TestRequireCorrected:
    def test_default_table_fails(self, population):
        with pytest.raises(ReconciliationError, match="Northwest Territories"):
            require_corrected(population)

    def test_reconciled_table_passes(self, reconciled_population):
        require_corrected(reconciled_population)

    def test_partial_override_fails(self):
        table = PopulationTable.default()
        table.override(
            "Nunavut", 36600, reference_date=REFERENCE_DATE, count=1.0, percent=1.0
        )
        with pytest.raises(ReconciliationError, match="Northwest Territories"):
            require_corrected(table)
