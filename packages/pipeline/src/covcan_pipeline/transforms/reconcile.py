"""
transforms/reconcile.py — Population-denominator reconciliation for the PHAC series.

PHAC publishes both counts and percentages. Recomputing the percentages
from the counts and the StatCan estimates reproduces them everywhere except
two territories, where PHAC uses a different denominator. For those, the
denominator PHAC actually used is back-calculated from one reference week
and installed on the PopulationTable, so the secondary series' coverage is
computed on the same basis.

Usage:
    from covcan_pipeline.transforms.reconcile import reconcile_populations

    population = PopulationTable.default()
    report = reconcile_populations(
        primary,
        population,
        cutoff=date(2021, 12, 18),
        reference_date=date(2021, 12, 18),
    )
    report.unexpected        # discrepancies needing manual review
    population.version       # 2, both territories corrected
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

import polars as pl
import structlog

from covcan_shared.constants import DOSE_COLUMNS, POPULATION_CORRECTED_JURISDICTIONS
from covcan_shared.errors import ReconciliationError
from covcan_shared.models.coverage import Discrepancy, ReconciliationReport
from covcan_shared.population import PopulationTable

log = structlog.get_logger(__name__)

# Published and recomputed values both carry two decimals.
TOLERANCE = 1e-6


def recompute_percentages(
    primary: pl.DataFrame,
    population: PopulationTable,
    *,
    cutoff: date,
) -> pl.DataFrame:
    """
    Recompute every dose percentage from counts and published populations.

    Args:
        primary:    Output of PrimarySeriesSource.transform().
        population: Reference table; its published (uncorrected) values are used.
        cutoff:     Only weeks on or after this date are checked.

    Returns:
        Long DataFrame: date, pt, dose, count, published, computed — one row
        per week, jurisdiction, and dose where both count and published
        percentage are defined.
    """
    recent = primary.filter(pl.col("date") >= cutoff).join(
        population.to_frame(published=True), on="pt", how="left"
    )

    frames: list[pl.DataFrame] = []
    for n, (dose, percent_col) in enumerate(DOSE_COLUMNS.items(), start=1):
        count_col = f"count_dose_{n}"
        frames.append(
            recent.select(
                pl.col("date").alias("ref_date"),
                pl.col("pt"),
                pl.lit(dose).alias("dose"),
                pl.col(count_col).alias("count"),
                pl.col(percent_col).alias("published"),
                (pl.col(count_col) / pl.col("population") * 100).round(2).alias("computed"),
            ).drop_nulls(["count", "published"])
        )
    return pl.concat(frames)


def find_discrepancies(
    primary: pl.DataFrame,
    population: PopulationTable,
    *,
    cutoff: date,
    expected: Iterable[str] = POPULATION_CORRECTED_JURISDICTIONS,
) -> tuple[int, list[Discrepancy]]:
    """
    Compare recomputed percentages with the published ones.

    Returns:
        (records_checked, discrepancies). Discrepancies in *expected*
        jurisdictions are flagged ``expected=True``.
    """
    expected = frozenset(expected)
    checked = recompute_percentages(primary, population, cutoff=cutoff)

    mismatched = checked.filter(
        (pl.col("computed") - pl.col("published")).abs() > TOLERANCE
    ).with_columns(
        pl.col("pt").cast(pl.String).is_in(list(expected)).alias("expected"),
        pl.col("pt").cast(pl.String),
    )

    discrepancies = [Discrepancy.from_row(row) for row in mismatched.iter_rows(named=True)]
    _log_discrepancies(mismatched)
    return len(checked), discrepancies


def _log_discrepancies(mismatched: pl.DataFrame) -> None:
    if mismatched.is_empty():
        return

    summary = (
        mismatched.group_by("pt", "expected")
        .agg(
            pl.len().alias("rows"),
            pl.col("ref_date").min().alias("first"),
            pl.col("ref_date").max().alias("last"),
        )
        .sort("pt")
    )
    for row in summary.iter_rows(named=True):
        fields = {
            "pt": row["pt"],
            "rows": row["rows"],
            "first": str(row["first"]),
            "last": str(row["last"]),
        }
        if row["expected"]:
            log.info("expected_population_discrepancy", **fields)
        else:
            log.warning("unexpected_population_discrepancy", **fields)


def implied_population(
    primary: pl.DataFrame,
    pt: str,
    reference_date: date,
) -> tuple[int, float, float]:
    """
    Back-calculate the denominator PHAC used for *pt* on *reference_date*.

    Uses the dose-1 count and percentage: round(count / percent * 100).

    Returns:
        (implied population, count, percent).

    Raises:
        ReconciliationError: If the reference record is missing, or its
            count or percentage is undefined or zero.
    """
    row = primary.filter(
        (pl.col("date") == reference_date) & (pl.col("pt") == pt)
    ).select("count_dose_1", "percent_dose_1")

    if row.is_empty():
        raise ReconciliationError(
            f"No primary record for {pt} on {reference_date}; cannot derive its population"
        )

    count, percent = row.row(0)
    if count is None or not percent:
        raise ReconciliationError(
            f"Primary record for {pt} on {reference_date} has no usable dose-1 "
            f"count/percentage (count={count}, percent={percent})"
        )
    return round(count / percent * 100), count, percent


def reconcile_populations(
    primary: pl.DataFrame,
    population: PopulationTable,
    *,
    cutoff: date,
    reference_date: date,
    corrected: Iterable[str] = POPULATION_CORRECTED_JURISDICTIONS,
) -> ReconciliationReport:
    """
    Validate published percentages and correct the known-divergent denominators.

    Discrepancies never abort the run; the ones outside *corrected* are
    logged as warnings and listed in ``report.unexpected``.

    Args:
        primary:        Output of PrimarySeriesSource.transform(), aggregate included.
        population:     Table to correct in place.
        cutoff:         First week to validate.
        reference_date: Week the implied populations are derived from.
        corrected:      Jurisdictions whose denominator is replaced.

    Returns:
        ReconciliationReport with discrepancies and installed overrides.
    """
    corrected = sorted(corrected)
    checked, discrepancies = find_discrepancies(
        primary, population, cutoff=cutoff, expected=corrected
    )
    report = ReconciliationReport(
        cutoff=cutoff,
        records_checked=checked,
        discrepancies=discrepancies,
    )

    for pt in corrected:
        value, count, percent = implied_population(primary, pt, reference_date)
        report.overrides.append(
            population.override(
                pt,
                value,
                reference_date=reference_date,
                count=count,
                percent=percent,
            )
        )

    log.info(
        "populations_reconciled",
        records_checked=checked,
        discrepancies=len(discrepancies),
        unexpected=len(report.unexpected),
        population_version=population.version,
    )
    return report


def require_corrected(
    population: PopulationTable,
    corrected: Iterable[str] = POPULATION_CORRECTED_JURISDICTIONS,
) -> None:
    """Raise ReconciliationError unless every *corrected* denominator is overridden."""
    pending = sorted(pt for pt in corrected if not population.is_overridden(pt))
    if pending:
        raise ReconciliationError(
            f"Population overrides not applied for {pending}; "
            "reconcile the primary series before computing secondary coverage"
        )
