"""
pipelines/coverage.py — Vaccine coverage reconciliation and splicing pipeline.

Stages, in causal order:
  1. PHAC primary series          -> PrimarySeriesSource
  2. population reconciliation    -> reconcile_populations (overrides NT/NU)
  3. working-group secondary      -> SecondarySeriesSource (uses corrected table)
  4. weekly alignment             -> align_to_anchor
  5. dose-3 splice                -> splice_dose_3
  6. long reshape                 -> to_long
  7. wide + long CSV outputs      -> write_outputs (only if 1-6 succeeded)

Usage:
    from covcan_pipeline.pipelines.coverage import build, run

    result = build()                      # frames only, nothing written
    result = run()                        # build + write both CSVs
    result = run(dry_run=True)            # same as build(), logs the outputs it would write
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import polars as pl

from covcan_shared.config import settings
from covcan_shared.models.coverage import ReconciliationReport
from covcan_shared.population import PopulationTable
from covcan_shared.time_utils import anchor_weekday
from covcan_pipeline.loaders.csv_writer import WriteResult, write_outputs
from covcan_pipeline.sources.primary import PrimarySeriesSource, drop_aggregate
from covcan_pipeline.sources.secondary import SecondarySeriesSource
from covcan_pipeline.transforms.reconcile import reconcile_populations
from covcan_pipeline.transforms.reshape import to_long
from covcan_pipeline.transforms.splice import splice_dose_3
from covcan_pipeline.transforms.time_series import align_to_anchor
from covcan_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="coverage")


@dataclass
class CoverageResult:
    """Everything a run produced."""

    wide: pl.DataFrame
    long: pl.DataFrame
    report: ReconciliationReport
    population: PopulationTable
    outputs: list[WriteResult] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def status(self) -> str:
        return "needs_review" if self.report.needs_review else "success"


def build(
    *,
    primary_path: Path | None = None,
    secondary_path: Path | None = None,
    validation_start: date | None = None,
    population_reference_date: date | None = None,
    splice_start: date | None = None,
    population: PopulationTable | None = None,
) -> CoverageResult:
    """
    Load, reconcile, align, splice, and reshape. Writes nothing.

    Args:
        primary_path:              PHAC snapshot (default: settings.primary_path).
        secondary_path:            Working-group snapshot (default: settings.secondary_path).
        validation_start:          First week checked against published percentages.
        population_reference_date: Week the territory denominators are derived from.
        splice_start:              First secondary sampling date.
        population:                Table to reconcile (default: a fresh default table).

    Returns:
        CoverageResult without outputs.
    """
    primary_path = primary_path or settings.primary_path
    secondary_path = secondary_path or settings.secondary_path
    validation_start = validation_start or settings.validation_start
    population_reference_date = population_reference_date or settings.population_reference_date
    splice_start = splice_start or settings.splice_start
    population = population if population is not None else PopulationTable.default()

    t0 = time.monotonic()

    primary = PrimarySeriesSource().run(primary_path)
    report = reconcile_populations(
        primary,
        population,
        cutoff=validation_start,
        reference_date=population_reference_date,
    )
    primary_wide = drop_aggregate(primary)

    secondary = SecondarySeriesSource().run(secondary_path, population=population)
    aligned = align_to_anchor(
        secondary,
        splice_start=splice_start,
        primary_end=primary_wide["date"].max(),
        anchor=anchor_weekday(primary_wide["date"]),
    )

    wide = splice_dose_3(primary_wide, aligned)
    long = to_long(wide)

    return CoverageResult(
        wide=wide,
        long=long,
        report=report,
        population=population,
        duration_ms=int((time.monotonic() - t0) * 1000),
    )


def run(
    *,
    primary_path: Path | None = None,
    secondary_path: Path | None = None,
    wide_path: Path | None = None,
    long_path: Path | None = None,
    validation_start: date | None = None,
    population_reference_date: date | None = None,
    splice_start: date | None = None,
    dry_run: bool = False,
) -> CoverageResult:
    """
    Run the full pipeline and write the wide and long CSV files.

    Any fatal error propagates before either file is touched.

    Args:
        wide_path: Wide output (default: settings.wide_path).
        long_path: Long output (default: settings.long_path).
        dry_run:   Build everything but do not write.
        (others):  See build().

    Returns:
        CoverageResult with one WriteResult per file (empty on dry run).
    """
    wide_path = wide_path or settings.wide_path
    long_path = long_path or settings.long_path

    log.info(
        "coverage_pipeline_start",
        primary=str(primary_path or settings.primary_path),
        secondary=str(secondary_path or settings.secondary_path),
        splice_start=str(splice_start or settings.splice_start),
        dry_run=dry_run,
    )

    try:
        result = build(
            primary_path=primary_path,
            secondary_path=secondary_path,
            validation_start=validation_start,
            population_reference_date=population_reference_date,
            splice_start=splice_start,
        )
    except Exception as exc:
        log.error("coverage_pipeline_failed", error=str(exc), error_type=type(exc).__name__)
        raise

    if dry_run:
        log.info(
            "dry_run_skip",
            wide=str(wide_path),
            wide_rows=len(result.wide),
            long=str(long_path),
            long_rows=len(result.long),
        )
    else:
        result.outputs = write_outputs({wide_path: result.wide, long_path: result.long})

    log.info(
        "coverage_pipeline_complete",
        status=result.status,
        wide_rows=len(result.wide),
        long_rows=len(result.long),
        unexpected_discrepancies=len(result.report.unexpected),
        population_version=result.population.version,
        duration_ms=result.duration_ms,
    )
    return result
