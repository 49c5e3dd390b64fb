"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  make_primary_raw()     — PHAC-shaped raw DataFrame (all String columns)
  make_secondary_raw()   — working-group-shaped raw DataFrame
  secondary_count()      — the cumulative count make_secondary_raw() emits
  primary_csv / secondary_csv — the same frames written under tmp_path
  reconciled_population  — PopulationTable with NT/NU overrides installed

The synthetic PHAC snapshot publishes percentages against the StatCan
estimates everywhere except Northwest Territories and Nunavut, which use
PHAC_DENOMINATORS, the same divergence seen in the real file.
"""

from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path

import polars as pl
import pytest

from covcan_shared.constants import (
    JURISDICTIONS,
    POPULATION_ESTIMATES,
    PROVINCES_AND_TERRITORIES,
    SECONDARY_RENAMES,
)
from covcan_shared.population import PopulationTable

# Weekly PHAC reporting Saturdays
FIRST_WEEK = date(2021, 7, 31)
LAST_WEEK = date(2021, 12, 25)
WEEKS: list[date] = [
    FIRST_WEEK + timedelta(weeks=i)
    for i in range((LAST_WEEK - FIRST_WEEK).days // 7 + 1)
]

SPLICE_START = date(2021, 8, 1)          # Sunday after FIRST_WEEK
REFERENCE_DATE = date(2021, 12, 18)
DOSE_3_REPORTING_FROM = date(2021, 9, 4)  # PHAC dose 3 empty before this week
SECONDARY_REPORTING_FROM = date(2021, 8, 10)

PHAC_DENOMINATORS: dict[str, int] = {
    "Northwest Territories": 41786,
    "Nunavut": 36600,
}

_CODES: dict[str, str] = {name: code for code, name in SECONDARY_RENAMES.items()}

_PERCENT_OF: dict[str, str] = {
    "numtotal_atleast1dose": "proptotal_atleast1dose",
    "numtotal_fully": "proptotal_fully",
    "numtotal_additional": "proptotal_additional",
}


def phac_denominator(pt: str) -> int:
    return PHAC_DENOMINATORS.get(pt, POPULATION_ESTIMATES[pt])


def primary_counts(pt: str, week: date) -> tuple[int, int, int | None]:
    """Dose 1/2/3 counts the synthetic PHAC file carries for *pt* in *week*."""
    pop = POPULATION_ESTIMATES[pt]
    i = (week - FIRST_WEEK).days // 7
    dose_1 = int(pop * 0.78) + 37 * i
    dose_2 = int(pop * 0.71) + 53 * i
    dose_3 = int(pop * 0.02) + 411 * i if week >= DOSE_3_REPORTING_FROM else None
    return dose_1, dose_2, dose_3


def secondary_count(pt: str, day: date) -> int:
    """Cumulative additional doses the synthetic working-group file reports."""
    if day < SECONDARY_REPORTING_FROM:
        return 0
    return int(POPULATION_ESTIMATES[pt] * 0.0007 * ((day - SECONDARY_REPORTING_FROM).days + 1)) + 3


def make_primary_raw(
    weeks: list[date] | None = None,
    jurisdictions: tuple[str, ...] = JURISDICTIONS,
) -> pl.DataFrame:
    """
    PHAC-shaped raw frame. Percentages are rounded the same way the
    reconciliation recomputes them, so only the PHAC_DENOMINATORS
    jurisdictions disagree with the StatCan estimates.
    """
    rows: list[dict[str, object]] = []
    for week in weeks or WEEKS:
        for pt in jurisdictions:
            dose_1, dose_2, dose_3 = primary_counts(pt, week)
            rows.append(
                {
                    "pruid": JURISDICTIONS.index(pt),
                    "prename": pt,
                    "week_end": week.isoformat(),
                    "numtotal_atleast1dose": dose_1,
                    "numtotal_fully": dose_2,
                    "numtotal_additional": dose_3,
                    "denominator": phac_denominator(pt),
                }
            )
    df = pl.DataFrame(
        rows,
        schema={
            "pruid": pl.Int64,
            "prename": pl.String,
            "week_end": pl.String,
            "numtotal_atleast1dose": pl.Int64,
            "numtotal_fully": pl.Int64,
            "numtotal_additional": pl.Int64,
            "denominator": pl.Int64,
        },
    )
    return (
        df.with_columns(
            [
                (pl.col(count).cast(pl.Float64) / pl.col("denominator") * 100)
                .round(2)
                .alias(percent)
                for count, percent in _PERCENT_OF.items()
            ]
        )
        .drop("denominator")
        .with_columns(pl.all().cast(pl.String))
    )


def make_secondary_raw(
    start: date = date(2021, 7, 20),
    end: date = date(2021, 12, 26),
    jurisdictions: tuple[str, ...] = PROVINCES_AND_TERRITORIES,
) -> pl.DataFrame:
    rows: list[dict[str, str]] = []
    day = start
    while day <= end:
        for pt in jurisdictions:
            rows.append(
                {
                    "province": _CODES.get(pt, pt),
                    "date_vaccine_additionaldoses": day.strftime("%d-%m-%Y"),
                    "cumulative_additionaldoses_vaccine": str(secondary_count(pt, day)),
                }
            )
        day += timedelta(days=1)
    return pl.DataFrame(
        rows,
        schema={
            "province": pl.String,
            "date_vaccine_additionaldoses": pl.String,
            "cumulative_additionaldoses_vaccine": pl.String,
        },
    )


# ---------------------------------------------------------------------------
# Raw frames and files
# ---------------------------------------------------------------------------

@pytest.fixture
def primary_raw() -> pl.DataFrame:
    return make_primary_raw()


@pytest.fixture
def secondary_raw() -> pl.DataFrame:
    return make_secondary_raw()


@pytest.fixture
def primary_csv(tmp_path: Path, primary_raw: pl.DataFrame) -> Path:
    path = tmp_path / "raw" / "vaccination-coverage-map.csv"
    path.parent.mkdir(parents=True, exist_ok=True)
    primary_raw.write_csv(path)
    return path


@pytest.fixture
def secondary_csv(tmp_path: Path, secondary_raw: pl.DataFrame) -> Path:
    path = tmp_path / "raw" / "vaccine_additionaldoses_prov.csv"
    path.parent.mkdir(parents=True, exist_ok=True)
    secondary_raw.write_csv(path)
    return path


# ---------------------------------------------------------------------------
# Population tables
# ---------------------------------------------------------------------------

@pytest.fixture
def population() -> PopulationTable:
    return PopulationTable.default()


@pytest.fixture
def reconciled_population() -> PopulationTable:
    """Default table with the two territory overrides already installed."""
    table = PopulationTable.default()
    for pt, value in PHAC_DENOMINATORS.items():
        table.override(
            pt,
            value,
            reference_date=REFERENCE_DATE,
            count=float(primary_counts(pt, REFERENCE_DATE)[0]),
            percent=round(primary_counts(pt, REFERENCE_DATE)[0] / value * 100, 2),
        )
    return table
