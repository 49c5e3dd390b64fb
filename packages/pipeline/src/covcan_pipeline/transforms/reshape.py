"""
transforms/reshape.py — Wide <-> long reshaping of the final coverage table.

The long table is a tidy projection of the wide one: one row per
(date, pt, dose) with a defined coverage value, nothing else.

Usage:
    from covcan_pipeline.transforms.reshape import to_long, to_wide

    long = to_long(wide)        # date | pt | dose | coverage
    to_wide(long)               # back to date | pt | percent_dose_1..3
"""

from __future__ import annotations

import polars as pl

from covcan_shared.constants import DOSE_COLUMNS, LONG_COLUMNS, WIDE_COLUMNS

_COLUMN_TO_DOSE: dict[str, str] = {col: dose for dose, col in DOSE_COLUMNS.items()}


def to_long(wide: pl.DataFrame) -> pl.DataFrame:
    """Unpivot percent_dose_N columns into (dose, coverage) rows, dropping nulls."""
    return (
        wide.unpivot(
            index=["date", "pt"],
            on=list(DOSE_COLUMNS.values()),
            variable_name="dose",
            value_name="coverage",
        )
        .filter(pl.col("coverage").is_not_null())
        .with_columns(pl.col("dose").replace_strict(_COLUMN_TO_DOSE))
        .select(LONG_COLUMNS)
        .sort("date", "pt", "dose")
    )


def to_wide(long: pl.DataFrame) -> pl.DataFrame:
    """
    Pivot a long table back to WIDE_COLUMNS.

    Doses absent for a (date, pt) come back as null; a dose absent from the
    whole table still gets its (all-null) column.
    """
    wide = long.pivot(
        on="dose",
        index=["date", "pt"],
        values="coverage",
    ).rename({dose: col for dose, col in DOSE_COLUMNS.items() if dose in long["dose"]})

    missing = [c for c in DOSE_COLUMNS.values() if c not in wide.columns]
    if missing:
        wide = wide.with_columns([pl.lit(None, dtype=pl.Float64).alias(c) for c in missing])

    return wide.select(WIDE_COLUMNS).sort("date", "pt")
