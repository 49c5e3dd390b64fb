"""
sources/primary.py — PHAC weekly vaccination coverage loader.

Reads the Public Health Agency of Canada ``vaccination-coverage-map.csv``
snapshot: one row per jurisdiction per reporting week, with cumulative
people counts and published coverage percentages per dose.

PHAC CSV format notes:
  - week_end is ISO (YYYY-MM-DD) and always the Saturday closing the week
  - prename is the English jurisdiction name, including a "Canada" row
  - numtotal_* are people counts, proptotal_* the published percentages
  - doses not yet reported in a week are empty cells

Column mapping (dose 1 / 2 / 3):
  numtotal_atleast1dose / numtotal_fully / numtotal_additional
  proptotal_atleast1dose / proptotal_fully / proptotal_additional

Usage:
    source = PrimarySeriesSource()
    df = source.run("data/raw/vaccination-coverage-map.csv")
    # columns: date, pt, count_dose_1..3, percent_dose_1..3
"""

from __future__ import annotations

from typing import Any

import polars as pl

from covcan_shared.constants import AGGREGATE, WIDE_COLUMNS
from covcan_shared.geo import normalize_jurisdiction_column
from covcan_shared.time_utils import ISO_FORMAT, parse_date_column
from covcan_pipeline.sources.base import BaseSource
from covcan_pipeline.transforms.time_series import deduplicate_series

COUNT_COLUMNS: dict[str, str] = {
    "numtotal_atleast1dose": "count_dose_1",
    "numtotal_fully": "count_dose_2",
    "numtotal_additional": "count_dose_3",
}

PERCENT_COLUMNS: dict[str, str] = {
    "proptotal_atleast1dose": "percent_dose_1",
    "proptotal_fully": "percent_dose_2",
    "proptotal_additional": "percent_dose_3",
}


class PrimarySeriesSource(BaseSource):
    """Loads and normalizes the PHAC weekly coverage snapshot."""

    name = "PHAC"
    required_columns = ("week_end", "prename", *COUNT_COLUMNS, *PERCENT_COLUMNS)

    def transform(self, raw: pl.DataFrame, **kwargs: Any) -> pl.DataFrame:
        """
        Normalize a raw PHAC DataFrame.

        Output columns:
            date            Date     — week_end
            pt              Enum     — canonical jurisdiction, aggregate included
            count_dose_N    Float64  — cumulative people with dose N (null if unreported)
            percent_dose_N  Float64  — published coverage for dose N (null if unreported)

        The aggregate row is kept here; reconciliation needs it and
        drop_aggregate() removes it afterwards.

        Raises:
            SchemaError: Missing columns, bad dates, non-numeric values.
            UnknownJurisdictionError: A prename outside the vocabulary.
        """
        self.check_columns(raw)

        df = parse_date_column(raw, "week_end", ISO_FORMAT, source=self.name)
        df = normalize_jurisdiction_column(df, "prename", source=self.name)
        df = self.cast_numeric(df, [*COUNT_COLUMNS, *PERCENT_COLUMNS])
        df = df.rename({**COUNT_COLUMNS, **PERCENT_COLUMNS}).select(
            "date",
            "pt",
            *COUNT_COLUMNS.values(),
            *PERCENT_COLUMNS.values(),
        )
        df = deduplicate_series(df, ["date", "pt"])

        self._log.debug(
            "transform_stats",
            output_rows=len(df),
            first_week=str(df["date"].min()),
            last_week=str(df["date"].max()),
            jurisdictions=df["pt"].n_unique(),
        )
        return df.sort("date", "pt")


def drop_aggregate(df: pl.DataFrame) -> pl.DataFrame:
    """Remove national-aggregate rows and keep only the wide output columns."""
    return df.filter(pl.col("pt") != AGGREGATE).select(WIDE_COLUMNS)
