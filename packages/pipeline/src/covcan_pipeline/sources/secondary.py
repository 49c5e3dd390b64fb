"""
sources/secondary.py — Open-data working group additional-dose loader.

Reads the COVID-19 Canada Open Data Working Group
``timeseries_prov/vaccine_additionaldoses_prov.csv`` snapshot: cumulative
third ("additional") doses administered per province, on whatever days
the province reported.

CSV format notes:
  - province is a full name ("Ontario") or a short code ("BC", "NL",
    "PEI", "NWT"); the codes are mapped via SECONDARY_RENAMES
  - date_vaccine_additionaldoses is day-month-year ("03-10-2021")
  - cumulative_additionaldoses_vaccine is 0 before a province started
    reporting; those placeholder rows are dropped

Coverage is derived against the reconciled PopulationTable, so this source
must run after reconcile_populations().

Usage:
    source = SecondarySeriesSource()
    df = source.run("data/raw/vaccine_additionaldoses_prov.csv", population=population)
    # columns: date, pt, cumulative_count, percent_dose_3
"""

from __future__ import annotations

from typing import Any

import polars as pl

from covcan_shared.constants import SECONDARY_EXCLUDED_JURISDICTIONS, SECONDARY_RENAMES
from covcan_shared.geo import normalize_jurisdiction_column
from covcan_shared.population import PopulationTable
from covcan_shared.time_utils import DAY_MONTH_YEAR_FORMAT, parse_date_column
from covcan_pipeline.sources.base import BaseSource
from covcan_pipeline.transforms.reconcile import require_corrected
from covcan_pipeline.transforms.time_series import deduplicate_series


class SecondarySeriesSource(BaseSource):
    """Loads the working-group additional-dose series and derives coverage."""

    name = "CCODWG"
    required_columns = (
        "province",
        "date_vaccine_additionaldoses",
        "cumulative_additionaldoses_vaccine",
    )

    def __init__(
        self,
        excluded: frozenset[str] = SECONDARY_EXCLUDED_JURISDICTIONS,
    ) -> None:
        super().__init__()
        self._excluded = excluded

    def transform(
        self,
        raw: pl.DataFrame,
        *,
        population: PopulationTable,
        **kwargs: Any,
    ) -> pl.DataFrame:
        """
        Normalize names, derive coverage, drop placeholders and exclusions.

        Output columns:
            date              Date     — report date (not yet aligned)
            pt                Enum     — canonical jurisdiction
            cumulative_count  Float64  — cumulative additional doses
            percent_dose_3    Float64  — round(count / population * 100, 2)

        Args:
            raw:        DataFrame returned by extract().
            population: Reconciled PopulationTable.

        Raises:
            ReconciliationError: If the population overrides are not installed.
            SchemaError: Missing columns, bad dates, non-numeric or empty counts.
            UnknownJurisdictionError: An unmapped province code.
        """
        require_corrected(population)
        self.check_columns(raw)

        df = parse_date_column(
            raw, "date_vaccine_additionaldoses", DAY_MONTH_YEAR_FORMAT, source=self.name
        )
        df = normalize_jurisdiction_column(
            df, "province", source=self.name, renames=SECONDARY_RENAMES
        )
        df = self.cast_numeric(
            df, ["cumulative_additionaldoses_vaccine"], nullable=False
        ).rename({"cumulative_additionaldoses_vaccine": "cumulative_count"})

        n_raw = len(df)
        df = df.filter(
            (pl.col("cumulative_count") != 0)
            & ~pl.col("pt").cast(pl.String).is_in(list(self._excluded))
        )
        self._log.debug("rows_filtered", dropped=n_raw - len(df), excluded=sorted(self._excluded))

        df = deduplicate_series(df.select("date", "pt", "cumulative_count"), ["date", "pt"])

        return (
            df.join(population.to_frame(), on="pt", how="left")
            .with_columns(
                (pl.col("cumulative_count") / pl.col("population") * 100)
                .round(2)
                .alias("percent_dose_3")
            )
            .select("date", "pt", "cumulative_count", "percent_dose_3")
            .sort("date", "pt")
        )
