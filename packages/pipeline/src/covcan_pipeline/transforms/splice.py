"""
transforms/splice.py — Replace PHAC dose-3 coverage with the working-group series.

Which series supplies dose 3 is decided by jurisdiction alone:
  - SECONDARY_EXCLUDED_JURISDICTIONS keep PHAC's percent_dose_3
  - every other jurisdiction takes the aligned secondary value, including
    null where the secondary series has no sample (e.g. before splice_start)

Usage:
    from covcan_pipeline.transforms.splice import splice_dose_3

    wide = splice_dose_3(primary_wide, aligned_secondary)
"""

from __future__ import annotations

import polars as pl
import structlog

from covcan_shared.constants import SECONDARY_EXCLUDED_JURISDICTIONS, WIDE_COLUMNS
from covcan_shared.errors import SchemaError

log = structlog.get_logger(__name__)


def splice_dose_3(
    primary: pl.DataFrame,
    secondary: pl.DataFrame,
    *,
    excluded: frozenset[str] = SECONDARY_EXCLUDED_JURISDICTIONS,
) -> pl.DataFrame:
    """
    Left-join aligned secondary coverage onto the primary series.

    Args:
        primary:   Wide primary series (date, pt, percent_dose_1..3), no aggregate.
        secondary: Aligned secondary series with date, pt, percent_dose_3.
        excluded:  Jurisdictions that keep the primary dose-3 value.

    Returns:
        Wide DataFrame with WIDE_COLUMNS, one row per primary row.

    Raises:
        SchemaError: If *secondary* repeats a (date, pt) pair.
    """
    candidates = secondary.select(
        "date", "pt", pl.col("percent_dose_3").alias("secondary_dose_3")
    )
    joined = primary.join(candidates, on=["date", "pt"], how="left")

    if len(joined) != len(primary):
        raise SchemaError(
            f"Secondary series has duplicate (date, pt) rows: "
            f"{len(primary)} primary rows became {len(joined)}"
        )

    keep_primary = pl.col("pt").cast(pl.String).is_in(list(excluded))
    result = joined.with_columns(
        pl.when(keep_primary)
        .then(pl.col("percent_dose_3"))
        .otherwise(pl.col("secondary_dose_3"))
        .alias("percent_dose_3")
    ).select(WIDE_COLUMNS)

    log.info(
        "dose_3_spliced",
        rows=len(result),
        replaced=int(joined.filter(~keep_primary)["secondary_dose_3"].is_not_null().sum()),
        undefined=int(result["percent_dose_3"].null_count()),
        kept_primary=sorted(excluded),
    )
    return result.sort("date", "pt")
