"""
geo.py — Jurisdiction lookup and normalization helpers.

Both sources name provinces and territories differently: PHAC uses full
English names ("British Columbia"), the open-data working group mixes full
names with short codes ("BC", "PEI", "NWT"). Everything is resolved to the
PHAC vocabulary in constants.JURISDICTIONS before any join.

Unlike a fuzzy matcher, resolution here is exact: a value that is neither a
canonical name nor a listed rename is an error, since a silently passed
through jurisdiction would break the (date, pt) join.

Usage:
    from covcan_shared.geo import resolve_jurisdiction, normalize_jurisdiction_column

    resolve_jurisdiction("BC", renames=SECONDARY_RENAMES)   # "British Columbia"
    resolve_jurisdiction("Ontario")                        # "Ontario"
    resolve_jurisdiction("Ont.")                           # None
"""

from __future__ import annotations

from collections.abc import Mapping

import polars as pl

from covcan_shared.constants import JURISDICTIONS
from covcan_shared.errors import UnknownJurisdictionError

JURISDICTION_DTYPE = pl.Enum(JURISDICTIONS)

_CANONICAL: frozenset[str] = frozenset(JURISDICTIONS)


def resolve_jurisdiction(
    name: str | None,
    renames: Mapping[str, str] | None = None,
) -> str | None:
    """
    Resolve a raw jurisdiction string to its canonical name.

    Args:
        name:    Raw value from a source file.
        renames: Source-specific code -> canonical name mapping.

    Returns:
        Canonical name, or None if the value is not recognized.
    """
    if name is None:
        return None
    key = name.strip()
    if renames and key in renames:
        key = renames[key]
    return key if key in _CANONICAL else None


def normalize_jurisdiction_column(
    df: pl.DataFrame,
    col: str,
    *,
    source: str,
    renames: Mapping[str, str] | None = None,
    alias: str = "pt",
) -> pl.DataFrame:
    """Replace raw jurisdiction strings in *col* with an Enum ``pt`` column.

    Resolves each unique value once through :func:`resolve_jurisdiction`
    and joins the result back, then casts to the jurisdiction Enum.

    Args:
        df:      Input DataFrame containing *col*.
        col:     Column holding raw jurisdiction strings.
        source:  Source name, used in the error message.
        renames: Source-specific code -> canonical name mapping.
        alias:   Output column name.

    Returns:
        DataFrame with *col* removed and *alias* added.

    Raises:
        UnknownJurisdictionError: If any value (including null) cannot be
            resolved.
    """
    uniques = df.select(pl.col(col).unique()).to_series().to_list()
    resolved = {raw: resolve_jurisdiction(raw, renames) for raw in uniques}

    unmapped = [str(raw) for raw, canonical in resolved.items() if canonical is None]
    if unmapped:
        raise UnknownJurisdictionError(unmapped, source=source)

    lookup = pl.DataFrame(
        {
            col: list(resolved),
            alias: list(resolved.values()),
        },
        schema={col: pl.String, alias: pl.String},
    )

    return (
        df.join(lookup, on=col, how="left")
        .with_columns(pl.col(alias).cast(JURISDICTION_DTYPE))
        .drop(col)
    )
