"""
transforms/time_series.py — Date alignment and deduplication for weekly series.

The primary series is anchored to one weekday (PHAC reports "as of"
Saturday). The secondary series reports on arbitrary days, often several
times a week. align_to_anchor() picks one secondary observation per week
and moves it onto the primary anchor.

Usage:
    from covcan_pipeline.transforms.time_series import (
        align_to_anchor,
        deduplicate_series,
    )

    aligned = align_to_anchor(
        secondary,
        splice_start=date(2021, 8, 1),    # a Sunday
        primary_end=primary["date"].max(),
        anchor=5,                          # Saturday
    )
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Literal

import polars as pl
import structlog

from covcan_shared.errors import AlignmentError
from covcan_shared.time_utils import weekly_dates

log = structlog.get_logger(__name__)

# Secondary samples are taken the day after the anchor and shifted back.
SAMPLE_OFFSET = timedelta(days=1)


def deduplicate_series(
    df: pl.DataFrame,
    key_cols: list[str],
    *,
    keep: Literal["first", "last"] = "last",
) -> pl.DataFrame:
    """
    Remove duplicate rows by (key_cols), keeping first or last occurrence.

    Use case: a snapshot that repeats a (date, jurisdiction) row after a
    revision; the later row wins.

    Args:
        df:       Input DataFrame.
        key_cols: Columns that define uniqueness.
        keep:     Which duplicate to keep ("first" | "last").

    Returns:
        Deduplicated DataFrame.
    """
    n_before = len(df)
    df = df.unique(subset=key_cols, keep=keep, maintain_order=True)

    dropped = n_before - len(df)
    if dropped:
        log.warning("deduplicated", dropped=dropped, key_cols=key_cols)

    return df


def sample_dates(splice_start: date, primary_end: date) -> list[date]:
    """
    Target sampling dates for the secondary series.

    Every 7th day from *splice_start* up to one day past the last primary
    date, so the final primary week still gets a candidate.
    """
    return weekly_dates(splice_start, primary_end + SAMPLE_OFFSET)


def align_to_anchor(
    df: pl.DataFrame,
    *,
    splice_start: date,
    primary_end: date,
    anchor: int,
    date_col: str = "date",
) -> pl.DataFrame:
    """
    Keep one secondary observation per week and shift it onto the anchor.

    Args:
        df:           Secondary series with a Date column.
        splice_start: First sampling date; must fall the day after *anchor*.
        primary_end:  Last date of the primary series.
        anchor:       Primary anchor weekday (Monday=0).
        date_col:     Date column name.

    Returns:
        Rows on a sampling date, with *date_col* moved back one day.
        Jurisdiction/week combinations with no observation on the sampling
        date are simply absent.

    Raises:
        AlignmentError: If *splice_start* is not the day after the anchor weekday.
    """
    expected = (anchor + SAMPLE_OFFSET.days) % 7
    if splice_start.weekday() != expected:
        raise AlignmentError(
            f"splice_start {splice_start} is a {calendar.day_name[splice_start.weekday()]}; "
            f"samples must be taken on {calendar.day_name[expected]}, the day after the "
            f"primary anchor ({calendar.day_name[anchor]})"
        )

    targets = sample_dates(splice_start, primary_end)

    aligned = df.filter(pl.col(date_col).is_in(targets)).with_columns(
        pl.col(date_col).dt.offset_by(f"-{SAMPLE_OFFSET.days}d").alias(date_col)
    )

    log.debug(
        "aligned_to_anchor",
        sample_dates=len(targets),
        before_rows=len(df),
        after_rows=len(aligned),
        first=str(aligned[date_col].min()) if len(aligned) else None,
        last=str(aligned[date_col].max()) if len(aligned) else None,
    )
    return aligned
