"""
time_utils.py — Date parsing and weekly-cadence helpers.

The two sources publish dates differently:
- PHAC: ISO "2021-10-02", always the Saturday ending the reporting week
- Open-data working group: "03-10-2021" (day-month-year), any day

Usage:
    from covcan_shared.time_utils import parse_date_column, weekly_dates, anchor_weekday

    df = parse_date_column(df, "week_end", "%Y-%m-%d", source="primary")
    weekly_dates(date(2021, 8, 1), date(2021, 8, 31))
    # [date(2021, 8, 1), date(2021, 8, 8), date(2021, 8, 15), ...]
"""

from __future__ import annotations

import calendar
from datetime import date, datetime

import polars as pl
from dateutil.rrule import WEEKLY, rrule

from covcan_shared.errors import SchemaError

ISO_FORMAT = "%Y-%m-%d"
DAY_MONTH_YEAR_FORMAT = "%d-%m-%Y"


def parse_date_column(
    df: pl.DataFrame,
    col: str,
    fmt: str,
    *,
    source: str,
    alias: str = "date",
) -> pl.DataFrame:
    """
    Parse a String column into a Date column, failing on any bad value.

    Every row must carry a date; an empty or malformed value is a schema
    error rather than a null.

    Args:
        df:     Input DataFrame.
        col:    Raw date column.
        fmt:    strftime format of the raw values.
        source: Source name, used in the error message.
        alias:  Output column name.

    Returns:
        DataFrame with *alias* added as pl.Date.

    Raises:
        SchemaError: If any value is missing or does not match *fmt*.
    """
    raw = pl.col(col).str.strip_chars()
    parsed = df.with_columns(raw.str.to_date(fmt, strict=False).alias(alias))

    bad = parsed.filter(pl.col(alias).is_null())[col]
    if len(bad):
        sample = bad.head(5).to_list()
        raise SchemaError(
            f"{source}: {len(bad)} unparseable value(s) in {col!r} "
            f"(expected {fmt}), e.g. {sample!r}"
        )
    return parsed


def anchor_weekday(dates: pl.Series) -> int:
    """
    Return the single weekday (Monday=0) every date in *dates* falls on.

    Raises:
        SchemaError: If the series is empty or spans more than one weekday.
    """
    # polars weekday() is ISO (Monday=1); datetime.weekday() is Monday=0
    weekdays = (dates.drop_nulls().dt.weekday() - 1).unique().to_list()
    if len(weekdays) != 1:
        names = sorted(calendar.day_name[w] for w in weekdays)
        raise SchemaError(
            f"Expected weekly dates on a single weekday, found {names or 'none'}"
        )
    return int(weekdays[0])


def weekly_dates(start: date, until: date) -> list[date]:
    """Every 7th day from *start* up to and including *until*."""
    if until < start:
        return []
    return [
        dt.date()
        for dt in rrule(
            WEEKLY,
            dtstart=datetime.combine(start, datetime.min.time()),
            until=datetime.combine(until, datetime.min.time()),
        )
    ]
