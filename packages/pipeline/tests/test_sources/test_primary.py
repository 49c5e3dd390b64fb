"""
tests/test_sources/test_primary.py — Unit tests for PrimarySeriesSource.

Raw frames come from conftest.make_primary_raw(); file-level tests write
them under tmp_path. No network access.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import polars as pl
import pytest

from covcan_shared.constants import AGGREGATE, JURISDICTIONS, WIDE_COLUMNS
from covcan_shared.errors import SchemaError, UnknownJurisdictionError
from covcan_pipeline.sources.primary import PrimarySeriesSource, drop_aggregate

from conftest import DOSE_3_REPORTING_FROM, WEEKS, make_primary_raw, primary_counts


@pytest.fixture
def source() -> PrimarySeriesSource:
    return PrimarySeriesSource()


# ---------------------------------------------------------------------------
# extract()
# ---------------------------------------------------------------------------

class TestExtract:
    def test_reads_all_columns_as_string(self, source, primary_csv: Path):
        raw = source.extract(primary_csv)
        assert all(dtype == pl.String for dtype in raw.dtypes)
        assert len(raw) == len(WEEKS) * len(JURISDICTIONS)

    def test_missing_file_raises(self, source, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            source.extract(tmp_path / "nope.csv")

    def test_strips_bom_from_header(self, source, tmp_path: Path):
        path = tmp_path / "bom.csv"
        make_primary_raw(weeks=[WEEKS[0]]).select(
            "week_end", "prename", *PrimarySeriesSource.required_columns[2:]
        ).write_csv(path)
        path.write_bytes(b"\xef\xbb\xbf" + path.read_bytes())

        raw = source.extract(path)
        assert raw.columns[0] == "week_end"

    def test_missing_column_raises(self, source, tmp_path: Path):
        path = tmp_path / "short.csv"
        make_primary_raw(weeks=[WEEKS[0]]).drop("proptotal_fully").write_csv(path)
        with pytest.raises(SchemaError, match="proptotal_fully"):
            source.extract(path)


# ---------------------------------------------------------------------------
# transform()
# ---------------------------------------------------------------------------

class TestTransform:
    def test_output_schema(self, source, primary_raw):
        df = source.transform(primary_raw)
        assert df.columns == [
            "date",
            "pt",
            "count_dose_1",
            "count_dose_2",
            "count_dose_3",
            "percent_dose_1",
            "percent_dose_2",
            "percent_dose_3",
        ]
        assert df.schema["date"] == pl.Date
        assert df.schema["pt"] == pl.Enum(JURISDICTIONS)
        assert df.schema["count_dose_1"] == pl.Float64
        assert df.schema["percent_dose_3"] == pl.Float64

    def test_keeps_aggregate(self, source, primary_raw):
        df = source.transform(primary_raw)
        assert AGGREGATE in df["pt"].cast(pl.String).to_list()

    def test_counts_parsed(self, source, primary_raw):
        df = source.transform(primary_raw)
        week = date(2021, 10, 2)
        row = df.filter((pl.col("date") == week) & (pl.col("pt") == "Ontario"))
        dose_1, dose_2, dose_3 = primary_counts("Ontario", week)
        assert row["count_dose_1"][0] == dose_1
        assert row["count_dose_2"][0] == dose_2
        assert row["count_dose_3"][0] == dose_3

    def test_unreported_dose_is_null(self, source, primary_raw):
        df = source.transform(primary_raw)
        early = df.filter(pl.col("date") < DOSE_3_REPORTING_FROM)
        assert len(early) > 0
        assert early["percent_dose_3"].null_count() == len(early)
        assert early["count_dose_3"].null_count() == len(early)
        assert early["percent_dose_1"].null_count() == 0

    def test_sorted_by_date_then_pt(self, source, primary_raw):
        df = source.transform(primary_raw.reverse())
        assert df.equals(df.sort("date", "pt"))

    def test_duplicate_week_keeps_last(self, source):
        raw = make_primary_raw(weeks=[WEEKS[0]], jurisdictions=("Ontario",))
        revised = raw.with_columns(pl.lit("99.99").alias("proptotal_atleast1dose"))
        df = source.transform(pl.concat([raw, revised]))
        assert len(df) == 1
        assert df["percent_dose_1"][0] == pytest.approx(99.99)

    def test_unknown_jurisdiction_raises(self, source):
        raw = make_primary_raw(weeks=[WEEKS[0]], jurisdictions=("Ontario",))
        raw = pl.concat([raw, raw.with_columns(pl.lit("Repatriated Canadians").alias("prename"))])
        with pytest.raises(UnknownJurisdictionError) as exc_info:
            source.transform(raw)
        assert exc_info.value.values == ["Repatriated Canadians"]

    def test_malformed_date_raises(self, source):
        raw = make_primary_raw(weeks=[WEEKS[0]], jurisdictions=("Ontario",)).with_columns(
            pl.lit("02/10/2021").alias("week_end")
        )
        with pytest.raises(SchemaError, match="week_end"):
            source.transform(raw)

    def test_non_numeric_count_raises(self, source):
        raw = make_primary_raw(weeks=[WEEKS[0]], jurisdictions=("Ontario",)).with_columns(
            pl.lit("n/a").alias("numtotal_fully")
        )
        with pytest.raises(SchemaError, match="numtotal_fully"):
            source.transform(raw)


class TestRun:
    def test_run_from_file(self, source, primary_csv: Path):
        df = source.run(primary_csv)
        assert len(df) == len(WEEKS) * len(JURISDICTIONS)

    def test_run_reraises(self, source, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            source.run(tmp_path / "missing.csv")


class TestDropAggregate:
    def test_removes_canada_and_counts(self, source, primary_raw):
        wide = drop_aggregate(source.transform(primary_raw))
        assert wide.columns == WIDE_COLUMNS
        assert AGGREGATE not in wide["pt"].cast(pl.String).to_list()
        assert wide["pt"].n_unique() == 13
