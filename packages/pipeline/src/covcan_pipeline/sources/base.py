"""
sources/base.py — Abstract base class for the two series loaders.

Each concrete source must implement:
  extract()   — read the raw snapshot, return a polars DataFrame of strings
  transform() — validate and normalize the raw DataFrame into the series schema

The run() method orchestrates extract → transform and handles timing and
logging. Pipelines call run() rather than the individual methods.

Raw files are read with every column as String so that parsing (and the
errors it raises) happens in one place, in transform(), instead of in the
CSV reader's type inference.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import polars as pl
import structlog

from covcan_shared.errors import SchemaError

log = structlog.get_logger(__name__)


class BaseSource(ABC):
    """Abstract base for covcan series loaders."""

    # Override in subclass; used for logging and error messages
    name: str = "unknown"

    # Columns transform() cannot do without
    required_columns: tuple[str, ...] = ()

    def __init__(self) -> None:
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # Interface
    # ------------------------------------------------------------------

    def extract(self, path: Path | str) -> pl.DataFrame:
        """
        Read a raw CSV snapshot with all columns as String.

        Args:
            path: Location of the downloaded file.

        Returns:
            Raw polars DataFrame with original column names.

        Raises:
            FileNotFoundError: If *path* does not exist.
            SchemaError: If a required column is missing.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"{self.name}: input file not found: {path}")

        raw = pl.read_csv(
            path,
            infer_schema_length=0,
            null_values=[""],
        )
        # Strip BOM remnants from the first header
        first_col = raw.columns[0] if raw.columns else ""
        if first_col.startswith("\ufeff"):
            raw = raw.rename({first_col: first_col.lstrip("\ufeff")})

        self.check_columns(raw)
        return raw

    @abstractmethod
    def transform(self, raw: pl.DataFrame, **kwargs: Any) -> pl.DataFrame:
        """
        Validate and normalize a raw DataFrame into the series schema.

        Implementations should:
        - Parse dates and numbers strictly, raising SchemaError on bad values
        - Resolve jurisdiction names to the canonical Enum ``pt`` column
        - Return only the columns downstream transforms need

        Args:
            raw: DataFrame returned by extract().

        Returns:
            Normalized polars DataFrame.
        """
        ...

    # ------------------------------------------------------------------
    # Orchestration: pipelines call this
    # ------------------------------------------------------------------

    def run(self, path: Path | str, **kwargs: Any) -> pl.DataFrame:
        """
        Extract + transform in sequence with timing and structured logging.

        Args:
            path:     Raw snapshot location.
            **kwargs: Forwarded to transform().

        Returns:
            Transformed polars DataFrame.

        Raises:
            Any exception from extract() or transform() after logging it.
        """
        run_log = self._log.bind(path=str(path))
        run_log.info("source_run_start")

        t0 = time.monotonic()
        try:
            raw = self.extract(path)
            run_log.info(
                "extract_complete",
                raw_rows=len(raw),
                raw_cols=raw.width,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )

            t1 = time.monotonic()
            result = self.transform(raw, **kwargs)
            run_log.info(
                "transform_complete",
                result_rows=len(result),
                result_cols=result.width,
                duration_ms=int((time.monotonic() - t1) * 1000),
            )
            return result

        except Exception as exc:
            run_log.error(
                "source_run_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            raise

    # ------------------------------------------------------------------
    # Shared helpers available to all subclasses
    # ------------------------------------------------------------------

    def check_columns(self, df: pl.DataFrame) -> None:
        """Raise SchemaError if any required column is absent."""
        missing = [c for c in self.required_columns if c not in df.columns]
        if missing:
            raise SchemaError(
                f"{self.name}: missing column(s) {missing}. Columns: {df.columns}"
            )

    def cast_numeric(
        self,
        df: pl.DataFrame,
        columns: list[str],
        *,
        nullable: bool = True,
    ) -> pl.DataFrame:
        """
        Cast String columns to Float64, rejecting junk.

        A non-null value that does not parse as a number raises SchemaError;
        nothing is coerced silently. An empty cell stays null when *nullable*,
        otherwise it is rejected too.
        """
        cast = df.with_columns(
            [pl.col(c).str.strip_chars().cast(pl.Float64, strict=False) for c in columns]
        )
        for c in columns:
            bad = df[c].filter(df[c].is_not_null() & cast[c].is_null())
            if len(bad):
                raise SchemaError(
                    f"{self.name}: {len(bad)} non-numeric value(s) in {c!r}, "
                    f"e.g. {bad.head(5).to_list()!r}"
                )
            if not nullable and df[c].null_count():
                raise SchemaError(
                    f"{self.name}: {df[c].null_count()} empty value(s) in {c!r}"
                )
        return cast
