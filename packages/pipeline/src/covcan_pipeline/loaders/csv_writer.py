"""
loaders/csv_writer.py — Writes the wide and long coverage files.

Both outputs are staged as temporary siblings of their destinations and
only renamed into place once every file has been written. A failed rename
rolls back the ones already swapped in, so a failure at any point leaves
the previous outputs (or nothing) behind, never a half-written or mixed set.

Usage:
    from covcan_pipeline.loaders.csv_writer import write_outputs

    results = write_outputs({
        Path("data/processed/vaccine_coverage_wide.csv"): wide,
        Path("data/processed/vaccine_coverage_long.csv"): long,
    })
    for r in results:
        print(r.path, r.rows)
"""

from __future__ import annotations

import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

import polars as pl
import structlog

from covcan_shared.constants import DOSE_COLUMNS

log = structlog.get_logger(__name__)

_PERCENT_COLUMNS: frozenset[str] = frozenset({*DOSE_COLUMNS.values(), "coverage"})


@dataclass
class WriteResult:
    """Summary of one written output file."""

    path: Path
    rows: int = 0
    columns: int = 0
    duration_ms: int = 0


def _prepare(df: pl.DataFrame) -> pl.DataFrame:
    """Round percentage columns to two decimals; Enum/Date columns write as text."""
    return df.with_columns(
        [pl.col(c).round(2) for c in df.columns if c in _PERCENT_COLUMNS]
    )


def _stage(df: pl.DataFrame, dest: Path) -> Path:
    """Write *df* to a temp file next to *dest* and return the temp path."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent
    )
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        df.write_csv(tmp, include_header=True)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
    return tmp


def _commit(staged: list[tuple[Path, Path]]) -> None:
    """
    Rename every staged file into place, or none of them.

    Existing destinations are moved aside first; if any rename fails, the
    files already swapped in are rolled back to their previous content.
    """
    backups: dict[Path, Path | None] = {}
    try:
        for tmp, dest in staged:
            backup = None
            if dest.exists():
                fd, name = tempfile.mkstemp(
                    prefix=f".{dest.name}.", suffix=".bak", dir=dest.parent
                )
                os.close(fd)
                backup = Path(name)
                try:
                    os.replace(dest, backup)
                except Exception:
                    backup.unlink(missing_ok=True)
                    raise
            backups[dest] = backup
            os.replace(tmp, dest)
    except Exception:
        for dest, backup in backups.items():
            if backup is not None:
                os.replace(backup, dest)
            else:
                dest.unlink(missing_ok=True)
        for tmp, _ in staged:
            tmp.unlink(missing_ok=True)
        log.error("output_rollback", paths=[str(d) for d in backups])
        raise

    for backup in backups.values():
        if backup is not None:
            backup.unlink(missing_ok=True)


def write_outputs(frames: dict[Path, pl.DataFrame]) -> list[WriteResult]:
    """
    Atomically write each DataFrame to its destination path.

    Args:
        frames: Destination path -> fully computed DataFrame.

    Returns:
        One WriteResult per file, in input order.
    """
    staged: list[tuple[Path, Path]] = []
    results: list[WriteResult] = []
    try:
        for dest, df in frames.items():
            t0 = time.monotonic()
            tmp = _stage(_prepare(df), Path(dest))
            staged.append((tmp, Path(dest)))
            results.append(
                WriteResult(
                    path=Path(dest),
                    rows=len(df),
                    columns=df.width,
                    duration_ms=int((time.monotonic() - t0) * 1000),
                )
            )
    except Exception:
        for tmp, _ in staged:
            tmp.unlink(missing_ok=True)
        raise

    _commit(staged)
    for _, dest in staged:
        log.info("output_written", path=str(dest))

    return results
