"""
cli.py — Click CLI entrypoint for the coverage pipeline.

Usage:
    covcan fetch
    covcan run
    covcan run --splice-start 2021-08-01 --dry-run
    covcan --log-format json run --wide-out out/wide.csv --long-out out/long.csv
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from pathlib import Path

import click
import structlog

from covcan_shared.config import settings
from covcan_shared.errors import CovcanError
from covcan_pipeline.utils.logging import configure_logging

log = structlog.get_logger(__name__)

_DATE = click.DateTime(formats=["%Y-%m-%d"])
_PATH = click.Path(path_type=Path, dir_okay=False)


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value else None


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level",
)
@click.option(
    "--log-format",
    default=settings.log_format,
    type=click.Choice(["json", "console"]),
    help="Log renderer",
)
def main(log_level: str, log_format: str) -> None:
    """covcan vaccine coverage pipeline."""
    configure_logging(log_level=log_level, log_format=log_format)


@main.command()
@click.option("--primary", "primary_path", type=_PATH, default=None, help="PHAC coverage CSV")
@click.option("--secondary", "secondary_path", type=_PATH, default=None, help="Additional-dose CSV")
@click.option("--wide-out", "wide_path", type=_PATH, default=None, help="Wide output CSV")
@click.option("--long-out", "long_path", type=_PATH, default=None, help="Long output CSV")
@click.option("--validation-start", type=_DATE, default=None, help="First week to validate")
@click.option("--reference-date", type=_DATE, default=None, help="Week used to derive NT/NU populations")
@click.option("--splice-start", type=_DATE, default=None, help="First secondary sampling date")
@click.option("--dry-run", is_flag=True, help="Build outputs but do not write them")
def run(
    primary_path: Path | None,
    secondary_path: Path | None,
    wide_path: Path | None,
    long_path: Path | None,
    validation_start: datetime | None,
    reference_date: datetime | None,
    splice_start: datetime | None,
    dry_run: bool,
) -> None:
    """Reconcile, splice, and write the wide and long coverage files."""
    from covcan_pipeline.pipelines.coverage import run as run_pipeline

    try:
        result = run_pipeline(
            primary_path=primary_path,
            secondary_path=secondary_path,
            wide_path=wide_path,
            long_path=long_path,
            validation_start=_as_date(validation_start),
            population_reference_date=_as_date(reference_date),
            splice_start=_as_date(splice_start),
            dry_run=dry_run,
        )
    except (CovcanError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    for output in result.outputs:
        click.echo(f"  {output.path}  {output.rows} rows")
    for override in result.report.overrides:
        click.echo(
            f"  population {override.pt}: {override.published} -> {override.corrected}"
        )
    if result.report.needs_review:
        click.echo(
            f"  ⚠ {len(result.report.unexpected)} unexpected percentage discrepancies; "
            "see log for details",
            err=True,
        )


@main.command()
@click.option(
    "--raw-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory for the downloaded snapshots (default: settings raw_dir)",
)
def fetch(raw_dir: Path | None) -> None:
    """Download the primary and secondary snapshots."""
    import httpx

    from covcan_pipeline.sources.remote import fetch_all

    try:
        paths = asyncio.run(fetch_all(raw_dir))
    except httpx.HTTPError as exc:
        click.echo(f"Download failed: {exc}", err=True)
        raise SystemExit(1) from exc

    for path in paths:
        click.echo(f"  ✓ {path}")


if __name__ == "__main__":
    main()
