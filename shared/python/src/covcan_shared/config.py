"""
config.py — pydantic-settings Settings class.

All environment variables for covcan are declared here. The pipeline,
CLI, and downloader import `settings` from this module.

Usage:
    from covcan_shared.config import settings
    print(settings.primary_path)
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from covcan_shared.constants import LogFormat, LogLevel


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Directories
    # -------------------------------------------------------------------------
    data_dir: Path = Field(default=Path("./data"))
    raw_subdir: str = Field(default="raw")
    output_subdir: str = Field(default="processed")

    # -------------------------------------------------------------------------
    # Input snapshots
    # -------------------------------------------------------------------------
    primary_filename: str = Field(default="vaccination-coverage-map.csv")
    secondary_filename: str = Field(default="vaccine_additionaldoses_prov.csv")
    primary_url: str = Field(
        default="https://health-infobase.canada.ca/src/data/covidLive/vaccination-coverage-map.csv"
    )
    secondary_url: str = Field(
        default=(
            "https://raw.githubusercontent.com/ccodwg/Covid19Canada/master/"
            "timeseries_prov/vaccine_additionaldoses_prov.csv"
        )
    )
    download_timeout: float = Field(default=60.0)

    # -------------------------------------------------------------------------
    # Outputs
    # -------------------------------------------------------------------------
    wide_filename: str = Field(default="vaccine_coverage_wide.csv")
    long_filename: str = Field(default="vaccine_coverage_long.csv")

    # -------------------------------------------------------------------------
    # Reconciliation and splicing
    # -------------------------------------------------------------------------
    validation_start: date = Field(default=date(2021, 12, 18))
    population_reference_date: date = Field(default=date(2021, 12, 18))
    splice_start: date = Field(default=date(2021, 8, 1))

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: LogLevel = Field(default="INFO")
    log_format: LogFormat = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def raw_dir(self) -> Path:
        return self.data_dir / self.raw_subdir

    @property
    def output_dir(self) -> Path:
        return self.data_dir / self.output_subdir

    @property
    def primary_path(self) -> Path:
        return self.raw_dir / self.primary_filename

    @property
    def secondary_path(self) -> Path:
        return self.raw_dir / self.secondary_filename

    @property
    def wide_path(self) -> Path:
        return self.output_dir / self.wide_filename

    @property
    def long_path(self) -> Path:
        return self.output_dir / self.long_filename

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton, import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
