"""
models/coverage.py — Pydantic models for reconciliation results.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from covcan_shared.constants import Dose


class PopulationOverride(BaseModel):
    """A denominator back-calculated from a published count and percentage."""

    pt: str
    published: int                  # StatCan estimate it replaces
    corrected: int
    reference_date: date
    count: float                    # published dose-1 count on reference_date
    percent: float                  # published dose-1 percentage on reference_date

    def to_log_dict(self) -> dict[str, Any]:
        return {
            "pt": self.pt,
            "published": self.published,
            "corrected": self.corrected,
            "reference_date": self.reference_date.isoformat(),
        }


class Discrepancy(BaseModel):
    """
    One published percentage that does not match its recomputed value.

    `expected` is True for the territories whose denominator is known to
    differ from the StatCan estimate.
    """

    ref_date: date
    pt: str
    dose: Dose
    count: float
    published: float
    computed: float
    expected: bool = False

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Discrepancy":
        return cls(**row)


class ReconciliationReport(BaseModel):
    """Outcome of validating the primary series against reference populations."""

    cutoff: date
    records_checked: int = 0
    discrepancies: list[Discrepancy] = Field(default_factory=list)
    overrides: list[PopulationOverride] = Field(default_factory=list)

    @property
    def unexpected(self) -> list[Discrepancy]:
        return [d for d in self.discrepancies if not d.expected]

    @property
    def needs_review(self) -> bool:
        return bool(self.unexpected)
