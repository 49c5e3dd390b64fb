"""
population.py — Population denominators per jurisdiction.

A PopulationTable starts from the StatCan estimates in constants.py and
accepts in-place overrides once the primary series has been reconciled.
Each override bumps `version`, so consumers can check that the table they
were handed has been corrected before computing coverage from it.

Usage:
    from covcan_shared.population import PopulationTable

    table = PopulationTable.default()
    table.population("British Columbia")          # 5214805
    table.override("Nunavut", 40000, reference_date=date(2021, 12, 18),
                   count=30000.0, percent=75.0)
    table.version                                 # 1
    table.to_frame()                              # pt | population
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date

import polars as pl
import structlog

from covcan_shared.constants import AGGREGATE, JURISDICTIONS, POPULATION_ESTIMATES
from covcan_shared.errors import UnknownJurisdictionError
from covcan_shared.models.coverage import PopulationOverride

log = structlog.get_logger(__name__)


class PopulationTable:
    """Mutable, versioned lookup of jurisdiction -> population denominator."""

    def __init__(self, estimates: Mapping[str, int]) -> None:
        unknown = set(estimates) - set(JURISDICTIONS)
        if unknown:
            raise UnknownJurisdictionError(unknown, source="population table")
        self._published: dict[str, int] = dict(estimates)
        self._current: dict[str, int] = dict(estimates)
        self._overrides: dict[str, PopulationOverride] = {}
        self._version = 0

    @classmethod
    def default(cls) -> "PopulationTable":
        """Fresh table built from the published StatCan estimates."""
        return cls(POPULATION_ESTIMATES)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        return self._version

    @property
    def overrides(self) -> dict[str, PopulationOverride]:
        return dict(self._overrides)

    def __contains__(self, pt: object) -> bool:
        return pt in self._current

    def __len__(self) -> int:
        return len(self._current)

    def population(self, pt: str) -> int:
        """Current (possibly corrected) denominator for *pt*."""
        try:
            return self._current[pt]
        except KeyError:
            raise UnknownJurisdictionError([pt], source="population table") from None

    def published(self, pt: str) -> int:
        """Original estimate for *pt*, ignoring overrides."""
        try:
            return self._published[pt]
        except KeyError:
            raise UnknownJurisdictionError([pt], source="population table") from None

    def is_overridden(self, pt: str) -> bool:
        return pt in self._overrides

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def override(
        self,
        pt: str,
        value: int,
        *,
        reference_date: date,
        count: float,
        percent: float,
    ) -> PopulationOverride:
        """
        Replace the denominator for *pt* with a back-calculated value.

        Args:
            pt:             Jurisdiction name.
            value:          Corrected population.
            reference_date: Date of the record the value was derived from.
            count:          Published count on that date.
            percent:        Published percentage on that date.

        Returns:
            The recorded PopulationOverride.

        Raises:
            ValueError: For the national aggregate or a non-positive value.
            UnknownJurisdictionError: For a name outside the vocabulary.
        """
        if pt == AGGREGATE:
            raise ValueError(f"{AGGREGATE} population cannot be overridden")
        if value <= 0:
            raise ValueError(f"Population override for {pt} must be positive, got {value}")

        record = PopulationOverride(
            pt=pt,
            published=self.published(pt),
            corrected=int(value),
            reference_date=reference_date,
            count=count,
            percent=percent,
        )
        self._current[pt] = record.corrected
        self._overrides[pt] = record
        self._version += 1
        log.info("population_override", version=self._version, **record.to_log_dict())
        return record

    # ------------------------------------------------------------------
    # polars views
    # ------------------------------------------------------------------

    def to_frame(self, *, published: bool = False) -> pl.DataFrame:
        """
        Return a (pt, population) DataFrame for joins.

        `pt` is an Enum over the full vocabulary so it joins directly onto
        loaded series.
        """
        values = self._published if published else self._current
        names = list(values)
        return pl.DataFrame(
            {
                "pt": names,
                "population": [values[n] for n in names],
            },
            schema={"pt": pl.Enum(JURISDICTIONS), "population": pl.Int64},
        )
