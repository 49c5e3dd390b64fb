"""
constants.py — shared constants used across the pipeline.

The jurisdiction vocabulary, population denominators, secondary-source
renames and exclusions, and output column layouts are defined here so the
loaders, transforms, and tests all read the same values.
"""

from __future__ import annotations

from typing import Final, Literal

# ---------------------------------------------------------------------------
# Jurisdictions: canonical names as published by PHAC (``prename``)
# ---------------------------------------------------------------------------
AGGREGATE: Final[str] = "Canada"

PROVINCES_AND_TERRITORIES: Final[tuple[str, ...]] = (
    "Newfoundland and Labrador",
    "Prince Edward Island",
    "Nova Scotia",
    "New Brunswick",
    "Quebec",
    "Ontario",
    "Manitoba",
    "Saskatchewan",
    "Alberta",
    "British Columbia",
    "Yukon",
    "Northwest Territories",
    "Nunavut",
)

# Full vocabulary (13 provinces/territories + national aggregate). Order is
# the category order of the ``pt`` Enum column.
JURISDICTIONS: Final[tuple[str, ...]] = (AGGREGATE, *PROVINCES_AND_TERRITORIES)

PROVINCE_ABBREVIATIONS: Final[dict[str, str]] = {
    "Newfoundland and Labrador": "NL",
    "Prince Edward Island": "PE",
    "Nova Scotia": "NS",
    "New Brunswick": "NB",
    "Quebec": "QC",
    "Ontario": "ON",
    "Manitoba": "MB",
    "Saskatchewan": "SK",
    "Alberta": "AB",
    "British Columbia": "BC",
    "Yukon": "YT",
    "Northwest Territories": "NT",
    "Nunavut": "NU",
}

# ---------------------------------------------------------------------------
# Population denominators: StatCan estimates, July 1 2021 (table 17-10-0009)
# ---------------------------------------------------------------------------
POPULATION_ESTIMATES: Final[dict[str, int]] = {
    "Canada": 38246108,
    "Newfoundland and Labrador": 520553,
    "Prince Edward Island": 164318,
    "Nova Scotia": 992055,
    "New Brunswick": 789225,
    "Quebec": 8604495,
    "Ontario": 14826276,
    "Manitoba": 1383765,
    "Saskatchewan": 1179844,
    "Alberta": 4442879,
    "British Columbia": 5214805,
    "Yukon": 43025,
    "Northwest Territories": 45504,
    "Nunavut": 39403,
}

# PHAC computes coverage for these two territories against a denominator
# other than the StatCan estimate; theirs is back-calculated on load.
POPULATION_CORRECTED_JURISDICTIONS: Final[frozenset[str]] = frozenset(
    {"Northwest Territories", "Nunavut"}
)

# ---------------------------------------------------------------------------
# Secondary series (COVID-19 Canada Open Data Working Group)
# ---------------------------------------------------------------------------

# Short codes used by the secondary source; every other value is already a
# canonical name.
SECONDARY_RENAMES: Final[dict[str, str]] = {
    "BC": "British Columbia",
    "NL": "Newfoundland and Labrador",
    "PEI": "Prince Edward Island",
    "NWT": "Northwest Territories",
}

# Third doses from the secondary source are not used for these jurisdictions:
# Nunavut's PHAC dose-3 series is complete on its own, Yukon's secondary
# counts are inconsistent with PHAC's dose 1/2 figures.
SECONDARY_EXCLUDED_JURISDICTIONS: Final[frozenset[str]] = frozenset(
    {"Yukon", "Nunavut"}
)

# ---------------------------------------------------------------------------
# Output layouts
# ---------------------------------------------------------------------------
DOSE_COLUMNS: Final[dict[str, str]] = {
    "dose_1": "percent_dose_1",
    "dose_2": "percent_dose_2",
    "dose_3": "percent_dose_3",
}

WIDE_COLUMNS: Final[list[str]] = ["date", "pt", *DOSE_COLUMNS.values()]
LONG_COLUMNS: Final[list[str]] = ["date", "pt", "dose", "coverage"]

# ---------------------------------------------------------------------------
# Typed literals
# ---------------------------------------------------------------------------
Dose = Literal["dose_1", "dose_2", "dose_3"]
LogFormat = Literal["json", "console"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
