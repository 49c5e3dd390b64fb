"""
errors.py — exception types raised by the loaders and transforms.

Every fatal condition in a run maps to one of these. Reconciliation
anomalies and missing values are not errors and never raise.
"""

from __future__ import annotations

from collections.abc import Iterable


class CovcanError(Exception):
    """Base class for all fatal pipeline errors."""


class SchemaError(CovcanError, ValueError):
    """Missing columns, or dates/numbers that do not parse."""


class UnknownJurisdictionError(CovcanError, ValueError):
    """A jurisdiction name or code outside the canonical vocabulary."""

    def __init__(self, values: Iterable[str], *, source: str) -> None:
        self.values = sorted(set(values))
        self.source = source
        super().__init__(
            f"{source}: unrecognized jurisdiction(s) {self.values!r}"
        )


class ReconciliationError(CovcanError):
    """Population overrides could not be established or were not applied."""


class AlignmentError(CovcanError, ValueError):
    """The secondary series cannot be placed on the primary weekly grid."""
