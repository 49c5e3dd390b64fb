"""
covcan_shared.models — Pydantic models describing reconciliation results.

Used by:
- transforms/reconcile.py: records overrides and discrepancies
- pipelines/coverage.py: surfaces the report in the run result
"""

from covcan_shared.models.coverage import (
    Discrepancy,
    PopulationOverride,
    ReconciliationReport,
)

__all__ = [
    "Discrepancy",
    "PopulationOverride",
    "ReconciliationReport",
]
