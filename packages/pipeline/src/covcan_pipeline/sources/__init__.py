"""
covcan_pipeline.sources — input snapshot loaders.

  PrimarySeriesSource    — PHAC weekly vaccination coverage (doses 1-3)
  SecondarySeriesSource  — working-group cumulative additional doses
  remote                 — async downloader for both snapshots
"""

from covcan_pipeline.sources.primary import PrimarySeriesSource
from covcan_pipeline.sources.secondary import SecondarySeriesSource

__all__ = [
    "PrimarySeriesSource",
    "SecondarySeriesSource",
]
