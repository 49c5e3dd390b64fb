"""
covcan_pipeline — batch pipeline that splices third-dose coverage onto the
PHAC weekly vaccination series.

Architecture:
  sources/     — one loader per input snapshot (PHAC, working group) + downloader
  transforms/  — population reconciliation, weekly alignment, splicing, reshaping
  loaders/     — atomic CSV output writer
  pipelines/   — orchestrator that wires sources -> transforms -> loaders
  utils/       — structlog configuration, exponential-backoff retry decorator

Quick start:
    from covcan_pipeline.pipelines.coverage import run
    result = run(dry_run=True)

CLI:
    covcan fetch
    covcan run --dry-run

Shared code from covcan_shared:
    from covcan_shared.config import settings
    from covcan_shared.population import PopulationTable
    from covcan_shared.constants import JURISDICTIONS
"""

__version__ = "0.1.0"
