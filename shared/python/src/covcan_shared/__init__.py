"""
covcan_shared — reference data, configuration, and shared helpers for covcan.

Usage:
    from covcan_shared.config import settings
    from covcan_shared.population import PopulationTable
    from covcan_shared.geo import normalize_jurisdiction_column
    from covcan_shared.constants import JURISDICTIONS, SECONDARY_EXCLUDED_JURISDICTIONS
    from covcan_shared.errors import SchemaError, UnknownJurisdictionError
"""

__version__ = "0.1.0"
