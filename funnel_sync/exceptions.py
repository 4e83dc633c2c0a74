"""
Error types raised by funnel-sync.

Fatal errors (bad date bounds, missing tabs, missing configuration) propagate
to the caller of a single-date entry point. Metric fetch failures never
propagate: the fetcher logs them and substitutes 0.
"""
from typing import List


class FunnelSyncError(Exception):
    """Base class for all funnel-sync errors"""


class ConfigurationError(FunnelSyncError):
    """A required setting (property id, spreadsheet id, ...) is missing"""


class InvalidRangeError(FunnelSyncError, ValueError):
    """Malformed or inverted date bounds"""


class MissingSheetError(FunnelSyncError):
    """Target sheet tab does not exist"""

    def __init__(self, sheet_name: str):
        super().__init__(f"Sheet {sheet_name} not found.")
        self.sheet_name = sheet_name


class ReportStrategyError(FunnelSyncError):
    """A single runReport strategy failed"""

    def __init__(self, strategy: str, message: str):
        super().__init__(f"{strategy}: {message}")
        self.strategy = strategy


class ReportFailedError(FunnelSyncError):
    """Every runReport strategy failed"""

    def __init__(self, errors: List[ReportStrategyError]):
        self.errors = errors
        detail = " | ".join(str(e) for e in errors) or "no strategies configured"
        super().__init__(f"GA4 runReport failed. {detail}")
