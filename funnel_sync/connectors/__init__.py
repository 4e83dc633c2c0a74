"""Data Connectors for funnel-sync"""

from funnel_sync.connectors.csv_drop import CsvDropReader
from funnel_sync.connectors.ga4_connector import GA4Connector
from funnel_sync.connectors.google_sheets import GoogleSheetsStorage

__all__ = [
    "CsvDropReader",
    "GA4Connector",
    "GoogleSheetsStorage"
]
