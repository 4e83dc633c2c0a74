"""Funnel metrics sheet sync: GA4 and CSV drops into daily Google Sheets rows"""

__version__ = "1.0.0"
