"""
Storage layer exports.
"""

from brandcheck.storage.base import BrandSource, ResultSink
from brandcheck.storage.sheets import GoogleSheetsStore, LoggingSink, build_gspread_client

__all__ = ["BrandSource", "GoogleSheetsStore", "LoggingSink", "ResultSink", "build_gspread_client"]
