"""Tabular store adapter."""

from .sheets_data_service import SheetsDataService

__all__ = ["SheetsDataService"]
