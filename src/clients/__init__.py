# Sheet-specific data adapters
# Each module maps one spreadsheet layout onto ShortageRecord

from .ruptura_workbook import ImportResult, RupturaWorkbookLoader

__all__ = ["ImportResult", "RupturaWorkbookLoader"]
