"""Infrastructure layer package."""

from .report_exporter import save_summary_json, write_output_excel
from .spreadsheet_reader import SheetRows, read_spreadsheet

__all__ = ["SheetRows", "read_spreadsheet", "save_summary_json", "write_output_excel"]
