"""Size reporting over enriched message records."""

from .sizes import HEADER, LabelFilter, SizeReporter, SizeReportRow, format_rows

__all__ = ["HEADER", "LabelFilter", "SizeReportRow", "SizeReporter", "format_rows"]
