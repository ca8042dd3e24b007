from .base import LoguruReportSink, ReportSink
from .markdown import MarkdownReporter, MarkdownReportSink

__all__ = ["LoguruReportSink", "MarkdownReportSink", "MarkdownReporter", "ReportSink"]
