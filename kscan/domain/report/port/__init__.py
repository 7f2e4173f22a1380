from kscan.domain.report.port.repository import ReportReader, ReportReadWriter, ReportWriter

__all__ = ["ReportReadWriter", "ReportReader", "ReportWriter"]
