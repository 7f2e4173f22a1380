from kscan.domain.report.service.builder import ReportBuilder, report_name

__all__ = ["ReportBuilder", "report_name"]
