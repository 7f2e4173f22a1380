from kscan.domain.report.model.value import (
    LABEL_CONTAINER_NAME,
    LABEL_POD_SPEC_HASH,
    LABEL_RESOURCE_KIND,
    LABEL_RESOURCE_NAME,
    LABEL_RESOURCE_NAMESPACE,
    OwnerReference,
    PolicyReportData,
    PolicyReportResult,
    PolicyReportSummary,
    Report,
    ResultStatus,
    Severity,
)

__all__ = [
    "LABEL_CONTAINER_NAME",
    "LABEL_POD_SPEC_HASH",
    "LABEL_RESOURCE_KIND",
    "LABEL_RESOURCE_NAME",
    "LABEL_RESOURCE_NAMESPACE",
    "OwnerReference",
    "PolicyReportData",
    "PolicyReportResult",
    "PolicyReportSummary",
    "Report",
    "ResultStatus",
    "Severity",
]
