"""Report payload and record values (wgpolicyk8s.io/v1alpha2 PolicyReport)."""

from collections import Counter
from enum import StrEnum
from typing import Any

from pydantic import ConfigDict, Field

from kscan.domain.shared.model.value import ValueObject

REPORT_GROUP = "wgpolicyk8s.io"
REPORT_VERSION = "v1alpha2"
REPORT_PLURAL = "policyreports"
REPORT_KIND = "PolicyReport"

LABEL_RESOURCE_KIND = "kscan.resource.kind"
LABEL_RESOURCE_NAME = "kscan.resource.name"
LABEL_RESOURCE_NAMESPACE = "kscan.resource.namespace"
LABEL_CONTAINER_NAME = "kscan.container.name"
LABEL_POD_SPEC_HASH = "pod-spec-hash"


class ResultStatus(StrEnum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"
    ERROR = "error"
    SKIP = "skip"


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class PolicyReportResult(ValueObject):
    source: str
    policy: str
    rule: str = ""
    category: str = ""
    severity: Severity | None = None
    result: ResultStatus
    scored: bool = True
    message: str = ""
    properties: dict[str, str] = Field(default_factory=dict)


class PolicyReportSummary(ValueObject):
    pass_: int = Field(default=0, alias="pass")
    fail: int = 0
    warn: int = 0
    error: int = 0
    skip: int = 0

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @classmethod
    def from_results(cls, results: list[PolicyReportResult]) -> "PolicyReportSummary":
        counts = Counter(r.result.value for r in results)
        return cls.model_validate(dict(counts))


class PolicyReportData(ValueObject):
    """Scanner-specific payload of one report."""

    results: list[PolicyReportResult] = Field(default_factory=list)
    summary: PolicyReportSummary = Field(default_factory=PolicyReportSummary)

    @classmethod
    def from_results(cls, results: list[PolicyReportResult]) -> "PolicyReportData":
        return cls(results=results, summary=PolicyReportSummary.from_results(results))

    def to_fields(self) -> dict[str, Any]:
        """Top-level PolicyReport fields carrying the payload."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OwnerReference(ValueObject):
    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = False

    def to_manifest(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": self.controller,
            "blockOwnerDeletion": self.block_owner_deletion,
        }

    @classmethod
    def from_manifest(cls, ref: dict[str, Any]) -> "OwnerReference":
        return cls(
            api_version=ref.get("apiVersion", ""),
            kind=ref.get("kind", ""),
            name=ref.get("name", ""),
            uid=ref.get("uid", ""),
            controller=bool(ref.get("controller", False)),
            block_owner_deletion=bool(ref.get("blockOwnerDeletion", False)),
        )


class Report(ValueObject):
    """Normalised scan output for one container of one owner."""

    name: str
    namespace: str
    labels: dict[str, str]
    owner_references: list[OwnerReference] = Field(default_factory=list)
    data: PolicyReportData

    def to_manifest(self) -> dict[str, Any]:
        return {
            "apiVersion": f"{REPORT_GROUP}/{REPORT_VERSION}",
            "kind": REPORT_KIND,
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "labels": dict(self.labels),
                "ownerReferences": [ref.to_manifest() for ref in self.owner_references],
            },
            **self.data.to_fields(),
        }

    @classmethod
    def from_manifest(cls, obj: dict[str, Any]) -> "Report":
        metadata = obj.get("metadata") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            labels=metadata.get("labels") or {},
            owner_references=[
                OwnerReference.from_manifest(ref) for ref in metadata.get("ownerReferences") or []
            ],
            data=PolicyReportData.model_validate(
                {"results": obj.get("results") or [], "summary": obj.get("summary") or {}}
            ),
        )
