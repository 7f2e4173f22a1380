"""Deterministic report identity and ownership."""

from dataclasses import dataclass
from typing import Any

from kscan.domain.report.model.value import (
    LABEL_CONTAINER_NAME,
    LABEL_POD_SPEC_HASH,
    LABEL_RESOURCE_KIND,
    LABEL_RESOURCE_NAME,
    LABEL_RESOURCE_NAMESPACE,
    OwnerReference,
    PolicyReportData,
    Report,
)
from kscan.domain.shared.error import IncompleteReportError, ValidationError
from kscan.domain.workload.model.value import KIND_API_VERSIONS, kind_for_object


def report_name(kind: str, owner_name: str, container: str) -> str:
    return f"{kind.lower()}-{owner_name}-{container}"


@dataclass(frozen=True)
class ReportBuilder:
    """Immutable description of a report; ``build()`` validates and constructs it.

    ``owner`` is the resolved workload object (Kubernetes JSON shape).
    """

    owner: dict[str, Any] | None = None
    container: str | None = None
    data: PolicyReportData | None = None
    pod_spec_hash: str = ""

    def build(self) -> Report:
        if self.owner is None:
            raise IncompleteReportError("owner")
        if not self.container:
            raise IncompleteReportError("container")
        if self.data is None:
            raise IncompleteReportError("data")

        kind = kind_for_object(self.owner)
        metadata = self.owner.get("metadata") or {}
        name = metadata.get("name", "")
        namespace = metadata.get("namespace", "")
        uid = metadata.get("uid")
        if not uid:
            raise ValidationError(f"{kind} {namespace}/{name} has no uid", field="uid")

        labels = {
            LABEL_RESOURCE_KIND: kind,
            LABEL_RESOURCE_NAME: name,
            LABEL_RESOURCE_NAMESPACE: namespace,
            LABEL_CONTAINER_NAME: self.container,
        }
        if self.pod_spec_hash:
            labels[LABEL_POD_SPEC_HASH] = self.pod_spec_hash

        # blockOwnerDeletion stays false: setting it requires update permission
        # on the owner's finalizers subresource.
        controller = OwnerReference(
            api_version=self.owner.get("apiVersion") or KIND_API_VERSIONS[kind],
            kind=kind,
            name=name,
            uid=uid,
            controller=True,
            block_owner_deletion=False,
        )
        return Report(
            name=report_name(kind, name, self.container),
            namespace=namespace,
            labels=labels,
            owner_references=[controller],
            data=self.data,
        )
