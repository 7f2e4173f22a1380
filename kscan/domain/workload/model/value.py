"""Workload identity value objects and the kind registry."""

import json
from enum import StrEnum
from typing import Any

from kscan.domain.shared.error import KindResolutionError, ValidationError
from kscan.domain.shared.hashing import compute_hash
from kscan.domain.shared.model.value import ValueObject


class Kind(StrEnum):
    POD = "Pod"
    REPLICA_SET = "ReplicaSet"
    REPLICATION_CONTROLLER = "ReplicationController"
    DEPLOYMENT = "Deployment"
    STATEFUL_SET = "StatefulSet"
    DAEMON_SET = "DaemonSet"
    JOB = "Job"
    CRON_JOB = "CronJob"


# Runtime type registry: kinds kscan knows how to resolve and own reports for.
KIND_API_VERSIONS: dict[str, str] = {
    Kind.POD: "v1",
    Kind.REPLICATION_CONTROLLER: "v1",
    Kind.REPLICA_SET: "apps/v1",
    Kind.DEPLOYMENT: "apps/v1",
    Kind.STATEFUL_SET: "apps/v1",
    Kind.DAEMON_SET: "apps/v1",
    Kind.JOB: "batch/v1",
    Kind.CRON_JOB: "batch/v1",
}

# Kinds whose reports may live on a managed child (see ReportReader.find_by_owner_in_hierarchy).
HIERARCHY_KINDS = frozenset({Kind.DEPLOYMENT, Kind.POD})


class ObjectRef(ValueObject):
    """Partial reference to a cluster object, used purely as an identity key."""

    kind: str
    name: str
    namespace: str = ""

    @classmethod
    def parse(cls, value: str, namespace: str = "") -> "ObjectRef":
        """Parse ``kind/name`` (kind is matched case-insensitively)."""
        kind, sep, name = value.partition("/")
        if not sep or not kind or not name:
            raise ValidationError(f"expected KIND/NAME, got {value!r}", field="object")
        for known in Kind:
            if known.lower() == kind.lower():
                kind = known.value
                break
        return cls(kind=kind, name=name, namespace=namespace)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> "ObjectRef":
        metadata = obj.get("metadata") or {}
        return cls(
            kind=kind_for_object(obj),
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
        )

    def __str__(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"


class ContainerImages(dict[str, str]):
    """Mapping of container name to image reference."""

    def as_json(self) -> str:
        return json.dumps(dict(self), sort_keys=True)

    @classmethod
    def from_json(cls, value: str) -> "ContainerImages":
        try:
            data = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValidationError(f"invalid container images JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError("container images must be a JSON object")
        return cls(data)


def kind_for_object(obj: dict[str, Any]) -> str:
    """Return the registered kind of ``obj`` or raise KindResolutionError."""
    kind = obj.get("kind")
    if not kind:
        raise KindResolutionError("object has no kind")
    if kind not in KIND_API_VERSIONS:
        raise KindResolutionError(f"kind {kind!r} is not registered")
    return kind


def get_pod_spec(obj: dict[str, Any]) -> dict[str, Any]:
    """Extract the pod specification from a workload object."""
    kind = obj.get("kind")
    spec = obj.get("spec") or {}
    match kind:
        case Kind.POD:
            pod_spec = spec
        case (
            Kind.REPLICA_SET
            | Kind.REPLICATION_CONTROLLER
            | Kind.DEPLOYMENT
            | Kind.STATEFUL_SET
            | Kind.DAEMON_SET
            | Kind.JOB
        ):
            pod_spec = (spec.get("template") or {}).get("spec")
        case Kind.CRON_JOB:
            job_spec = (spec.get("jobTemplate") or {}).get("spec") or {}
            pod_spec = (job_spec.get("template") or {}).get("spec")
        case _:
            raise ValidationError(f"unsupported workload kind: {kind}", field="kind")
    if not pod_spec:
        raise ValidationError(f"{kind} has no pod specification", field="spec")
    return pod_spec


def get_container_images(pod_spec: dict[str, Any]) -> ContainerImages:
    return ContainerImages(
        {c["name"]: c.get("image", "") for c in pod_spec.get("containers") or []}
    )


def scan_job_name(owner: ObjectRef) -> str:
    """Deterministic task name: repeated scans of one owner share it."""
    fingerprint = compute_hash(
        {"kind": owner.kind, "namespace": owner.namespace, "name": owner.name}
    )
    return f"scan-vulnerabilityreport-{fingerprint}"
