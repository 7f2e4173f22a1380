"""Resolves workloads and their related objects through the cluster API."""

from collections.abc import Callable
from typing import Any

from kubernetes import client

from kscan.domain.shared.error import NotFoundError, ValidationError
from kscan.domain.workload.model.value import KIND_API_VERSIONS, Kind, ObjectRef
from kscan.domain.workload.port.resolver import ObjectResolver
from kscan.infrastructure.k8s.api import call

ANNOTATION_DEPLOYMENT_REVISION = "deployment.kubernetes.io/revision"


def _controller_of(obj: dict[str, Any]) -> dict[str, Any] | None:
    for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref
    return None


def _selector_string(match_labels: dict[str, str]) -> str:
    return ",".join(f"{k}={v}" for k, v in sorted(match_labels.items()))


class KubeObjectResolver(ObjectResolver):
    def __init__(
        self,
        core: client.CoreV1Api,
        apps: client.AppsV1Api,
        batch: client.BatchV1Api,
        request_timeout: float | None = None,
    ):
        self._timeout = request_timeout
        self._readers: dict[str, Callable[..., Any]] = {
            Kind.POD: core.read_namespaced_pod,
            Kind.REPLICATION_CONTROLLER: core.read_namespaced_replication_controller,
            Kind.REPLICA_SET: apps.read_namespaced_replica_set,
            Kind.DEPLOYMENT: apps.read_namespaced_deployment,
            Kind.STATEFUL_SET: apps.read_namespaced_stateful_set,
            Kind.DAEMON_SET: apps.read_namespaced_daemon_set,
            Kind.JOB: batch.read_namespaced_job,
            Kind.CRON_JOB: batch.read_namespaced_cron_job,
        }
        self._apps = apps

    async def get_object(self, ref: ObjectRef) -> dict[str, Any]:
        reader = self._readers.get(ref.kind)
        if reader is None:
            raise ValidationError(f"unsupported workload kind: {ref.kind}", field="kind")
        obj = await call(
            reader,
            ref.name,
            ref.namespace,
            action=f"getting {ref.kind} {ref.namespace}/{ref.name}",
            timeout=self._timeout,
        )
        # Single-object reads usually carry kind/apiVersion, but the client
        # does not guarantee it.
        obj["kind"] = obj.get("kind") or ref.kind
        obj["apiVersion"] = obj.get("apiVersion") or KIND_API_VERSIONS[ref.kind]
        return obj

    async def get_related_replicaset_name(self, ref: ObjectRef) -> str:
        match ref.kind:
            case Kind.DEPLOYMENT:
                return await self._active_replicaset_of_deployment(ref)
            case Kind.POD:
                pod = await self.get_object(ref)
                controller = _controller_of(pod)
                if controller is None or controller.get("kind") != Kind.REPLICA_SET:
                    raise NotFoundError(
                        f"pod {ref.namespace}/{ref.name} is not controlled by a ReplicaSet"
                    )
                return controller["name"]
            case _:
                raise ValidationError(f"{ref.kind} has no related ReplicaSet", field="kind")

    async def _active_replicaset_of_deployment(self, ref: ObjectRef) -> str:
        deployment = await self.get_object(ref)
        metadata = deployment.get("metadata") or {}
        revision = (metadata.get("annotations") or {}).get(ANNOTATION_DEPLOYMENT_REVISION)
        if revision is None:
            raise NotFoundError(f"deployment {ref.namespace}/{ref.name} has no revision annotation")

        match_labels = ((deployment.get("spec") or {}).get("selector") or {}).get("matchLabels") or {}
        replicasets = await call(
            self._apps.list_namespaced_replica_set,
            ref.namespace,
            label_selector=_selector_string(match_labels),
            action=f"listing replicasets of deployment {ref.name}",
            timeout=self._timeout,
        )
        for rs in replicasets.get("items") or []:
            rs_meta = rs.get("metadata") or {}
            controller = _controller_of(rs)
            if controller is None or controller.get("uid") != metadata.get("uid"):
                continue
            if (rs_meta.get("annotations") or {}).get(ANNOTATION_DEPLOYMENT_REVISION) == revision:
                return rs_meta["name"]
        raise NotFoundError(
            f"no active replicaset for deployment {ref.namespace}/{ref.name} at revision {revision}"
        )
