"""Task and secret values submitted to the cluster."""

from enum import StrEnum
from typing import Any

from pydantic import Field

from kscan.domain.shared.model.value import ValueObject

LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
LABEL_TASK_NAME = "kscan.task-name"
MANAGED_BY = "kscan"
LABEL_SCANNER = "kscan.scanner"
ANNOTATION_CONTAINER_IMAGES = "kscan.container-images"


class JobConditionType(StrEnum):
    COMPLETE = "Complete"
    FAILED = "Failed"


class SecretState(StrEnum):
    """Lifecycle of a task input secret within one run."""

    PENDING = "pending"  # not yet created
    CREATED = "created"  # exists, no owner reference
    OWNED = "owned"  # owned by the task, deleted with it


class Secret(ValueObject):
    """Sensitive task input, mounted or referenced by the task's pod."""

    name: str
    string_data: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)

    def to_manifest(self, task: "Task") -> dict[str, Any]:
        """Render into the task namespace, carrying the orphan-tracking labels."""
        return {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {
                "name": self.name,
                "namespace": task.namespace,
                "labels": {
                    **self.labels,
                    LABEL_MANAGED_BY: MANAGED_BY,
                    LABEL_TASK_NAME: task.name,
                },
            },
            "stringData": dict(self.string_data),
        }


class Task(ValueObject):
    """Isolated, time-bounded unit of work: a run-once Kubernetes Job."""

    name: str
    namespace: str
    pod_spec: dict[str, Any]
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    pod_annotations: dict[str, str] = Field(default_factory=dict)
    active_deadline_seconds: int | None = None

    def to_manifest(self) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "backoffLimit": 0,
            "completions": 1,
            "template": {
                "metadata": {
                    "labels": dict(self.labels),
                    "annotations": dict(self.pod_annotations),
                },
                "spec": self.pod_spec,
            },
        }
        if self.active_deadline_seconds is not None:
            spec["activeDeadlineSeconds"] = self.active_deadline_seconds
        return {
            "apiVersion": "batch/v1",
            "kind": "Job",
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "labels": dict(self.labels),
                "annotations": dict(self.annotations),
            },
            "spec": spec,
        }
